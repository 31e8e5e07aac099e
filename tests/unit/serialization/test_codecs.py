"""Tests for document codecs."""

from __future__ import annotations

import sys
from datetime import datetime, timezone

import bson
import pytest

from docmigrator import (
    BsonCodec,
    DecodeError,
    Document,
    EncodeError,
    JsonCodec,
    YamlCodec,
    get_codec,
)


class TestYamlCodec:
    """Tests for YamlCodec."""

    def test_decode(self) -> None:
        """Test decoding a YAML mapping."""
        doc = YamlCodec().decode("schemaVersion: 1\nrunsOn: host1\n")

        assert doc == {"schemaVersion": 1, "runsOn": "host1"}

    @pytest.mark.parametrize("raw", ["", "   \n", "# only a comment\n"])
    def test_empty_input(self, raw: str) -> None:
        """Test empty YAML decodes to an empty document."""
        assert YamlCodec().decode(raw) == {}

    def test_malformed(self) -> None:
        """Test YAML syntax errors."""
        with pytest.raises(DecodeError) as exc_info:
            YamlCodec().decode("foo: [unclosed")

        assert exc_info.value.format_name == "YAML"

    def test_non_mapping_root(self) -> None:
        """Test a YAML list is not a document."""
        with pytest.raises(DecodeError):
            YamlCodec().decode("- a\n- b\n")

    def test_encode_preserves_order(self) -> None:
        """Test keys are written in document order."""
        raw = YamlCodec().encode(Document({"b": 1, "a": [1, 2]}))

        assert raw.index("b:") < raw.index("a:")
        assert YamlCodec().decode(raw) == {"b": 1, "a": [1, 2]}

    def test_encode_unrepresentable(self) -> None:
        """Test values YAML cannot represent."""
        with pytest.raises(EncodeError):
            YamlCodec().encode(Document({"obj": object()}))


class TestBsonCodec:
    """Tests for BsonCodec."""

    def test_decode_bytes(self) -> None:
        """Test decoding raw BSON."""
        raw = bson.encode({"schemaVersion": 1, "owner": {"name": "ops"}})

        doc = BsonCodec().decode(raw)

        assert doc.get_int("schemaVersion") == 1
        assert doc.get_mapping("owner").get_str("name") == "ops"

    def test_decode_mapping(self) -> None:
        """Test already decoded documents are accepted."""
        assert BsonCodec().decode({"foo": "bar"}) == {"foo": "bar"}

    def test_decode_document_is_copied(self) -> None:
        """Test decoded documents share no nodes with the input."""
        source = Document.from_native({"owner": {"name": "ops"}, "hosts": ["a"]})

        doc = BsonCodec().decode(source)
        doc.get_mapping("owner")["name"] = "dev"
        doc.get_sequence("hosts").append("b")

        assert source == {"owner": {"name": "ops"}, "hosts": ["a"]}

    def test_decode_empty_document(self) -> None:
        """Test an empty BSON document."""
        assert BsonCodec().decode(bson.encode({})) == {}

    def test_malformed(self) -> None:
        """Test truncated BSON."""
        with pytest.raises(DecodeError):
            BsonCodec().decode(b"\x05\x00\x00")

    def test_wrong_input_type(self) -> None:
        """Test non-bytes input."""
        with pytest.raises(DecodeError):
            BsonCodec().decode("schemaVersion: 1")  # type: ignore[arg-type]

    def test_round_trip_datetime(self) -> None:
        """Test BSON datetimes survive a round trip."""
        when = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        codec = BsonCodec()

        doc = codec.round_trip(Document({"created": when}))

        assert doc["created"] == when

    def test_encode_unrepresentable(self) -> None:
        """Test values BSON cannot represent."""
        with pytest.raises(EncodeError):
            BsonCodec().encode(Document({"obj": object()}))


class TestJsonCodec:
    """Tests for JsonCodec."""

    def test_decode(self) -> None:
        """Test decoding JSON text and bytes."""
        assert JsonCodec().decode('{"a": [1, 2]}') == {"a": [1, 2]}
        assert JsonCodec().decode(b'{"a": null}') == {"a": None}

    def test_empty(self) -> None:
        """Test empty JSON input."""
        assert JsonCodec().decode("") == {}
        assert JsonCodec().decode("null") == {}

    def test_malformed(self) -> None:
        """Test JSON syntax errors."""
        with pytest.raises(DecodeError):
            JsonCodec().decode("{")

    def test_dates_as_iso_strings(self) -> None:
        """Test datetimes are written as ISO strings."""
        raw = JsonCodec().encode(Document({"created": datetime(2025, 1, 2)}))

        assert JsonCodec().decode(raw) == {"created": "2025-01-02T00:00:00"}


class TestGetCodec:
    """Tests for get_codec."""

    @pytest.mark.parametrize(
        "name, codec_type",
        [("yaml", YamlCodec), ("YML", YamlCodec), ("bson", BsonCodec), ("json", JsonCodec)],
    )
    def test_lookup(self, name: str, codec_type: type) -> None:
        """Test codecs by name."""
        assert isinstance(get_codec(name), codec_type)

    def test_unknown(self) -> None:
        """Test unknown formats."""
        with pytest.raises(ValueError, match="Unknown document format"):
            get_codec("xml")


@pytest.mark.skipif(
    not hasattr(sys, "get_int_max_str_digits"), reason="no int string limit"
)
class TestOversizedIntegers:
    """Tests for integer literals beyond the int conversion limit."""

    @pytest.fixture()
    def digits(self) -> str:
        return "1" * (sys.get_int_max_str_digits() + 1)

    def test_yaml(self, digits: str) -> None:
        """Test huge YAML integers are decode errors."""
        with pytest.raises(DecodeError):
            YamlCodec().decode(f"big: {digits}\n")

    def test_json(self, digits: str) -> None:
        """Test huge JSON integers are decode errors."""
        with pytest.raises(DecodeError):
            JsonCodec().decode(f'{{"big": {digits}}}')
