"""Decoders and encoders for persisted documents.

Each codec turns raw input into a :class:`~docmigrator.document.Document`
and back. The parsing itself is delegated to PyYAML, the ``bson`` package
shipped with PyMongo, and the standard ``json`` module.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

import bson
import yaml
from bson.codec_options import CodecOptions
from bson.errors import BSONError

from docmigrator.base import DecodeError, DocumentStructureError, EncodeError
from docmigrator.document import Document


class DocumentCodec(ABC):
    """Abstract base class for document codecs."""

    format_name: str = "document"

    @abstractmethod
    def decode(self, raw: Any) -> Document:
        """Decode raw input.

        Raises:
            DecodeError: If the input is malformed or its root is not a
                mapping.
        """
        pass

    @abstractmethod
    def encode(self, document: Document) -> Any:
        """Encode a document.

        Raises:
            EncodeError: If the document holds values the format cannot
                represent.
        """
        pass

    def round_trip(self, document: Document) -> Document:
        """Encode then decode ``document``, returning a fresh tree."""
        return self.decode(self.encode(document))

    def _to_document(self, obj: Any) -> Document:
        try:
            return Document.from_native(obj)
        except DocumentStructureError as e:
            raise DecodeError(self.format_name, str(e)) from e

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class YamlCodec(DocumentCodec):
    """YAML codec using PyYAML's safe loader and dumper.

    Empty input decodes to an empty document.
    """

    format_name = "YAML"

    def __init__(self, sort_keys: bool = False, allow_unicode: bool = True) -> None:
        self.sort_keys = sort_keys
        self.allow_unicode = allow_unicode

    def decode(self, raw: str | bytes) -> Document:
        try:
            obj = yaml.safe_load(raw)
        except (yaml.YAMLError, ValueError) as e:
            raise DecodeError(self.format_name, str(e)) from e
        return self._to_document(obj)

    def encode(self, document: Document) -> str:
        try:
            return yaml.safe_dump(
                document.to_native(),
                sort_keys=self.sort_keys,
                allow_unicode=self.allow_unicode,
            )
        except yaml.YAMLError as e:
            raise EncodeError(self.format_name, str(e)) from e


class BsonCodec(DocumentCodec):
    """BSON codec using the ``bson`` package from PyMongo.

    :meth:`decode` accepts raw bytes or an already decoded mapping (for
    documents read through a driver).
    """

    format_name = "BSON"

    def __init__(self, codec_options: CodecOptions | None = None) -> None:
        self.codec_options = codec_options or CodecOptions(tz_aware=True)

    def decode(self, raw: bytes | bytearray | memoryview | Mapping[str, Any]) -> Document:
        if isinstance(raw, Mapping):
            # deep copy: nested Documents would otherwise be shared with the caller
            return self._to_document(raw).copy()
        if not isinstance(raw, (bytes, bytearray, memoryview)):
            raise DecodeError(
                self.format_name, f"expected bytes or a mapping, got {type(raw).__name__}"
            )
        try:
            obj = bson.decode(bytes(raw), codec_options=self.codec_options)
        except BSONError as e:
            raise DecodeError(self.format_name, str(e)) from e
        return self._to_document(obj)

    def encode(self, document: Document) -> bytes:
        try:
            return bson.encode(document.to_native(), codec_options=self.codec_options)
        except (BSONError, TypeError, OverflowError) as e:
            raise EncodeError(self.format_name, str(e)) from e


class JsonCodec(DocumentCodec):
    """JSON codec using the standard library. Dates are written as ISO strings."""

    format_name = "JSON"

    def __init__(self, indent: int | None = None) -> None:
        self.indent = indent

    def decode(self, raw: str | bytes) -> Document:
        if isinstance(raw, (bytes, bytearray)) and not raw.strip():
            return Document()
        if isinstance(raw, str) and not raw.strip():
            return Document()
        try:
            obj = json.loads(raw)
        except ValueError as e:
            raise DecodeError(self.format_name, str(e)) from e
        return self._to_document(obj)

    def encode(self, document: Document) -> str:
        try:
            return json.dumps(document.to_native(), indent=self.indent, default=_json_default)
        except (TypeError, ValueError) as e:
            raise EncodeError(self.format_name, str(e)) from e


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


_CODECS: dict[str, type[DocumentCodec]] = {
    "yaml": YamlCodec,
    "yml": YamlCodec,
    "bson": BsonCodec,
    "json": JsonCodec,
}


def get_codec(name: str, **kwargs: Any) -> DocumentCodec:
    """Create a codec by format name.

    Args:
        name: "yaml", "yml", "bson" or "json" (case-insensitive).
        **kwargs: Passed to the codec constructor.

    Raises:
        ValueError: If the format is unknown.
    """
    try:
        codec_cls = _CODECS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown document format: {name}. Available: {', '.join(sorted(_CODECS))}"
        ) from None
    return codec_cls(**kwargs)
