"""Dynamic document model.

A :class:`Document` is the untyped tree a decoder produces and migration
steps mutate: a mapping of string keys to scalars, nested documents and
sequences. Accessors are total: asking for a value of the wrong kind raises
:class:`~docmigrator.base.DocumentTypeError` instead of returning garbage.

Example:
    >>> doc = Document.from_native({"runsOn": "host1", "owner": {"name": "ops"}})
    >>> doc.kind_of("runsOn")
    <ValueKind.STRING: 'string'>
    >>> doc.get_mapping("owner").get_str("name")
    'ops'
    >>> doc["runsOn"] = [doc.get_str("runsOn")]
    >>> doc.to_native()
    {'runsOn': ['host1'], 'owner': {'name': 'ops'}}
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from enum import Enum
from typing import Any

from docmigrator.base import DocumentStructureError, DocumentTypeError


class ValueKind(Enum):
    """Kind of a value stored in a document."""

    MISSING = "missing"
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    SCALAR = "scalar"  # decoder-specific scalars: datetimes, ObjectIds, bytes

    @classmethod
    def of(cls, value: Any) -> "ValueKind":
        """Classify a document value."""
        if value is None:
            return cls.NULL
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return cls.BOOLEAN
        if isinstance(value, int):
            return cls.INTEGER
        if isinstance(value, float):
            return cls.FLOAT
        if isinstance(value, str):
            return cls.STRING
        if isinstance(value, Mapping):
            return cls.MAPPING
        if isinstance(value, (list, tuple)):
            return cls.SEQUENCE
        return cls.SCALAR


_MISSING = object()


class Document(MutableMapping[str, Any]):
    """Mutable, string-keyed document tree.

    Nested mappings are stored as :class:`Document` and sequences as lists,
    whether they come from a decoder or are assigned by a migration step.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[Any, Any] | None = None) -> None:
        self._data: dict[str, Any] = {}
        if data is not None:
            for key, value in _normalize_mapping(data, set()).items():
                self._data[key] = value

    @classmethod
    def from_native(cls, obj: Any) -> "Document":
        """Build a document from decoder output.

        Args:
            obj: A mapping, or None for an empty document.

        Raises:
            DocumentStructureError: If ``obj`` is not a mapping, contains a
                cycle or has keys that collide once converted to strings.
        """
        if obj is None:
            return cls()
        if not isinstance(obj, Mapping):
            raise DocumentStructureError(
                f"document root must be a mapping, got {type(obj).__name__}"
            )
        return cls(obj)

    # -------------------------------------------------------------------------
    # MutableMapping
    # -------------------------------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str):
            raise DocumentStructureError(
                f"document keys must be strings, got {type(key).__name__}"
            )
        self._data[key] = _normalize_value(value, {id(self)})

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Document):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Document({self._data!r})"

    # -------------------------------------------------------------------------
    # Typed accessors
    # -------------------------------------------------------------------------

    def kind_of(self, key: str) -> ValueKind:
        """Return the kind of the value stored under ``key``."""
        if key not in self._data:
            return ValueKind.MISSING
        return ValueKind.of(self._data[key])

    def get_str(self, key: str, default: Any = _MISSING) -> str:
        """Get a string value."""
        return self._typed(key, (ValueKind.STRING,), default)

    def get_int(self, key: str, default: Any = _MISSING) -> int:
        """Get an integer value. Booleans are not integers here."""
        return self._typed(key, (ValueKind.INTEGER,), default)

    def get_float(self, key: str, default: Any = _MISSING) -> float:
        """Get a number; integers are widened to float."""
        value = self._typed(key, (ValueKind.FLOAT, ValueKind.INTEGER), default)
        return float(value) if isinstance(value, int) else value

    def get_bool(self, key: str, default: Any = _MISSING) -> bool:
        """Get a boolean value."""
        return self._typed(key, (ValueKind.BOOLEAN,), default)

    def get_mapping(self, key: str, default: Any = _MISSING) -> "Document":
        """Get a nested document."""
        return self._typed(key, (ValueKind.MAPPING,), default)

    def get_sequence(self, key: str, default: Any = _MISSING) -> list[Any]:
        """Get a sequence. The returned list is the stored one, not a copy."""
        return self._typed(key, (ValueKind.SEQUENCE,), default)

    def _typed(self, key: str, kinds: tuple[ValueKind, ...], default: Any) -> Any:
        kind = self.kind_of(key)
        if kind is ValueKind.MISSING:
            if default is _MISSING:
                raise DocumentTypeError(key, _describe(kinds), kind.value)
            return default
        if kind not in kinds:
            raise DocumentTypeError(key, _describe(kinds), kind.value)
        return self._data[key]

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def to_native(self) -> dict[str, Any]:
        """Return the tree as plain dicts and lists."""
        return {key: _to_native(value) for key, value in self._data.items()}

    def copy(self) -> "Document":
        """Return a deep, independent copy."""
        return Document(self.to_native())


def _describe(kinds: tuple[ValueKind, ...]) -> str:
    return " or ".join(k.value for k in kinds)


def _normalize_mapping(data: Mapping[Any, Any], active: set[int]) -> dict[str, Any]:
    if id(data) in active:
        raise DocumentStructureError("document contains a reference cycle")
    active = active | {id(data)}
    result: dict[str, Any] = {}
    for raw_key, value in data.items():
        key = raw_key if isinstance(raw_key, str) else str(raw_key)
        if key in result:
            raise DocumentStructureError(f"duplicate key after conversion: '{key}'")
        result[key] = _normalize_value(value, active)
    return result


def _normalize_value(value: Any, active: set[int]) -> Any:
    if isinstance(value, Document):
        # stored by reference so steps can keep mutating a subtree they built
        if any(id(node) in active for node in _walk(value)):
            raise DocumentStructureError("document contains a reference cycle")
        return value
    if isinstance(value, Mapping):
        doc = Document()
        doc._data = _normalize_mapping(value, active)
        return doc
    if isinstance(value, (list, tuple)):
        if id(value) in active:
            raise DocumentStructureError("document contains a reference cycle")
        inner = active | {id(value)}
        return [_normalize_value(item, inner) for item in value]
    return value


def _walk(value: Any) -> Iterator[Any]:
    yield value
    children = value._data.values() if isinstance(value, Document) else value
    for child in children:
        if isinstance(child, (Document, list)):
            yield from _walk(child)


def _to_native(value: Any) -> Any:
    if isinstance(value, Document):
        return value.to_native()
    if isinstance(value, list):
        return [_to_native(item) for item in value]
    return value
