"""Conversion between migrated documents and typed models.

Target models are dataclasses, or classes following the ``Serializable``
protocol (``from_dict``/``to_dict``). Document keys are matched to dataclass
fields through the configured naming convention, falling back to a
case- and separator-insensitive comparison, so ``runsOn``, ``RunsOn`` and
``runs_on`` all fill a ``runs_on`` field. A field can pin its document key
with ``field(metadata={"alias": "runs-on"})``.

Once the document is keyed by field name, pydantic's ``TypeAdapter``
validates and coerces the values into the target type.

Example:
    >>> from dataclasses import dataclass, field
    >>>
    >>> @dataclass
    ... class Job:
    ...     schema_version: int = 0
    ...     runs_on: list[str] = field(default_factory=list)
    >>>
    >>> TypeConverter().convert({"schemaVersion": "2", "runsOn": ["a"]}, Job)
    Job(schema_version=2, runs_on=['a'])
"""

from __future__ import annotations

import dataclasses
import types
from collections.abc import Mapping
from enum import Enum
from typing import (
    Any,
    Protocol,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
    runtime_checkable,
)

from pydantic import TypeAdapter, ValidationError

from docmigrator.base import ConversionError, NamingConvention, normalize_key
from docmigrator.document import Document

T = TypeVar("T")

ALIAS_METADATA_KEY = "alias"

_SEQUENCE_ORIGINS = (list, set, frozenset)


@runtime_checkable
class Serializable(Protocol):
    """Protocol for models that convert themselves to/from dict."""

    def to_dict(self) -> dict[str, Any]: ...

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Serializable": ...


class TypeConverter:
    """Maps documents onto typed models and back."""

    def __init__(
        self,
        naming_convention: NamingConvention = NamingConvention.CAMEL_CASE,
    ) -> None:
        self.naming_convention = naming_convention
        self._hints: dict[type, dict[str, Any]] = {}
        self._adapters: dict[type, TypeAdapter[Any]] = {}

    # -------------------------------------------------------------------------
    # Document -> model
    # -------------------------------------------------------------------------

    def convert(self, data: Mapping[str, Any], target_type: type[T]) -> T:
        """Convert a migrated document into ``target_type``.

        Args:
            data: The migrated document (or its native form).
            target_type: Dataclass or Serializable class to build.

        Returns:
            A new ``target_type`` instance.

        Raises:
            ConversionError: If a present value cannot be coerced into the
                declared type of its field.
        """
        if dataclasses.is_dataclass(target_type):
            values = self._field_values(data, target_type, "")
            return self._validate(target_type, values)
        if hasattr(target_type, "from_dict"):
            try:
                return target_type.from_dict(_to_native(data))  # type: ignore[attr-defined]
            except ConversionError:
                raise
            except Exception as e:
                raise ConversionError(target_type, "", str(e)) from e
        raise ConversionError(
            target_type, "", "target must be a dataclass or define from_dict()"
        )

    def _validate(self, cls: type[T], values: dict[str, Any]) -> T:
        adapter = self._adapter(cls)
        try:
            return adapter.validate_python(values)
        except ValidationError as e:
            error = e.errors()[0]
            raise ConversionError(
                cls, _format_loc(error["loc"]), error["msg"], error.get("input")
            ) from e
        except (TypeError, ValueError) as e:
            raise ConversionError(cls, "", str(e)) from e

    def _field_values(self, data: Any, cls: type, path: str) -> dict[str, Any]:
        """Re-key ``data`` by the field names of ``cls``."""
        if not isinstance(data, Mapping):
            raise ConversionError(
                cls, path, f"expected a mapping, got {type(data).__name__}", data
            )

        hints = self._type_hints(cls)
        index = _KeyIndex(data)
        values: dict[str, Any] = {}

        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            field_type = hints.get(f.name, Any)
            field_path = f"{path}.{f.name}" if path else f.name
            key = index.match(
                f.metadata.get(ALIAS_METADATA_KEY),
                self.naming_convention.apply(f.name),
                f.name,
            )

            if key is None or (data[key] is None and not _is_optional(field_type)):
                # absent and null fields keep their default
                if not _has_default(f):
                    values[f.name] = self._zero_value(field_type, cls, field_path)
                continue

            values[f.name] = self._prepare(data[key], field_type, field_path)

        return values

    def _prepare(self, value: Any, tp: Any, path: str) -> Any:
        """Re-key nested dataclass mappings; everything else goes to pydantic as is."""
        if _is_dataclass_type(tp):
            if isinstance(value, Mapping):
                return self._field_values(value, tp, path)
            return _to_native(value)

        origin = get_origin(tp)
        args = get_args(tp)

        if origin is Union or origin is types.UnionType:
            arms = [arm for arm in args if arm is not type(None)]
            if value is not None and len(arms) == 1:
                return self._prepare(value, arms[0], path)
            return _to_native(value)

        if isinstance(value, (list, tuple)) and args:
            if origin in _SEQUENCE_ORIGINS or (
                origin is tuple and len(args) == 2 and args[1] is Ellipsis
            ):
                return [
                    self._prepare(item, args[0], f"{path}[{i}]")
                    for i, item in enumerate(value)
                ]
            if origin is tuple:
                return [
                    self._prepare(item, args[i], f"{path}[{i}]")
                    if i < len(args)
                    else _to_native(item)
                    for i, item in enumerate(value)
                ]

        if isinstance(value, Mapping) and (origin is dict or origin is Mapping) and len(args) == 2:
            return {
                k: self._prepare(v, args[1], f"{path}.{k}") for k, v in value.items()
            }

        return _to_native(value)

    def _zero_value(self, tp: Any, owner: type, path: str) -> Any:
        """Default for a required field the document does not provide."""
        if tp is Any or tp is object or _is_optional(tp):
            return None
        origin = get_origin(tp) or tp
        if origin in (list, set, frozenset, tuple, dict):
            return origin()
        if origin is Mapping:
            return {}
        if _is_dataclass_type(tp):
            return self._field_values({}, tp, path)
        if isinstance(tp, type):
            if issubclass(tp, Enum):
                return next(iter(tp))
            if tp in (str, int, float, bool):
                return tp()
        raise ConversionError(owner, path, f"no default value for {_name(tp)}")

    def _type_hints(self, cls: type) -> dict[str, Any]:
        hints = self._hints.get(cls)
        if hints is None:
            try:
                hints = get_type_hints(cls)
            except Exception as e:
                raise ConversionError(cls, "", f"cannot resolve annotations: {e}") from e
            self._hints[cls] = hints
        return hints

    def _adapter(self, cls: type) -> TypeAdapter[Any]:
        adapter = self._adapters.get(cls)
        if adapter is None:
            try:
                adapter = TypeAdapter(cls)
            except Exception as e:
                raise ConversionError(cls, "", f"unsupported model: {e}") from e
            self._adapters[cls] = adapter
        return adapter

    # -------------------------------------------------------------------------
    # Model -> document
    # -------------------------------------------------------------------------

    def to_document(self, model: Any) -> Document:
        """Convert a typed model into a document.

        Dataclass field names are rendered in the naming convention (or
        their alias); Serializable models use ``to_dict()``.

        Raises:
            ConversionError: If ``model`` is neither a dataclass instance nor
                Serializable, or pydantic cannot dump it.
        """
        if dataclasses.is_dataclass(model) and not isinstance(model, type):
            model_type = type(model)
            try:
                dumped = self._adapter(model_type).dump_python(model, mode="json")
            except (TypeError, ValueError) as e:
                raise ConversionError(model_type, "", str(e)) from e
            return Document(self._rename(dumped, model_type))
        if isinstance(model, Serializable):
            return Document.from_native(model.to_dict())
        raise ConversionError(
            type(model), "", "model must be a dataclass instance or define to_dict()"
        )

    def _rename(self, value: Any, tp: Any) -> Any:
        """Render field-name keys of dumped dataclasses as document keys."""
        if _is_dataclass_type(tp) and isinstance(value, Mapping):
            hints = self._type_hints(tp)
            return {
                self._document_key(f): self._rename(value[f.name], hints.get(f.name, Any))
                for f in dataclasses.fields(tp)
                if f.name in value
            }

        origin = get_origin(tp)
        args = get_args(tp)

        if origin is Union or origin is types.UnionType:
            arms = [arm for arm in args if arm is not type(None)]
            if value is not None and len(arms) == 1:
                return self._rename(value, arms[0])
            return value

        if isinstance(value, list) and args:
            if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
                return [
                    self._rename(item, args[i]) if i < len(args) else item
                    for i, item in enumerate(value)
                ]
            return [self._rename(item, args[0]) for item in value]

        if isinstance(value, Mapping) and (origin is dict or origin is Mapping) and len(args) == 2:
            return {k: self._rename(v, args[1]) for k, v in value.items()}

        return value

    def _document_key(self, f: dataclasses.Field[Any]) -> str:
        return f.metadata.get(ALIAS_METADATA_KEY) or self.naming_convention.apply(f.name)


# =============================================================================
# Helpers
# =============================================================================


class _KeyIndex:
    """Finds the document key for a field name."""

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._keys = set(data.keys())
        self._normalized: dict[str, str] = {}
        for key in data.keys():
            self._normalized.setdefault(normalize_key(str(key)), key)

    def match(self, *candidates: str | None) -> str | None:
        names = [c for c in candidates if c]
        for name in names:
            if name in self._keys:
                return name
        for name in names:
            key = self._normalized.get(normalize_key(name))
            if key is not None:
                return key
        return None


def _format_loc(loc: tuple[int | str, ...]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path


def _is_dataclass_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def _has_default(f: dataclasses.Field[Any]) -> bool:
    return (
        f.default is not dataclasses.MISSING
        or f.default_factory is not dataclasses.MISSING
    )


def _is_optional(tp: Any) -> bool:
    origin = get_origin(tp)
    return (origin is Union or origin is types.UnionType) and type(None) in get_args(tp)


def _name(tp: Any) -> str:
    return getattr(tp, "__name__", str(tp))


def _to_native(value: Any) -> Any:
    if isinstance(value, Document):
        return value.to_native()
    if isinstance(value, Mapping):
        return {k: _to_native(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_native(v) for v in value]
    return value
