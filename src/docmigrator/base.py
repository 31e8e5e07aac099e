"""Base types for document schema migration.

This module defines the exception hierarchy, the configuration object and
the result record shared by every stage of the migration pipeline.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


# =============================================================================
# Exceptions
# =============================================================================


class MigrationError(Exception):
    """Base exception for migration-related errors."""

    pass


class DecodeError(MigrationError):
    """Raised when raw input cannot be decoded into a document."""

    def __init__(self, format_name: str, message: str) -> None:
        self.format_name = format_name
        super().__init__(f"Failed to decode {format_name} document: {message}")


class DocumentStructureError(DecodeError):
    """Raised when decoded data does not form a valid document tree."""

    def __init__(self, message: str) -> None:
        super().__init__("native", message)


class EncodeError(MigrationError):
    """Raised when a document cannot be encoded."""

    def __init__(self, format_name: str, message: str) -> None:
        self.format_name = format_name
        super().__init__(f"Failed to encode {format_name} document: {message}")


class DocumentTypeError(MigrationError, TypeError):
    """Raised when a document value is not of the requested kind."""

    def __init__(self, key: str, expected: str, actual: str) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(f"Field '{key}' is {actual}, expected {expected}")


class VersionParseError(MigrationError):
    """Raised when the schema version field cannot be parsed."""

    def __init__(self, field_name: str, value: Any) -> None:
        self.field = field_name
        self.value = value
        super().__init__(
            f"Invalid schema version in field '{field_name}': {value!r}"
        )


class MigrationStepError(MigrationError):
    """Raised when a migration step fails.

    The underlying exception is chained as ``__cause__``.
    """

    def __init__(self, index: int, step: str, message: str) -> None:
        self.index = index
        self.from_version = index
        self.to_version = index + 1
        self.step = step
        super().__init__(
            f"Migration step {index} ({step}) from version {index} "
            f"to {index + 1} failed: {message}"
        )


class ConversionError(MigrationError, TypeError):
    """Raised when a migrated document cannot be coerced into the target type."""

    def __init__(
        self,
        target_type: type | str,
        path: str,
        message: str,
        value: Any = None,
    ) -> None:
        self.target_type = target_type
        self.path = path
        self.value = value
        name = getattr(target_type, "__name__", str(target_type))
        location = f" at '{path}'" if path else ""
        super().__init__(f"Cannot convert to {name}{location}: {message}")


class UnregisteredTypeError(MigrationError):
    """Raised when no migration chain is registered for a target type."""

    def __init__(self, target_type: type) -> None:
        self.target_type = target_type
        super().__init__(
            f"No migration chain registered for {type_name(target_type)}"
        )


class MultipleChainsError(MigrationError):
    """Raised when a second migration chain is registered for a type."""

    def __init__(self, target_type: type) -> None:
        self.target_type = target_type
        super().__init__(
            f"A migration chain is already registered for {type_name(target_type)}"
        )


class RegistryFrozenError(MigrationError):
    """Raised when registering into a registry that is already in use."""

    def __init__(self, target_type: type) -> None:
        self.target_type = target_type
        super().__init__(
            f"Cannot register {type_name(target_type)}: registry is frozen"
        )


def type_name(target_type: Any) -> str:
    """Qualified name of a target type, or its repr for typing aliases."""
    if not isinstance(target_type, type):
        return repr(target_type)
    return f"{target_type.__module__}.{target_type.__qualname__}"


# =============================================================================
# Enums
# =============================================================================


_WORD_BOUNDARY = re.compile(r"[_\-\s]+")


class NamingConvention(Enum):
    """How python field names are rendered as document keys."""

    CAMEL_CASE = "camel"  # runs_on -> runsOn
    PASCAL_CASE = "pascal"  # runs_on -> RunsOn
    SNAKE_CASE = "snake"  # runs_on -> runs_on
    KEBAB_CASE = "kebab"  # runs_on -> runs-on

    @classmethod
    def from_string(cls, value: str) -> "NamingConvention":
        """Convert string to NamingConvention.

        Args:
            value: Convention name (case-insensitive), e.g. "camel",
                "camelCase", "snake_case" or "underscored".

        Raises:
            ValueError: If the name is unknown.
        """
        key = _WORD_BOUNDARY.sub("", value.strip().lower())
        mapping = {
            "camel": cls.CAMEL_CASE,
            "camelcase": cls.CAMEL_CASE,
            "pascal": cls.PASCAL_CASE,
            "pascalcase": cls.PASCAL_CASE,
            "snake": cls.SNAKE_CASE,
            "snakecase": cls.SNAKE_CASE,
            "underscored": cls.SNAKE_CASE,
            "kebab": cls.KEBAB_CASE,
            "kebabcase": cls.KEBAB_CASE,
            "hyphenated": cls.KEBAB_CASE,
        }
        try:
            return mapping[key]
        except KeyError:
            raise ValueError(f"Unknown naming convention: {value}") from None

    def apply(self, name: str) -> str:
        """Render a python identifier in this convention."""
        words = [w for w in _WORD_BOUNDARY.split(name) if w]
        if not words:
            return name
        if self is NamingConvention.SNAKE_CASE:
            return "_".join(w.lower() for w in words)
        if self is NamingConvention.KEBAB_CASE:
            return "-".join(w.lower() for w in words)
        pascal = "".join(w[:1].upper() + w[1:] for w in words)
        if self is NamingConvention.PASCAL_CASE:
            return pascal
        return pascal[:1].lower() + pascal[1:]


def normalize_key(name: str) -> str:
    """Return the convention-insensitive form of a field name or key."""
    return _WORD_BOUNDARY.sub("", name).lower()


# =============================================================================
# Data Classes
# =============================================================================


SCHEMA_VERSION_FIELD = "schema_version"


@dataclass
class MigrationConfig:
    """Configuration for document migration.

    Attributes:
        version_field: Document key holding the schema version. When None,
            ``schema_version`` rendered in ``naming_convention`` is used.
        naming_convention: Convention used to match document keys to model
            fields and to render keys when serializing.
        round_trip_conversion: Encode and decode the migrated document with
            the codec before converting it to the target type.
    """

    version_field: str | None = None
    naming_convention: NamingConvention = NamingConvention.CAMEL_CASE
    round_trip_conversion: bool = False

    @property
    def resolved_version_field(self) -> str:
        """The document key that holds the schema version."""
        if self.version_field:
            return self.version_field
        return self.naming_convention.apply(SCHEMA_VERSION_FIELD)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MigrationConfig":
        """Create a config from a plain mapping, e.g. a parsed settings file."""
        convention = data.get("naming_convention", NamingConvention.CAMEL_CASE)
        if isinstance(convention, str):
            convention = NamingConvention.from_string(convention)
        return cls(
            version_field=data.get("version_field") or None,
            naming_convention=convention,
            round_trip_conversion=_as_bool(data.get("round_trip_conversion", False)),
        )

    @classmethod
    def from_env(cls, prefix: str = "DOCMIGRATOR_") -> "MigrationConfig":
        """Create a config from environment variables.

        Reads ``{prefix}VERSION_FIELD``, ``{prefix}NAMING_CONVENTION`` and
        ``{prefix}ROUND_TRIP``. Unset variables keep their defaults.
        """
        data: dict[str, Any] = {}
        if value := os.environ.get(f"{prefix}VERSION_FIELD"):
            data["version_field"] = value
        if value := os.environ.get(f"{prefix}NAMING_CONVENTION"):
            data["naming_convention"] = value
        if value := os.environ.get(f"{prefix}ROUND_TRIP"):
            data["round_trip_conversion"] = value
        return cls.from_dict(data)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class MigrationResult:
    """Result of running a migration chain against one document.

    Attributes:
        start_time: When migration started.
        end_time: When migration finished.
        from_version: Version declared by the document.
        to_version: Version of the document after migration.
        app_schema_version: Length of the chain that was applied.
        steps_applied: Indices of the steps that ran, in order.
        forward_compatible: Whether the document was passed through because
            it declared a version beyond the chain length.
    """

    start_time: datetime
    end_time: datetime | None = None
    from_version: int = 0
    to_version: int = 0
    app_schema_version: int = 0
    steps_applied: list[int] = field(default_factory=list)
    forward_compatible: bool = False

    @property
    def duration_seconds(self) -> float:
        """Get migration duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def migrated(self) -> bool:
        """Whether any step was applied."""
        return bool(self.steps_applied)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": self.duration_seconds,
            "from_version": self.from_version,
            "to_version": self.to_version,
            "app_schema_version": self.app_schema_version,
            "steps_applied": list(self.steps_applied),
            "forward_compatible": self.forward_compatible,
        }
