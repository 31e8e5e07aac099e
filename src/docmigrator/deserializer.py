"""Per-type migration pipeline.

A :class:`MigrationDeserializer` binds one target type to its chain, a
codec, a converter and the configuration, and runs
decode → extract version → migrate → convert for that type.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from docmigrator.applier import apply_migrations, pending_steps
from docmigrator.base import (
    ConversionError,
    EncodeError,
    MigrationConfig,
    MigrationResult,
    type_name,
)
from docmigrator.chain import MigrationChain, MigrationStep
from docmigrator.codecs import DocumentCodec
from docmigrator.converter import TypeConverter
from docmigrator.document import Document
from docmigrator.version import extract_schema_version, stamp_schema_version

T = TypeVar("T")

logger = logging.getLogger(__name__)


class MigrationDeserializer(Generic[T]):
    """Deserializes documents of one target type, migrating them first.

    Example:
        >>> deserializer = MigrationDeserializer(
        ...     Job,
        ...     MigrationChain([add_foo, normalize_runs_on]),
        ...     YamlCodec(),
        ... )
        >>> job = await deserializer.deserialize("runsOn: host1")
        >>> job.schema_version
        2
    """

    def __init__(
        self,
        target_type: type[T],
        chain: MigrationChain,
        codec: DocumentCodec,
        config: MigrationConfig | None = None,
        converter: TypeConverter | None = None,
    ) -> None:
        """Initialize the deserializer.

        Args:
            target_type: Model type produced by this deserializer.
            chain: Migration chain for ``target_type``.
            codec: Decoder/encoder for raw documents.
            config: Migration configuration.
            converter: Type converter (built from the config's naming
                convention if None).
        """
        self.target_type = target_type
        self.chain = chain
        self.codec = codec
        self.config = config or MigrationConfig()
        self.converter = converter or TypeConverter(self.config.naming_convention)
        self._version_field = self.config.resolved_version_field

    @property
    def migrations(self) -> tuple[MigrationStep, ...]:
        """The migration steps, in order."""
        return self.chain.steps

    @property
    def app_schema_version(self) -> int:
        """The schema version of the current application."""
        return self.chain.app_schema_version

    @property
    def version_field(self) -> str:
        return self._version_field

    def schema_version_of(self, document: Document) -> int:
        """Schema version a document declares.

        Raises:
            VersionParseError: If the version field is unparsable.
        """
        return extract_schema_version(document, self._version_field)

    def needs_migration(self, document: Document) -> bool:
        """Check if any step would run for ``document``."""
        version = self.schema_version_of(document)
        return len(pending_steps(version, self.chain)) > 0

    async def migrate(self, document: Document, context: Any = None) -> MigrationResult:
        """Migrate ``document`` in place to the app schema version.

        Args:
            document: Decoded document; owned by this call.
            context: Passed unchanged to every step.

        Raises:
            VersionParseError: If the version field is unparsable.
            MigrationStepError: If a step fails.
        """
        version = self.schema_version_of(document)
        result = await apply_migrations(
            document, version, self.chain, context, self._version_field
        )
        if result.steps_applied:
            logger.debug(
                f"Migrated {type_name(self.target_type)} document from schema "
                f"version {result.from_version} to {result.to_version} "
                f"in {result.duration_seconds:.3f}s"
            )
        return result

    def convert_to(self, document: Document) -> T:
        """Convert a migrated document into the target type.

        Raises:
            ConversionError: If a field cannot be coerced, or the document
                cannot be encoded when round-trip conversion is enabled.
        """
        if self.config.round_trip_conversion:
            try:
                document = self.codec.round_trip(document)
            except EncodeError as e:
                raise ConversionError(self.target_type, "", str(e)) from e
        return self.converter.convert(document, self.target_type)

    async def deserialize(self, raw: Any, context: Any = None) -> T:
        """Decode, migrate and convert one raw document.

        Raises:
            DecodeError: If ``raw`` is malformed.
            VersionParseError: If the version field is unparsable.
            MigrationStepError: If a step fails.
            ConversionError: If the migrated document does not fit the
                target type.
        """
        document = self.codec.decode(raw)
        await self.migrate(document, context)
        return self.convert_to(document)

    def to_document(self, model: T) -> Document:
        """Convert a model into a document stamped with the app schema version."""
        document = self.converter.to_document(model)
        stamp_schema_version(document, self._version_field, self.app_schema_version)
        return document

    def serialize(self, model: T) -> Any:
        """Encode a model as a current-version raw document.

        Raises:
            ConversionError: If the model is not convertible.
            EncodeError: If the codec cannot encode the document.
        """
        return self.codec.encode(self.to_document(model))

    def __repr__(self) -> str:
        return (
            f"<MigrationDeserializer[{type_name(self.target_type)}]: "
            f"app schema version {self.app_schema_version}, {self.codec.format_name}>"
        )
