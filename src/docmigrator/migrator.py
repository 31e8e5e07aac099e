"""Public entry point: migrate raw documents into typed models.

Example:
    >>> from docmigrator import MigrationRegistry, yaml_migrator
    >>>
    >>> registry = MigrationRegistry()
    >>> registry.register(Job, [add_foo, normalize_runs_on])
    >>>
    >>> migrator = yaml_migrator(registry)  # freezes the registry
    >>> job = await migrator.deserialize("schemaVersion: 1\\nrunsOn: host1", Job)
    >>> job.runs_on
    ['host1']
    >>>
    >>> await migrator.deserialize("schemaVersion: abc", Job) is None
    True
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TypeVar

from docmigrator.base import (
    MigrationConfig,
    MigrationError,
    UnregisteredTypeError,
    type_name,
)
from docmigrator.codecs import BsonCodec, DocumentCodec, JsonCodec, YamlCodec
from docmigrator.converter import TypeConverter
from docmigrator.deserializer import MigrationDeserializer
from docmigrator.registry import MigrationRegistry

T = TypeVar("T")

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class DocumentMigrator:
    """Deserializes raw documents of any registered type.

    Constructing a migrator freezes its registry: every chain must be
    registered before the application becomes ready. After that the
    migrator is read-only and safe to share between concurrent calls.
    """

    def __init__(
        self,
        registry: MigrationRegistry,
        codec: DocumentCodec,
        config: MigrationConfig | None = None,
        context: Any = None,
    ) -> None:
        """Initialize the migrator.

        Args:
            registry: Chains for every target type.
            codec: Decoder/encoder for raw documents.
            config: Migration configuration shared by all types.
            context: Default context passed to migration steps.
        """
        registry.freeze()
        self.registry = registry
        self.codec = codec
        self.config = config or MigrationConfig()
        self.context = context
        converter = TypeConverter(self.config.naming_convention)
        self._deserializers: dict[type, MigrationDeserializer[Any]] = {
            target_type: MigrationDeserializer(
                target_type, chain, codec, self.config, converter
            )
            for target_type, chain in registry.items()
        }

    def deserializer_for(self, target_type: type[T]) -> MigrationDeserializer[T]:
        """Get the pipeline for ``target_type``.

        Raises:
            UnregisteredTypeError: If no chain is registered for the type.
        """
        try:
            return self._deserializers[target_type]
        except KeyError:
            raise UnregisteredTypeError(target_type) from None

    async def deserialize(
        self,
        raw: Any,
        target_type: type[T],
        context: Any = _UNSET,
    ) -> T | None:
        """Migrate and convert a raw document.

        Any per-call failure (malformed input, unparsable version, failed
        step, failed conversion, unregistered type) is logged and yields
        None; a partially migrated document is never returned.

        Args:
            raw: Raw document accepted by the codec.
            target_type: Registered model type to produce.
            context: Context for migration steps; defaults to the
                migrator's context.

        Returns:
            The typed model, or None on failure.
        """
        try:
            return await self.deserialize_or_raise(raw, target_type, context)
        except MigrationError as e:
            logger.error(
                f"Failed to deserialize {type_name(target_type)}: {e}",
                exc_info=e.__cause__ is not None,
            )
            return None

    async def deserialize_or_raise(
        self,
        raw: Any,
        target_type: type[T],
        context: Any = _UNSET,
    ) -> T:
        """Like :meth:`deserialize`, but raises the failure.

        Raises:
            DecodeError: If ``raw`` is malformed.
            VersionParseError: If the version field is unparsable.
            MigrationStepError: If a step fails.
            ConversionError: If conversion to ``target_type`` fails.
            UnregisteredTypeError: If ``target_type`` has no chain.
        """
        deserializer = self.deserializer_for(target_type)
        if context is _UNSET:
            context = self.context
        return await deserializer.deserialize(raw, context)

    def deserialize_sync(
        self,
        raw: Any,
        target_type: type[T],
        context: Any = _UNSET,
    ) -> T | None:
        """Run :meth:`deserialize` to completion from synchronous code.

        Must not be called from inside a running event loop.
        """
        return asyncio.run(self.deserialize(raw, target_type, context))

    def serialize(self, model: Any) -> Any:
        """Encode a model of a registered type at its app schema version.

        Raises:
            UnregisteredTypeError: If the model's type has no chain.
            ConversionError: If the model is not convertible.
            EncodeError: If the codec cannot encode the document.
        """
        return self.deserializer_for(type(model)).serialize(model)

    def __repr__(self) -> str:
        return (
            f"<DocumentMigrator: {len(self._deserializers)} types, "
            f"{self.codec.format_name}>"
        )


def yaml_migrator(
    registry: MigrationRegistry,
    config: MigrationConfig | None = None,
    context: Any = None,
    **codec_options: Any,
) -> DocumentMigrator:
    """Create a migrator for YAML documents."""
    return DocumentMigrator(registry, YamlCodec(**codec_options), config, context)


def bson_migrator(
    registry: MigrationRegistry,
    config: MigrationConfig | None = None,
    context: Any = None,
    **codec_options: Any,
) -> DocumentMigrator:
    """Create a migrator for BSON documents (bytes or decoded mappings)."""
    return DocumentMigrator(registry, BsonCodec(**codec_options), config, context)


def json_migrator(
    registry: MigrationRegistry,
    config: MigrationConfig | None = None,
    context: Any = None,
    **codec_options: Any,
) -> DocumentMigrator:
    """Create a migrator for JSON documents."""
    return DocumentMigrator(registry, JsonCodec(**codec_options), config, context)
