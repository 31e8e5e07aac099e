"""Schema migration for persisted YAML, BSON and JSON documents.

Documents written by older versions of an application are upgraded one
schema version at a time, then converted into typed models.

Example:
    >>> from dataclasses import dataclass, field
    >>> from docmigrator import MigrationRegistry, ValueKind, yaml_migrator
    >>>
    >>> @dataclass
    ... class Job:
    ...     schema_version: int = 0
    ...     foo: str = ""
    ...     runs_on: list[str] = field(default_factory=list)
    >>>
    >>> registry = MigrationRegistry()
    >>>
    >>> @registry.chain_for(Job)
    ... def job_migrations():
    ...     def add_foo(context, doc):
    ...         doc["foo"] = "foo-1"
    ...
    ...     def normalize_runs_on(context, doc):
    ...         if doc.kind_of("runsOn") is ValueKind.STRING:
    ...             doc["runsOn"] = [doc.get_str("runsOn")]
    ...
    ...     return [add_foo, normalize_runs_on]
    >>>
    >>> migrator = yaml_migrator(registry)
    >>> migrator.deserialize_sync("schemaVersion: 1\\nrunsOn: host1", Job)
    Job(schema_version=2, foo='', runs_on=['host1'])
"""

from docmigrator.applier import apply_migrations, pending_steps
from docmigrator.base import (
    ConversionError,
    DecodeError,
    DocumentStructureError,
    DocumentTypeError,
    EncodeError,
    MigrationConfig,
    MigrationError,
    MigrationResult,
    MigrationStepError,
    MultipleChainsError,
    NamingConvention,
    RegistryFrozenError,
    UnregisteredTypeError,
    VersionParseError,
)
from docmigrator.chain import (
    FunctionalMigration,
    MigrationChain,
    MigrationStep,
    StepInfo,
)
from docmigrator.codecs import (
    BsonCodec,
    DocumentCodec,
    JsonCodec,
    YamlCodec,
    get_codec,
)
from docmigrator.converter import Serializable, TypeConverter
from docmigrator.deserializer import MigrationDeserializer
from docmigrator.document import Document, ValueKind
from docmigrator.migrator import (
    DocumentMigrator,
    bson_migrator,
    json_migrator,
    yaml_migrator,
)
from docmigrator.registry import MigrationRegistry, get_default_registry, register
from docmigrator.version import extract_schema_version, stamp_schema_version

__version__ = "0.1.0"

__all__ = [
    # Errors
    "MigrationError",
    "DecodeError",
    "DocumentStructureError",
    "DocumentTypeError",
    "EncodeError",
    "VersionParseError",
    "MigrationStepError",
    "ConversionError",
    "UnregisteredTypeError",
    "MultipleChainsError",
    "RegistryFrozenError",
    # Configuration and results
    "MigrationConfig",
    "MigrationResult",
    "NamingConvention",
    # Document model
    "Document",
    "ValueKind",
    # Version
    "extract_schema_version",
    "stamp_schema_version",
    # Chains
    "MigrationStep",
    "FunctionalMigration",
    "MigrationChain",
    "StepInfo",
    # Applier
    "apply_migrations",
    "pending_steps",
    # Conversion
    "TypeConverter",
    "Serializable",
    # Codecs
    "DocumentCodec",
    "YamlCodec",
    "BsonCodec",
    "JsonCodec",
    "get_codec",
    # Registry
    "MigrationRegistry",
    "get_default_registry",
    "register",
    # Pipelines
    "MigrationDeserializer",
    "DocumentMigrator",
    "yaml_migrator",
    "bson_migrator",
    "json_migrator",
]
