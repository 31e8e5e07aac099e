"""Tests for the migration registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pytest

from conftest import Job, add_foo, normalize_runs_on
from docmigrator import (
    MigrationChain,
    MigrationRegistry,
    MultipleChainsError,
    RegistryFrozenError,
    UnregisteredTypeError,
    get_default_registry,
    register,
)


@dataclass
class Pipeline:
    name: str = ""


class TestMigrationRegistry:
    """Tests for MigrationRegistry class."""

    def test_register_and_get(self) -> None:
        """Test a registered chain is returned for its type."""
        registry = MigrationRegistry()
        chain = MigrationChain([add_foo])

        assert registry.register(Job, chain) is chain
        assert registry.get(Job) is chain
        assert Job in registry
        assert len(registry) == 1

    def test_register_steps(self) -> None:
        """Test registering a plain list of steps."""
        registry = MigrationRegistry()

        chain = registry.register(Job, [add_foo, normalize_runs_on])

        assert isinstance(chain, MigrationChain)
        assert registry.app_schema_version(Job) == 2

    def test_one_chain_per_type(self) -> None:
        """Test a second chain for the same type is rejected."""
        registry = MigrationRegistry()
        registry.register(Job, [add_foo])

        with pytest.raises(MultipleChainsError) as exc_info:
            registry.register(Job, [normalize_runs_on])

        assert exc_info.value.target_type is Job
        assert registry.app_schema_version(Job) == 1

    def test_unregistered_type(self) -> None:
        """Test lookups for unknown types."""
        registry = MigrationRegistry()

        with pytest.raises(UnregisteredTypeError):
            registry.get(Pipeline)
        assert Pipeline not in registry

    def test_frozen_registry_rejects_registration(self) -> None:
        """Test registration after freezing."""
        registry = MigrationRegistry()
        registry.register(Job, [add_foo])
        registry.freeze()

        with pytest.raises(RegistryFrozenError):
            registry.register(Pipeline, [])

        assert registry.frozen
        assert registry.get(Job).app_schema_version == 1

    def test_chain_for_decorator(self) -> None:
        """Test registering through a steps factory."""
        registry = MigrationRegistry()

        @registry.chain_for(Pipeline)
        def pipeline_migrations():
            return [add_foo]

        assert registry.app_schema_version(Pipeline) == 1
        assert callable(pipeline_migrations)

    def test_registered_types_in_order(self) -> None:
        """Test registration order is kept."""
        registry = MigrationRegistry()
        registry.register(Pipeline, [])
        registry.register(Job, [add_foo])

        assert registry.registered_types() == [Pipeline, Job]
        assert [t for t, _ in registry.items()] == [Pipeline, Job]

    def test_clear(self) -> None:
        """Test clear removes chains and unfreezes."""
        registry = MigrationRegistry()
        registry.register(Job, [add_foo])
        registry.freeze()

        registry.clear()

        assert len(registry) == 0
        assert not registry.frozen
        registry.register(Job, [add_foo])

    def test_repr(self) -> None:
        """Test repr shows size and state."""
        registry = MigrationRegistry()
        registry.register(Job, [])

        assert repr(registry) == "<MigrationRegistry: 1 chains, open>"


class TestDefaultRegistry:
    """Tests for the global default registry."""

    @pytest.fixture(autouse=True)
    def clean_default(self):
        get_default_registry().clear()
        yield
        get_default_registry().clear()

    def test_register_shortcut(self) -> None:
        """Test the module-level register function."""
        register(Pipeline, [add_foo])

        assert get_default_registry().app_schema_version(Pipeline) == 1

    def test_same_instance(self) -> None:
        """Test the default registry is a singleton."""
        assert get_default_registry() is get_default_registry()


class TestRegistryLogging:
    """Tests for registry debug logging."""

    def test_typing_alias_target(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test targets without __name__ register and log cleanly."""
        registry = MigrationRegistry()

        with caplog.at_level(logging.DEBUG, logger="docmigrator.registry"):
            registry.register(Optional[Job], [add_foo])

        assert Optional[Job] in registry
        assert "Optional" in caplog.text
