"""Registry binding target model types to their migration chains.

The registry is populated once while the application starts, then frozen.
Lookups on a frozen registry never take a lock, so it can be shared by any
number of concurrent migrations.

Example:
    >>> registry = MigrationRegistry()
    >>>
    >>> # Register a chain directly
    >>> registry.register(Pipeline, MigrationChain([add_stages]))
    >>>
    >>> # Or with a decorator returning the steps in order
    >>> @registry.chain_for(Job)
    ... def job_migrations():
    ...     return [add_foo, normalize_runs_on]
    >>>
    >>> registry.freeze()
    >>> registry.app_schema_version(Job)
    2
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, Iterator, Union

from docmigrator.base import (
    MultipleChainsError,
    RegistryFrozenError,
    UnregisteredTypeError,
    type_name,
)
from docmigrator.chain import MigrationChain, MigrationStep, StepFunc

logger = logging.getLogger(__name__)

StepsFactory = Callable[[], Iterable[Union[MigrationStep, StepFunc]]]


class MigrationRegistry:
    """Registry of migration chains, one per target type."""

    def __init__(self) -> None:
        """Initialize the registry."""
        self._chains: dict[type, MigrationChain] = {}
        self._lock = threading.Lock()
        self._frozen = False

    def register(
        self,
        target_type: type,
        chain: MigrationChain | Iterable[MigrationStep | StepFunc],
    ) -> MigrationChain:
        """Bind ``target_type`` to its migration chain.

        Args:
            target_type: The model type documents are converted to.
            chain: A MigrationChain, or the steps to build one from.

        Returns:
            The registered chain.

        Raises:
            MultipleChainsError: If the type already has a chain.
            RegistryFrozenError: If the registry has been frozen.
        """
        if not isinstance(chain, MigrationChain):
            chain = MigrationChain(chain)

        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(target_type)
            if target_type in self._chains:
                raise MultipleChainsError(target_type)
            self._chains[target_type] = chain

        logger.debug(
            f"Registered migration chain for {type_name(target_type)} "
            f"(app schema version {chain.app_schema_version})"
        )
        return chain

    def chain_for(self, target_type: type) -> Callable[[StepsFactory], StepsFactory]:
        """Decorator registering the steps returned by a factory function.

        Example:
            >>> @registry.chain_for(Job)
            ... def job_migrations():
            ...     return [add_foo, normalize_runs_on]
        """

        def decorator(factory: StepsFactory) -> StepsFactory:
            self.register(target_type, MigrationChain(factory()))
            return factory

        return decorator

    def freeze(self) -> None:
        """Make the registry read-only. Idempotent."""
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, target_type: type) -> MigrationChain:
        """Get the chain registered for ``target_type``.

        Raises:
            UnregisteredTypeError: If no chain is registered.
        """
        try:
            return self._chains[target_type]
        except KeyError:
            raise UnregisteredTypeError(target_type) from None

    def app_schema_version(self, target_type: type) -> int:
        """Current schema version for ``target_type``."""
        return self.get(target_type).app_schema_version

    def registered_types(self) -> list[type]:
        """List registered target types in registration order."""
        return list(self._chains)

    def items(self) -> Iterator[tuple[type, MigrationChain]]:
        return iter(list(self._chains.items()))

    def clear(self) -> None:
        """Remove all chains and unfreeze. Intended for tests."""
        with self._lock:
            self._chains.clear()
            self._frozen = False

    def __len__(self) -> int:
        """Get number of registered chains."""
        return len(self._chains)

    def __contains__(self, target_type: Any) -> bool:
        """Check if a type has a chain."""
        return target_type in self._chains

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"<MigrationRegistry: {len(self._chains)} chains, {state}>"


# Global default registry
_default_registry = MigrationRegistry()


def get_default_registry() -> MigrationRegistry:
    """Get the default global migration registry."""
    return _default_registry


def register(
    target_type: type,
    chain: MigrationChain | Iterable[MigrationStep | StepFunc],
) -> MigrationChain:
    """Register a chain in the default registry.

    This is a convenience function for applications with a single registry.
    """
    return _default_registry.register(target_type, chain)
