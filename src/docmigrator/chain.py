"""Migration steps and chains.

A migration step advances a document by exactly one schema version. A
:class:`MigrationChain` is the ordered, immutable list of steps for one
target type; its length is that type's current schema version.

Example:
    >>> from docmigrator.document import ValueKind
    >>>
    >>> def add_foo(context, doc):
    ...     doc["foo"] = "foo-1"
    >>>
    >>> async def normalize_runs_on(context, doc):
    ...     if doc.kind_of("runsOn") is ValueKind.STRING:
    ...         doc["runsOn"] = [doc.get_str("runsOn")]
    >>>
    >>> chain = MigrationChain([add_foo, normalize_runs_on])
    >>> chain.app_schema_version
    2
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Iterator, Union, overload

from docmigrator.document import Document

# Type alias for migration functions: (context, document) -> None or awaitable
StepFunc = Callable[[Any, Document], Union[None, Awaitable[None]]]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class StepInfo:
    """Information about a single step within a chain.

    Attributes:
        index: Position of the step in its chain.
        from_version: Version the step consumes.
        to_version: Version the step produces.
        description: Human-readable description.
    """

    index: int
    description: str = ""

    @property
    def from_version(self) -> int:
        return self.index

    @property
    def to_version(self) -> int:
        return self.index + 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "index": self.index,
            "from_version": self.from_version,
            "to_version": self.to_version,
            "description": self.description,
        }


# =============================================================================
# Steps
# =============================================================================


class MigrationStep(ABC):
    """Abstract base class for migration steps.

    Example:
        >>> class NormalizeRunsOn(MigrationStep):
        ...     description = "Wrap scalar runsOn in a list"
        ...
        ...     def migrate(self, context, document):
        ...         if document.kind_of("runsOn") is ValueKind.STRING:
        ...             document["runsOn"] = [document.get_str("runsOn")]
    """

    description: str = ""

    @abstractmethod
    def migrate(self, context: Any, document: Document) -> None | Awaitable[None]:
        """Transform ``document`` in place to the next schema version.

        Args:
            context: Opaque collaborators supplied by the caller.
            document: Document at this step's source version.

        Returns:
            None, or an awaitable for steps that need to suspend.
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__}: {self.description or 'migration step'}>"


class FunctionalMigration(MigrationStep):
    """A migration step defined by a function or coroutine function."""

    def __init__(self, func: StepFunc, description: str = "") -> None:
        """Initialize the step.

        Args:
            func: Callable taking ``(context, document)``.
            description: Human-readable description; defaults to the
                function's docstring or name.
        """
        self._func = func
        self.description = description or _describe_func(func)

    @property
    def func(self) -> StepFunc:
        return self._func

    def migrate(self, context: Any, document: Document) -> None | Awaitable[None]:
        return self._func(context, document)


def _describe_func(func: Callable[..., Any]) -> str:
    doc = (func.__doc__ or "").strip()
    if doc:
        return doc.splitlines()[0]
    return getattr(func, "__name__", repr(func))


def as_step(step: MigrationStep | StepFunc) -> MigrationStep:
    """Wrap plain callables in :class:`FunctionalMigration`."""
    if isinstance(step, MigrationStep):
        return step
    if callable(step):
        return FunctionalMigration(step)
    raise TypeError(f"Not a migration step: {step!r}")


# =============================================================================
# Chain
# =============================================================================


class MigrationChain:
    """Ordered, immutable sequence of migration steps for one target type."""

    __slots__ = ("_steps",)

    def __init__(self, steps: Iterable[MigrationStep | StepFunc] = ()) -> None:
        self._steps: tuple[MigrationStep, ...] = tuple(as_step(s) for s in steps)

    @classmethod
    def of(cls, *steps: MigrationStep | StepFunc) -> "MigrationChain":
        """Create a chain from positional steps."""
        return cls(steps)

    @property
    def app_schema_version(self) -> int:
        """The schema version documents reach after the full chain."""
        return len(self._steps)

    @property
    def steps(self) -> tuple[MigrationStep, ...]:
        return self._steps

    def info(self) -> list[StepInfo]:
        """Describe every step in order."""
        return [StepInfo(i, step.description) for i, step in enumerate(self._steps)]

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[MigrationStep]:
        return iter(self._steps)

    @overload
    def __getitem__(self, index: int) -> MigrationStep: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[MigrationStep, ...]: ...

    def __getitem__(self, index: int | slice) -> MigrationStep | tuple[MigrationStep, ...]:
        return self._steps[index]

    def __repr__(self) -> str:
        return f"<MigrationChain: {len(self._steps)} steps>"
