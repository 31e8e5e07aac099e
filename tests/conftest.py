"""Shared fixtures: a two-step chain for a small job model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from docmigrator import (
    Document,
    DocumentMigrator,
    MigrationChain,
    MigrationRegistry,
    ValueKind,
    bson_migrator,
    yaml_migrator,
)


@dataclass
class Job:
    """Target model with a scalar that later became a list."""

    schema_version: int = 0
    foo: str = ""
    runs_on: list[str] = field(default_factory=list)


def add_foo(context: Any, document: Document) -> None:
    """Add foo with its initial value."""
    document["foo"] = "foo-1"


def normalize_runs_on(context: Any, document: Document) -> None:
    """Wrap a scalar runsOn in a list."""
    kind = document.kind_of("runsOn")
    if kind is ValueKind.STRING:
        document["runsOn"] = [document.get_str("runsOn")]
    elif kind not in (ValueKind.MISSING, ValueKind.SEQUENCE):
        raise TypeError(f"Cannot convert runsOn from {kind.value} to a list")


class StepRecorder:
    """Context object recording which steps ran, in order."""

    def __init__(self) -> None:
        self.calls: list[int] = []


def recording_step(index: int):
    def step(context: StepRecorder, document: Document) -> None:
        context.calls.append(index)

    step.__name__ = f"record_{index}"
    return step


@pytest.fixture()
def job_chain() -> MigrationChain:
    return MigrationChain([add_foo, normalize_runs_on])


@pytest.fixture()
def registry(job_chain: MigrationChain) -> MigrationRegistry:
    registry = MigrationRegistry()
    registry.register(Job, job_chain)
    return registry


@pytest.fixture()
def migrator(registry: MigrationRegistry) -> DocumentMigrator:
    return yaml_migrator(registry)


@pytest.fixture()
def bson_job_migrator(registry: MigrationRegistry) -> DocumentMigrator:
    return bson_migrator(registry)
