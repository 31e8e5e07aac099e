"""Apply a migration chain to a document."""

from __future__ import annotations

import inspect
import logging
from datetime import datetime
from typing import Any

from docmigrator.base import MigrationResult, MigrationStepError
from docmigrator.chain import MigrationChain
from docmigrator.document import Document
from docmigrator.version import stamp_schema_version

logger = logging.getLogger(__name__)


def pending_steps(version: int, chain: MigrationChain) -> range:
    """Indices of the steps a document at ``version`` still needs.

    Empty when ``version`` is at or beyond the chain length.
    """
    return range(version, chain.app_schema_version)


async def apply_migrations(
    document: Document,
    version: int,
    chain: MigrationChain,
    context: Any,
    version_field: str,
) -> MigrationResult:
    """Run the steps of ``chain`` from ``version`` onwards, in order.

    Documents declaring a version at or beyond the chain length are
    trusted as already shaped for this application and left untouched.
    Otherwise every pending step runs against the same document and the
    version field is stamped with the chain length afterwards.

    Args:
        document: Document to migrate in place.
        version: Version the document declares.
        chain: Steps for the document's target type.
        context: Passed unchanged to every step.
        version_field: Key to stamp the final version into.

    Returns:
        A MigrationResult describing what ran.

    Raises:
        MigrationStepError: If a step raises. Remaining steps are not run
            and the document must be discarded.
    """
    app_version = chain.app_schema_version
    result = MigrationResult(
        start_time=datetime.now(),
        from_version=version,
        to_version=version,
        app_schema_version=app_version,
    )

    if version >= app_version:
        logger.debug(
            f"Document at schema version {version} needs no migration "
            f"(app schema version {app_version})"
        )
        result.forward_compatible = version > app_version
        result.end_time = datetime.now()
        return result

    for index in pending_steps(version, chain):
        step = chain[index]
        logger.debug(f"Applying migration step {index}: {step.description}")
        try:
            outcome = step.migrate(context, document)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            raise MigrationStepError(index, step.description, str(e)) from e
        result.steps_applied.append(index)

    stamp_schema_version(document, version_field, app_version)
    result.to_version = app_version
    result.end_time = datetime.now()
    return result
