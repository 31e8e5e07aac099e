"""Schema version extraction."""

from __future__ import annotations

import logging

from docmigrator.base import VersionParseError
from docmigrator.document import Document

logger = logging.getLogger(__name__)


def extract_schema_version(document: Document, field: str) -> int:
    """Read the schema version a document declares.

    Args:
        document: The decoded document.
        field: Key holding the version.

    Returns:
        The declared version, 0 when the field is absent or has an
        unexpected type.

    Raises:
        VersionParseError: If the field is a string that is not a
            non-negative integer, or a negative integer.
    """
    if field not in document:
        logger.info(f"No '{field}' specified, defaulting to schema version 0")
        return 0

    value = document[field]

    if isinstance(value, bool):
        logger.warning(f"Invalid '{field}' type: bool, defaulting to 0")
        return 0

    if isinstance(value, int):
        if value < 0:
            raise VersionParseError(field, value)
        return value

    if isinstance(value, str):
        return _parse_version_string(field, value)

    logger.warning(f"Invalid '{field}' type: {type(value).__name__}, defaulting to 0")
    return 0


def _parse_version_string(field: str, value: str) -> int:
    text = value.strip()
    if text.startswith("+"):
        text = text[1:]
    if not text.isdigit() or not text.isascii():
        raise VersionParseError(field, value)
    try:
        return int(text)
    except ValueError:
        # longer than sys.get_int_max_str_digits()
        raise VersionParseError(field, value) from None


def stamp_schema_version(document: Document, field: str, version: int) -> None:
    """Record ``version`` as the document's schema version."""
    document[field] = version

