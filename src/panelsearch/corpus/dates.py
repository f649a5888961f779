"""Document ids are calendar dates in ``YYYY-MM-DD`` form."""

from __future__ import annotations

import re
from datetime import date

_ID_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_document_id(document_id: str) -> date | None:
    """Return the date named by ``document_id``, or None if it is not a real calendar date."""
    if not isinstance(document_id, str) or not _ID_PATTERN.match(document_id):
        return None
    try:
        return date.fromisoformat(document_id)
    except ValueError:
        return None


def is_valid_document_id(document_id: str) -> bool:
    return parse_document_id(document_id) is not None


def year_of(document_id: str) -> str:
    """Four-digit year prefix of a document id."""
    return document_id[:4]
