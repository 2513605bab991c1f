"""
Shared validators for input normalization.
Centralized helpers used by boundary schemas and services.
"""

import json
import re
from collections.abc import Iterable
from typing import Any

from shared.config.constants import Limits


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards. Escaping them keeps a search
    for "50%" from matching every row.

    Args:
        value: The search string to escape

    Returns:
        The escaped string safe for use in LIKE patterns (escape char: backslash)
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def sanitize_search_term(term: str | None, max_length: int = Limits.MAX_SEARCH_TERM_LENGTH) -> str | None:
    """
    Sanitize search term for safe use in queries.

    Args:
        term: The search term to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized search term, or None when nothing searchable remains
    """
    if not term:
        return None

    # Remove null bytes and other control characters
    term = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", term)

    term = term.strip()[:max_length].strip()

    return term or None


def parse_id_list(value: str | Iterable[Any] | None) -> frozenset[int] | None:
    """
    Normalize an id filter to a set of positive integers.

    Accepts the comma-separated form used by query strings ("1,2, 3")
    as well as any iterable of ints/strings. Absent or empty input
    returns None, meaning "no filter".

    Raises:
        ValueError: If an element is not a positive integer
    """
    if value is None:
        return None

    if isinstance(value, str):
        parts = [p.strip() for p in value.split(",")]
        items: Iterable[Any] = [p for p in parts if p]
    else:
        items = value

    ids = set()
    for item in items:
        if isinstance(item, bool):
            raise ValueError(f"Invalid id: {item!r}")
        try:
            ident = int(item)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid id: {item!r}") from None
        if ident < 1:
            raise ValueError(f"Invalid id: {item!r}")
        ids.add(ident)

    return frozenset(ids) or None


def parse_json_list(json_str: str | None) -> list:
    """Parse JSON array string to list, returning empty list when absent or malformed."""
    if not json_str:
        return []
    try:
        data = json.loads(json_str)
    except (json.JSONDecodeError, TypeError):
        return []
    return data if isinstance(data, list) else []


def parse_json_object(json_str: str | None) -> dict | None:
    """Parse JSON object string to dict, returning None when absent or malformed."""
    if not json_str:
        return None
    try:
        data = json.loads(json_str)
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None
