"""
Timestamp parsing for retrieval filters.

Filter bounds arrive as free-form strings from the tool layer. ISO 8601 /
RFC 3339 values are parsed directly; anything else (e.g. "yesterday",
"2 hours ago", "March 3rd 2026") is handed to dateparser.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import dateparser

logger = logging.getLogger(__name__)

DATEPARSER_SETTINGS = {
    "RETURN_AS_TIMEZONE_AWARE": True,
    "TIMEZONE": "UTC",
    "TO_TIMEZONE": "UTC",
    "PREFER_DATES_FROM": "past",
}


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str, relative_base: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a timestamp filter value into an aware UTC datetime.

    Args:
        value: ISO 8601 string or natural-language date expression
        relative_base: Reference time for relative expressions (default: now)

    Returns:
        Parsed datetime in UTC, or None if the value cannot be understood
    """
    if not value or not value.strip():
        return None

    text = value.strip()

    # datetime.fromisoformat() only accepts a trailing "Z" from Python 3.11
    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return ensure_utc(datetime.fromisoformat(iso_text))
    except ValueError:
        pass

    settings = dict(DATEPARSER_SETTINGS)
    if relative_base is not None:
        settings["RELATIVE_BASE"] = ensure_utc(relative_base).replace(tzinfo=None)

    parsed = dateparser.parse(text, settings=settings)
    if parsed is None:
        logger.debug(f"Could not parse timestamp filter: '{value}'")
        return None

    return ensure_utc(parsed)
