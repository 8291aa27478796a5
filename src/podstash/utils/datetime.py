"""Date helpers for RSS timestamps."""

from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_rfc822(value: str | None) -> datetime:
    """Parse an RSS (RFC 822) date.

    Missing or malformed values yield the epoch instead of raising, so a single
    bad field never aborts reconciliation of a whole snapshot.

    Args:
        value: Date string from the feed

    Returns:
        Aware datetime in UTC
    """
    if not value or not value.strip():
        return EPOCH

    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return EPOCH

    if parsed is None:
        return EPOCH

    # RFC 822 "-0000" means "no zone information"; treat it as UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # Offset pushes the instant outside the representable range
        return EPOCH


def format_rfc822(value: datetime) -> str:
    """Format a datetime for an RSS date element (always GMT)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)
