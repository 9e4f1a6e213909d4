"""UTC helpers and human-readable elapsed times."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 string, assuming UTC when no offset is present."""
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def format_duration(elapsed: timedelta | float) -> str:
    """Format an elapsed time for display.

    Args:
        elapsed: A ``timedelta`` or a number of seconds.

    Returns:
        ``"850ms"`` below one second, ``"2.31s"`` below one minute,
        ``"1m 5.2s"`` below one hour, otherwise ``"2h 3m 4s"``.

    Example:
        >>> format_duration(0.0421)
        '42ms'
        >>> format_duration(75.25)
        '1m 15.2s'
    """
    seconds = elapsed.total_seconds() if isinstance(elapsed, timedelta) else float(elapsed)
    seconds = max(seconds, 0.0)

    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    # Unit is chosen on the rounded value
    if round(seconds, 2) < 60:
        return f"{seconds:.2f}s"

    tenths = round(seconds * 10)
    if tenths < 36000:
        minutes, rest = divmod(tenths, 600)
        return f"{minutes}m {rest / 10:.1f}s"

    hours, rest = divmod(round(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h {minutes}m {secs}s"
