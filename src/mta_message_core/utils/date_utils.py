"""Timestamp formatting utilities."""

from datetime import timezone


def format_event_timestamp(dt):
    """Format an event timestamp as ISO 8601 in UTC.

    Naive datetimes are taken to be UTC already.

    Returns
    -------
    str
        e.g. ``2026-10-19T12:34:56+00:00``
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")
