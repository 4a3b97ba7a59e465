"""
Small helpers shared by command handlers.
"""

from datetime import datetime


def format_time(d: datetime) -> str:
    """Format a datetime like "Mon Jan 2 2006 15:04:05 UTC"."""
    return f"{d:%a %b} {d.day} {d:%Y %H:%M:%S} UTC"


def dedupe_sorted(items) -> list[str]:
    """Unique items in sorted order."""
    return sorted(set(items))
