"""
Single source of "now" for the engine.

Timestamps are stored as naive UTC datetimes. Every time-dependent operation
also accepts an explicit `now=` argument, and tests freeze this function with
freezegun.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
