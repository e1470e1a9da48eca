"""
Clock helpers
All persisted timestamps are naive UTC
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time without tzinfo"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
