"""Naive UTC timestamps, matching the DATETIME columns of the store."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)
