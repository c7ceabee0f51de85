from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now. Timestamps are stored naive so SQLite and Postgres compare alike."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
