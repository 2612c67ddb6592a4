import time
from datetime import datetime, timezone


def now_ts() -> float:
    return time.time()


def to_epoch_seconds(value: datetime) -> float:
    # naive datetimes are read as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()
