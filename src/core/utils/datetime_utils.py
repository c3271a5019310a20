from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def get_utc_now() -> datetime:
    """
    Get the current date and time in UTC.

    This function returns the current time with timezone information set to UTC,
    ensuring that the returned datetime object is offset-aware.

    Returns:
        datetime: The current date and time in UTC with tzinfo set to ZoneInfo("UTC").
    """
    return datetime.now(ZoneInfo("UTC"))


def ensure_aware_utc(dt: datetime) -> datetime:
    # Naive values are labelled as UTC, not converted
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_millis(dt: datetime) -> int:
    return int(ensure_aware_utc(dt).timestamp() * 1000)


def from_epoch_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def from_epoch_seconds(value: int | float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)
