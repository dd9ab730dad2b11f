from datetime import datetime, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo

from dailyreminder.core.config import settings

EPOCH = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)


def get_zoneinfo() -> ZoneInfo:
    return ZoneInfo(settings.DEFAULT_TIMEZONE)


def now_local() -> datetime:
    return datetime.now(get_zoneinfo())


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


def to_utc_aware(dt: datetime | None) -> datetime | None:
    """
    Normalize any datetime to UTC-aware (tzinfo=UTC).
    - Aware datetimes are converted to UTC
    - Naive datetimes are assumed UTC and tz attached
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt.astimezone(dt_timezone.utc)


def to_local(dt: datetime, tz: ZoneInfo | None = None) -> datetime:
    """
    Convert to the given zone (settings.DEFAULT_TIMEZONE when omitted).
    Naive datetimes are assumed UTC.
    """
    return to_utc_aware(dt).astimezone(tz or get_zoneinfo())


def to_epoch_millis(dt: datetime) -> int:
    return (to_utc_aware(dt) - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: int, tz: ZoneInfo | None = None) -> datetime:
    dt = EPOCH + timedelta(milliseconds=int(millis))
    return dt.astimezone(tz) if tz else dt
