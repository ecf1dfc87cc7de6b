from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from espetinhos.config import settings


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """Current wall-clock time in the configured zone, stored naive."""
    return datetime.now(local_zone()).replace(tzinfo=None)


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Inclusive range covering ``start`` 00:00 through ``end`` 23:59:59.999999."""
    return datetime.combine(start, time.min), datetime.combine(end, time.max)
