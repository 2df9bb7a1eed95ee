from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo

from credora.domain.errors import InvalidWindowError
from credora.domain.models import (
    CalendarMonth,
    CalendarQuarter,
    CalendarYear,
    RollingDays,
    as_utc,
)

EARLIEST_SUPPORTED = datetime(1970, 1, 1, tzinfo=timezone.utc)
LATEST_SUPPORTED = datetime(2100, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class WindowInstance:
    key: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) < self.end


def _local_midnight(year: int, month: int, day: int, tz: tzinfo) -> datetime:
    return datetime(year, month, day, tzinfo=tz).astimezone(timezone.utc)


def _add_months(year: int, month: int, count: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + count
    return index // 12, index % 12 + 1


def resolve_window(window, as_of: datetime, tz: tzinfo = timezone.utc) -> WindowInstance:
    """Resolve the window instance containing ``as_of``.

    Boundaries fall on midnight in ``tz`` (the reporting timezone); the
    returned ``start``/``end`` are expressed in UTC.
    """
    moment = as_utc(as_of)
    if not EARLIEST_SUPPORTED <= moment < LATEST_SUPPORTED:
        raise InvalidWindowError(f"Timestamp {moment.isoformat()} is outside the supported range")
    local = moment.astimezone(tz)

    if isinstance(window, CalendarMonth):
        end_year, end_month = _add_months(local.year, local.month, 1)
        return WindowInstance(
            key=f"{local.year:04d}-{local.month:02d}",
            start=_local_midnight(local.year, local.month, 1, tz),
            end=_local_midnight(end_year, end_month, 1, tz),
        )

    if isinstance(window, CalendarQuarter):
        quarter = (local.month - 1) // 3 + 1
        first_month = (quarter - 1) * 3 + 1
        end_year, end_month = _add_months(local.year, first_month, 3)
        return WindowInstance(
            key=f"{local.year:04d}-Q{quarter}",
            start=_local_midnight(local.year, first_month, 1, tz),
            end=_local_midnight(end_year, end_month, 1, tz),
        )

    if isinstance(window, CalendarYear):
        return WindowInstance(
            key=f"{local.year:04d}",
            start=_local_midnight(local.year, 1, 1, tz),
            end=_local_midnight(local.year + 1, 1, 1, tz),
        )

    if isinstance(window, RollingDays):
        # Block arithmetic on the local wall clock so DST shifts never move a boundary.
        wall_clock = local.replace(tzinfo=None)
        anchor = datetime(window.anchor.year, window.anchor.month, window.anchor.day)
        if wall_clock < anchor:
            raise InvalidWindowError(
                f"Timestamp {moment.isoformat()} precedes the rolling window anchor {window.anchor.isoformat()}"
            )
        span = timedelta(days=window.days)
        start = anchor + span * ((wall_clock - anchor) // span)
        end = start + span
        return WindowInstance(
            key=f"rolling-{window.days}d-{start.date().isoformat()}",
            start=start.replace(tzinfo=tz).astimezone(timezone.utc),
            end=end.replace(tzinfo=tz).astimezone(timezone.utc),
        )

    raise InvalidWindowError(f"Unsupported window definition: {type(window).__name__}")
