from datetime import date, datetime, timedelta, timezone

import pytest

from credora.domain.errors import InvalidWindowError
from credora.domain.models import CalendarMonth, CalendarQuarter, CalendarYear, RollingDays
from credora.engine.windows import resolve_window

IST = timezone(timedelta(hours=5, minutes=30))


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_calendar_month_bounds_and_year_end():
    june = resolve_window(CalendarMonth(), _utc(2024, 6, 30, 23, 59))
    assert june.key == "2024-06"
    assert june.start == _utc(2024, 6, 1)
    assert june.end == _utc(2024, 7, 1)

    december = resolve_window(CalendarMonth(), _utc(2024, 12, 15))
    assert december.key == "2024-12"
    assert december.end == _utc(2025, 1, 1)


def test_calendar_quarter_and_year():
    quarter = resolve_window(CalendarQuarter(), _utc(2024, 11, 3))
    assert quarter.key == "2024-Q4"
    assert quarter.start == _utc(2024, 10, 1)
    assert quarter.end == _utc(2025, 1, 1)

    year = resolve_window(CalendarYear(), _utc(2024, 2, 29))
    assert year.key == "2024"
    assert year.end == _utc(2025, 1, 1)


def test_rolling_window_blocks_do_not_overlap():
    window = RollingDays(days=30, anchor=date(2024, 1, 1))

    first = resolve_window(window, _utc(2024, 1, 30, 23))
    second = resolve_window(window, _utc(2024, 1, 31))

    assert first.key == "rolling-30d-2024-01-01"
    assert first.end == second.start
    assert second.key == "rolling-30d-2024-01-31"
    assert second.contains(_utc(2024, 2, 15))


def test_naive_timestamp_is_treated_as_utc():
    assert resolve_window(CalendarMonth(), datetime(2024, 3, 31, 23, 0)).key == "2024-03"


@pytest.mark.parametrize(
    "moment",
    [_utc(1969, 12, 31, 23, 59), _utc(2100, 1, 1), _utc(2500, 6, 1)],
)
def test_out_of_range_timestamps_are_rejected(moment):
    with pytest.raises(InvalidWindowError):
        resolve_window(CalendarMonth(), moment)


def test_timestamp_before_rolling_anchor_is_rejected():
    with pytest.raises(InvalidWindowError, match="anchor"):
        resolve_window(RollingDays(days=7, anchor=date(2024, 6, 1)), _utc(2024, 5, 31))


def test_windows_follow_the_reporting_timezone():
    early_july_in_india = datetime(2024, 7, 1, 3, 0, tzinfo=IST)

    assert resolve_window(CalendarMonth(), early_july_in_india).key == "2024-06"

    july = resolve_window(CalendarMonth(), early_july_in_india, IST)
    assert july.key == "2024-07"
    assert july.start == _utc(2024, 6, 30, 18, 30)
    assert july.end == _utc(2024, 7, 31, 18, 30)
    assert july.contains(early_july_in_india)

    assert resolve_window(CalendarQuarter(), early_july_in_india, IST).key == "2024-Q3"
    assert resolve_window(CalendarYear(), datetime(2025, 1, 1, 1, 0, tzinfo=IST), IST).key == "2025"


def test_rolling_blocks_start_at_local_midnight():
    window = RollingDays(days=7, anchor=date(2024, 6, 1))

    block = resolve_window(window, datetime(2024, 6, 8, 0, 30, tzinfo=IST), IST)

    assert block.key == "rolling-7d-2024-06-08"
    assert block.start == _utc(2024, 6, 7, 18, 30)
    with pytest.raises(InvalidWindowError, match="anchor"):
        resolve_window(window, _utc(2024, 5, 31, 18, 0), IST)
