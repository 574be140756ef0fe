from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from budgetshrooms.errors import InvalidMonthError
from budgetshrooms.services.month_resolver import MonthResolver, ParsedMonth

resolver = MonthResolver(ZoneInfo("America/Winnipeg"))


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_parse_month_valid() -> None:
    assert resolver.parse_month("2024-02") == ParsedMonth(2024, 2)
    assert resolver.parse_month("1999-12") == (1999, 12)


@pytest.mark.parametrize(
    "value",
    ["2024/02", "24-02", "2024-2", "2024-13", "2024-00", " 2024-02", "2024-02 ", "", None, 202402],
)
def test_parse_month_invalid_returns_none(value) -> None:
    assert resolver.parse_month(value) is None


def test_leap_february_range_uses_local_midnight() -> None:
    month_range = resolver.get_month_range("2024-02")
    # Winnipeg is UTC-6 in winter.
    assert month_range.start == _utc(2024, 2, 1, 6)
    assert month_range.end == _utc(2024, 3, 1, 6)


def test_range_boundaries_follow_dst() -> None:
    march = resolver.get_month_range("2024-03")
    assert march.start == _utc(2024, 3, 1, 6)
    assert march.end == _utc(2024, 4, 1, 5)

    november = resolver.get_month_range("2024-11")
    assert november.start == _utc(2024, 11, 1, 5)
    assert november.end == _utc(2024, 12, 1, 6)


def test_december_rolls_into_next_year() -> None:
    december = resolver.get_month_range("2024-12")
    assert december.end == _utc(2025, 1, 1, 6)
    assert december.end == resolver.get_month_range("2025-01").start
    assert resolver.next_month("2024-12") == "2025-01"


def test_get_month_range_rejects_invalid_month() -> None:
    with pytest.raises(InvalidMonthError):
        resolver.get_month_range("2024-13")
    with pytest.raises(ValueError):
        resolver.get_month_range("not-a-month")


@pytest.mark.parametrize("value", ["9999-12", "0000-01", "0001-01"])
def test_months_outside_calendar_limits_are_invalid(value) -> None:
    assert resolver.parse_month(value) is None
    assert resolver.format_month_title(value) == value
    with pytest.raises(InvalidMonthError):
        resolver.get_month_range(value)
    with pytest.raises(InvalidMonthError):
        resolver.next_month(value)


def test_first_and_last_supported_months_have_ranges() -> None:
    first = resolver.get_month_range("0001-02")
    last = resolver.get_month_range("9999-11")

    assert first.end == resolver.get_month_range("0001-03").start
    assert last.start < last.end
    assert MonthResolver(ZoneInfo("Asia/Tokyo")).get_month_range("0001-02").start.year == 1
    assert resolver.next_month("9999-11") == "9999-12"


def test_ranges_chain_and_round_trip_over_several_years() -> None:
    month_id = "2023-01"
    for _ in range(36):
        month_range = resolver.get_month_range(month_id)
        following = resolver.next_month(month_id)

        assert month_range.end == resolver.get_month_range(following).start
        assert resolver.format_month_identifier(month_range.start) == month_id
        assert resolver.format_month_identifier(month_range.end - timedelta(microseconds=1)) == month_id
        assert resolver.format_month_identifier(month_range.end) == following

        month_id = following


def test_format_month_identifier_uses_display_timezone() -> None:
    # 05:59 UTC on Feb 1 is still January 31 in Winnipeg.
    assert resolver.format_month_identifier(_utc(2024, 2, 1, 5, 59)) == "2024-01"
    assert resolver.format_month_identifier(_utc(2024, 2, 1, 6, 0)) == "2024-02"


def test_naive_instants_are_treated_as_utc() -> None:
    assert resolver.format_month_identifier(datetime(2024, 2, 1, 5, 59)) == "2024-01"


def test_format_month_title() -> None:
    assert resolver.format_month_title("2024-02") == "February 2024"
    assert resolver.format_month_title("2025-01") == "January 2025"
    assert resolver.format_month_title("garbage") == "garbage"
    assert resolver.format_month_title("2024-13") == "2024-13"


def test_format_expense_timestamp() -> None:
    assert resolver.format_expense_timestamp(_utc(2024, 2, 2, 0, 5)) == "Feb 1, 6:05 p.m."
    assert resolver.format_expense_timestamp(_utc(2024, 2, 1, 6, 0)) == "Feb 1, 12:00 a.m."
    assert resolver.format_expense_timestamp(_utc(2024, 7, 4, 16, 30)) == "Jul 4, 11:30 a.m."


def test_collect_month_ids_newest_first_without_duplicates() -> None:
    expense_months = ["2024-03", "2024-03", "2024-01", "2024-13"]
    month_ids = resolver.collect_month_ids(expense_months, current="2024-05", selected="2023-11")
    assert month_ids == ["2024-05", "2024-03", "2024-01", "2023-11"]


def test_collect_month_ids_ignores_invalid_selection() -> None:
    assert resolver.collect_month_ids([], current="2024-05", selected="2024-99") == ["2024-05"]


def test_resolve_active_month() -> None:
    month_ids = ["2024-05", "2024-03"]
    assert resolver.resolve_active_month("2024-03", month_ids, "2024-05") == "2024-03"
    assert resolver.resolve_active_month("bad", month_ids, "2024-04") == "2024-05"
    assert resolver.resolve_active_month(None, [], "2024-04") == "2024-04"


def test_current_month_uses_supplied_clock() -> None:
    assert resolver.current_month(_utc(2025, 1, 1, 3)) == "2024-12"
