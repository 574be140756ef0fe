"""Calendar-month bucketing of UTC instants in a fixed display timezone."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import NamedTuple
from zoneinfo import ZoneInfo

from ..errors import InvalidMonthError

MONTH_ID_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}")

# Months whose UTC range and following month fit in datetime for any display zone.
FIRST_MONTH = (1, 2)
LAST_MONTH = (9999, 11)

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class ParsedMonth(NamedTuple):
    year: int
    month: int


class MonthRange(NamedTuple):
    """Half-open UTC range [start, end) covering one local calendar month."""

    start: datetime
    end: datetime


def shift_month(parsed: ParsedMonth, offset: int) -> ParsedMonth:
    absolute_index = (parsed.year * 12 + (parsed.month - 1)) + offset
    year, month_zero_based = divmod(absolute_index, 12)
    return ParsedMonth(year, month_zero_based + 1)


def month_label(parsed: ParsedMonth) -> str:
    """Render (year, month) as YYYY-MM."""
    return f"{parsed.year:04d}-{parsed.month:02d}"


def _as_utc(instant: datetime) -> datetime:
    # Naive datetimes coming out of the database are UTC.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


class MonthResolver:
    """
    All month/timezone arithmetic for one display timezone.

    Query filters, month labels and navigation headers go through the same
    resolver so an instant always lands in the same month everywhere.
    """

    def __init__(self, display_zone: ZoneInfo) -> None:
        self.display_zone = display_zone

    def to_local(self, instant: datetime) -> datetime:
        return _as_utc(instant).astimezone(self.display_zone)

    def format_month_identifier(self, instant: datetime) -> str:
        local = self.to_local(instant)
        return month_label(ParsedMonth(local.year, local.month))

    def current_month(self, now: datetime | None = None) -> str:
        return self.format_month_identifier(now or datetime.now(timezone.utc))

    @staticmethod
    def parse_month(value: object) -> ParsedMonth | None:
        """Parse a strict YYYY-MM string; anything else yields None."""
        if not isinstance(value, str) or not MONTH_ID_PATTERN.fullmatch(value):
            return None

        year_text, month_text = value.split("-")
        month = int(month_text)
        if month < 1 or month > 12:
            return None

        parsed = ParsedMonth(int(year_text), month)
        if not FIRST_MONTH <= parsed <= LAST_MONTH:
            return None

        return parsed

    def _local_month_start(self, parsed: ParsedMonth) -> datetime:
        # Each boundary gets its own UTC offset so DST changes between the
        # start and end of a month are honoured.
        local_midnight = datetime(parsed.year, parsed.month, 1, tzinfo=self.display_zone)
        return local_midnight.astimezone(timezone.utc)

    def get_month_range(self, month_id: str) -> MonthRange:
        parsed = self.parse_month(month_id)
        if parsed is None:
            raise InvalidMonthError(f"Invalid month: {month_id!r} (expected YYYY-MM)")

        return MonthRange(
            start=self._local_month_start(parsed),
            end=self._local_month_start(shift_month(parsed, 1)),
        )

    def next_month(self, month_id: str) -> str:
        parsed = self.parse_month(month_id)
        if parsed is None:
            raise InvalidMonthError(f"Invalid month: {month_id!r} (expected YYYY-MM)")
        return month_label(shift_month(parsed, 1))

    def format_month_title(self, month_id: str) -> str:
        """Long label such as "February 2024"; unparseable input is returned as-is."""
        parsed = self.parse_month(month_id)
        if parsed is None:
            return month_id
        return f"{MONTH_NAMES[parsed.month - 1]} {parsed.year}"

    def format_expense_timestamp(self, instant: datetime) -> str:
        """Short en-CA style label, e.g. "Feb 1, 6:05 p.m."."""
        local = self.to_local(instant)
        hour = local.hour % 12 or 12
        meridiem = "a.m." if local.hour < 12 else "p.m."
        return f"{MONTH_NAMES[local.month - 1][:3]} {local.day}, {hour}:{local.minute:02d} {meridiem}"

    def collect_month_ids(
        self,
        expense_months: Iterable[str],
        *,
        current: str,
        selected: str | None = None,
    ) -> list[str]:
        """Months that have expenses plus the current and selected month, newest first."""
        month_ids = {month_id for month_id in expense_months if self.parse_month(month_id) is not None}
        month_ids.add(current)
        if selected is not None and self.parse_month(selected) is not None:
            month_ids.add(selected)

        # YYYY-MM sorts chronologically as plain text.
        return sorted(month_ids, reverse=True)

    def resolve_active_month(
        self,
        requested: str | None,
        month_ids: list[str],
        current: str,
    ) -> str:
        if requested is not None and self.parse_month(requested) is not None:
            return requested
        if month_ids:
            return month_ids[0]
        return current
