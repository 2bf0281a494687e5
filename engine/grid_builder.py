"""Month grid generation and event aggregation."""
import calendar
import logging
from datetime import date
from typing import Callable, Iterable, List, Optional

from engine.models import (
    GRID_CELLS,
    MAX_CELL_EVENTS,
    CalendarCell,
    CalendarEvent,
    HolidayMap,
    check_month,
    date_key,
    is_holiday,
)

logger = logging.getLogger(__name__)


def days_in_month(year: int, month: int) -> int:
    """Day count of a zero-indexed month."""
    return calendar.monthrange(year, month + 1)[1]


def first_weekday(year: int, month: int) -> int:
    """Weekday of day 1 with Monday = 0 through Sunday = 6."""
    # isoweekday() is Monday = 1 .. Sunday = 7
    return (date(year, month + 1, 1).isoweekday() + 6) % 7


def sort_for_detail(events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
    """
    Order the events of a single day for the detail view.

    Holidays come first, then timed events by time, then untimed events.
    The sort is stable so ties keep their original order.
    """
    def sort_key(event):
        timed = (0, event.time) if event.time else (1, '')
        return (0 if is_holiday(event) else 1,) + timed

    return sorted(events, key=sort_key)


class CalendarGridBuilder:
    """Builds the fixed 6-week grid shown for an anchor month."""

    def __init__(self, today_provider: Callable[[], date] = date.today):
        """
        Initialize the grid builder.

        Args:
            today_provider: Returns the real current date used for the
                today and past classification
        """
        self.today_provider = today_provider

    def build_grid(
        self,
        anchor_year: int,
        anchor_month: int,
        event_store,
        holiday_map: Optional[HolidayMap]
    ) -> List[CalendarCell]:
        """
        Build the 42 cells of the grid for an anchor month.

        Args:
            anchor_year: Year of the displayed month
            anchor_month: Zero-indexed displayed month
            event_store: Source of user events (anything with get(date_key))
            holiday_map: Holidays to overlay, or None

        Returns:
            List of 42 CalendarCell in display order, Monday first

        Raises:
            PreconditionViolation: if anchor_month is outside 0..11
        """
        check_month(anchor_month)
        today = self.today_provider()

        prev_year, prev_month = (
            (anchor_year - 1, 11) if anchor_month == 0
            else (anchor_year, anchor_month - 1)
        )
        next_year, next_month = (
            (anchor_year + 1, 0) if anchor_month == 11
            else (anchor_year, anchor_month + 1)
        )

        leading = first_weekday(anchor_year, anchor_month)
        month_days = days_in_month(anchor_year, anchor_month)
        prev_month_days = days_in_month(prev_year, prev_month)

        cells = []
        for i in range(GRID_CELLS):
            if i < leading:
                year, month = prev_year, prev_month
                day = prev_month_days - leading + i + 1
                other_month = True
            elif i < leading + month_days:
                year, month = anchor_year, anchor_month
                day = i - leading + 1
                other_month = False
            else:
                year, month = next_year, next_month
                day = i - leading - month_days + 1
                other_month = True

            cells.append(
                self._build_cell(
                    year, month, day, other_month, today,
                    event_store, holiday_map
                )
            )

        logger.debug(
            f"Built grid for {anchor_year}-{anchor_month + 1:02d}: "
            f"{leading} leading, {month_days} current, "
            f"{GRID_CELLS - leading - month_days} trailing cells"
        )
        return cells

    def combined_events(
        self,
        key: str,
        event_store,
        holiday_map: Optional[HolidayMap]
    ) -> List[CalendarEvent]:
        """Holidays of a date followed by its user events in creation order."""
        holidays = holiday_map.get(key) if holiday_map is not None else []
        return holidays + event_store.get(key)

    def day_events(
        self,
        key: str,
        event_store,
        holiday_map: Optional[HolidayMap]
    ) -> List[CalendarEvent]:
        """Combined events of a date in detail-view order."""
        return sort_for_detail(self.combined_events(key, event_store, holiday_map))

    def _build_cell(
        self,
        year: int,
        month: int,
        day: int,
        other_month: bool,
        today: date,
        event_store,
        holiday_map: Optional[HolidayMap]
    ) -> CalendarCell:
        key = date_key(year, month, day)
        cell_date = date(year, month + 1, day)
        events = self.combined_events(key, event_store, holiday_map)

        return CalendarCell(
            year=year,
            month=month,
            day=day,
            date_key=key,
            is_other_month=other_month,
            is_today=not other_month and cell_date == today,
            is_past=not other_month and cell_date < today,
            events=tuple(events[:MAX_CELL_EVENTS]),
            overflow_count=max(len(events) - MAX_CELL_EVENTS, 0),
        )
