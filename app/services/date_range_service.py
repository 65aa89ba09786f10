"""Analysis and comparison windows for the statistics views."""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple

from app.config.stats_settings import STATS_SPECIFIC_RANGE_END, STATS_SPECIFIC_RANGE_START
from app.schemas import Granularity, ResolvedRange, TimeWindow

logger = logging.getLogger(__name__)

TIME_UNIT = timedelta(milliseconds=1)
END_OF_DAY = time(23, 59, 59, 999000)

PREDEFINED_RANGE_DAYS = {
    "last7days": 7,
    "last30days": 30,
    "last90days": 90,
}


def resolve_date_range(
    granularity: Granularity,
    *,
    month: Optional[str] = None,
    predefined_range: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    now: Optional[datetime] = None,
) -> ResolvedRange:
    """Return the current window and the equal-length window right before it."""

    reference = now or datetime.now()
    today = reference.date()

    if granularity == "today":
        start_day, end_day = today, today
    elif granularity == "week":
        start_day, end_day = today - timedelta(days=6), today
    elif granularity == "month":
        start_day, end_day = _month_bounds(month, today)
    elif granularity == "year":
        start_day, end_day = date(today.year, 1, 1), date(today.year, 12, 31)
    elif granularity == "custom":
        start_day, end_day = _custom_bounds(predefined_range, date_from, date_to, today)
    else:
        logger.warning("Unknown granularity %r, using the last seven days", granularity)
        granularity = "custom"
        start_day, end_day = today - timedelta(days=7), today

    current = day_window(start_day, end_day)
    return ResolvedRange(granularity=granularity, current=current, previous=previous_window(current))


def day_window(start_day: date, end_day: date) -> TimeWindow:
    return TimeWindow(
        start=datetime.combine(start_day, time.min),
        end=datetime.combine(end_day, END_OF_DAY),
    )


def previous_window(current: TimeWindow) -> TimeWindow:
    """Window of identical length ending one time unit before ``current``."""

    length = current.end - current.start + TIME_UNIT
    previous_end = current.start - TIME_UNIT
    previous_start = previous_end - length + TIME_UNIT
    return TimeWindow(start=previous_start, end=previous_end)


def parse_month(value: Optional[str]) -> Optional[Tuple[int, int]]:
    if not value:
        return None
    try:
        year_part, month_part = value.strip().split("-", 1)
        year, month = int(year_part), int(month_part)
    except (AttributeError, ValueError):
        return None
    if not 1 <= month <= 12 or year < 1:
        return None
    return year, month


def _month_bounds(selected: Optional[str], today: date) -> Tuple[date, date]:
    parsed = parse_month(selected)
    if parsed is None:
        if selected:
            logger.warning("Ignoring malformed month selector %r", selected)
        parsed = (today.year, today.month)
    year, month = parsed
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _custom_bounds(
    predefined_range: Optional[str],
    date_from: Optional[date],
    date_to: Optional[date],
    today: date,
) -> Tuple[date, date]:
    token = (predefined_range or "").strip()
    if date_from and date_to and token in ("", "custom"):
        if date_from > date_to:
            date_from, date_to = date_to, date_from
        return date_from, date_to
    if token == "specific":
        specific = _specific_bounds()
        if specific is not None:
            return specific
    if token not in PREDEFINED_RANGE_DAYS and token not in ("", "custom", "specific"):
        logger.warning("Unknown range %r, using the last seven days", token)
    days = PREDEFINED_RANGE_DAYS.get(token, 7)
    return today - timedelta(days=days), today


def _specific_bounds() -> Optional[Tuple[date, date]]:
    try:
        start = date.fromisoformat(STATS_SPECIFIC_RANGE_START)
        end = date.fromisoformat(STATS_SPECIFIC_RANGE_END)
    except ValueError:
        logger.warning(
            "Invalid specific range %s..%s, falling back to the last seven days",
            STATS_SPECIFIC_RANGE_START,
            STATS_SPECIFIC_RANGE_END,
        )
        return None
    if start > end:
        start, end = end, start
    return start, end


__all__ = [
    "END_OF_DAY",
    "TIME_UNIT",
    "day_window",
    "parse_month",
    "previous_window",
    "resolve_date_range",
]
