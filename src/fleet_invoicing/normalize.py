from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from fleet_invoicing.calendar import HolidayCalendar, week_dates
from fleet_invoicing.models import HOLIDAY, NO_TOLL, Day, Time, Toll, WeeklyLog

logger = logging.getLogger(__name__)

_TOLL_ALIASES = {
    "": NO_TOLL,
    "geen": NO_TOLL,
    "none": NO_TOLL,
    "be": "BE",
    "de": "DE",
    "be/de": "BE/DE",
    "be+de": "BE/DE",
}
# Recorded by drivers but never invoiced by the engine.
_UNBILLED_TOLL_COUNTRIES = {"fr", "ch", "at"}

# Statuses a driver may keep on a public holiday.
HOLIDAY_OVERRIDES = {"gewerkt", "ziek", "vrij", "ouderschapsverlof", "cursus"}


def parse_toll(value: Optional[str]) -> Toll:
    key = (value or "").strip().lower()
    if key in _TOLL_ALIASES:
        return _TOLL_ALIASES[key]
    if key in _UNBILLED_TOLL_COUNTRIES:
        logger.warning("Toll country %s has no invoice placeholder, ignoring", value)
        return NO_TOLL
    raise ValueError(f"Unknown toll value: {value!r}")


def normalize_day(day: Day, calendar: Optional[HolidayCalendar] = None) -> Day:
    status = day.status
    if (
        calendar is not None
        and calendar.covers(day.date)
        and calendar.is_holiday(day.date)
        and status not in HOLIDAY_OVERRIDES
    ):
        status = HOLIDAY
    return replace(
        day,
        status=status,
        break_time=day.break_time or Time(0, 0),
        toll=parse_toll(day.toll),
    )


def normalize_weekly_log(log: WeeklyLog, calendar: Optional[HolidayCalendar] = None) -> WeeklyLog:
    """Fill defaults and canonical values so the generator never sees gaps."""
    expected = set(week_dates(log.week_id))
    for day in log.days:
        if day.date not in expected:
            logger.warning("Day %s is outside week %s", day.date.isoformat(), log.week_id)
    return replace(log, days=tuple(normalize_day(day, calendar) for day in log.days))
