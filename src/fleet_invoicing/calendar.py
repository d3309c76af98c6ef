"""ISO week helpers and the Dutch public-holiday calendar.

The calendar is an ordinary object: build it once at startup for the years
you need and pass it to whatever consumes it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Tuple

DUTCH_DAY_NAMES = (
    "Maandag",
    "Dinsdag",
    "Woensdag",
    "Donderdag",
    "Vrijdag",
    "Zaterdag",
    "Zondag",
)

SATURDAY = 5
SUNDAY = 6

_WEEK_ID_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


def parse_week_id(week_id: str) -> Tuple[int, int]:
    match = _WEEK_ID_RE.match(week_id.strip())
    if not match:
        raise ValueError(f"Invalid week id '{week_id}', expected YYYY-WW")
    year, week = int(match.group(1)), int(match.group(2))
    try:
        date.fromisocalendar(year, week, 1)
    except ValueError as exc:
        raise ValueError(f"Week {week} does not exist in {year}") from exc
    return year, week


def week_id_for(day: date) -> str:
    year, week, _ = day.isocalendar()
    return f"{year}-{week:02d}"


def week_dates(week_id: str) -> List[date]:
    year, week = parse_week_id(week_id)
    monday = date.fromisocalendar(year, week, 1)
    return [monday + timedelta(days=offset) for offset in range(7)]


def dutch_day_name(day: date) -> str:
    return DUTCH_DAY_NAMES[day.weekday()]


def easter_sunday(year: int) -> date:
    # Anonymous Gregorian algorithm (Meeus/Jones/Butcher).
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def dutch_public_holidays(year: int) -> Dict[date, str]:
    easter = easter_sunday(year)
    kings_day = date(year, 4, 27)
    if kings_day.weekday() == SUNDAY:
        kings_day = date(year, 4, 26)
    holidays = {
        date(year, 1, 1): "Nieuwjaarsdag",
        easter - timedelta(days=2): "Goede Vrijdag",
        easter: "Eerste Paasdag",
        easter + timedelta(days=1): "Tweede Paasdag",
        kings_day: "Koningsdag",
        date(year, 5, 5): "Bevrijdingsdag",
        easter + timedelta(days=39): "Hemelvaartsdag",
        easter + timedelta(days=49): "Eerste Pinksterdag",
        easter + timedelta(days=50): "Tweede Pinksterdag",
        date(year, 12, 25): "Eerste Kerstdag",
        date(year, 12, 26): "Tweede Kerstdag",
    }
    return holidays


@dataclass
class HolidayCalendar:
    years: Iterable[int]
    holidays: Dict[date, str] = field(init=False)

    def __post_init__(self) -> None:
        self.years = tuple(sorted(set(self.years)))
        self.holidays = {}
        for year in self.years:
            self.holidays.update(dutch_public_holidays(year))

    @classmethod
    def around(cls, today: date, span: int = 1) -> "HolidayCalendar":
        return cls(years=range(today.year - span, today.year + span + 1))

    def covers(self, day: date) -> bool:
        return day.year in self.years

    def is_holiday(self, day: date) -> bool:
        if not self.covers(day):
            raise ValueError(f"Holiday calendar was not built for {day.year}")
        return day in self.holidays

    def name_of(self, day: date) -> str | None:
        return self.holidays.get(day)
