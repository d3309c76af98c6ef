from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from fleet_invoicing.calendar import dutch_day_name
from fleet_invoicing.models import WORKED, Customer, Day, InvoiceLine, Time, WeeklyLog
from fleet_invoicing.normalize import parse_toll
from fleet_invoicing.rates import RateResolver

logger = logging.getLogger(__name__)

VAT_RATE = Decimal("21")
SIXTY = Decimal("60")

TOLL_LABELS = {
    "BE": ("Tol België",),
    "DE": ("Tol Duitsland",),
    "BE/DE": ("Tol België", "Tol Duitsland"),
}


def bills_mileage(customer: Customer) -> bool:
    return customer.billing_type in (None, "mileage", "combined")


def bills_hours(customer: Customer) -> bool:
    return customer.billing_type in (None, "hourly", "combined")


def kilometers_driven(day: Day) -> int:
    return max(0, (day.end_mileage or 0) - (day.start_mileage or 0))


def worked_minutes(day: Day) -> int:
    pause = day.break_time or Time(0, 0)
    return day.end_time.total_minutes - day.start_time.total_minutes - pause.total_minutes


def date_label(day: Day) -> str:
    return f"{dutch_day_name(day.date)} {day.date.strftime('%d-%m-%Y')}"


def _trip_suffix(day: Day) -> str:
    trip_number = (day.trip_number or "").strip()
    return f" (Ritnr: {trip_number})" if trip_number else ""


class LineItemGenerator:
    """Turns the worked days of a weekly log into invoice lines."""

    def __init__(self, rates: Optional[RateResolver] = None) -> None:
        self.rates = rates or RateResolver()

    def generate(self, log: WeeklyLog, customer: Customer, weekly_rate: Any = None) -> Tuple[InvoiceLine, ...]:
        lines: List[InvoiceLine] = []
        for day in log.days:
            if day.status != WORKED:
                continue
            lines.extend(self._lines_for_day(day, customer, weekly_rate))
        return tuple(lines)

    def inspect(self, log: WeeklyLog, customer: Customer) -> List[str]:
        """Warnings for worked days whose hours cannot be invoiced."""
        if not bills_hours(customer):
            return []
        warnings: List[str] = []
        for day in log.days:
            if day.status == WORKED and worked_minutes(day) <= 0:
                warnings.append(
                    f"{date_label(day)}: ongeldige werktijden ({day.start_time} - {day.end_time}), "
                    "geen uren gefactureerd."
                )
        return warnings

    def _lines_for_day(self, day: Day, customer: Customer, weekly_rate: Any) -> List[InvoiceLine]:
        label = date_label(day)
        suffix = _trip_suffix(day)
        lines: List[InvoiceLine] = []

        kilometers = kilometers_driven(day)
        if bills_mileage(customer) and kilometers > 0:
            lines.append(
                self._line(
                    Decimal(kilometers),
                    f"{label}\nKilometers{suffix}",
                    self.rates.resolve_mileage_rate(customer, weekly_rate),
                )
            )

        if bills_hours(customer):
            minutes = worked_minutes(day)
            if minutes > 0:
                lines.append(
                    self._line(
                        Decimal(minutes) / SIXTY,
                        f"{label}\n{self._hours_label(day, customer)}{suffix}",
                        self.rates.resolve_hourly_rate(customer, day.date.weekday()),
                    )
                )
            else:
                logger.warning(
                    "Skipping hours for %s: %s - %s with %s break gives %s minutes",
                    day.date.isoformat(),
                    day.start_time,
                    day.end_time,
                    day.break_time,
                    minutes,
                )

        if day.overnight_stay:
            lines.append(self._line(Decimal(1), f"{label}\nOvernachting{suffix}", self.rates.overnight_rate(customer)))

        for toll_label in TOLL_LABELS.get(parse_toll(day.toll), ()):
            lines.append(self._line(Decimal(0), f"{label}\n{toll_label}{suffix}", Decimal(0)))

        return lines

    @staticmethod
    def _hours_label(day: Day, customer: Customer) -> str:
        if not customer.show_work_times:
            return "Uren"
        pause = (day.break_time or Time(0, 0)).total_minutes
        return f"Uren ({day.start_time} - {day.end_time}, {pause} min pauze)"

    @staticmethod
    def _line(quantity: Decimal, description: str, unit_price: Decimal) -> InvoiceLine:
        return InvoiceLine(
            quantity=quantity,
            description=description,
            unit_price=unit_price,
            vat_rate=VAT_RATE,
        )
