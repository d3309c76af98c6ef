from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from fleet_invoicing.calendar import SATURDAY, SUNDAY
from fleet_invoicing.models import Customer

logger = logging.getLogger(__name__)

DEFAULT_HOURLY_RATE = Decimal("46.43")
DEFAULT_MILEAGE_RATE = Decimal("0.56")
DEFAULT_OVERNIGHT_RATE = Decimal("50")
HUNDRED = Decimal("100")

WEEKLY_RATE_TYPES = {"dot", "variable"}


def parse_rate(raw: Any) -> Optional[Decimal]:
    """Coerce an externally supplied rate, returning None when it is not numeric."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        value = raw
    else:
        try:
            value = Decimal(str(raw).strip().replace(",", "."))
        except (InvalidOperation, ValueError):
            return None
    if not value.is_finite():
        return None
    return value


def _positive(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is None or value <= 0:
        return None
    return value


def needs_weekly_rate(customer: Customer) -> bool:
    return customer.mileage_rate_type in WEEKLY_RATE_TYPES


class RateResolver:
    """Unit prices per hour, kilometer and overnight stay for one customer."""

    def base_hourly_rate(self, customer: Customer) -> Decimal:
        return _positive(customer.hourly_rate) or DEFAULT_HOURLY_RATE

    def base_mileage_rate(self, customer: Customer) -> Decimal:
        return _positive(customer.mileage_rate) or DEFAULT_MILEAGE_RATE

    def overnight_rate(self, customer: Customer) -> Decimal:
        return _positive(customer.overnight_rate) or DEFAULT_OVERNIGHT_RATE

    def resolve_hourly_rate(self, customer: Customer, weekday: int) -> Decimal:
        base = self.base_hourly_rate(customer)
        if weekday == SATURDAY:
            surcharge = _positive(customer.saturday_surcharge)
        elif weekday == SUNDAY:
            surcharge = _positive(customer.sunday_surcharge)
        else:
            return base
        if surcharge is None:
            logger.debug("Customer %s has no weekend surcharge for weekday %s", customer.id, weekday)
            return base
        return base * surcharge / HUNDRED

    def resolve_mileage_rate(self, customer: Customer, weekly_rate: Any = None) -> Decimal:
        base = self.base_mileage_rate(customer)
        rate_type = customer.mileage_rate_type or "fixed"
        if rate_type == "fixed":
            return base

        parsed = parse_rate(weekly_rate)
        if parsed is None:
            logger.debug(
                "Customer %s uses %s mileage rates without a weekly rate, falling back to %s",
                customer.id,
                rate_type,
                base,
            )
            return base
        if rate_type == "dot":
            return base * (1 + parsed / HUNDRED)
        return parsed

    def fallbacks(
        self, customer: Customer, weekly_rate: Any = None, uses_overnight: bool = False
    ) -> List[str]:
        """Describe every default the resolver will apply for this customer."""
        notes: List[str] = []
        bills_hours = customer.billing_type in (None, "hourly", "combined")
        bills_mileage = customer.billing_type in (None, "mileage", "combined")
        if bills_hours and _positive(customer.hourly_rate) is None:
            notes.append(f"Geen uurtarief ingesteld; standaardtarief {DEFAULT_HOURLY_RATE} toegepast.")
        uses_weekly_amount = customer.mileage_rate_type == "variable" and parse_rate(weekly_rate) is not None
        if bills_mileage and not uses_weekly_amount and _positive(customer.mileage_rate) is None:
            notes.append(f"Geen kilometertarief ingesteld; standaardtarief {DEFAULT_MILEAGE_RATE} toegepast.")
        if uses_overnight and _positive(customer.overnight_rate) is None:
            notes.append(f"Geen overnachtingstarief ingesteld; standaardtarief {DEFAULT_OVERNIGHT_RATE} gebruikt.")
        if bills_mileage and needs_weekly_rate(customer) and parse_rate(weekly_rate) is None:
            notes.append("Geen geldig weektarief; basis kilometertarief toegepast.")
        return notes
