from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from datetime import date, timedelta
from typing import Any, Dict, Optional, Sequence

from fleet_invoicing.calendar import HolidayCalendar, parse_week_id
from fleet_invoicing.config import Settings, settings as default_settings
from fleet_invoicing.errors import NoCustomerFound, PersistenceError
from fleet_invoicing.lines import LineItemGenerator
from fleet_invoicing.models import (
    WORKED,
    Customer,
    InvoiceComputationResult,
    InvoiceHeader,
    InvoiceLine,
    InvoiceOptions,
    InvoiceTotals,
    WeeklyLog,
)
from fleet_invoicing.normalize import normalize_weekly_log
from fleet_invoicing.rates import RateResolver, needs_weekly_rate
from fleet_invoicing.repositories import (
    CustomerRepository,
    InvoiceRepository,
    WeeklyLogRepository,
    WeeklyRateRepository,
)
from fleet_invoicing.totals import TotalsAggregator, money

logger = logging.getLogger(__name__)


def main_license_plate(log: WeeklyLog, worked_only: bool = True) -> Optional[str]:
    """Most frequent plate in the log; on a tie the plate seen last wins."""
    counts: Dict[str, int] = {}
    for day in log.days:
        if not day.license_plate:
            continue
        if worked_only and day.status != WORKED:
            continue
        counts[day.license_plate] = counts.get(day.license_plate, 0) + 1

    best: Optional[str] = None
    for plate, count in counts.items():
        if best is None or count >= counts[best]:
            best = plate
    return best


class InvoiceAssembler:
    """Builds an invoice for one weekly log: customer, rates, lines, totals, storage."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        calendar: Optional[HolidayCalendar] = None,
        rates: Optional[RateResolver] = None,
        config: Optional[Settings] = None,
    ):
        self.conn = conn
        self.calendar = calendar
        self.rates = rates or RateResolver()
        self.config = config or default_settings
        self.generator = LineItemGenerator(self.rates)
        self.aggregator = TotalsAggregator()
        self.customers = CustomerRepository(conn)
        self.weekly_rates = WeeklyRateRepository(conn)
        self.weekly_logs = WeeklyLogRepository(conn)
        self.invoices = InvoiceRepository(conn)

    def resolve_customer(self, log: WeeklyLog) -> Customer:
        plate = main_license_plate(log)
        if plate is None:
            raise NoCustomerFound()
        customer = self.customers.find_by_license_plate(plate)
        if customer is None:
            raise NoCustomerFound(plate)
        return customer

    def create_invoice(
        self,
        log: WeeklyLog,
        customer: Optional[Customer] = None,
        weekly_rate: Any = None,
        options: Optional[InvoiceOptions] = None,
    ) -> InvoiceComputationResult:
        options = options or InvoiceOptions()
        normalized = normalize_weekly_log(log, self.calendar)
        customer = customer or self.resolve_customer(normalized)

        if weekly_rate is None and needs_weekly_rate(customer):
            stored = self.weekly_rates.get(customer.id, normalized.week_id)
            if stored is not None:
                weekly_rate = stored.rate
            else:
                logger.warning(
                    "No weekly rate for customer %s in week %s",
                    customer.id,
                    normalized.week_id,
                )

        uses_overnight = any(day.overnight_stay and day.status == WORKED for day in normalized.days)
        warnings = self.rates.fallbacks(customer, weekly_rate, uses_overnight)
        warnings.extend(self.generator.inspect(normalized, customer))
        for warning in warnings:
            logger.info("Week %s, customer %s: %s", normalized.week_id, customer.id, warning)

        lines = self.generator.generate(normalized, customer, weekly_rate)
        totals = self.aggregator.aggregate(lines)

        invoice_id = None
        if options.create_invoice:
            invoice_id = self._persist(normalized, customer, lines, totals, options)

        return InvoiceComputationResult(
            lines=lines,
            totals=totals,
            customer=customer,
            warnings=tuple(warnings),
            invoice_id=invoice_id,
        )

    def generate_lines(self, log: WeeklyLog, customer: Customer, weekly_rate: Any = None) -> Sequence[InvoiceLine]:
        return self.generator.generate(normalize_weekly_log(log, self.calendar), customer, weekly_rate)

    def create_invoice_on_approval(
        self, log: WeeklyLog, options: Optional[InvoiceOptions] = None
    ) -> InvoiceComputationResult:
        options = replace(options or InvoiceOptions(), create_invoice=True)
        return self.create_invoice(log, options=options)

    def create_invoice_for_week(
        self, week_id: str, user_id: str, options: Optional[InvoiceOptions] = None
    ) -> InvoiceComputationResult:
        log = self.weekly_logs.get(week_id, user_id)
        if log is None:
            raise LookupError(f"Geen weekstaat gevonden voor week {week_id}.")
        return self.create_invoice(log, options=options)

    def build_header(
        self,
        log: WeeklyLog,
        customer: Customer,
        totals: InvoiceTotals,
        options: InvoiceOptions,
    ) -> InvoiceHeader:
        invoice_date = options.invoice_date or date.today()
        payment_term = customer.payment_term or self.config.DEFAULT_PAYMENT_TERM_DAYS
        due_date = options.due_date or invoice_date + timedelta(days=payment_term)
        reference = options.reference
        if not reference:
            year, week = parse_week_id(log.week_id)
            plate = main_license_plate(log, worked_only=False) or ""
            reference = f"Week {week:02d} - {year} ({plate})"
        return InvoiceHeader(
            customer_id=customer.id,
            invoice_date=invoice_date,
            due_date=due_date,
            reference=reference,
            sub_total=money(totals.sub_total),
            vat_total=money(totals.vat_total),
            grand_total=money(totals.grand_total),
            footer_text=options.footer_text or self.config.DEFAULT_FOOTER_TEXT,
            show_daily_totals=customer.show_daily_totals,
            show_weekly_totals=customer.show_weekly_totals,
            show_work_times=customer.show_work_times,
        )

    def _persist(
        self,
        log: WeeklyLog,
        customer: Customer,
        lines: Sequence[InvoiceLine],
        totals: InvoiceTotals,
        options: InvoiceOptions,
    ) -> int:
        header = self.build_header(log, customer, totals, options)
        try:
            with self.conn:
                invoice_id = self.invoices.create_header(header)
                self.invoices.create_lines(invoice_id, lines)
        except sqlite3.Error as exc:
            logger.error("Storing invoice for customer %s failed: %s", customer.id, exc)
            raise PersistenceError(f"Fout bij aanmaken factuur: {exc}") from exc

        logger.info(
            "Created concept invoice %s for customer %s, week %s, %s lines",
            invoice_id,
            customer.id,
            log.week_id,
            len(lines),
        )
        return invoice_id
