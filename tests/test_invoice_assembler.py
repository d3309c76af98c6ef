import sqlite3
from datetime import date
from decimal import Decimal

import pytest

from fleet_invoicing.calendar import HolidayCalendar
from fleet_invoicing.errors import NoCustomerFound, PersistenceError
from fleet_invoicing.models import Customer, Day, InvoiceOptions, Time, WeeklyLog, WeeklyRate
from fleet_invoicing.repositories import (
    CustomerRepository,
    InvoiceRepository,
    WeeklyLogRepository,
    WeeklyRateRepository,
)
from fleet_invoicing.services import InvoiceAssembler, main_license_plate


def day(on, plate="12-ABC-3", status="gewerkt", **overrides):
    values = dict(
        date=on,
        status=status,
        start_time=Time(8, 0),
        end_time=Time(16, 30),
        break_time=Time(0, 30),
        start_mileage=1000,
        end_mileage=1250,
        license_plate=plate,
    )
    values.update(overrides)
    return Day(**values)


def week_log(*days):
    return WeeklyLog(week_id="2025-10", user_id="driver-1", days=tuple(days))


def add_customer(conn, **overrides):
    values = dict(
        id=0,
        company_name="Van Dijk Logistiek",
        assigned_license_plates=("12-ABC-3",),
        billing_type="combined",
        mileage_rate_type="fixed",
        hourly_rate=Decimal("45"),
        mileage_rate=Decimal("0.60"),
        payment_term=14,
    )
    values.update(overrides)
    return CustomerRepository(conn).create(Customer(**values))


def test_customer_resolved_by_majority_of_worked_plates(conn):
    add_customer(conn)
    other_id = add_customer(conn, company_name="Bakker Transport", assigned_license_plates=("99-XYZ-1",))
    log = week_log(
        day(date(2025, 3, 3), plate="99-XYZ-1"),
        day(date(2025, 3, 4), plate="99-XYZ-1"),
        day(date(2025, 3, 5)),
        day(date(2025, 3, 6), status="ziek"),
        day(date(2025, 3, 7), status="vrij"),
    )

    result = InvoiceAssembler(conn).create_invoice(log)

    assert result.customer.id == other_id
    assert result.invoice_id is None
    assert len(result.lines) == 6


def test_plate_tie_goes_to_the_plate_seen_last():
    log = week_log(day(date(2025, 3, 3), plate="AA-11-BB"), day(date(2025, 3, 4), plate="CC-22-DD"))
    assert main_license_plate(log) == "CC-22-DD"


def test_no_customer_for_plate(conn):
    add_customer(conn)
    with pytest.raises(NoCustomerFound) as excinfo:
        InvoiceAssembler(conn).create_invoice(week_log(day(date(2025, 3, 3), plate="00-NOP-0")))
    assert excinfo.value.license_plate == "00-NOP-0"
    assert str(excinfo.value) == "Geen klant gevonden voor kenteken in weekstaat."


def test_no_worked_day_with_plate(conn):
    add_customer(conn)
    log = week_log(day(date(2025, 3, 3), status="ziek"), day(date(2025, 3, 4), plate=None))
    with pytest.raises(NoCustomerFound):
        InvoiceAssembler(conn).create_invoice(log)


def test_weekly_rate_is_looked_up_for_dot_customers(conn):
    customer_id = add_customer(conn, mileage_rate_type="dot", mileage_rate=Decimal("1.10"))
    WeeklyRateRepository(conn).set_rate(WeeklyRate(customer_id=customer_id, week_id="2025-10", rate=Decimal("10")))

    result = InvoiceAssembler(conn).create_invoice(week_log(day(date(2025, 3, 3))))

    kilometers = [line for line in result.lines if "Kilometers" in line.description]
    assert kilometers[0].unit_price == Decimal("1.21")
    assert result.warnings == ()


def test_missing_weekly_rate_is_a_warning_not_an_error(conn):
    add_customer(conn, mileage_rate_type="variable", mileage_rate=Decimal("0.58"))

    result = InvoiceAssembler(conn).create_invoice(week_log(day(date(2025, 3, 3))))

    kilometers = [line for line in result.lines if "Kilometers" in line.description]
    assert kilometers[0].unit_price == Decimal("0.58")
    assert any("weektarief" in warning for warning in result.warnings)


def test_explicit_customer_and_rate_skip_lookups(conn):
    customer = Customer(id=42, company_name="Los", billing_type="mileage", mileage_rate_type="variable")
    result = InvoiceAssembler(conn).create_invoice(
        week_log(day(date(2025, 3, 3), plate=None)), customer=customer, weekly_rate=Decimal("0.75")
    )
    assert [line.unit_price for line in result.lines] == [Decimal("0.75")]
    assert result.grand_total == Decimal("250") * Decimal("0.75") * Decimal("1.21")


def test_invoice_and_lines_are_persisted_together(conn):
    customer_id = add_customer(conn)
    log = week_log(day(date(2025, 3, 3), toll="BE"), day(date(2025, 3, 8), overnight_stay=True))

    result = InvoiceAssembler(conn).create_invoice(
        log, options=InvoiceOptions(create_invoice=True, invoice_date=date(2025, 3, 10))
    )

    invoices = InvoiceRepository(conn)
    header = invoices.get_by_id(result.invoice_id)
    assert header["status"] == "concept"
    assert header["invoice_number"] == ""
    assert header["customer_id"] == customer_id
    assert header["due_date"] == "2025-03-24"
    assert header["reference"] == "Week 10 - 2025 (12-ABC-3)"
    assert "factuurnummer" in header["footer_text"]
    assert Decimal(header["grand_total"]) == Decimal(header["sub_total"]) + Decimal(header["vat_total"])

    stored = invoices.get_lines(result.invoice_id)
    assert [row["description"] for row in stored] == [line.description for line in result.lines]
    assert [Decimal(row["total"]) for row in stored] == [line.total for line in result.lines]


def test_toll_placeholders_can_be_found_for_reconciliation(conn):
    add_customer(conn)
    log = week_log(day(date(2025, 3, 3), toll="BE/DE"), day(date(2025, 3, 4), toll="Geen"))
    result = InvoiceAssembler(conn).create_invoice(log, options=InvoiceOptions(create_invoice=True))

    placeholders = InvoiceRepository(conn).find_toll_placeholders(result.invoice_id)
    assert [row["description"] for row in placeholders] == [
        "Maandag 03-03-2025\nTol België",
        "Maandag 03-03-2025\nTol Duitsland",
    ]


def test_failed_line_insert_leaves_no_orphaned_header(conn, monkeypatch):
    add_customer(conn)

    def broken_create_lines(self, invoice_id, lines):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(InvoiceRepository, "create_lines", broken_create_lines)

    with pytest.raises(PersistenceError) as excinfo:
        InvoiceAssembler(conn).create_invoice(
            week_log(day(date(2025, 3, 3))), options=InvoiceOptions(create_invoice=True)
        )

    assert str(excinfo.value).startswith("Fout bij aanmaken factuur")
    assert conn.execute("SELECT COUNT(*) FROM invoice").fetchone()[0] == 0


def test_preview_does_not_write(conn):
    add_customer(conn)
    InvoiceAssembler(conn).create_invoice(week_log(day(date(2025, 3, 3))))
    assert conn.execute("SELECT COUNT(*) FROM invoice").fetchone()[0] == 0


def test_invoice_on_approval_from_stored_weekly_log(conn):
    add_customer(conn)
    logs = WeeklyLogRepository(conn)
    logs.save_day("2025-10", "driver-1", day(date(2025, 3, 3)))
    logs.save_day("2025-10", "driver-1", day(date(2025, 3, 4), start_mileage=None, end_mileage=None))
    # A second submission for the same date replaces the first.
    logs.save_day("2025-10", "driver-1", day(date(2025, 3, 3), end_mileage=1100))
    logs.set_status("2025-10", "driver-1", "approved")

    stored = logs.get("2025-10", "driver-1")
    assert stored.status == "approved"
    assert [d.date for d in stored.days] == [date(2025, 3, 3), date(2025, 3, 4)]

    result = InvoiceAssembler(conn).create_invoice_on_approval(stored)

    assert result.invoice_id is not None
    assert result.customer_name == "Van Dijk Logistiek"
    assert [line.quantity for line in result.lines] == [Decimal("100"), Decimal("8"), Decimal("8")]


def test_create_invoice_for_unknown_week(conn):
    with pytest.raises(LookupError):
        InvoiceAssembler(conn).create_invoice_for_week("2025-10", "nobody")


def test_holiday_calendar_is_applied_before_generation(conn):
    add_customer(conn)
    log = WeeklyLog(
        week_id="2025-22",
        user_id="driver-1",
        days=(day(date(2025, 5, 29), status="weekend"), day(date(2025, 5, 30))),
    )
    assembler = InvoiceAssembler(conn, calendar=HolidayCalendar(years=[2025]))

    result = assembler.create_invoice(log)

    assert all("29-05-2025" not in line.description for line in result.lines)
    assert len(result.lines) == 2


def test_customer_without_company_name_is_reported_as_unknown(conn):
    add_customer(conn, company_name="")
    result = InvoiceAssembler(conn).create_invoice_on_approval(week_log(day(date(2025, 3, 3))))

    assert result.invoice_id is not None
    assert result.customer_name == "Onbekende klant"
