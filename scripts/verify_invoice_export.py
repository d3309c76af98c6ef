from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

from backend.services.invoice_export import InvoiceExportService, build_export_payload, read_cells
from fleet_invoicing.config import settings
from fleet_invoicing.db import apply_sqlite_migration, connect_sqlite
from fleet_invoicing.models import Customer, Day, InvoiceOptions, Time, WeeklyLog
from fleet_invoicing.repositories import CustomerRepository, InvoiceRepository
from fleet_invoicing.services import InvoiceAssembler


def sample_week() -> WeeklyLog:
    """A week with every kind of line: hours, kilometers, overnight stay and toll."""
    days = []
    for offset, (start, end) in enumerate([(6, 15), (7, 16), (6, 17), (8, 14), (5, 13), (7, 12)]):
        days.append(
            Day(
                date=date(2026, 2, 2 + offset),
                status="gewerkt",
                start_time=Time(start, 0),
                end_time=Time(end, 30),
                break_time=Time(0, 45),
                start_mileage=120_000 + offset * 400,
                end_mileage=120_000 + offset * 400 + 380,
                toll="BE/DE" if offset == 2 else "Geen",
                license_plate="78-BXL-2",
                overnight_stay=offset == 2,
                trip_number=f"R{offset + 101}",
            )
        )
    days.append(Day(date=date(2026, 2, 8), status="weekend"))
    return WeeklyLog(week_id="2026-06", user_id="demo-driver", days=tuple(days))


def main() -> int:
    conn = connect_sqlite()
    apply_sqlite_migration(conn, settings.MIGRATION_PATH)
    CustomerRepository(conn).create(
        Customer(
            id=0,
            company_name="Demo Expeditie BV",
            assigned_license_plates=("78-BXL-2",),
            billing_type="combined",
            mileage_rate_type="fixed",
            hourly_rate=Decimal("44.50"),
            mileage_rate=Decimal("0.62"),
            saturday_surcharge=Decimal("130"),
            show_work_times=True,
        )
    )

    result = InvoiceAssembler(conn).create_invoice(sample_week(), options=InvoiceOptions(create_invoice=True))
    invoices = InvoiceRepository(conn)

    service = InvoiceExportService(mapping_path=Path(settings.EXPORT_MAPPING_PATH))
    payload = build_export_payload(
        invoices.get_by_id(result.invoice_id),
        invoices.get_lines(result.invoice_id),
        result.customer.company_name,
    )
    output_path = Path("artifacts/sample_invoice_export.xlsx")
    service.generate_export(payload, output_path)

    values = read_cells(output_path, service.get_mandatory_cells(), service.sheet_name)
    missing = [cell for cell, value in values.items() if value in (None, "")]

    if missing:
        print("Verification failed. Missing mandatory values in:", ", ".join(missing))
        return 1

    print(f"Verification passed. {len(result.lines)} lines exported to {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
