from __future__ import annotations

import sqlite3
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from fleet_invoicing.models import (
    Customer,
    Day,
    InvoiceHeader,
    InvoiceLine,
    Time,
    WeeklyLog,
    WeeklyRate,
)


def _normalize_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    return value


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _time(value: Optional[str]) -> Time:
    if not value:
        return Time(0, 0)
    hour, minute = value.split(":")[:2]
    return Time(int(hour), int(minute))


class CustomerRepository:
    COLUMNS = (
        "company_name",
        "payment_term",
        "show_daily_totals",
        "show_weekly_totals",
        "show_work_times",
        "billing_type",
        "mileage_rate_type",
        "hourly_rate",
        "mileage_rate",
        "overnight_rate",
        "daily_expense_allowance",
        "saturday_surcharge",
        "sunday_surcharge",
    )

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def create(self, customer: Customer) -> int:
        values = [_normalize_value(getattr(customer, column)) for column in self.COLUMNS]
        values = [int(v) if isinstance(v, bool) else v for v in values]
        placeholders = ", ".join("?" for _ in self.COLUMNS)
        cursor = self.conn.execute(
            f"INSERT INTO customer({', '.join(self.COLUMNS)}) VALUES ({placeholders})",
            values,
        )
        customer_id = int(cursor.lastrowid)
        self.conn.executemany(
            "INSERT INTO customer_license_plate(customer_id, license_plate) VALUES (?, ?)",
            [(customer_id, plate) for plate in customer.assigned_license_plates],
        )
        return customer_id

    def get(self, customer_id: int) -> Optional[Customer]:
        row = self.conn.execute("SELECT * FROM customer WHERE id = ?", (customer_id,)).fetchone()
        return self._to_customer(row) if row else None

    def find_by_license_plate(self, license_plate: str) -> Optional[Customer]:
        row = self.conn.execute(
            """
            SELECT c.*
            FROM customer c
            JOIN customer_license_plate p ON p.customer_id = c.id
            WHERE p.license_plate = ?
            ORDER BY c.id
            LIMIT 1
            """,
            (license_plate,),
        ).fetchone()
        return self._to_customer(row) if row else None

    def _to_customer(self, row: sqlite3.Row) -> Customer:
        plates = self.conn.execute(
            "SELECT license_plate FROM customer_license_plate WHERE customer_id = ? ORDER BY license_plate",
            (row["id"],),
        ).fetchall()
        return Customer(
            id=row["id"],
            company_name=row["company_name"],
            assigned_license_plates=tuple(p["license_plate"] for p in plates),
            payment_term=row["payment_term"],
            show_daily_totals=bool(row["show_daily_totals"]),
            show_weekly_totals=bool(row["show_weekly_totals"]),
            show_work_times=bool(row["show_work_times"]),
            billing_type=row["billing_type"],
            mileage_rate_type=row["mileage_rate_type"],
            hourly_rate=_decimal(row["hourly_rate"]),
            mileage_rate=_decimal(row["mileage_rate"]),
            overnight_rate=_decimal(row["overnight_rate"]),
            daily_expense_allowance=_decimal(row["daily_expense_allowance"]),
            saturday_surcharge=_decimal(row["saturday_surcharge"]),
            sunday_surcharge=_decimal(row["sunday_surcharge"]),
        )


class WeeklyRateRepository:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def set_rate(self, rate: WeeklyRate) -> None:
        self.conn.execute(
            """
            INSERT INTO weekly_rate(week_id, customer_id, rate) VALUES (?, ?, ?)
            ON CONFLICT(week_id, customer_id) DO UPDATE SET rate = excluded.rate
            """,
            (rate.week_id, rate.customer_id, _normalize_value(rate.rate)),
        )

    def get(self, customer_id: int, week_id: str) -> Optional[WeeklyRate]:
        row = self.conn.execute(
            "SELECT customer_id, week_id, rate FROM weekly_rate WHERE customer_id = ? AND week_id = ?",
            (customer_id, week_id),
        ).fetchone()
        if row is None:
            return None
        return WeeklyRate(customer_id=row["customer_id"], week_id=row["week_id"], rate=Decimal(row["rate"]))


class WeeklyLogRepository:
    """Weekly logs are created on the first day submission and never deleted."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def save_day(self, week_id: str, user_id: str, day: Day) -> int:
        self.conn.execute(
            "INSERT INTO weekly_log(week_id, user_id) VALUES (?, ?) ON CONFLICT(week_id, user_id) DO NOTHING",
            (week_id, user_id),
        )
        log_id = self.conn.execute(
            "SELECT id FROM weekly_log WHERE week_id = ? AND user_id = ?",
            (week_id, user_id),
        ).fetchone()["id"]
        pause = day.break_time or Time(0, 0)
        self.conn.execute(
            """
            INSERT INTO daily_log(
                weekly_log_id, date, status, start_time, end_time, break_minutes,
                start_mileage, end_mileage, toll, license_plate, overnight_stay, trip_number
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(weekly_log_id, date) DO UPDATE SET
                status = excluded.status,
                start_time = excluded.start_time,
                end_time = excluded.end_time,
                break_minutes = excluded.break_minutes,
                start_mileage = excluded.start_mileage,
                end_mileage = excluded.end_mileage,
                toll = excluded.toll,
                license_plate = excluded.license_plate,
                overnight_stay = excluded.overnight_stay,
                trip_number = excluded.trip_number
            """,
            (
                log_id,
                day.date.isoformat(),
                day.status,
                str(day.start_time),
                str(day.end_time),
                pause.total_minutes,
                day.start_mileage,
                day.end_mileage,
                day.toll,
                day.license_plate,
                int(day.overnight_stay),
                day.trip_number,
            ),
        )
        return int(log_id)

    def set_status(self, week_id: str, user_id: str, status: str) -> None:
        self.conn.execute(
            "UPDATE weekly_log SET status = ? WHERE week_id = ? AND user_id = ?",
            (status, week_id, user_id),
        )

    def get(self, week_id: str, user_id: str) -> Optional[WeeklyLog]:
        header = self.conn.execute(
            "SELECT * FROM weekly_log WHERE week_id = ? AND user_id = ?",
            (week_id, user_id),
        ).fetchone()
        if header is None:
            return None
        rows = self.conn.execute(
            "SELECT * FROM daily_log WHERE weekly_log_id = ? ORDER BY date",
            (header["id"],),
        ).fetchall()
        days = tuple(
            Day(
                date=date.fromisoformat(row["date"]),
                status=row["status"],
                start_time=_time(row["start_time"]),
                end_time=_time(row["end_time"]),
                break_time=Time(*divmod(row["break_minutes"] or 0, 60)),
                start_mileage=row["start_mileage"],
                end_mileage=row["end_mileage"],
                toll=row["toll"],
                license_plate=row["license_plate"],
                overnight_stay=bool(row["overnight_stay"]),
                trip_number=row["trip_number"],
            )
            for row in rows
        )
        return WeeklyLog(
            week_id=header["week_id"],
            user_id=header["user_id"],
            days=days,
            status=header["status"],
            remarks=header["remarks"],
        )


class InvoiceRepository:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def create_header(self, header: InvoiceHeader) -> int:
        cursor = self.conn.execute(
            """
            INSERT INTO invoice(
                invoice_number, status, customer_id, invoice_date, due_date, reference,
                sub_total, vat_total, grand_total, footer_text,
                show_daily_totals, show_weekly_totals, show_work_times
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                header.invoice_number,
                header.status,
                header.customer_id,
                header.invoice_date.isoformat(),
                header.due_date.isoformat(),
                header.reference,
                _normalize_value(header.sub_total),
                _normalize_value(header.vat_total),
                _normalize_value(header.grand_total),
                header.footer_text,
                int(header.show_daily_totals),
                int(header.show_weekly_totals),
                int(header.show_work_times),
            ),
        )
        return int(cursor.lastrowid)

    def create_lines(self, invoice_id: int, lines: Sequence[InvoiceLine]) -> None:
        self.conn.executemany(
            """
            INSERT INTO invoice_line(invoice_id, position, quantity, description, unit_price, vat_rate, total)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    invoice_id,
                    position,
                    _normalize_value(line.quantity),
                    line.description,
                    _normalize_value(line.unit_price),
                    _normalize_value(line.vat_rate),
                    _normalize_value(line.total),
                )
                for position, line in enumerate(lines, start=1)
            ],
        )

    def get_by_id(self, invoice_id: int) -> Optional[sqlite3.Row]:
        return self.conn.execute("SELECT * FROM invoice WHERE id = ?", (invoice_id,)).fetchone()

    def get_lines(self, invoice_id: int) -> List[sqlite3.Row]:
        return self.conn.execute(
            "SELECT * FROM invoice_line WHERE invoice_id = ? ORDER BY position",
            (invoice_id,),
        ).fetchall()

    def find_toll_placeholders(self, invoice_id: int) -> List[sqlite3.Row]:
        """Zero-valued toll lines, later filled in by toll reconciliation."""
        return self.conn.execute(
            """
            SELECT *
            FROM invoice_line
            WHERE invoice_id = ?
              AND CAST(quantity AS REAL) = 0
              AND CAST(unit_price AS REAL) = 0
              AND description LIKE '%tol%'
            ORDER BY position
            """,
            (invoice_id,),
        ).fetchall()
