"""
Fleet invoicing API - thin HTTP adapter around the invoice generation engine.
"""

import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterator, List, Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from backend.services.invoice_export import InvoiceExportService, build_export_payload
from fleet_invoicing.calendar import HolidayCalendar
from fleet_invoicing.config import settings
from fleet_invoicing.db import apply_sqlite_migration, connect_sqlite
from fleet_invoicing.errors import NoCustomerFound, PersistenceError
from fleet_invoicing.models import (
    UNKNOWN_CUSTOMER,
    Day,
    DayStatus,
    InvoiceComputationResult,
    InvoiceOptions,
    Time,
    WeeklyLog,
    WeeklyLogStatus,
)
from fleet_invoicing.repositories import CustomerRepository, InvoiceRepository
from fleet_invoicing.services import InvoiceAssembler
from fleet_invoicing.totals import lines_to_dicts, totals_to_dict

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        settings.validate_production_config()
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise

    conn = connect_sqlite(settings.DATABASE_PATH)
    try:
        apply_sqlite_migration(conn, settings.MIGRATION_PATH)
    finally:
        conn.close()

    app.state.calendar = HolidayCalendar.around(date.today(), span=2)
    logger.info(f"Fleet invoicing API ready: ENV={settings.ENV}, database={settings.DATABASE_PATH}")

    yield

    logger.info("Shutting down fleet invoicing API")


app = FastAPI(title="Fleet Invoicing API", debug=settings.DEBUG, lifespan=lifespan)


def get_conn() -> Iterator[sqlite3.Connection]:
    conn = connect_sqlite(settings.DATABASE_PATH, check_same_thread=False)
    try:
        yield conn
    finally:
        conn.close()


def get_calendar(request: Request) -> Optional[HolidayCalendar]:
    return getattr(request.app.state, "calendar", None)


class TimePayload(BaseModel):
    hour: int = Field(0, ge=0, le=23)
    minute: int = Field(0, ge=0, le=59)


class DayPayload(BaseModel):
    date: date
    status: DayStatus
    start_time: TimePayload = TimePayload()
    end_time: TimePayload = TimePayload()
    break_time: Optional[TimePayload] = None
    start_mileage: Optional[int] = Field(None, ge=0)
    end_mileage: Optional[int] = Field(None, ge=0)
    toll: str = "Geen"
    license_plate: Optional[str] = None
    overnight_stay: bool = False
    trip_number: Optional[str] = None

    def to_day(self) -> Day:
        return Day(
            date=self.date,
            status=self.status,
            start_time=Time(self.start_time.hour, self.start_time.minute),
            end_time=Time(self.end_time.hour, self.end_time.minute),
            break_time=Time(self.break_time.hour, self.break_time.minute) if self.break_time else None,
            start_mileage=self.start_mileage,
            end_mileage=self.end_mileage,
            toll=self.toll,
            license_plate=self.license_plate,
            overnight_stay=self.overnight_stay,
            trip_number=self.trip_number,
        )


class WeeklyLogPayload(BaseModel):
    week_id: str
    user_id: str
    status: WeeklyLogStatus = "concept"
    remarks: Optional[str] = None
    days: List[DayPayload]

    def to_log(self) -> WeeklyLog:
        return WeeklyLog(
            week_id=self.week_id,
            user_id=self.user_id,
            days=tuple(day.to_day() for day in self.days),
            status=self.status,
            remarks=self.remarks,
        )


class InvoiceRequest(BaseModel):
    weekly_log: WeeklyLogPayload
    customer_id: Optional[int] = None
    weekly_rate: Optional[Union[Decimal, str]] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    reference: Optional[str] = None
    footer_text: Optional[str] = None


def _serialize(result: InvoiceComputationResult) -> dict:
    return {
        "customer_id": result.customer.id,
        "customer_name": result.customer_name,
        "invoice_id": result.invoice_id,
        "lines": lines_to_dicts(result.lines),
        **totals_to_dict(result.totals),
        "warnings": list(result.warnings),
    }


def _run(request: InvoiceRequest, conn: sqlite3.Connection, calendar, create: bool) -> dict:
    assembler = InvoiceAssembler(conn, calendar=calendar)
    customer = None
    if request.customer_id is not None:
        customer = CustomerRepository(conn).get(request.customer_id)
        if customer is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Klant niet gevonden.")

    options = InvoiceOptions(
        create_invoice=create,
        invoice_date=request.invoice_date,
        due_date=request.due_date,
        reference=request.reference,
        footer_text=request.footer_text,
    )
    try:
        result = assembler.create_invoice(
            request.weekly_log.to_log(),
            customer=customer,
            weekly_rate=request.weekly_rate,
            options=options,
        )
    except NoCustomerFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _serialize(result)


@app.post("/invoices/preview")
def preview_invoice(
    request: InvoiceRequest,
    conn: sqlite3.Connection = Depends(get_conn),
    calendar: Optional[HolidayCalendar] = Depends(get_calendar),
):
    return _run(request, conn, calendar, create=False)


@app.post("/invoices", status_code=status.HTTP_201_CREATED)
def create_invoice(
    request: InvoiceRequest,
    conn: sqlite3.Connection = Depends(get_conn),
    calendar: Optional[HolidayCalendar] = Depends(get_calendar),
):
    return _run(request, conn, calendar, create=True)


@app.get("/invoices/{invoice_id}/export.xlsx")
def export_invoice(invoice_id: int, conn: sqlite3.Connection = Depends(get_conn)):
    invoices = InvoiceRepository(conn)
    invoice = invoices.get_by_id(invoice_id)
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Factuur niet gevonden.")

    customer = CustomerRepository(conn).get(invoice["customer_id"])
    payload = build_export_payload(
        invoice,
        invoices.get_lines(invoice_id),
        customer.company_name if customer else UNKNOWN_CUSTOMER,
    )
    service = InvoiceExportService(mapping_path=Path(settings.EXPORT_MAPPING_PATH))
    export_path = service.generate_export(payload, Path(settings.EXPORT_DIR) / f"invoice-{invoice_id}.xlsx")

    return FileResponse(
        export_path,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=f"invoice-{invoice_id}.xlsx",
    )


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080, log_level=settings.log_level.lower())
