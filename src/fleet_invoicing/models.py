from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Literal, Optional, Tuple

DayStatus = Literal[
    "gewerkt",
    "ziek",
    "vrij",
    "ouderschapsverlof",
    "weekend",
    "feestdag",
    "atv",
    "persoonlijk",
    "onbetaald",
    "cursus",
]
Toll = Literal["Geen", "BE", "DE", "BE/DE"]
BillingType = Literal["hourly", "mileage", "combined"]
MileageRateType = Literal["fixed", "dot", "variable"]
WeeklyLogStatus = Literal["concept", "pending", "approved"]

WORKED: DayStatus = "gewerkt"
HOLIDAY: DayStatus = "feestdag"
NO_TOLL: Toll = "Geen"
UNKNOWN_CUSTOMER = "Onbekende klant"


@dataclass(frozen=True)
class Time:
    hour: int = 0
    minute: int = 0

    @property
    def total_minutes(self) -> int:
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class Day:
    date: date
    status: DayStatus
    start_time: Time = field(default_factory=Time)
    end_time: Time = field(default_factory=Time)
    break_time: Optional[Time] = None
    start_mileage: Optional[int] = None
    end_mileage: Optional[int] = None
    toll: Toll = NO_TOLL
    license_plate: Optional[str] = None
    overnight_stay: bool = False
    trip_number: Optional[str] = None


@dataclass(frozen=True)
class WeeklyLog:
    week_id: str
    user_id: str
    days: Tuple[Day, ...] = ()
    status: WeeklyLogStatus = "concept"
    remarks: Optional[str] = None


@dataclass(frozen=True)
class Customer:
    id: int
    company_name: str
    assigned_license_plates: Tuple[str, ...] = ()
    payment_term: Optional[int] = None
    show_daily_totals: bool = False
    show_weekly_totals: bool = False
    show_work_times: bool = False
    billing_type: Optional[BillingType] = None
    mileage_rate_type: Optional[MileageRateType] = None
    hourly_rate: Optional[Decimal] = None
    mileage_rate: Optional[Decimal] = None
    overnight_rate: Optional[Decimal] = None
    daily_expense_allowance: Optional[Decimal] = None
    saturday_surcharge: Optional[Decimal] = None
    sunday_surcharge: Optional[Decimal] = None


@dataclass(frozen=True)
class WeeklyRate:
    customer_id: int
    week_id: str
    rate: Decimal


@dataclass(frozen=True)
class InvoiceLine:
    quantity: Decimal
    description: str
    unit_price: Decimal
    vat_rate: Decimal
    total: Decimal = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "total", self.quantity * self.unit_price)


@dataclass(frozen=True)
class VatBucket:
    rate: Decimal
    base: Decimal
    vat: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    sub_total: Decimal
    vat_breakdown: Tuple[VatBucket, ...]
    vat_total: Decimal
    grand_total: Decimal


@dataclass(frozen=True)
class InvoiceOptions:
    create_invoice: bool = False
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    reference: Optional[str] = None
    footer_text: Optional[str] = None


@dataclass(frozen=True)
class InvoiceHeader:
    customer_id: int
    invoice_date: date
    due_date: date
    reference: str
    sub_total: Decimal
    vat_total: Decimal
    grand_total: Decimal
    footer_text: str
    show_daily_totals: bool = False
    show_weekly_totals: bool = False
    show_work_times: bool = False
    invoice_number: str = ""
    status: str = "concept"


@dataclass(frozen=True)
class InvoiceComputationResult:
    lines: Tuple[InvoiceLine, ...]
    totals: InvoiceTotals
    customer: Customer
    warnings: Tuple[str, ...] = ()
    invoice_id: Optional[int] = None

    @property
    def customer_name(self) -> str:
        return self.customer.company_name or UNKNOWN_CUSTOMER

    @property
    def sub_total(self) -> Decimal:
        return self.totals.sub_total

    @property
    def vat_total(self) -> Decimal:
        return self.totals.vat_total

    @property
    def grand_total(self) -> Decimal:
        return self.totals.grand_total
