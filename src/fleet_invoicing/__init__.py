from .calendar import HolidayCalendar
from .errors import InvoiceEngineError, NoCustomerFound, PersistenceError, ResolutionError
from .lines import LineItemGenerator
from .models import (
    Customer,
    Day,
    InvoiceComputationResult,
    InvoiceLine,
    InvoiceOptions,
    InvoiceTotals,
    Time,
    VatBucket,
    WeeklyLog,
    WeeklyRate,
)
from .rates import RateResolver
from .services import InvoiceAssembler
from .totals import TotalsAggregator

__all__ = [
    "Customer",
    "Day",
    "HolidayCalendar",
    "InvoiceAssembler",
    "InvoiceComputationResult",
    "InvoiceEngineError",
    "InvoiceLine",
    "InvoiceOptions",
    "InvoiceTotals",
    "LineItemGenerator",
    "NoCustomerFound",
    "PersistenceError",
    "RateResolver",
    "ResolutionError",
    "Time",
    "TotalsAggregator",
    "VatBucket",
    "WeeklyLog",
    "WeeklyRate",
]
