from __future__ import annotations


class InvoiceEngineError(Exception):
    """Base class for failures that abort invoice generation."""


class ResolutionError(InvoiceEngineError):
    """Raised when no customer can be determined for a weekly log."""


class NoCustomerFound(ResolutionError):
    def __init__(self, license_plate: str | None = None):
        self.license_plate = license_plate
        super().__init__("Geen klant gevonden voor kenteken in weekstaat.")


class PersistenceError(InvoiceEngineError):
    """Raised when the invoice header or its lines cannot be stored."""
