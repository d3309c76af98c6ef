from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Sequence

import yaml
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

from fleet_invoicing.models import InvoiceLine
from fleet_invoicing.totals import TotalsAggregator, money

LINE_TITLES = {
    "quantity": "Aantal",
    "description": "Omschrijving",
    "unit_price": "Prijs",
    "vat_rate": "BTW %",
    "total": "Totaal",
}


@dataclass
class InvoiceExportService:
    """Write a stored invoice to a spreadsheet laid out by a YAML cell mapping."""

    mapping_path: Path = Path("backend/config/invoice_export.yaml")

    def __post_init__(self) -> None:
        self.mapping = self._load_mapping(Path(self.mapping_path))

    @staticmethod
    def _load_mapping(mapping_path: Path) -> dict[str, Any]:
        with mapping_path.open("r", encoding="utf-8") as mapping_file:
            loaded = yaml.safe_load(mapping_file)

        if not isinstance(loaded, dict):
            msg = f"Mapping file must contain a dictionary at root: {mapping_path}"
            raise ValueError(msg)

        return loaded

    @property
    def sheet_name(self) -> str:
        return self.mapping["workbook"]["sheet_name"]

    def generate_export(self, payload: dict[str, Any], output_path: Path | str) -> Path:
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = self.sheet_name

        self._map_header(worksheet, payload.get("header", {}))
        self._map_lines(worksheet, payload.get("lines", []))
        self._map_totals(worksheet, payload.get("totals", {}))
        self._map_vat_breakdown(worksheet, payload.get("vat_breakdown", []))

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(output_path)

        return output_path

    def _map_header(self, sheet: Worksheet, values: dict[str, Any]) -> None:
        for field, cell in self.mapping["header"].items():
            sheet[cell] = values.get(field)

    def _map_lines(self, sheet: Worksheet, values: list[dict[str, Any]]) -> None:
        section = self.mapping["lines"]
        columns = section["columns"]
        title_row = section.get("title_row")
        if title_row:
            for key, column in columns.items():
                sheet[f"{column}{title_row}"] = LINE_TITLES.get(key, key)
                sheet[f"{column}{title_row}"].font = Font(bold=True)

        start_row = int(section["start_row"])
        for offset, line in enumerate(values):
            row = start_row + offset
            for key, column in columns.items():
                sheet[f"{column}{row}"] = line.get(key)

    def _map_totals(self, sheet: Worksheet, values: dict[str, Any]) -> None:
        for field, cell in self.mapping["totals"].items():
            sheet[cell] = values.get(field)

    def _map_vat_breakdown(self, sheet: Worksheet, values: list[dict[str, Any]]) -> None:
        section = self.mapping["vat_breakdown"]
        start_row = int(section["start_row"])
        for offset, bucket in enumerate(values):
            for key, column in section["columns"].items():
                sheet[f"{column}{start_row + offset}"] = bucket.get(key)

    def get_mandatory_cells(self) -> list[str]:
        verification = self.mapping.get("verification", {})
        mandatory_cells = verification.get("mandatory_cells", [])
        if not isinstance(mandatory_cells, list):
            msg = "verification.mandatory_cells must be a list of cell references"
            raise ValueError(msg)
        return mandatory_cells


def build_export_payload(invoice: Any, line_rows: Sequence[Any], customer_name: str) -> dict[str, Any]:
    """Export payload for a stored invoice row and its line rows.

    The VAT breakdown is recomputed from the stored lines so the sheet always
    shows the same split the engine produced.
    """
    lines = [
        InvoiceLine(
            quantity=Decimal(row["quantity"]),
            description=row["description"],
            unit_price=Decimal(row["unit_price"]),
            vat_rate=Decimal(row["vat_rate"]),
        )
        for row in line_rows
    ]
    totals = TotalsAggregator().aggregate(lines)
    return {
        "header": {
            "reference": invoice["reference"],
            "customer_name": customer_name,
            "invoice_date": invoice["invoice_date"],
            "due_date": invoice["due_date"],
            "status": invoice["status"],
        },
        "lines": [
            {
                "quantity": line.quantity,
                "description": line.description,
                "unit_price": line.unit_price,
                "vat_rate": line.vat_rate,
                "total": money(line.total),
            }
            for line in lines
        ],
        "totals": {
            "sub_total": Decimal(invoice["sub_total"]),
            "vat_total": Decimal(invoice["vat_total"]),
            "grand_total": Decimal(invoice["grand_total"]),
        },
        "vat_breakdown": [
            {"rate": bucket.rate, "base": money(bucket.base), "vat": money(bucket.vat)}
            for bucket in totals.vat_breakdown
        ],
    }


def read_cells(path: Path | str, cells: list[str], sheet_name: str) -> dict[str, Any]:
    """Utility for validation/testing: read exact cell values from an exported workbook."""
    workbook: Workbook = load_workbook(path, data_only=False)
    sheet = workbook[sheet_name]
    return {cell: sheet[cell].value for cell in cells}
