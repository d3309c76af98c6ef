from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Sequence

from fleet_invoicing.models import InvoiceLine, InvoiceTotals, VatBucket

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class TotalsAggregator:
    """Sub total, VAT per rate and grand total over a set of invoice lines.

    Sums are kept at full precision; rounding to cents is left to whoever
    presents or stores the figures (see `money`).
    """

    def aggregate(self, lines: Iterable[InvoiceLine]) -> InvoiceTotals:
        bases: Dict[Decimal, Decimal] = {}
        for line in lines:
            amount = line.quantity * line.unit_price
            bases[line.vat_rate] = bases.get(line.vat_rate, ZERO) + amount

        breakdown = tuple(
            VatBucket(rate=rate, base=base, vat=base * rate / HUNDRED)
            for rate, base in sorted(bases.items())
        )
        sub_total = sum((bucket.base for bucket in breakdown), ZERO)
        vat_total = sum((bucket.vat for bucket in breakdown), ZERO)
        return InvoiceTotals(
            sub_total=sub_total,
            vat_breakdown=breakdown,
            vat_total=vat_total,
            grand_total=sub_total + vat_total,
        )


def money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def totals_to_dict(totals: InvoiceTotals) -> dict:
    return {
        "sub_total": str(money(totals.sub_total)),
        "vat_total": str(money(totals.vat_total)),
        "grand_total": str(money(totals.grand_total)),
        "vat_breakdown": [
            {"rate": str(bucket.rate), "base": str(money(bucket.base)), "vat": str(money(bucket.vat))}
            for bucket in totals.vat_breakdown
        ],
    }


def lines_to_dicts(lines: Sequence[InvoiceLine]) -> list[dict]:
    return [
        {
            "quantity": str(line.quantity),
            "description": line.description,
            "unit_price": str(line.unit_price),
            "vat_rate": str(line.vat_rate),
            "total": str(money(line.total)),
        }
        for line in lines
    ]
