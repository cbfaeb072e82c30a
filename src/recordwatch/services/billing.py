from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from recordwatch.portal.models import Record, RecordType

DEFAULT_TAX_RATE = 0.2


@dataclass(slots=True)
class BillingSummary:
    totals: dict[RecordType, float] = field(default_factory=dict)
    counts: dict[RecordType, int] = field(default_factory=dict)
    tax_rate: float = DEFAULT_TAX_RATE

    @property
    def record_count(self) -> int:
        return sum(self.counts.values())

    @property
    def gross_total(self) -> float:
        return sum(self.totals.values())

    @property
    def taxed_total(self) -> float:
        return self.gross_total * (1.0 - self.tax_rate)


def summarize_billing(
    records: Iterable[Record], *, tax_rate: float = DEFAULT_TAX_RATE
) -> BillingSummary:
    totals: dict[RecordType, float] = {}
    counts: dict[RecordType, int] = {}
    for record in records:
        record_type = record.record_type_id
        totals[record_type] = totals.get(record_type, 0.0) + record_type.price
        counts[record_type] = counts.get(record_type, 0) + 1

    # declaration order keeps the message stable between runs
    ordered = [record_type for record_type in RecordType if record_type in totals]
    return BillingSummary(
        totals={record_type: totals[record_type] for record_type in ordered},
        counts={record_type: counts[record_type] for record_type in ordered},
        tax_rate=tax_rate,
    )


def format_billing_message(summary: BillingSummary) -> str:
    lines = [
        f"{record_type.label}: {amount:.2f}€" for record_type, amount in summary.totals.items()
    ]
    lines.append(f"Totale (tassato): {summary.taxed_total:.2f}€")
    return "\n".join(lines)


__all__ = ["BillingSummary", "DEFAULT_TAX_RATE", "format_billing_message", "summarize_billing"]
