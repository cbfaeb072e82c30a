from __future__ import annotations

import pytest

from recordwatch.portal.models import Record, RecordType
from recordwatch.services.billing import format_billing_message, summarize_billing
from tests.factories import make_record_payload


def _record(record_type: int, record_id: str) -> Record:
    return Record.from_wire(make_record_payload(id=record_id, recordTypeId=record_type))


def test_summarize_billing_groups_prices_by_record_type() -> None:
    records = [
        _record(5, "a"),
        _record(1, "b"),
        _record(1, "c"),
        _record(3, "d"),
        _record(5, "e"),
    ]

    summary = summarize_billing(records, tax_rate=0.2)

    assert list(summary.totals) == [RecordType.ECG, RecordType.HOLTER_ECG, RecordType.ABPM]
    assert summary.totals[RecordType.ECG] == 8.0
    assert summary.totals[RecordType.HOLTER_ECG] == 15.0
    assert summary.totals[RecordType.ABPM] == 16.0
    assert summary.counts[RecordType.ECG] == 2
    assert summary.record_count == 5
    assert summary.gross_total == 39.0
    assert summary.taxed_total == pytest.approx(31.2)


def test_format_billing_message_lists_types_then_taxed_total() -> None:
    summary = summarize_billing([_record(3, "a"), _record(1, "b")], tax_rate=0.2)

    message = format_billing_message(summary)

    assert message.splitlines() == [
        "ECG a riposo: 4.00€",
        "Holter ECG: 15.00€",
        "Totale (tassato): 15.20€",
    ]


def test_empty_summary_renders_only_the_total() -> None:
    summary = summarize_billing([])

    assert summary.record_count == 0
    assert format_billing_message(summary) == "Totale (tassato): 0.00€"


def test_zero_tax_rate_keeps_gross_total() -> None:
    summary = summarize_billing([_record(5, "a")], tax_rate=0.0)

    assert summary.taxed_total == 8.0
