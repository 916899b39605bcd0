"""Tests for invoice JSON records."""

import json
from datetime import date
from decimal import Decimal

from consult_billing.audit import DecimalEncoder, invoice_to_dict, write_invoice_json
from consult_billing.models import EngagementType, Invoice, InvoiceLineItem


def _make_invoice() -> Invoice:
    return Invoice(
        id=4,
        engagement_id=1,
        user_id=1,
        invoice_number="INV-00004",
        client_name="Acme Corp",
        project_name="Data Platform",
        issue_date=date(2025, 2, 1),
        due_date=date(2025, 3, 3),
        period_start=date(2025, 1, 1),
        period_end=date(2025, 1, 31),
        invoice_type=EngagementType.HOURLY,
        total_hours=Decimal("5.75"),
        total_amount=Decimal("862.50"),
        billing_contact_email="billing@acme.test",
        line_items=[
            InvoiceLineItem("Kickoff workshop (Date: 2025-01-06)", Decimal("3.5"), Decimal("150"), Decimal("525.00"), time_log_id=12),
            InvoiceLineItem("Pipeline review (Date: 2025-01-20)", Decimal("2.25"), Decimal("150"), Decimal("337.50"), time_log_id=9),
        ],
    )


class TestInvoiceToDict:
    def test_header(self):
        data = invoice_to_dict(_make_invoice())
        assert data["invoice_number"] == "INV-00004"
        assert data["invoice_type"] == "hourly"
        assert data["status"] == "submitted"
        assert data["period"] == {"start": "2025-01-01", "end": "2025-01-31"}
        assert data["billing_contact"]["email"] == "billing@acme.test"

    def test_summary_traces_time_logs(self):
        summary = invoice_to_dict(_make_invoice())["summary"]
        assert summary["line_items"] == 2
        assert summary["time_log_ids"] == [9, 12]
        assert summary["total_amount"] == Decimal("862.50")


class TestWriteJson:
    def test_decimals_written_exactly(self, tmp_path):
        path = write_invoice_json(_make_invoice(), tmp_path / "invoice.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["summary"]["total_amount"] == "862.50"
        assert data["line_items"][1]["hours"] == "2.25"
        assert data["due_date"] == "2025-03-03"

    def test_encoder(self):
        assert json.dumps({"x": Decimal("0.10")}, cls=DecimalEncoder) == '{"x": "0.10"}'
