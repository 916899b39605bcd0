"""Invoice traceability records.

Produces the JSON form of an assembled invoice: header snapshot, billing
period, totals and every line item with the time log it came from.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from consult_billing.models import Invoice


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that writes Decimal values as exact strings."""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)


def invoice_to_dict(invoice: Invoice) -> dict:
    """Build the audit dictionary for one invoice (no file I/O)."""
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "engagement_id": invoice.engagement_id,
        "invoice_type": invoice.invoice_type.value,
        "status": invoice.status.value,
        "client_name": invoice.client_name,
        "project_name": invoice.project_name,
        "issue_date": invoice.issue_date.isoformat(),
        "due_date": invoice.due_date.isoformat(),
        "period": {
            "start": invoice.period_start.isoformat(),
            "end": invoice.period_end.isoformat(),
        },
        "billing_contact": {
            "name": invoice.billing_contact_name,
            "email": invoice.billing_contact_email,
            "address": invoice.billing_address,
            "city": invoice.billing_city,
            "state": invoice.billing_state,
            "zip": invoice.billing_zip,
            "country": invoice.billing_country,
        },
        "line_items": [
            {
                "description": item.description,
                "hours": item.hours,
                "rate": item.rate,
                "amount": item.amount,
                "time_log_id": item.time_log_id,
            }
            for item in invoice.line_items
        ],
        "summary": {
            "line_items": len(invoice.line_items),
            "total_hours": invoice.total_hours,
            "total_amount": invoice.total_amount,
            "time_log_ids": sorted(
                item.time_log_id for item in invoice.line_items if item.time_log_id is not None
            ),
        },
        "notes": invoice.notes,
    }


def write_invoice_json(invoice: Invoice, output_path: str | Path) -> Path:
    output_path = Path(output_path)
    output_path.write_text(
        json.dumps(invoice_to_dict(invoice), indent=2, cls=DecimalEncoder),
        encoding="utf-8",
    )
    return output_path
