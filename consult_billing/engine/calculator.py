"""Financial calculations.

All money is Decimal, rounded half-up to cents per line item. Totals are
exact sums of the rounded line amounts, so header and lines always agree
unless something upstream is broken.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from consult_billing.models import (
    ZERO,
    Engagement,
    EngagementType,
    Invoice,
    InvoiceLineItem,
    InvoiceStatus,
    InvariantViolationError,
    TimeLog,
    to_money,
)


def billable_amount(log: TimeLog, engagement: Engagement) -> Decimal:
    """Amount one time log contributes to its invoice.

    Project engagements are billed from the contract, not from hours, so
    their logs contribute nothing here.
    """
    if engagement.engagement_type == EngagementType.PROJECT:
        return ZERO
    return to_money(log.hours * engagement.hourly_rate)


def project_fee_item(engagement: Engagement) -> InvoiceLineItem:
    """The single flat-fee line of a project invoice."""
    amount = to_money(engagement.project_amount)
    return InvoiceLineItem(
        description=f"Project fee for {engagement.project_name}",
        hours=Decimal("0"),
        rate=amount,
        amount=amount,
    )


def invoice_total(items: Iterable[InvoiceLineItem]) -> Decimal:
    return to_money(sum((item.amount for item in items), ZERO))


def compute_due_date(issue_date: date, net_terms_days: int) -> date:
    """Issue date plus net terms, in calendar days."""
    if isinstance(net_terms_days, bool) or not isinstance(net_terms_days, int) or net_terms_days <= 0:
        raise ValueError(f"Net terms must be a positive integer, got {net_terms_days!r}")
    return issue_date + timedelta(days=net_terms_days)


def check_invoice_totals(invoice: Invoice) -> Invoice:
    """Raise if the header totals disagree with the line items."""
    errors = []
    line_total = invoice.line_item_total
    if line_total != invoice.total_amount:
        errors.append(
            f"amount: lines sum to {line_total}, header says {invoice.total_amount}"
        )
    if invoice.invoice_type == EngagementType.HOURLY and invoice.line_item_hours != invoice.total_hours:
        errors.append(
            f"hours: lines sum to {invoice.line_item_hours}, header says {invoice.total_hours}"
        )
    if errors:
        raise InvariantViolationError(
            f"Invoice {invoice.invoice_number} totals mismatch ({'; '.join(errors)})"
        )
    return invoice


def is_overdue(invoice: Invoice, as_of: date) -> bool:
    if invoice.status in (InvoiceStatus.PAID, InvoiceStatus.OVERDUE):
        return False
    return as_of > invoice.due_date
