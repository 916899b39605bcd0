"""Dashboard aggregates over invoices, time logs and engagements.

Pure functions: callers load the user's records and pass ``as_of``.
Revenue counts paid invoices only, by issue date. Pending money is what
has been sent but not paid (submitted or overdue).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from consult_billing.engine.dates import preset_range
from consult_billing.engine.status import resolve_status
from consult_billing.models import (
    ZERO,
    Engagement,
    EngagementStatus,
    Invoice,
    InvoiceStatus,
    TimeLog,
)

PENDING_STATUSES = (InvoiceStatus.SUBMITTED, InvoiceStatus.OVERDUE)


@dataclass(frozen=True)
class MonthlyRevenue:
    month: int
    revenue: Decimal = ZERO
    billable_hours: Decimal = Decimal("0")


@dataclass(frozen=True)
class DashboardStats:
    as_of: date
    ytd_revenue: Decimal
    active_engagements: int
    monthly_hours: Decimal
    pending_invoices_total: Decimal


def ytd_revenue(invoices: Iterable[Invoice], as_of: date) -> Decimal:
    """Paid invoice totals issued from January 1 of ``as_of``'s year through ``as_of``."""
    start = date(as_of.year, 1, 1)
    return sum(
        (
            invoice.total_amount
            for invoice in invoices
            if invoice.status == InvoiceStatus.PAID and start <= invoice.issue_date <= as_of
        ),
        ZERO,
    )


def monthly_revenue(invoices: Iterable[Invoice], logs: Iterable[TimeLog], year: int) -> list[MonthlyRevenue]:
    """Paid revenue and logged hours per calendar month; always 12 entries."""
    revenue = {month: ZERO for month in range(1, 13)}
    hours = {month: Decimal("0") for month in range(1, 13)}
    for invoice in invoices:
        if invoice.status == InvoiceStatus.PAID and invoice.issue_date.year == year:
            revenue[invoice.issue_date.month] += invoice.total_amount
    for log in logs:
        if log.date.year == year:
            hours[log.date.month] += log.hours
    return [MonthlyRevenue(month, revenue[month], hours[month]) for month in range(1, 13)]


def pending_invoices_total(invoices: Iterable[Invoice]) -> Decimal:
    return sum(
        (invoice.total_amount for invoice in invoices if invoice.status in PENDING_STATUSES),
        ZERO,
    )


def hours_logged(logs: Iterable[TimeLog], start: date, end: date) -> Decimal:
    """Total hours of logs dated within [start, end]."""
    return sum((log.hours for log in logs if start <= log.date <= end), Decimal("0"))


def dashboard_stats(
    engagements: Iterable[Engagement],
    invoices: Iterable[Invoice],
    logs: Iterable[TimeLog],
    as_of: date,
) -> DashboardStats:
    """The headline numbers for one user on ``as_of``."""
    invoices = list(invoices)
    month_start, month_end = preset_range("month", as_of)
    active = sum(
        1 for e in engagements
        if resolve_status(e.start_date, e.end_date, as_of) == EngagementStatus.ACTIVE
    )
    return DashboardStats(
        as_of=as_of,
        ytd_revenue=ytd_revenue(invoices, as_of),
        active_engagements=active,
        monthly_hours=hours_logged(logs, month_start, month_end),
        pending_invoices_total=pending_invoices_total(invoices),
    )
