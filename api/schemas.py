"""Pydantic request/response models for the Billing API."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from consult_billing.engine.metrics import DashboardStats, MonthlyRevenue
from consult_billing.models import Engagement, Invoice, InvoiceStatus


class CreateInvoiceRequest(BaseModel):
    engagement_id: int
    period_start: str = Field(..., description="First day of the billing period (ISO-8601)")
    period_end: str = Field(..., description="Last day of the billing period (ISO-8601)")
    net_terms: int | None = Field(None, gt=0, description="Overrides the engagement's net terms")
    notes: str = ""
    allow_empty: bool = False


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class LineItemOut(BaseModel):
    id: int | None = None
    description: str
    hours: Decimal
    rate: Decimal
    amount: Decimal
    time_log_id: int | None = None


class InvoiceOut(BaseModel):
    id: int | None = None
    invoice_number: str
    engagement_id: int
    invoice_type: str
    status: str
    client_name: str
    project_name: str
    issue_date: date
    due_date: date
    period_start: date
    period_end: date
    total_hours: Decimal
    total_amount: Decimal
    notes: str = ""
    billing_contact_name: str | None = None
    billing_contact_email: str | None = None
    line_items: list[LineItemOut]

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceOut":
        return cls(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            engagement_id=invoice.engagement_id,
            invoice_type=invoice.invoice_type.value,
            status=invoice.status.value,
            client_name=invoice.client_name,
            project_name=invoice.project_name,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            period_start=invoice.period_start,
            period_end=invoice.period_end,
            total_hours=invoice.total_hours,
            total_amount=invoice.total_amount,
            notes=invoice.notes,
            billing_contact_name=invoice.billing_contact_name,
            billing_contact_email=invoice.billing_contact_email,
            line_items=[
                LineItemOut(
                    id=item.id,
                    description=item.description,
                    hours=item.hours,
                    rate=item.rate,
                    amount=item.amount,
                    time_log_id=item.time_log_id,
                )
                for item in invoice.line_items
            ],
        )


class EngagementOut(BaseModel):
    id: int
    client_id: int
    client_name: str
    project_name: str
    start_date: date
    end_date: date
    engagement_type: str
    hourly_rate: Decimal | None = None
    project_amount: Decimal | None = None
    net_terms: int
    status: str

    @classmethod
    def from_engagement(cls, engagement: Engagement, as_of: date) -> "EngagementOut":
        return cls(
            id=engagement.id,
            client_id=engagement.client_id,
            client_name=engagement.client_name,
            project_name=engagement.project_name,
            start_date=engagement.start_date,
            end_date=engagement.end_date,
            engagement_type=engagement.engagement_type.value,
            hourly_rate=engagement.hourly_rate,
            project_amount=engagement.project_amount,
            net_terms=engagement.net_terms,
            status=engagement.status(as_of).value,
        )


class StatusOut(BaseModel):
    engagement_id: int
    status: str
    as_of: date


class DashboardStatsOut(BaseModel):
    as_of: date
    ytd_revenue: Decimal
    active_engagements: int
    monthly_hours: Decimal
    pending_invoices_total: Decimal

    @classmethod
    def from_stats(cls, stats: DashboardStats) -> "DashboardStatsOut":
        return cls(
            as_of=stats.as_of,
            ytd_revenue=stats.ytd_revenue,
            active_engagements=stats.active_engagements,
            monthly_hours=stats.monthly_hours,
            pending_invoices_total=stats.pending_invoices_total,
        )


class MonthlyRevenueOut(BaseModel):
    month: int = Field(..., ge=1, le=12)
    revenue: Decimal
    billable_hours: Decimal

    @classmethod
    def from_month(cls, month: MonthlyRevenue) -> "MonthlyRevenueOut":
        return cls(month=month.month, revenue=month.revenue, billable_hours=month.billable_hours)


class ErrorResponse(BaseModel):
    error_type: str
    errors: list[str]
