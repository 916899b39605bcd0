"""API routes for the billing engine.

Authentication happens upstream; the acting user arrives in the trusted
``X-User-Id`` header. Route handlers are plain ``def`` so the blocking
database work runs in the threadpool.
"""

from __future__ import annotations

from datetime import date
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session, sessionmaker

from consult_billing.config import BillingSettings, get_settings
from consult_billing.engine.assembly import create_invoice
from consult_billing.engine.dates import parse_date, preset_range, today
from consult_billing.engine.metrics import dashboard_stats, monthly_revenue
from consult_billing.engine.status import filter_engagements, resolve_status
from consult_billing.models import EngagementStatus, NotFoundError, StrictValidationError
from consult_billing.storage import BillingRepository, init_db, make_engine, make_session_factory

from api.schemas import (
    CreateInvoiceRequest,
    DashboardStatsOut,
    EngagementOut,
    ErrorResponse,
    InvoiceOut,
    InvoiceStatusUpdate,
    MonthlyRevenueOut,
    StatusOut,
)

router = APIRouter(prefix="/api/v1")

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid date, period or record"},
    404: {"model": ErrorResponse, "description": "Not found or not owned by the acting user"},
}


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    engine = make_engine(get_settings().database_url)
    init_db(engine)
    return make_session_factory(engine)


def acting_user(x_user_id: int = Header(..., alias="X-User-Id")) -> int:
    return x_user_id


def _as_of(value: Optional[str], settings: BillingSettings):
    return parse_date(value, settings.timezone) if value else today(settings.timezone)


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/engagements", response_model=list[EngagementOut])
def list_engagements(
    client: Optional[str] = Query(None, description="Only this client's engagements"),
    date_range: Optional[str] = Query(None, alias="range", description="Named range: month, quarter, year, last_year, last3, ..."),
    start: Optional[str] = Query(None, description="Custom range start (overrides range)"),
    end: Optional[str] = Query(None, description="Custom range end (overrides range)"),
    engagement_status: Optional[EngagementStatus] = Query(None, alias="status"),
    as_of: Optional[str] = Query(None),
    user_id: int = Depends(acting_user),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    settings: BillingSettings = Depends(get_settings),
):
    """List engagements whose dates overlap the requested range."""
    day = _as_of(as_of, settings)
    range_start = range_end = None
    if date_range and date_range != "all":
        try:
            range_start, range_end = preset_range(date_range, day)
        except ValueError as e:
            raise StrictValidationError([str(e)]) from e
    if start:
        range_start = parse_date(start, settings.timezone)
    if end:
        range_end = parse_date(end, settings.timezone)

    with session_factory() as session:
        engagements = BillingRepository(session).list_engagements(user_id)

    selected = filter_engagements(
        engagements,
        as_of=day,
        client_name=client,
        range_start=range_start,
        range_end=range_end,
        status=engagement_status,
    )
    return [EngagementOut.from_engagement(e, day) for e in selected]


@router.get("/engagements/{engagement_id}/status", response_model=StatusOut, responses=ERROR_RESPONSES)
def engagement_status_view(
    engagement_id: int,
    as_of: Optional[str] = Query(None),
    user_id: int = Depends(acting_user),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    settings: BillingSettings = Depends(get_settings),
):
    day = _as_of(as_of, settings)
    with session_factory() as session:
        engagement = BillingRepository(session).get_engagement(engagement_id, user_id)
    if engagement is None:
        raise NotFoundError(f"Engagement {engagement_id} not found")
    return StatusOut(
        engagement_id=engagement_id,
        status=resolve_status(engagement.start_date, engagement.end_date, day).value,
        as_of=day,
    )


@router.post(
    "/invoices",
    response_model=InvoiceOut,
    status_code=status.HTTP_201_CREATED,
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse, "description": "Invoice number allocation kept colliding"}},
)
def create_invoice_view(
    body: CreateInvoiceRequest,
    user_id: int = Depends(acting_user),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    settings: BillingSettings = Depends(get_settings),
):
    """Generate an invoice for an engagement and billing period.

    Hourly engagements are billed from the uninvoiced time logs in the
    period; project engagements get one flat-fee line.
    """
    invoice = create_invoice(
        session_factory,
        body.engagement_id,
        body.period_start,
        body.period_end,
        user_id,
        issue_date=today(settings.timezone),
        net_terms=body.net_terms,
        notes=body.notes,
        allow_empty=body.allow_empty,
        settings=settings,
    )
    return InvoiceOut.from_invoice(invoice)


@router.get("/invoices", response_model=list[InvoiceOut])
def list_invoices(
    as_of: Optional[str] = Query(None, description="Day used to detect overdue invoices"),
    user_id: int = Depends(acting_user),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    settings: BillingSettings = Depends(get_settings),
):
    """List invoices, flagging overdue ones first."""
    day = _as_of(as_of, settings)
    with session_factory.begin() as session:
        repo = BillingRepository(session)
        repo.mark_overdue(user_id, day)
        invoices = repo.list_invoices(user_id)
    return [InvoiceOut.from_invoice(invoice) for invoice in invoices]


@router.get("/invoices/{invoice_id}", response_model=InvoiceOut, responses=ERROR_RESPONSES)
def get_invoice(
    invoice_id: int,
    user_id: int = Depends(acting_user),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
):
    with session_factory() as session:
        invoice = BillingRepository(session).get_invoice(invoice_id, user_id)
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_id} not found")
    return InvoiceOut.from_invoice(invoice)


@router.put("/invoices/{invoice_id}/status", response_model=InvoiceOut, responses=ERROR_RESPONSES)
def update_invoice_status(
    invoice_id: int,
    body: InvoiceStatusUpdate,
    user_id: int = Depends(acting_user),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
):
    """Set an invoice's status, e.g. to ``paid`` once payment arrives."""
    with session_factory.begin() as session:
        invoice = BillingRepository(session).update_invoice_status(invoice_id, user_id, body.status)
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_id} not found")
    return InvoiceOut.from_invoice(invoice)


@router.get("/dashboard/stats", response_model=DashboardStatsOut)
def dashboard_stats_view(
    as_of: Optional[str] = Query(None),
    user_id: int = Depends(acting_user),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    settings: BillingSettings = Depends(get_settings),
):
    """Year-to-date revenue, active engagements, hours this month and money outstanding."""
    day = _as_of(as_of, settings)
    month_start, month_end = preset_range("month", day)
    with session_factory() as session:
        repo = BillingRepository(session)
        stats = dashboard_stats(
            repo.list_engagements(user_id),
            repo.list_invoices(user_id),
            repo.list_user_time_logs(user_id, month_start, month_end),
            day,
        )
    return DashboardStatsOut.from_stats(stats)


@router.get("/dashboard/monthly-revenue", response_model=list[MonthlyRevenueOut])
def monthly_revenue_view(
    year: Optional[int] = Query(None, ge=1, le=9999, description="Defaults to the current year"),
    user_id: int = Depends(acting_user),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    settings: BillingSettings = Depends(get_settings),
):
    """Paid revenue and logged hours for each month of a year."""
    year = year or today(settings.timezone).year
    start, end = preset_range("year", date(year, 1, 1))
    with session_factory() as session:
        repo = BillingRepository(session)
        months = monthly_revenue(repo.list_invoices(user_id), repo.list_user_time_logs(user_id, start, end), year)
    return [MonthlyRevenueOut.from_month(month) for month in months]
