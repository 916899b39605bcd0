"""Invoice assembly: the single entry point for generating an invoice.

One call runs in one database transaction. The invoice number is
allocated inside that transaction, time logs already bound to an earlier
invoice are left out, and header plus line items are written together, so
a failure leaves no partial rows behind.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from consult_billing.config import BillingSettings, get_settings
from consult_billing.engine.aggregator import aggregate_logs, select_billable_logs
from consult_billing.engine.calculator import (
    check_invoice_totals,
    compute_due_date,
    invoice_total,
    project_fee_item,
)
from consult_billing.engine.dates import DateLike, parse_date
from consult_billing.engine.numbering import next_invoice_number
from consult_billing.models import (
    Client,
    DuplicateInvoiceNumberError,
    EmptyInvoiceError,
    Engagement,
    InvalidPeriodError,
    Invoice,
    InvoiceStatus,
    LogAggregate,
    NotFoundError,
    StrictValidationError,
)
from consult_billing.storage.repository import BillingRepository

logger = logging.getLogger(__name__)


def assemble_invoice(
    engagement: Engagement,
    client: Client,
    aggregate: LogAggregate,
    invoice_number: str,
    issue_date: date,
    period_start: date,
    period_end: date,
    net_terms: int,
    notes: str = "",
) -> Invoice:
    """Build the invoice record from already-computed work.

    Hourly invoices take their lines from ``aggregate``. Project invoices
    get exactly one flat-fee line regardless of the hours logged.
    """
    if engagement.is_hourly:
        items = list(aggregate.items)
        total_hours = aggregate.total_hours
    else:
        items = [project_fee_item(engagement)]
        total_hours = Decimal("0")

    invoice = Invoice(
        engagement_id=engagement.id,
        user_id=engagement.user_id,
        invoice_number=invoice_number,
        client_name=client.name,
        project_name=engagement.project_name,
        issue_date=issue_date,
        due_date=compute_due_date(issue_date, net_terms),
        period_start=period_start,
        period_end=period_end,
        invoice_type=engagement.engagement_type,
        total_hours=total_hours,
        total_amount=invoice_total(items),
        status=InvoiceStatus.SUBMITTED,
        notes=notes,
        billing_contact_name=client.billing_contact_name,
        billing_contact_email=client.billing_contact_email,
        billing_address=client.billing_address,
        billing_city=client.billing_city,
        billing_state=client.billing_state,
        billing_zip=client.billing_zip,
        billing_country=client.billing_country,
        line_items=items,
    )
    return check_invoice_totals(invoice)


def _load_owned(repo: BillingRepository, engagement_id: int, user_id: int) -> tuple[Engagement, Client]:
    engagement = repo.get_engagement(engagement_id, user_id)
    if engagement is None:
        raise NotFoundError(f"Engagement {engagement_id} not found")
    client = repo.get_client(engagement.client_id, user_id)
    if client is None:
        raise NotFoundError(f"Client {engagement.client_id} of engagement {engagement_id} not found")
    return engagement, client


def create_invoice(
    session_factory: sessionmaker[Session],
    engagement_id: int,
    period_start: DateLike,
    period_end: DateLike,
    acting_user_id: int,
    *,
    issue_date: date,
    net_terms: Optional[int] = None,
    notes: str = "",
    allow_empty: bool = False,
    settings: Optional[BillingSettings] = None,
) -> Invoice:
    """Generate, persist and return an invoice for one engagement and period.

    Raises StrictValidationError for a non-positive ``net_terms`` before
    anything is read or allocated. Raises NotFoundError, InvalidDateError,
    InvalidPeriodError, EmptyInvoiceError, InvariantViolationError, or
    DuplicateInvoiceNumberError once number allocation has collided
    ``settings.number_allocation_attempts`` times.
    """
    settings = settings or get_settings()
    if net_terms is not None and (
        isinstance(net_terms, bool) or not isinstance(net_terms, int) or net_terms <= 0
    ):
        raise StrictValidationError([f"Net terms must be a positive number of days, got {net_terms!r}"])
    start = parse_date(period_start, settings.timezone)
    end = parse_date(period_end, settings.timezone)
    allow_empty = allow_empty or not settings.block_empty_hourly_invoices

    sequence = 0
    for attempt in range(1, settings.number_allocation_attempts + 1):
        hint = sequence
        try:
            with session_factory.begin() as session:
                repo = BillingRepository(session)
                engagement, client = _load_owned(repo, engagement_id, acting_user_id)
                if start > end:
                    raise InvalidPeriodError(start, end)

                # Taking the number first locks the counter for the rest of
                # the transaction, so the invoiced-log check below cannot race.
                number, sequence = next_invoice_number(
                    repo, settings.invoice_prefix, hint, settings.invoice_number_width,
                )

                aggregate = LogAggregate()
                if engagement.is_hourly:
                    logs = select_billable_logs(
                        repo.list_time_logs(engagement.id),
                        engagement.id,
                        start,
                        end,
                        exclude_ids=repo.invoiced_time_log_ids(engagement.id),
                        tz=settings.timezone,
                    )
                    aggregate = aggregate_logs(logs, engagement)
                    if aggregate.empty and not allow_empty:
                        raise EmptyInvoiceError(
                            f"No uninvoiced time logs for engagement {engagement.id} "
                            f"between {start} and {end}"
                        )

                invoice = assemble_invoice(
                    engagement,
                    client,
                    aggregate,
                    number,
                    issue_date,
                    start,
                    end,
                    net_terms if net_terms is not None else (engagement.net_terms or settings.default_net_terms),
                    notes,
                )
                saved = repo.save_invoice(invoice)
        except IntegrityError as e:
            logger.warning(
                "Invoice number collision for engagement %s (attempt %d/%d, sequence %d): %s",
                engagement_id, attempt, settings.number_allocation_attempts, sequence, e.orig,
            )
            continue

        logger.info(
            "Created invoice %s for engagement %s: %s hours, %s total",
            saved.invoice_number, engagement_id, saved.total_hours, saved.total_amount,
        )
        return saved

    raise DuplicateInvoiceNumberError(
        f"Could not allocate a unique invoice number for engagement {engagement_id} "
        f"after {settings.number_allocation_attempts} attempts"
    )
