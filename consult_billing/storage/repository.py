"""Persistence operations used by the billing engine.

The repository works inside whatever transaction its session is in; it
never commits. Rows are converted to the canonical dataclasses on the way
out so the engine never sees ORM objects.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import date
from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from consult_billing.engine.calculator import is_overdue
from consult_billing.models import (
    Client,
    Engagement,
    EngagementType,
    Invoice,
    InvoiceLineItem,
    InvoiceStatus,
    TimeLog,
)
from consult_billing.storage.tables import (
    ClientRow,
    EngagementRow,
    InvoiceLineItemRow,
    InvoiceRow,
    InvoiceSequenceRow,
    TimeLogRow,
)

logger = logging.getLogger(__name__)

CONTACT_FIELDS = (
    "billing_contact_name",
    "billing_contact_email",
    "billing_address",
    "billing_city",
    "billing_state",
    "billing_zip",
    "billing_country",
)


def _client_from_row(row: ClientRow) -> Client:
    return Client(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        **{name: getattr(row, name) for name in CONTACT_FIELDS},
    )


def _engagement_from_row(row: EngagementRow) -> Engagement:
    return Engagement(
        id=row.id,
        user_id=row.user_id,
        client_id=row.client_id,
        client_name=row.client.name if row.client is not None else "",
        project_name=row.project_name,
        start_date=row.start_date,
        end_date=row.end_date,
        engagement_type=EngagementType(row.engagement_type),
        hourly_rate=row.hourly_rate,
        project_amount=row.project_amount,
        net_terms=row.net_terms,
        description=row.description,
    )


def _time_log_from_row(row: TimeLogRow) -> TimeLog:
    return TimeLog(
        id=row.id,
        user_id=row.user_id,
        engagement_id=row.engagement_id,
        date=row.date,
        hours=row.hours,
        description=row.description or "",
    )


def _invoice_from_row(row: InvoiceRow) -> Invoice:
    return Invoice(
        id=row.id,
        user_id=row.user_id,
        engagement_id=row.engagement_id,
        invoice_number=row.invoice_number,
        client_name=row.client_name,
        project_name=row.project_name or "",
        issue_date=row.issue_date,
        due_date=row.due_date,
        period_start=row.period_start,
        period_end=row.period_end,
        status=InvoiceStatus(row.status),
        invoice_type=EngagementType(row.invoice_type),
        total_hours=row.total_hours,
        total_amount=row.total_amount,
        notes=row.notes or "",
        line_items=[
            InvoiceLineItem(
                id=item.id,
                description=item.description,
                hours=item.hours,
                rate=item.rate,
                amount=item.amount,
                time_log_id=item.time_log_id,
            )
            for item in row.line_items
        ],
        **{name: getattr(row, name) for name in CONTACT_FIELDS},
    )


class BillingRepository:
    def __init__(self, session: Session):
        self.session = session

    # --- Clients / engagements / time logs ---

    def add_client(self, client: Client) -> Client:
        row = ClientRow(
            user_id=client.user_id,
            name=client.name,
            **{name: getattr(client, name) for name in CONTACT_FIELDS},
        )
        self.session.add(row)
        self.session.flush()
        return dataclasses.replace(client, id=row.id)

    def get_client(self, client_id: int, user_id: int) -> Optional[Client]:
        row = self.session.get(ClientRow, client_id)
        if row is None or row.user_id != user_id:
            return None
        return _client_from_row(row)

    def add_engagement(self, engagement: Engagement) -> Engagement:
        row = EngagementRow(
            user_id=engagement.user_id,
            client_id=engagement.client_id,
            project_name=engagement.project_name,
            start_date=engagement.start_date,
            end_date=engagement.end_date,
            engagement_type=engagement.engagement_type.value,
            hourly_rate=engagement.hourly_rate,
            project_amount=engagement.project_amount,
            net_terms=engagement.net_terms,
            description=engagement.description,
        )
        self.session.add(row)
        self.session.flush()
        self.session.refresh(row)
        return _engagement_from_row(row)

    def get_engagement(self, engagement_id: int, user_id: int) -> Optional[Engagement]:
        """Ownership-scoped lookup: another user's engagement reads as absent."""
        row = self.session.scalar(
            select(EngagementRow).where(
                EngagementRow.id == engagement_id,
                EngagementRow.user_id == user_id,
            )
        )
        return _engagement_from_row(row) if row is not None else None

    def list_engagements(self, user_id: int) -> list[Engagement]:
        rows = self.session.scalars(
            select(EngagementRow)
            .where(EngagementRow.user_id == user_id)
            .order_by(EngagementRow.start_date, EngagementRow.id)
        ).unique()
        return [_engagement_from_row(row) for row in rows]

    def add_time_log(self, log: TimeLog) -> TimeLog:
        row = TimeLogRow(
            user_id=log.user_id,
            engagement_id=log.engagement_id,
            date=log.date,
            hours=log.hours,
            description=log.description,
        )
        self.session.add(row)
        self.session.flush()
        return dataclasses.replace(log, id=row.id)

    def list_time_logs(self, engagement_id: int) -> list[TimeLog]:
        """All logs of an engagement in insertion order."""
        rows = self.session.scalars(
            select(TimeLogRow)
            .where(TimeLogRow.engagement_id == engagement_id)
            .order_by(TimeLogRow.id)
        )
        return [_time_log_from_row(row) for row in rows]

    def list_user_time_logs(self, user_id: int, start: date, end: date) -> list[TimeLog]:
        """A user's logs across all engagements dated within [start, end]."""
        rows = self.session.scalars(
            select(TimeLogRow)
            .where(
                TimeLogRow.user_id == user_id,
                TimeLogRow.date >= start,
                TimeLogRow.date <= end,
            )
            .order_by(TimeLogRow.date, TimeLogRow.id)
        )
        return [_time_log_from_row(row) for row in rows]

    def invoiced_time_log_ids(self, engagement_id: int) -> set[int]:
        rows = self.session.scalars(
            select(InvoiceLineItemRow.time_log_id)
            .join(TimeLogRow, TimeLogRow.id == InvoiceLineItemRow.time_log_id)
            .where(TimeLogRow.engagement_id == engagement_id)
        )
        return set(rows)

    # --- Invoices ---

    def allocate_sequence(self, prefix: str, hint: int = 0) -> int:
        """Increment the counter for ``prefix`` and return the new value.

        The counter never ends below ``hint + 1``. The UPDATE takes the row
        lock, so concurrent transactions wait here until this one ends.
        """
        result = self.session.execute(
            update(InvoiceSequenceRow)
            .where(InvoiceSequenceRow.prefix == prefix)
            .values(value=case(
                (InvoiceSequenceRow.value > hint, InvoiceSequenceRow.value + 1),
                else_=hint + 1,
            ))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.session.add(InvoiceSequenceRow(prefix=prefix, value=hint + 1))
            self.session.flush()
            return hint + 1
        return self.session.scalar(
            select(InvoiceSequenceRow.value).where(InvoiceSequenceRow.prefix == prefix)
        )

    def invoice_number_exists(self, invoice_number: str) -> bool:
        found = self.session.scalar(
            select(InvoiceRow.id).where(InvoiceRow.invoice_number == invoice_number)
        )
        return found is not None

    def save_invoice(self, invoice: Invoice) -> Invoice:
        """Write header and line items in the current transaction."""
        row = InvoiceRow(
            user_id=invoice.user_id,
            engagement_id=invoice.engagement_id,
            invoice_number=invoice.invoice_number,
            client_name=invoice.client_name,
            project_name=invoice.project_name,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            period_start=invoice.period_start,
            period_end=invoice.period_end,
            status=invoice.status.value,
            invoice_type=invoice.invoice_type.value,
            total_hours=invoice.total_hours,
            total_amount=invoice.total_amount,
            notes=invoice.notes,
            line_items=[
                InvoiceLineItemRow(
                    description=item.description,
                    hours=item.hours,
                    rate=item.rate,
                    amount=item.amount,
                    time_log_id=item.time_log_id,
                )
                for item in invoice.line_items
            ],
            **{name: getattr(invoice, name) for name in CONTACT_FIELDS},
        )
        self.session.add(row)
        self.session.flush()
        return dataclasses.replace(
            invoice,
            id=row.id,
            line_items=[
                dataclasses.replace(item, id=item_row.id)
                for item, item_row in zip(invoice.line_items, row.line_items)
            ],
        )

    def get_invoice(self, invoice_id: int, user_id: int) -> Optional[Invoice]:
        row = self.session.get(InvoiceRow, invoice_id)
        if row is None or row.user_id != user_id:
            return None
        return _invoice_from_row(row)

    def list_invoices(self, user_id: int) -> list[Invoice]:
        rows = self.session.scalars(
            select(InvoiceRow)
            .where(InvoiceRow.user_id == user_id)
            .order_by(InvoiceRow.issue_date.desc(), InvoiceRow.id.desc())
        )
        return [_invoice_from_row(row) for row in rows]

    def update_invoice_status(self, invoice_id: int, user_id: int, status: InvoiceStatus) -> Optional[Invoice]:
        row = self.session.get(InvoiceRow, invoice_id)
        if row is None or row.user_id != user_id:
            return None
        row.status = status.value
        self.session.flush()
        logger.info("Invoice %s set to %s", row.invoice_number, status.value)
        return _invoice_from_row(row)

    def mark_overdue(self, user_id: int, as_of: date) -> int:
        """Flag unpaid invoices past their due date. Returns how many changed."""
        rows = self.session.scalars(
            select(InvoiceRow).where(
                InvoiceRow.user_id == user_id,
                InvoiceRow.status.in_([InvoiceStatus.DRAFT.value, InvoiceStatus.SUBMITTED.value]),
                InvoiceRow.due_date < as_of,
            )
        ).all()
        changed = 0
        for row in rows:
            if is_overdue(_invoice_from_row(row), as_of):
                row.status = InvoiceStatus.OVERDUE.value
                changed += 1
                logger.info("Invoice %s is overdue (due %s)", row.invoice_number, row.due_date)
        self.session.flush()
        return changed
