"""ORM tables.

Money is stored as NUMERIC(12, 2) and hours as NUMERIC(8, 2). The models
refuse values finer than that, so nothing is rounded on write. Status and
type columns hold the ``.value`` of the enums in ``consult_billing.models``.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

MONEY = Numeric(12, 2)
HOURS = Numeric(8, 2)


class Base(DeclarativeBase):
    """Base class for all tables."""
    pass


class BillingContactMixin:
    billing_contact_name: Mapped[Optional[str]] = mapped_column(Text)
    billing_contact_email: Mapped[Optional[str]] = mapped_column(Text)
    billing_address: Mapped[Optional[str]] = mapped_column(Text)
    billing_city: Mapped[Optional[str]] = mapped_column(Text)
    billing_state: Mapped[Optional[str]] = mapped_column(Text)
    billing_zip: Mapped[Optional[str]] = mapped_column(Text)
    billing_country: Mapped[Optional[str]] = mapped_column(Text)


class ClientRow(BillingContactMixin, Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(Text)

    engagements: Mapped[list["EngagementRow"]] = relationship(back_populates="client")


class EngagementRow(Base):
    __tablename__ = "engagements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"))
    project_name: Mapped[str] = mapped_column(Text)
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    engagement_type: Mapped[str] = mapped_column(String(16), default="hourly")
    hourly_rate: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    project_amount: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    net_terms: Mapped[int] = mapped_column(Integer, default=30)
    description: Mapped[Optional[str]] = mapped_column(Text)

    client: Mapped[ClientRow] = relationship(back_populates="engagements", lazy="joined")


class TimeLogRow(Base):
    __tablename__ = "time_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    engagement_id: Mapped[int] = mapped_column(ForeignKey("engagements.id"), index=True)
    date: Mapped[date] = mapped_column(Date)
    hours: Mapped[Decimal] = mapped_column(HOURS)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class InvoiceRow(BillingContactMixin, Base):
    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    engagement_id: Mapped[int] = mapped_column(ForeignKey("engagements.id"), index=True)
    invoice_number: Mapped[str] = mapped_column(String(64), unique=True)
    client_name: Mapped[str] = mapped_column(Text)
    project_name: Mapped[Optional[str]] = mapped_column(Text)
    issue_date: Mapped[date] = mapped_column(Date)
    due_date: Mapped[date] = mapped_column(Date)
    period_start: Mapped[date] = mapped_column(Date)
    period_end: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(16), default="submitted")
    invoice_type: Mapped[str] = mapped_column(String(16))
    total_hours: Mapped[Decimal] = mapped_column(HOURS)
    total_amount: Mapped[Decimal] = mapped_column(MONEY)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    line_items: Mapped[list["InvoiceLineItemRow"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItemRow.id",
        lazy="selectin",
    )


class InvoiceLineItemRow(Base):
    __tablename__ = "invoice_line_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id", ondelete="CASCADE"), index=True)
    description: Mapped[str] = mapped_column(Text)
    hours: Mapped[Decimal] = mapped_column(HOURS)
    rate: Mapped[Decimal] = mapped_column(MONEY)
    amount: Mapped[Decimal] = mapped_column(MONEY)
    # A time log can be billed on at most one invoice
    time_log_id: Mapped[Optional[int]] = mapped_column(ForeignKey("time_logs.id"), unique=True)

    invoice: Mapped[InvoiceRow] = relationship(back_populates="line_items")


class InvoiceSequenceRow(Base):
    """Atomic counter behind invoice numbers, one row per prefix."""
    __tablename__ = "invoice_sequences"

    prefix: Mapped[str] = mapped_column(String(32), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, default=0)
