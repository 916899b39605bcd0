"""Canonical data model for the consulting billing engine.

Everything that crosses into the engine is one of these types. External
payloads are converted by ``consult_billing.parsers`` first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return Decimal(value).quantize(CENT, ROUND_HALF_UP)


def fits_cents(value: Decimal) -> bool:
    """True when ``value`` is finite and has at most two decimal places.

    Hours, rates and amounts are stored with scale 2, so anything finer
    would be rounded silently on write.
    """
    if not value.is_finite():
        return False
    return value.as_tuple().exponent >= -2 or value == value.quantize(CENT)


class EngagementType(Enum):
    HOURLY = "hourly"
    PROJECT = "project"


class EngagementStatus(Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class InvoiceStatus(Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PAID = "paid"
    OVERDUE = "overdue"


# --- Errors ---


class BillingError(Exception):
    """Base class for every error the engine raises."""


class InvalidDateError(BillingError, ValueError):
    """Raised for unparseable or malformed date input."""


class InvalidPeriodError(BillingError, ValueError):
    """Raised when a billing period starts after it ends."""

    def __init__(self, period_start: date, period_end: date):
        self.period_start = period_start
        self.period_end = period_end
        super().__init__(
            f"Billing period start {period_start} is after period end {period_end}"
        )


class NotFoundError(BillingError, LookupError):
    """Raised when a record is absent or not owned by the acting user."""


class EmptyInvoiceError(BillingError):
    """Raised when no billable work was found for the period."""


class DuplicateInvoiceNumberError(BillingError):
    """Raised when invoice number allocation keeps colliding."""


class InvariantViolationError(BillingError):
    """Raised when computed totals disagree. Always a defect."""


class StrictValidationError(BillingError):
    """Raised when an external record cannot become a canonical one."""
    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Strict validation failed with {len(errors)} error(s):\n" +
                         "\n".join(f"  - {e}" for e in errors))


# --- Records ---


@dataclass(frozen=True)
class Client:
    """A billing entity. Invoices snapshot its contact fields."""
    name: str
    user_id: int
    id: Optional[int] = None
    billing_contact_name: Optional[str] = None
    billing_contact_email: Optional[str] = None
    billing_address: Optional[str] = None
    billing_city: Optional[str] = None
    billing_state: Optional[str] = None
    billing_zip: Optional[str] = None
    billing_country: Optional[str] = None


@dataclass(frozen=True)
class Engagement:
    """A contract between the consultant and a client."""
    client_id: int
    user_id: int
    project_name: str
    start_date: date
    end_date: date
    engagement_type: EngagementType
    hourly_rate: Optional[Decimal] = None
    project_amount: Optional[Decimal] = None
    net_terms: int = 30
    id: Optional[int] = None
    client_name: str = ""
    description: Optional[str] = None

    def __post_init__(self) -> None:
        errors: list[str] = []
        if self.end_date < self.start_date:
            errors.append(
                f"End date {self.end_date} is before start date {self.start_date}"
            )
        if self.engagement_type == EngagementType.HOURLY:
            if self.hourly_rate is None or self.hourly_rate <= 0:
                errors.append(f"Hourly engagement needs a positive hourly rate, got {self.hourly_rate}")
            elif not fits_cents(self.hourly_rate):
                errors.append(f"Hourly rate must have at most 2 decimal places, got {self.hourly_rate}")
            if self.project_amount is not None:
                errors.append("Hourly engagement must not carry a project amount")
        else:
            if self.project_amount is None or self.project_amount <= 0:
                errors.append(f"Project engagement needs a positive project amount, got {self.project_amount}")
            elif not fits_cents(self.project_amount):
                errors.append(f"Project amount must have at most 2 decimal places, got {self.project_amount}")
            if self.hourly_rate is not None:
                errors.append("Project engagement must not carry an hourly rate")
        if isinstance(self.net_terms, bool) or not isinstance(self.net_terms, int) or self.net_terms <= 0:
            errors.append(f"Net terms must be a positive number of days, got {self.net_terms!r}")
        if errors:
            raise StrictValidationError(errors)

    @property
    def is_hourly(self) -> bool:
        return self.engagement_type == EngagementType.HOURLY

    def status(self, as_of: date) -> EngagementStatus:
        from consult_billing.engine.status import resolve_status

        return resolve_status(self.start_date, self.end_date, as_of)


@dataclass(frozen=True)
class TimeLog:
    """One entry of work against an engagement."""
    engagement_id: int
    user_id: int
    date: date
    hours: Decimal
    description: str = ""
    id: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.hours.is_finite() or self.hours <= 0:
            raise StrictValidationError(
                [f"Time log on {self.date}: hours must be positive, got {self.hours}"]
            )
        if not fits_cents(self.hours):
            raise StrictValidationError(
                [f"Time log on {self.date}: hours must have at most 2 decimal places, got {self.hours}"]
            )


@dataclass(frozen=True)
class InvoiceLineItem:
    description: str
    hours: Decimal
    rate: Decimal
    amount: Decimal
    time_log_id: Optional[int] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class LogAggregate:
    """Time logs of one period reduced to invoice lines."""
    total_hours: Decimal = Decimal("0")
    total_amount: Decimal = ZERO
    items: tuple[InvoiceLineItem, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.items


@dataclass
class Invoice:
    """A billing document: header snapshot plus its line items."""
    engagement_id: int
    user_id: int
    invoice_number: str
    client_name: str
    project_name: str
    issue_date: date
    due_date: date
    period_start: date
    period_end: date
    invoice_type: EngagementType
    total_hours: Decimal
    total_amount: Decimal
    status: InvoiceStatus = InvoiceStatus.SUBMITTED
    notes: str = ""
    billing_contact_name: Optional[str] = None
    billing_contact_email: Optional[str] = None
    billing_address: Optional[str] = None
    billing_city: Optional[str] = None
    billing_state: Optional[str] = None
    billing_zip: Optional[str] = None
    billing_country: Optional[str] = None
    line_items: list[InvoiceLineItem] = field(default_factory=list)
    id: Optional[int] = None

    @property
    def line_item_total(self) -> Decimal:
        return sum((item.amount for item in self.line_items), ZERO)

    @property
    def line_item_hours(self) -> Decimal:
        return sum((item.hours for item in self.line_items), Decimal("0"))
