"""Time-log selection and aggregation for one billing period."""

from __future__ import annotations

from datetime import tzinfo
from decimal import Decimal
from typing import Iterable

from consult_billing.engine.calculator import billable_amount
from consult_billing.engine.dates import DateLike, to_day_boundary
from consult_billing.models import (
    ZERO,
    Engagement,
    InvalidPeriodError,
    InvoiceLineItem,
    LogAggregate,
    TimeLog,
)


def select_billable_logs(
    logs: Iterable[TimeLog],
    engagement_id: int,
    period_start: DateLike,
    period_end: DateLike,
    exclude_ids: Iterable[int] = (),
    tz: str | tzinfo | None = None,
) -> list[TimeLog]:
    """Logs of one engagement dated inside the inclusive period.

    Logs whose id is in ``exclude_ids`` (already invoiced) are skipped.
    Ordered by date; logs on the same date keep their input order.
    """
    lo = to_day_boundary(period_start, "start", tz)
    hi = to_day_boundary(period_end, "end", tz)
    if lo > hi:
        raise InvalidPeriodError(lo.date(), hi.date())

    excluded = set(exclude_ids)
    selected = [
        log for log in logs
        if log.engagement_id == engagement_id
        and (log.id is None or log.id not in excluded)
        and lo <= to_day_boundary(log.date, "start", tz) <= hi
    ]
    # sorted() is stable, which gives insertion order for equal dates
    return sorted(selected, key=lambda log: log.date)


def _line_description(log: TimeLog) -> str:
    text = log.description.strip() if log.description else ""
    suffix = f"(Date: {log.date.isoformat()})"
    return f"{text} {suffix}" if text else f"Consulting services {suffix}"


def aggregate_logs(logs: Iterable[TimeLog], engagement: Engagement) -> LogAggregate:
    """Reduce selected logs to totals and line items.

    Project engagements produce no time-based lines and report zero hours;
    their flat fee is added by the invoice assembly.
    """
    logs = list(logs)
    if not engagement.is_hourly or not logs:
        return LogAggregate()

    rate = engagement.hourly_rate
    items = tuple(
        InvoiceLineItem(
            description=_line_description(log),
            hours=log.hours,
            rate=rate,
            amount=billable_amount(log, engagement),
            time_log_id=log.id,
        )
        for log in logs
    )
    total_hours = sum((item.hours for item in items), Decimal("0"))
    total_amount = sum((item.amount for item in items), ZERO)
    return LogAggregate(total_hours=total_hours, total_amount=total_amount, items=items)
