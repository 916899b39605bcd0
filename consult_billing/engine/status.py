"""Engagement lifecycle status, derived from dates at read time.

Status is for display and filtering only. Nothing in the engine refuses a
time log because its engagement is upcoming or completed.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from consult_billing.engine.dates import DateLike, parse_date, ranges_overlap
from consult_billing.models import Engagement, EngagementStatus


def resolve_status(start_date: DateLike, end_date: DateLike, as_of: DateLike) -> EngagementStatus:
    """Both boundaries are inclusive: an engagement is active on its first and last day."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    today = parse_date(as_of)

    if today < start:
        return EngagementStatus.UPCOMING
    if today > end:
        return EngagementStatus.COMPLETED
    return EngagementStatus.ACTIVE


def filter_engagements(
    engagements: Iterable[Engagement],
    as_of: date,
    client_name: Optional[str] = None,
    range_start: Optional[date] = None,
    range_end: Optional[date] = None,
    status: Optional[EngagementStatus] = None,
) -> list[Engagement]:
    """Keep engagements matching every given filter, in input order.

    A date filter keeps an engagement whose span overlaps the range at all,
    whether it starts inside it, ends inside it or spans it entirely.
    Open-ended ranges are allowed by passing only one bound.
    """
    result = []
    for engagement in engagements:
        if client_name is not None and engagement.client_name != client_name:
            continue
        if range_start is not None or range_end is not None:
            lo = range_start if range_start is not None else date.min
            hi = range_end if range_end is not None else date.max
            if not ranges_overlap(engagement.start_date, engagement.end_date, lo, hi):
                continue
        if status is not None and resolve_status(engagement.start_date, engagement.end_date, as_of) != status:
            continue
        result.append(engagement)
    return result
