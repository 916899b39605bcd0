"""Strict validation of time logs before they are stored.

Per-log rules live on ``TimeLog`` itself; this checks what only shows up
across a batch, or between a batch and the logs already stored.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping

from consult_billing.models import Engagement, StrictValidationError, TimeLog

MAX_HOURS_PER_DAY = Decimal("24")


def validate_time_logs(
    logs: Iterable[TimeLog],
    engagements: Mapping[int, Engagement],
    existing: Iterable[TimeLog] = (),
) -> list[TimeLog]:
    """Validate a batch of time logs against their engagements.

    ``existing`` holds logs already stored; they count toward the daily
    total of any user and day the batch touches. Logging time outside the
    engagement's dates is allowed (backdating); only structural problems
    are rejected. Returns the logs if all pass.
    """
    logs = list(logs)
    errors: list[str] = []

    for log in logs:
        engagement = engagements.get(log.engagement_id)
        if engagement is None:
            errors.append(f"Time log on {log.date}: unknown engagement {log.engagement_id}")
            continue
        if engagement.user_id != log.user_id:
            errors.append(
                f"Time log on {log.date}: engagement {log.engagement_id} belongs to another user"
            )
        if log.hours > MAX_HOURS_PER_DAY:
            errors.append(f"Time log on {log.date}: hours={log.hours} > 24")

    # --- Per-user-per-date aggregation ---
    daily_totals: dict[tuple[int, date], Decimal] = defaultdict(Decimal)
    for log in logs:
        daily_totals[(log.user_id, log.date)] += log.hours
    for log in existing:
        key = (log.user_id, log.date)
        if key in daily_totals:
            daily_totals[key] += log.hours

    for (user_id, day), total in sorted(daily_totals.items()):
        if total > MAX_HOURS_PER_DAY:
            errors.append(f"User {user_id} on {day}: aggregated daily total={total} > 24")

    if errors:
        raise StrictValidationError(errors)

    return logs
