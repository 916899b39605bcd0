"""Tests for strict validation of time-log batches."""

import pytest
from decimal import Decimal
from datetime import date

from consult_billing.engine.validator import validate_time_logs
from consult_billing.models import (
    Engagement,
    EngagementType,
    StrictValidationError,
    TimeLog,
)


def _make_engagements() -> dict:
    engagement = Engagement(
        id=10,
        client_id=1,
        user_id=1,
        project_name="Data Platform",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 3, 31),
        engagement_type=EngagementType.HOURLY,
        hourly_rate=Decimal("150"),
    )
    return {10: engagement}


def _make_log(**kwargs) -> TimeLog:
    defaults = dict(
        engagement_id=10,
        user_id=1,
        date=date(2025, 1, 10),
        hours=Decimal("8"),
    )
    defaults.update(kwargs)
    return TimeLog(**defaults)


class TestValidator:
    def test_valid_logs_pass(self):
        result = validate_time_logs([_make_log()], _make_engagements())
        assert len(result) == 1

    def test_empty_batch_passes(self):
        assert validate_time_logs([], _make_engagements()) == []

    def test_backdated_log_is_allowed(self):
        log = _make_log(date=date(2024, 11, 30))
        assert validate_time_logs([log], _make_engagements()) == [log]

    def test_unknown_engagement_fails(self):
        with pytest.raises(StrictValidationError, match="unknown engagement 99"):
            validate_time_logs([_make_log(engagement_id=99)], _make_engagements())

    def test_other_users_engagement_fails(self):
        with pytest.raises(StrictValidationError, match="belongs to another user"):
            validate_time_logs([_make_log(user_id=2)], _make_engagements())

    def test_more_than_24_hours_fails(self):
        with pytest.raises(StrictValidationError, match="> 24"):
            validate_time_logs([_make_log(hours=Decimal("25"))], _make_engagements())

    def test_daily_aggregate_over_24_fails(self):
        logs = [_make_log(hours=Decimal("14")), _make_log(hours=Decimal("12"))]
        with pytest.raises(StrictValidationError, match="aggregated daily total=26"):
            validate_time_logs(logs, _make_engagements())

    def test_exactly_24_passes(self):
        logs = [_make_log(hours=Decimal("12")), _make_log(hours=Decimal("12"))]
        assert len(validate_time_logs(logs, _make_engagements())) == 2

    def test_all_errors_reported(self):
        logs = [_make_log(engagement_id=99), _make_log(user_id=2, hours=Decimal("25"))]
        with pytest.raises(StrictValidationError) as exc_info:
            validate_time_logs(logs, _make_engagements())
        assert len(exc_info.value.errors) == 4

    def test_stored_hours_count_toward_daily_total(self):
        stored = [_make_log(id=1, hours=Decimal("20"))]
        with pytest.raises(StrictValidationError, match="aggregated daily total=28"):
            validate_time_logs([_make_log(hours=Decimal("8"))], _make_engagements(), existing=stored)

    def test_stored_hours_on_other_days_ignored(self):
        stored = [
            _make_log(id=1, date=date(2025, 1, 9), hours=Decimal("20")),
            _make_log(id=2, user_id=2, hours=Decimal("20")),
        ]
        log = _make_log(hours=Decimal("8"))
        assert validate_time_logs([log], _make_engagements(), existing=stored) == [log]
