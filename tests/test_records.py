"""Tests for external record normalization."""

import pytest
from decimal import Decimal
from datetime import date

from consult_billing.models import EngagementType, StrictValidationError
from consult_billing.parsers import parse_client, parse_engagement, parse_time_log


def _engagement_record(**kwargs) -> dict:
    record = {
        "id": 3,
        "userId": 1,
        "clientId": 7,
        "clientName": "Acme Corp",
        "projectName": "Data Platform",
        "startDate": "2024-01-03",
        "endDate": "2025-05-03T00:00:00.000Z",
        "engagementType": "hourly",
        "hourlyRate": "150.00",
        "projectAmount": "",
        "netTerms": "30",
        "status": "completed",
    }
    record.update(kwargs)
    return record


class TestParseEngagement:
    def test_camel_case_with_string_numbers(self):
        engagement = parse_engagement(_engagement_record())
        assert engagement.id == 3
        assert engagement.client_id == 7
        assert engagement.client_name == "Acme Corp"
        assert engagement.start_date == date(2024, 1, 3)
        assert engagement.end_date == date(2025, 5, 3)
        assert engagement.engagement_type == EngagementType.HOURLY
        assert engagement.hourly_rate == Decimal("150.00")
        assert engagement.project_amount is None
        assert engagement.net_terms == 30

    def test_snake_case(self):
        engagement = parse_engagement({
            "user_id": 1,
            "client_id": 7,
            "project_name": "Website Redesign",
            "start_date": "2025-01-01",
            "end_date": "2025-03-31",
            "engagement_type": "project",
            "project_amount": 5000,
            "net_terms": 60,
        })
        assert engagement.engagement_type == EngagementType.PROJECT
        assert engagement.project_amount == Decimal("5000")
        assert engagement.hourly_rate is None
        assert engagement.net_terms == 60

    def test_float_keeps_printed_value(self):
        engagement = parse_engagement(_engagement_record(hourlyRate=0.1))
        assert engagement.hourly_rate == Decimal("0.1")

    def test_type_defaults_to_hourly(self):
        record = _engagement_record()
        del record["engagementType"]
        assert parse_engagement(record).engagement_type == EngagementType.HOURLY

    def test_amount_of_other_type_is_dropped(self):
        engagement = parse_engagement(_engagement_record(projectAmount="9999"))
        assert engagement.project_amount is None

    def test_missing_net_terms_default_to_30(self):
        record = _engagement_record()
        del record["netTerms"]
        assert parse_engagement(record).net_terms == 30

    def test_errors_are_collected(self):
        record = _engagement_record(
            startDate="someday", netTerms="thirty", engagementType="retainer", projectName="  ",
        )
        del record["userId"]
        with pytest.raises(StrictValidationError) as exc_info:
            parse_engagement(record)
        errors = exc_info.value.errors
        assert any("engagement_type" in e for e in errors)
        assert any("project_name is required" in e for e in errors)
        assert any("net_terms" in e for e in errors)
        assert any("user_id is required" in e for e in errors)
        assert any("start_date" in e for e in errors)

    def test_model_rules_still_apply(self):
        with pytest.raises(StrictValidationError, match="before start date"):
            parse_engagement(_engagement_record(startDate="2025-06-01", endDate="2025-05-31"))

    def test_sub_cent_rate_rejected(self):
        with pytest.raises(StrictValidationError, match="at most 2 decimal places"):
            parse_engagement(_engagement_record(hourlyRate=150.125))


class TestParseTimeLog:
    def test_camel_case(self):
        log = parse_time_log({
            "id": "11",
            "userId": "1",
            "engagementId": 3,
            "date": "2025-01-06T09:00:00Z",
            "hours": "3.50",
            "description": "Kickoff workshop",
        })
        assert log.id == 11
        assert log.engagement_id == 3
        assert log.date == date(2025, 1, 6)
        assert log.hours == Decimal("3.50")
        assert log.description == "Kickoff workshop"

    def test_missing_hours(self):
        with pytest.raises(StrictValidationError, match="hours is required"):
            parse_time_log({"user_id": 1, "engagement_id": 3, "date": "2025-01-06"})

    @pytest.mark.parametrize("hours", ["abc", True, "NaN"])
    def test_bad_hours(self, hours):
        with pytest.raises(StrictValidationError, match="hours"):
            parse_time_log({"user_id": 1, "engagement_id": 3, "date": "2025-01-06", "hours": hours})

    def test_non_positive_hours(self):
        with pytest.raises(StrictValidationError, match="hours must be positive"):
            parse_time_log({"user_id": 1, "engagement_id": 3, "date": "2025-01-06", "hours": "0"})

    @pytest.mark.parametrize("hours", ["0.125", 0.001])
    def test_sub_hundredth_hours_rejected(self, hours):
        with pytest.raises(StrictValidationError, match="at most 2 decimal places"):
            parse_time_log({"user_id": 1, "engagement_id": 3, "date": "2025-01-06", "hours": hours})


class TestParseClient:
    def test_contact_fields(self):
        client = parse_client({
            "id": 7,
            "userId": 1,
            "name": " Acme Corp ",
            "billingContactEmail": "billing@acme.test",
            "billingCity": "Denver",
            "billingZip": "",
        })
        assert client.name == "Acme Corp"
        assert client.billing_contact_email == "billing@acme.test"
        assert client.billing_city == "Denver"
        assert client.billing_zip is None

    def test_name_required(self):
        with pytest.raises(StrictValidationError, match="name is required"):
            parse_client({"user_id": 1})
