"""Normalization boundary for engagement, time-log and client records.

Records arrive from forms and older API clients in mixed shapes: keys in
camelCase or snake_case, numbers as strings or numbers, blank strings for
missing values. Everything is converted here, once, into the canonical
types of ``consult_billing.models``. Problems are collected and raised
together as one StrictValidationError.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from consult_billing.engine.dates import parse_date
from consult_billing.models import (
    Client,
    Engagement,
    EngagementType,
    InvalidDateError,
    StrictValidationError,
    TimeLog,
)

_MISSING = object()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _field(record: Mapping[str, Any], name: str, *aliases: str) -> Any:
    """Look a field up under its snake_case, camelCase or alias spelling."""
    for key in (name, _camel(name), *aliases):
        if key in record:
            value = record[key]
            if isinstance(value, str) and not value.strip():
                return None
            return value
    return _MISSING


def _present(value: Any) -> bool:
    return value is not _MISSING and value is not None


def _decimal(value: Any, label: str, errors: list[str]) -> Optional[Decimal]:
    if not _present(value):
        return None
    if isinstance(value, bool):
        errors.append(f"{label}: expected a number, got {value!r}")
        return None
    try:
        # str() first so floats keep their printed value (0.1, not 0.1000000000000000055)
        number = Decimal(str(value).strip().replace(",", ""))
    except (InvalidOperation, ValueError):
        errors.append(f"{label}: not a number: {value!r}")
        return None
    if not number.is_finite():
        errors.append(f"{label}: not a finite number: {value!r}")
        return None
    return number


def _int(value: Any, label: str, errors: list[str]) -> Optional[int]:
    number = _decimal(value, label, errors)
    if number is None:
        return None
    if number != number.to_integral_value():
        errors.append(f"{label}: expected a whole number, got {value!r}")
        return None
    return int(number)


def _date(value: Any, label: str, errors: list[str], tz: Optional[str]):
    if not _present(value):
        errors.append(f"{label} is required")
        return None
    try:
        return parse_date(value, tz)
    except InvalidDateError as e:
        errors.append(f"{label}: {e}")
        return None


def _required_int(record: Mapping[str, Any], name: str, errors: list[str]) -> Optional[int]:
    value = _field(record, name)
    if not _present(value):
        errors.append(f"{name} is required")
        return None
    return _int(value, name, errors)


def parse_engagement(record: Mapping[str, Any], tz: Optional[str] = None) -> Engagement:
    """Convert an external engagement record into an Engagement.

    A stored ``status`` is ignored; status is always derived from dates.
    """
    errors: list[str] = []

    raw_type = _field(record, "engagement_type", "type")
    try:
        engagement_type = EngagementType(str(raw_type).strip().lower()) if _present(raw_type) else EngagementType.HOURLY
    except ValueError:
        errors.append(f"engagement_type: expected 'hourly' or 'project', got {raw_type!r}")
        engagement_type = None

    project_name = _field(record, "project_name", "name")
    if not _present(project_name):
        errors.append("project_name is required")

    net_terms = _int(_field(record, "net_terms"), "net_terms", errors)
    hourly_rate = _decimal(_field(record, "hourly_rate", "rate"), "hourly_rate", errors)
    project_amount = _decimal(_field(record, "project_amount"), "project_amount", errors)
    # Forms send both fields; only the one matching the type is meaningful
    if engagement_type == EngagementType.HOURLY:
        project_amount = None
    elif engagement_type == EngagementType.PROJECT:
        hourly_rate = None

    fields = dict(
        id=_int(_field(record, "id"), "id", errors),
        user_id=_required_int(record, "user_id", errors),
        client_id=_required_int(record, "client_id", errors),
        client_name=_field(record, "client_name"),
        project_name=project_name,
        start_date=_date(_field(record, "start_date"), "start_date", errors, tz),
        end_date=_date(_field(record, "end_date"), "end_date", errors, tz),
        engagement_type=engagement_type,
        hourly_rate=hourly_rate,
        project_amount=project_amount,
        net_terms=net_terms if net_terms is not None else 30,
        description=_field(record, "description"),
    )
    if errors:
        raise StrictValidationError(errors)

    fields["client_name"] = str(fields["client_name"]) if _present(fields["client_name"]) else ""
    fields["project_name"] = str(project_name).strip()
    if not _present(fields["description"]):
        fields["description"] = None
    return Engagement(**fields)


def parse_time_log(record: Mapping[str, Any], tz: Optional[str] = None) -> TimeLog:
    errors: list[str] = []
    hours = _decimal(_field(record, "hours"), "hours", errors)
    if hours is None and not errors:
        errors.append("hours is required")

    fields = dict(
        id=_int(_field(record, "id"), "id", errors),
        user_id=_required_int(record, "user_id", errors),
        engagement_id=_required_int(record, "engagement_id", errors),
        date=_date(_field(record, "date"), "date", errors, tz),
        hours=hours,
    )
    if errors:
        raise StrictValidationError(errors)

    description = _field(record, "description")
    return TimeLog(description=str(description) if _present(description) else "", **fields)


def parse_client(record: Mapping[str, Any]) -> Client:
    errors: list[str] = []
    name = _field(record, "name", "client_name", "clientName")
    if not _present(name):
        errors.append("name is required")

    contact = {}
    for key in (
        "billing_contact_name",
        "billing_contact_email",
        "billing_address",
        "billing_city",
        "billing_state",
        "billing_zip",
        "billing_country",
    ):
        value = _field(record, key)
        contact[key] = str(value).strip() if _present(value) else None

    fields = dict(
        id=_int(_field(record, "id"), "id", errors),
        user_id=_required_int(record, "user_id", errors),
    )
    if errors:
        raise StrictValidationError(errors)
    return Client(name=str(name).strip(), **fields, **contact)

