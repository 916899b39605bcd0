"""Shared fixtures: a file-backed SQLite database per test."""

from datetime import date
from decimal import Decimal

import pytest

from consult_billing.config import BillingSettings
from consult_billing.models import Client, Engagement, EngagementType, TimeLog
from consult_billing.storage import BillingRepository, init_db, make_engine, make_session_factory

USER_ID = 1
OTHER_USER_ID = 2


@pytest.fixture
def settings(tmp_path) -> BillingSettings:
    return BillingSettings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'billing.db'}",
    )


@pytest.fixture
def session_factory(settings):
    engine = make_engine(settings.database_url)
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def seeded(session_factory):
    """One client with an hourly and a project engagement; logs on the hourly one."""
    with session_factory.begin() as session:
        repo = BillingRepository(session)
        client = repo.add_client(Client(
            name="Acme Corp",
            user_id=USER_ID,
            billing_contact_name="Jane Doe",
            billing_contact_email="billing@acme.test",
            billing_city="Denver",
        ))
        hourly = repo.add_engagement(Engagement(
            client_id=client.id,
            user_id=USER_ID,
            project_name="Data Platform",
            start_date=date(2024, 1, 3),
            end_date=date(2025, 5, 3),
            engagement_type=EngagementType.HOURLY,
            hourly_rate=Decimal("150"),
            net_terms=30,
        ))
        project = repo.add_engagement(Engagement(
            client_id=client.id,
            user_id=USER_ID,
            project_name="Website Redesign",
            start_date=date(2025, 1, 1),
            end_date=date(2025, 3, 31),
            engagement_type=EngagementType.PROJECT,
            project_amount=Decimal("5000"),
            net_terms=60,
        ))
        logs = [
            repo.add_time_log(TimeLog(
                engagement_id=hourly.id, user_id=USER_ID, date=day, hours=Decimal(hours), description=text,
            ))
            for day, hours, text in [
                (date(2025, 1, 20), "2.25", "Pipeline review"),
                (date(2025, 1, 6), "3.5", "Kickoff workshop"),
                (date(2025, 2, 3), "4", "Schema migration"),
            ]
        ]
    return {"client": client, "hourly": hourly, "project": project, "logs": logs}
