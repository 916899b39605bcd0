"""SQLAlchemy persistence layer."""
from consult_billing.storage.database import init_db, make_engine, make_session_factory
from consult_billing.storage.repository import BillingRepository

__all__ = ["init_db", "make_engine", "make_session_factory", "BillingRepository"]
