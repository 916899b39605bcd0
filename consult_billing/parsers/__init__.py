"""Normalization of external records into canonical types."""
from consult_billing.parsers.records import parse_client, parse_engagement, parse_time_log

__all__ = ["parse_client", "parse_engagement", "parse_time_log"]
