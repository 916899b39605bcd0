"""Date, status, aggregation, calculation and dashboard engines."""
from consult_billing.engine.dates import parse_date, preset_range, ranges_overlap, to_day_boundary
from consult_billing.engine.status import filter_engagements, resolve_status
from consult_billing.engine.aggregator import aggregate_logs, select_billable_logs
from consult_billing.engine.calculator import billable_amount, compute_due_date, invoice_total
from consult_billing.engine.metrics import dashboard_stats, monthly_revenue

__all__ = [
    "parse_date",
    "preset_range",
    "ranges_overlap",
    "to_day_boundary",
    "filter_engagements",
    "resolve_status",
    "aggregate_logs",
    "select_billable_logs",
    "billable_amount",
    "compute_due_date",
    "invoice_total",
    "dashboard_stats",
    "monthly_revenue",
]
