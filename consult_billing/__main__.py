"""CLI entry point.

Usage:
    python -m consult_billing init-db
    python -m consult_billing load --file records.json
    python -m consult_billing status 2024-01-03 2025-05-03 --as-of 2025-02-01
    python -m consult_billing due-date 2024-02-01 --net-terms 30
    python -m consult_billing create-invoice \
        --user-id 1 --engagement-id 3 \
        --period-start 2025-01-01 --period-end 2025-01-31 \
        --json-out invoice.json
    python -m consult_billing mark-overdue --user-id 1

The database comes from BILLING_DATABASE_URL (default: ./billing.db).
"""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from consult_billing.config import get_settings
from consult_billing.models import BillingError, StrictValidationError

app = typer.Typer(help="Consulting billing engine: engagement status, invoices, due dates.")


def _session_factory(init: bool = False):
    from consult_billing.storage import init_db, make_engine, make_session_factory

    engine = make_engine(get_settings().database_url)
    if init:
        init_db(engine)
    return make_session_factory(engine)


def _fail(error: BillingError) -> None:
    if isinstance(error, StrictValidationError):
        typer.echo("VALIDATION FAILED:", err=True)
        for message in error.errors:
            typer.echo(f"  ERROR: {message}", err=True)
    else:
        typer.echo(f"ERROR ({type(error).__name__}): {error}", err=True)
    raise typer.Exit(1)


def _check_link_id(kind: str, record_id: Optional[int], seen: dict) -> None:
    """Records in a load file are linked by id, so each needs a unique one."""
    if record_id is None:
        raise StrictValidationError([f"{kind} record without an id cannot be linked"])
    if record_id in seen:
        raise StrictValidationError([f"{kind} id {record_id} appears more than once"])


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output")) -> None:
    level = logging.DEBUG if verbose else get_settings().log_level
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command("init-db")
def init_db_command() -> None:
    """Create the database tables."""
    _session_factory(init=True)
    typer.echo(f"Database ready: {get_settings().database_url}")


@app.command()
def load(
    file: Path = typer.Option(..., "--file", exists=True, dir_okay=False, help="JSON with clients, engagements, time_logs"),
) -> None:
    """Import clients, engagements and time logs from a JSON file.

    Ids in the file only link records to each other, so every client and
    engagement needs a unique one; the database assigns new ones. Daily
    hour limits take the user's stored logs into account.
    """
    from consult_billing.engine.validator import validate_time_logs
    from consult_billing.models import Engagement
    from consult_billing.parsers import parse_client, parse_engagement, parse_time_log
    from consult_billing.storage import BillingRepository

    data = json.loads(file.read_text(encoding="utf-8"))
    tz = get_settings().timezone
    session_factory = _session_factory(init=True)

    try:
        with session_factory.begin() as session:
            repo = BillingRepository(session)
            client_ids: dict[int, int] = {}
            engagements: dict[int, Engagement] = {}

            for record in data.get("clients", []):
                client = parse_client(record)
                _check_link_id("Client", client.id, client_ids)
                client_ids[client.id] = repo.add_client(client).id

            for record in data.get("engagements", []):
                engagement = parse_engagement(record, tz)
                _check_link_id("Engagement", engagement.id, engagements)
                if engagement.client_id not in client_ids:
                    raise StrictValidationError([f"Engagement {engagement.id}: unknown client {engagement.client_id}"])
                engagements[engagement.id] = repo.add_engagement(
                    dataclasses.replace(engagement, id=None, client_id=client_ids[engagement.client_id])
                )

            logs = [parse_time_log(record, tz) for record in data.get("time_logs", [])]
            stored = []
            for user_id in {log.user_id for log in logs}:
                days = [log.date for log in logs if log.user_id == user_id]
                stored.extend(repo.list_user_time_logs(user_id, min(days), max(days)))
            validate_time_logs(logs, engagements, existing=stored)
            for log in logs:
                repo.add_time_log(
                    dataclasses.replace(log, id=None, engagement_id=engagements[log.engagement_id].id)
                )
    except BillingError as e:
        _fail(e)

    typer.echo(f"Loaded {len(client_ids)} client(s), {len(engagements)} engagement(s), {len(logs)} time log(s)")


@app.command()
def status(
    start_date: str = typer.Argument(..., help="Engagement start date (YYYY-MM-DD)"),
    end_date: str = typer.Argument(..., help="Engagement end date (YYYY-MM-DD)"),
    as_of: Optional[str] = typer.Option(None, "--as-of", help="Evaluate on this day instead of today"),
) -> None:
    """Print the derived status of an engagement date range."""
    from consult_billing.engine.dates import parse_date, today
    from consult_billing.engine.status import resolve_status

    try:
        day = parse_date(as_of) if as_of else today(get_settings().timezone)
        typer.echo(resolve_status(start_date, end_date, day).value)
    except BillingError as e:
        _fail(e)


@app.command("due-date")
def due_date(
    issue_date: str = typer.Argument(..., help="Invoice issue date (YYYY-MM-DD)"),
    net_terms: int = typer.Option(30, "--net-terms", min=1, help="Payment terms in calendar days"),
) -> None:
    """Print the due date for an issue date and net terms."""
    from consult_billing.engine.calculator import compute_due_date
    from consult_billing.engine.dates import parse_date

    try:
        typer.echo(compute_due_date(parse_date(issue_date), net_terms).isoformat())
    except BillingError as e:
        _fail(e)


@app.command("create-invoice")
def create_invoice_command(
    user_id: int = typer.Option(..., "--user-id", help="Acting user"),
    engagement_id: int = typer.Option(..., "--engagement-id"),
    period_start: str = typer.Option(..., "--period-start", help="First day of the billing period"),
    period_end: str = typer.Option(..., "--period-end", help="Last day of the billing period"),
    net_terms: Optional[int] = typer.Option(None, "--net-terms", min=1, help="Override the engagement's net terms"),
    notes: str = typer.Option("", "--notes"),
    issue_date: Optional[str] = typer.Option(None, "--issue-date", help="Defaults to today"),
    allow_empty: bool = typer.Option(False, "--allow-empty", help="Issue an hourly invoice even with no time logs"),
    json_out: Optional[Path] = typer.Option(None, "--json-out", help="Write the invoice record as JSON"),
) -> None:
    """Generate and store an invoice for one engagement and billing period."""
    from consult_billing.audit import write_invoice_json
    from consult_billing.engine.assembly import create_invoice
    from consult_billing.engine.dates import parse_date, today

    settings = get_settings()
    try:
        invoice = create_invoice(
            _session_factory(),
            engagement_id,
            period_start,
            period_end,
            user_id,
            issue_date=parse_date(issue_date) if issue_date else today(settings.timezone),
            net_terms=net_terms,
            notes=notes,
            allow_empty=allow_empty,
            settings=settings,
        )
    except BillingError as e:
        _fail(e)

    typer.echo(f"Invoice {invoice.invoice_number} ({invoice.invoice_type.value})")
    typer.echo(f"  Client:  {invoice.client_name} / {invoice.project_name}")
    typer.echo(f"  Period:  {invoice.period_start} - {invoice.period_end}")
    for item in invoice.line_items:
        typer.echo(f"    {item.description}: {item.hours}h x ${item.rate} = ${item.amount}")
    typer.echo(f"  Hours:   {invoice.total_hours}")
    typer.echo(f"  TOTAL:   ${invoice.total_amount}")
    typer.echo(f"  Due:     {invoice.due_date}")

    if json_out is not None:
        write_invoice_json(invoice, json_out)
        typer.echo(f"  Invoice record saved to: {json_out}")


@app.command("mark-overdue")
def mark_overdue(
    user_id: int = typer.Option(..., "--user-id"),
    as_of: Optional[str] = typer.Option(None, "--as-of"),
) -> None:
    """Flag unpaid invoices whose due date has passed."""
    from consult_billing.engine.dates import parse_date, today
    from consult_billing.storage import BillingRepository

    try:
        day = parse_date(as_of) if as_of else today(get_settings().timezone)
    except BillingError as e:
        _fail(e)
    with _session_factory().begin() as session:
        changed = BillingRepository(session).mark_overdue(user_id, day)
    typer.echo(f"{changed} invoice(s) marked overdue")


if __name__ == "__main__":
    app()
