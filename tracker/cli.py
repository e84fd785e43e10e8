"""Tracker CLI - serve the API, manage the database, inspect action plans."""

from __future__ import annotations

import asyncio
import json
from datetime import date, timedelta

import typer
from rich.console import Console
from rich.table import Table

from .config import settings
from .errors import ActionPlanError

app = typer.Typer(
    name="tracker",
    help="Services opportunity tracker - dispositions and action plans",
    no_args_is_help=True,
)
console = Console()

DEMO_OPPORTUNITIES = [
    {
        "name": "Acme Expansion FY25",
        "account_name": "Acme Corp",
        "owner_name": "Dana Whitfield",
        "stage_name": "Negotiation",
        "has_services_flag": True,
        "amount": 120000.0,
        "services_forecast": 18000.0,
        "forecast_category": "Commit",
        "start_in_days": 30,
    },
    {
        "name": "Globex Renewal",
        "account_name": "Globex",
        "owner_name": "Sam Ortega",
        "stage_name": "Proposal",
        "has_services_flag": False,
        "amount": 64000.0,
        "services_forecast": 0.0,
        "forecast_category": "Best Case",
        "start_in_days": 10,
    },
    {
        "name": "Initech New Logo",
        "account_name": "Initech",
        "owner_name": "Priya Raman",
        "stage_name": "Discovery",
        "has_services_flag": True,
        "amount": 45000.0,
        "services_forecast": 9000.0,
        "forecast_category": "Pipeline",
        "start_in_days": None,
    },
]


@app.command()
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Launch the tracker JSON API."""
    import uvicorn

    console.print(f"[bold cyan]Starting tracker API at http://{host}:{port}[/bold cyan]")
    uvicorn.run("tracker.app:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db():
    """Create tables for the configured database (SQLite) or run migrations."""
    if settings.is_sqlite:
        from .database import create_all

        asyncio.run(create_all())
        console.print(f"[green]Tables created in {settings.database_url}[/green]")
        return

    from alembic import command
    from alembic.config import Config

    command.upgrade(Config(str(settings.base_dir / "alembic.ini")), "head")
    console.print("[green]Migrations applied.[/green]")


@app.command()
def seed():
    """Insert a few demo opportunities with default dispositions."""
    from .database import async_session_factory, create_all
    from .services import opportunity_svc

    async def _seed() -> list:
        if settings.is_sqlite:
            await create_all()
        created = []
        async with async_session_factory() as db:
            for demo in DEMO_OPPORTUNITIES:
                fields = dict(demo)
                offset = fields.pop("start_in_days")
                if offset is not None:
                    fields["subscription_start_date"] = date.today() + timedelta(days=offset)
                created.append(await opportunity_svc.create_opportunity(db, **fields))
        return created

    opps = asyncio.run(_seed())
    table = Table(title="Seeded Opportunities")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Start Date")
    table.add_column("Services Flag")
    for opp in opps:
        table.add_row(
            str(opp.id),
            opp.name,
            opp.subscription_start_date.isoformat() if opp.subscription_start_date else "-",
            "yes" if opp.has_services_flag else "no",
        )
    console.print(table)


@app.command()
def show(
    opportunity_id: str = typer.Argument(..., help="Opportunity UUID"),
    user_id: str = typer.Option("cli", "--user", "-u", help="Acting user id"),
    base_url: str = typer.Option(None, "--base-url", help="Tracker API base URL"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show an opportunity's disposition and action plan."""
    from .client.api import ActionPlanClient
    from .client.due_dates import (
        DUE_DATE_STYLES,
        format_due_date,
        get_due_date_descriptor,
        get_due_date_status,
    )

    async def _fetch():
        async with ActionPlanClient(user_id, base_url) as client:
            return await client.get_opportunity(opportunity_id)

    try:
        opp = asyncio.run(_fetch())
    except ActionPlanError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    if json_output:
        snapshot = opp.snapshot
        console.print_json(json.dumps({
            "id": opp.opportunity_id,
            "name": opp.name,
            "disposition": vars(snapshot.disposition),
            "actionItems": [item.to_payload() for item in snapshot.action_items],
        }, default=str))
        return

    disposition = opp.disposition
    console.print(f"[bold]{opp.name}[/bold] [dim]{opp.opportunity_id}[/dim]")
    console.print(
        f"Disposition: [cyan]{disposition.status}[/cyan] (v{disposition.version})"
        + (f" - {disposition.reason}" if disposition.reason else "")
    )
    if disposition.notes:
        console.print(f"Notes: {disposition.notes}")

    if not opp.action_items:
        console.print("[dim]No action items.[/dim]")
        return

    table = Table(title="Action Plan")
    table.add_column("Task", style="cyan")
    table.add_column("Status")
    table.add_column("Due")
    table.add_column("", style="dim")
    table.add_column("Assignee")
    for item in opp.action_items:
        status = get_due_date_status(item.due_date)
        table.add_row(
            item.name,
            item.status,
            f"[{DUE_DATE_STYLES[status]}]{format_due_date(item.due_date) or '-'}[/]",
            get_due_date_descriptor(item.due_date),
            item.assigned_to_user_id,
        )
    console.print(table)


if __name__ == "__main__":
    app()
