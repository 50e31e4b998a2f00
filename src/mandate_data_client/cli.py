import asyncio
import typer
import logging
import sys
if sys.platform == "win32":
    # Принудительно устанавливаем политику, которая использует SelectorEventLoop.
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
from rich.table import Table

from mandate_data_client.config import get_settings
from mandate_data_client import create_data_client
from mandate_data_client.entitlements.catalog import parse_feature
from mandate_data_client.exceptions import DataClientError, ValidationError
from mandate_data_client.logging import configure as configure_logging
from mandate_data_client.utils.cli_utils import get_rich_console, parse_uuid, format_limit

from mandate_data_client.db.base import Base
from sqlalchemy.ext.asyncio import create_async_engine


app = typer.Typer(help="CLI for mandate-data-client management.")
logger = logging.getLogger(__name__)
console = get_rich_console()


@app.callback()
def main(log_level: str = typer.Option(None, "--log-level", help="Overrides LOG_LEVEL.")):
    configure_logging(log_level)


def _run(coro_factory):
    """Создает клиент, выполняет корутину и закрывает движок. Ошибки клиента -> exit code 1."""
    async def _inner():
        client = create_data_client()
        try:
            return await coro_factory(client)
        finally:
            await client.aclose()
    try:
        return asyncio.run(_inner())
    except DataClientError as e:
        console.print(f"[bold red]✖[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def init():
    """
    Creates DB tables and seeds the plan catalog.
    """
    console.rule("[bold cyan]Database Initialization[/bold cyan]")

    with console.status("Creating database tables...", spinner="dots"):
        async def _create_tables():
            try:
                settings = get_settings()
                engine = create_async_engine(settings.postgres.get_pg_dsn())
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
                await engine.dispose()
                console.log("[bold green]✔[/bold green] Database tables created successfully.")
            except Exception as e:
                console.log(f"[bold red]✖[/bold red] Database initialization FAILED: {e}")
                raise typer.Exit(code=1)

        asyncio.run(_create_tables())

    plans = _run(lambda client: client.seed_plans())
    console.log(f"[bold green]✔[/bold green] Plan catalog seeded ({len(plans)} plans).")
    console.print("\n[bold green]✅ Initialization complete![/bold green]")


@app.command()
def check():
    """Checks connectivity to the database."""
    console.rule("[bold cyan]Connection Check[/bold cyan]")
    statuses = _run(lambda client: client.check_connections())
    db_status = statuses.get("database", "unknown error")
    if db_status == "ok":
        console.print("[bold green]✔[/bold green] Database connection: OK")
    else:
        console.print(f"[bold red]✖[/bold red] Database connection: FAILED ({db_status})")
        raise typer.Exit(code=1)


@app.command("seed-plans")
def seed_plans():
    """Creates or updates every plan of the catalog."""
    plans = _run(lambda client: client.seed_plans())
    for plan in plans:
        console.print(f"[bold green]✔[/bold green] Plan {plan.name} (ID: {plan.id})")


@app.command()
def plans():
    """Lists active plans and their limits."""
    rows = _run(lambda client: client.list_plans())
    table = Table(title="Plans")
    for col in ("name", "users", "mandates", "storage MB", "payroll", "reports", "api"):
        table.add_column(col)
    for p in rows:
        table.add_row(
            p.name, format_limit(p.max_users), format_limit(p.max_mandates), format_limit(p.max_storage),
            str(p.allow_payroll_access), str(p.has_advanced_reports), str(p.has_api_access),
        )
    console.print(table)


@app.command("change-plan")
def change_plan(email: str, plan: str):
    """Switches the organization of EMAIL to PLAN (FREE, PREMIUM, SUPER_ADMIN, ILLIMITE, CUSTOM)."""
    subscription = _run(lambda client: client.change_user_plan(email, plan))
    console.print(
        f"[bold green]✔[/bold green] Plan changed to {plan} for {email} "
        f"(until {subscription.current_period_end:%Y-%m-%d})"
    )


@app.command()
def limits(organization_id: str):
    """Shows plan limits and current usage for an organization."""
    org_id = parse_uuid(organization_id, "organization id")
    summary = _run(lambda client: client.get_limits_summary(org_id))
    state = "active" if summary.is_active else "fallback"
    table = Table(title=f"Plan {summary.plan_name.value} ({state})")
    for col in ("dimension", "current", "limit", "used %", "allowed"):
        table.add_column(col)
    for dimension, result in summary.limits.items():
        table.add_row(
            dimension.value, str(result.current), format_limit(result.limit),
            "-" if result.percentage is None else f"{result.percentage}%", str(result.allowed),
        )
    console.print(table)


@app.command()
def access(user_id: str, feature: str):
    """Checks whether USER_ID may use FEATURE."""
    uid = parse_uuid(user_id, "user id")
    try:
        feature_name = parse_feature(feature)
    except ValidationError as e:
        console.print(f"[bold red]✖[/bold red] {e}")
        raise typer.Exit(code=1)
    decision = _run(lambda client: client.describe_feature_access(uid, feature_name))
    if decision.allowed:
        console.print(f"[bold green]✔[/bold green] Access to '{feature}' granted")
    else:
        plan = decision.current_plan.value if decision.current_plan else "none"
        console.print(f"[bold red]✖[/bold red] Access to '{feature}' denied (plan: {plan})")


@app.command()
def payroll(mandate_id: str):
    """Shows the authoritative employee count of a mandate."""
    mid = parse_uuid(mandate_id, "mandate id")
    result = _run(lambda client: client.resolve_authoritative_payroll(mid))
    source = result.source.value if result.source else "none"
    console.print(f"Employees: {result.employee_count if result.employee_count is not None else '-'} (source: {source})")
    if result.current_month_ratio is not None:
        console.print(f"Payroll / revenue this month: {result.current_month_ratio:.1f}%")
    elif not result.has_payroll_data:
        console.print("No payroll data recorded")


@app.command("fix-mandate-stats")
def fix_mandate_stats():
    """Finds mandates whose cached revenue/last entry drifted and repairs them."""
    drifted = _run(lambda client: client.verify_mandate_stats())
    for d in drifted:
        console.print(
            f"🔧 {d.name}: total {d.stored_total} → {d.calculated_total}, "
            f"last entry {d.stored_last_entry} → {d.calculated_last_entry}"
        )
    console.print(f"[bold green]✔[/bold green] {len(drifted)} mandate(s) corrected")


if __name__ == "__main__":
    app()
