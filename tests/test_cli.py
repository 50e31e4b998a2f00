import asyncio
import sys
import uuid

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

import pytest
from sqlalchemy import create_engine, inspect
from typer.testing import CliRunner

from mandate_data_client import create_data_client
from mandate_data_client.cli import app
from mandate_data_client.config import reset_settings
from mandate_data_client.models import OrganizationCreate, UserCreate

runner = CliRunner()


@pytest.fixture
def sqlite_env(tmp_path, monkeypatch):
    """CLI читает настройки из окружения: направляем его в отдельный sqlite-файл."""
    db_file = tmp_path / "cli.db"
    monkeypatch.setenv("POSTGRES__DSN", f"sqlite+aiosqlite:///{db_file}")
    reset_settings()
    yield db_file
    reset_settings()


def _create_owner(email: str) -> tuple[uuid.UUID, uuid.UUID]:
    async def _inner():
        client = create_data_client()
        try:
            org = await client.create_organization(OrganizationCreate(name="CLI Hotel"))
            user = await client.create_user(UserCreate(email=email, name="Owner"))
            await client.add_organization_member(org.id, user.id, role="owner")
            return org.id, user.id
        finally:
            await client.aclose()
    return asyncio.run(_inner())


def test_cli_init_and_check(sqlite_env):
    # --- ACT 1: инициализация ---
    result_init = runner.invoke(app, ["init"])

    # --- ASSERT 1 ---
    assert result_init.exit_code == 0, f"Команда 'init' провалилась: {result_init.output}"
    assert "Database tables created successfully" in result_init.output
    assert "Plan catalog seeded (5 plans)" in result_init.output

    engine = create_engine(f"sqlite:///{sqlite_env}")
    inspector = inspect(engine)
    for table in ("plans", "subscriptions", "organizations", "mandates", "day_values"):
        assert inspector.has_table(table), f"Таблица '{table}' не была создана"
    engine.dispose()

    # --- ACT 2 / ASSERT 2 ---
    result_check = runner.invoke(app, ["check"])
    assert result_check.exit_code == 0
    assert "Database connection: OK" in result_check.output

    result_plans = runner.invoke(app, ["plans"])
    assert result_plans.exit_code == 0
    assert "PREMIUM" in result_plans.output


def test_cli_plan_change_and_access(sqlite_env):
    assert runner.invoke(app, ["init"]).exit_code == 0
    org_id, user_id = _create_owner("owner@cli-hotel.ch")

    denied = runner.invoke(app, ["access", str(user_id), "payroll"])
    assert denied.exit_code == 0
    assert "denied (plan: FREE)" in denied.output

    changed = runner.invoke(app, ["change-plan", "owner@cli-hotel.ch", "PREMIUM"])
    assert changed.exit_code == 0, changed.output
    assert "Plan changed to PREMIUM" in changed.output

    granted = runner.invoke(app, ["access", str(user_id), "payroll"])
    assert "granted" in granted.output

    limits = runner.invoke(app, ["limits", str(org_id)])
    assert limits.exit_code == 0
    assert "PREMIUM" in limits.output
    assert "users" in limits.output

    fixed = runner.invoke(app, ["fix-mandate-stats"])
    assert fixed.exit_code == 0
    assert "0 mandate(s) corrected" in fixed.output


def test_cli_errors_exit_with_code_1(sqlite_env):
    assert runner.invoke(app, ["init"]).exit_code == 0

    unknown_org = runner.invoke(app, ["limits", str(uuid.uuid4())])
    assert unknown_org.exit_code == 1
    assert "not found" in unknown_org.output

    bad_plan = runner.invoke(app, ["change-plan", "nobody@example.com", "PREMIUM"])
    assert bad_plan.exit_code == 1

    bad_uuid = runner.invoke(app, ["payroll", "not-a-uuid"])
    assert bad_uuid.exit_code != 0

    typo = runner.invoke(app, ["access", str(uuid.uuid4()), "payrol"])
    assert typo.exit_code == 1
    assert "Unknown feature" in typo.output
