import os
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from mandate_data_client.db.base import Base
from mandate_data_client import DataClient, DataClientConfig, PostgresConfig, create_data_client
from mandate_data_client.models import OrganizationCreate, UserCreate


@pytest.fixture(scope="session")
def _postgres_dsn():
    """
    По умолчанию тесты идут на sqlite (aiosqlite), контейнер не нужен.
    MDC_TEST_POSTGRES=1 поднимает PostgreSQL в Docker один раз на всю сессию.
    """
    if not os.environ.get("MDC_TEST_POSTGRES"):
        yield None
        return

    from testcontainers.postgres import PostgresContainer

    print("\nStarting PostgreSQL test container...")
    postgres = PostgresContainer("postgres:16", driver="asyncpg")
    postgres.start()
    yield postgres.get_connection_url()
    print("\nStopping PostgreSQL test container...")
    postgres.stop()


@pytest.fixture
def db_config(_postgres_dsn, tmp_path) -> DataClientConfig:
    dsn = _postgres_dsn or f"sqlite+aiosqlite:///{tmp_path / 'mandates.db'}"
    return DataClientConfig(postgres=PostgresConfig(dsn=dsn))


@pytest_asyncio.fixture
async def db_engine(db_config):
    """
    Создает движок для тестовой БД и все таблицы.
    После теста таблицы удаляются для полной изоляции.
    """
    engine = create_async_engine(db_config.postgres.get_pg_dsn())
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def data_client(db_engine, db_config) -> DataClient:
    """DataClient через фабрику, с засеянным каталогом тарифов."""
    client = create_data_client(db_config)
    await client.seed_plans()
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def organization(data_client):
    return await data_client.create_organization(OrganizationCreate(name="Hôtel du Lac SA"))


@pytest_asyncio.fixture
async def member(data_client, organization):
    """Первый пользователь организации (владелец)."""
    user = await data_client.create_user(UserCreate(email="owner@hotel-du-lac.ch", name="Owner"))
    await data_client.add_organization_member(organization.id, user.id, role="owner")
    return user
