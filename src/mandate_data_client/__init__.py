# Файл: src/mandate_data_client/__init__.py

from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from .client import DataClient
from .config import get_settings, DataClientConfig, PostgresConfig, LimitsConfig
from .repositories.auth.pg_repositoryUser import UserRepository
from .repositories.auth.pg_repositoryOrganization import OrganizationRepository
from .repositories.auth.pg_repositoryBilling import BillingRepository
from .repositories.pg_repositoryMandate import MandateRepository
from .repositories.pg_repositoryPayroll import PayrollRepository

from .exceptions import *

def create_data_client(config: Optional[DataClientConfig] = None) -> DataClient:
    """
    Фабричная функция для создания и конфигурации DataClient.

    :param config: Единый объект с настройками.
                   Если не предоставлен, используются переменные окружения.
    :return: Сконфигурированный экземпляр DataClient.
    """
    if config is None:
        s = get_settings()
        config = DataClientConfig(postgres=s.postgres, limits=s.limits)

    pg = config.postgres
    engine_kwargs = {}
    if pg.is_postgres:
        engine_kwargs = dict(
            pool_size=pg.pool_size,
            max_overflow=pg.max_overflow,
            pool_timeout=pg.pool_timeout,
            pool_recycle=pg.pool_recycle,
            pool_pre_ping=pg.pool_pre_ping,
            connect_args={
                "server_settings": {
                    "application_name": pg.application_name
                }
            },
        )
    engine = create_async_engine(pg.get_pg_dsn(), **engine_kwargs)

    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)

    return DataClient(
        engine=engine,
        user_repo=UserRepository(session_factory),
        org_repo=OrganizationRepository(session_factory),
        billing_repo=BillingRepository(session_factory),
        mandate_repo=MandateRepository(session_factory),
        payroll_repo=PayrollRepository(session_factory),
        limits_config=config.limits,
    )

__all__ = [
    "DataClient", "create_data_client",
    "DataClientConfig", "PostgresConfig", "LimitsConfig",
    "DataClientError", "DatabaseError", "NotFoundError", "ConfigurationError",
    "ValidationError", "LimitExceededError", "DuplicateEntryError",
]
