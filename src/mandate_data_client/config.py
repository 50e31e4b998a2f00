# Файл: src/mandate_data_client/config.py

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

# --- 1. Настройки PostgreSQL ---
class PostgresConfig(BaseModel):
    user: str = "postgres"
    password: str = "postgres"
    host: str = "localhost"
    port: int = 5432
    db: str = "mandates"

    # Полный DSN имеет приоритет над отдельными полями (удобно для тестов и sqlite).
    dsn: str | None = None

    pool_size: int = 5
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    application_name: str = "mandate_data_client"

    def get_pg_dsn(self) -> str:
        """Собирает DSN для SQLAlchemy из полей этого объекта."""
        if self.dsn:
            return self.dsn
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"

    @property
    def is_postgres(self) -> bool:
        return self.get_pg_dsn().startswith("postgresql")


# --- 2. Настройки тарифных лимитов ---
class LimitsConfig(BaseModel):
    # maxStorage в тарифе хранится в мегабайтах
    storage_unit_bytes: int = 1024 * 1024
    # срок подписки при смене тарифа вручную (скрипт change-plan)
    plan_period_days: int = 365
    upgrade_url: str = "/pricing"


# --- 3. Явная конфигурация клиента ---
class DataClientConfig(BaseModel):
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)


# --- 4. Settings из .env ---
class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        # двойной разделитель: у вложенных полей в именах есть "_" (pool_size, upgrade_url)
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)


_cached_settings: Optional[Settings] = None

def get_settings() -> Settings:
    """
    Возвращает синглтон-экземпляр настроек, создавая его при первом вызове.
    Это предотвращает ошибки валидации при импорте.
    """
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = Settings()
    return _cached_settings


def reset_settings() -> None:
    """Сбрасывает кэш настроек (нужно, если переменные окружения поменялись)."""
    global _cached_settings
    _cached_settings = None
