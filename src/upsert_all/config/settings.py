"""
Configuration management for upsert-all.

Settings come from the environment (and an optional ``.env`` file) through
pydantic-settings. Tuning knobs for the upsert engine are read without a
prefix; database connection fields use the ``UPSERT_`` prefix.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import structlog
from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

logger = structlog.get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
PSYCOPG2_DRIVERNAME = "postgresql+psycopg2"


def _resolve_env_file() -> Path:
    """UPSERT_ENV_FILE if set (relative paths are taken from the project root)."""
    override = os.getenv("UPSERT_ENV_FILE")
    if not override:
        return DEFAULT_ENV_FILE
    path = Path(override).expanduser()
    return path if path.is_absolute() else PROJECT_ROOT / path


def pin_psycopg2_driver(uri: str) -> str:
    """
    Name the psycopg2 driver in a PostgreSQL URI that names none.

    Example:
        >>> pin_psycopg2_driver("postgres://u:p@h/d")
        'postgresql+psycopg2://u:p@h/d'
    """
    for scheme in ("postgres://", "postgresql://"):
        if uri.startswith(scheme):
            return f"{PSYCOPG2_DRIVERNAME}://{uri[len(scheme):]}"
    return uri


class Settings(BaseSettings):
    """
    Runtime configuration.

    Unprefixed fields:
    - ENVIRONMENT: dev, staging or prod
    - LOG_LEVEL: Logging level name
    - DB_POOL_SIZE: Pool size of the default engine
    - DB_BATCH_SIZE: Records per upsert statement
    - DB_STATEMENT_TIMEOUT: Per-batch statement timeout in seconds

    Connection fields take the UPSERT_ prefix: either a full URI
    (UPSERT_DATABASE__URI or UPSERT_DATABASE_URI) or the UPSERT_DATABASE_HOST,
    _PORT, _USER, _PASSWORD and _DB components.
    """

    ENVIRONMENT: Literal["dev", "staging", "prod"] = Field(
        default="dev", validation_alias="ENVIRONMENT"
    )
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    DB_POOL_SIZE: int = Field(default=5, gt=0, validation_alias="DB_POOL_SIZE")
    DB_BATCH_SIZE: int = Field(
        default=100,
        gt=0,
        validation_alias="DB_BATCH_SIZE",
        description="Records rendered into one upsert statement",
    )
    DB_STATEMENT_TIMEOUT: int = Field(
        default=60,
        gt=0,
        validation_alias="DB_STATEMENT_TIMEOUT",
        description="Seconds before a single batch statement is cancelled",
    )

    database_host: str = "localhost"
    database_port: int = 5432
    database_user: str = "postgres"
    database_password: str = ""
    database_db: str = "postgres"
    database_uri: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "UPSERT_DATABASE__URI", "UPSERT_DATABASE_URI", "database_uri"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="UPSERT_",
        env_file=str(_resolve_env_file()),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def get_database_connection_string(self) -> str:
        """
        Database URL for SQLAlchemy.

        A configured URI wins over the component fields. URIs without a
        driver (``postgres://`` or ``postgresql://``) are pinned to psycopg2.
        """
        if self.database_uri:
            return pin_psycopg2_driver(self.database_uri)
        url = URL.create(
            PSYCOPG2_DRIVERNAME,
            username=self.database_user,
            password=self.database_password,
            host=self.database_host,
            port=self.database_port,
            database=self.database_db,
        )
        return url.render_as_string(hide_password=False)

    @model_validator(mode="after")
    def _require_postgresql_in_prod(self) -> "Settings":
        url = self.get_database_connection_string()
        if self.ENVIRONMENT == "prod" and not url.startswith("postgresql"):
            logger.error("configuration.invalid_database_url", environment=self.ENVIRONMENT)
            raise ValueError(
                "Production environment requires a PostgreSQL database URL, "
                f"got scheme {url.split(':', 1)[0]!r}"
            )
        return self


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


@lru_cache()
def get_engine():
    """
    Cached default SQLAlchemy engine.

    Its pool serves every upsert call that does not pass its own connection.
    """
    import sqlalchemy as sa

    settings = get_settings()
    engine = sa.create_engine(
        settings.get_database_connection_string(),
        pool_size=settings.DB_POOL_SIZE,
        pool_pre_ping=True,
    )
    logger.info(
        "database.engine.created",
        pool_size=settings.DB_POOL_SIZE,
        environment=settings.ENVIRONMENT,
    )
    return engine
