"""
Configuration settings for cachecheck.

Uses Pydantic Settings to load environment variables for the upstream database,
the cache endpoint, logging, and workload generation defaults.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Upstream database (writes, direct reads)
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("cachecheck", alias="DB_NAME")

    # Cache endpoint (cached reads); falls back to the upstream coordinates
    cache_host: Optional[str] = Field(None, alias="CACHE_HOST")
    cache_port: Optional[int] = Field(None, alias="CACHE_PORT")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    results_dir: str = Field("results", alias="RESULTS_DIR")

    # Workload generation
    id_domain_size: int = Field(2**31 - 1, alias="ID_DOMAIN_SIZE", gt=0)
    max_insert_rows: int = Field(5, alias="MAX_INSERT_ROWS", gt=0)

    # Driver
    iterations: int = Field(100, alias="ITERATIONS", ge=0)
    create_caches: bool = Field(False, alias="CREATE_CACHES")
    read_retry_attempts: int = Field(10, alias="READ_RETRY_ATTEMPTS", gt=0)
    read_retry_wait_seconds: float = Field(0.2, alias="READ_RETRY_WAIT_SECONDS", ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def upstream_dsn(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    def cache_dsn(self) -> str:
        host = self.cache_host or self.db_host
        port = self.cache_port or self.db_port
        return f"postgresql://{self.db_user}:{self.db_password}@{host}:{port}/{self.db_name}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
