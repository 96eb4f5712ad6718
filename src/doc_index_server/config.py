"""Centralized configuration for doc-index-server using Pydantic Settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every field maps to the upper-case environment variable of the same name
    (``PORT``, ``DATA_DIR``, ...) and may also come from a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Directory holding collection files")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="HTTP port")
    gzip_minimum_size: int = Field(default=500, ge=0, description="Smallest response body (bytes) to gzip")

    # Query defaults
    default_search_limit: int = Field(default=10, ge=0, description="Hits returned when a query sets no limit")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")
    access_log: bool = Field(default=False, description="Keep uvicorn access logs at INFO")

    # Tracing
    otlp_traces_endpoint: str = Field(default="", description="OTLP/HTTP traces endpoint; empty keeps spans in-process")
