"""
restfs Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the RESTFS_ENV_FILE environment variable
"""

import functools
from pathlib import Path
from typing import Annotated, Any

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "restfs_"


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")

    data_dir: Annotated[Path, Field(description="Data directory that is served over HTTP")] = Path("./data")

    host: Annotated[str, Field(description="Address to listen on")] = "0.0.0.0"
    port: Annotated[int, Field(description="Port to listen on")] = 8000

    graceful_timeout: Annotated[
        float,
        Field(
            description="Seconds to wait for open connections before forcing shutdown",
            ge=0,
        ),
    ] = 10

    gc_interval: Annotated[
        float,
        Field(
            description="Seconds between garbage collection runs for cleaning deleted files (0 disables the timer)",
            ge=0,
        ),
    ] = 3600

    access_log: Annotated[str, Field(description="Path to access log file, or - for stdout")] = "-"

    cors_origins: Annotated[
        str,
        Field(
            description="CORS origins (comma-separated). Leave empty to disable CORS headers",
        ),
    ] = ""

    prometheus: Annotated[
        str | None,
        Field(
            description="Listen address (host:port) for prometheus metrics. Leave empty to disable metrics",
        ),
    ] = None

    @model_validator(mode="after")
    def empty_prometheus(self: Any) -> "Settings":
        if not self.prometheus:
            self.prometheus = None
        return self

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    # Settings() does not read env_file by itself, so we load it into the environment first
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


def validate_settings(settings: Settings | None = None):
    settings = settings or get_settings()
    if settings.data_dir.exists() and not settings.data_dir.is_dir():
        return f"Data directory {settings.data_dir} exists but is not a directory"
    if not settings.data_dir.exists():
        return f"Data directory {settings.data_dir} does not exist and will be created"


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
