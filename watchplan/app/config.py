from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path(".watchplan")
DEFAULT_YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
YOUTUBE_MAX_PAGE_SIZE = 50

# Paths that live under `data_dir` unless set explicitly.
_DATA_DIR_CHILDREN: dict[str, Path] = {
    "db_path": Path("state.db"),
    "log_dir": Path("logs"),
}
_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})
_TELEMETRY_SINKS = ("none", "log")


def _under_data_dir(name: str) -> str:
    return f"Defaults to `${{WATCHPLAN_DATA_DIR}}/{_DATA_DIR_CHILDREN[name]}`."


class AppSettings(BaseSettings):
    """
    Runtime configuration for the API and the CLI.

    Options come from `WATCHPLAN_*` environment variables or a local `.env` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="WATCHPLAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        validate_default=True,
        description="Directory holding the cache database and log files.",
    )
    db_path: Path = Field(
        default=DEFAULT_DATA_DIR / _DATA_DIR_CHILDREN["db_path"],
        description=f"SQLite database holding the search cache. {_under_data_dir('db_path')}",
    )

    youtube_api_base_url: str = Field(
        default=DEFAULT_YOUTUBE_API_BASE_URL,
        description="Root of the YouTube Data API v3.",
    )
    youtube_api_key: str | None = Field(
        default=None,
        description="API key used when a request or command does not pass its own.",
    )
    youtube_http_timeout_seconds: float = Field(default=15.0, gt=0)
    youtube_user_agent: str = Field(default="watchplan/0.1")

    search_max_pages: int = Field(
        default=4,
        ge=1,
        description="Upper bound on search pages fetched per query.",
    )
    search_page_size: int = Field(
        default=YOUTUBE_MAX_PAGE_SIZE,
        description="Results per search page, clamped to 1..50.",
    )
    details_batch_size: int = Field(
        default=YOUTUBE_MAX_PAGE_SIZE,
        description="Ids per video details request, clamped to 1..50.",
    )
    search_cache_ttl_seconds: int = Field(
        default=3_600,
        ge=0,
        description="How long the cached search result stays fresh.",
    )

    log_dir: Path = Field(
        default=DEFAULT_DATA_DIR / _DATA_DIR_CHILDREN["log_dir"],
        description=f"Directory for JSON log files. {_under_data_dir('log_dir')}",
    )
    log_level: str = Field(default="INFO", description="Console log level.")

    telemetry_enabled: bool = Field(default=True)
    telemetry_sink: Literal["none", "log"] = Field(
        default="log",
        description="`log` writes telemetry events to their own log file; `none` drops them.",
    )

    @field_validator("data_dir", "db_path", "log_dir", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Any:
        if isinstance(value, str | Path):
            return Path(value).expanduser().resolve()
        return value

    @field_validator("youtube_api_base_url", mode="before")
    @classmethod
    def _strip_base_url(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        stripped = value.strip().rstrip("/")
        if not stripped:
            raise ValueError("WATCHPLAN_YOUTUBE_API_BASE_URL must not be empty.")
        return stripped

    @field_validator("youtube_api_key", mode="before")
    @classmethod
    def _blank_key_is_unset(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @field_validator("search_page_size", "details_batch_size", mode="after")
    @classmethod
    def _clamp_to_api_limit(cls, value: int) -> int:
        return max(1, min(YOUTUBE_MAX_PAGE_SIZE, value))

    @field_validator("telemetry_enabled", mode="before")
    @classmethod
    def _lenient_bool(cls, value: Any) -> bool:
        # Unrecognized values keep the default instead of failing startup.
        if isinstance(value, bool):
            return value
        normalized = str(value).strip().lower()
        if normalized in _TRUTHY:
            return True
        if normalized in _FALSY:
            return False
        return True

    @field_validator("telemetry_sink", mode="before")
    @classmethod
    def _known_sink(cls, value: Any) -> str:
        normalized = value.strip().lower() if isinstance(value, str) else value
        if normalized not in _TELEMETRY_SINKS:
            raise ValueError("WATCHPLAN_TELEMETRY_SINK must be one of: none, log.")
        return normalized


def load_settings() -> AppSettings:
    """Read settings, placing unset data-dir children under the configured `data_dir`."""
    settings = AppSettings()
    relocated = {
        name: (settings.data_dir / child).resolve()
        for name, child in _DATA_DIR_CHILDREN.items()
        if name not in settings.model_fields_set
    }
    if not relocated:
        return settings
    return settings.model_copy(update=relocated)
