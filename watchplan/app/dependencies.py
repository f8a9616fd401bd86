from __future__ import annotations

from functools import lru_cache

from watchplan.app.config import AppSettings, load_settings
from watchplan.app.repositories.database import Database
from watchplan.app.repositories.search_cache_repository import SearchCacheRepository
from watchplan.app.services.youtube_client import YouTubeDataClient
from watchplan.app.services.youtube_search_service import YouTubeSearchService
from watchplan.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_search_service() -> YouTubeSearchService:
    settings = get_settings()
    return build_search_service(settings, telemetry=get_telemetry())


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


def build_search_service(
    settings: AppSettings,
    *,
    telemetry: TelemetryClient | None = None,
) -> YouTubeSearchService:
    database = Database(settings.db_path)
    database.initialize()

    return YouTubeSearchService(
        client=YouTubeDataClient(
            base_url=settings.youtube_api_base_url,
            timeout_seconds=settings.youtube_http_timeout_seconds,
            user_agent=settings.youtube_user_agent,
        ),
        cache_repository=SearchCacheRepository(
            database,
            ttl_ms=settings.search_cache_ttl_seconds * 1000,
        ),
        telemetry=telemetry,
        max_pages=settings.search_max_pages,
        page_size=settings.search_page_size,
        details_batch_size=settings.details_batch_size,
    )


def reset_cached_dependencies() -> None:
    get_search_service.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
