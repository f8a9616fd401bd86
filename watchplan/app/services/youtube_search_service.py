from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from watchplan.app.models.videos import EnrichedVideo, RawVideo
from watchplan.app.repositories.search_cache_repository import SearchCacheRepository
from watchplan.app.services.youtube_client import (
    MAX_IDS_PER_DETAILS_REQUEST,
    MAX_RESULTS_PER_PAGE,
    YouTubeApiError,
    YouTubeSearchClient,
    YouTubeServiceError,
)
from watchplan.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("watchplan.youtube")

DEFAULT_MAX_PAGES = 4
# YouTube Data API quota costs per call.
SEARCH_LIST_UNITS = 100
VIDEOS_LIST_UNITS = 1

__all__ = [
    "CredentialMissingError",
    "DetailEnrichment",
    "QueryMissingError",
    "SearchCollection",
    "YouTubeApiError",
    "YouTubeSearchResult",
    "YouTubeSearchService",
    "YouTubeServiceError",
    "collect_search_results",
    "enrich_with_details",
    "extract_video_id",
]


class CredentialMissingError(YouTubeServiceError):
    pass


class QueryMissingError(YouTubeServiceError):
    pass


@dataclass(frozen=True)
class SearchCollection:
    videos: list[RawVideo]
    pages_fetched: int


@dataclass(frozen=True)
class DetailEnrichment:
    videos: list[EnrichedVideo]
    batches_fetched: int


@dataclass(frozen=True)
class YouTubeSearchResult:
    videos: list[EnrichedVideo]
    cache_hit: bool
    pages_fetched: int = 0
    detail_batches: int = 0

    @property
    def estimated_api_units(self) -> int:
        return self.pages_fetched * SEARCH_LIST_UNITS + self.detail_batches * VIDEOS_LIST_UNITS


class YouTubeSearchService:
    def __init__(
        self,
        *,
        client: YouTubeSearchClient,
        cache_repository: SearchCacheRepository,
        telemetry: TelemetryClient | None = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        page_size: int = MAX_RESULTS_PER_PAGE,
        details_batch_size: int = MAX_IDS_PER_DETAILS_REQUEST,
    ) -> None:
        self._client = client
        self._cache_repository = cache_repository
        self._telemetry = telemetry or TelemetryClient.disabled()
        self._max_pages = max(1, max_pages)
        self._page_size = max(1, min(MAX_RESULTS_PER_PAGE, page_size))
        self._details_batch_size = max(1, min(MAX_IDS_PER_DETAILS_REQUEST, details_batch_size))

    def search(self, query: str, api_key: str | None) -> YouTubeSearchResult:
        """Return enriched search results for `query`, served from cache when fresh.

        Raises `CredentialMissingError` / `QueryMissingError` before any I/O, and
        `YouTubeApiError` when any page or details batch fails. Nothing is cached
        unless the whole pipeline succeeds.
        """
        if api_key is None or not api_key.strip():
            raise CredentialMissingError("A YouTube API key is required to search.")
        if not query or not query.strip():
            raise QueryMissingError("A search query is required.")

        cached = self._cache_repository.get(query)
        if cached is not None:
            LOGGER.info("youtube search cache_hit query=%s videos=%s", query, len(cached))
            self._telemetry.emit("youtube.search.cache_hit", videos=len(cached))
            return YouTubeSearchResult(videos=cached, cache_hit=True)

        with self._telemetry.span("youtube.search") as closing:
            try:
                collection = collect_search_results(
                    self._client,
                    query,
                    api_key,
                    max_pages=self._max_pages,
                    page_size=self._page_size,
                )
                enrichment = enrich_with_details(
                    self._client,
                    collection.videos,
                    api_key,
                    batch_size=self._details_batch_size,
                )
            except YouTubeApiError as exc:
                LOGGER.warning(
                    "youtube search failed query=%s status=%s error=%s",
                    query,
                    exc.status_code,
                    exc,
                )
                raise

            self._cache_repository.put(query, enrichment.videos)
            result = YouTubeSearchResult(
                videos=enrichment.videos,
                cache_hit=False,
                pages_fetched=collection.pages_fetched,
                detail_batches=enrichment.batches_fetched,
            )
            closing.update(
                videos=len(result.videos),
                pages=result.pages_fetched,
                detail_batches=result.detail_batches,
                estimated_api_units=result.estimated_api_units,
            )

        LOGGER.info(
            "youtube search cached query=%s videos=%s pages=%s detail_batches=%s units=%s",
            query,
            len(result.videos),
            result.pages_fetched,
            result.detail_batches,
            result.estimated_api_units,
        )
        return result


def collect_search_results(
    client: YouTubeSearchClient,
    query: str,
    api_key: str,
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
    page_size: int = MAX_RESULTS_PER_PAGE,
) -> SearchCollection:
    clamped_page_size = max(1, min(MAX_RESULTS_PER_PAGE, page_size))
    videos: list[RawVideo] = []
    next_page_token: str | None = None
    pages_fetched = 0

    while pages_fetched < max(1, max_pages):
        page = client.search_page(
            query=query,
            api_key=api_key,
            page_token=next_page_token,
            page_size=clamped_page_size,
        )
        pages_fetched += 1
        # Providers occasionally overfill a page; never keep more than requested.
        for item in page.items[:clamped_page_size]:
            raw_video = _raw_video_from_search_item(item)
            if raw_video is not None:
                videos.append(raw_video)

        if page.next_page_token is None:
            break
        next_page_token = page.next_page_token

    LOGGER.debug("youtube search collected videos=%s pages=%s", len(videos), pages_fetched)
    return SearchCollection(videos=videos, pages_fetched=pages_fetched)


def enrich_with_details(
    client: YouTubeSearchClient,
    videos: Sequence[RawVideo],
    api_key: str,
    *,
    batch_size: int = MAX_IDS_PER_DETAILS_REQUEST,
) -> DetailEnrichment:
    clamped_batch_size = max(1, min(MAX_IDS_PER_DETAILS_REQUEST, batch_size))
    pending_ids: deque[str] = deque(video.video_id for video in videos)
    detail_pool: list[dict[str, Any]] = []
    batches_fetched = 0

    while pending_ids:
        batch = [pending_ids.popleft() for _ in range(min(clamped_batch_size, len(pending_ids)))]
        detail_pool.extend(client.video_details(video_ids=batch, api_key=api_key))
        batches_fetched += 1

    # Upstream ids may repeat, so the first matching record wins.
    enriched = [
        EnrichedVideo.from_raw(video, duration=_first_duration_for(video.video_id, detail_pool))
        for video in videos
    ]
    return DetailEnrichment(videos=enriched, batches_fetched=batches_fetched)


def extract_video_id(raw_id: object) -> str | None:
    """Normalize the two id shapes the API uses: `"abc"` and `{"videoId": "abc"}`."""
    if isinstance(raw_id, str):
        return raw_id if raw_id.strip() else None
    if isinstance(raw_id, dict):
        nested = raw_id.get("videoId")
        if isinstance(nested, str) and nested.strip():
            return nested
    return None


def _first_duration_for(video_id: str, detail_pool: list[dict[str, Any]]) -> str | None:
    for detail in detail_pool:
        if extract_video_id(detail.get("id")) != video_id:
            continue
        content_details = detail.get("contentDetails")
        if isinstance(content_details, dict):
            duration = content_details.get("duration")
            if isinstance(duration, str):
                return duration
        return None
    return None


def _raw_video_from_search_item(item: dict[str, Any]) -> RawVideo | None:
    video_id = extract_video_id(item.get("id"))
    if video_id is None:
        LOGGER.debug("youtube search item skipped reason=missing_id")
        return None

    snippet = item.get("snippet")
    snippet_dict: dict[str, Any] = snippet if isinstance(snippet, dict) else {}
    title = snippet_dict.get("title")
    description = snippet_dict.get("description")
    return RawVideo(
        video_id=video_id,
        title=title if isinstance(title, str) else "",
        description=description if isinstance(description, str) else "",
    )
