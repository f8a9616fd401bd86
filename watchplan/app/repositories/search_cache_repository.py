from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, cast

from watchplan.app.models.videos import EnrichedVideo
from watchplan.app.repositories.database import Database

SEARCH_CACHE_KEY = "youtube_search_cache"
DEFAULT_SEARCH_CACHE_TTL_MS = 60 * 60 * 1000

LOGGER = logging.getLogger("watchplan.search_cache")


class CacheCorruptError(ValueError):
    """Stored cache value could not be decoded into a cache entry."""


@dataclass(frozen=True)
class CacheEntry:
    query: str
    videos: list[EnrichedVideo]
    timestamp_ms: int


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class SearchCacheRepository:
    """Single-slot search cache.

    Only the most recent successful search is kept. The slot is keyed by the exact
    query string and expires `ttl_ms` milliseconds after it was written.
    """

    def __init__(
        self,
        db: Database,
        *,
        ttl_ms: int = DEFAULT_SEARCH_CACHE_TTL_MS,
        clock_ms: Callable[[], int] = _epoch_ms,
    ) -> None:
        self._db = db
        self._ttl_ms = max(0, ttl_ms)
        self._clock_ms = clock_ms

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def get(self, query: str) -> list[EnrichedVideo] | None:
        entry = self._load_entry()
        if entry is None:
            return None
        if entry.query != query:
            LOGGER.debug("search cache miss reason=query_mismatch")
            return None
        age_ms = self._clock_ms() - entry.timestamp_ms
        if age_ms > self._ttl_ms:
            LOGGER.debug("search cache miss reason=stale age_ms=%s ttl_ms=%s", age_ms, self._ttl_ms)
            return None
        return list(entry.videos)

    def put(self, query: str, videos: list[EnrichedVideo]) -> None:
        entry = CacheEntry(query=query, videos=list(videos), timestamp_ms=self._clock_ms())
        now_iso = datetime.now(UTC).isoformat()
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO search_cache_state (cache_key, value_text, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(cache_key) DO UPDATE SET
                    value_text = excluded.value_text,
                    updated_at = excluded.updated_at
                """,
                (SEARCH_CACHE_KEY, serialize_cache_entry(entry), now_iso),
            )

    def clear(self) -> None:
        with self._db.connection() as conn:
            conn.execute(
                "DELETE FROM search_cache_state WHERE cache_key = ?",
                (SEARCH_CACHE_KEY,),
            )

    def _load_entry(self) -> CacheEntry | None:
        with self._db.connection() as conn:
            row = conn.execute(
                """
                SELECT value_text
                FROM search_cache_state
                WHERE cache_key = ?
                """,
                (SEARCH_CACHE_KEY,),
            ).fetchone()

        if row is None:
            return None
        raw_value = row["value_text"]
        if not isinstance(raw_value, str) or not raw_value.strip():
            return None
        try:
            return deserialize_cache_entry(raw_value)
        except CacheCorruptError:
            LOGGER.warning("search cache entry unreadable; treating as miss", exc_info=True)
            return None


def serialize_cache_entry(entry: CacheEntry) -> str:
    return json.dumps(
        {
            "query": entry.query,
            "videos": [video.to_payload() for video in entry.videos],
            "timestamp": entry.timestamp_ms,
        },
        ensure_ascii=False,
    )


def deserialize_cache_entry(raw_value: str) -> CacheEntry:
    try:
        parsed = cast(object, json.loads(raw_value))
    except (ValueError, RecursionError) as exc:
        raise CacheCorruptError(f"invalid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise CacheCorruptError("cache entry is not an object")
    payload = cast(dict[str, Any], parsed)

    query = payload.get("query")
    if not isinstance(query, str):
        raise CacheCorruptError("cache entry query is missing")

    timestamp = payload.get("timestamp")
    if isinstance(timestamp, bool) or not isinstance(timestamp, int):
        raise CacheCorruptError("cache entry timestamp is missing")

    raw_videos = payload.get("videos")
    if not isinstance(raw_videos, list):
        raise CacheCorruptError("cache entry videos are missing")

    videos = [_decode_video(item) for item in cast(list[object], raw_videos)]
    return CacheEntry(query=query, videos=videos, timestamp_ms=timestamp)


def _decode_video(raw_item: object) -> EnrichedVideo:
    if not isinstance(raw_item, dict):
        raise CacheCorruptError("cached video is not an object")
    item = cast(dict[str, Any], raw_item)

    video_id = item.get("video_id")
    title = item.get("title")
    description = item.get("description")
    duration = item.get("duration")
    if not isinstance(video_id, str) or not isinstance(title, str):
        raise CacheCorruptError("cached video is missing id or title")
    if not isinstance(description, str):
        raise CacheCorruptError("cached video is missing description")
    if duration is not None and not isinstance(duration, str):
        raise CacheCorruptError("cached video duration is not a string")
    return EnrichedVideo(
        video_id=video_id,
        title=title,
        description=description,
        duration=duration,
    )
