from __future__ import annotations

import pytest

from tests.fakes import FakeClock
from watchplan.app.models.videos import EnrichedVideo
from watchplan.app.repositories.database import Database
from watchplan.app.repositories.search_cache_repository import (
    DEFAULT_SEARCH_CACHE_TTL_MS,
    SEARCH_CACHE_KEY,
    CacheCorruptError,
    CacheEntry,
    SearchCacheRepository,
    deserialize_cache_entry,
    serialize_cache_entry,
)

VIDEOS = [
    EnrichedVideo(video_id="vid_a", title="Leek Soup", description="soup", duration="PT4M13S"),
    EnrichedVideo(video_id="vid_b", title="Microservices", description="", duration=None),
]


def _write_raw_cache_value(database: Database, value: str) -> None:
    with database.connection() as conn:
        conn.execute(
            """
            INSERT INTO search_cache_state (cache_key, value_text, updated_at)
            VALUES (?, ?, '2026-01-01T00:00:00+00:00')
            ON CONFLICT(cache_key) DO UPDATE SET value_text = excluded.value_text
            """,
            (SEARCH_CACHE_KEY, value),
        )


def test_search_cache_put_then_get_returns_videos(
    cache_repository: SearchCacheRepository,
) -> None:
    assert cache_repository.get("soup") is None

    cache_repository.put("soup", VIDEOS)

    assert cache_repository.get("soup") == VIDEOS


def test_search_cache_requires_exact_query_match(
    cache_repository: SearchCacheRepository,
) -> None:
    cache_repository.put("soup", VIDEOS)

    assert cache_repository.get("Soup") is None
    assert cache_repository.get("soup ") is None
    assert cache_repository.get("microservices") is None


def test_search_cache_expires_after_ttl(
    cache_repository: SearchCacheRepository,
    clock: FakeClock,
) -> None:
    cache_repository.put("soup", VIDEOS)

    clock.advance(DEFAULT_SEARCH_CACHE_TTL_MS)
    assert cache_repository.get("soup") == VIDEOS

    clock.advance(1)
    assert cache_repository.get("soup") is None


def test_search_cache_keeps_single_slot(
    cache_repository: SearchCacheRepository,
) -> None:
    cache_repository.put("soup", VIDEOS)
    cache_repository.put("pasta", VIDEOS[:1])

    assert cache_repository.get("soup") is None
    assert cache_repository.get("pasta") == VIDEOS[:1]


def test_search_cache_put_refreshes_timestamp(
    cache_repository: SearchCacheRepository,
    clock: FakeClock,
) -> None:
    cache_repository.put("soup", VIDEOS)
    clock.advance(DEFAULT_SEARCH_CACHE_TTL_MS - 10)
    cache_repository.put("soup", VIDEOS[:1])
    clock.advance(100)

    assert cache_repository.get("soup") == VIDEOS[:1]


@pytest.mark.parametrize(
    "raw_value",
    [
        "{not json",
        "[]",
        '{"query": "soup", "videos": []}',
        '{"query": "soup", "videos": "nope", "timestamp": 1}',
        '{"query": "soup", "videos": [{"title": "no id"}], "timestamp": 1}',
    ],
)
def test_search_cache_treats_corrupt_value_as_miss(
    database: Database,
    cache_repository: SearchCacheRepository,
    raw_value: str,
) -> None:
    _write_raw_cache_value(database, raw_value)

    assert cache_repository.get("soup") is None


def test_search_cache_treats_deeply_nested_value_as_miss(
    database: Database,
    cache_repository: SearchCacheRepository,
) -> None:
    _write_raw_cache_value(database, "[" * 100_000)

    assert cache_repository.get("soup") is None

    cache_repository.put("soup", VIDEOS)
    assert cache_repository.get("soup") == VIDEOS


def test_search_cache_clear(cache_repository: SearchCacheRepository) -> None:
    cache_repository.put("soup", VIDEOS)
    cache_repository.clear()

    assert cache_repository.get("soup") is None


def test_cache_entry_serialization_round_trip() -> None:
    entry = CacheEntry(query="leek soup", videos=VIDEOS, timestamp_ms=1_700_000_000_123)

    restored = deserialize_cache_entry(serialize_cache_entry(entry))

    assert restored == entry


def test_deserialize_cache_entry_rejects_bad_timestamp() -> None:
    with pytest.raises(CacheCorruptError):
        deserialize_cache_entry('{"query": "q", "videos": [], "timestamp": "yesterday"}')


def test_search_cache_survives_new_repository_instance(database: Database) -> None:
    clock = FakeClock()
    SearchCacheRepository(database, clock_ms=clock).put("soup", VIDEOS)

    reopened = SearchCacheRepository(database, clock_ms=clock)
    assert reopened.get("soup") == VIDEOS
