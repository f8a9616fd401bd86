from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakeYouTubeClient, search_item
from watchplan.app.dependencies import get_search_service, get_settings
from watchplan.app.repositories.database import Database
from watchplan.app.repositories.search_cache_repository import SearchCacheRepository
from watchplan.app.services.youtube_client import SearchPage, YouTubeApiError
from watchplan.app.services.youtube_search_service import YouTubeSearchService


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_request_id_is_echoed_or_generated(client: TestClient) -> None:
    echoed = client.get("/health", headers={"X-Request-ID": "req-abc"})
    generated = client.get("/health")

    assert echoed.headers["X-Request-ID"] == "req-abc"
    assert generated.headers["X-Request-ID"]


def test_youtube_search_returns_enriched_videos_then_cache_hit(
    client: TestClient,
    fake_client: FakeYouTubeClient,
) -> None:
    first = client.post("/youtube/search", json={"query": "python", "api_key": "key-123"})
    second = client.post("/youtube/search", json={"query": "python", "api_key": "key-123"})

    assert first.status_code == 200
    body = first.json()
    assert body["cache_hit"] is False
    assert body["pages_fetched"] == 2
    assert body["detail_batches"] == 1
    assert body["estimated_api_units"] == 201
    assert [video["video_id"] for video in body["videos"]] == ["vid_a", "vid_b", "vid_c"]
    assert [video["duration"] for video in body["videos"]] == ["PT12M30S", "PT45M", None]

    assert second.status_code == 200
    assert second.json()["cache_hit"] is True
    assert second.json()["videos"] == body["videos"]
    assert len(fake_client.search_calls) == 2


def test_youtube_search_without_api_key_is_rejected(
    client: TestClient,
    fake_client: FakeYouTubeClient,
) -> None:
    response = client.post("/youtube/search", json={"query": "python"})

    assert response.status_code == 400
    assert "API key" in response.json()["detail"]
    assert fake_client.search_calls == []


def test_youtube_search_with_blank_query_is_rejected(
    client: TestClient,
    fake_client: FakeYouTubeClient,
) -> None:
    response = client.post("/youtube/search", json={"query": "  ", "api_key": "key-123"})

    assert response.status_code == 400
    assert fake_client.search_calls == []


def test_youtube_search_falls_back_to_configured_api_key(
    monkeypatch: pytest.MonkeyPatch,
    client: TestClient,
    fake_client: FakeYouTubeClient,
) -> None:
    monkeypatch.setenv("WATCHPLAN_YOUTUBE_API_KEY", "configured-key")
    get_settings.cache_clear()

    response = client.post("/youtube/search", json={"query": "python"})

    assert response.status_code == 200
    assert fake_client.search_calls[0]["api_key"] == "configured-key"


def test_youtube_search_provider_error_maps_to_bad_gateway(
    tmp_path: Path,
    client: TestClient,
) -> None:
    failing_client = FakeYouTubeClient(
        pages=[SearchPage(items=[search_item("a")], next_page_token=None)],
        search_error=YouTubeApiError("quotaExceeded", status_code=403),
    )
    db = Database(tmp_path / "failing.db")
    db.initialize()
    service = YouTubeSearchService(
        client=failing_client,
        cache_repository=SearchCacheRepository(db),
    )
    overrides = client.app.dependency_overrides  # type: ignore[attr-defined]
    overrides[get_search_service] = lambda: service

    response = client.post("/youtube/search", json={"query": "python", "api_key": "key-123"})

    assert response.status_code == 502
    assert response.json()["detail"] == "quotaExceeded"


def test_schedule_watch_drops_oversized_video(client: TestClient) -> None:
    response = client.post(
        "/schedule/watch",
        json={
            "videos": [
                {"video_id": "A", "title": "Long", "duration": "PT1H10M"},
                {"video_id": "B", "title": "Short", "duration": "PT30M"},
            ]
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert [day["day"] for day in body["days"]] == ["tuesday"]
    assert body["days"][0]["remaining_minutes"] == 30
    assert body["days"][0]["videos"][0]["video_id"] == "B"
    assert body["days"][0]["videos"][0]["minutes"] == 30
    assert body["total_videos"] == 1
    assert body["total_minutes"] == 30


def test_schedule_watch_accepts_custom_budgets(client: TestClient) -> None:
    response = client.post(
        "/schedule/watch",
        json={
            "videos": [{"video_id": "a", "duration": "PT5M"}, {"video_id": "b"}],
            "budgets": {"monday": 0, "tuesday": 15},
        },
    )

    assert response.status_code == 200
    days = response.json()["days"]
    assert [day["day"] for day in days] == ["tuesday"]
    assert [video["minutes"] for video in days[0]["videos"]] == [5, 10]


def test_schedule_watch_rejects_negative_budget(client: TestClient) -> None:
    response = client.post("/schedule/watch", json={"videos": [], "budgets": {"friday": -5}})
    assert response.status_code == 422


def test_word_frequency(client: TestClient) -> None:
    response = client.post(
        "/analysis/word-frequency",
        json={"texts": ["Python Tutorial", "python tips | tricks", "The python way"]},
    )

    assert response.status_code == 200
    words = response.json()["words"]
    assert words[0] == {"word": "python", "count": 3}
    assert len(words) == 5
