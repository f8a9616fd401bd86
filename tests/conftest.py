from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakeClock, FakeYouTubeClient, detail_item, search_item
from watchplan.app.dependencies import get_search_service, reset_cached_dependencies
from watchplan.app.main import create_app
from watchplan.app.repositories.database import Database
from watchplan.app.repositories.search_cache_repository import SearchCacheRepository
from watchplan.app.services.youtube_client import SearchPage
from watchplan.app.services.youtube_search_service import YouTubeSearchService


@pytest.fixture
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "state.db")
    db.initialize()
    return db


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_repository(database: Database, clock: FakeClock) -> SearchCacheRepository:
    return SearchCacheRepository(database, clock_ms=clock)


@pytest.fixture
def fake_client() -> FakeYouTubeClient:
    return FakeYouTubeClient(
        pages=[
            SearchPage(
                items=[
                    search_item("vid_a", "Python Tutorial for Beginners", "Learn python fast"),
                    search_item("vid_b", "Advanced Python Tricks", "python tips", nested=False),
                ],
                next_page_token="page-2",
            ),
            SearchPage(
                items=[search_item("vid_c", "Cooking Pasta", "pasta recipe")],
                next_page_token=None,
            ),
        ],
        details={
            "vid_a": [detail_item("vid_a", "PT12M30S")],
            "vid_b": [detail_item("vid_b", "PT45M")],
        },
    )


@pytest.fixture
def client(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    fake_client: FakeYouTubeClient,
) -> Iterator[TestClient]:
    data_dir = tmp_path / "runtime-data"
    data_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("WATCHPLAN_DATA_DIR", str(data_dir))
    monkeypatch.setenv("WATCHPLAN_TELEMETRY_SINK", "none")
    monkeypatch.delenv("WATCHPLAN_YOUTUBE_API_KEY", raising=False)
    reset_cached_dependencies()

    db = Database(data_dir / "state.db")
    db.initialize()
    service = YouTubeSearchService(
        client=fake_client,
        cache_repository=SearchCacheRepository(db),
    )

    app = create_app()
    app.dependency_overrides[get_search_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client

    reset_cached_dependencies()
