from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, cast
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from watchplan.app.config import DEFAULT_YOUTUBE_API_BASE_URL

LOGGER = logging.getLogger("watchplan.youtube_client")

MAX_RESULTS_PER_PAGE = 50
MAX_IDS_PER_DETAILS_REQUEST = 50
SEARCH_FALLBACK_ERROR = "Failed to fetch YouTube videos"
DETAILS_FALLBACK_ERROR = "Failed to fetch video details"


class YouTubeServiceError(Exception):
    pass


class YouTubeApiError(YouTubeServiceError):
    """Non-success response (or transport failure) from the YouTube Data API."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class SearchPage:
    items: list[dict[str, Any]]
    next_page_token: str | None


class YouTubeSearchClient(Protocol):
    def search_page(
        self,
        *,
        query: str,
        api_key: str,
        page_token: str | None,
        page_size: int,
    ) -> SearchPage:
        ...

    def video_details(self, *, video_ids: Sequence[str], api_key: str) -> list[dict[str, Any]]:
        ...


class YouTubeDataClient:
    """Thin `search.list` / `videos.list` client over the public Data API v3."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_YOUTUBE_API_BASE_URL,
        timeout_seconds: float = 15.0,
        user_agent: str = "watchplan/0.1",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(1.0, timeout_seconds)
        self._user_agent = user_agent

    def search_page(
        self,
        *,
        query: str,
        api_key: str,
        page_token: str | None,
        page_size: int = MAX_RESULTS_PER_PAGE,
    ) -> SearchPage:
        LOGGER.debug("youtube search.list query=%s page_token=%s", query, page_token)
        params = {
            "part": "snippet",
            "q": query,
            "maxResults": str(max(1, min(MAX_RESULTS_PER_PAGE, page_size))),
            "key": api_key,
            "type": "video",
            "safeSearch": "none",
            "videoEmbeddable": "true",
        }
        if page_token:
            params["pageToken"] = page_token

        payload = self._get_json("search", params, fallback_error=SEARCH_FALLBACK_ERROR)
        raw_next = payload.get("nextPageToken")
        next_page_token = raw_next if isinstance(raw_next, str) and raw_next.strip() else None
        return SearchPage(items=_dict_items(payload), next_page_token=next_page_token)

    def video_details(self, *, video_ids: Sequence[str], api_key: str) -> list[dict[str, Any]]:
        if len(video_ids) > MAX_IDS_PER_DETAILS_REQUEST:
            raise ValueError(
                f"videos.list accepts at most {MAX_IDS_PER_DETAILS_REQUEST} ids per request"
            )
        LOGGER.debug("youtube videos.list ids=%s", len(video_ids))
        params = {
            "part": "contentDetails",
            "id": ",".join(video_ids),
            "key": api_key,
        }
        payload = self._get_json("videos", params, fallback_error=DETAILS_FALLBACK_ERROR)
        return _dict_items(payload)

    def _get_json(
        self,
        resource: str,
        params: dict[str, str],
        *,
        fallback_error: str,
    ) -> dict[str, Any]:
        request = Request(
            f"{self._base_url}/{resource}?{urlencode(params)}",
            headers={
                "accept": "application/json",
                "user-agent": self._user_agent,
            },
            method="GET",
        )

        try:
            with urlopen(request, timeout=self._timeout_seconds) as response:
                status_code = int(response.getcode() or 0)
                raw_body = response.read().decode("utf-8", errors="replace")
        except HTTPError as exc:
            status_code = int(exc.code)
            raw_body = exc.read().decode("utf-8", errors="replace")
        except (URLError, TimeoutError, OSError) as exc:
            LOGGER.warning("youtube %s request failed error=%s", resource, exc)
            raise YouTubeApiError(f"{fallback_error}: {exc}") from exc

        payload = _parse_json_dict(raw_body)
        if not 200 <= status_code < 300:
            message = _extract_error_message(payload) or fallback_error
            LOGGER.warning(
                "youtube %s error status=%s message=%s",
                resource,
                status_code,
                message,
            )
            raise YouTubeApiError(message, status_code=status_code)
        return payload


def _parse_json_dict(raw_body: str) -> dict[str, Any]:
    if not raw_body.strip():
        return {}
    try:
        parsed = json.loads(raw_body)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, dict):
        return cast(dict[str, Any], parsed)
    return {}


def _extract_error_message(payload: dict[str, Any]) -> str | None:
    error = payload.get("error")
    if isinstance(error, dict):
        message = cast(dict[str, Any], error).get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    if isinstance(error, str) and error.strip():
        return error.strip()
    return None


def _dict_items(payload: dict[str, Any]) -> list[dict[str, Any]]:
    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        return []
    return [
        cast(dict[str, Any], item)
        for item in cast(list[object], raw_items)
        if isinstance(item, dict)
    ]
