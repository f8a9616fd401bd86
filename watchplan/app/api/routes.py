from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from watchplan.app.config import AppSettings
from watchplan.app.dependencies import get_search_service, get_settings
from watchplan.app.models.contracts import (
    ScheduleRequest,
    ScheduleResponse,
    SearchRequest,
    SearchResponse,
    VideoModel,
    WordCountModel,
    WordFrequencyRequest,
    WordFrequencyResponse,
)
from watchplan.app.services.content_analysis import analyze_word_frequency
from watchplan.app.services.watch_schedule import build_watch_schedule, summarize_schedule
from watchplan.app.services.youtube_search_service import (
    CredentialMissingError,
    QueryMissingError,
    YouTubeApiError,
    YouTubeSearchService,
)

router = APIRouter()


@router.post(
    "/youtube/search",
    response_model=SearchResponse,
    tags=["youtube"],
    operation_id="youtube_search",
)
def youtube_search(
    request: SearchRequest,
    service: Annotated[YouTubeSearchService, Depends(get_search_service)],
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> SearchResponse:
    api_key = request.api_key if request.api_key else settings.youtube_api_key
    try:
        result = service.search(request.query, api_key)
    except (CredentialMissingError, QueryMissingError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except YouTubeApiError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return SearchResponse(
        videos=[VideoModel.from_video(video) for video in result.videos],
        cache_hit=result.cache_hit,
        pages_fetched=result.pages_fetched,
        detail_batches=result.detail_batches,
        estimated_api_units=result.estimated_api_units,
    )


@router.post(
    "/schedule/watch",
    response_model=ScheduleResponse,
    tags=["schedule"],
    operation_id="schedule_watch",
)
def schedule_watch(request: ScheduleRequest) -> ScheduleResponse:
    schedule = build_watch_schedule(
        [video.to_video() for video in request.videos],
        request.budgets,
    )
    return ScheduleResponse.from_schedule(schedule, summarize_schedule(schedule))


@router.post(
    "/analysis/word-frequency",
    response_model=WordFrequencyResponse,
    tags=["analysis"],
    operation_id="analysis_word_frequency",
)
def analysis_word_frequency(request: WordFrequencyRequest) -> WordFrequencyResponse:
    return WordFrequencyResponse(
        words=[
            WordCountModel(word=entry.word, count=entry.count)
            for entry in analyze_word_frequency(request.texts)
        ]
    )
