from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from watchplan.app.models.videos import EnrichedVideo
from watchplan.app.services.watch_schedule import DayBudget, ScheduleBucket, ScheduleSummary


class VideoModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    video_id: str
    title: str = ""
    description: str = ""
    duration: str | None = None

    @classmethod
    def from_video(cls, video: EnrichedVideo) -> VideoModel:
        return cls(
            video_id=video.video_id,
            title=video.title,
            description=video.description,
            duration=video.duration,
        )

    def to_video(self) -> EnrichedVideo:
        return EnrichedVideo(
            video_id=self.video_id,
            title=self.title,
            description=self.description,
            duration=self.duration,
        )


class SearchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str
    api_key: str | None = Field(
        default=None,
        description="YouTube Data API key; falls back to WATCHPLAN_YOUTUBE_API_KEY.",
    )


class SearchResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    videos: list[VideoModel]
    cache_hit: bool
    pages_fetched: int
    detail_batches: int
    estimated_api_units: int


class ScheduleRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    videos: list[VideoModel] = Field(default_factory=list)
    budgets: DayBudget = Field(default_factory=DayBudget)


class ScheduledVideoModel(VideoModel):
    minutes: int


class ScheduleDayModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    day: str
    remaining_minutes: int
    total_minutes: int
    videos: list[ScheduledVideoModel]

    @classmethod
    def from_bucket(cls, bucket: ScheduleBucket) -> ScheduleDayModel:
        return cls(
            day=bucket.day,
            remaining_minutes=bucket.remaining_minutes,
            total_minutes=bucket.total_minutes,
            videos=[
                ScheduledVideoModel(
                    video_id=scheduled.video.video_id,
                    title=scheduled.video.title,
                    description=scheduled.video.description,
                    duration=scheduled.video.duration,
                    minutes=scheduled.minutes,
                )
                for scheduled in bucket.videos
            ],
        )


class ScheduleResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    days: list[ScheduleDayModel]
    total_videos: int
    total_minutes: int

    @classmethod
    def from_schedule(
        cls,
        schedule: list[ScheduleBucket],
        summary: ScheduleSummary,
    ) -> ScheduleResponse:
        return cls(
            days=[ScheduleDayModel.from_bucket(bucket) for bucket in schedule],
            total_videos=summary.total_videos,
            total_minutes=summary.total_minutes,
        )


class WordFrequencyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    texts: list[str] = Field(default_factory=list)


class WordCountModel(BaseModel):
    word: str
    count: int


class WordFrequencyResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    words: list[WordCountModel]
