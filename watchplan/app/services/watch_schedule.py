from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from watchplan.app.models.videos import EnrichedVideo
from watchplan.app.services.duration import parse_duration_minutes

LOGGER = logging.getLogger("watchplan.watch_schedule")

DAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
MISSING_DURATION_FALLBACK_MINUTES = 10


class DayBudget(BaseModel):
    """Minutes available for watching on each day of the week."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    monday: int = Field(default=60, ge=0)
    tuesday: int = Field(default=60, ge=0)
    wednesday: int = Field(default=60, ge=0)
    thursday: int = Field(default=60, ge=0)
    friday: int = Field(default=60, ge=0)
    saturday: int = Field(default=120, ge=0)
    sunday: int = Field(default=120, ge=0)

    def budget_for(self, day_index: int) -> int:
        return int(getattr(self, DAYS[day_index]))


@dataclass(frozen=True)
class ScheduledVideo:
    video: EnrichedVideo
    minutes: int
    day_index: int


@dataclass
class ScheduleBucket:
    day: str
    remaining_minutes: int
    videos: list[ScheduledVideo] = field(default_factory=list)

    @property
    def total_minutes(self) -> int:
        return sum(scheduled.minutes for scheduled in self.videos)


@dataclass(frozen=True)
class ScheduleSummary:
    total_videos: int
    total_minutes: int
    days_used: int


def resolve_video_minutes(video: EnrichedVideo) -> int:
    # An absent or empty duration gets the fallback; a malformed one parses to 0.
    if not video.duration:
        return MISSING_DURATION_FALLBACK_MINUTES
    return parse_duration_minutes(video.duration)


def build_watch_schedule(
    videos: Sequence[EnrichedVideo],
    budgets: DayBudget | None = None,
) -> list[ScheduleBucket]:
    """Greedily pack `videos`, in order, into consecutive days of the week.

    A video that does not fit closes the current day. It gets exactly one attempt
    at the next day's full budget and is dropped if it still does not fit. Once
    Sunday is closed every remaining video is dropped. Only days that received at
    least one video are returned.
    """
    day_budgets = budgets or DayBudget()
    schedule: list[ScheduleBucket] = []

    current_day = 0
    day_budget = day_budgets.budget_for(current_day)
    remaining = day_budget
    current_videos: list[ScheduledVideo] = []

    for position, video in enumerate(videos):
        minutes = resolve_video_minutes(video)

        if _fits(minutes, remaining, day_budget):
            current_videos.append(
                ScheduledVideo(video=video, minutes=minutes, day_index=current_day)
            )
            remaining -= minutes
            continue

        if current_videos:
            schedule.append(
                ScheduleBucket(
                    day=DAYS[current_day],
                    remaining_minutes=remaining,
                    videos=current_videos,
                )
            )
        current_videos = []

        current_day += 1
        if current_day >= len(DAYS):
            LOGGER.debug(
                "watch schedule week exhausted dropped_videos=%s",
                len(videos) - position,
            )
            break

        day_budget = day_budgets.budget_for(current_day)
        remaining = day_budget
        if _fits(minutes, remaining, day_budget):
            current_videos.append(
                ScheduledVideo(video=video, minutes=minutes, day_index=current_day)
            )
            remaining -= minutes
        else:
            LOGGER.debug(
                "watch schedule dropped video_id=%s minutes=%s day=%s budget=%s",
                video.video_id,
                minutes,
                DAYS[current_day],
                day_budget,
            )

    if current_videos:
        schedule.append(
            ScheduleBucket(
                day=DAYS[current_day],
                remaining_minutes=remaining,
                videos=current_videos,
            )
        )
    return schedule


def summarize_schedule(schedule: Sequence[ScheduleBucket]) -> ScheduleSummary:
    return ScheduleSummary(
        total_videos=sum(len(bucket.videos) for bucket in schedule),
        total_minutes=sum(bucket.total_minutes for bucket in schedule),
        days_used=len(schedule),
    )


def _fits(minutes: int, remaining: int, day_budget: int) -> bool:
    # A zero-budget day is closed, even to zero-minute videos, which move on to the
    # next day with a budget.
    return day_budget > 0 and minutes <= remaining
