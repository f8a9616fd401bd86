from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RawVideo:
    video_id: str
    title: str
    description: str


@dataclass(frozen=True)
class EnrichedVideo:
    video_id: str
    title: str
    description: str
    # ISO 8601 encoding as returned by videos.list, e.g. "PT4M13S".
    # None when the details lookup returned no record for this id.
    duration: str | None = None

    @classmethod
    def from_raw(cls, raw: RawVideo, *, duration: str | None) -> EnrichedVideo:
        return cls(
            video_id=raw.video_id,
            title=raw.title,
            description=raw.description,
            duration=duration,
        )

    def to_payload(self) -> dict[str, str | None]:
        return {
            "video_id": self.video_id,
            "title": self.title,
            "description": self.description,
            "duration": self.duration,
        }
