from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewSource(StrEnum):
    google = "google"
    tripadvisor = "tripadvisor"
    booking = "booking"


class SyncStatus(StrEnum):
    success = "success"
    failed = "failed"


class SyncJobType(StrEnum):
    scheduled = "scheduled"
    manual = "manual"
    bulk = "bulk"


class SyncJobStatus(StrEnum):
    running = "running"
    completed = "completed"
    failed = "failed"
    partial = "partial"


class Trend(StrEnum):
    up = "up"
    down = "down"
    stable = "stable"


class Hotel(BaseModel):
    id: str
    name: str
    address: str | None = None
    city: str = ""
    country: str = ""


class RatingSource(BaseModel):
    source: ReviewSource
    rating: float
    review_count: int = 0
    weight: float | None = None  # overrides the source's default weight


class ReviewSourceLink(BaseModel):
    hotel_id: str
    source: ReviewSource
    external_id: str
    name: str | None = None
    is_verified: bool = False
    last_sync_at: datetime | None = None
    last_sync_status: SyncStatus | None = None
    sync_error_message: str | None = None
    sync_error_count: int = 0
    next_sync_at: datetime | None = None


class RatingSnapshot(BaseModel):
    hotel_id: str
    source: ReviewSource
    rating: float
    review_count: int = 0
    fetched_at: datetime = Field(default_factory=utcnow)


class ReviewRecord(BaseModel):
    hotel_id: str
    source: ReviewSource
    external_review_id: str
    author: str | None = None
    author_url: str | None = None
    rating: int | None = None
    text: str | None = None
    language: str | None = None
    relative_time_description: str | None = None
    published_at: datetime | None = None
    fetched_at: datetime = Field(default_factory=utcnow)


class SourceScore(BaseModel):
    source: ReviewSource
    rating: float
    normalized_rating: float
    weight: float
    confidence: float


class EywaScoreRecord(BaseModel):
    hotel_id: str
    eywa_score: float
    per_source: list[SourceScore] = []
    trend: Trend = Trend.stable
    trend_delta: float = 0.0
    computed_at: datetime = Field(default_factory=utcnow)


class SyncJob(BaseModel):
    id: str
    job_type: SyncJobType
    status: SyncJobStatus = SyncJobStatus.running
    triggered_by: str
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    hotels_total: int = 0
    hotels_success: int = 0
    hotels_failed: int = 0
    error_message: str | None = None
    hotel_ids: list[str] | None = None


class SyncError(BaseModel):
    job_id: str | None = None
    hotel_id: str
    hotel_name: str | None = None
    source: str
    error_type: str
    error_message: str
    created_at: datetime = Field(default_factory=utcnow)


class HotelSources(BaseModel):
    """A hotel together with the linked sources selected for one sync run."""

    hotel_id: str
    hotel_name: str | None = None
    sources: list[ReviewSourceLink] = []
