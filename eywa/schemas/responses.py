from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from eywa.schemas.analytics import Alert, TimelinePoint, TrendData
from eywa.schemas.matching import MatchCandidate
from eywa.schemas.reviews import ReviewSourceLink, SyncError, SyncJobStatus, Trend


class SyncJobResult(BaseModel):
    job_id: str
    status: SyncJobStatus
    hotels_total: int
    hotels_success: int
    hotels_failed: int
    duration_ms: int
    errors: list[SyncError] = []


class HotelSyncResult(BaseModel):
    success: bool
    errors: list[SyncError] = []


class AutoLinkResult(BaseModel):
    hotel_id: str
    matched: bool
    auto_linked: bool = False
    message: str
    search_query: str
    best_match: MatchCandidate | None = None
    all_matches: list[MatchCandidate] = []
    linked_source: ReviewSourceLink | None = None


class BatchLinkEntry(BaseModel):
    hotel_id: str
    status: str  # "linked" | "needs_review" | "no_match" | "error"
    message: str | None = None
    confidence: str | None = None


class BatchLinkResponse(BaseModel):
    total: int
    linked: int
    needs_review: int
    no_match: int
    errors: int
    results: list[BatchLinkEntry]


class AlertsReport(BaseModel):
    hotel_id: str
    alerts: list[Alert]
    alert_count: int
    high_priority: int


class TrendsReport(BaseModel):
    hotel_id: str
    current_score: float | None = None
    trend: Trend = Trend.stable
    trend_delta: float = 0.0
    trends: dict[str, TrendData]
    timeline: list[TimelinePoint] = []


class TaskStatus(BaseModel):
    name: str
    schedule: str
    running: bool
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None


class SyncRequest(BaseModel):
    hotel_ids: list[str] | None = None
    triggered_by: str = "admin"


class JobSubmittedResponse(BaseModel):
    job_id: str | None = None
    status: str
    message: str
