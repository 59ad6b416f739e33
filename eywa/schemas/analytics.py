from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel

from eywa.schemas.reviews import Trend

TrendPeriod = Literal["7d", "30d", "90d"]


class AlertType(StrEnum):
    score_drop = "score_drop"
    score_rise = "score_rise"
    review_spike = "review_spike"
    negative_review = "negative_review"


class AlertSeverity(StrEnum):
    low = "low"
    medium = "medium"
    high = "high"


class Alert(BaseModel):
    type: AlertType
    severity: AlertSeverity
    message: str
    data: dict[str, Any] = {}
    detected_at: datetime


class ScorePoint(BaseModel):
    score: float
    date: datetime


class ReviewActivity(BaseModel):
    rating: int
    published_at: datetime


class TrendData(BaseModel):
    period: TrendPeriod
    start_score: float | None = None
    end_score: float | None = None
    change: float = 0.0
    change_percent: float = 0.0
    trend: Trend = Trend.stable
    data_points: int = 0


class TimelinePoint(BaseModel):
    date: str  # YYYY-MM-DD
    score: float


class SentimentBreakdown(BaseModel):
    positive: int = 0
    neutral: int = 0
    negative: int = 0
    total: int = 0
    average_rating: float = 0.0


class MarketPosition(BaseModel):
    rank: int
    total_competitors: int
    percentile: int
    above_average: bool
    market_average: float
