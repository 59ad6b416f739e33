"""Score history and review statistics for reporting.

Pure functions, no I/O.
"""

from datetime import datetime, timedelta, timezone

from eywa.mappers.eywa_score import classify_change
from eywa.schemas.analytics import (
    MarketPosition,
    ReviewActivity,
    ScorePoint,
    SentimentBreakdown,
    TimelinePoint,
    TrendData,
    TrendPeriod,
)

PERIOD_DAYS: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}


def _points_in_period(
    scores: list[ScorePoint], period: TrendPeriod, now: datetime
) -> list[ScorePoint]:
    start = now - timedelta(days=PERIOD_DAYS[period])
    return sorted(
        (s for s in scores if start <= s.date <= now),
        key=lambda s: s.date,
    )


def calculate_trend_from_scores(
    scores: list[ScorePoint],
    period: TrendPeriod,
    now: datetime | None = None,
) -> TrendData:
    """Movement of the score between the first and last point of the period."""
    now = now or datetime.now(timezone.utc)
    points = _points_in_period(scores, period, now)
    if not points:
        return TrendData(period=period)

    start, end = points[0].score, points[-1].score
    change = round(end - start, 2)
    change_percent = round(change / start * 100, 1) if start > 0 else 0.0

    return TrendData(
        period=period,
        start_score=start,
        end_score=end,
        change=change,
        change_percent=change_percent,
        trend=classify_change(change),
        data_points=len(points),
    )


def generate_timeline(
    scores: list[ScorePoint],
    period: TrendPeriod = "30d",
    now: datetime | None = None,
) -> list[TimelinePoint]:
    now = now or datetime.now(timezone.utc)
    return [
        TimelinePoint(date=p.date.date().isoformat(), score=p.score)
        for p in _points_in_period(scores, period, now)
    ]


def calculate_sentiment(ratings: list[int]) -> SentimentBreakdown:
    """Bucket star ratings: 4-5 positive, 3 neutral, 1-2 negative."""
    if not ratings:
        return SentimentBreakdown()

    positive = sum(1 for r in ratings if r >= 4)
    neutral = sum(1 for r in ratings if r == 3)
    return SentimentBreakdown(
        positive=positive,
        neutral=neutral,
        negative=len(ratings) - positive - neutral,
        total=len(ratings),
        average_rating=round(sum(ratings) / len(ratings), 2),
    )


def calculate_market_position(
    hotel_score: float, competitor_scores: list[float]
) -> MarketPosition:
    if not competitor_scores:
        return MarketPosition(
            rank=1,
            total_competitors=0,
            percentile=100,
            above_average=True,
            market_average=hotel_score,
        )

    ranked = sorted([*competitor_scores, hotel_score], reverse=True)
    rank = ranked.index(hotel_score) + 1
    total = len(ranked)
    average = sum(ranked) / total
    return MarketPosition(
        rank=rank,
        total_competitors=len(competitor_scores),
        percentile=round((total - rank + 1) / total * 100),
        above_average=hotel_score >= average,
        market_average=round(average, 2),
    )


def calculate_review_rate(
    reviews: list[ReviewActivity],
    days: int = 30,
    now: datetime | None = None,
) -> float:
    """Average reviews per day published over the last `days` days."""
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=days)
    return sum(1 for r in reviews if r.published_at >= start) / days
