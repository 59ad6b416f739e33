from datetime import datetime, timedelta, timezone

from eywa.mappers.analytics import (
    PERIOD_DAYS,
    calculate_market_position,
    calculate_sentiment,
    calculate_trend_from_scores,
    generate_timeline,
)
from eywa.mappers.anomalies import BASELINE_DAYS, baseline_review_rate, detect_alerts
from eywa.schemas.analytics import (
    AlertSeverity,
    MarketPosition,
    ReviewActivity,
    ScorePoint,
    SentimentBreakdown,
)
from eywa.schemas.responses import AlertsReport, TrendsReport
from eywa.schemas.reviews import Trend
from eywa.store import ReviewStore

# Reviews older than this are irrelevant to alerting
ALERT_REVIEW_WINDOW_DAYS = 7


class ReportingService:
    def __init__(self, store: ReviewStore):
        self._store = store

    def _review_activity(self, hotel_id: str, since: datetime) -> list[ReviewActivity]:
        return [
            ReviewActivity(rating=r.rating, published_at=r.published_at)
            for r in self._store.reviews_for_hotel(hotel_id, since=since)
            if r.rating is not None and r.published_at is not None
        ]

    def hotel_alerts(self, hotel_id: str, now: datetime | None = None) -> AlertsReport:
        now = now or datetime.now(timezone.utc)
        scores = self._store.latest_scores(hotel_id, limit=2)
        current = scores[0].eywa_score if scores else 0.0
        previous = scores[1].eywa_score if len(scores) > 1 else None

        recent = self._review_activity(hotel_id, now - timedelta(days=ALERT_REVIEW_WINDOW_DAYS))
        baseline = self._review_activity(hotel_id, now - timedelta(days=BASELINE_DAYS))
        alerts = detect_alerts(
            current, previous, recent, baseline_review_rate(baseline, now=now), now=now,
        )

        return AlertsReport(
            hotel_id=hotel_id,
            alerts=alerts,
            alert_count=len(alerts),
            high_priority=sum(1 for a in alerts if a.severity == AlertSeverity.high),
        )

    def hotel_trends(self, hotel_id: str, now: datetime | None = None) -> TrendsReport:
        now = now or datetime.now(timezone.utc)
        points = [
            ScorePoint(score=r.eywa_score, date=r.computed_at)
            for r in self._store.score_history(hotel_id)
        ]
        latest = self._store.latest_score(hotel_id)

        return TrendsReport(
            hotel_id=hotel_id,
            current_score=latest.eywa_score if latest else None,
            trend=latest.trend if latest else Trend.stable,
            trend_delta=latest.trend_delta if latest else 0.0,
            trends={
                period: calculate_trend_from_scores(points, period, now=now)
                for period in PERIOD_DAYS
            },
            timeline=generate_timeline(points, "30d", now=now),
        )

    def hotel_sentiment(self, hotel_id: str) -> SentimentBreakdown:
        return calculate_sentiment(
            [r.rating for r in self._store.reviews_for_hotel(hotel_id) if r.rating is not None]
        )

    def market_position(self, hotel_id: str) -> MarketPosition | None:
        """Rank a hotel's current score against every other scored hotel."""
        current = self._store.current_scores()
        own = current.pop(hotel_id, None)
        if own is None:
            return None
        return calculate_market_position(own.eywa_score, [r.eywa_score for r in current.values()])
