import logging
from datetime import datetime, timezone

from eywa.mappers.eywa_score import calculate_eywa_score, calculate_trend
from eywa.schemas.reviews import EywaScoreRecord, RatingSource
from eywa.store import ReviewStore

logger = logging.getLogger(__name__)


class ScoreService:
    def __init__(self, store: ReviewStore):
        self._store = store

    def compute_and_store(self, hotel_id: str, now: datetime | None = None) -> EywaScoreRecord | None:
        """Recompute the Eywa score from the latest rating of each source and append it.

        Returns None (and stores nothing) when the hotel has no ratings yet.
        """
        snapshots = self._store.latest_ratings(hotel_id)
        sources = [
            RatingSource(source=s.source, rating=s.rating, review_count=s.review_count)
            for s in snapshots
        ]
        result = calculate_eywa_score(sources)
        if result is None:
            logger.info("No ratings for hotel %s, skipping Eywa score", hotel_id)
            return None

        previous = self._store.latest_score(hotel_id)
        trend = calculate_trend(result.eywa_score, previous.eywa_score if previous else None)

        record = EywaScoreRecord(
            hotel_id=hotel_id,
            eywa_score=result.eywa_score,
            per_source=result.per_source,
            trend=trend.trend,
            trend_delta=trend.delta,
            computed_at=now or datetime.now(timezone.utc),
        )
        self._store.append_score(record)
        logger.info(
            "Eywa score for hotel %s: %.2f (%s %+.2f)",
            hotel_id, record.eywa_score, record.trend, record.trend_delta,
        )
        return record
