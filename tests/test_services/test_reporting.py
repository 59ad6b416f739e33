from datetime import datetime, timedelta, timezone

from eywa.schemas.analytics import AlertSeverity, AlertType
from eywa.schemas.reviews import EywaScoreRecord, ReviewRecord, ReviewSource, Trend
from eywa.services.reporting import ReportingService
from eywa.store import ReviewStore

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def _score(store: ReviewStore, hotel_id: str, score: float, days_ago: int, **kwargs) -> None:
    store.append_score(
        EywaScoreRecord(
            hotel_id=hotel_id,
            eywa_score=score,
            computed_at=NOW - timedelta(days=days_ago),
            **kwargs,
        )
    )


def _review(store: ReviewStore, review_id: str, rating: int, hours_ago: float) -> None:
    store.upsert_review(
        ReviewRecord(
            hotel_id="h1",
            source=ReviewSource.google,
            external_review_id=review_id,
            rating=rating,
            published_at=NOW - timedelta(hours=hours_ago),
        )
    )


def test_alerts_report():
    store = ReviewStore()
    _score(store, "h1", 4.6, 2)
    _score(store, "h1", 4.0, 0)
    _review(store, "r1", 1, 2)

    report = ReportingService(store).hotel_alerts("h1", now=NOW)

    assert [a.type for a in report.alerts] == [AlertType.score_drop, AlertType.negative_review]
    assert report.alert_count == 2
    assert report.high_priority == 2
    assert all(a.severity == AlertSeverity.high for a in report.alerts)


def test_alerts_report_review_spike():
    store = ReviewStore()
    for day in range(2, 16):
        _review(store, f"old{day}", 4, 24 * day)
    for i in range(3):
        _review(store, f"new{i}", 5, i + 1)

    report = ReportingService(store).hotel_alerts("h1", now=NOW)

    assert [a.type for a in report.alerts] == [AlertType.review_spike]
    assert report.high_priority == 0


def test_alerts_report_empty_hotel():
    report = ReportingService(ReviewStore()).hotel_alerts("h1", now=NOW)
    assert report.alerts == []


def test_trends_report():
    store = ReviewStore()
    _score(store, "h1", 8.0, 10)
    _score(store, "h1", 8.5, 1, trend=Trend.up, trend_delta=0.5)

    report = ReportingService(store).hotel_trends("h1", now=NOW)

    assert report.current_score == 8.5
    assert report.trend == Trend.up
    assert set(report.trends) == {"7d", "30d", "90d"}
    assert report.trends["7d"].data_points == 1
    assert report.trends["30d"].change == 0.5
    assert [p.score for p in report.timeline] == [8.0, 8.5]


def test_trends_report_without_scores():
    report = ReportingService(ReviewStore()).hotel_trends("h1", now=NOW)
    assert report.current_score is None
    assert report.trends["30d"].data_points == 0


def test_sentiment():
    store = ReviewStore()
    _review(store, "r1", 5, 1)
    _review(store, "r2", 1, 2)

    sentiment = ReportingService(store).hotel_sentiment("h1")
    assert (sentiment.positive, sentiment.negative, sentiment.total) == (1, 1, 2)


def test_market_position():
    store = ReviewStore()
    _score(store, "h1", 8.0, 0)
    _score(store, "h2", 9.0, 0)
    _score(store, "h3", 7.0, 0)
    service = ReportingService(store)

    position = service.market_position("h1")
    assert position.rank == 2
    assert position.total_competitors == 2
    assert service.market_position("unscored") is None
