from datetime import datetime, timedelta, timezone

import pytest

from eywa.mappers.analytics import (
    calculate_market_position,
    calculate_review_rate,
    calculate_sentiment,
    calculate_trend_from_scores,
    generate_timeline,
)
from eywa.schemas.analytics import ReviewActivity, ScorePoint
from eywa.schemas.reviews import Trend

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def _point(score: float, days_ago: int) -> ScorePoint:
    return ScorePoint(score=score, date=NOW - timedelta(days=days_ago))


SCORES = [_point(8.5, 1), _point(8.0, 10), _point(8.2, 5)]


def test_trend_over_last_week():
    trend = calculate_trend_from_scores(SCORES, "7d", now=NOW)
    assert trend.start_score == 8.2
    assert trend.end_score == 8.5
    assert trend.change == 0.3
    assert trend.change_percent == 3.7
    assert trend.trend == Trend.up
    assert trend.data_points == 2


def test_trend_over_month_uses_oldest_point():
    trend = calculate_trend_from_scores(SCORES, "30d", now=NOW)
    assert trend.start_score == 8.0
    assert trend.change == 0.5
    assert trend.data_points == 3


def test_trend_without_points():
    trend = calculate_trend_from_scores([], "90d", now=NOW)
    assert trend.start_score is None
    assert trend.trend == Trend.stable
    assert trend.data_points == 0


def test_timeline_is_chronological():
    timeline = generate_timeline(SCORES, "30d", now=NOW)
    assert [(p.date, p.score) for p in timeline] == [
        ("2024-06-20", 8.0),
        ("2024-06-25", 8.2),
        ("2024-06-29", 8.5),
    ]


def test_sentiment_buckets():
    sentiment = calculate_sentiment([5, 4, 3, 2, 1])
    assert sentiment.positive == 2
    assert sentiment.neutral == 1
    assert sentiment.negative == 2
    assert sentiment.total == 5
    assert sentiment.average_rating == 3.0


def test_sentiment_empty():
    assert calculate_sentiment([]).total == 0


def test_market_position():
    position = calculate_market_position(8.0, [9.0, 7.0, 6.0])
    assert position.rank == 2
    assert position.total_competitors == 3
    assert position.percentile == 75
    assert position.above_average is True
    assert position.market_average == 7.5


def test_market_position_without_competitors():
    position = calculate_market_position(7.2, [])
    assert position.rank == 1
    assert position.percentile == 100
    assert position.market_average == 7.2


def test_review_rate():
    reviews = [
        ReviewActivity(rating=4, published_at=NOW - timedelta(days=2 * i + 1))
        for i in range(15)
    ]
    reviews.append(ReviewActivity(rating=4, published_at=NOW - timedelta(days=45)))
    assert calculate_review_rate(reviews, days=30, now=NOW) == pytest.approx(0.5)
