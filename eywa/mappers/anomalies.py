"""Alert detection over score history and recent review activity.

Pure functions, no I/O. Every rule is evaluated independently, so one call
can return several alerts (e.g. a score drop plus two 1-star reviews).
"""

from datetime import datetime, timedelta, timezone

from eywa.schemas.analytics import Alert, AlertSeverity, AlertType, ReviewActivity

SCORE_DROP_HIGH = -0.5
SCORE_DROP_MEDIUM = -0.3
SCORE_RISE_HIGH = 0.5
SCORE_RISE_MEDIUM = 0.3
REVIEW_SPIKE_FACTOR = 2
NEGATIVE_REVIEW_RATING = 2

RECENT_WINDOW = timedelta(hours=24)
BASELINE_DAYS = 30


def _score_alert(current: float, previous: float, now: datetime) -> Alert | None:
    delta = round(current - previous, 2)
    data = {"current_score": current, "previous_score": previous, "delta": delta}

    if delta <= SCORE_DROP_HIGH:
        alert_type, severity = AlertType.score_drop, AlertSeverity.high
    elif delta <= SCORE_DROP_MEDIUM:
        alert_type, severity = AlertType.score_drop, AlertSeverity.medium
    elif delta >= SCORE_RISE_HIGH:
        alert_type, severity = AlertType.score_rise, AlertSeverity.high
    elif delta >= SCORE_RISE_MEDIUM:
        alert_type, severity = AlertType.score_rise, AlertSeverity.medium
    else:
        return None

    if alert_type == AlertType.score_drop:
        message = f"Eywa Score dropped by {abs(delta):.2f} points"
    else:
        message = f"Eywa Score improved by {delta:.2f} points"
    return Alert(type=alert_type, severity=severity, message=message, data=data, detected_at=now)


def detect_alerts(
    current_score: float,
    previous_score: float | None,
    recent_reviews: list[ReviewActivity],
    normal_review_rate: float,
    now: datetime | None = None,
) -> list[Alert]:
    """Return every alert raised by the latest score and the last 24h of reviews.

    normal_review_rate is reviews per day, see baseline_review_rate().
    """
    now = now or datetime.now(timezone.utc)
    alerts: list[Alert] = []

    if previous_score is not None:
        score_alert = _score_alert(current_score, previous_score, now)
        if score_alert:
            alerts.append(score_alert)

    since = now - RECENT_WINDOW
    last_day = [r for r in recent_reviews if r.published_at >= since]

    if normal_review_rate > 0 and len(last_day) >= normal_review_rate * REVIEW_SPIKE_FACTOR:
        alerts.append(
            Alert(
                type=AlertType.review_spike,
                severity=AlertSeverity.medium,
                message=f"Unusual activity: {len(last_day)} reviews in the last 24 hours",
                data={"count": len(last_day), "normal_rate": normal_review_rate},
                detected_at=now,
            )
        )

    for review in last_day:
        if review.rating > NEGATIVE_REVIEW_RATING:
            continue
        alerts.append(
            Alert(
                type=AlertType.negative_review,
                severity=AlertSeverity.high if review.rating == 1 else AlertSeverity.medium,
                message=f"New {review.rating}-star review received",
                data={"rating": review.rating, "published_at": review.published_at.isoformat()},
                detected_at=now,
            )
        )

    return alerts


def baseline_review_rate(
    reviews: list[ReviewActivity],
    now: datetime | None = None,
) -> float:
    """Reviews per day over the trailing 30 days, excluding the most recent day.

    The last 24h are left out so a spike does not inflate its own baseline.
    """
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=BASELINE_DAYS)
    end = now - RECENT_WINDOW
    count = sum(1 for r in reviews if start <= r.published_at < end)
    return count / (BASELINE_DAYS - 1)
