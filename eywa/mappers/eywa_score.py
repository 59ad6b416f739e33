"""Eywa score: one 0-10 rating derived from every linked review source.

Each source contributes its rating rescaled to 0-10, a base weight for the
source type and a confidence that grows with review volume::

    eywa_score = sum(normalized * weight * confidence) / sum(weight * confidence)

Confidence is min(1.0, review_count / 100), so a listing with 50 reviews
counts half as much as one with 100+.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel

from eywa.schemas.reviews import RatingSource, ReviewSource, SourceScore, Trend


@dataclass(frozen=True)
class SourceProfile:
    weight: float
    scale: float  # best possible rating on the source


SOURCE_PROFILES: dict[ReviewSource, SourceProfile] = {
    ReviewSource.google: SourceProfile(weight=0.50, scale=5.0),
    ReviewSource.tripadvisor: SourceProfile(weight=0.50, scale=5.0),
    ReviewSource.booking: SourceProfile(weight=0.50, scale=10.0),
}
DEFAULT_PROFILE = SourceProfile(weight=0.50, scale=5.0)

SCORE_SCALE = 10.0
# Review count at which a source reaches full confidence
CONFIDENCE_THRESHOLD = 100
# Minimum change (either way) for a score to count as moving
TREND_THRESHOLD = 0.1


class EywaScoreResult(BaseModel):
    eywa_score: float
    per_source: list[SourceScore]

    @property
    def sources_used(self) -> list[ReviewSource]:
        return [s.source for s in self.per_source]

    def rating_for(self, source: ReviewSource) -> float | None:
        for s in self.per_source:
            if s.source == source:
                return s.rating
        return None

    @property
    def google_rating(self) -> float | None:
        return self.rating_for(ReviewSource.google)

    @property
    def tripadvisor_rating(self) -> float | None:
        return self.rating_for(ReviewSource.tripadvisor)


class TrendResult(BaseModel):
    trend: Trend
    delta: float


def calculate_confidence(review_count: int) -> float:
    return min(1.0, max(review_count, 0) / CONFIDENCE_THRESHOLD)


def normalize_rating(source: ReviewSource, rating: float) -> float:
    profile = SOURCE_PROFILES.get(source, DEFAULT_PROFILE)
    return rating * SCORE_SCALE / profile.scale


def calculate_eywa_score(sources: list[RatingSource]) -> EywaScoreResult | None:
    """Aggregate per-source ratings. Returns None when there is nothing to score."""
    if not sources:
        return None

    per_source: list[SourceScore] = []
    weighted_sum = 0.0
    total_weight = 0.0

    for src in sources:
        profile = SOURCE_PROFILES.get(src.source, DEFAULT_PROFILE)
        weight = src.weight if src.weight is not None else profile.weight
        confidence = calculate_confidence(src.review_count)
        normalized = normalize_rating(src.source, src.rating)

        weighted_sum += normalized * weight * confidence
        total_weight += weight * confidence
        per_source.append(
            SourceScore(
                source=src.source,
                rating=src.rating,
                normalized_rating=round(normalized, 2),
                weight=weight,
                confidence=confidence,
            )
        )

    if total_weight > 0:
        score = weighted_sum / total_weight
    else:
        # Listings without reviews yet: fall back to the plain weighted mean
        weights = [s.weight for s in per_source]
        if sum(weights) > 0:
            score = sum(s.normalized_rating * s.weight for s in per_source) / sum(weights)
        else:
            score = sum(s.normalized_rating for s in per_source) / len(per_source)

    return EywaScoreResult(eywa_score=round(score, 2), per_source=per_source)


def classify_change(change: float) -> Trend:
    if change > TREND_THRESHOLD:
        return Trend.up
    if change < -TREND_THRESHOLD:
        return Trend.down
    return Trend.stable


def calculate_trend(current: float, previous: float | None) -> TrendResult:
    """Compare a fresh score with the previous one. First computation is stable."""
    if previous is None:
        return TrendResult(trend=Trend.stable, delta=0.0)
    delta = round(current - previous, 2)
    return TrendResult(trend=classify_change(delta), delta=delta)


def format_eywa_score(score: float) -> str:
    return f"{score:.1f}"


def score_color(score: float) -> str:
    if score >= 8.0:
        return "green"
    if score >= 6.0:
        return "yellow"
    if score >= 4.0:
        return "orange"
    return "red"
