from datetime import datetime

from eywa.schemas.google_places import GooglePlace, PlaceReview
from eywa.schemas.reviews import RatingSnapshot, ReviewRecord, ReviewSource


def _parse_publish_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def external_review_id(review: PlaceReview) -> str | None:
    """Stable id for a Google review: its resource name, else its publish time."""
    if review.name:
        return review.name
    if review.publishTime:
        return f"google_{review.publishTime}"
    return None


def map_place_to_snapshot(hotel_id: str, place: GooglePlace, fetched_at: datetime) -> RatingSnapshot:
    return RatingSnapshot(
        hotel_id=hotel_id,
        source=ReviewSource.google,
        rating=place.rating or 0.0,
        review_count=place.userRatingCount or 0,
        fetched_at=fetched_at,
    )


def map_place_reviews(hotel_id: str, place: GooglePlace, fetched_at: datetime) -> list[ReviewRecord]:
    """Map the reviews bundled with place details. Reviews without any id are skipped."""
    records: list[ReviewRecord] = []
    for review in place.reviews:
        review_id = external_review_id(review)
        if review_id is None:
            continue

        text = review.text or review.originalText
        author = review.authorAttribution
        records.append(
            ReviewRecord(
                hotel_id=hotel_id,
                source=ReviewSource.google,
                external_review_id=review_id,
                author=author.displayName if author else None,
                author_url=author.uri if author else None,
                rating=review.rating,
                text=text.text if text else None,
                language=(text.languageCode if text else None) or "en",
                relative_time_description=review.relativePublishTimeDescription,
                published_at=_parse_publish_time(review.publishTime),
                fetched_at=fetched_at,
            )
        )
    return records
