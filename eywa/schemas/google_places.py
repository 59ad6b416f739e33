from pydantic import BaseModel


class LocalizedText(BaseModel):
    text: str | None = None
    languageCode: str | None = None


class AuthorAttribution(BaseModel):
    displayName: str | None = None
    uri: str | None = None
    photoUri: str | None = None


class PlaceReview(BaseModel):
    name: str | None = None  # "places/{place_id}/reviews/{review_id}"
    relativePublishTimeDescription: str | None = None
    rating: int | None = None
    text: LocalizedText | None = None
    originalText: LocalizedText | None = None
    authorAttribution: AuthorAttribution | None = None
    publishTime: str | None = None  # RFC 3339, e.g. "2024-03-01T10:00:00Z"


class GooglePlace(BaseModel):
    id: str | None = None
    displayName: LocalizedText | None = None
    formattedAddress: str | None = None
    rating: float | None = None
    userRatingCount: int | None = None
    googleMapsUri: str | None = None
    websiteUri: str | None = None
    businessStatus: str | None = None
    reviews: list[PlaceReview] = []


class TextSearchResponse(BaseModel):
    places: list[GooglePlace] = []


class PlaceVerification(BaseModel):
    valid: bool
    match_score: float
    actual_name: str | None = None
