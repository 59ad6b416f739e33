from enum import StrEnum

from pydantic import BaseModel


class HotelMatchInput(BaseModel):
    name: str
    address: str | None = None
    city: str = ""
    country: str = ""


class MatchBreakdown(BaseModel):
    name_score: float
    address_score: float
    has_rating: bool
    review_count_bonus: float


class MatchCandidate(BaseModel):
    external_id: str
    name: str
    address: str
    rating: float | None = None
    review_count: int | None = None
    confidence: float
    breakdown: MatchBreakdown


class MatchResult(BaseModel):
    best_match: MatchCandidate | None = None
    all_matches: list[MatchCandidate] = []
    auto_linkable: bool = False
    search_query: str


class SearchStatus(StrEnum):
    ok = "ok"
    provider_unavailable = "provider_unavailable"
    provider_error = "provider_error"
    no_results = "no_results"
