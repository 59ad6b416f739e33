"""Match a hotel record to its Google Places listing with a confidence score.

Candidates are ranked by how well their name and address agree with the
hotel, plus a small bonus for looking like a real, reviewed business.
Matches at or above AUTO_LINK_THRESHOLD can be linked without review.
"""

import logging
import math
import re
from dataclasses import dataclass, field

from eywa.exceptions.custom import NotConfiguredError, ProviderError
from eywa.mappers.similarity import jaccard, keywords, levenshtein_ratio, normalize
from eywa.schemas.google_places import GooglePlace
from eywa.schemas.matching import (
    HotelMatchInput,
    MatchBreakdown,
    MatchCandidate,
    MatchResult,
    SearchStatus,
)
from eywa.services.google_places import GooglePlacesService

logger = logging.getLogger(__name__)

AUTO_LINK_THRESHOLD = 0.85
MIN_CONFIDENCE_THRESHOLD = 0.50

NAME_WEIGHT = 0.65
ADDRESS_WEIGHT = 0.25
RATING_BONUS = 0.05
MAX_REVIEW_COUNT_BONUS = 0.05
REVIEWS_PER_BONUS_POINT = 2000

_LEADING_NUMBER_RE = re.compile(r"^\d+")


def name_score(hotel_name: str, listing_name: str) -> float:
    norm_hotel = normalize(hotel_name)
    norm_listing = normalize(listing_name)

    if norm_hotel == norm_listing:
        return 1.0

    if norm_hotel and norm_listing and (norm_hotel in norm_listing or norm_listing in norm_hotel):
        shorter, longer = sorted((norm_hotel, norm_listing), key=len)
        return 0.8 + (len(shorter) / len(longer)) * 0.15

    keyword_score = jaccard(keywords(hotel_name), keywords(listing_name))
    lev_score = levenshtein_ratio(norm_hotel, norm_listing)
    return keyword_score * 0.6 + lev_score * 0.4


def address_score(
    hotel_address: str | None,
    hotel_city: str,
    hotel_country: str,
    listing_address: str,
) -> float:
    norm_listing = normalize(listing_address)
    score = 0.0

    city, country = normalize(hotel_city), normalize(hotel_country)
    if city and city in norm_listing:
        score += 0.4
    if country and country in norm_listing:
        score += 0.2

    if hotel_address:
        norm_address = normalize(hotel_address)

        hotel_number = _LEADING_NUMBER_RE.match(norm_address)
        listing_number = _LEADING_NUMBER_RE.match(norm_listing)
        if hotel_number and listing_number and hotel_number.group() == listing_number.group():
            score += 0.2

        hotel_words = [w for w in norm_address.split(" ") if len(w) > 2]
        listing_words = [w for w in norm_listing.split(" ") if len(w) > 2]
        score += jaccard(hotel_words, listing_words) * 0.2
    else:
        # Without a street address city/country carry the whole score
        score += 0.2

    return min(1.0, score)


def calculate_confidence(
    name: float, address: float, has_rating: bool, review_count: int = 0
) -> tuple[float, float]:
    """Return (confidence, review_count_bonus)."""
    confidence = name * NAME_WEIGHT + address * ADDRESS_WEIGHT
    if has_rating:
        confidence += RATING_BONUS
    review_count_bonus = min(MAX_REVIEW_COUNT_BONUS, review_count / REVIEWS_PER_BONUS_POINT)
    confidence += review_count_bonus
    return min(1.0, confidence), review_count_bonus


def is_auto_linkable(confidence: float) -> bool:
    return confidence >= AUTO_LINK_THRESHOLD


def format_confidence(confidence: float) -> str:
    """0.333 -> '33%'. Halves round up."""
    return f"{math.floor(confidence * 100 + 0.5)}%"


def score_candidate(hotel: HotelMatchInput, place: GooglePlace) -> MatchCandidate:
    listing_name = place.displayName.text if place.displayName and place.displayName.text else ""
    listing_address = place.formattedAddress or ""

    n_score = name_score(hotel.name, listing_name)
    a_score = address_score(hotel.address, hotel.city, hotel.country, listing_address)
    has_rating = place.rating is not None and place.rating > 0
    confidence, bonus = calculate_confidence(
        n_score, a_score, has_rating, place.userRatingCount or 0
    )

    return MatchCandidate(
        external_id=place.id or "",
        name=listing_name,
        address=listing_address,
        rating=place.rating,
        review_count=place.userRatingCount,
        confidence=confidence,
        breakdown=MatchBreakdown(
            name_score=n_score,
            address_score=a_score,
            has_rating=has_rating,
            review_count_bonus=bonus,
        ),
    )


@dataclass
class SearchOutcome:
    status: SearchStatus
    places: list[GooglePlace] = field(default_factory=list)


class HotelMatcher:
    def __init__(self, places: GooglePlacesService):
        self._places = places

    async def _search(self, hotel: HotelMatchInput) -> SearchOutcome:
        try:
            places = await self._places.search_hotel(hotel.name, hotel.city, hotel.country)
        except NotConfiguredError as exc:
            logger.warning("Listing search unavailable for %s: %s", hotel.name, exc)
            return SearchOutcome(SearchStatus.provider_unavailable)
        except ProviderError as exc:
            logger.error(
                "Listing search failed for %s: %s (status=%s)",
                hotel.name, exc.message, exc.status_code,
            )
            return SearchOutcome(SearchStatus.provider_error)
        except Exception:
            logger.exception("Listing search failed for %s", hotel.name)
            return SearchOutcome(SearchStatus.provider_error)

        if not places:
            return SearchOutcome(SearchStatus.no_results)
        return SearchOutcome(SearchStatus.ok, places)

    async def resolve(self, hotel: HotelMatchInput) -> MatchResult:
        """Rank listings for a hotel. Provider failures degrade to "no match", never raise."""
        search_query = f"{hotel.name} {hotel.city} {hotel.country}"

        outcome = await self._search(hotel)
        if outcome.status != SearchStatus.ok:
            logger.info("No candidates for '%s' (%s)", search_query, outcome.status)
            return MatchResult(search_query=search_query)

        candidates = [score_candidate(hotel, place) for place in outcome.places]
        # sorted() is stable, so equal confidences keep provider order
        candidates = sorted(candidates, key=lambda c: c.confidence, reverse=True)
        valid = [c for c in candidates if c.confidence >= MIN_CONFIDENCE_THRESHOLD]

        best = valid[0] if valid else None
        logger.info(
            "Matched '%s': %d/%d candidates above threshold, best=%s",
            search_query, len(valid), len(candidates),
            format_confidence(best.confidence) if best else None,
        )
        return MatchResult(
            best_match=best,
            all_matches=valid,
            auto_linkable=best is not None and is_auto_linkable(best.confidence),
            search_query=search_query,
        )
