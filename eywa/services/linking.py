import asyncio
import logging
from datetime import datetime, timedelta, timezone

from eywa.exceptions.custom import (
    AlreadyLinkedError,
    HotelNotFoundError,
    ListingNotFoundError,
    NotConfiguredError,
    UnsupportedSourceError,
)
from eywa.mappers.review_mapper import map_place_reviews, map_place_to_snapshot
from eywa.schemas.google_places import GooglePlace
from eywa.schemas.matching import HotelMatchInput, MatchResult
from eywa.schemas.responses import AutoLinkResult, BatchLinkEntry, BatchLinkResponse
from eywa.schemas.reviews import Hotel, ReviewSource, ReviewSourceLink
from eywa.services.google_places import GooglePlacesService
from eywa.services.hotel_matching import (
    AUTO_LINK_THRESHOLD,
    HotelMatcher,
    format_confidence,
)
from eywa.services.review_sync import DEFAULT_SYNC_INTERVAL_HOURS, INTER_HOTEL_DELAY
from eywa.services.scoring import ScoreService
from eywa.store import ReviewStore

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 20
# Name agreement needed for a manually entered place id to count as verified
VERIFIED_MATCH_SCORE = 0.7


class LinkingService:
    def __init__(
        self,
        store: ReviewStore,
        places: GooglePlacesService,
        matcher: HotelMatcher,
        scoring: ScoreService,
        *,
        sync_interval_hours: int = DEFAULT_SYNC_INTERVAL_HOURS,
        inter_hotel_delay: float = INTER_HOTEL_DELAY,
    ):
        self._store = store
        self._places = places
        self._matcher = matcher
        self._scoring = scoring
        self._sync_interval = timedelta(hours=sync_interval_hours)
        self._inter_hotel_delay = inter_hotel_delay

    def _get_hotel(self, hotel_id: str) -> Hotel:
        hotel = self._store.get_hotel(hotel_id)
        if hotel is None:
            raise HotelNotFoundError(hotel_id)
        return hotel

    def _store_initial_data(self, hotel_id: str, place: GooglePlace) -> None:
        """Persist the first rating and reviews of a freshly linked place."""
        now = datetime.now(timezone.utc)
        self._store.upsert_rating_snapshot(map_place_to_snapshot(hotel_id, place, now))
        for review in map_place_reviews(hotel_id, place, now):
            self._store.upsert_review(review)
        self._store.mark_sync_success(hotel_id, ReviewSource.google, now, now + self._sync_interval)
        self._scoring.compute_and_store(hotel_id, now=now)

    async def _resolve(self, hotel: Hotel) -> MatchResult:
        return await self._matcher.resolve(
            HotelMatchInput(
                name=hotel.name, address=hotel.address, city=hotel.city, country=hotel.country,
            )
        )

    async def match(self, hotel_id: str) -> MatchResult:
        """Rank candidate listings for a hotel without linking anything."""
        hotel = self._get_hotel(hotel_id)
        if not self._places.is_configured:
            raise NotConfiguredError("Google Places")
        return await self._resolve(hotel)

    async def auto_link(self, hotel_id: str, force: bool = False) -> AutoLinkResult:
        """Match a hotel to Google Places and link it when confident enough (or forced)."""
        hotel = self._get_hotel(hotel_id)
        if not self._places.is_configured:
            raise NotConfiguredError("Google Places")

        existing = self._store.get_link(hotel_id, ReviewSource.google)
        if existing and not force:
            raise AlreadyLinkedError(hotel_id, ReviewSource.google, existing.external_id)

        match = await self._resolve(hotel)
        best = match.best_match
        if best is None:
            return AutoLinkResult(
                hotel_id=hotel_id,
                matched=False,
                message="No matching places found on Google",
                search_query=match.search_query,
            )

        if not match.auto_linkable and not force:
            return AutoLinkResult(
                hotel_id=hotel_id,
                matched=True,
                message=(
                    f"Match found but confidence ({format_confidence(best.confidence)}) below "
                    f"auto-link threshold ({format_confidence(AUTO_LINK_THRESHOLD)}). "
                    "Use force to override."
                ),
                search_query=match.search_query,
                best_match=best,
                all_matches=match.all_matches[:5],
            )

        link = self._store.upsert_link(
            hotel_id,
            ReviewSource.google,
            best.external_id,
            name=best.name,
            is_verified=best.confidence >= AUTO_LINK_THRESHOLD,
        )
        logger.info(
            "Linked hotel %s to place %s (%s)",
            hotel_id, best.external_id, format_confidence(best.confidence),
        )

        place = await self._places.get_place_details(best.external_id)
        if place is not None:
            self._store_initial_data(hotel_id, place)

        return AutoLinkResult(
            hotel_id=hotel_id,
            matched=True,
            auto_linked=True,
            message="Hotel successfully linked to Google Places",
            search_query=match.search_query,
            best_match=best,
            linked_source=link.model_copy(),
        )

    async def link_source(
        self, hotel_id: str, source: ReviewSource, external_id: str
    ) -> ReviewSourceLink:
        """Link a listing chosen by hand, after checking it still exists."""
        hotel = self._get_hotel(hotel_id)
        if source != ReviewSource.google:
            raise UnsupportedSourceError(source)
        if not self._places.is_configured:
            raise NotConfiguredError("Google Places")

        verification = await self._places.verify_place_id(external_id, hotel.name)
        if not verification.valid:
            raise ListingNotFoundError(external_id)

        link = self._store.upsert_link(
            hotel_id,
            source,
            external_id,
            name=verification.actual_name,
            is_verified=verification.match_score >= VERIFIED_MATCH_SCORE,
        )

        place = await self._places.get_place_details(external_id)
        if place is not None:
            self._store_initial_data(hotel_id, place)
        return link.model_copy()

    async def auto_link_batch(self, hotel_ids: list[str], force: bool = False) -> BatchLinkResponse:
        if len(hotel_ids) > MAX_BATCH_SIZE:
            raise ValueError(f"Maximum {MAX_BATCH_SIZE} hotels per batch")

        results: list[BatchLinkEntry] = []
        for index, hotel_id in enumerate(hotel_ids):
            if index:
                await asyncio.sleep(self._inter_hotel_delay)
            try:
                outcome = await self.auto_link(hotel_id, force=force)
            except Exception as exc:
                logger.exception("Auto-link failed for hotel %s", hotel_id)
                results.append(BatchLinkEntry(hotel_id=hotel_id, status="error", message=str(exc)))
                continue

            if outcome.auto_linked:
                status = "linked"
            elif outcome.matched:
                status = "needs_review"
            else:
                status = "no_match"
            results.append(
                BatchLinkEntry(
                    hotel_id=hotel_id,
                    status=status,
                    message=outcome.message,
                    confidence=(
                        format_confidence(outcome.best_match.confidence)
                        if outcome.best_match else None
                    ),
                )
            )

        return BatchLinkResponse(
            total=len(results),
            linked=sum(1 for r in results if r.status == "linked"),
            needs_review=sum(1 for r in results if r.status == "needs_review"),
            no_match=sum(1 for r in results if r.status == "no_match"),
            errors=sum(1 for r in results if r.status == "error"),
            results=results,
        )
