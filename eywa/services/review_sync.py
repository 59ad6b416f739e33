"""Scheduled and on-demand refresh of ratings and reviews for linked hotels.

One job walks its hotels strictly one after another, and each hotel's
sources one after another, with a short pause between hotels to stay under
the provider's rate limit. A failing source is recorded against its link
and the job, then the job moves on.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel

from eywa.exceptions.custom import (
    ListingNotFoundError,
    NotConfiguredError,
    ProviderError,
    SyncInProgressError,
)
from eywa.mappers.review_mapper import map_place_reviews, map_place_to_snapshot
from eywa.schemas.responses import HotelSyncResult, SyncJobResult
from eywa.schemas.reviews import (
    HotelSources,
    ReviewSource,
    ReviewSourceLink,
    SyncError,
    SyncJobStatus,
    SyncJobType,
)
from eywa.services.google_places import GooglePlacesService
from eywa.services.scoring import ScoreService
from eywa.store import ReviewStore

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL_HOURS = 24
FAILURE_BACKOFF_MULTIPLIER = 2
MAX_HOTELS_PER_RUN = 100
INTER_HOTEL_DELAY = 0.1  # seconds between hotels
PROVIDER_TIMEOUT = 30.0  # seconds per provider call

# TripAdvisor links are accepted but not synced yet
SUPPORTED_SOURCES = frozenset({ReviewSource.google})


class SyncOptions(BaseModel):
    triggered_by: str  # user id or "cron"
    job_type: SyncJobType
    hotel_ids: list[str] | None = None


def job_status(hotels_success: int, hotels_failed: int) -> SyncJobStatus:
    if hotels_failed == 0:
        return SyncJobStatus.completed
    if hotels_success == 0:
        return SyncJobStatus.failed
    return SyncJobStatus.partial


class ReviewSyncService:
    def __init__(
        self,
        store: ReviewStore,
        places: GooglePlacesService,
        scoring: ScoreService,
        *,
        sync_interval_hours: int = DEFAULT_SYNC_INTERVAL_HOURS,
        inter_hotel_delay: float = INTER_HOTEL_DELAY,
        max_hotels_per_run: int = MAX_HOTELS_PER_RUN,
        provider_timeout: float = PROVIDER_TIMEOUT,
    ):
        self._store = store
        self._places = places
        self._scoring = scoring
        self._sync_interval = timedelta(hours=sync_interval_hours)
        self._inter_hotel_delay = inter_hotel_delay
        self._max_hotels_per_run = max_hotels_per_run
        self._provider_timeout = provider_timeout
        self._lock = asyncio.Lock()
        self._current_job_id: str | None = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def is_configured(self) -> bool:
        return self._places.is_configured

    @property
    def current_job_id(self) -> str | None:
        return self._current_job_id

    def get_hotels_due_for_sync(self, limit: int | None = None) -> list[HotelSources]:
        return self._store.get_hotels_due_for_sync(
            datetime.now(timezone.utc),
            limit or self._max_hotels_per_run,
            sources=SUPPORTED_SOURCES,
        )

    async def run_sync_job(self, options: SyncOptions) -> SyncJobResult:
        """Run one sync job to completion.

        Only one job runs at a time; a second call while one is in flight
        raises SyncInProgressError instead of queueing. Without a Google
        Places key it raises NotConfiguredError before any job or link is
        touched, so a missing key never counts against a link.
        """
        if not self._places.is_configured:
            raise NotConfiguredError("Google Places")
        if self._lock.locked():
            raise SyncInProgressError(self._current_job_id)
        async with self._lock:
            return await self._run(options)

    async def _run(self, options: SyncOptions) -> SyncJobResult:
        started = time.monotonic()
        job = self._store.create_job(options.job_type, options.triggered_by, options.hotel_ids)
        self._current_job_id = job.id
        hotels_success = 0
        hotels_failed = 0
        all_errors: list[SyncError] = []

        try:
            if options.hotel_ids:
                hotels = self._store.get_hotels_by_ids(
                    options.hotel_ids, sources=SUPPORTED_SOURCES
                )
            else:
                hotels = self.get_hotels_due_for_sync()
            self._store.set_job_total(job.id, len(hotels))
            logger.info(
                "Sync job %s (%s, by %s): %d hotels",
                job.id, options.job_type, options.triggered_by, len(hotels),
            )

            for index, hotel in enumerate(hotels):
                if index:
                    await asyncio.sleep(self._inter_hotel_delay)

                result = await self.sync_hotel_reviews(
                    hotel.hotel_id, hotel.sources, job_id=job.id, hotel_name=hotel.hotel_name,
                )
                if result.success:
                    hotels_success += 1
                else:
                    hotels_failed += 1
                    all_errors.extend(result.errors)

            status = job_status(hotels_success, hotels_failed)
            self._store.finish_job(job.id, status, hotels_success, hotels_failed)
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                "Sync job %s %s: %d/%d hotels synced in %dms",
                job.id, status, hotels_success, len(hotels), duration_ms,
            )
            return SyncJobResult(
                job_id=job.id,
                status=status,
                hotels_total=len(hotels),
                hotels_success=hotels_success,
                hotels_failed=hotels_failed,
                duration_ms=duration_ms,
                errors=all_errors,
            )
        except Exception as exc:
            logger.exception("Sync job %s failed", job.id)
            self._store.finish_job(
                job.id, SyncJobStatus.failed, hotels_success, hotels_failed, str(exc),
            )
            raise
        finally:
            self._current_job_id = None

    async def sync_hotel_reviews(
        self,
        hotel_id: str,
        sources: list[ReviewSourceLink],
        job_id: str | None = None,
        hotel_name: str | None = None,
    ) -> HotelSyncResult:
        """Refresh every linked source of one hotel, then rescore it.

        The hotel only counts as a success when at least one source synced
        and none failed.
        """
        errors: list[SyncError] = []
        any_success = False

        for link in sources:
            if link.source not in SUPPORTED_SOURCES:
                logger.info("%s sync not yet implemented for hotel %s, skipping", link.source, hotel_id)
                continue

            now = datetime.now(timezone.utc)
            try:
                await self._sync_google(hotel_id, link.external_id, now)
            except Exception as exc:
                error = SyncError(
                    job_id=job_id,
                    hotel_id=hotel_id,
                    hotel_name=hotel_name,
                    source=link.source,
                    error_type=type(exc).__name__,
                    error_message=str(exc) or type(exc).__name__,
                )
                errors.append(error)
                logger.warning(
                    "Sync failed for hotel %s (%s): %s",
                    hotel_id, link.source, error.error_message,
                )
                self._store.mark_sync_failure(
                    hotel_id,
                    link.source,
                    error.error_message,
                    now,
                    now + self._sync_interval * FAILURE_BACKOFF_MULTIPLIER,
                )
                if job_id:
                    self._store.record_error(error)
                continue

            any_success = True
            self._store.mark_sync_success(hotel_id, link.source, now, now + self._sync_interval)

        if any_success:
            try:
                self._scoring.compute_and_store(hotel_id)
            except Exception:
                logger.exception("Error computing Eywa score for hotel %s", hotel_id)

        return HotelSyncResult(success=any_success and not errors, errors=errors)

    async def _fetch_place(self, place_id: str):
        try:
            return await asyncio.wait_for(
                self._places.get_place_details(place_id), timeout=self._provider_timeout,
            )
        except TimeoutError as exc:
            raise ProviderError(
                f"Timed out after {self._provider_timeout}s fetching place {place_id}"
            ) from exc

    async def _sync_google(self, hotel_id: str, place_id: str, now: datetime) -> None:
        place = await self._fetch_place(place_id)
        if place is None:
            raise ListingNotFoundError(place_id)

        self._store.upsert_rating_snapshot(map_place_to_snapshot(hotel_id, place, now))

        new_reviews = 0
        for review in map_place_reviews(hotel_id, place, now):
            if self._store.upsert_review(review):
                new_reviews += 1
        logger.info(
            "Synced Google place %s for hotel %s: rating=%s, %d new reviews",
            place_id, hotel_id, place.rating, new_reviews,
        )
