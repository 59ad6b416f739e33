"""In-process store for review sources, ratings, reviews, scores and sync jobs.

Every write is a keyed upsert or an append, so re-running a sync over the
same upstream data never duplicates rows:

- links:     (hotel_id, source)
- snapshots: (hotel_id, source, day)
- reviews:   (hotel_id, source, external_review_id)
"""

from __future__ import annotations

import uuid
from collections.abc import Collection
from datetime import date, datetime, timedelta, timezone

from eywa.schemas.reviews import (
    EywaScoreRecord,
    Hotel,
    HotelSources,
    RatingSnapshot,
    ReviewRecord,
    ReviewSource,
    ReviewSourceLink,
    SyncError,
    SyncJob,
    SyncJobStatus,
    SyncJobType,
    SyncStatus,
)

# Links failing this many times in a row are parked...
MAX_SYNC_ERRORS = 3
# ...until their last attempt is older than this
DEAD_LETTER_RETRY_DAYS = 7

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def is_due(link: ReviewSourceLink, now: datetime) -> bool:
    """Whether a link should be refreshed in the next scheduled run."""
    if link.next_sync_at is not None and link.next_sync_at > now:
        return False
    if link.sync_error_count < MAX_SYNC_ERRORS:
        return True
    dead_letter_cutoff = now - timedelta(days=DEAD_LETTER_RETRY_DAYS)
    return link.last_sync_at is not None and link.last_sync_at < dead_letter_cutoff


class ReviewStore:
    def __init__(self) -> None:
        self._hotels: dict[str, Hotel] = {}
        self._links: dict[tuple[str, ReviewSource], ReviewSourceLink] = {}
        self._snapshots: dict[tuple[str, ReviewSource, date], RatingSnapshot] = {}
        self._reviews: dict[tuple[str, ReviewSource, str], ReviewRecord] = {}
        self._scores: dict[str, list[EywaScoreRecord]] = {}
        self._jobs: dict[str, SyncJob] = {}
        self._errors: list[SyncError] = []

    # --- Hotels & links ---

    def add_hotel(self, hotel: Hotel) -> Hotel:
        self._hotels[hotel.id] = hotel
        return hotel

    def get_hotel(self, hotel_id: str) -> Hotel | None:
        return self._hotels.get(hotel_id)

    def upsert_link(
        self,
        hotel_id: str,
        source: ReviewSource,
        external_id: str,
        name: str | None = None,
        is_verified: bool = False,
    ) -> ReviewSourceLink:
        """Create or repoint a link. Sync bookkeeping survives a repoint."""
        key = (hotel_id, source)
        if link := self._links.get(key):
            link.external_id = external_id
            link.name = name
            link.is_verified = is_verified
            return link
        link = ReviewSourceLink(
            hotel_id=hotel_id,
            source=source,
            external_id=external_id,
            name=name,
            is_verified=is_verified,
        )
        self._links[key] = link
        return link

    def get_link(self, hotel_id: str, source: ReviewSource) -> ReviewSourceLink | None:
        return self._links.get((hotel_id, source))

    def links_for_hotel(self, hotel_id: str) -> list[ReviewSourceLink]:
        return [link for (hid, _), link in self._links.items() if hid == hotel_id]

    def hotel_sync_status(self, hotel_id: str) -> list[ReviewSourceLink]:
        return [link.model_copy() for link in self.links_for_hotel(hotel_id)]

    def _hotel_sources(self, hotel_id: str, links: list[ReviewSourceLink]) -> HotelSources:
        hotel = self._hotels.get(hotel_id)
        return HotelSources(
            hotel_id=hotel_id,
            hotel_name=hotel.name if hotel else None,
            sources=links,
        )

    def get_hotels_due_for_sync(
        self,
        now: datetime,
        limit: int = 100,
        sources: Collection[ReviewSource] | None = None,
    ) -> list[HotelSources]:
        """Hotels with due links, least recently synced first.

        With `sources`, links to any other source are ignored, so a hotel
        linked only elsewhere is never selected.
        """
        due: dict[str, list[ReviewSourceLink]] = {}
        for link in self._links.values():
            if sources is not None and link.source not in sources:
                continue
            if is_due(link, now):
                due.setdefault(link.hotel_id, []).append(link)

        ordered = sorted(
            due.items(),
            key=lambda item: min(link.last_sync_at or _EPOCH for link in item[1]),
        )
        return [self._hotel_sources(hid, links) for hid, links in ordered[:limit]]

    def get_hotels_by_ids(
        self,
        hotel_ids: list[str],
        sources: Collection[ReviewSource] | None = None,
    ) -> list[HotelSources]:
        """Linked sources of the given hotels, regardless of schedule."""
        result: list[HotelSources] = []
        for hotel_id in dict.fromkeys(hotel_ids):
            links = [
                link for link in self.links_for_hotel(hotel_id)
                if sources is None or link.source in sources
            ]
            if links:
                result.append(self._hotel_sources(hotel_id, links))
        return result

    def mark_sync_success(
        self, hotel_id: str, source: ReviewSource, now: datetime, next_sync_at: datetime
    ) -> None:
        if link := self._links.get((hotel_id, source)):
            link.last_sync_at = now
            link.last_sync_status = SyncStatus.success
            link.sync_error_message = None
            link.sync_error_count = 0
            link.next_sync_at = next_sync_at

    def mark_sync_failure(
        self,
        hotel_id: str,
        source: ReviewSource,
        message: str,
        now: datetime,
        next_sync_at: datetime,
    ) -> None:
        if link := self._links.get((hotel_id, source)):
            link.last_sync_at = now
            link.last_sync_status = SyncStatus.failed
            link.sync_error_message = message
            link.sync_error_count += 1
            link.next_sync_at = next_sync_at

    # --- Ratings & reviews ---

    def upsert_rating_snapshot(self, snapshot: RatingSnapshot) -> None:
        key = (snapshot.hotel_id, snapshot.source, snapshot.fetched_at.date())
        self._snapshots[key] = snapshot

    def latest_ratings(self, hotel_id: str) -> list[RatingSnapshot]:
        """Most recent snapshot of each source for a hotel."""
        latest: dict[ReviewSource, RatingSnapshot] = {}
        for (hid, source, _), snap in self._snapshots.items():
            if hid != hotel_id:
                continue
            current = latest.get(source)
            if current is None or snap.fetched_at > current.fetched_at:
                latest[source] = snap
        return list(latest.values())

    def upsert_review(self, review: ReviewRecord) -> bool:
        """Insert or refresh a review. Returns True if it was new."""
        key = (review.hotel_id, review.source, review.external_review_id)
        is_new = key not in self._reviews
        self._reviews[key] = review
        return is_new

    def reviews_for_hotel(
        self, hotel_id: str, since: datetime | None = None
    ) -> list[ReviewRecord]:
        reviews = [r for (hid, _, _), r in self._reviews.items() if hid == hotel_id]
        if since is not None:
            reviews = [r for r in reviews if r.published_at and r.published_at >= since]
        return sorted(
            reviews,
            key=lambda r: r.published_at or _EPOCH,
            reverse=True,
        )

    # --- Scores ---

    def append_score(self, record: EywaScoreRecord) -> None:
        self._scores.setdefault(record.hotel_id, []).append(record)

    def latest_score(self, hotel_id: str) -> EywaScoreRecord | None:
        history = self._scores.get(hotel_id)
        return history[-1] if history else None

    def latest_scores(self, hotel_id: str, limit: int = 2) -> list[EywaScoreRecord]:
        """Newest first."""
        return list(reversed(self._scores.get(hotel_id, [])))[:limit]

    def score_history(self, hotel_id: str) -> list[EywaScoreRecord]:
        return list(self._scores.get(hotel_id, []))

    def current_scores(self) -> dict[str, EywaScoreRecord]:
        return {hid: history[-1] for hid, history in self._scores.items() if history}

    # --- Sync jobs ---

    def create_job(
        self,
        job_type: SyncJobType,
        triggered_by: str,
        hotel_ids: list[str] | None = None,
    ) -> SyncJob:
        job = SyncJob(
            id=uuid.uuid4().hex[:12],
            job_type=job_type,
            triggered_by=triggered_by,
            hotel_ids=hotel_ids,
        )
        self._jobs[job.id] = job
        return job

    def get_job(self, job_id: str) -> SyncJob | None:
        return self._jobs.get(job_id)

    def set_job_total(self, job_id: str, total: int) -> None:
        if job := self._jobs.get(job_id):
            job.hotels_total = total

    def finish_job(
        self,
        job_id: str,
        status: SyncJobStatus,
        hotels_success: int,
        hotels_failed: int,
        error_message: str | None = None,
    ) -> None:
        """Close a running job. Terminal jobs are never touched again."""
        job = self._jobs.get(job_id)
        if job is None or job.status != SyncJobStatus.running:
            return
        job.status = status
        job.completed_at = datetime.now(timezone.utc)
        job.hotels_success = hotels_success
        job.hotels_failed = hotels_failed
        job.error_message = error_message

    def recent_sync_jobs(self, limit: int = 10) -> list[SyncJob]:
        return sorted(self._jobs.values(), key=lambda j: j.started_at, reverse=True)[:limit]

    def record_error(self, error: SyncError) -> None:
        self._errors.append(error)

    def sync_job_errors(self, job_id: str) -> list[SyncError]:
        return sorted(
            (e for e in self._errors if e.job_id == job_id),
            key=lambda e: e.created_at,
            reverse=True,
        )
