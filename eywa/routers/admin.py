import asyncio
import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from eywa.dependencies import LinkingDep, SchedulerDep, StoreDep, SyncServiceDep
from eywa.exceptions.custom import HotelNotFoundError, NotConfiguredError, SyncInProgressError
from eywa.schemas.matching import MatchResult
from eywa.schemas.responses import (
    AutoLinkResult,
    BatchLinkResponse,
    JobSubmittedResponse,
    SyncJobResult,
    SyncRequest,
    TaskStatus,
)
from eywa.schemas.reviews import HotelSources, ReviewSource, ReviewSourceLink, SyncError, SyncJob
from eywa.services.review_sync import ReviewSyncService
from eywa.services.scheduler import trigger_manual_sync

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class LinkSourceRequest(BaseModel):
    source: ReviewSource
    external_id: str


class BatchLinkRequest(BaseModel):
    hotel_ids: list[str]
    force: bool = False


async def _run_sync(sync: ReviewSyncService, request: SyncRequest) -> None:
    try:
        await trigger_manual_sync(sync, request.triggered_by, request.hotel_ids)
    except SyncInProgressError:
        logger.warning("Sync requested by %s skipped, a job is already running", request.triggered_by)
    except Exception:
        logger.exception("Background sync requested by %s failed", request.triggered_by)


# --- Sync jobs ---


@router.post("/sync", response_model=JobSubmittedResponse, status_code=202)
async def start_sync(
    sync: SyncServiceDep,
    request: SyncRequest | None = None,
) -> JobSubmittedResponse:
    if not sync.is_configured:
        raise NotConfiguredError("Google Places")
    if sync.is_running:
        raise SyncInProgressError(sync.current_job_id)

    request = request or SyncRequest()
    asyncio.create_task(_run_sync(sync, request))
    # Let the job register itself before reporting its id
    await asyncio.sleep(0)
    return JobSubmittedResponse(
        job_id=sync.current_job_id,
        status="accepted",
        message="Review sync job submitted",
    )


@router.post("/sync/hotels", response_model=SyncJobResult)
async def sync_hotels(sync: SyncServiceDep, request: SyncRequest) -> SyncJobResult:
    if not request.hotel_ids:
        raise HTTPException(status_code=400, detail="hotel_ids is required")
    return await trigger_manual_sync(sync, request.triggered_by, request.hotel_ids)


@router.get("/sync/jobs", response_model=list[SyncJob])
async def list_sync_jobs(store: StoreDep, limit: int = 10) -> list[SyncJob]:
    return store.recent_sync_jobs(limit=limit)


@router.get("/sync/jobs/{job_id}/errors", response_model=list[SyncError])
async def list_sync_job_errors(store: StoreDep, job_id: str) -> list[SyncError]:
    if store.get_job(job_id) is None:
        raise HTTPException(status_code=404, detail=f"Sync job not found: {job_id}")
    return store.sync_job_errors(job_id)


@router.get("/sync/pending", response_model=list[HotelSources])
async def list_pending_hotels(sync: SyncServiceDep, limit: int = 50) -> list[HotelSources]:
    return sync.get_hotels_due_for_sync(limit=limit)


@router.get("/scheduler", response_model=list[TaskStatus])
async def scheduler_status(scheduler: SchedulerDep) -> list[TaskStatus]:
    return scheduler.status()


# --- Hotels ---


@router.get("/hotels/{hotel_id}/sync-status", response_model=list[ReviewSourceLink])
async def hotel_sync_status(store: StoreDep, hotel_id: str) -> list[ReviewSourceLink]:
    if store.get_hotel(hotel_id) is None:
        raise HotelNotFoundError(hotel_id)
    return store.hotel_sync_status(hotel_id)


@router.post("/hotels/{hotel_id}/match", response_model=MatchResult)
async def match_hotel(linking: LinkingDep, hotel_id: str) -> MatchResult:
    return await linking.match(hotel_id)


@router.post("/hotels/{hotel_id}/auto-link", response_model=AutoLinkResult)
async def auto_link_hotel(linking: LinkingDep, hotel_id: str, force: bool = False) -> AutoLinkResult:
    return await linking.auto_link(hotel_id, force=force)


@router.post("/hotels/{hotel_id}/link", response_model=ReviewSourceLink)
async def link_hotel_source(
    linking: LinkingDep, hotel_id: str, request: LinkSourceRequest
) -> ReviewSourceLink:
    return await linking.link_source(hotel_id, request.source, request.external_id)


@router.post("/hotels/auto-link-batch", response_model=BatchLinkResponse)
async def auto_link_batch(linking: LinkingDep, request: BatchLinkRequest) -> BatchLinkResponse:
    try:
        return await linking.auto_link_batch(request.hotel_ids, force=request.force)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
