from typing import Annotated

from fastapi import Depends, Request

from eywa.services.linking import LinkingService
from eywa.services.reporting import ReportingService
from eywa.services.review_sync import ReviewSyncService
from eywa.services.scheduler import Scheduler
from eywa.store import ReviewStore


def get_store(request: Request) -> ReviewStore:
    return request.app.state.store


def get_sync_service(request: Request) -> ReviewSyncService:
    return request.app.state.sync_service


def get_linking_service(request: Request) -> LinkingService:
    return request.app.state.linking_service


def get_reporting_service(request: Request) -> ReportingService:
    return request.app.state.reporting_service


def get_scheduler(request: Request) -> Scheduler:
    return request.app.state.scheduler


StoreDep = Annotated[ReviewStore, Depends(get_store)]
SyncServiceDep = Annotated[ReviewSyncService, Depends(get_sync_service)]
LinkingDep = Annotated[LinkingService, Depends(get_linking_service)]
ReportingDep = Annotated[ReportingService, Depends(get_reporting_service)]
SchedulerDep = Annotated[Scheduler, Depends(get_scheduler)]
