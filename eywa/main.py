import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from eywa.config import Settings
from eywa.exceptions.custom import (
    AlreadyLinkedError,
    HotelNotFoundError,
    ListingNotFoundError,
    NotConfiguredError,
    ProviderError,
    RateLimitError,
    SyncInProgressError,
    UnsupportedSourceError,
)
from eywa.exceptions.handlers import (
    bad_request_error_handler,
    not_configured_error_handler,
    not_found_error_handler,
    provider_error_handler,
    rate_limit_error_handler,
    sync_in_progress_error_handler,
)
from eywa.routers.admin import router as admin_router
from eywa.routers.analytics import router as analytics_router
from eywa.services.google_places import GooglePlacesService
from eywa.services.hotel_matching import HotelMatcher
from eywa.services.linking import LinkingService
from eywa.services.reporting import ReportingService
from eywa.services.review_sync import ReviewSyncService
from eywa.services.scheduler import Scheduler, register_default_tasks
from eywa.services.scoring import ScoreService
from eywa.store import ReviewStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    async with httpx.AsyncClient(timeout=settings.provider_timeout) as client:
        store = ReviewStore()
        google_places = GooglePlacesService(client, settings.google_places_api_key)
        if not google_places.is_configured:
            logger.warning("GOOGLE_PLACES_API_KEY not set, review sync and matching disabled")

        scoring = ScoreService(store)
        sync_service = ReviewSyncService(
            store,
            google_places,
            scoring,
            sync_interval_hours=settings.sync_interval_hours,
            inter_hotel_delay=settings.inter_hotel_delay,
            max_hotels_per_run=settings.max_hotels_per_run,
            provider_timeout=settings.provider_timeout,
        )

        app.state.store = store
        app.state.sync_service = sync_service
        app.state.linking_service = LinkingService(
            store,
            google_places,
            HotelMatcher(google_places),
            scoring,
            sync_interval_hours=settings.sync_interval_hours,
            inter_hotel_delay=settings.inter_hotel_delay,
        )
        app.state.reporting_service = ReportingService(store)

        scheduler = Scheduler()
        app.state.scheduler = scheduler
        if settings.scheduler_enabled:
            register_default_tasks(
                scheduler,
                sync_service,
                store,
                daily_sync_hour=settings.daily_sync_hour,
                daily_sync_minute=settings.daily_sync_minute,
                health_check_minute=settings.health_check_minute,
            )

        try:
            yield
        finally:
            await scheduler.shutdown()


app = FastAPI(title="Eywa Reviews", lifespan=lifespan)

app.add_exception_handler(ProviderError, provider_error_handler)
app.add_exception_handler(RateLimitError, rate_limit_error_handler)
app.add_exception_handler(NotConfiguredError, not_configured_error_handler)
app.add_exception_handler(HotelNotFoundError, not_found_error_handler)
app.add_exception_handler(ListingNotFoundError, not_found_error_handler)
app.add_exception_handler(SyncInProgressError, sync_in_progress_error_handler)
app.add_exception_handler(AlreadyLinkedError, bad_request_error_handler)
app.add_exception_handler(UnsupportedSourceError, bad_request_error_handler)

app.include_router(admin_router)
app.include_router(analytics_router)
