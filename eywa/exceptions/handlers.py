import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import (
    AlreadyLinkedError,
    HotelNotFoundError,
    ListingNotFoundError,
    NotConfiguredError,
    ProviderError,
    RateLimitError,
    SyncInProgressError,
    UnsupportedSourceError,
)

logger = logging.getLogger(__name__)


async def provider_error_handler(_request: Request, exc: ProviderError) -> JSONResponse:
    logger.error("Listing provider error: %s (status=%s)", exc.message, exc.status_code)
    return JSONResponse(
        status_code=502,
        content={"detail": f"Listing provider error: {exc.message}"},
    )


async def rate_limit_error_handler(_request: Request, exc: RateLimitError) -> JSONResponse:
    logger.warning("Rate limit hit for %s", exc.service)
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded for {exc.service}"},
    )


async def not_configured_error_handler(_request: Request, exc: NotConfiguredError) -> JSONResponse:
    logger.warning("%s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


async def not_found_error_handler(
    _request: Request, exc: HotelNotFoundError | ListingNotFoundError
) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def sync_in_progress_error_handler(
    _request: Request, exc: SyncInProgressError
) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "job_id": exc.job_id},
    )


async def bad_request_error_handler(
    _request: Request, exc: AlreadyLinkedError | UnsupportedSourceError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})
