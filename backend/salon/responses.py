# backend/salon/responses.py
"""
Rejection → HTTP response mapping.

Body: {"error_kind", "message", "retryable", ...details}
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from .services.capacity import CapacityError, ErrorKind, Rejection

STATUS_BY_KIND = {
    ErrorKind.INVALID_TIME_RANGE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.DAILY_LIMIT_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorKind.CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorKind.CONCURRENCY_CONFLICT: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.CONFIGURATION_MISSING: status.HTTP_503_SERVICE_UNAVAILABLE,
}

RETRY_AFTER_SECONDS = 1


def rejection_response(rejection: Rejection) -> JSONResponse:
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if rejection.retryable else None
    return JSONResponse(
        status_code=STATUS_BY_KIND[rejection.kind],
        content={
            "error_kind": rejection.kind.value,
            "message": rejection.message,
            "retryable": rejection.retryable,
            **rejection.details,
        },
        headers=headers,
    )


async def capacity_error_handler(request: Request, exc: CapacityError) -> JSONResponse:
    return rejection_response(exc.to_rejection())
