"""
Error responses for the BoligDeposit privacy service

Every error leaves the service in one shape:

    {
        "error": {
            "status_code": 409,
            "error_code": "ERASURE_BLOCKED",
            "message": "Data cannot be erased while an active lease contract exists",
            "details": {"user_id": "u1"},
            "path": "/api/v1/privacy/erase"
        }
    }

``details`` is omitted when empty. Codes the web client acts on:

    ERASURE_BLOCKED      409  an active lease contract; tell the user to end it first
    ERASURE_FAILED       500  the erasure job stopped partway and is resumed by the
                              scheduler; details carry job_id
    STORAGE_ERROR        500  a database read or write failed; details carry the operation
    AUTH_LOGIN_REQUIRED  401  the upstream API rejected the token; redirect to
                              details.redirect_to
    VALIDATION_FAILED    422  request body or query did not validate; details carry
                              validation_errors

Everything else is an auth failure (401/403), a missing request (404) or an
illegal request status change (400).
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from boligdeposit.exceptions import BoligDepositError, ErrorCode

logger = logging.getLogger(__name__)

# The router raises HTTPException only for unknown paths and wrong methods
ROUTER_ERROR_CODES = {
    status.HTTP_404_NOT_FOUND: ErrorCode.RESOURCE_NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
}


def error_response(
    request: Request,
    status_code: int,
    error_code: ErrorCode,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "status_code": status_code,
        "error_code": error_code.value,
        "message": message,
        "path": request.url.path,
    }
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


async def service_error_handler(request: Request, exc: BoligDepositError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s on %s: %s", exc.error_code.value, request.url.path, exc.message, extra={"details": exc.details}
        )
    else:
        logger.warning("%s on %s: %s", exc.error_code.value, request.url.path, exc.message)
    return error_response(request, exc.status_code, exc.error_code, exc.message, exc.details)


async def router_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error_code = ROUTER_ERROR_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    return error_response(request, exc.status_code, error_code, str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("Validation error on %s: %d field(s)", request.url.path, len(errors))
    return error_response(
        request,
        422,
        ErrorCode.VALIDATION_FAILED,
        "Validation error",
        {"validation_errors": errors},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure; the client only learns that something went wrong."""
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR,
        "An unexpected error occurred. Please try again later.",
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(BoligDepositError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, router_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
