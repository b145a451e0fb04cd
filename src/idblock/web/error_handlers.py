import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from idblock.errors import (
    ConfigurationError,
    ConflictError,
    CorruptStateError,
    CounterOverflowError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def create_json_error_response(status_code: int, message: str, error_type: str | None = None) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    elif isinstance(exc, ValidationError):
        status_code = 400
        error_type = "validation_error"
    elif isinstance(exc, ConfigurationError):
        logger.error("Counter store misconfigured: %s", exc)
        status_code = 500
        error_type = "configuration_error"
    else:
        status_code = 400
        error_type = "bad_request"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def allocation_error_handler(_: Request, exc: Exception) -> Response:
    """Handle AllocationError subclasses; details of store failures stay in the logs."""
    if isinstance(exc, StoreUnavailableError):
        logger.warning("Counter store unavailable: %s", exc)
        return create_json_error_response(503, "Counter store unavailable, retry later.", "store_unavailable")
    if isinstance(exc, ConflictError):
        return create_json_error_response(409, str(exc), "conflict")
    if isinstance(exc, CounterOverflowError):
        return create_json_error_response(500, str(exc), "counter_overflow")
    if isinstance(exc, CorruptStateError):
        logger.error("Corrupt counter state: %s", exc)
        return create_json_error_response(500, str(exc), "corrupt_state")
    return await general_exception_handler(_, exc)


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
