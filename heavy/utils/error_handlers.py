"""FastAPI exception handlers.

Every failure leaves the API in the same envelope as a successful call:
``{"success": false, "error": {"code", "message", "details"?}, "metadata"?}``.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from .exceptions import APIError, GatewayError, HeavyError
from .logging import get_logger

logger = get_logger(__name__)


def create_error_response(
    status_code: int,
    error: str,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Build the JSON error envelope.

    ``details`` and the ``metadata.request_id`` block are omitted when empty.
    """
    body: dict[str, Any] = {"code": error, "message": message}
    if details:
        body["details"] = details

    content: dict[str, Any] = {"success": False, "error": body}
    if request_id:
        content["metadata"] = {"request_id": request_id}

    return JSONResponse(status_code=status_code, content=content)


def _request_context(request: Request) -> dict[str, Any]:
    return {
        "request_id": getattr(request.state, "request_id", None),
        "path": str(request.url.path),
    }


def _heavy_error_response(
    request: Request, exc: HeavyError, status_code: int, event: str, level: str
) -> JSONResponse:
    context = _request_context(request)
    getattr(logger, level)(
        event,
        error=type(exc).__name__,
        message=exc.message,
        status_code=status_code,
        details=exc.details,
        **context,
    )
    return create_error_response(
        status_code=status_code,
        error=type(exc).__name__,
        message=exc.message,
        details=exc.details or None,
        request_id=context["request_id"],
    )


def _validation_response(request: Request, raw_errors: Any, message: str) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in raw_errors
    ]
    context = _request_context(request)
    logger.warning(message, errors=errors, **context)
    return create_error_response(
        status_code=422,
        error="ValidationError",
        message=message,
        details={"validation_errors": errors},
        request_id=context["request_id"],
    )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return _heavy_error_response(request, exc, exc.status_code, "API error", "warning")


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """The LLM backend failed after retries; report it as a bad upstream."""
    return _heavy_error_response(request, exc, 502, "LLM gateway error", "error")


async def heavy_error_handler(request: Request, exc: HeavyError) -> JSONResponse:
    return _heavy_error_response(request, exc, 500, "Application error", "error")


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _validation_response(request, exc.errors(), "Request validation failed")


async def pydantic_validation_error_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    return _validation_response(request, exc.errors(), "Data validation failed")


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unhandled becomes an opaque 500; the traceback goes to the log only."""
    context = _request_context(request)
    logger.exception(
        "Unexpected error", error=type(exc).__name__, message=str(exc), **context
    )
    return create_error_response(
        status_code=500,
        error="InternalServerError",
        message="An unexpected error occurred",
        request_id=context["request_id"],
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the handlers above to ``app``.

    Starlette picks the handler registered for the nearest class in the
    exception's MRO, so APIError and GatewayError win over HeavyError.
    """
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(GatewayError, gateway_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HeavyError, heavy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PydanticValidationError, pydantic_validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.debug("Error handlers registered")
