"""
Error handling for the core banking adapter service.
Every failure leaves the API as ``{"error": <message>, "trace_id": <id>}``
with a non-2xx status; stack traces only go to the logs.
"""
import traceback
from typing import Any, Dict, List, Optional
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from corebank.exceptions import CoreBankingError
from corebank.obs.logging import get_logger, log_error

logger = get_logger(__name__)


def error_body(message: str, request: Request, **extensions) -> Dict[str, Any]:
    """Build the JSON error body for a request."""
    body: Dict[str, Any] = {"error": message}
    trace_id: Optional[str] = getattr(request.state, 'trace_id', None)
    if trace_id:
        body["trace_id"] = trace_id
    body.update(extensions)
    return body


async def core_banking_exception_handler(request: Request, exc: CoreBankingError) -> JSONResponse:
    """Handle domain errors raised by the adapter layer."""
    log_error(
        logger=logger,
        error=exc,
        trace_id=getattr(request.state, 'trace_id', None),
        route=request.url.path,
        method=request.method,
        status_code=exc.status_code,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_body(exc.message, request))
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions (FastAPI and Starlette)."""
    log_error(
        logger=logger,
        error=exc,
        trace_id=getattr(request.state, 'trace_id', None),
        route=request.url.path,
        method=request.method,
        status_code=exc.status_code,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_body(str(exc.detail), request)),
        headers=getattr(exc, "headers", None),
    )


def sanitize_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep location, message and type; drop input and ctx so request values are never echoed."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in errors
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors."""
    log_error(
        logger=logger,
        error=exc,
        trace_id=getattr(request.state, 'trace_id', None),
        route=request.url.path,
        method=request.method,
        status_code=422,
    )

    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(
            error_body("Request validation failed", request, validation_errors=sanitize_validation_errors(exc.errors()))
        )
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without leaking internals."""
    log_error(
        logger=logger,
        error=exc,
        trace_id=getattr(request.state, 'trace_id', None),
        route=request.url.path,
        method=request.method,
        status_code=500,
        stack_trace=traceback.format_exc(),
    )

    return JSONResponse(
        status_code=500,
        content=jsonable_encoder(error_body("An unexpected error occurred", request))
    )


def register_error_handlers(app):
    """Register all error handlers with the FastAPI app."""

    # Domain errors
    app.add_exception_handler(CoreBankingError, core_banking_exception_handler)

    # HTTP exceptions
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Validation errors
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # General exceptions (catch-all)
    app.add_exception_handler(Exception, general_exception_handler)

    return app
