"""
Global exception handlers for the Secure Transaction API.

Error bodies carry the message under both ``detail`` (FastAPI convention)
and ``error`` (the key the web client reads).
"""
from http import HTTPStatus

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from secure_tx.utils.logger import get_logger

logger = get_logger("error_handlers")

# The encrypt body is the only request body the API accepts
INVALID_BODY_DETAIL = "Missing partyId or payload"


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)


def _error_body(detail) -> dict:
    return {"detail": detail, "error": detail}


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException with both ``detail`` and ``error`` keys."""
    body = _error_body(exc.detail)
    if not isinstance(exc.detail, str):
        body["error"] = HTTPStatus(exc.status_code).phrase
    return JSONResponse(
        status_code=exc.status_code,
        content=body,
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map body validation failures (wrong types, non-object body) to 400."""
    logger.warning(
        "Request validation failed",
        path=request.url.path,
        errors=len(exc.errors()),
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(INVALID_BODY_DETAIL),
    )
