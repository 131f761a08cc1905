"""FastAPI glue: error responses, per-request logging context and the domain context."""

from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.domain import Domain
from protean.exceptions import (
    ExpectedVersionError,
    InvalidOperationError,
    ObjectNotFoundError,
    ValidationError,
)

from shared.exceptions import ExternalServiceDegraded
from shared.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


def _messages(exc: Exception) -> dict:
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        return messages
    return {"_entity": [str(messages or exc)]}


def _respond(request: Request, status_code: int, code: str, messages: dict) -> JSONResponse:
    log = logger.warning if status_code < 500 else logger.error
    log("Request failed", path=request.url.path, status_code=status_code, code=code, messages=messages)
    return JSONResponse(status_code=status_code, content=jsonable_encoder({"error": code, "messages": messages}))


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _respond(request, 400, getattr(exc, "code", "validation_error"), _messages(exc))


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _respond(request, 404, "not_found", _messages(exc))


async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    """Another request changed the same aggregate first. Safe to retry."""
    return _respond(request, 409, "concurrency_conflict", _messages(exc))


async def invalid_operation_handler(request: Request, exc: InvalidOperationError) -> JSONResponse:
    return _respond(request, 400, "invalid_operation", _messages(exc))


async def degraded_service_handler(request: Request, exc: ExternalServiceDegraded) -> JSONResponse:
    return _respond(request, 503, exc.code, exc.messages)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "_entity"
        messages.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"error": "validation_error", "messages": messages}),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(ExpectedVersionError, version_conflict_handler)
    app.add_exception_handler(InvalidOperationError, invalid_operation_handler)
    app.add_exception_handler(ExternalServiceDegraded, degraded_service_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


def register_request_context(app: FastAPI, domain: Domain) -> None:
    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the domain context and bind a request id to every log line."""
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        clear_context()
        add_context(request_id=request_id, path=request.url.path)
        try:
            with domain.domain_context():
                response = await call_next(request)
        finally:
            clear_context()
        response.headers["X-Request-ID"] = request_id
        return response
