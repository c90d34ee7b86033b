from decimal import Decimal
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.shiftledger.core.error_catalog import AppError, ErrorCatalog, ErrorDefinition
from app.shiftledger.core.metrics import metrics

_LOCK_TIMEOUT_MARKERS = ("lock timeout", "deadlock detected", "database is locked", "could not obtain lock")


def is_lock_timeout(exc: Exception) -> bool:
    if not isinstance(exc, OperationalError):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in _LOCK_TIMEOUT_MARKERS)


def _json_safe(value):
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def error_response(code: str, message: str, details: object, trace_id: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "details": details,
            "trace_id": trace_id,
        },
    )


def _respond(
    request: Request,
    exc: Exception,
    *,
    code: str,
    message: str,
    status_code: int,
    details: object = None,
) -> JSONResponse:
    request.state.error_code = code
    request.state.error_class = exc.__class__.__name__
    payload = {
        "code": code,
        "message": message,
        "details": _json_safe(details),
        "trace_id": getattr(request.state, "trace_id", ""),
    }
    # Requests carrying an Idempotency-Key replay their failure too.
    context = getattr(request.state, "idempotency", None)
    if context is not None:
        context.record_failure(status_code=status_code, response_body=payload)
    return JSONResponse(status_code=status_code, content=payload)


def _respond_with(request: Request, exc: Exception, error: ErrorDefinition, details: object = None) -> JSONResponse:
    return _respond(
        request,
        exc,
        code=error.code,
        message=error.message,
        status_code=error.status_code,
        details=details,
    )


def _field_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        loc = [str(item) for item in error.get("loc", []) if item not in {"body", "query", "path", "header"}]
        errors.append(
            {
                "field": ".".join(loc) or None,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "validation_error"),
            }
        )
    return errors


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return _respond_with(request, exc, exc.error, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = HTTPStatus(exc.status_code).phrase.upper().replace(" ", "_")
        return _respond(request, exc, code=code, message=str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _respond_with(request, exc, ErrorCatalog.VALIDATION_ERROR, {"errors": _field_errors(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        if is_lock_timeout(exc):
            metrics.increment_lock_wait_timeout()
            return _respond_with(request, exc, ErrorCatalog.LOCK_TIMEOUT, {"type": exc.__class__.__name__})
        return _respond_with(request, exc, ErrorCatalog.INTERNAL_ERROR, {"type": exc.__class__.__name__})
