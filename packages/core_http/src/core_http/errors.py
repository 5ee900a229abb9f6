from __future__ import annotations
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from core_logging import get_logger, log_stage, current_request_id
from core_logging.error_codes import ErrorCode
from core_utils.ids import generate_request_id

def _error_envelope(code: ErrorCode, message: str, request_id: str, details: object | None = None) -> dict:
    err: dict = {"code": code.value, "message": message, "request_id": request_id}
    if details is not None:
        err["details"] = details
    return {"error": err, "request_id": request_id}

def attach_standard_error_handlers(app: FastAPI, *, service: str) -> None:
    """
    Uniform error shaping:
      - 422: request validation
      - Starlette HTTP errors (status kept; JSON ``detail`` body)
      - 500: catch-all with {code, message, details, request_id}
    """
    logger = get_logger(service)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc_handler(request: Request, exc: RequestValidationError):
        req_id = current_request_id() or generate_request_id()
        log_stage(logger, "validation", "failed",
                  request_id=req_id, url=str(request.url), method=request.method)
        return JSONResponse(
            status_code=422,
            content=_error_envelope(
                ErrorCode.validation_failed, "Request validation failed", req_id,
                {"errors": [str(e.get("msg", "")) for e in exc.errors()]},
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(_: Request, exc: StarletteHTTPException):
        # Keep Starlette semantics (404s stay 404s so the regeneration hook can see them)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def _unhandled_exc_handler(request: Request, exc: Exception):
        req_id = current_request_id() or generate_request_id()
        log_stage(logger, "request", "unhandled_exception",
                  request_id=req_id, error=str(exc), error_type=exc.__class__.__name__)
        return JSONResponse(
            status_code=500,
            content=_error_envelope(
                ErrorCode.internal, "Unexpected error", req_id,
                {"type": exc.__class__.__name__, "message": str(exc)},
            ),
        )
