"""
Host hook: intercept not-found responses before their body is sent.

Starlette hands a middleware the downstream response object before any bytes
reach the client, so a 404 can still be replaced wholesale.  A served outcome
becomes the response; everything else returns the original 404 unchanged.
"""
from __future__ import annotations
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core_logging import get_logger, record_error
from core_logging.error_codes import ErrorCode
from .models import ServedResult
from .orchestrator import RegenerationOrchestrator

logger = get_logger("css_regen.middleware")

_INTERCEPT_METHODS = ("GET", "HEAD")

OrchestratorLookup = Callable[[Request], Optional[RegenerationOrchestrator]]


def _from_app_state(request: Request) -> Optional[RegenerationOrchestrator]:
    return getattr(request.app.state, "regen_orchestrator", None)


def request_target(request: Request) -> str:
    """Raw path plus query string, as the client sent it."""
    path = request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


def to_response(served: ServedResult) -> Response:
    return Response(content=served.body, status_code=served.status_code, headers=served.headers)


class ArtifactRegenerationMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, orchestrator: OrchestratorLookup = _from_app_state):
        super().__init__(app)
        self._lookup = orchestrator

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if response.status_code != 404 or request.method not in _INTERCEPT_METHODS:
            return response
        orchestrator = self._lookup(request)
        if orchestrator is None:
            return response
        try:
            outcome = await orchestrator.handle(request_target(request))
        except Exception as exc:  # noqa: BLE001 – never make a 404 worse
            record_error(
                ErrorCode.internal.value, where="css_regen.middleware", message=str(exc), logger=logger,
                error_type=exc.__class__.__name__, path=request.url.path,
            )
            return response
        if not outcome.is_served:
            return response
        return to_response(outcome.served)
