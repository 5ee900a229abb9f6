"""
core_utils.health – health-check routes for FastAPI services.

Provides attach_health_routes() to wire /healthz and /readyz with custom
liveness and readiness checks.
"""

import asyncio
from typing import Awaitable, Callable, Mapping, Union

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

# A health check can return:
#  - bool
#  - dict (arbitrary JSON body)
#  - Awaitable of either
HealthCheck = Callable[[Request], Union[bool, dict, Awaitable[Union[bool, dict]]]]
HealthChecks = Mapping[str, HealthCheck]


def attach_health_routes(app: FastAPI, *, checks: HealthChecks) -> None:
    """
    Register health-check endpoints on the app.

    Args:
        app: FastAPI application
        checks: mapping with keys "liveness" and/or "readiness" to callables
            taking the current request. Each returns bool or dict (or an
            awaitable of either).

    Endpoints:
        GET /healthz -> { "status": "ok" | "fail" } or custom dict.
        GET /readyz  -> readiness dict, or { "ready": <bool> } with 503 when not ready.
    """
    router = APIRouter()

    async def _run_check(fn: HealthCheck, request: Request) -> Union[bool, dict]:
        try:
            res = fn(request)
            if asyncio.iscoroutine(res):
                res = await res
            return res
        except (OSError, RuntimeError, ConnectionError, TimeoutError):
            return False

    @router.get("/healthz")
    async def _healthz(request: Request):
        if "liveness" not in checks:
            return {"status": "ok"}
        res = await _run_check(checks["liveness"], request)
        if isinstance(res, dict):
            return res
        return {"status": "ok" if bool(res) else "fail"}

    @router.get("/readyz")
    async def _readyz(request: Request):
        if "readiness" not in checks:
            return {"ready": True}
        res = await _run_check(checks["readiness"], request)
        if isinstance(res, dict):
            return res
        return JSONResponse({"ready": bool(res)}, status_code=200 if res else 503)

    app.include_router(router)

__all__ = ["attach_health_routes"]
