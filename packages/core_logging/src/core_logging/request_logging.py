from __future__ import annotations
import time
from typing import Tuple
from fastapi import FastAPI, Request
from core_logging import (
    get_logger, log_stage, bind_request_id,
    emit_request_summary, emit_request_error_summary,
)
from core_utils.ids import generate_request_id
import core_metrics

_DEFAULT_SUPPRESS: Tuple[str, ...] = ("/healthz", "/readyz", "/metrics")

def attach_request_logging(
    app: FastAPI,
    *,
    service: str,
    metric_prefix: str,
    suppress_paths: Tuple[str, ...] = _DEFAULT_SUPPRESS,
) -> None:
    """
    Install a uniform request logger middleware with health/metrics filtering.
    Emits:
      - {metric_prefix}_ttfb_seconds (histogram)
      - {metric_prefix}_http_requests_total (counter{method,code})
    Adds headers:
      - x-request-id
    """
    logger = get_logger(service)

    @app.middleware("http")
    async def _request_logger(request: Request, call_next):
        path = str(request.url.path or "")
        should_log = not any(path.endswith(p) for p in suppress_paths)

        # Preserve incoming request id when provided; generate otherwise.
        req_id = request.headers.get("x-request-id") or generate_request_id()
        bind_request_id(req_id)
        t0 = time.perf_counter()
        if should_log:
            log_stage(
                logger, "http.server", "http.server.request",
                request_id=req_id,
                http={"method": request.method, "target": path},
            )

        resp = await call_next(request)
        resp.headers["x-request-id"] = req_id

        dt = time.perf_counter() - t0
        core_metrics.histogram(f"{metric_prefix}_ttfb_seconds", dt)
        core_metrics.counter(f"{metric_prefix}_http_requests_total", 1, method=request.method, code=str(resp.status_code))

        if should_log:
            log_stage(
                logger, "http.server", "http.server.response",
                request_id=req_id,
                http={"status_code": resp.status_code, "method": request.method, "target": path},
                latency_ms=int(dt * 1000.0),
            )
            emit_request_error_summary(logger, service=service)
            emit_request_summary(logger, service=service)
        return resp
