"""
core_utils.fastapi_bootstrap – one-call FastAPI wiring for services.

Applies, in order:
  • structured request logging + request metrics (core_logging.request_logging)
  • the Prometheus scrape endpoint at /metrics (core_metrics.fastapi)
  • the standard JSON error envelope (core_http.errors)

Health endpoints are attached explicitly by each service, since readiness
depends on service-specific backends.
"""
from __future__ import annotations
from fastapi import FastAPI

from core_logging.request_logging import attach_request_logging
from core_metrics.fastapi import attach_prometheus_endpoint
from core_http.errors import attach_standard_error_handlers

def setup_service(
    app: FastAPI,
    service_name: str,
    *,
    attach_metrics_endpoint: bool = True,
) -> None:
    """Apply standard wiring to `app`. Call once per app instance."""
    attach_request_logging(app, service=service_name, metric_prefix=service_name)
    if attach_metrics_endpoint:
        attach_prometheus_endpoint(app)
    attach_standard_error_handlers(app, service=service_name)

__all__ = ["setup_service"]
