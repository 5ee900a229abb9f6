import asyncio, time
from typing import Any, Dict, Optional
import httpx
from core_config.constants import HTTP_RETRY_BASE_MS, HTTP_RETRY_JITTER_MS
from core_logging import get_logger, log_stage, current_request_id
from urllib.parse import urlsplit
from core_utils.backoff import compute_backoff_delay_ms

logger = get_logger("core_http")

_shared_client: httpx.AsyncClient | None = None

def _inject_headers(headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Merge caller headers with the bound request id. Never mutates the input dict."""
    base: Dict[str, str] = {}
    rid = current_request_id()
    if rid:
        base["x-request-id"] = rid
    if headers:
        base.update(headers)
    return base

def build_timeout(seconds: float) -> httpx.Timeout:
    # Separate connect/read/write/pool timeouts; read dominates
    connect = min(2.0, max(0.1, seconds * 0.3))
    read    = max(0.1, seconds)
    write   = min(seconds, 5.0)
    pool    = min(seconds, 5.0)
    return httpx.Timeout(connect=connect, read=read, write=write, pool=pool)

def get_http_client() -> httpx.AsyncClient:
    """
    Return a process‑wide ``httpx.AsyncClient``.  Per-call timeouts are passed
    to :func:`fetch_json`, so the pool itself keeps httpx defaults.  Callers
    must not close the shared client; a closed client is rebuilt on demand.
    """
    global _shared_client
    if _shared_client is None or _shared_client.is_closed:
        if _shared_client is not None:
            log_stage(logger, "http.client", "recreating_shared_client",
                      request_id=(current_request_id() or "startup"))
        _shared_client = httpx.AsyncClient()
    return _shared_client

async def close_http_client() -> None:
    global _shared_client
    if _shared_client is not None and not _shared_client.is_closed:
        await _shared_client.aclose()
    _shared_client = None

async def fetch_json(method: str,
                     url: str,
                     *,
                     json: Any | None = None,
                     params: Optional[Dict[str, Any]] = None,
                     headers: Optional[Dict[str, str]] = None,
                     timeout_ms: int = 2000,
                     retry: int = 0,
                     client: httpx.AsyncClient | None = None) -> Any:
    """
    Minimal JSON fetch with request-id propagation and bounded retry.
    Raises ``httpx.HTTPStatusError`` on non-2xx and ``httpx.HTTPError`` on
    transport failures once retries are exhausted. Empty bodies return ``None``.
    """
    client = client or get_http_client()
    hdrs = _inject_headers(headers)
    parts = urlsplit(url)
    op = f"{method.upper()} {(parts.hostname or '')}{parts.path or '/'}"
    log_stage(
        logger, "http.client", "http.client.request",
        request_id=current_request_id(), op=op,
        http={"method": method.upper(), "host": parts.hostname or "", "target": parts.path or "/"},
    )
    t0 = time.perf_counter()
    last_exc: Exception | None = None
    for attempt in range(max(0, int(retry)) + 1):
        try:
            resp = await client.request(
                method.upper(), url, json=json, params=params, headers=hdrs,
                timeout=build_timeout(timeout_ms / 1000.0),
            )
            if resp.status_code >= 400:
                raise httpx.HTTPStatusError(f"{resp.status_code} on {url}", request=resp.request, response=resp)
            log_stage(
                logger, "http.client", "http.client.response",
                request_id=current_request_id(), op=op,
                http={"method": method.upper(), "target": parts.path or "/", "status_code": resp.status_code},
                latency_ms=int((time.perf_counter() - t0) * 1000.0),
            )
            return resp.json() if resp.content else None
        except httpx.HTTPStatusError:
            # 4xx/5xx are answers from the authority, not transport faults
            raise
        except httpx.HTTPError as e:
            last_exc = e
            if attempt < max(0, int(retry)):
                delay_ms = compute_backoff_delay_ms(
                    attempt + 1, base_ms=HTTP_RETRY_BASE_MS, jitter_ms=HTTP_RETRY_JITTER_MS, mode="decorrelated",
                )
                log_stage(
                    logger, "http.client", "http.client.retry_sleep",
                    request_id=current_request_id(), attempt=attempt + 1, delay_ms=delay_ms, url=url,
                )
                await asyncio.sleep(delay_ms / 1000.0)
                continue
            break
    assert last_exc is not None
    raise last_exc
