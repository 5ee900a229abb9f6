import logging, sys, orjson, os
from typing import Any, Optional, Dict, List, Tuple
import time
import contextvars

# ────────────────────────────────────────────────────────────
# Request-level aggregation & summary emission
# ────────────────────────────────────────────────────────────
class _ReqAgg:
    __slots__ = ("events", "timers", "last", "errors")
    def __init__(self) -> None:
        self.events: dict[str, dict[str, int]] = {}
        self.timers: dict[str, list[float]] = {}
        self.last: dict[str, Any] = {}
        self.errors: list[dict[str, Any]] = []

_REQ_AGG: contextvars.ContextVar[Optional[_ReqAgg]] = contextvars.ContextVar("REQ_AGG", default=None)

def _get_req_agg() -> _ReqAgg:
    agg = _REQ_AGG.get()
    if agg is None:
        agg = _ReqAgg()
        _REQ_AGG.set(agg)
    return agg

def _should_summarize() -> bool:
    # Default to compact summary mode; set LOG_EMIT_MODE=verbose to emit every breadcrumb
    return (os.getenv("LOG_EMIT_MODE", "summary").lower() in ("summary", "summarize", "compact"))

def _is_error_like(event: str, extras: Dict[str, Any]) -> bool:
    ev = (event or "").lower()
    if "error" in extras or extras.get("level") == "ERROR" or int(extras.get("status_code", 200) or 200) >= 500:
        return True
    for k in ("error", "failed", "exception", "unavailable", "absent"):
        if k in ev:
            return True
    return False

def _always_emit(stage: str, event: str) -> bool:
    # Keep the request bookends even in summary mode
    return stage == "http.server" and event in ("http.server.request", "http.server.response")

def _agg_note(stage: str, event: str, extras: Dict[str, Any]) -> None:
    agg = _get_req_agg()
    st = agg.events.setdefault(stage, {})
    st[event] = st.get(event, 0) + 1
    v = extras.get("latency_ms")
    if isinstance(v, (int, float)):
        agg.timers.setdefault(stage, []).append(float(v))
    # Surface the artifact identity once in the summary
    for k in ("request_id", "variant", "entity_id", "lock_key", "outcome"):
        val = extras.get(k)
        if val is not None and val != "":
            agg.last[k] = val
    http = extras.get("http")
    if isinstance(http, dict):
        if isinstance(http.get("method"), str):
            agg.last["method"] = http["method"]
        if isinstance(http.get("target"), str):
            agg.last["path"] = http["target"]
    if _is_error_like(event, extras):
        agg.errors.append({
            "stage": stage,
            "event": event,
            "attrs": {k: v for k, v in extras.items() if k not in ("message", "event")},
        })

def emit_request_summary(logger: logging.Logger, *, service: Optional[str] = None) -> None:
    """Emit one compact per-request summary line when summary mode is active."""
    if not _should_summarize():
        return
    agg = _REQ_AGG.get()
    if not agg:
        return
    timers = {}
    for stage, vals in agg.timers.items():
        if not vals:
            continue
        srt = sorted(vals)
        n = len(srt)
        timers[stage] = {
            "count": n,
            "sum_ms": round(sum(srt), 3),
            "p50_ms": round(float(srt[int(0.5 * (n - 1))]), 3),
            "max_ms": round(max(srt), 3),
        }
    payload = {
        "stage": "summary",
        "service": service or os.getenv("SERVICE_NAME") or logger.name,
        "counts": {k: sum(v.values()) for k, v in agg.events.items()},
        "events": agg.events,
        "timers": timers,
        **agg.last,
        "error_count": len(agg.errors),
    }
    rid = current_request_id()
    if rid and not payload.get("request_id"):
        payload["request_id"] = rid
    logger.info("request_summary", extra=_sanitize_extra(payload))
    _REQ_AGG.set(None)

# ────────────────────────────────────────────────────────────
# Error helpers (single-line ERRORs + end-of-request rollup)
# ────────────────────────────────────────────────────────────
def record_error(
    code: str,
    *,
    where: str,
    message: str,
    logger: logging.Logger,
    context: Optional[Dict[str, Any]] = None,
    level: str = "ERROR",
    **extras: Any,
) -> None:
    """
    Emit one normalized ERROR line *and* stash a structured crumb for the
    end-of-request error summary. Safe to call from any failure path.
    """
    agg = _get_req_agg()
    agg.errors.append({
        "code": str(code),
        "where": str(where),
        "message": str(message),
        **({"context": context} if isinstance(context, dict) else {}),
    })
    levelno = getattr(logging, (level or "ERROR").upper(), logging.ERROR)
    payload = {
        "stage": extras.pop("stage", None) or "error",
        "error_code": str(code),
        "error_message": message,
        "where": where,
        **({"context": context} if isinstance(context, dict) else {}),
        **extras,
    }
    logger.log(levelno, "error", extra=_sanitize_extra(payload))

def _normalize_error_crumbs(crumbs: List[Dict[str, Any]]) -> Tuple[int, List[Dict[str, Any]]]:
    """Coerce explicit `record_error` crumbs and heuristic `_agg_note` crumbs into one shape."""
    out: List[Dict[str, Any]] = []
    for c in (crumbs or []):
        if "code" in c and "where" in c and "message" in c:
            out.append({k: v for k, v in c.items() if v is not None})
            continue
        ev = c.get("event")
        attrs = c.get("attrs") or {}
        out.append({
            "code": str(attrs.get("error_code") or str(ev or "GENERIC").upper().replace(".", "_")),
            "where": c.get("stage") or "unknown",
            "message": str(attrs.get("error_message") or attrs.get("error") or attrs.get("reason") or ev or "error"),
        })
    return (len(out), out)

def emit_request_error_summary(logger: logging.Logger, *, service: Optional[str] = None) -> None:
    """
    Emit a single compact ERROR rollup when the current request accumulated
    any errors. No-op if none were recorded.
    """
    agg = _REQ_AGG.get()
    if not agg or not agg.errors:
        return
    count, errors = _normalize_error_crumbs(agg.errors)
    payload: Dict[str, Any] = {
        "stage": "summary",
        "service": service or os.getenv("SERVICE_NAME") or logger.name,
        "error_count": int(count),
        "errors": errors[:50],
    }
    rid = current_request_id()
    if rid:
        payload["request_id"] = rid
    payload["cause"] = (str(errors[0].get("code") or "").lower().split(".", 1)[0] or "unknown")
    logger.error("request_error_summary", extra=_sanitize_extra(payload))

# ────────────────────────────────────────────────────────────
# Request-id binding
# ────────────────────────────────────────────────────────────
_REQUEST_ID: contextvars.ContextVar[Optional[str]] = \
    contextvars.ContextVar("_REQUEST_ID", default=None)

def bind_request_id(request_id: Optional[str]) -> None:
    """Bind the current request_id into the local context for log injection."""
    _REQUEST_ID.set(request_id)

def current_request_id() -> Optional[str]:
    """Return the currently bound request_id (if any)."""
    return _REQUEST_ID.get()

class _RequestIdFilter(logging.Filter):
    """Inject the bound request_id (if any) into LogRecords that lack it."""
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            rid = _REQUEST_ID.get()
            if rid:
                record.request_id = rid
        return True

# Reserved LogRecord attributes we must not overwrite
_RESERVED: set[str] = {
    "name", "msg", "args", "levelname", "levelno",
    "pathname", "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "message", "asctime",
    "taskName",
}

# Fields kept flat in the JSON envelope; everything else goes under ``meta``
_TOP_LEVEL: set[str] = {
    "ts", "level", "service", "stage",
    "latency_ms",
    "request_id",
    "variant", "entity_id", "lock_key", "outcome", "reason",
    "message",
    "status_code", "path", "method",
}

def _default(obj):
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="ignore")
    if hasattr(obj, "value"):  # enums
        return obj.value
    if isinstance(obj, os.PathLike):
        return os.fspath(obj)
    raise TypeError

class JsonFormatter(logging.Formatter):
    """Emit one JSON object per record; known keys flat, the rest under ``meta``."""

    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(getattr(record, "created", time.time()))),
            "level": record.levelname,
            "service": os.getenv("SERVICE_NAME", record.name),
            "event": record.getMessage(),
        }
        meta: Dict[str, Any] = {}
        for key, val in record.__dict__.items():
            if key in _RESERVED:
                continue
            if key in _TOP_LEVEL:
                base[key] = val
            else:
                meta[key] = val
        msg_extra = record.__dict__.get("message_extra", None)
        if msg_extra is not None:
            base["message"] = msg_extra
            meta.pop("message_extra", None)
        if record.exc_info:
            meta["exc"] = self.formatException(record.exc_info)
        if meta:
            base["meta"] = meta
        return orjson.dumps(base, default=_default).decode("utf-8")

class StructuredLogger(logging.Logger):
    """
    `logging.Logger` that accepts arbitrary keyword arguments
    (``logger.info("msg", stage="regen")``) and merges them into ``extra``.
    """

    def _log(                                   # noqa: PLR0913 – keep signature
        self,
        level: int,
        msg: str,
        args,
        exc_info=None,
        extra: Dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        if kwargs:
            extra = {**(extra or {}), **kwargs}
        extra = _sanitize_extra(extra)
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel,
        )


class DynamicStdoutHandler(logging.StreamHandler):
    """Writes to **the current** `sys.stdout` so redirected buffers in tests capture lines."""

    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401
        self.setStream(sys.stdout)
        super().emit(record)


logging.setLoggerClass(StructuredLogger)


def get_logger(name: str = "app", level: str | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    is_service_root = "." not in name  # only top-level names own handlers

    if is_service_root:
        if not logger.handlers:
            handler = DynamicStdoutHandler()
            handler.setFormatter(JsonFormatter())
            logger.addHandler(handler)
        logger.propagate = False
    else:
        # Leaf loggers bubble to their service root
        for h in list(logger.handlers):
            logger.removeHandler(h)
        logger.propagate = True

    logger.setLevel(level or os.getenv("SERVICE_LOG_LEVEL", "INFO"))
    if not any(isinstance(f, _RequestIdFilter) for f in logger.filters):
        logger.addFilter(_RequestIdFilter())
    return logger

def _emit_stage_log(logger: logging.Logger, stage: str, event: str, **extras: Any):
    payload = {"stage": stage, **extras}
    _agg_note(stage, event, payload)
    # Summary mode folds plain breadcrumbs into the request summary
    if _should_summarize() and not _always_emit(stage, event) and not _is_error_like(event, payload):
        return
    levelno = logging.WARNING if _is_error_like(event, payload) else logging.INFO
    logger.log(levelno, event, extra=_sanitize_extra(payload))

def log_stage(logger: logging.Logger, stage: str, event: str, **fixed: Any):
    """
    *Imperative*  →  log_stage(logger, "regen", "lock.acquired", lock_key=k)
    *Decorator*   →  @log_stage(logger, "regen", "generate")
                     async def generate(...):
                         ...
    Also exposes ``.ctx`` for use as a timed context-manager.
    """
    _emit_stage_log(logger, stage, event, **fixed)

    import asyncio
    from contextlib import contextmanager

    def _decorator(fn):
        if asyncio.iscoroutinefunction(fn):
            async def _aw(*a, **kw):
                t0 = time.perf_counter()
                try:
                    return await fn(*a, **kw)
                finally:
                    _emit_stage_log(
                        logger, stage, f"{event}.done",
                        latency_ms=(time.perf_counter() - t0) * 1000,
                        **fixed,
                    )
            return _aw

        def _w(*a, **kw):
            t0 = time.perf_counter()
            try:
                return fn(*a, **kw)
            finally:
                _emit_stage_log(
                    logger, stage, f"{event}.done",
                    latency_ms=(time.perf_counter() - t0) * 1000,
                    **fixed,
                )
        return _w

    @contextmanager
    def _ctx(**dynamic):
        _emit_stage_log(logger, stage, f"{event}.start", **(fixed | dynamic))
        t0 = time.perf_counter()
        try:
            yield
        finally:
            _emit_stage_log(
                logger, stage, f"{event}.done",
                latency_ms=(time.perf_counter() - t0) * 1000,
                **(fixed | dynamic),
            )

    _decorator.ctx = _ctx
    return _decorator

def _sanitize_extra(extra: Dict[str, Any] | None) -> Dict[str, Any]:
    """
    Remove/rename keys in `extra` that would collide with LogRecord attributes.
    - `message` is remapped to `message_extra` to preserve content.
    - all other collisions are namespaced as `meta_<key>`.
    """
    if not extra:
        return {}
    safe: Dict[str, Any] = {}
    for k, v in extra.items():
        lk = str(k)
        if lk == "meta" and isinstance(v, dict):
            for mk, mv in v.items():
                mk_norm = str(mk)
                safe[f"meta_{mk_norm}" if mk_norm in _RESERVED else mk_norm] = mv
            continue
        if lk in _RESERVED:
            safe["message_extra" if lk == "message" else f"meta_{lk}"] = v
        else:
            safe[lk] = v
    return safe

