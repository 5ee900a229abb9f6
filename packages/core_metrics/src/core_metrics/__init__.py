"""
core_metrics – tiny helpers so services can record counters and histograms
by name without declaring collectors up front.  Collectors are created
lazily in the default Prometheus registry and exposed at `/metrics`
(see :mod:`core_metrics.fastapi`).  Label names are fixed by the first call
for a given metric name.
"""

from __future__ import annotations

import threading
import time as _time
from typing import Any, Dict

from prometheus_client import REGISTRY, Counter, Histogram

_COUNTERS: Dict[str, Counter] = {}
_HISTOS: Dict[str, Histogram] = {}
_LOCK = threading.Lock()


def _collector(cache: Dict[str, Any], factory, name: str, labelnames: tuple[str, ...]):
    with _LOCK:
        c = cache.get(name)
        if c is None:
            # Re-use a collector registered by an earlier import (module reloads in tests)
            c = REGISTRY._names_to_collectors.get(name)  # type: ignore[attr-defined]
            if c is None:
                c = factory(name, f"{factory.__name__} for {name}", labelnames=labelnames)
            cache[name] = c
        return c


def _labelled(c, attrs: Dict[str, Any]):
    if not attrs:
        return c
    return c.labels(**{k: str(v) for k, v in attrs.items()})


def counter(name: str, inc: int | float = 1, **attrs: Any) -> None:
    """Increment *name* by *inc* (default 1)."""
    c = _collector(_COUNTERS, Counter, name, tuple(sorted(attrs)))
    try:
        _labelled(c, attrs).inc(inc)
    except ValueError:
        # label set drifted from the first call; metrics must never break the request path
        pass


def histogram(name: str, value: float, **attrs: Any) -> None:
    """Record *value* in histogram *name*."""
    h = _collector(_HISTOS, Histogram, name, tuple(sorted(attrs)))
    try:
        _labelled(h, attrs).observe(value)
    except ValueError:
        pass


def record_latency_seconds(name: str, t0: float, **attrs: Any) -> float:
    """Record the elapsed time since *t0* (a ``perf_counter`` value) in histogram *name*."""
    dt = _time.perf_counter() - t0
    histogram(name, dt, **attrs)
    return dt


__all__ = ["counter", "histogram", "record_latency_seconds"]
