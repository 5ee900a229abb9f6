"""Retry backoff policy shared by outbound clients."""

from __future__ import annotations
import os
from typing import Literal

__all__ = ["compute_backoff_delay_ms"]

def _rand_u8() -> int:
    return int.from_bytes(os.urandom(1), "big")

def compute_backoff_delay_ms(
    attempt: int,
    *,
    base_ms: int,
    jitter_ms: int,
    cap_ms: int | None = None,
    mode: Literal["exp_equal_jitter", "decorrelated"] = "exp_equal_jitter",
) -> int:
    """Compute a retry backoff (milliseconds) with jitter.

    Modes:
      - exp_equal_jitter: (base * 2**(n-1)) + uniform(0, jitter)
      - decorrelated:     max(base, uniform(0, prev * 3))
    """
    if attempt < 1:
        attempt = 1
    if mode == "exp_equal_jitter":
        delay = base_ms * (2 ** (attempt - 1)) + _rand_u8() % max(1, jitter_ms)
    else:
        prev = base_ms * (2 ** max(0, attempt - 2))
        delay = max(base_ms, int((_rand_u8() / 255.0) * prev * 3))
    if cap_ms is not None:
        delay = min(delay, cap_ms)
    return max(0, int(delay))
