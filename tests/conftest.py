"""
Global conftest for the CSS regeneration tests.

1. A pretty unified-diff assertion helper for clearer dict-vs-dict failures.
2. Redis client isolation so a pool bound to one event loop never leaks.
"""

import json
import difflib

import pytest

# --------------------------------------------------------------------------- #
# Pretty diff for dict comparisons                                            #
# --------------------------------------------------------------------------- #
def pytest_assertrepr_compare(op, left, right):
    """Pretty unified-diff output when comparing two dicts with ==."""
    if isinstance(left, dict) and isinstance(right, dict) and op == "==":
        lhs = json.dumps(left, indent=2, sort_keys=True, default=str).splitlines()
        rhs = json.dumps(right, indent=2, sort_keys=True, default=str).splitlines()
        return [""] + list(
            difflib.unified_diff(lhs, rhs, fromfile="left", tofile="right")
        )


# --------------------------------------------------------------------------- #
# Redis client isolation                                                      #
# --------------------------------------------------------------------------- #
@pytest.fixture(autouse=True)
def _reset_redis_pool():
    """Drop the module-level Redis client so each test builds its own."""
    import core_cache.redis_client as rc
    yield
    rc._pool = None
