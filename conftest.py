"""
Project-wide PyTest bootstrap.

Puts every ``*/src`` directory on ``sys.path`` so tests import the project's
packages without an editable install.
"""

from pathlib import Path
import os, sys

# Keep regeneration breadcrumbs out of captured output unless a test opts in.
os.environ.setdefault("CSS_REGEN_DEBUG", "false")

# ── add all source roots to PYTHONPATH (prepend so we win over site-packages) ─
ROOT = Path(__file__).parent.resolve()
_paths = (
    [str(ROOT)]                                           # project root
    + [str(p) for p in (ROOT / "packages").glob("*/src")] # packages/*/src
    + [str(p) for p in (ROOT / "services").glob("*/src")] # services/*/src
)
# Preserve order but ensure local paths take precedence
for _p in reversed(_paths):
    if _p not in sys.path:
        sys.path.insert(0, _p)

#     Fail early with a clear, readable message if a developer forgets the
#     dependency pin.
for _plugin in ("pytest_asyncio", "fakeredis"):
    try:
        __import__(_plugin)
    except ImportError as exc:
        raise RuntimeError(
            f"{_plugin} is required for the test-suite – "
            "install the project with the `test` extra."
        ) from exc
