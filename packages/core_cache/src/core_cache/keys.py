from __future__ import annotations

def _s(x: object | None) -> str:
    if x is None:
        return ""
    return str(getattr(x, "value", x))

# ------------------------------
# Regeneration keys (hard namespaced)
# ------------------------------
_NS_REGEN = "cssregen:v1"

def regen_lock(variant: object | None, entity_id: int | str | None) -> str:
    """
    Lock key for one artifact, e.g. ``cssregen:v1:lock:post:71783``.
    Kept human-readable: both parts are already constrained by the path grammar.
    """
    return f"{_NS_REGEN}:lock:{_s(variant)}:{_s(entity_id)}"
