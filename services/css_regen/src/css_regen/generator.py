"""
Boundary to the external generation authority.

The authority owns the rules for which entities exist and which of them are
generatable; this core only asks. ``ArtifactGenerator`` turns every answer
(including exceptions) into a tagged value so the orchestrator never needs
exception-based control flow.
"""
from __future__ import annotations
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Tuple, runtime_checkable

import httpx

from core_config.constants import GENERATOR_HEALTH_PATH, GENERATOR_HEALTH_TIMEOUT_MS, GENERATOR_HEALTH_TTL_SEC
from core_http.client import fetch_json
from core_logging import get_logger, log_stage
from core_storage.artifact_files import ArtifactLayout
from .models import ArtifactRequest, GenerationResult, Validation

logger = get_logger("css_regen.generator")


@runtime_checkable
class EntityStore(Protocol):
    async def is_available(self) -> bool: ...
    async def exists(self, entity_id: int) -> bool: ...
    async def is_generatable_kind(self, entity_id: int) -> bool: ...


@runtime_checkable
class GenerationEngine(Protocol):
    async def generate(self, request: ArtifactRequest) -> Path:
        """Produce the artifact file and return its path; raise on failure."""
        ...


class ArtifactGenerator:
    def __init__(self, entity_store: EntityStore, engine: GenerationEngine, *, debug: bool = False):
        self._entities = entity_store
        self._engine = engine
        self._debug = debug

    async def is_available(self) -> bool:
        """False when the authority is not loaded; nothing else should be attempted then."""
        try:
            return bool(await self._entities.is_available())
        except (httpx.HTTPError, OSError, ValueError) as exc:
            if self._debug:
                log_stage(logger, "regen", "availability_check_failed",
                          error=str(exc), error_type=exc.__class__.__name__)
            return False

    async def validate(self, entity_id: int) -> Validation:
        try:
            if not await self._entities.exists(entity_id):
                return Validation.NOT_FOUND
            if not await self._entities.is_generatable_kind(entity_id):
                return Validation.WRONG_KIND
        except (httpx.HTTPError, OSError, ValueError) as exc:
            # An unreachable authority is treated like an unknown entity: skip.
            if self._debug:
                log_stage(logger, "regen", "entity_lookup_failed",
                          entity_id=entity_id, error=str(exc), error_type=exc.__class__.__name__)
            return Validation.NOT_FOUND
        return Validation.OK

    async def generate(self, request: ArtifactRequest) -> GenerationResult:
        try:
            path = await self._engine.generate(request)
        except Exception as exc:  # noqa: BLE001 – engine failures are implementation-defined
            return GenerationResult.failure(f"{exc.__class__.__name__}: {exc}")
        if not path:
            return GenerationResult.failure("engine returned no path")
        return GenerationResult.success(Path(path))


# ---------------------------------------------------------------------------
# HTTP adapters for a remote generation authority
# ---------------------------------------------------------------------------

class HttpEntityStore:
    """
    ``GET {base}/entities/{id}`` → 200 ``{"id": ..., "generatable": bool}``
    or 404 when the entity does not exist.  ``GET {base}/healthz`` answers
    whether the authority is up; an unset base URL means it never is.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_ms: int = 2000,
        health_timeout_ms: int = GENERATOR_HEALTH_TIMEOUT_MS,
        health_ttl_seconds: float = GENERATOR_HEALTH_TTL_SEC,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._base = (base_url or "").rstrip("/")
        self._timeout_ms = timeout_ms
        self._health_timeout_ms = health_timeout_ms
        self._health_ttl = health_ttl_seconds
        self._client = client
        self._clock = clock
        self._health: Optional[Tuple[float, bool]] = None
        # Lookups made by ``exists``, consumed by the following kind check.
        self._found: Dict[int, dict] = {}

    async def is_available(self) -> bool:
        if not self._base:
            return False
        now = self._clock()
        if self._health is not None and now - self._health[0] < self._health_ttl:
            return self._health[1]
        try:
            await fetch_json(
                "GET", f"{self._base}{GENERATOR_HEALTH_PATH}",
                timeout_ms=self._health_timeout_ms, retry=0, client=self._client,
            )
            ok = True
        except (httpx.HTTPError, ValueError):
            ok = False
        self._health = (now, ok)
        return ok

    async def _lookup(self, entity_id: int) -> dict | None:
        try:
            data = await fetch_json(
                "GET", f"{self._base}/entities/{int(entity_id)}",
                timeout_ms=self._timeout_ms, retry=1, client=self._client,
            )
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                return None
            raise
        return data if isinstance(data, dict) else {}

    async def exists(self, entity_id: int) -> bool:
        data = await self._lookup(entity_id)
        if data is None:
            return False
        self._found[int(entity_id)] = data
        return True

    async def is_generatable_kind(self, entity_id: int) -> bool:
        data = self._found.pop(int(entity_id), None)
        if data is None:
            data = await self._lookup(entity_id)
        return bool(data and data.get("generatable"))


class HttpGenerationEngine:
    """
    ``POST {base}/artifacts/{variant}/{id}``; the authority writes the file into
    the shared artifact directory. The returned path is always the
    deterministic layout path, never a path supplied by the authority.
    """

    def __init__(self, base_url: str, layout: ArtifactLayout, *,
                 timeout_ms: int = 30000, client: httpx.AsyncClient | None = None):
        self._base = base_url.rstrip("/")
        self._layout = layout
        self._timeout_ms = timeout_ms
        self._client = client

    async def generate(self, request: ArtifactRequest) -> Path:
        data = await fetch_json(
            "POST", f"{self._base}/artifacts/{request.variant.value}/{request.entity_id}",
            timeout_ms=self._timeout_ms, retry=0, client=self._client,
        )
        if isinstance(data, dict) and data.get("ok") is False:
            raise RuntimeError(str(data.get("error") or "generation rejected"))
        return self._layout.path_for(request.variant, request.entity_id)
