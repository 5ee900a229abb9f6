"""
Regeneration state machine.

    Idle → Matched → (LockHeld | LockContended) → Validated → Generated → Served

Nothing is attempted, the lock included, unless the generation authority is
available.  Every gate can exit to ``Skipped``; a skipped outcome leaves the host's
not-found response untouched.  The lock is released once the validate and
generate steps finish (or raise), and before serving, so a slow serve never
extends how long the lock is held.
"""
from __future__ import annotations
import asyncio
import time
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple

from redis.exceptions import RedisError

import core_metrics
from core_config.constants import DEFAULT_CONTENDED_WAIT_SEC
from core_logging import get_logger, log_stage, record_error
from core_logging.error_codes import ErrorCode
from .generator import ArtifactGenerator
from .lock import RegenerationLock
from .matcher import PathMatcher
from .models import (
    ArtifactRequest, RegenOutcome, RegenState, ServedResult, SkipReason, Validation,
)
from .server import ArtifactServer

logger = get_logger("css_regen.orchestrator")

_OUTCOMES_METRIC = "css_regen_outcomes_total"
_GENERATION_METRIC = "css_regen_generation_seconds"

_VALIDATION_SKIPS = {
    Validation.NOT_FOUND: SkipReason.ENTITY_MISSING,
    Validation.WRONG_KIND: SkipReason.WRONG_KIND,
}


class RegenerationOrchestrator:
    def __init__(
        self,
        matcher: PathMatcher,
        lock: RegenerationLock,
        generator: ArtifactGenerator,
        server: ArtifactServer,
        *,
        contended_wait_seconds: float = DEFAULT_CONTENDED_WAIT_SEC,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        debug: bool = False,
    ):
        self.matcher = matcher
        self.lock = lock
        self.generator = generator
        self.server = server
        self.contended_wait_seconds = contended_wait_seconds
        self._sleep = sleep
        self._debug = debug

    # ------------------------------------------------------------------ #
    async def handle(self, path: str) -> RegenOutcome:
        request = self.matcher.match(path)
        if request is None:
            # Not ours: no logging, no metrics.
            return RegenOutcome(
                state=RegenState.SKIPPED, reason=SkipReason.NO_MATCH,
                trail=(RegenState.IDLE, RegenState.SKIPPED),
            )
        trail: List[RegenState] = [RegenState.IDLE, RegenState.MATCHED]
        self._breadcrumb("request.matched", request)

        if not await self.generator.is_available():
            return self._skip(request, SkipReason.GENERATOR_UNAVAILABLE, trail, "generation authority not available")

        try:
            acquired = await self.lock.try_acquire(request)
        except (RedisError, OSError) as exc:
            return self._skip(request, SkipReason.LOCK_UNAVAILABLE, trail, f"lock store unavailable: {exc}")

        if not acquired:
            trail.append(RegenState.LOCK_CONTENDED)
            return await self._serve_contended(request, trail)

        trail.append(RegenState.LOCK_HELD)
        self._breadcrumb("lock.acquired", request)
        try:
            reason, artifact_path, detail = await self._regenerate(request, trail)
        finally:
            await self._release(request)

        if artifact_path is None:
            return self._skip(request, reason or SkipReason.GENERATION_FAILED, trail, detail)

        served = await self.server.serve(artifact_path)
        if served is None:
            return self._skip(request, SkipReason.POST_GENERATION_FILE_ABSENT, trail,
                              f"generation reported success but {artifact_path} is missing",
                              artifact_path=str(artifact_path))
        return self._served(request, served, trail)

    # ------------------------------------------------------------------ #
    async def _regenerate(
        self, request: ArtifactRequest, trail: List[RegenState],
    ) -> Tuple[Optional[SkipReason], Optional[Path], str]:
        validation = await self.generator.validate(request.entity_id)
        if validation is not Validation.OK:
            return _VALIDATION_SKIPS[validation], None, f"entity {request.entity_id} {validation.value}"
        trail.append(RegenState.VALIDATED)

        self._breadcrumb("generate.start", request)
        t0 = time.perf_counter()
        result = await self.generator.generate(request)
        core_metrics.record_latency_seconds(_GENERATION_METRIC, t0, ok=str(result.ok).lower())
        if not result.ok:
            return SkipReason.GENERATION_FAILED, None, result.reason or "generation failed"
        trail.append(RegenState.GENERATED)
        self._breadcrumb("generate.done", request, artifact_path=str(result.path))
        return None, result.path, ""

    async def _serve_contended(self, request: ArtifactRequest, trail: List[RegenState]) -> RegenOutcome:
        # Another request holds the lock. Wait once, then serve whatever exists.
        # Never generates and never re-checks the lock.
        self._breadcrumb("lock.contended", request, wait_seconds=self.contended_wait_seconds)
        await self._sleep(self.contended_wait_seconds)
        served = await self.server.serve(self.server.layout.path_for(request.variant, request.entity_id))
        if served is None:
            return self._skip(request, SkipReason.CONTENDED_FILE_ABSENT, trail,
                              "artifact still missing after the contended wait")
        return self._served(request, served, trail)

    async def _release(self, request: ArtifactRequest) -> None:
        try:
            await self.lock.release(request)
        except (RedisError, OSError) as exc:
            # The key expires on its own after the TTL.
            self._error(ErrorCode.lock_release_failed, request, f"lock release failed: {exc}")
            return
        self._breadcrumb("lock.released", request)

    # ------------------------------------------------------------------ #
    def _served(self, request: ArtifactRequest, served: ServedResult, trail: List[RegenState]) -> RegenOutcome:
        trail.append(RegenState.SERVED)
        self._breadcrumb("served", request, artifact_path=str(served.path), bytes=len(served.body))
        core_metrics.counter(_OUTCOMES_METRIC, state=RegenState.SERVED.value, reason="")
        return RegenOutcome(state=RegenState.SERVED, request=request, served=served, trail=tuple(trail))

    def _skip(
        self, request: ArtifactRequest, reason: SkipReason, trail: List[RegenState],
        message: str = "", **extras,
    ) -> RegenOutcome:
        trail.append(RegenState.SKIPPED)
        self._error(ErrorCode(reason.value), request, message or reason.value, reason=reason.value, **extras)
        core_metrics.counter(_OUTCOMES_METRIC, state=RegenState.SKIPPED.value, reason=reason.value)
        return RegenOutcome(state=RegenState.SKIPPED, request=request, reason=reason, trail=tuple(trail))

    def _breadcrumb(self, event: str, request: ArtifactRequest, **extras) -> None:
        if not self._debug:
            return
        log_stage(
            logger, "regen", f"regen.{event}",
            variant=request.variant.value, entity_id=request.entity_id,
            lock_key=self.lock.key_for(request), **extras,
        )

    def _error(self, code: ErrorCode, request: ArtifactRequest, message: str, **extras) -> None:
        if not self._debug:
            return
        record_error(
            code.value, where="css_regen.orchestrator", message=message, logger=logger,
            level="WARNING", stage="regen",
            variant=request.variant.value, entity_id=request.entity_id, **extras,
        )
