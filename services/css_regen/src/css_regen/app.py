from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from redis.exceptions import RedisError
from starlette.staticfiles import StaticFiles

from core_cache.redis_client import get_redis_pool, close_redis_pool
from core_config import Settings, get_settings
from core_http.client import close_http_client
from core_logging import get_logger, log_stage
from core_storage.artifact_files import ArtifactLayout
from core_utils.fastapi_bootstrap import setup_service
from core_utils.health import attach_health_routes
from .generator import ArtifactGenerator, HttpEntityStore, HttpGenerationEngine
from .lock import RegenerationLock
from .matcher import PathMatcher
from .middleware import ArtifactRegenerationMiddleware
from .orchestrator import RegenerationOrchestrator
from .server import ArtifactServer

SERVICE_NAME = "css_regen"
logger = get_logger(SERVICE_NAME)


def build_orchestrator(settings: Settings, *, redis: Any = None) -> RegenerationOrchestrator:
    """Wire the regeneration components from settings."""
    layout = ArtifactLayout(settings.artifact_base_dir)
    generator = ArtifactGenerator(
        HttpEntityStore(
            settings.generator_base,
            timeout_ms=settings.entity_lookup_timeout_ms,
            health_ttl_seconds=settings.generator_health_ttl_sec,
        ),
        HttpGenerationEngine(settings.generator_base, layout, timeout_ms=settings.generator_timeout_ms),
        debug=settings.debug,
    )
    return RegenerationOrchestrator(
        PathMatcher(settings.artifact_dir_marker),
        RegenerationLock(redis if redis is not None else get_redis_pool(), ttl_seconds=settings.lock_ttl_seconds),
        generator,
        ArtifactServer(layout, max_age_seconds=settings.artifact_cache_max_age_sec, debug=settings.debug),
        contended_wait_seconds=settings.contended_wait_seconds,
        debug=settings.debug,
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    orchestrator: Optional[RegenerationOrchestrator] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        if getattr(app.state, "regen_orchestrator", None) is None:
            app.state.regen_orchestrator = build_orchestrator(settings)
        log_stage(
            logger, "startup", "css_regen.ready",
            request_id="startup",
            artifact_root=str(app.state.regen_orchestrator.server.layout.root),
            lock_ttl_seconds=app.state.regen_orchestrator.lock.ttl_seconds,
            debug=settings.debug,
        )
        try:
            yield
        finally:
            if orchestrator is None:
                await close_http_client()
                await close_redis_pool()

    app = FastAPI(title="CSS Regeneration Gateway", version="0.1.0", lifespan=_lifespan)
    app.state.settings = settings
    app.state.regen_orchestrator = orchestrator

    async def _ready(request: Request) -> bool:
        orch = request.app.state.regen_orchestrator
        if orch is None:
            return False
        try:
            if not await orch.lock.ping():
                return False
        except (RedisError, OSError):
            return False
        return await orch.generator.is_available()

    attach_health_routes(app, checks={"liveness": lambda _r: True, "readiness": _ready})

    # Missing artifact files surface as this mount's 404, which the middleware intercepts.
    app.mount(
        settings.artifact_mount_path,
        StaticFiles(directory=settings.artifact_base_dir, check_dir=False),
        name="artifacts",
    )
    app.add_middleware(ArtifactRegenerationMiddleware)
    # Added last so request logging wraps the regeneration hook.
    setup_service(app, SERVICE_NAME)
    return app


app = create_app()
