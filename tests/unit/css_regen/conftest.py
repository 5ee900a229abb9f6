"""
css_regen unit-test harness.

• An in-memory Redis (fakeredis) for the coalescing lock.
• A dict-backed entity store and a file-writing generation engine that stand
  in for the external generation authority.
• ``make_orchestrator`` wiring them together over a tmp artifact root.
"""

from __future__ import annotations

import pytest
from fakeredis import FakeAsyncRedis, FakeServer

from core_storage.artifact_files import ArtifactLayout
from css_regen.generator import ArtifactGenerator
from css_regen.lock import RegenerationLock
from css_regen.matcher import PathMatcher
from css_regen.orchestrator import RegenerationOrchestrator
from css_regen.server import ArtifactServer
from tests.helpers.regen_fakes import FakeEngine, FakeEntityStore, SleepRecorder


@pytest.fixture
def redis():
    return FakeAsyncRedis(server=FakeServer(), decode_responses=True)


@pytest.fixture
def layout(tmp_path) -> ArtifactLayout:
    return ArtifactLayout(tmp_path)


@pytest.fixture
def entity_store() -> FakeEntityStore:
    return FakeEntityStore({42: True, 7: True, 99: False})


@pytest.fixture
def engine(layout) -> FakeEngine:
    return FakeEngine(layout)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_orchestrator(redis, layout, entity_store, engine, sleep_recorder):
    def _make(*, store=None, eng=None, lock_redis=None, sleep=None, ttl_seconds=30,
              contended_wait_seconds=1.0, debug=False) -> RegenerationOrchestrator:
        return RegenerationOrchestrator(
            PathMatcher(),
            RegenerationLock(lock_redis if lock_redis is not None else redis, ttl_seconds=ttl_seconds),
            ArtifactGenerator(store or entity_store, eng or engine, debug=debug),
            ArtifactServer(layout, clock=lambda: 0.0, debug=debug),
            contended_wait_seconds=contended_wait_seconds,
            sleep=sleep or sleep_recorder,
            debug=debug,
        )
    return _make
