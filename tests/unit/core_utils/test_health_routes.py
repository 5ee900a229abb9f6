from fastapi import FastAPI
from fastapi.testclient import TestClient

from core_utils.health import attach_health_routes


def _client(**checks) -> TestClient:
    app = FastAPI()
    attach_health_routes(app, checks=checks)
    return TestClient(app)


def test_defaults_without_checks():
    c = _client()
    assert c.get("/healthz").json() == {"status": "ok"}
    assert c.get("/readyz").json() == {"ready": True}


def test_async_readiness_false_is_503():
    async def _not_ready(_request):
        return False

    r = _client(readiness=_not_ready).get("/readyz")
    assert r.status_code == 503
    assert r.json() == {"ready": False}


def test_failing_check_is_reported_not_raised():
    def _broken(_request):
        raise ConnectionError("redis down")

    c = _client(liveness=_broken, readiness=_broken)
    assert c.get("/healthz").json() == {"status": "fail"}
    assert c.get("/readyz").status_code == 503


def test_dict_results_pass_through():
    c = _client(liveness=lambda _r: {"status": "ok", "service": "css_regen"})
    assert c.get("/healthz").json() == {"status": "ok", "service": "css_regen"}
