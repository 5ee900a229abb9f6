from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException

from core_http.errors import attach_standard_error_handlers


def _app() -> FastAPI:
    app = FastAPI()
    attach_standard_error_handlers(app, service="test_errors")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.get("/gone")
    async def gone():
        raise HTTPException(status_code=404)

    @app.get("/typed/{n}")
    async def typed(n: int):
        return {"n": n}

    return app


client = TestClient(_app(), raise_server_exceptions=False)


def test_unhandled_exception_envelope():
    r = client.get("/boom")
    assert r.status_code == 500
    body = r.json()
    assert body["error"]["code"] == "internal"
    assert body["error"]["message"] == "Unexpected error"
    assert body["error"]["details"] == {"type": "RuntimeError", "message": "kaboom"}
    assert body["request_id"] == body["error"]["request_id"]


def test_http_exceptions_keep_status():
    r = client.get("/gone")
    assert r.status_code == 404
    assert r.json() == {"detail": "Not Found"}


def test_validation_envelope():
    r = client.get("/typed/abc")
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "validation_failed"
