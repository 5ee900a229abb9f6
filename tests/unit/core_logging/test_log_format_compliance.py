import io, json
from contextlib import redirect_stdout

from core_logging import get_logger, log_stage, record_error, emit_request_summary


def _records(raw: str, service_prefix: str):
    for line in raw.strip().splitlines():
        try:
            rec = json.loads(line)
        except json.JSONDecodeError:
            continue
        if rec.get("service", "").startswith(service_prefix):
            yield rec


def test_log_envelope_compliance(monkeypatch):
    """Artifact identity stays top-level; stage-specific fields nest under *meta*."""
    monkeypatch.setenv("LOG_EMIT_MODE", "verbose")
    buf = io.StringIO()
    logger = get_logger("regen_envelope")

    with redirect_stdout(buf):
        log_stage(
            logger,
            "regen",
            "regen.served",
            request_id="req123",
            variant="post",
            entity_id=42,
            lock_key="cssregen:v1:lock:post:42",
            artifact_path="/var/www/uploads/elementor/css/post-42.css",
            bytes=1024,
        )

    payload = next(_records(buf.getvalue(), "regen_envelope"), None)
    assert payload is not None, "Expected log record not found in captured output"

    # ── top-level ─────────────────────────────────────────────────────────
    assert "ts" in payload, "timestamp missing"
    assert payload["level"] == "INFO"
    assert payload["event"] == "regen.served"
    assert payload["stage"] == "regen"
    assert payload["request_id"] == "req123"
    assert payload["variant"] == "post"
    assert payload["entity_id"] == 42
    assert payload["lock_key"] == "cssregen:v1:lock:post:42"

    # ── meta ──────────────────────────────────────────────────────────────
    meta = payload.get("meta")
    assert meta, "meta object missing"
    assert meta["artifact_path"].endswith("post-42.css")
    assert meta["bytes"] == 1024


def test_summary_mode_folds_breadcrumbs_but_keeps_errors(monkeypatch):
    monkeypatch.setenv("LOG_EMIT_MODE", "summary")
    buf = io.StringIO()
    logger = get_logger("regen_summary")

    with redirect_stdout(buf):
        log_stage(logger, "regen", "regen.lock.acquired", request_id="r1", variant="loop", entity_id=7)
        record_error(
            "generation_failed", where="test", message="engine crashed",
            logger=logger, level="WARNING", variant="loop", entity_id=7,
        )
        emit_request_summary(logger, service="regen_summary")

    recs = list(_records(buf.getvalue(), "regen_summary"))
    events = [r["event"] for r in recs]
    assert "regen.lock.acquired" not in events
    assert "error" in events
    summary = next(r for r in recs if r["event"] == "request_summary")
    assert summary["variant"] == "loop"
    assert summary["entity_id"] == 7
    assert summary["meta"]["events"]["regen"]["regen.lock.acquired"] >= 1
