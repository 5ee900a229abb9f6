import pytest
from pydantic import ValidationError

from core_config import Settings, get_settings
from core_config.constants import (
    ARTIFACT_CACHE_MAX_AGE_SEC, DEFAULT_CONTENDED_WAIT_SEC, DEFAULT_LOCK_TTL_SEC, media_type_for,
)


def test_defaults(monkeypatch):
    for var in ("CSS_REGEN_DEBUG", "REGEN_LOCK_TTL_SEC", "REGEN_CONTENDED_WAIT_SEC", "GENERATOR_URL",
                "GENERATOR_HEALTH_TTL_SEC"):
        monkeypatch.delenv(var, raising=False)
    s = Settings(_env_file=None)
    assert s.debug is False
    assert s.lock_ttl_seconds == DEFAULT_LOCK_TTL_SEC == 30
    assert s.contended_wait_seconds == DEFAULT_CONTENDED_WAIT_SEC == 1.0
    assert s.artifact_cache_max_age_sec == ARTIFACT_CACHE_MAX_AGE_SEC == 31536000
    assert s.artifact_dir_marker == "/elementor/css/"
    assert s.generator_base == "http://generator:8080"
    assert s.generator_health_ttl_sec == 5.0


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CSS_REGEN_DEBUG", "true")
    monkeypatch.setenv("REGEN_LOCK_TTL_SEC", "5")
    monkeypatch.setenv("REGEN_CONTENDED_WAIT_SEC", "0.25")
    monkeypatch.setenv("ARTIFACT_BASE_DIR", "/srv/uploads")
    monkeypatch.setenv("GENERATOR_URL", "http://wp-internal:9000/")
    s = get_settings()
    assert s.debug is True
    assert s.lock_ttl_seconds == 5
    assert s.contended_wait_seconds == 0.25
    assert s.artifact_base_dir == "/srv/uploads"
    assert s.generator_base == "http://wp-internal:9000"


def test_field_names_are_accepted():
    s = Settings(lock_ttl_seconds=2, artifact_base_dir="/tmp/x")
    assert s.lock_ttl_seconds == 2
    assert s.artifact_base_dir == "/tmp/x"


@pytest.mark.parametrize("ttl", ["0", "-3"])
def test_lock_ttl_must_be_positive(monkeypatch, ttl):
    monkeypatch.setenv("REGEN_LOCK_TTL_SEC", ttl)
    with pytest.raises(ValidationError):
        Settings()


def test_media_types():
    assert media_type_for(".css") == "text/css; charset=UTF-8"
    assert media_type_for(".CSS") == "text/css; charset=UTF-8"
    assert media_type_for(".bin") == "application/octet-stream"


def test_empty_generator_url_leaves_no_base(monkeypatch):
    monkeypatch.setenv("GENERATOR_URL", "")
    monkeypatch.setenv("GENERATOR_HEALTH_TTL_SEC", "0")
    s = Settings(_env_file=None)
    assert s.generator_base == ""
    assert s.generator_health_ttl_sec == 0
