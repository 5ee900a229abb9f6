from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from core_config.constants import (
    ARTIFACT_CACHE_MAX_AGE_SEC,
    ARTIFACT_DIR_MARKER,
    DEFAULT_CONTENDED_WAIT_SEC,
    DEFAULT_LOCK_TTL_SEC,
    ENTITY_LOOKUP_TIMEOUT_MS,
    GENERATOR_HEALTH_TTL_SEC,
    GENERATOR_TIMEOUT_MS,
)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True,
    )

    environment: str = Field(default="dev", alias="ENVIRONMENT")
    service_log_level: str = Field(default="INFO", alias="SERVICE_LOG_LEVEL")

    # Regeneration breadcrumbs are only emitted when this is on.
    debug: bool = Field(default=False, alias="CSS_REGEN_DEBUG")

    # Redis (lock store)
    redis_url: str = Field(default="redis://redis:6379/0", alias="REDIS_URL")
    redis_max_connections: int = Field(default=100, alias="REDIS_MAX_CONNECTIONS")

    # Lock + contended path
    lock_ttl_seconds: float = Field(default=DEFAULT_LOCK_TTL_SEC, gt=0, alias="REGEN_LOCK_TTL_SEC")
    contended_wait_seconds: float = Field(default=DEFAULT_CONTENDED_WAIT_SEC, ge=0, alias="REGEN_CONTENDED_WAIT_SEC")

    # Artifact store
    artifact_base_dir: str = Field(default="/var/www/uploads", alias="ARTIFACT_BASE_DIR")
    artifact_mount_path: str = Field(default="/wp-content/uploads", alias="ARTIFACT_MOUNT_PATH")
    artifact_dir_marker: str = Field(default=ARTIFACT_DIR_MARKER, alias="ARTIFACT_DIR_MARKER")
    artifact_cache_max_age_sec: int = Field(default=ARTIFACT_CACHE_MAX_AGE_SEC, alias="ARTIFACT_CACHE_MAX_AGE_SEC")

    # Generation authority
    generator_url: str = Field(default="http://generator:8080", alias="GENERATOR_URL")
    generator_timeout_ms: int = Field(default=GENERATOR_TIMEOUT_MS, alias="GENERATOR_TIMEOUT_MS")
    entity_lookup_timeout_ms: int = Field(default=ENTITY_LOOKUP_TIMEOUT_MS, alias="ENTITY_LOOKUP_TIMEOUT_MS")
    generator_health_ttl_sec: float = Field(default=GENERATOR_HEALTH_TTL_SEC, ge=0, alias="GENERATOR_HEALTH_TTL_SEC")

    @property
    def generator_base(self) -> str:
        """Generator URL without a trailing slash; empty when unset."""
        return (self.generator_url or "").rstrip("/")

def get_settings() -> "Settings":
    return Settings()  # type: ignore
