import os

# Regeneration defaults. Settings fields fall back to these; tests and
# embedders that construct components directly use them as well.
DEFAULT_LOCK_TTL_SEC = 30
DEFAULT_CONTENDED_WAIT_SEC = 1.0

# Served artifacts are immutable per URL (callers bust with ?ver=), so one year.
ARTIFACT_CACHE_MAX_AGE_SEC = 31536000

# Stage-1 marker and the on-disk directory it maps to, relative to the artifact root.
ARTIFACT_DIR_MARKER = "/elementor/css/"
ARTIFACT_SUBDIR = "elementor/css"
ARTIFACT_SUFFIX = ".css"

# Content type per artifact suffix
ARTIFACT_MEDIA_TYPES = {
    ".css": "text/css; charset=UTF-8",
}
DEFAULT_MEDIA_TYPE = "application/octet-stream"

# Outbound calls to the generation authority
GENERATOR_TIMEOUT_MS = int(os.getenv("GENERATOR_TIMEOUT_MS", "30000"))
ENTITY_LOOKUP_TIMEOUT_MS = int(os.getenv("ENTITY_LOOKUP_TIMEOUT_MS", "2000"))
# Availability check against the authority; answers are reused for the TTL
GENERATOR_HEALTH_PATH = "/healthz"
GENERATOR_HEALTH_TIMEOUT_MS = int(os.getenv("GENERATOR_HEALTH_TIMEOUT_MS", "500"))
GENERATOR_HEALTH_TTL_SEC = 5.0
HTTP_RETRY_BASE_MS = int(os.getenv("HTTP_RETRY_BASE_MS", "50"))
HTTP_RETRY_JITTER_MS = int(os.getenv("HTTP_RETRY_JITTER_MS", "200"))

HEALTH_PORT = int(os.getenv("CSS_REGEN_PORT") or os.getenv("HEALTH_PORT") or "8081")


def media_type_for(suffix: str) -> str:
    return ARTIFACT_MEDIA_TYPES.get((suffix or "").lower(), DEFAULT_MEDIA_TYPE)
