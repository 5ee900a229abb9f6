from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, PositiveInt
from core_storage.artifact_files import artifact_filename


class VariantType(str, Enum):
    """Artifact kinds. Both are produced by the same generation call."""
    POST = "post"
    LOOP = "loop"


class ArtifactRequest(BaseModel):
    """A parsed artifact miss; built once per request and passed by value."""
    variant: VariantType
    entity_id: PositiveInt

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def filename(self) -> str:
        return artifact_filename(self.variant, self.entity_id)

    def __str__(self) -> str:
        return self.filename


class Validation(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    WRONG_KIND = "wrong_kind"


@dataclass(frozen=True)
class GenerationResult:
    """Tagged outcome of a generation call: ``path`` on success, ``reason`` on failure."""
    ok: bool
    path: Optional[Path] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, path: Path) -> "GenerationResult":
        return cls(ok=True, path=Path(path))

    @classmethod
    def failure(cls, reason: str) -> "GenerationResult":
        return cls(ok=False, reason=reason or "unknown")


@dataclass(frozen=True)
class ServedResult:
    """A complete replacement response for the host's not-found response."""
    path: Path
    body: bytes
    headers: Dict[str, str]
    status_code: int = 200

    @property
    def media_type(self) -> str:
        return self.headers.get("Content-Type", "")


class RegenState(str, Enum):
    IDLE = "idle"
    MATCHED = "matched"
    LOCK_HELD = "lock_held"
    LOCK_CONTENDED = "lock_contended"
    VALIDATED = "validated"
    GENERATED = "generated"
    SERVED = "served"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    """Why a request fell through to the host's own not-found handling."""
    NO_MATCH = "no_match"
    GENERATOR_UNAVAILABLE = "generator_unavailable"
    LOCK_UNAVAILABLE = "lock_unavailable"
    ENTITY_MISSING = "entity_missing"
    WRONG_KIND = "wrong_kind"
    GENERATION_FAILED = "generation_failed"
    POST_GENERATION_FILE_ABSENT = "post_generation_file_absent"
    CONTENDED_FILE_ABSENT = "contended_file_absent"


@dataclass(frozen=True)
class RegenOutcome:
    state: RegenState
    request: Optional[ArtifactRequest] = None
    reason: Optional[SkipReason] = None
    served: Optional[ServedResult] = None
    trail: Tuple[RegenState, ...] = field(default_factory=tuple)

    @property
    def is_served(self) -> bool:
        return self.state is RegenState.SERVED and self.served is not None
