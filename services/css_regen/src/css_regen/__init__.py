"""On-demand regeneration of missing generated stylesheets."""
from .models import (
    ArtifactRequest, GenerationResult, RegenOutcome, RegenState,
    ServedResult, SkipReason, Validation, VariantType,
)
from .matcher import PathMatcher
from .lock import RegenerationLock
from .generator import ArtifactGenerator, EntityStore, GenerationEngine
from .server import ArtifactServer
from .orchestrator import RegenerationOrchestrator

__all__ = [
    "ArtifactRequest", "GenerationResult", "RegenOutcome", "RegenState",
    "ServedResult", "SkipReason", "Validation", "VariantType",
    "PathMatcher", "RegenerationLock",
    "ArtifactGenerator", "EntityStore", "GenerationEngine",
    "ArtifactServer", "RegenerationOrchestrator",
]
