"""
Two-stage classifier for "not found" request paths.

Stage 1 is a plain substring test against the artifact directory marker and
rejects nearly all unrelated 404 traffic. Only paths that pass it reach
stage 2, which strips the query string, takes the basename and matches it
against the filename grammar. No I/O happens here; it runs on every 404.
"""
from __future__ import annotations
import re
from typing import Optional, Pattern
from core_config.constants import ARTIFACT_DIR_MARKER, ARTIFACT_SUFFIX
from .models import ArtifactRequest, VariantType


def build_filename_pattern() -> Pattern[str]:
    """``(post|loop)-([0-9]+)\\.css``, derived from the known variants; applied with ``fullmatch``."""
    kinds = "|".join(re.escape(v.value) for v in VariantType)
    return re.compile(rf"({kinds})-([0-9]+){re.escape(ARTIFACT_SUFFIX)}", re.ASCII)


FILENAME_PATTERN = build_filename_pattern()


class PathMatcher:
    def __init__(self, marker: str = ARTIFACT_DIR_MARKER, pattern: Optional[Pattern[str]] = None):
        if not marker:
            raise ValueError("PathMatcher requires a non-empty directory marker")
        self.marker = marker
        self.pattern = pattern if pattern is not None else FILENAME_PATTERN

    def match(self, path: str) -> Optional[ArtifactRequest]:
        if not path or self.marker not in path:
            return None
        filename = path.split("?", 1)[0].rsplit("/", 1)[-1]
        m = self.pattern.fullmatch(filename)
        if m is None:
            return None
        entity_id = int(m.group(2))
        if entity_id <= 0:
            return None
        return ArtifactRequest(variant=VariantType(m.group(1)), entity_id=entity_id)
