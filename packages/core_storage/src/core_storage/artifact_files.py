"""
On-disk layout of generated artifacts.

One file per ``(variant, entity_id)`` named ``{variant}-{entity_id}.css``
under ``<root>/elementor/css``.  There is no metadata file and no versioning:
the ``?ver=`` suffix callers append is not part of an artifact's identity.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from core_config.constants import ARTIFACT_SUBDIR, ARTIFACT_SUFFIX

PathLike = Union[str, "os.PathLike[str]"]


def artifact_filename(variant: object, entity_id: int) -> str:
    v = getattr(variant, "value", variant)
    return f"{v}-{int(entity_id)}{ARTIFACT_SUFFIX}"


class ArtifactLayout:
    """Maps artifact identities to paths under a fixed base directory."""

    def __init__(self, base_dir: PathLike, subdir: str = ARTIFACT_SUBDIR):
        self.base_dir = Path(base_dir)
        self.root = self.base_dir / subdir

    def path_for(self, variant: object, entity_id: int) -> Path:
        return self.root / artifact_filename(variant, entity_id)

    def contains(self, path: PathLike) -> bool:
        """True when *path* resolves inside the artifact root (symlinks followed)."""
        try:
            resolved = Path(path).resolve()
            root = self.root.resolve()
        except (OSError, RuntimeError):
            return False
        return resolved == root or root in resolved.parents

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def __repr__(self) -> str:
        return f"ArtifactLayout(root={str(self.root)!r})"


__all__ = ["ArtifactLayout", "artifact_filename"]
