from __future__ import annotations
import asyncio
import time
from email.utils import formatdate
from pathlib import Path
from typing import Callable, Optional

from core_config.constants import ARTIFACT_CACHE_MAX_AGE_SEC, media_type_for
from core_logging import get_logger, log_stage
from core_storage.artifact_files import ArtifactLayout
from .models import ServedResult

logger = get_logger("css_regen.server")


def _read_artifact(path: Path) -> Optional[bytes]:
    try:
        if not path.is_file():
            return None
        return path.read_bytes()
    except (FileNotFoundError, IsADirectoryError, PermissionError):
        return None


class ArtifactServer:
    """
    Turns a materialized artifact into a replacement 200 response.

    The file is re-checked at call time because generation may have raced or
    silently produced nothing; a missing or unreadable file yields ``None`` so
    the host's own not-found handling proceeds.
    """

    def __init__(
        self,
        layout: ArtifactLayout,
        *,
        max_age_seconds: int = ARTIFACT_CACHE_MAX_AGE_SEC,
        clock: Callable[[], float] = time.time,
        debug: bool = False,
    ):
        self.layout = layout
        self.max_age_seconds = int(max_age_seconds)
        self._clock = clock
        self._debug = debug

    def headers_for(self, path: Path, size: int) -> dict[str, str]:
        return {
            "Content-Type": media_type_for(path.suffix),
            "Cache-Control": f"public, max-age={self.max_age_seconds}",
            "Expires": formatdate(self._clock() + self.max_age_seconds, usegmt=True),
            "Content-Length": str(size),
        }

    async def serve(self, path: Path) -> Optional[ServedResult]:
        path = Path(path)
        if not self.layout.contains(path):
            if self._debug:
                log_stage(logger, "regen", "serve.outside_root", artifact_path=str(path), root=str(self.layout.root))
            return None
        body = await asyncio.to_thread(_read_artifact, path)
        if body is None:
            if self._debug:
                log_stage(logger, "regen", "serve.file_absent", artifact_path=str(path))
            return None
        return ServedResult(path=path, body=body, headers=self.headers_for(path, len(body)))
