"""Locate the external executables ffcmd drives.

Three logical tools are resolved: ffmpeg, ffprobe and an FLV metadata
updater (flvmeta or flvtool2). Each can be overridden through settings
(environment variables), otherwise ``PATH`` is searched. Results, including
"not found" (an empty string), are memoized in a ``ToolCache``.
"""

import logging
import os
from pathlib import Path
import shutil
import sys

from .cache import ToolCache, default_cache
from .config import FFcmdSettings

logger = logging.getLogger(__name__)

FFMPEG = "ffmpeg"
FFPROBE = "ffprobe"
FLVTOOL = "flvtool"

IS_WINDOWS = sys.platform.startswith("win")


def _existing(path: Path | None) -> str:
    if path is None:
        return ""
    if path.exists():
        return str(path)
    logger.warning("Configured executable does not exist.", extra={"path": str(path)})
    return ""


def _which(name: str) -> str:
    return shutil.which(name) or ""


class ExecutableResolver:
    """Resolve and memoize executable paths.

    Args:
        settings: Settings providing path overrides; loaded from the
            environment on first use when omitted.
        cache: Cache holding resolved paths; defaults to the process-wide one.
    """

    def __init__(
        self,
        settings: FFcmdSettings | None = None,
        cache: ToolCache | None = None,
    ):
        self._settings = settings
        self.cache = cache if cache is not None else default_cache

    @property
    def settings(self) -> FFcmdSettings:
        """Settings used for path overrides."""
        if self._settings is None:
            self._settings = FFcmdSettings()
        return self._settings

    def set_ffmpeg_path(self, path: str | os.PathLike[str]) -> None:
        """Force the ffmpeg path, bypassing the search."""
        self.cache.paths[FFMPEG] = str(path)

    def set_ffprobe_path(self, path: str | os.PathLike[str]) -> None:
        """Force the ffprobe path, bypassing the search."""
        self.cache.paths[FFPROBE] = str(path)

    def set_flvtool_path(self, path: str | os.PathLike[str]) -> None:
        """Force the FLV metadata tool path, bypassing the search."""
        self.cache.paths[FLVTOOL] = str(path)

    def ffmpeg_path(self) -> str:
        """Return the ffmpeg path, or an empty string when not found."""
        if FFMPEG not in self.cache.paths:
            path = _existing(self.settings.ffmpeg_path) or _which("ffmpeg")
            self._remember(FFMPEG, path)
        return self.cache.paths[FFMPEG]

    def ffprobe_path(self) -> str:
        """Return the ffprobe path, or an empty string when not found.

        Besides the override and ``PATH``, the directory holding ffmpeg is
        searched.
        """
        if FFPROBE not in self.cache.paths:
            path = _existing(self.settings.ffprobe_path) or _which("ffprobe")
            if not path:
                ffmpeg = self.ffmpeg_path()
                if ffmpeg:
                    name = "ffprobe.exe" if IS_WINDOWS else "ffprobe"
                    sibling = Path(ffmpeg).parent / name
                    path = str(sibling) if sibling.exists() else ""
            self._remember(FFPROBE, path)
        return self.cache.paths[FFPROBE]

    def flvtool_path(self) -> str:
        """Return the flvmeta/flvtool2 path, or an empty string when not found."""
        if FLVTOOL not in self.cache.paths:
            path = (
                _existing(self.settings.flvmeta_path)
                or _existing(self.settings.flvtool2_path)
                or _which("flvmeta")
                or _which("flvtool2")
            )
            self._remember(FLVTOOL, path)
        return self.cache.paths[FLVTOOL]

    def _remember(self, tool: str, path: str) -> None:
        if path:
            logger.debug("Resolved executable.", extra={"tool": tool, "path": path})
        else:
            logger.debug("Executable not found.", extra={"tool": tool})
        self.cache.paths[tool] = path
