"""Metadata returned by ffprobe."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ProbeData:
    """Parsed ``ffprobe -show_streams -show_format`` output.

    Numeric-looking values are converted to numbers, except for tags. Legacy
    ``TAG:x`` and ``DISPOSITION:x`` keys are folded into nested ``tags`` and
    ``disposition`` dicts.

    Attributes:
        streams: One dict per ``[STREAM]`` block.
        format: The ``[FORMAT]`` block.
        chapters: One dict per ``[CHAPTER]`` block.
    """

    streams: list[dict[str, Any]] = field(default_factory=list[dict[str, Any]])
    format: dict[str, Any] = field(default_factory=dict[str, Any])
    chapters: list[dict[str, Any]] = field(default_factory=list[dict[str, Any]])

    @property
    def duration(self) -> float | None:
        """Container duration in seconds, when ffprobe reported a numeric one."""
        value = self.format.get("duration")
        if isinstance(value, int | float):
            return float(value)
        return None
