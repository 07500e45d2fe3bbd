"""Process-wide cache of resolved executables and ffmpeg capabilities."""

from dataclasses import dataclass, field

from .types import CodecInfo, EncoderInfo, FilterInfo, FormatInfo


@dataclass
class ToolCache:
    """Shared mutable state for executable resolution and capability probing.

    A value of None means "not computed yet"; an empty string path means the
    executable was searched for and not found.

    Attributes:
        paths: Resolved executable paths keyed by logical tool name.
        filters: Result of ``ffmpeg -filters``.
        codecs: Result of ``ffmpeg -codecs``.
        encoders: Result of ``ffmpeg -encoders``.
        formats: Result of ``ffmpeg -formats``.
    """

    paths: dict[str, str] = field(default_factory=dict[str, str])
    filters: dict[str, FilterInfo] | None = None
    codecs: dict[str, CodecInfo] | None = None
    encoders: dict[str, EncoderInfo] | None = None
    formats: dict[str, FormatInfo] | None = None

    def forget_paths(self) -> None:
        """Drop every resolved executable path."""
        self.paths.clear()

    def reset(self) -> None:
        """Drop everything, as if the process had just started."""
        self.forget_paths()
        self.filters = None
        self.codecs = None
        self.encoders = None
        self.formats = None


default_cache = ToolCache()
