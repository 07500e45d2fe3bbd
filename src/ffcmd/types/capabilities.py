"""Capability records parsed from ffmpeg's listing flags."""

from dataclasses import dataclass, replace
from typing import Literal

MediaType = Literal["audio", "video", "subtitle"]
FilterPadType = Literal["audio", "video", "none"]


@dataclass(frozen=True, slots=True)
class FilterInfo:
    """One entry of ``ffmpeg -filters``.

    Attributes:
        description: Filter description.
        input: Input pad type.
        multiple_inputs: Whether the filter takes several inputs.
        output: Output pad type.
        multiple_outputs: Whether the filter produces several outputs.
    """

    description: str
    input: FilterPadType
    multiple_inputs: bool
    output: FilterPadType
    multiple_outputs: bool


@dataclass(frozen=True, slots=True)
class CodecInfo:
    """One entry of ``ffmpeg -codecs``.

    Legacy (avcodec) listings fill the ``draw_horiz_band`` /
    ``direct_rendering`` / ``weird_frame_truncation`` flags, modern listings
    fill ``intra_frame_only`` / ``is_lossy`` / ``is_lossless``.
    """

    type: MediaType | None
    description: str
    can_decode: bool = False
    can_encode: bool = False
    draw_horiz_band: bool | None = None
    direct_rendering: bool | None = None
    weird_frame_truncation: bool | None = None
    intra_frame_only: bool | None = None
    is_lossy: bool | None = None
    is_lossless: bool | None = None

    def with_coder(self, *, encode: bool, decode: bool) -> "CodecInfo":
        """Return a copy describing a specific encoder or decoder."""
        return replace(self, can_encode=encode, can_decode=decode)


@dataclass(frozen=True, slots=True)
class EncoderInfo:
    """One entry of ``ffmpeg -encoders``."""

    type: MediaType | None
    description: str
    frame_mt: bool
    slice_mt: bool
    experimental: bool
    draw_horiz_band: bool
    direct_rendering: bool


@dataclass(slots=True)
class FormatInfo:
    """One entry of ``ffmpeg -formats``.

    Attributes:
        description: Format description.
        can_demux: Whether the format can be read.
        can_mux: Whether the format can be written.
    """

    description: str
    can_demux: bool = False
    can_mux: bool = False
