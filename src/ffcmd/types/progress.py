"""Structured progress reports parsed from ffmpeg stderr."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Progress:
    """A single progress report.

    Attributes:
        frames: Number of frames processed so far.
        current_fps: Current processing speed in frames per second.
        current_kbps: Current output bitrate in kbit/s.
        target_size: Current output size as reported by ffmpeg (kB).
        timemark: Current position in the output as ``HH:MM:SS.xx``.
        percent: Completion percentage, only when the input duration is known.
    """

    frames: int | None
    current_fps: int | None
    current_kbps: float | None
    target_size: int | None
    timemark: str | None
    percent: float | None = None
