"""Outcome of a successful ffmpeg invocation."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RunResult:
    """Text captured from a successful ffmpeg run.

    Attributes:
        stdout: Captured stdout, or None when stdout was piped to a sink.
        stderr: Captured stderr (bounded by the command's line limit).
    """

    stdout: str | None
    stderr: str
