"""Shared fixtures for integration tests.

These tests drive the real ffmpeg/ffprobe binaries found on ``PATH``.
"""

from pathlib import Path

import pytest
import pytest_asyncio

from ffcmd import FFmpegCommand, FFProbe

CLIP_SECONDS = 2


@pytest.fixture
def ffprobe() -> FFProbe:
    """FFProbe using the default resolver."""
    return FFProbe()


@pytest_asyncio.fixture
async def source_clip(tmp_path: Path) -> Path:
    """A short MP4 with a test pattern and a sine tone, generated by ffmpeg."""
    path = tmp_path / "source.mp4"
    await (
        FFmpegCommand(f"testsrc=duration={CLIP_SECONDS}:size=320x240:rate=25")
        .input_format("lavfi")
        .input(f"sine=frequency=440:duration={CLIP_SECONDS}")
        .input_format("lavfi")
        .video_codec("mpeg4")
        .audio_codec("aac")
        .save(path)
    )
    return path
