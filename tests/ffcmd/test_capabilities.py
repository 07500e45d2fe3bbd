# pyright: reportPrivateUsage=false

"""Tests for capability listing parsers and pre-flight checks."""

from unittest.mock import AsyncMock, patch

from helpers.fake_process import FakeProcess
import pytest

from ffcmd.cache import ToolCache
from ffcmd.capabilities import (
    CapabilityProber,
    parse_codecs,
    parse_encoders,
    parse_filters,
    parse_formats,
)
from ffcmd.command import FFmpegCommand
from ffcmd.exceptions import UnavailableCodecError, UnavailableFormatError
from ffcmd.resolver import ExecutableResolver
from ffcmd.types import EncoderInfo

FFMPEG = "/usr/bin/ffmpeg"

FILTERS_LISTING = """Filters:
  T.. = Timeline support
  .S. = Slice threading
  ..C = Command support
  A = Audio input/output
  V = Video input/output
  | = Source or sink filter
 ... abench            A->A       Benchmark part of a filtergraph.
 T.C overlay           VV->V      Overlay a video source on top of the input.
 ... anullsrc          |->A       Null audio source, return empty audio frames.
 TSC amix              N->A       Audio mixing.
aformat          A->A       Convert the input audio to one of the specified formats.
"""

CODECS_LISTING = """Codecs:
 D..... = Decoding supported
 .E.... = Encoding supported
 ..V... = Video codec
 -------
 DEV.LS h264                 H.264 / AVC (decoders: h264 h264_v4l2m2m ) (encoders: libx264 h264_v4l2m2m )
 DEA.L. aac                  AAC (Advanced Audio Coding) (decoders: aac aac_fixed )
 D.VI.S rawvideo             raw video
 DEVSD  mpeg4                MPEG-4 part 2
"""

ENCODERS_LISTING = """Encoders:
 V..... = Video
 A..... = Audio
 ------
 V....D libx264              libx264 H.264 / AVC / MPEG-4 AVC (codec h264)
 VFS..D mpeg4                MPEG-4 part 2
 A....D aac                  AAC (Advanced Audio Coding)
 A..X.D opus                 Opus
 S..... ass                  ASS (Advanced SubStation Alpha) subtitle
"""

FORMATS_LISTING = """File formats:
 D. = Demuxing supported
 .E = Muxing supported
 --
 D  aac             raw ADTS AAC (Advanced Audio Coding)
  E adts            ADTS AAC (Advanced Audio Coding)
 DE flv             FLV (Flash Video)
 D  mov,mp4,m4a,3gp,3g2,mj2 QuickTime / MOV
  E mp4             MP4 (MPEG-4 Part 14)
"""


@pytest.fixture
def cache() -> ToolCache:
    """Cache with a resolved ffmpeg and no capabilities yet."""
    return ToolCache(paths={"ffmpeg": FFMPEG})


@pytest.fixture
def prober(cache: ToolCache) -> CapabilityProber:
    """Prober bound to the test cache."""
    return CapabilityProber(ExecutableResolver(cache=cache), cache)


# --- Tests for listing parsers ---


@pytest.mark.unit
def test_parse_filters() -> None:
    """Filters with known pad types are parsed, with or without flag columns."""
    filters = parse_filters(FILTERS_LISTING)

    assert set(filters) == {"abench", "overlay", "anullsrc", "aformat"}
    assert filters["overlay"].input == "video"
    assert filters["overlay"].multiple_inputs
    assert not filters["overlay"].multiple_outputs
    assert filters["anullsrc"].input == "none"
    assert filters["anullsrc"].output == "audio"
    assert filters["aformat"].description == (
        "Convert the input audio to one of the specified formats."
    )


@pytest.mark.unit
def test_parse_codecs_synthesizes_coder_entries() -> None:
    """Named encoders and decoders get their own entries."""
    codecs = parse_codecs(CODECS_LISTING)

    h264 = codecs["h264"]
    assert h264.type == "video"
    assert h264.can_decode and h264.can_encode
    assert h264.is_lossy and h264.is_lossless
    assert not h264.intra_frame_only

    assert codecs["libx264"].can_encode
    assert not codecs["libx264"].can_decode
    assert codecs["h264_v4l2m2m"].can_encode and codecs["h264_v4l2m2m"].can_decode
    assert codecs["aac_fixed"].can_decode and not codecs["aac_fixed"].can_encode
    assert codecs["aac_fixed"].type == "audio"

    assert codecs["rawvideo"].intra_frame_only
    assert not codecs["rawvideo"].can_encode
    assert "=" not in codecs


@pytest.mark.unit
def test_parse_codecs_legacy_layout() -> None:
    """The legacy avcodec flag columns are understood."""
    mpeg4 = parse_codecs(CODECS_LISTING)["mpeg4"]

    assert mpeg4.can_decode and mpeg4.can_encode
    assert mpeg4.draw_horiz_band
    assert mpeg4.direct_rendering
    assert not mpeg4.weird_frame_truncation
    assert mpeg4.is_lossy is None


@pytest.mark.unit
def test_parse_encoders() -> None:
    """Encoder flags and media types are parsed; legend lines are skipped."""
    encoders = parse_encoders(ENCODERS_LISTING)

    assert set(encoders) == {"libx264", "mpeg4", "aac", "opus", "ass"}
    assert encoders["opus"].experimental
    assert encoders["opus"].type == "audio"
    assert not encoders["aac"].experimental
    assert encoders["mpeg4"].frame_mt and encoders["mpeg4"].slice_mt
    assert encoders["ass"].type == "subtitle"


@pytest.mark.unit
def test_parse_formats_splits_names_and_merges_capabilities() -> None:
    """Comma-separated names share an entry; repeated names merge flags."""
    formats = parse_formats(FORMATS_LISTING)

    assert formats["aac"].can_demux and not formats["aac"].can_mux
    assert formats["adts"].can_mux and not formats["adts"].can_demux
    assert formats["flv"].can_demux and formats["flv"].can_mux
    assert formats["m4a"].can_demux and not formats["m4a"].can_mux
    assert formats["mp4"].can_demux and formats["mp4"].can_mux
    assert formats["mp4"].description == "QuickTime / MOV"


# --- Tests for CapabilityProber ---


@pytest.mark.unit
@pytest.mark.asyncio
@patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
async def test_listings_are_queried_once(
    mock_cse: AsyncMock, prober: CapabilityProber, cache: ToolCache
) -> None:
    """Each listing runs ffmpeg once and is then served from the cache."""
    mock_cse.side_effect = [
        FakeProcess(stdout=FORMATS_LISTING.encode()),
        FakeProcess(stdout=FILTERS_LISTING.encode()),
    ]

    first = await prober.available_formats()
    second = await prober.available_formats()
    filters = await prober.available_filters()

    assert first is second is cache.formats
    assert "overlay" in filters
    assert mock_cse.call_count == 2
    assert mock_cse.call_args_list[0].args == (FFMPEG, "-formats")
    assert mock_cse.call_args_list[1].args == (FFMPEG, "-filters")


@pytest.mark.unit
@pytest.mark.asyncio
@patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
async def test_codecs_and_encoders_listings(
    mock_cse: AsyncMock, prober: CapabilityProber
) -> None:
    """Codec and encoder listings go through the same cached path."""
    mock_cse.side_effect = [
        FakeProcess(stdout=CODECS_LISTING.encode()),
        FakeProcess(stdout=ENCODERS_LISTING.encode()),
    ]

    codecs = await prober.available_codecs()
    encoders = await prober.available_encoders()

    assert "libx264" in codecs
    assert encoders["opus"].experimental
    assert [c.args[1] for c in mock_cse.call_args_list] == ["-codecs", "-encoders"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_check_accepts_available_request(
    prober: CapabilityProber, cache: ToolCache
) -> None:
    """Available formats, matching encoders and copy pass the check."""
    cache.formats = parse_formats(FORMATS_LISTING)
    cache.encoders = parse_encoders(ENCODERS_LISTING)
    command = (
        FFmpegCommand("in.aac", cache=cache)
        .input_format("aac")
        .audio_codec("aac")
        .video_codec("copy")
        .format("mp4")
        .output("out.mp4")
    )

    await prober.check(command)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_check_reports_output_formats_before_input_formats(
    prober: CapabilityProber, cache: ToolCache
) -> None:
    """Output formats are checked first; a demux-only format cannot be written."""
    cache.formats = parse_formats(FORMATS_LISTING)
    cache.encoders = {}
    command = (
        FFmpegCommand("in.adts", cache=cache)
        .input_format("adts")
        .format("m4a")
        .output("out.m4a")
    )

    with pytest.raises(UnavailableFormatError) as exc_info:
        await prober.check(command)
    assert exc_info.value.direction == "output"
    assert exc_info.value.names == ["m4a"]

    command.outputs[0].options.clear()
    with pytest.raises(UnavailableFormatError, match="Input format adts is not available"):
        await prober.check(command)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_check_rejects_encoder_of_wrong_type(
    prober: CapabilityProber, cache: ToolCache
) -> None:
    """An encoder used for the wrong media type is unavailable."""
    cache.formats = {}
    cache.encoders = parse_encoders(ENCODERS_LISTING)
    command = FFmpegCommand("in.avi", cache=cache).video_codec("aac").output("out.mkv")

    with pytest.raises(UnavailableCodecError, match="Video codec aac is not available"):
        await prober.check(command)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_experimental_flags(prober: CapabilityProber, cache: ToolCache) -> None:
    """-strict experimental follows each experimental codec."""
    cache.encoders = {
        "opus": EncoderInfo("audio", "Opus", False, False, True, False, False),
        "libx264": EncoderInfo("video", "H.264", False, False, False, False, True),
    }

    args = ["-i", "in.wav", "-acodec", "opus", "-vcodec", "libx264", "out.mkv"]
    assert await prober.experimental_flags(args) == [
        "-i", "in.wav",
        "-acodec", "opus", "-strict", "experimental",
        "-vcodec", "libx264",
        "out.mkv",
    ]  # fmt: skip

    assert await prober.experimental_flags(["-i", "x", "-acodec"]) == ["-i", "x", "-acodec"]
