"""Discovery and validation of what the installed ffmpeg build supports.

ffmpeg's ``-formats``, ``-codecs``, ``-encoders`` and ``-filters`` listings
are parsed into typed maps and cached in a ``ToolCache``, so each listing is
queried at most once per process. ``CapabilityProber.check`` rejects
commands that ask for formats or encoders the build does not have before
any processing starts.
"""

import logging
import re
from typing import TYPE_CHECKING

from .cache import ToolCache, default_cache
from .exceptions import UnavailableCodecError, UnavailableFormatError
from .processor import FFmpegProcess
from .resolver import ExecutableResolver
from .types import CodecInfo, EncoderInfo, FilterInfo, FormatInfo
from .types.capabilities import FilterPadType, MediaType

if TYPE_CHECKING:
    from .command import FFmpegCommand

logger = logging.getLogger(__name__)

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
_AV_CODEC_RE = re.compile(r"^\s*([D ])([E ])([VAS])([S ])([D ])([T ]) ([^ ]+) +(.*)$")
_FF_CODEC_RE = re.compile(
    r"^\s*([D\.])([E\.])([VAS])([I\.])([L\.])([S\.]) ([^ ]+) +(.*)$"
)
_FF_ENCODERS_RE = re.compile(r"\(encoders:([^\)]+)\)")
_FF_DECODERS_RE = re.compile(r"\(decoders:([^\)]+)\)")
_ENCODER_RE = re.compile(
    r"^\s*([VAS\.])([F\.])([S\.])([X\.])([B\.])([D\.]) ([^ ]+) +(.*)$"
)
_FORMAT_RE = re.compile(r"^\s*([D ])([E ]) ([^ ]+) +(.*)$")
_FILTER_RE = re.compile(r"^(?: [T\.][S\.][C\.] )?([^ ]+) +(AA?|VV?|\|)->(AA?|VV?|\|) +(.*)$")

_MEDIA_TYPES: dict[str, MediaType] = {"V": "video", "A": "audio", "S": "subtitle"}
_PAD_TYPES: dict[str, FilterPadType] = {"A": "audio", "V": "video", "|": "none"}

_CODEC_FLAGS = {"-acodec": "audio", "-vcodec": "video"}


def parse_filters(text: str) -> dict[str, FilterInfo]:
    """Parse ``ffmpeg -filters`` output."""
    filters: dict[str, FilterInfo] = {}
    for line in text.split("\n"):
        if match := _FILTER_RE.match(line):
            name, inputs, outputs, description = match.groups()
            filters[name] = FilterInfo(
                description=description,
                input=_PAD_TYPES[inputs[0]],
                multiple_inputs=len(inputs) > 1,
                output=_PAD_TYPES[outputs[0]],
                multiple_outputs=len(outputs) > 1,
            )
    return filters


def _coder_names(pattern: re.Pattern[str], description: str) -> list[str]:
    match = pattern.search(description)
    return match.group(1).strip().split(" ") if match else []


def parse_codecs(text: str) -> dict[str, CodecInfo]:
    """Parse ``ffmpeg -codecs`` output.

    Both the legacy avcodec layout and the current one are understood. In the
    current layout, codecs listing specific ``(encoders: ...)`` or
    ``(decoders: ...)`` get an extra entry per named coder.
    """
    codecs: dict[str, CodecInfo] = {}
    for line in _LINE_BREAK_RE.split(text):
        match = _AV_CODEC_RE.match(line)
        if match and match.group(7) != "=":
            codecs[match.group(7)] = CodecInfo(
                type=_MEDIA_TYPES.get(match.group(3)),
                description=match.group(8),
                can_decode=match.group(1) == "D",
                can_encode=match.group(2) == "E",
                draw_horiz_band=match.group(4) == "S",
                direct_rendering=match.group(5) == "D",
                weird_frame_truncation=match.group(6) == "T",
            )

        match = _FF_CODEC_RE.match(line)
        if not match or match.group(7) == "=":
            continue

        codec = codecs[match.group(7)] = CodecInfo(
            type=_MEDIA_TYPES.get(match.group(3)),
            description=match.group(8),
            can_decode=match.group(1) == "D",
            can_encode=match.group(2) == "E",
            intra_frame_only=match.group(4) == "I",
            is_lossy=match.group(5) == "L",
            is_lossless=match.group(6) == "S",
        )
        for name in _coder_names(_FF_ENCODERS_RE, codec.description):
            codecs[name] = codec.with_coder(encode=True, decode=False)
        for name in _coder_names(_FF_DECODERS_RE, codec.description):
            if name in codecs:
                codecs[name] = codecs[name].with_coder(
                    encode=codecs[name].can_encode, decode=True
                )
            else:
                codecs[name] = codec.with_coder(encode=False, decode=True)
    return codecs


def parse_encoders(text: str) -> dict[str, EncoderInfo]:
    """Parse ``ffmpeg -encoders`` output."""
    encoders: dict[str, EncoderInfo] = {}
    for line in _LINE_BREAK_RE.split(text):
        match = _ENCODER_RE.match(line)
        if match and match.group(7) != "=":
            encoders[match.group(7)] = EncoderInfo(
                type=_MEDIA_TYPES.get(match.group(1)),
                description=match.group(8),
                frame_mt=match.group(2) == "F",
                slice_mt=match.group(3) == "S",
                experimental=match.group(4) == "X",
                draw_horiz_band=match.group(5) == "B",
                direct_rendering=match.group(6) == "D",
            )
    return encoders


def parse_formats(text: str) -> dict[str, FormatInfo]:
    """Parse ``ffmpeg -formats`` output.

    Comma-separated names (``mov,mp4,m4a,...``) yield one entry each; a name
    listed twice (once as demuxer, once as muxer) gets both capabilities.
    """
    formats: dict[str, FormatInfo] = {}
    for line in _LINE_BREAK_RE.split(text):
        match = _FORMAT_RE.match(line)
        if not match:
            continue
        for name in match.group(3).split(","):
            info = formats.setdefault(name, FormatInfo(description=match.group(4)))
            if match.group(1) == "D":
                info.can_demux = True
            if match.group(2) == "E":
                info.can_mux = True
    return formats


class CapabilityProber:
    """Query and cache ffmpeg's supported formats, codecs, encoders and filters.

    Args:
        resolver: Resolver used to locate ffmpeg.
        cache: Cache receiving the parsed listings; defaults to the
            process-wide one.
    """

    def __init__(
        self,
        resolver: ExecutableResolver | None = None,
        cache: ToolCache | None = None,
    ):
        self.cache = cache if cache is not None else default_cache
        self._resolver = resolver or ExecutableResolver(cache=self.cache)

    async def _listing(self, flag: str) -> str:
        logger.debug("Querying ffmpeg capabilities.", extra={"flag": flag})
        process = FFmpegProcess(
            [flag], resolver=self._resolver, capture_stdout=True, stdout_lines=0
        )
        result = await process.run()
        return result.stdout or ""

    async def available_filters(self) -> dict[str, FilterInfo]:
        """Return the filters supported by ffmpeg, keyed by name."""
        if self.cache.filters is None:
            self.cache.filters = parse_filters(await self._listing("-filters"))
        return self.cache.filters

    async def available_codecs(self) -> dict[str, CodecInfo]:
        """Return the codecs supported by ffmpeg, keyed by name."""
        if self.cache.codecs is None:
            self.cache.codecs = parse_codecs(await self._listing("-codecs"))
        return self.cache.codecs

    async def available_encoders(self) -> dict[str, EncoderInfo]:
        """Return the encoders supported by ffmpeg, keyed by name."""
        if self.cache.encoders is None:
            self.cache.encoders = parse_encoders(await self._listing("-encoders"))
        return self.cache.encoders

    async def available_formats(self) -> dict[str, FormatInfo]:
        """Return the container formats supported by ffmpeg, keyed by name."""
        if self.cache.formats is None:
            self.cache.formats = parse_formats(await self._listing("-formats"))
        return self.cache.formats

    async def check(self, command: "FFmpegCommand") -> None:
        """Validate the formats and codecs requested by ``command``.

        Checks output formats (must be muxable), then input formats (must be
        demuxable), then output audio/video codecs (must be encoders of the
        matching type; ``copy`` is always accepted).

        Raises:
            UnavailableFormatError: Naming every unavailable output format, or
                else every unavailable input format.
            UnavailableCodecError: Naming every unavailable output codec.
        """
        formats = await self.available_formats()

        unavailable = [
            found[0]
            for output in command.outputs
            if (found := output.options.find("-f", 1))
            and not (str(found[0]) in formats and formats[str(found[0])].can_mux)
        ]
        if unavailable:
            raise UnavailableFormatError([str(name) for name in unavailable], "output")

        unavailable = [
            found[0]
            for input_spec in command.inputs
            if (found := input_spec.options.find("-f", 1))
            and not (str(found[0]) in formats and formats[str(found[0])].can_demux)
        ]
        if unavailable:
            raise UnavailableFormatError([str(name) for name in unavailable], "input")

        encoders = await self.available_encoders()

        names: list[str] = []
        codec_types: list[str] = []
        for output in command.outputs:
            for flag, args in (("-acodec", output.audio), ("-vcodec", output.video)):
                found = args.find(flag, 1)
                if not found or found[0] == "copy":
                    continue
                name = str(found[0])
                codec_type = _CODEC_FLAGS[flag]
                if name not in encoders or encoders[name].type != codec_type:
                    names.append(name)
                    codec_types.append(codec_type)
        if names:
            raise UnavailableCodecError(names, codec_types)

    async def experimental_flags(self, args: list[str]) -> list[str]:
        """Return ``args`` with ``-strict experimental`` after experimental codecs.

        Codec flags are expected as adjacent ``-acodec <name>`` /
        ``-vcodec <name>`` pairs.
        """
        encoders = await self.available_encoders()
        patched: list[str] = []
        tokens = iter(args)
        for token in tokens:
            patched.append(token)
            if token not in _CODEC_FLAGS:
                continue
            codec = next(tokens, None)
            if codec is None:
                break
            patched.append(codec)
            if codec in encoders and encoders[codec].experimental:
                logger.debug("Enabling experimental codec.", extra={"codec": codec})
                patched.extend(["-strict", "experimental"])
        return patched
