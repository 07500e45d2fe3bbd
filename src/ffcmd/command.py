"""Fluent ffmpeg command model.

``FFmpegCommand`` collects inputs, outputs, filters and options through
chainable mutators, assembles them into a correctly ordered ffmpeg argument
vector and runs it.

Example:
    command = (
        FFmpegCommand("input.avi")
        .audio_codec("aac")
        .video_codec("libx264")
        .size("640x?")
        .on("progress", print)
    )
    await command.save("output.mp4")

Mutators that concern inputs apply to the most recently added input;
mutators that concern outputs apply to the most recently added output. Output
options set before the first ``output()`` call apply to that first output.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass, field
import logging
import os
import re
from typing import Any, Literal
import uuid

from .arguments import ArgumentList, Token, format_token
from .cache import ToolCache, default_cache
from .capabilities import CapabilityProber
from .config import FFcmdSettings
from .exceptions import (
    ConfigurationError,
    ExecutableNotFoundError,
    FFcmdError,
    InvalidInputError,
    InvalidOutputError,
    PostProcessError,
)
from .ffprobe import FFProbe
from .filters import FilterLike, make_filter_strings, stream_label
from .logging_config import run_id_context
from .processor import (
    SIGKILL,
    FFmpegProcess,
    InputStream,
    OutputSink,
    is_input_stream,
    is_output_sink,
    run_post_processor,
)
from .resolver import IS_WINDOWS, ExecutableResolver
from .sizing import SizeData, parse_aspect, size_filters
from .telemetry import CodecDataExtractor, LineRing, extract_progress
from .types import ProbeData, RunResult

logger = logging.getLogger(__name__)

EventName = Literal["start", "stderr", "codec_data", "progress"]
EVENTS: tuple[str, ...] = ("start", "stderr", "codec_data", "progress")

_PROTOCOL_RE = re.compile(r"^([a-z]{2,}):", re.IGNORECASE)
_BITRATE_SUFFIX_RE = re.compile(r"k?$")


def _is_file_target(path: str) -> bool:
    protocol = _PROTOCOL_RE.match(path)
    return protocol is None or protocol.group(1).lower() == "file"


def _with_kbit_suffix(bitrate: str | int) -> str:
    return _BITRATE_SUFFIX_RE.sub("k", str(bitrate), count=1)


def _split_options(options: tuple[Token | Sequence[Token], ...]) -> list[Token]:
    """Normalize option arguments the way ffmpeg users tend to write them.

    A single argument (a token or a list of tokens) has every ``"-opt value"``
    string split in two; several arguments are taken verbatim.
    """
    if len(options) != 1:
        return list(options)  # type: ignore[arg-type]

    single = options[0]
    tokens = [single] if isinstance(single, str | int | float) else list(single)
    split: list[Token] = []
    for token in tokens:
        parts = str(token).split(" ")
        if len(parts) == 2:
            split.extend(parts)
        else:
            split.append(token)
    return split


def _filters_from(filters: tuple[FilterLike | Sequence[FilterLike], ...]) -> list[str]:
    if len(filters) == 1 and isinstance(filters[0], list | tuple):
        return make_filter_strings(filters[0])
    return make_filter_strings(filters)  # type: ignore[arg-type]


@dataclass
class InputSpec:
    """One ffmpeg input.

    Attributes:
        source: File path, URL, or live byte stream.
        is_file: Whether the source is a local file.
        is_stream: Whether the source is a live stream piped to stdin.
        options: Options placed before this input's ``-i``.
    """

    source: str | InputStream
    is_file: bool = False
    is_stream: bool = False
    options: ArgumentList = field(default_factory=ArgumentList)

    def clone(self) -> "InputSpec":
        return InputSpec(self.source, self.is_file, self.is_stream, self.options.clone())


@dataclass
class OutputSpec:
    """One ffmpeg output.

    Attributes:
        target: File path, URL, live sink, or None while still a placeholder.
        is_file: Whether the target is a local file.
        pipe_end: Close the sink once ffmpeg's stdout ends.
        flvmeta: Update FLV metadata once processing succeeds.
        audio: Audio options.
        audio_filters: Audio filter strings.
        video: Video options.
        video_filters: Video filter strings.
        size_filters: Filter strings derived from ``size_data``.
        options: Generic output options.
        size_data: Requested size, aspect and padding.
    """

    target: str | OutputSink | None = None
    is_file: bool = False
    pipe_end: bool = True
    flvmeta: bool = False
    audio: ArgumentList = field(default_factory=ArgumentList)
    audio_filters: ArgumentList = field(default_factory=ArgumentList)
    video: ArgumentList = field(default_factory=ArgumentList)
    video_filters: ArgumentList = field(default_factory=ArgumentList)
    size_filters: ArgumentList = field(default_factory=ArgumentList)
    options: ArgumentList = field(default_factory=ArgumentList)
    size_data: SizeData = field(default_factory=SizeData)

    @property
    def is_sink(self) -> bool:
        return self.target is not None and not isinstance(self.target, str)

    def update_size_filters(self) -> None:
        """Re-derive ``size_filters`` from ``size_data``."""
        filters = make_filter_strings(size_filters(self.size_data))
        self.size_filters.clear()
        self.size_filters.append(filters)  # type: ignore[arg-type]

    def clone(self) -> "OutputSpec":
        return OutputSpec(
            target=self.target,
            is_file=self.is_file,
            pipe_end=self.pipe_end,
            flvmeta=self.flvmeta,
            audio=self.audio.clone(),
            audio_filters=self.audio_filters.clone(),
            video=self.video.clone(),
            video_filters=self.video_filters.clone(),
            size_filters=self.size_filters.clone(),
            options=self.options.clone(),
            size_data=SizeData(
                self.size_data.size, self.size_data.aspect, self.size_data.pad
            ),
        )


class _QueueSink:
    """Output sink feeding ffmpeg's stdout into an asyncio queue."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[bytes | None] = asyncio.Queue()

    def write(self, chunk: bytes) -> None:
        self.queue.put_nowait(chunk)


class FFmpegCommand:
    """A declarative ffmpeg invocation.

    Args:
        source: Optional first input.
        settings: Settings providing executable overrides and defaults.
        cache: Cache for executable paths and capabilities.
        niceness: Process niceness; defaults to ``settings.niceness``.
        timeout: Processing timeout in seconds; defaults to ``settings.timeout``.
        stdout_lines: Output lines kept per stream; defaults to
            ``settings.stdout_lines``.
        cwd: Working directory for ffmpeg.
    """

    def __init__(
        self,
        source: str | os.PathLike[str] | InputStream | None = None,
        *,
        settings: FFcmdSettings | None = None,
        cache: ToolCache | None = None,
        niceness: int | None = None,
        timeout: float | None = None,
        stdout_lines: int | None = None,
        cwd: str | os.PathLike[str] | None = None,
    ):
        self.settings = settings or FFcmdSettings()
        self.cache = cache if cache is not None else default_cache
        self.resolver = ExecutableResolver(self.settings, self.cache)
        self.prober = CapabilityProber(self.resolver, self.cache)
        self.ffprobe = FFProbe(self.resolver)

        self.niceness = niceness if niceness is not None else self.settings.niceness
        self.timeout = timeout if timeout is not None else self.settings.timeout
        self.stdout_lines = (
            stdout_lines if stdout_lines is not None else self.settings.stdout_lines
        )
        self.cwd = cwd

        self.inputs: list[InputSpec] = []
        self.outputs: list[OutputSpec] = [OutputSpec()]
        self.global_args = ArgumentList()
        self.complex_filters = ArgumentList()
        self._current_input: InputSpec | None = None
        self._current_output = self.outputs[0]

        self._listeners: dict[str, list[Callable[..., Any]]] = {name: [] for name in EVENTS}
        self._running = False
        self._process: FFmpegProcess | None = None

        if source is not None:
            self.input(source)

    # Events

    def on(self, event: EventName, callback: Callable[..., Any]) -> "FFmpegCommand":
        """Register ``callback`` for ``event``.

        Events:
            start: Called with the full command line right after spawning.
            stderr: Called with every stderr line.
            codec_data: Called once with a list of ``InputCodecData``.
            progress: Called with a ``Progress`` for every progress line.

        Raises:
            ValueError: For an unknown event name.
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        self._listeners[event].append(callback)
        return self

    def _emit(self, event: str, *args: Any) -> None:
        for callback in self._listeners[event]:
            callback(*args)

    # Inputs

    def input(self, source: str | os.PathLike[str] | InputStream) -> "FFmpegCommand":
        """Add an input: a file path, a URL or a live byte stream.

        Raises:
            InvalidInputError: For an unusable source or a second stream input.
        """
        if isinstance(source, os.PathLike):
            source = os.fspath(source)

        if isinstance(source, str):
            spec = InputSpec(source, is_file=_is_file_target(source))
        elif is_input_stream(source):
            if any(existing.is_stream for existing in self.inputs):
                raise InvalidInputError("Only one input stream is supported")
            spec = InputSpec(source, is_stream=True)
        else:
            raise InvalidInputError("Invalid input")

        self.inputs.append(spec)
        self._current_input = spec
        return self

    def _input(self) -> InputSpec:
        if self._current_input is None:
            raise InvalidInputError("No input specified")
        return self._current_input

    def input_format(self, fmt: str) -> "FFmpegCommand":
        """Force the format of the current input."""
        self._input().options.append("-f", fmt)
        return self

    def input_fps(self, fps: float) -> "FFmpegCommand":
        """Force the frame rate of the current input."""
        self._input().options.append("-r", fps)
        return self

    def native_framerate(self) -> "FFmpegCommand":
        """Read the current input at its native frame rate."""
        self._input().options.append("-re")
        return self

    def seek_input(self, seek: str | float) -> "FFmpegCommand":
        """Seek the current input before decoding (fast, keyframe precision)."""
        self._input().options.append("-ss", seek)
        return self

    def loop(self, duration: str | float | None = None) -> "FFmpegCommand":
        """Loop the current input (an image), optionally for ``duration``."""
        self._input().options.append("-loop", "1")
        if duration is not None:
            self.duration(duration)
        return self

    def input_options(self, *options: Token | Sequence[Token]) -> "FFmpegCommand":
        """Add custom options to the current input."""
        self._input().options.append(_split_options(options))
        return self

    # Outputs

    def output(
        self, target: str | os.PathLike[str] | OutputSink | None = None, pipe_end: bool = True
    ) -> "FFmpegCommand":
        """Add an output: a file path, a URL or a writable sink.

        The first call fills in the output created with the command.

        Args:
            target: Output target.
            pipe_end: Close a sink target once ffmpeg's stdout ends.

        Raises:
            InvalidOutputError: For a missing or unusable target, or a second
                sink output.
        """
        if target is None:
            raise InvalidOutputError("Invalid output")
        if isinstance(target, os.PathLike):
            target = os.fspath(target)

        if isinstance(target, str):
            is_file = _is_file_target(target)
        elif is_output_sink(target):
            if any(existing.is_sink for existing in self.outputs):
                raise InvalidOutputError("Only one output stream is supported")
            is_file = False
        else:
            raise InvalidOutputError("Invalid output")

        if self._current_output.target is None:
            self._current_output.target = target
            self._current_output.is_file = is_file
            self._current_output.pipe_end = pipe_end
        else:
            self._current_output = OutputSpec(target, is_file=is_file, pipe_end=pipe_end)
            self.outputs.append(self._current_output)
        return self

    def seek(self, seek: str | float) -> "FFmpegCommand":
        """Seek the current output (slow, frame precision)."""
        self._current_output.options.append("-ss", seek)
        return self

    def duration(self, duration: str | float) -> "FFmpegCommand":
        """Limit the duration of the current output."""
        self._current_output.options.append("-t", duration)
        return self

    def format(self, fmt: str) -> "FFmpegCommand":
        """Force the format of the current output."""
        self._current_output.options.append("-f", fmt)
        return self

    def map(self, spec: str) -> "FFmpegCommand":
        """Map a stream (or complex filter output label) to the current output."""
        self._current_output.options.append("-map", stream_label(spec))
        return self

    def flvmeta(self) -> "FFmpegCommand":
        """Update FLV metadata of the current output once processing succeeds."""
        self._current_output.flvmeta = True
        return self

    def output_options(self, *options: Token | Sequence[Token]) -> "FFmpegCommand":
        """Add custom options to the current output."""
        self._current_output.options.append(_split_options(options))
        return self

    # Audio

    def no_audio(self) -> "FFmpegCommand":
        """Drop audio from the current output, discarding audio settings."""
        self._current_output.audio.clear()
        self._current_output.audio_filters.clear()
        self._current_output.audio.append("-an")
        return self

    def audio_codec(self, codec: str) -> "FFmpegCommand":
        self._current_output.audio.append("-acodec", codec)
        return self

    def audio_bitrate(self, bitrate: str | int) -> "FFmpegCommand":
        """Set the audio bitrate in kbit/s (``128`` and ``"128k"`` are equivalent)."""
        self._current_output.audio.append("-b:a", _with_kbit_suffix(bitrate))
        return self

    def audio_channels(self, channels: int) -> "FFmpegCommand":
        self._current_output.audio.append("-ac", channels)
        return self

    def audio_frequency(self, frequency: int) -> "FFmpegCommand":
        self._current_output.audio.append("-ar", frequency)
        return self

    def audio_quality(self, quality: int | float) -> "FFmpegCommand":
        self._current_output.audio.append("-aq", quality)
        return self

    def audio_filters(self, *filters: FilterLike | Sequence[FilterLike]) -> "FFmpegCommand":
        """Append audio filters (strings, ``FilterSpec``s or mappings)."""
        self._current_output.audio_filters.append(_filters_from(filters))  # type: ignore[arg-type]
        return self

    # Video

    def no_video(self) -> "FFmpegCommand":
        """Drop video from the current output, discarding video settings."""
        self._current_output.video.clear()
        self._current_output.video_filters.clear()
        self._current_output.video.append("-vn")
        return self

    def video_codec(self, codec: str) -> "FFmpegCommand":
        self._current_output.video.append("-vcodec", codec)
        return self

    def video_bitrate(self, bitrate: str | int, constant: bool = False) -> "FFmpegCommand":
        """Set the video bitrate in kbit/s.

        Args:
            bitrate: Bitrate, with or without a ``k`` suffix.
            constant: Enforce a constant bitrate through maxrate/minrate/bufsize.
        """
        rate = _with_kbit_suffix(bitrate)
        self._current_output.video.append("-b:v", rate)
        if constant:
            self._current_output.video.append(
                "-maxrate", rate, "-minrate", rate, "-bufsize", "3M"
            )
        return self

    def video_filters(self, *filters: FilterLike | Sequence[FilterLike]) -> "FFmpegCommand":
        """Append video filters (strings, ``FilterSpec``s or mappings)."""
        self._current_output.video_filters.append(_filters_from(filters))  # type: ignore[arg-type]
        return self

    def fps(self, fps: float) -> "FFmpegCommand":
        self._current_output.video.append("-r", fps)
        return self

    def frames(self, frames: int) -> "FFmpegCommand":
        """Stop after encoding ``frames`` video frames."""
        self._current_output.video.append("-vframes", frames)
        return self

    # Size

    def size(self, size: str) -> "FFmpegCommand":
        """Resize the current output: ``640x480``, ``640x?``, ``?x480`` or ``50%``.

        Raises:
            InvalidSizeError: When ``size`` cannot be parsed.
        """
        self._current_output.size_data.size = size
        self._current_output.update_size_filters()
        return self

    def aspect(self, aspect: str | float) -> "FFmpegCommand":
        """Set the output aspect ratio as a number or ``W:H``.

        Raises:
            InvalidAspectError: When ``aspect`` cannot be parsed.
        """
        self._current_output.size_data.aspect = parse_aspect(aspect)
        self._current_output.update_size_filters()
        return self

    def autopad(self, pad: bool | str = True, color: str = "black") -> "FFmpegCommand":
        """Pad the output to the requested size and aspect instead of stretching.

        ``autopad("white")`` is shorthand for ``autopad(True, "white")``.
        """
        if isinstance(pad, str):
            pad, color = True, pad
        self._current_output.size_data.pad = (color or "black") if pad else False
        self._current_output.update_size_filters()
        return self

    def keep_dar(self) -> "FFmpegCommand":
        """Keep the display aspect ratio by resampling to square pixels."""
        return self.video_filters(
            [
                {
                    "filter": "scale",
                    "options": {
                        "w": "if(gt(sar,1),iw*sar,iw)",
                        "h": "if(lt(sar,1),ih/sar,ih)",
                    },
                },
                {"filter": "setsar", "options": "1"},
            ]
        )

    # Global

    def global_options(self, *options: Token | Sequence[Token]) -> "FFmpegCommand":
        """Add options placed after the inputs and before everything else."""
        self.global_args.append(_split_options(options))
        return self

    def complex_filter(
        self,
        spec: FilterLike | Sequence[FilterLike],
        map: str | Sequence[str] | None = None,
    ) -> "FFmpegCommand":
        """Set the complex filter graph, replacing any previous one.

        Args:
            spec: One filter or a list of filters, joined with ``;``.
            map: Output label(s) to map to the output.
        """
        specs = list(spec) if isinstance(spec, list | tuple) else [spec]
        self.complex_filters.clear()
        self.complex_filters.append(
            "-filter_complex", ";".join(make_filter_strings(specs))  # type: ignore[arg-type]
        )
        labels = [map] if isinstance(map, str) else list(map or [])
        for label in labels:
            self.complex_filters.append("-map", stream_label(label))
        return self

    def use_preset(self, preset: Callable[["FFmpegCommand"], Any]) -> "FFmpegCommand":
        """Apply a preset: a callable configuring this command."""
        preset(self)
        return self

    # Assembly

    def build_arguments(self) -> list[str]:
        """Assemble the ffmpeg argument vector (without the executable).

        Raises:
            InvalidSizeError: When an output's size cannot be parsed.
        """
        args: list[Token] = []
        for spec in self.inputs:
            args.extend(spec.options)
            args.extend(["-i", "pipe:0" if spec.is_stream else spec.source])

        args.extend(self.global_args)
        if any(output.is_file for output in self.outputs):
            args.append("-y")
        args.extend(self.complex_filters)

        for output in self.outputs:
            output.update_size_filters()
            args.extend(output.audio)
            if output.audio_filters:
                args.extend(["-filter:a", ",".join(map(str, output.audio_filters))])
            args.extend(output.video)
            video_filters = [*output.video_filters, *output.size_filters]
            if video_filters:
                args.extend(["-filter:v", ",".join(map(str, video_filters))])
            args.extend(output.options)
            if isinstance(output.target, str):
                args.append(output.target)
            elif output.target is not None:
                args.append("pipe:1")

        return [format_token(token) for token in args]

    def clone(self) -> "FFmpegCommand":
        """Return an independent copy without listeners or a live process.

        Stream inputs and sink outputs are shared, not copied.
        """
        copy = FFmpegCommand(
            settings=self.settings,
            cache=self.cache,
            niceness=self.niceness,
            timeout=self.timeout,
            stdout_lines=self.stdout_lines,
            cwd=self.cwd,
        )
        copy.resolver = self.resolver
        copy.prober = self.prober
        copy.ffprobe = self.ffprobe
        copy.inputs = [spec.clone() for spec in self.inputs]
        copy.outputs = [spec.clone() for spec in self.outputs]
        copy.global_args = self.global_args.clone()
        copy.complex_filters = self.complex_filters.clone()
        if self._current_input is not None:
            copy._current_input = copy.inputs[self.inputs.index(self._current_input)]
        copy._current_output = copy.outputs[self.outputs.index(self._current_output)]
        return copy

    # Processing

    def _post_processor(self) -> str | None:
        """Resolve flvmeta/flvtool2 when an output needs FLV metadata updates."""
        needed = False
        for output in self.outputs:
            if output.flvmeta and not output.is_file:
                logger.warning(
                    "Updating FLV metadata is only supported for files.",
                    extra={"target": str(output.target)},
                )
                output.flvmeta = False
            needed = needed or output.flvmeta
        if not needed:
            return None
        tool = self.resolver.flvtool_path()
        if not tool:
            raise ExecutableNotFoundError("flvtool")
        return tool

    async def _probe_duration(self) -> float | None:
        try:
            return (await self.probe(0)).duration
        except FFcmdError as e:
            logger.debug("Could not read input duration.", extra={"error": str(e)})
            return None

    def _attach_telemetry(
        self, args: list[str], duration: float | None
    ) -> Callable[[asyncio.subprocess.Process, LineRing, LineRing], None]:
        def on_spawn(
            process: asyncio.subprocess.Process, stdout: LineRing, stderr: LineRing
        ) -> None:
            self._emit("start", "ffmpeg " + " ".join(args))

            if self._listeners["stderr"]:
                stderr.add_callback(lambda line: self._emit("stderr", line))

            if self._listeners["codec_data"]:
                extractor = CodecDataExtractor()

                def on_codec_line(line: str) -> None:
                    if (inputs := extractor.feed(line)) is not None:
                        self._emit("codec_data", inputs)

                stderr.add_callback(on_codec_line)

            if self._listeners["progress"]:

                def on_progress_line(line: str) -> None:
                    if (progress := extract_progress(line, duration)) is not None:
                        self._emit("progress", progress)

                stderr.add_callback(on_progress_line)

        return on_spawn

    async def run(self) -> RunResult:
        """Run ffmpeg with the configured inputs and outputs.

        Before spawning, requested formats and codecs are validated against
        the installed ffmpeg build. On success, outputs flagged with
        ``flvmeta()`` are post-processed.

        Returns:
            Captured stdout (unless an output is a sink) and stderr.

        Raises:
            ConfigurationError: When already running or misconfigured.
            CapabilityError: When a requested format or codec is unavailable.
            ExecutableNotFoundError: When a required executable is missing.
            FFmpegError: When processing fails.
        """
        if self._running:
            raise ConfigurationError("ffmpeg is already running for this command")
        if not any(output.target is not None for output in self.outputs):
            raise InvalidOutputError("No output specified")

        self._running = True
        try:
            with run_id_context(uuid.uuid4().hex[:8]):
                return await self._run()
        finally:
            self._running = False

    async def _run(self) -> RunResult:
        await self.prober.check(self)
        flvtool = self._post_processor()
        args = await self.prober.experimental_flags(self.build_arguments())

        # Input duration is read once per run, before spawning
        duration: float | None = None
        if self._listeners["progress"] and self.inputs and not self.inputs[0].is_stream:
            duration = await self._probe_duration()

        input_stream = next((spec.source for spec in self.inputs if spec.is_stream), None)
        sink = next((output for output in self.outputs if output.is_sink), None)

        self._process = FFmpegProcess(
            args,
            resolver=self.resolver,
            niceness=self.niceness,
            cwd=self.cwd,
            capture_stdout=sink is None,
            stdout_lines=self.stdout_lines,
            timeout=self.timeout,
            input_stream=input_stream,
            output_sink=sink.target if sink is not None else None,
            close_sink=sink.pipe_end if sink is not None else True,
            on_spawn=self._attach_telemetry(args, duration),
        )
        logger.info("Running ffmpeg.", extra={"outputs": len(self.outputs)})
        try:
            result = await self._process.run()
        finally:
            self._process = None

        if flvtool:
            for output in self.outputs:
                if output.flvmeta:
                    try:
                        await run_post_processor(flvtool, str(output.target))
                    except PostProcessError as e:
                        e.stdout, e.stderr = result.stdout, result.stderr
                        raise

        logger.info("ffmpeg finished.")
        return result

    async def save(self, target: str | os.PathLike[str]) -> RunResult:
        """Add ``target`` as an output and run."""
        self.output(target)
        return await self.run()

    async def stream(self) -> AsyncIterator[bytes]:
        """Run with stdout as a new output and yield its chunks.

        Leaving the iteration early stops ffmpeg. Processing errors are raised
        once the buffered output has been consumed.
        """
        sink = _QueueSink()
        self.output(sink)
        task = asyncio.create_task(self.run())
        task.add_done_callback(lambda _: sink.queue.put_nowait(None))
        try:
            while (chunk := await sink.queue.get()) is not None:
                yield chunk
            await task
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

    def kill(self, sig: int = SIGKILL) -> "FFmpegCommand":
        """Send ``sig`` to the running ffmpeg process, if any."""
        if self._process is None or self._process.process is None:
            logger.warning("No running ffmpeg process, cannot send signal.")
        else:
            self._process.kill(sig)
        return self

    async def renice(self, niceness: int = 0) -> None:
        """Change the niceness of current and future ffmpeg processes.

        Values are clamped to [-20, 20]. Ignored on Windows.
        """
        if IS_WINDOWS:
            return
        if not -20 <= niceness <= 20:
            logger.warning(
                "Invalid niceness value, must be between -20 and 20.",
                extra={"niceness": niceness},
            )
        niceness = min(20, max(-20, niceness))
        self.niceness = niceness

        pid = self._process.pid if self._process is not None else None
        if pid is None:
            return

        try:
            process = await asyncio.create_subprocess_exec(
                "renice",
                str(niceness),
                "-p",
                str(pid),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("Could not renice process.", extra={"pid": pid, "error": str(e)})
            return

        returncode = await process.wait()
        if returncode != 0:
            logger.warning(
                "Could not renice process.", extra={"pid": pid, "returncode": returncode}
            )
        else:
            logger.info(
                "Reniced ffmpeg process.", extra={"pid": pid, "niceness": niceness}
            )

    async def probe(
        self, input_index: int | None = None, options: list[str] | None = None
    ) -> ProbeData:
        """Run ffprobe on an input (by default the current one).

        Raises:
            InvalidInputError: When there is no such input.
            FFProbeError: When ffprobe fails.
        """
        if input_index is None:
            spec = self._input()
        elif 0 <= input_index < len(self.inputs):
            spec = self.inputs[input_index]
        else:
            raise InvalidInputError(f"No input with index {input_index}")
        return await self.ffprobe.probe(spec.source, options)
