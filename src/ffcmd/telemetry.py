"""Line-oriented extraction of structured telemetry from ffmpeg output.

ffmpeg reports everything interesting on stderr as loosely formatted text.
This module provides:

- ``LineRing``: a bounded line buffer fed with raw output chunks, which also
  dispatches each completed line to registered callbacks.
- Progress parsing (``frame=... fps=... time=...`` lines).
- ``CodecDataExtractor``: a small state machine collecting per-input codec
  information from the banner ffmpeg prints before processing starts.
- ``extract_error``: a heuristic picking the likely error message out of stderr.
"""

from collections import deque
from collections.abc import Callable
import codecs
import re

from .types import InputCodecData, Progress

LineCallback = Callable[[str], None]

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")
_PROGRESS_SPACES_RE = re.compile(r"=\s+")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_INPUT_RE = re.compile(r"Input #[0-9]+, ([^ ]+),")
_DURATION_RE = re.compile(r"Duration: ([^,]+)")
_AUDIO_RE = re.compile(r"Audio: (.*)")
_VIDEO_RE = re.compile(r"Video: (.*)")
_OUTPUT_RE = re.compile(r"Output #\d+")
_CODEC_DATA_END_RE = re.compile(r"Stream mapping:|Press (\[q\]|ctrl-c) to stop")


class LineRing:
    """Bounded history of text lines built from arbitrary output chunks.

    Completed lines are kept up to ``max_lines`` (0 keeps everything); the
    last, incomplete line is held separately until more data or ``close()``
    completes it. Callbacks receive every completed line exactly once, and
    late registrations get the retained history replayed first.
    """

    def __init__(self, max_lines: int = 0):
        self._lines: deque[str] = deque(maxlen=max_lines if max_lines > 0 else None)
        self._current: str | None = None
        self._closed = False
        self._callbacks: list[LineCallback] = []
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def closed(self) -> bool:
        """Whether ``close()`` has been called."""
        return self._closed

    def add_callback(self, callback: LineCallback) -> None:
        """Register ``callback`` for every completed line, replaying history."""
        for line in list(self._lines):
            callback(line)
        self._callbacks.append(callback)

    def _emit(self, line: str) -> None:
        for callback in self._callbacks:
            callback(line)
        self._lines.append(line)

    def append(self, chunk: str | bytes) -> None:
        """Append a raw chunk of output; ignored once closed."""
        if self._closed:
            return
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        if not text:
            return

        parts = _NEWLINE_RE.split(text)
        if len(parts) == 1:
            self._current = (self._current or "") + parts[0]
            return

        if self._current is not None:
            self._emit(self._current + parts.pop(0))
        self._current = parts.pop()
        for line in parts:
            self._emit(line)

    def get(self) -> str:
        """Return retained lines and the pending line joined with newlines."""
        lines = list(self._lines)
        if self._current is not None:
            lines.append(self._current)
        return "\n".join(lines)

    def close(self) -> None:
        """Flush the pending line and refuse further appends."""
        if self._closed:
            return
        tail = self._decoder.decode(b"", final=True)
        if tail:
            self._current = (self._current or "") + tail
        if self._current is not None:
            self._emit(self._current)
            self._current = None
        self._closed = True


def timemark_to_seconds(timemark: str | float) -> float:
    """Convert a ``[[hh:]mm:]ss[.xxx]`` timemark into seconds.

    Numbers pass through unchanged.

    Raises:
        ValueError: When a component is not numeric.
    """
    if isinstance(timemark, int | float):
        return timemark
    if ":" not in timemark and "." in timemark:
        return float(timemark)

    parts = timemark.split(":")
    seconds = float(parts.pop())
    if parts:
        seconds += float(parts.pop()) * 60
    if parts:
        seconds += float(parts.pop()) * 3600
    return seconds


def parse_progress_line(line: str) -> dict[str, str] | None:
    """Split a progress line into its ``key=value`` pairs.

    Returns:
        The pairs, or None when any space-delimited token is not ``key=value``.
    """
    line = _PROGRESS_SPACES_RE.sub("=", line).strip()
    progress: dict[str, str] = {}
    for part in line.split(" "):
        pieces = part.split("=", 2)
        if len(pieces) < 2:
            return None
        progress[pieces[0]] = pieces[1]
    return progress


def _leading_int(value: str | None) -> int | None:
    if value is None:
        return None
    match = _LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else None


def _leading_float(value: str) -> float | None:
    match = _LEADING_FLOAT_RE.match(value)
    return float(match.group(1)) if match else None


def extract_progress(line: str, duration: float | None = None) -> Progress | None:
    """Build a ``Progress`` report from a stderr line.

    Args:
        line: A single stderr line.
        duration: Known input duration in seconds, used to compute ``percent``.

    Returns:
        The report, or None when the line is not a progress line.
    """
    progress = parse_progress_line(line)
    if progress is None:
        return None

    bitrate = progress.get("bitrate")
    timemark = progress.get("time")
    percent: float | None = None
    if duration and timemark is not None:
        try:
            percent = timemark_to_seconds(timemark) / duration * 100
        except ValueError:
            percent = None

    return Progress(
        frames=_leading_int(progress.get("frame")),
        current_fps=_leading_int(progress.get("fps")),
        current_kbps=_leading_float(bitrate.replace("kbits/s", "")) if bitrate else 0.0,
        target_size=_leading_int(progress.get("size") or progress.get("Lsize")),
        timemark=timemark,
        percent=percent,
    )


class CodecDataExtractor:
    """Collect input codec data from ffmpeg's stderr banner.

    Feed it stderr lines in order. Once the banner ends (``Stream mapping:`` or
    the "press q to stop" hint), ``feed`` returns the collected inputs a single
    time and the extractor becomes ``done``.
    """

    def __init__(self) -> None:
        self._inputs: list[InputCodecData] = []
        self._in_input = False
        self.done = False

    def feed(self, line: str) -> list[InputCodecData] | None:
        """Consume one line; return the codec data when the banner is complete."""
        if self.done:
            return None

        if match := _INPUT_RE.search(line):
            self._in_input = True
            self._inputs.append(InputCodecData(format=match.group(1)))
        elif self._in_input and (match := _DURATION_RE.search(line)):
            self._inputs[-1].duration = match.group(1)
        elif self._in_input and (match := _AUDIO_RE.search(line)):
            details = match.group(1).split(", ")
            self._inputs[-1].audio = details[0]
            self._inputs[-1].audio_details = details
        elif self._in_input and (match := _VIDEO_RE.search(line)):
            details = match.group(1).split(", ")
            self._inputs[-1].video = details[0]
            self._inputs[-1].video_details = details
        elif _OUTPUT_RE.search(line):
            self._in_input = False
        elif _CODEC_DATA_END_RE.search(line):
            self.done = True
            return self._inputs

        return None


def extract_error(stderr: str) -> str:
    """Return the trailing stderr lines most likely to describe an error.

    Lines starting with a space or ``[`` are informational (stream details,
    per-component log lines) and reset the accumulated message.
    """
    messages: list[str] = []
    for line in _NEWLINE_RE.split(stderr):
        if line[:1] in (" ", "["):
            messages = []
        else:
            messages.append(line)
    return "\n".join(messages)
