"""Thin async wrapper around ffprobe.

``FFProbe.probe`` runs ``ffprobe -show_streams -show_format`` on a file, a
URL or a live byte stream and parses its bracketed block output into a
``ProbeData``.
"""

import asyncio
import contextlib
import logging
import os
import re
from typing import Any

from .exceptions import ExecutableNotFoundError, FFProbeError
from .processor import InputStream, is_input_stream, iter_chunks
from .resolver import ExecutableResolver
from .types import ProbeData

logger = logging.getLogger(__name__)

_BLOCK_START_RE = re.compile(r"^\[(stream|format|chapter)\]$", re.IGNORECASE)
_BLOCK_END_RE = re.compile(r"^\[/(stream|format|chapter)\]$", re.IGNORECASE)
_NUMERIC_RE = re.compile(r"^[0-9]+(\.[0-9]+)?$")

_FOLDED_PREFIXES = {"TAG:": "tags", "DISPOSITION:": "disposition"}


def _coerce(key: str, value: str) -> Any:
    if key.startswith("TAG:") or not _NUMERIC_RE.match(value):
        return value
    return float(value) if "." in value else int(value)


def _fold_legacy_keys(block: dict[str, Any]) -> dict[str, Any]:
    folded: dict[str, Any] = {}
    for key, value in block.items():
        for prefix, target in _FOLDED_PREFIXES.items():
            if key.startswith(prefix):
                folded.setdefault(target, {})[key[len(prefix) :]] = value
                break
        else:
            folded[key] = value
    return folded


def parse_ffprobe_output(text: str) -> ProbeData:
    """Parse ffprobe's default (bracketed block) output.

    Lines outside a block and lines without ``=`` are ignored. When several
    ``[FORMAT]`` blocks appear the last one wins.
    """
    data = ProbeData()
    current: dict[str, Any] | None = None
    current_kind = ""

    for raw_line in re.split(r"\r\n|\r|\n", text):
        line = raw_line.strip()
        if not line:
            continue

        if match := _BLOCK_START_RE.match(line):
            current = {}
            current_kind = match.group(1).lower()
        elif _BLOCK_END_RE.match(line):
            if current is not None:
                block = _fold_legacy_keys(current)
                if current_kind == "stream":
                    data.streams.append(block)
                elif current_kind == "chapter":
                    data.chapters.append(block)
                else:
                    data.format = block
            current = None
        elif current is not None and "=" in line:
            key, value = line.split("=", 1)
            current[key] = _coerce(key, value)

    return data


class FFProbe:
    """Run ffprobe to gather stream and container metadata.

    Args:
        resolver: Resolver used to locate ffprobe.
    """

    def __init__(self, resolver: ExecutableResolver | None = None):
        self._resolver = resolver or ExecutableResolver()

    async def _pump_stdin(
        self, stdin: asyncio.StreamWriter, source: InputStream
    ) -> None:
        try:
            async for chunk in iter_chunks(source):
                stdin.write(chunk)
                await stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # ffprobe stops reading as soon as it has seen enough of the stream
            return
        finally:
            stdin.close()
        with contextlib.suppress(BrokenPipeError, ConnectionResetError):
            await stdin.wait_closed()

    async def _run(
        self, args: list[str], stdin_source: InputStream | None = None
    ) -> tuple[int, bytes, bytes]:
        """Execute ffprobe with the given arguments.

        Returns:
            Tuple of (returncode, stdout, stderr).

        Raises:
            ExecutableNotFoundError: When ffprobe cannot be located.
            FFProbeError: When the subprocess fails to execute or the input
                stream fails.
        """
        executable = self._resolver.ffprobe_path()
        if not executable:
            raise ExecutableNotFoundError("ffprobe")

        logger.debug("Running ffprobe.", extra={"ffprobe_args": args})
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.PIPE
                if stdin_source is not None
                else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise FFProbeError(f"Failed to execute ffprobe: {e}") from e

        pump: asyncio.Task[None] | None = None
        try:
            if stdin_source is not None and process.stdin is not None:
                pump = asyncio.create_task(self._pump_stdin(process.stdin, stdin_source))
                stdout_bytes, stderr_bytes = await asyncio.gather(
                    process.stdout.read() if process.stdout else _empty(),
                    process.stderr.read() if process.stderr else _empty(),
                )
                await process.wait()
            else:
                stdout_bytes, stderr_bytes = await process.communicate()
        except asyncio.CancelledError:
            process.kill()
            raise
        finally:
            if pump is not None and not pump.done():
                pump.cancel()
                await asyncio.gather(pump, return_exceptions=True)

        if pump is not None and not pump.cancelled() and (error := pump.exception()):
            raise FFProbeError(f"Input stream error: {error}") from error

        return process.returncode or 0, stdout_bytes or b"", stderr_bytes or b""

    async def probe(
        self,
        source: str | os.PathLike[str] | InputStream,
        options: list[str] | None = None,
    ) -> ProbeData:
        """Probe ``source`` and return its streams, format and chapters.

        Args:
            source: Path, URL or live byte stream.
            options: Extra ffprobe options inserted before the source.

        Raises:
            ExecutableNotFoundError: When ffprobe cannot be located.
            FFProbeError: When ffprobe fails.
        """
        if is_input_stream(source):
            target, stdin_source = "pipe:0", source
        else:
            target, stdin_source = os.fspath(source), None

        rc, stdout, stderr = await self._run(
            ["-show_streams", "-show_format", *(options or []), target],
            stdin_source,
        )
        stderr_text = stderr.decode(errors="replace")
        if rc != 0:
            raise FFProbeError(
                f"ffprobe exited with code {rc}\n{stderr_text}".rstrip(),
                stderr=stderr_text,
            )
        return parse_ffprobe_output(stdout.decode(errors="replace"))


async def _empty() -> bytes:
    return b""
