"""In-memory stand-ins for ``asyncio.subprocess.Process``.

``FakeProcess`` serves canned stdout/stderr bytes through real
``asyncio.StreamReader`` objects so that the orchestrator reads them exactly
as it would read a live ffmpeg. A "hanging" process only exits once it
receives a signal.
"""

import asyncio
import signal


def _reader(data: bytes, eof: bool) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    if data:
        reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


class FakeStdin:
    """Collects bytes written to the process's stdin."""

    def __init__(self, broken: bool = False):
        self.data = bytearray()
        self.closed = False
        self.broken = broken
        self.closed_event = asyncio.Event()

    def write(self, data: bytes) -> None:
        if self.broken:
            raise BrokenPipeError("stdin closed by ffmpeg")
        self.data.extend(data)

    async def drain(self) -> None:
        await asyncio.sleep(0)

    def close(self) -> None:
        self.closed = True
        self.closed_event.set()

    async def wait_closed(self) -> None:
        return None


class FakeProcess:
    """A fake ffmpeg/ffprobe process.

    Args:
        stdout: Bytes served on stdout.
        stderr: Bytes served on stderr.
        returncode: Exit code reported once the process is awaited.
        hang: Keep running (and keep the output streams open) until signaled.
        with_stdin: Provide a ``FakeStdin``.
        broken_stdin: Make stdin writes fail with ``BrokenPipeError``.
    """

    def __init__(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        returncode: int = 0,
        *,
        hang: bool = False,
        with_stdin: bool = False,
        broken_stdin: bool = False,
        pid: int = 4242,
    ):
        self.pid = pid
        self.returncode: int | None = None
        self.signals: list[int] = []
        self.stdout = _reader(stdout, eof=not hang)
        self.stderr = _reader(stderr, eof=not hang)
        self.stdin = FakeStdin(broken_stdin) if with_stdin or broken_stdin else None
        self._final_returncode = returncode
        self._hang = hang
        self._exited = asyncio.Event()

    def _finish(self, returncode: int) -> None:
        if self.returncode is not None:
            return
        self.returncode = returncode
        for reader in (self.stdout, self.stderr):
            if not reader.at_eof():
                reader.feed_eof()
        self._exited.set()

    async def wait(self) -> int:
        if not self._hang:
            # Like ffmpeg, consume the whole input before exiting
            if self.stdin is not None and not self.stdin.broken:
                await self.stdin.closed_event.wait()
            self._finish(self._final_returncode)
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode

    async def communicate(self) -> tuple[bytes, bytes]:
        stdout = await self.stdout.read()
        stderr = await self.stderr.read()
        await self.wait()
        return stdout, stderr

    def send_signal(self, sig: int) -> None:
        self.signals.append(sig)
        self._finish(-sig)

    def terminate(self) -> None:
        self.send_signal(signal.SIGTERM)

    def kill(self) -> None:
        self.send_signal(signal.SIGKILL)
