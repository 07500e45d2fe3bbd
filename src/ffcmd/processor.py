"""Asynchronous ffmpeg process orchestration.

``FFmpegProcess`` spawns ffmpeg, pumps an optional input stream into its
stdin, captures or forwards its stdout, feeds stderr into a ``LineRing`` and
enforces an optional timeout. Process exit and the closing of the output
streams are independent events that may arrive in any order; a
``CompletionLatch`` joins them so that exactly one terminal outcome is
produced, and lets the first failure (stream error, timeout) win over later
ones.
"""

import asyncio
from collections.abc import AsyncIterable, Callable, Iterable
import contextlib
import inspect
import logging
import os
import shlex
import signal
from typing import Any

from .exceptions import (
    ExecutableNotFoundError,
    ExitCodeError,
    FFmpegError,
    InputStreamError,
    KilledBySignalError,
    OutputStreamError,
    PostProcessError,
    ProcessTimeoutError,
    SpawnError,
)
from .resolver import IS_WINDOWS, ExecutableResolver
from .telemetry import LineRing, extract_error
from .types import RunResult

logger = logging.getLogger(__name__)

# Chunk size for reading ffmpeg output and input streams (64KB)
CHUNK_SIZE = 65536

# Grace period for ffmpeg to exit after SIGTERM before it is killed
TERMINATE_GRACE_SECONDS = 5.0

SIGKILL = getattr(signal, "SIGKILL", signal.SIGTERM)

# Anything with a (sync or async) read(n) method, or an (async) iterable of bytes
InputStream = Any
# Anything with a (sync or async) write(bytes) method
OutputSink = Any

SpawnCallback = Callable[[asyncio.subprocess.Process, LineRing, LineRing], None]


def is_input_stream(source: object) -> bool:
    """Return True if ``source`` can be used as a live input stream."""
    if isinstance(source, str | bytes | os.PathLike):
        return False
    return callable(getattr(source, "read", None)) or isinstance(
        source, AsyncIterable | Iterable
    )


def is_output_sink(target: object) -> bool:
    """Return True if ``target`` can be used as a live output sink."""
    if isinstance(target, str | bytes | os.PathLike):
        return False
    return callable(getattr(target, "write", None))


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def iter_chunks(source: InputStream) -> AsyncIterable[bytes]:
    """Yield byte chunks from a readable object or (async) iterable."""
    read = getattr(source, "read", None)
    if callable(read):
        while chunk := await _maybe_await(read(CHUNK_SIZE)):
            yield chunk
    elif isinstance(source, AsyncIterable):
        async for chunk in source:
            yield chunk
    else:
        for chunk in source:
            yield chunk


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class CompletionLatch:
    """Join several completion signals into one outcome, firing once.

    The outcome resolves either when every pending signal has arrived
    (result: None) or as soon as ``fail`` is called (result: that error).
    Later calls are ignored.
    """

    def __init__(self, *signals: str):
        self._pending = set(signals)
        self._outcome: asyncio.Future[BaseException | None] = (
            asyncio.get_running_loop().create_future()
        )

    @property
    def fired(self) -> bool:
        """Whether the outcome has been decided."""
        return self._outcome.done()

    def signal(self, name: str) -> None:
        """Mark ``name`` as arrived; fire once nothing is pending."""
        self._pending.discard(name)
        if not self._pending and not self._outcome.done():
            self._outcome.set_result(None)

    def fail(self, error: BaseException) -> None:
        """Fire immediately with ``error`` unless already fired."""
        if not self._outcome.done():
            self._outcome.set_result(error)

    async def wait(self) -> BaseException | None:
        """Wait for the outcome."""
        return await self._outcome


class FFmpegProcess:
    """A single ffmpeg invocation.

    Args:
        args: ffmpeg arguments (without the executable).
        resolver: Resolver used to locate ffmpeg.
        niceness: Process niceness; applied through ``nice`` except on Windows.
        cwd: Working directory for the process.
        capture_stdout: Keep stdout in a ``LineRing`` and return it.
        stdout_lines: Line limit for the stdout and stderr rings (0 = unlimited).
        timeout: Seconds after which the process is terminated.
        input_stream: Stream piped into ffmpeg's stdin.
        output_sink: Sink receiving ffmpeg's stdout.
        close_sink: Close ``output_sink`` once ffmpeg's stdout ends.
        on_spawn: Called with the process and both rings right after spawning,
            before any output is read.
    """

    def __init__(
        self,
        args: list[str],
        *,
        resolver: ExecutableResolver | None = None,
        niceness: int = 0,
        cwd: str | os.PathLike[str] | None = None,
        capture_stdout: bool = False,
        stdout_lines: int = 100,
        timeout: float | None = None,
        input_stream: InputStream | None = None,
        output_sink: OutputSink | None = None,
        close_sink: bool = True,
        on_spawn: SpawnCallback | None = None,
    ):
        self.args = args
        self._resolver = resolver or ExecutableResolver()
        self._niceness = niceness
        self._cwd = cwd
        self._capture_stdout = capture_stdout
        self._stdout_lines = stdout_lines
        self._timeout = timeout
        self._input_stream = input_stream
        self._output_sink = output_sink
        self._close_sink = close_sink
        self._on_spawn = on_spawn
        self.process: asyncio.subprocess.Process | None = None
        self.stdout_ring = LineRing(stdout_lines)
        self.stderr_ring = LineRing(stdout_lines)

    @property
    def pid(self) -> int | None:
        """PID of the live process, if any."""
        return self.process.pid if self.process else None

    def kill(self, sig: int = SIGKILL) -> None:
        """Send ``sig`` to the process if it is still running."""
        if self.process is None or self.process.returncode is not None:
            return
        # The process may exit between the check and the signal
        with contextlib.suppress(ProcessLookupError):
            self.process.send_signal(sig)

    def _command(self) -> list[str]:
        executable = self._resolver.ffmpeg_path()
        if not executable:
            raise ExecutableNotFoundError("ffmpeg")
        command = [executable, *self.args]
        if self._niceness and not IS_WINDOWS:
            command = ["nice", "-n", str(self._niceness), *command]
        return command

    async def _spawn(self, command: list[str]) -> asyncio.subprocess.Process:
        stdout = (
            asyncio.subprocess.PIPE
            if self._capture_stdout or self._output_sink is not None
            else asyncio.subprocess.DEVNULL
        )
        stdin = (
            asyncio.subprocess.PIPE
            if self._input_stream is not None
            else asyncio.subprocess.DEVNULL
        )
        try:
            return await asyncio.create_subprocess_exec(
                *command,
                stdin=stdin,
                stdout=stdout,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
            )
        except OSError as e:
            raise SpawnError(f"Failed to execute ffmpeg: {e}") from e

    async def run(self) -> RunResult:
        """Run ffmpeg to completion.

        Returns:
            Captured stdout (when requested) and stderr.

        Raises:
            ExecutableNotFoundError: When ffmpeg cannot be located.
            SpawnError: When the process cannot be started.
            ExitCodeError: When ffmpeg exits with a non-zero code.
            KilledBySignalError: When ffmpeg is terminated by a signal.
            InputStreamError: When reading the input stream fails.
            OutputStreamError: When the output sink fails or closes.
            ProcessTimeoutError: When the timeout expires.
        """
        command = self._command()
        logger.debug("Spawning ffmpeg.", extra={"command": shlex.join(command)})
        process = self.process = await self._spawn(command)

        signals = ["exit", "stderr"]
        if process.stdout is not None:
            signals.append("stdout")
        latch = CompletionLatch(*signals)

        if self._on_spawn is not None:
            try:
                self._on_spawn(process, self.stdout_ring, self.stderr_ring)
            except Exception:
                self.kill(SIGKILL)
                await process.wait()
                raise

        assert process.stderr is not None
        tasks = [
            asyncio.create_task(self._wait_exit(process, latch)),
            asyncio.create_task(
                self._read_into(process.stderr, self.stderr_ring, latch, "stderr")
            ),
        ]
        if process.stdout is not None:
            if self._output_sink is not None:
                tasks.append(
                    asyncio.create_task(self._pump_output(process.stdout, latch))
                )
            else:
                tasks.append(
                    asyncio.create_task(
                        self._read_into(
                            process.stdout, self.stdout_ring, latch, "stdout"
                        )
                    )
                )
        if process.stdin is not None:
            tasks.append(asyncio.create_task(self._pump_input(process.stdin, latch)))

        timer: asyncio.TimerHandle | None = None
        if self._timeout:
            timer = asyncio.get_running_loop().call_later(
                self._timeout, self._on_timeout, latch
            )

        try:
            error = await latch.wait()
        finally:
            if timer is not None:
                timer.cancel()
            await self._cleanup(process, tasks)

        stdout = self.stdout_ring.get() if self._capture_stdout else None
        stderr = self.stderr_ring.get()

        if error is None:
            error = self._exit_error(process.returncode, stdout, stderr)
        if error is not None:
            if isinstance(error, FFmpegError):
                if error.stderr is None:
                    error.stderr = stderr
                if error.stdout is None:
                    error.stdout = stdout
            raise error

        return RunResult(stdout=stdout, stderr=stderr)

    def _exit_error(
        self, returncode: int | None, stdout: str | None, stderr: str
    ) -> FFmpegError | None:
        if returncode is None or returncode == 0:
            return None
        if returncode < 0:
            return KilledBySignalError(
                f"ffmpeg was killed with signal {_signal_name(-returncode)}",
                signal=-returncode,
                stdout=stdout,
                stderr=stderr,
            )
        return ExitCodeError(
            f"ffmpeg exited with code {returncode}: {extract_error(stderr)}",
            exit_code=returncode,
            stdout=stdout,
            stderr=stderr,
        )

    async def _cleanup(
        self, process: asyncio.subprocess.Process, tasks: list[asyncio.Task[None]]
    ) -> None:
        if process.returncode is None:
            self.kill(signal.SIGTERM)
            try:
                await asyncio.wait_for(process.wait(), timeout=TERMINATE_GRACE_SECONDS)
            except TimeoutError:
                self.kill(SIGKILL)
                await process.wait()
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _on_timeout(self, latch: CompletionLatch) -> None:
        assert self._timeout is not None
        logger.warning(
            "ffmpeg timed out, terminating.",
            extra={"timeout": self._timeout, "pid": self.pid},
        )
        latch.fail(
            ProcessTimeoutError(
                self._timeout,
                stdout=self.stdout_ring.get() if self._capture_stdout else None,
                stderr=self.stderr_ring.get(),
            )
        )
        self.kill(signal.SIGTERM)

    async def _wait_exit(
        self, process: asyncio.subprocess.Process, latch: CompletionLatch
    ) -> None:
        returncode = await process.wait()
        logger.debug(
            "ffmpeg exited.", extra={"pid": process.pid, "returncode": returncode}
        )
        latch.signal("exit")

    async def _read_into(
        self,
        stream: asyncio.StreamReader,
        ring: LineRing,
        latch: CompletionLatch,
        name: str,
    ) -> None:
        try:
            while chunk := await stream.read(CHUNK_SIZE):
                ring.append(chunk)
            ring.close()
        except Exception as e:
            # Errors raised by line listeners end the run
            self.kill()
            latch.fail(e)
            return
        latch.signal(name)

    async def _pump_input(
        self, stdin: asyncio.StreamWriter, latch: CompletionLatch
    ) -> None:
        chunks = aiter(iter_chunks(self._input_stream))
        while True:
            try:
                chunk = await anext(chunks)
            except StopAsyncIteration:
                break
            except Exception as e:
                error = InputStreamError(f"Input stream error: {e}")
                error.__cause__ = e
                latch.fail(error)
                self.kill(signal.SIGTERM)
                return
            try:
                stdin.write(chunk)
                await stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                # ffmpeg stopped reading; its exit status tells the rest
                logger.debug("ffmpeg closed its input stream.", extra={"pid": self.pid})
                return
        with contextlib.suppress(BrokenPipeError, ConnectionResetError):
            stdin.close()
            await stdin.wait_closed()

    async def _pump_output(
        self, stdout: asyncio.StreamReader, latch: CompletionLatch
    ) -> None:
        sink = self._output_sink
        try:
            while chunk := await stdout.read(CHUNK_SIZE):
                is_closing = getattr(sink, "is_closing", None)
                if callable(is_closing) and is_closing():
                    logger.debug("Output stream closed, killing ffmpeg.")
                    latch.fail(OutputStreamError("Output stream closed"))
                    self.kill(SIGKILL)
                    return
                await _maybe_await(sink.write(chunk))
                drain = getattr(sink, "drain", None)
                if callable(drain):
                    await _maybe_await(drain())
            if self._close_sink:
                close = getattr(sink, "close", None)
                if callable(close):
                    await _maybe_await(close())
                wait_closed = getattr(sink, "wait_closed", None)
                if callable(wait_closed):
                    await _maybe_await(wait_closed())
        except Exception as e:
            logger.debug("Output stream error, killing ffmpeg.", extra={"error": str(e)})
            error = OutputStreamError(f"Output stream error: {e}")
            error.__cause__ = e
            latch.fail(error)
            self.kill(SIGKILL)
            return
        latch.signal("stdout")


async def run_post_processor(tool: str, target: str) -> None:
    """Update FLV metadata of ``target`` in place with flvmeta/flvtool2.

    Raises:
        PostProcessError: When the tool cannot be run or fails.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            tool,
            "-U",
            target,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise PostProcessError(
            f"Error running {tool} on {target}: {e}", target=target
        ) from e

    try:
        _, stderr = await process.communicate()
    except asyncio.CancelledError:
        process.kill()
        raise

    returncode = process.returncode or 0
    if returncode != 0:
        reason = (
            f"received signal {_signal_name(-returncode)}"
            if returncode < 0
            else f"exited with code {returncode}"
        )
        raise PostProcessError(
            f"{tool} {reason} when running on {target}",
            target=target,
            tool_stderr=stderr.decode(errors="replace") if stderr else None,
        )
