"""Custom exceptions for ffcmd.

This module defines all custom exception classes used throughout the
library, organized by the stage at which they occur: configuring a command,
validating it against the engine's capabilities, resolving executables, and
running the engine.
"""


class FFcmdError(Exception):
    """Base class for library-specific errors."""


class ConfigLoadError(FFcmdError):
    """Raised when a settings file fails to load.

    Attributes:
        config_file: Path to the configuration file that failed to load.
    """

    def __init__(
        self,
        message: str,
        config_file: str | None = None,
    ):
        super().__init__(message)
        self.config_file = config_file


class ConfigurationError(FFcmdError):
    """Raised synchronously when a command is configured incorrectly.

    Configuration errors are always raised before any process is spawned.
    """


class InvalidInputError(ConfigurationError):
    """Raised when an input source is missing or unusable."""


class InvalidOutputError(ConfigurationError):
    """Raised when an output target is missing or unusable."""


class InvalidSizeError(ConfigurationError):
    """Raised when a size specification cannot be parsed.

    Attributes:
        size: The offending size specification.
    """

    def __init__(self, size: str):
        super().__init__(f"Invalid size specified: {size}")
        self.size = size


class InvalidAspectError(ConfigurationError):
    """Raised when an aspect ratio cannot be parsed.

    Attributes:
        aspect: The offending aspect ratio.
    """

    def __init__(self, aspect: str):
        super().__init__(f"Invalid aspect ratio: {aspect}")
        self.aspect = aspect


class CapabilityError(FFcmdError):
    """Base class for requests the installed ffmpeg build cannot satisfy.

    Attributes:
        names: Every offending format or codec name.
    """

    def __init__(self, message: str, names: list[str]):
        super().__init__(message)
        self.names = names


class UnavailableFormatError(CapabilityError):
    """Raised when requested input or output formats are not available.

    Attributes:
        direction: Either "input" or "output".
    """

    def __init__(self, names: list[str], direction: str):
        label = direction.capitalize()
        if len(names) == 1:
            message = f"{label} format {names[0]} is not available"
        else:
            message = f"{label} formats {', '.join(names)} are not available"
        super().__init__(message, names)
        self.direction = direction


class UnavailableCodecError(CapabilityError):
    """Raised when requested output codecs are not available.

    Attributes:
        codec_types: Media type ("audio" or "video") for each name.
    """

    def __init__(self, names: list[str], codec_types: list[str]):
        kinds = set(codec_types)
        label = kinds.pop().capitalize() + " codec" if len(kinds) == 1 else "Codec"
        if len(names) == 1:
            message = f"{label} {names[0]} is not available"
        else:
            message = f"{label}s {', '.join(names)} are not available"
        super().__init__(message, names)
        self.codec_types = codec_types


class ExecutableNotFoundError(FFcmdError):
    """Raised when a required external executable cannot be located.

    Attributes:
        tool: Logical tool name (ffmpeg, ffprobe, flvtool).
    """

    def __init__(self, tool: str):
        super().__init__(f"Cannot find {tool}")
        self.tool = tool


class FFmpegError(FFcmdError):
    """Base class for failures after ffmpeg has been (or was about to be) spawned.

    Attributes:
        stdout: Captured stdout text, if any.
        stderr: Captured stderr text, if any.
    """

    def __init__(
        self,
        message: str,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class SpawnError(FFmpegError):
    """Raised when the ffmpeg process could not be started."""


class ExitCodeError(FFmpegError):
    """Raised when ffmpeg exits with a non-zero code.

    Attributes:
        exit_code: The process exit code.
    """

    def __init__(
        self,
        message: str,
        exit_code: int,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        super().__init__(message, stdout=stdout, stderr=stderr)
        self.exit_code = exit_code


class KilledBySignalError(FFmpegError):
    """Raised when ffmpeg is terminated by a signal.

    Attributes:
        signal: The signal number.
    """

    def __init__(
        self,
        message: str,
        signal: int,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        super().__init__(message, stdout=stdout, stderr=stderr)
        self.signal = signal


class InputStreamError(FFmpegError):
    """Raised when reading the input stream fails while ffmpeg runs."""


class OutputStreamError(FFmpegError):
    """Raised when writing to the output sink fails or the sink closes early."""


class ProcessTimeoutError(FFmpegError):
    """Raised when ffmpeg runs longer than the configured timeout.

    Attributes:
        timeout: The timeout in seconds.
    """

    def __init__(
        self,
        timeout: float,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        super().__init__(
            f"process ran into a timeout ({timeout}s)", stdout=stdout, stderr=stderr
        )
        self.timeout = timeout


class PostProcessError(FFmpegError):
    """Raised when the metadata post-processor fails on an output file.

    Attributes:
        target: The output file being post-processed.
        tool_stderr: Stderr of the post-processor itself. ``stdout`` and
            ``stderr`` hold the output of the ffmpeg run that produced the file.
    """

    def __init__(
        self,
        message: str,
        target: str,
        tool_stderr: str | None = None,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        super().__init__(message, stdout=stdout, stderr=stderr)
        self.target = target
        self.tool_stderr = tool_stderr


class FFProbeError(FFcmdError):
    """Raised when ffprobe fails or its output cannot be used.

    Attributes:
        stderr: Captured stderr text, if any.
    """

    def __init__(self, message: str, stderr: str | None = None):
        super().__init__(message)
        self.stderr = stderr
