"""Declarative ffmpeg command building and asyncio process orchestration."""

from .arguments import ArgumentList
from .cache import ToolCache, default_cache
from .capabilities import CapabilityProber
from .command import FFmpegCommand, InputSpec, OutputSpec
from .config import FFcmdSettings
from .exceptions import (
    CapabilityError,
    ConfigLoadError,
    ConfigurationError,
    ExecutableNotFoundError,
    ExitCodeError,
    FFcmdError,
    FFmpegError,
    FFProbeError,
    InputStreamError,
    InvalidAspectError,
    InvalidInputError,
    InvalidOutputError,
    InvalidSizeError,
    KilledBySignalError,
    OutputStreamError,
    PostProcessError,
    ProcessTimeoutError,
    SpawnError,
    UnavailableCodecError,
    UnavailableFormatError,
)
from .ffprobe import FFProbe
from .filters import FilterSpec, make_filter_strings
from .logging_config import setup_logging
from .processor import FFmpegProcess
from .resolver import ExecutableResolver
from .types import (
    CodecInfo,
    EncoderInfo,
    FilterInfo,
    FormatInfo,
    InputCodecData,
    ProbeData,
    Progress,
    RunResult,
)

__all__ = [
    "ArgumentList",
    "CapabilityError",
    "CapabilityProber",
    "CodecInfo",
    "ConfigLoadError",
    "ConfigurationError",
    "EncoderInfo",
    "ExecutableNotFoundError",
    "ExecutableResolver",
    "ExitCodeError",
    "FFProbe",
    "FFProbeError",
    "FFcmdError",
    "FFcmdSettings",
    "FFmpegCommand",
    "FFmpegError",
    "FFmpegProcess",
    "FilterInfo",
    "FilterSpec",
    "FormatInfo",
    "InputCodecData",
    "InputSpec",
    "InputStreamError",
    "InvalidAspectError",
    "InvalidInputError",
    "InvalidOutputError",
    "InvalidSizeError",
    "KilledBySignalError",
    "OutputSpec",
    "OutputStreamError",
    "PostProcessError",
    "ProbeData",
    "ProcessTimeoutError",
    "Progress",
    "RunResult",
    "SpawnError",
    "ToolCache",
    "UnavailableCodecError",
    "UnavailableFormatError",
    "default_cache",
    "make_filter_strings",
    "setup_logging",
]
