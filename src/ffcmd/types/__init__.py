"""Data types produced by ffcmd."""

from .capabilities import CodecInfo, EncoderInfo, FilterInfo, FormatInfo
from .codec_data import InputCodecData
from .probe_data import ProbeData
from .progress import Progress
from .run_result import RunResult

__all__ = [
    "CodecInfo",
    "EncoderInfo",
    "FilterInfo",
    "FormatInfo",
    "InputCodecData",
    "ProbeData",
    "Progress",
    "RunResult",
]
