"""Input codec information extracted from ffmpeg's stderr banner."""

from dataclasses import dataclass, field


@dataclass
class InputCodecData:
    """Codec data for one ffmpeg input.

    Attributes:
        format: Container format name(s) as reported by ffmpeg.
        duration: Duration string (``HH:MM:SS.xx``) or empty.
        audio: Audio codec name, or empty when the input has no audio.
        audio_details: Comma-separated audio stream parameters.
        video: Video codec name, or empty when the input has no video.
        video_details: Comma-separated video stream parameters.
    """

    format: str
    duration: str = ""
    audio: str = ""
    audio_details: list[str] = field(default_factory=list[str])
    video: str = ""
    video_details: list[str] = field(default_factory=list[str])
