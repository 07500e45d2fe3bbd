"""Ready-made presets for ``FFmpegCommand.use_preset``.

A preset is any callable taking the command to configure.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .command import FFmpegCommand


def divx(command: "FFmpegCommand") -> None:
    """DivX-compatible AVI with MP3 audio."""
    (
        command.format("avi")
        .video_bitrate("1024k")
        .video_codec("mpeg4")
        .size("720x?")
        .audio_bitrate("128k")
        .audio_channels(2)
        .audio_codec("libmp3lame")
        .output_options(["-vtag DIVX"])
    )


def flashvideo(command: "FFmpegCommand") -> None:
    """FLV with H.264 video, AAC audio and updated FLV metadata."""
    (
        command.format("flv")
        .flvmeta()
        .size("320x?")
        .video_bitrate("512k")
        .video_codec("libx264")
        .fps(24)
        .audio_bitrate("96k")
        .audio_codec("aac")
        .audio_frequency(22050)
        .audio_channels(2)
    )
