"""
FFmpeg Command Builder for RTMP live streaming.

Builds the command that loops a media file in real time and pushes it to a
YouTube-style RTMP ingest as FLV. Hardware encoders are preferred where the
platform usually has one; libx264 is the universal fallback.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field


@dataclass(frozen=True)
class EncoderProfile:
    """Video encoder settings for one ffmpeg encoder."""

    codec: str
    bitrate: str
    bufsize: str
    profile: str = "high"
    extra_args: tuple[str, ...] = field(default_factory=tuple)


ENCODER_PROFILES: dict[str, EncoderProfile] = {
    "libx264": EncoderProfile(
        codec="libx264",
        bitrate="3000k",  # lower bitrate for CPU encoding
        bufsize="6000k",
        profile="main",
        extra_args=(
            "-preset", "ultrafast",
            "-tune", "zerolatency",
            "-keyint_min", "60",
            "-sc_threshold", "0",
        ),
    ),
    "h264_nvenc": EncoderProfile(
        codec="h264_nvenc",
        bitrate="4500k",
        bufsize="9000k",
        extra_args=("-preset", "p4", "-tune", "ll", "-rc", "cbr", "-bf", "0"),
    ),
    "h264_qsv": EncoderProfile(
        codec="h264_qsv",
        bitrate="4500k",
        bufsize="9000k",
        extra_args=("-preset", "faster"),
    ),
    "h264_videotoolbox": EncoderProfile(
        codec="h264_videotoolbox",
        bitrate="4500k",
        bufsize="9000k",
    ),
}

SOFTWARE_ENCODER = "libx264"


def encoder_candidates(preference: str = "auto", platform: str | None = None) -> list[str]:
    """
    Return encoder names to try, in order.

    Args:
        preference: "auto" or an explicit key of ENCODER_PROFILES
        platform: sys.platform value (defaults to the running platform)

    Returns:
        List of encoder names; always ends with the software encoder for "auto"
    """
    if preference != "auto":
        if preference not in ENCODER_PROFILES:
            raise ValueError(
                f"unknown video encoder {preference!r} (expected auto or one of {', '.join(ENCODER_PROFILES)})"
            )
        return [preference]

    platform = platform or sys.platform
    if platform.startswith("win"):
        return ["h264_nvenc", "h264_qsv", SOFTWARE_ENCODER]
    if platform == "darwin":
        return ["h264_videotoolbox", SOFTWARE_ENCODER]
    return [SOFTWARE_ENCODER]


def build_rtmp_url(base_url: str, stream_key: str) -> str:
    return f"{base_url.rstrip('/')}/{stream_key}"


def build_rtmp_cmd(
    ffmpeg_path: str,
    media_path: str,
    rtmp_url: str,
    encoder: str = SOFTWARE_ENCODER,
    frame_rate: int = 30,
    gop: int = 60,
    audio_bitrate: str = "128k",
    audio_rate: int = 44100,
    loop: bool = True,
) -> list[str]:
    """
    Build FFmpeg command for pushing a media file to an RTMP ingest.

    Args:
        ffmpeg_path: ffmpeg executable
        media_path: Source media file
        rtmp_url: Full ingest URL including the stream key
        encoder: Key of ENCODER_PROFILES
        frame_rate: Output frame rate
        gop: Group of Pictures size (2 seconds at 30 fps)
        audio_bitrate: AAC bitrate
        audio_rate: Audio sample rate in Hz
        loop: Loop the input forever (-stream_loop -1)

    Returns:
        List of FFmpeg command arguments
    """
    try:
        profile = ENCODER_PROFILES[encoder]
    except KeyError:
        raise ValueError(f"unknown video encoder {encoder!r}") from None

    cmd = [ffmpeg_path, "-nostdin", "-hide_banner", "-loglevel", "warning", "-stats"]

    # Real-time input
    cmd.append("-re")
    if loop:
        cmd.extend(["-stream_loop", "-1"])
    cmd.extend(["-i", media_path])

    # Video encoding
    cmd.extend(["-c:v", profile.codec, *profile.extra_args])
    cmd.extend(
        [
            "-r", str(frame_rate),
            "-g", str(gop),
            "-b:v", profile.bitrate,
            "-maxrate", profile.bitrate,
            "-bufsize", profile.bufsize,
            "-profile:v", profile.profile,
            "-pix_fmt", "yuv420p",
        ]
    )

    # Audio encoding
    cmd.extend(["-c:a", "aac", "-b:a", audio_bitrate, "-ar", str(audio_rate), "-ac", "2"])

    # FLV muxing to the ingest
    cmd.extend(["-f", "flv", "-flvflags", "no_duration_filesize", rtmp_url])
    return cmd
