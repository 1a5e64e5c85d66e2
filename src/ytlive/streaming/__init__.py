"""
Streaming layer - ffmpeg-backed broadcaster pushing media to RTMP ingest.
"""

from .ffmpeg_broadcaster import FFmpegBroadcaster
from .ffmpeg_cmd import build_rtmp_cmd, encoder_candidates

__all__ = ["FFmpegBroadcaster", "build_rtmp_cmd", "encoder_candidates"]
