"""
FFmpeg Broadcaster - one ffmpeg process per live stream.

Implements the broadcaster protocol on top of local ffmpeg processes pushing
a looped media file to an RTMP ingest. A start is acknowledged only after
the process has survived ``start_verify_seconds``; a process that dies
within that window is reported as a start failure, and the next encoder
candidate (hardware first, libx264 last) is tried.

Each process writes its output to ``<log_dir>/<stream_id>-ffmpeg.log``.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from ..infra.exceptions import BroadcasterError
from ..infra.logging import get_logger
from ..infra.settings import Settings
from .ffmpeg_cmd import build_rtmp_cmd, build_rtmp_url, encoder_candidates

_LOG_TAIL_LINES = 5


@dataclass
class _Broadcast:
    process: subprocess.Popen
    encoder: str
    log_path: Path


def resolve_ffmpeg_path(configured: str = "") -> str:
    """Configured path, then ffmpeg on PATH, then plain "ffmpeg"."""
    if configured:
        return configured
    return shutil.which("ffmpeg") or "ffmpeg"


def _tail(log_path: Path, lines: int = _LOG_TAIL_LINES) -> str:
    try:
        text = log_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""
    return " | ".join(line.strip() for line in text.strip().splitlines()[-lines:] if line.strip())


class FFmpegBroadcaster:
    """Broadcaster spawning ffmpeg subprocesses."""

    def __init__(
        self,
        *,
        ffmpeg_path: str = "",
        rtmp_base_url: str = "rtmp://a.rtmp.youtube.com/live2",
        video_encoder: str = "auto",
        start_verify_seconds: float = 2.0,
        stop_timeout_seconds: float = 3.0,
        log_dir: str | Path = "logs",
    ) -> None:
        self.ffmpeg_path = resolve_ffmpeg_path(ffmpeg_path)
        self.rtmp_base_url = rtmp_base_url
        self.encoders = encoder_candidates(video_encoder)
        self.start_verify_seconds = start_verify_seconds
        self.stop_timeout_seconds = stop_timeout_seconds
        self.log_dir = Path(log_dir)
        self._broadcasts: dict[str, _Broadcast] = {}
        self._lock = threading.Lock()
        self._log = get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> FFmpegBroadcaster:
        return cls(
            ffmpeg_path=settings.ffmpeg_path,
            rtmp_base_url=settings.rtmp_base_url,
            video_encoder=settings.video_encoder,
            start_verify_seconds=settings.start_verify_seconds,
            stop_timeout_seconds=settings.stop_timeout_seconds,
            log_dir=settings.ffmpeg_log_dir,
        )

    # ------------------------------------------------------------------
    # Broadcaster protocol
    # ------------------------------------------------------------------

    def request_start(self, stream_id: str, destination_key: str, media_path: str) -> None:
        if not Path(media_path).is_file():
            raise BroadcasterError(f"Video file not found: {media_path}")
        if self.is_active(stream_id):
            raise BroadcasterError(f"ffmpeg is already running for stream {stream_id}")

        self.log_dir.mkdir(parents=True, exist_ok=True)
        log_path = self.log_dir / f"{stream_id}-ffmpeg.log"
        url = build_rtmp_url(self.rtmp_base_url, destination_key)

        last_error = "ffmpeg exited during startup"
        for encoder in self.encoders:
            cmd = build_rtmp_cmd(self.ffmpeg_path, media_path, url, encoder=encoder)
            try:
                process = self._spawn(cmd, log_path)
            except OSError as exc:
                # Missing or unlaunchable binary; another encoder will not help
                raise BroadcasterError(f"failed to launch ffmpeg: {exc}") from exc

            if self._survives_startup(process):
                with self._lock:
                    self._broadcasts[stream_id] = _Broadcast(process, encoder, log_path)
                self._log.info("ffmpeg_started", stream_id=stream_id, encoder=encoder, pid=process.pid)
                return

            last_error = f"ffmpeg exited with code {process.returncode}"
            detail = _tail(log_path)
            if detail:
                last_error = f"{last_error}: {detail}"
            self._log.warning("ffmpeg_encoder_failed", stream_id=stream_id, encoder=encoder, error=last_error)

        raise BroadcasterError(last_error)

    def request_stop(self, stream_id: str) -> None:
        """Terminate the stream's ffmpeg process, killing it after ``stop_timeout_seconds``.

        Stopping a stream with no process is a no-op.
        """
        with self._lock:
            broadcast = self._broadcasts.pop(stream_id, None)
        if broadcast is None:
            return

        process = broadcast.process
        try:
            if process.poll() is None:
                process.terminate()
                try:
                    process.wait(timeout=self.stop_timeout_seconds)
                except subprocess.TimeoutExpired:
                    self._log.warning("ffmpeg_kill", stream_id=stream_id, pid=process.pid)
                    process.kill()
                    process.wait(timeout=self.stop_timeout_seconds)
        except (OSError, subprocess.TimeoutExpired) as exc:
            with self._lock:
                self._broadcasts[stream_id] = broadcast
            raise BroadcasterError(f"failed to stop ffmpeg: {exc}") from exc

        self._log.info("ffmpeg_stopped", stream_id=stream_id, returncode=process.returncode)

    def is_active(self, stream_id: str) -> bool:
        """Poll the stream's process; a process that has exited is forgotten."""
        with self._lock:
            broadcast = self._broadcasts.get(stream_id)
        if broadcast is None:
            return False
        returncode = broadcast.process.poll()
        if returncode is None:
            return True
        with self._lock:
            if self._broadcasts.get(stream_id) is broadcast:
                del self._broadcasts[stream_id]
        self._log.warning("ffmpeg_exited", stream_id=stream_id, returncode=returncode)
        return False

    def shutdown(self) -> None:
        """Kill every remaining ffmpeg process."""
        with self._lock:
            broadcasts = list(self._broadcasts.items())
            self._broadcasts.clear()
        for stream_id, broadcast in broadcasts:
            if broadcast.process.poll() is not None:
                continue
            try:
                broadcast.process.kill()
                broadcast.process.wait(timeout=self.stop_timeout_seconds)
            except (OSError, subprocess.TimeoutExpired):
                self._log.warning("ffmpeg_orphaned", stream_id=stream_id, pid=broadcast.process.pid)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _spawn(self, cmd: list[str], log_path: Path) -> subprocess.Popen:
        kwargs: dict[str, object] = {}
        if sys.platform.startswith("win"):
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW
        with open(log_path, "w", encoding="utf-8") as log_file:
            return subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                **kwargs,
            )

    def _survives_startup(self, process: subprocess.Popen) -> bool:
        if self.start_verify_seconds > 0:
            time.sleep(self.start_verify_seconds)
        return process.poll() is None
