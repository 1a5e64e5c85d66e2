"""Tests for the RTMP ffmpeg command builder."""

from __future__ import annotations

import pytest

from ytlive.streaming.ffmpeg_cmd import build_rtmp_cmd, build_rtmp_url, encoder_candidates

URL = "rtmp://a.rtmp.youtube.com/live2/abcd-efgh"


def _value_after(cmd: list[str], flag: str) -> str:
    return cmd[cmd.index(flag) + 1]


class TestBuildRtmpCmd:
    def test_software_encoder_command(self):
        cmd = build_rtmp_cmd("ffmpeg", "/media/loop.mp4", URL)

        assert cmd[0] == "ffmpeg"
        assert cmd[-1] == URL
        assert cmd.index("-re") < cmd.index("-stream_loop") < cmd.index("-i")
        assert _value_after(cmd, "-stream_loop") == "-1"
        assert _value_after(cmd, "-i") == "/media/loop.mp4"
        assert _value_after(cmd, "-c:v") == "libx264"
        assert _value_after(cmd, "-preset") == "ultrafast"
        assert _value_after(cmd, "-tune") == "zerolatency"
        assert _value_after(cmd, "-b:v") == "3000k"
        assert _value_after(cmd, "-bufsize") == "6000k"
        assert _value_after(cmd, "-r") == "30"
        assert _value_after(cmd, "-g") == "60"
        assert _value_after(cmd, "-pix_fmt") == "yuv420p"

    def test_audio_and_container(self):
        cmd = build_rtmp_cmd("ffmpeg", "/media/loop.mp4", URL)

        assert _value_after(cmd, "-c:a") == "aac"
        assert _value_after(cmd, "-b:a") == "128k"
        assert _value_after(cmd, "-ar") == "44100"
        assert _value_after(cmd, "-ac") == "2"
        assert _value_after(cmd, "-f") == "flv"
        assert cmd.index("-f") > cmd.index("-c:a")

    def test_nvenc_profile(self):
        cmd = build_rtmp_cmd("ffmpeg", "/media/loop.mp4", URL, encoder="h264_nvenc")

        assert _value_after(cmd, "-c:v") == "h264_nvenc"
        assert _value_after(cmd, "-preset") == "p4"
        assert _value_after(cmd, "-rc") == "cbr"
        assert _value_after(cmd, "-b:v") == "4500k"
        assert "-sc_threshold" not in cmd

    def test_no_loop(self):
        cmd = build_rtmp_cmd("ffmpeg", "/media/loop.mp4", URL, loop=False)
        assert "-stream_loop" not in cmd

    def test_unknown_encoder(self):
        with pytest.raises(ValueError):
            build_rtmp_cmd("ffmpeg", "/media/loop.mp4", URL, encoder="vp9")


class TestEncoderCandidates:
    @pytest.mark.parametrize(
        ("platform", "expected"),
        [
            ("win32", ["h264_nvenc", "h264_qsv", "libx264"]),
            ("darwin", ["h264_videotoolbox", "libx264"]),
            ("linux", ["libx264"]),
        ],
    )
    def test_auto_prefers_platform_hardware(self, platform, expected):
        assert encoder_candidates("auto", platform=platform) == expected

    def test_explicit_encoder(self):
        assert encoder_candidates("h264_qsv") == ["h264_qsv"]

    def test_unknown_encoder(self):
        with pytest.raises(ValueError):
            encoder_candidates("h265_magic")


def test_build_rtmp_url_joins_key():
    assert build_rtmp_url("rtmp://a.rtmp.youtube.com/live2/", "abcd-efgh") == URL
