"""Tests for log redaction: stream keys must never reach the logs."""

from __future__ import annotations

import structlog

from ytlive.infra.logging import REDACTED, get_logger, redact_secrets


def test_secret_keys_masked():
    event = redact_secrets(None, None, {"event": "stream_added", "destination_key": "abcd-efgh", "api_token": "t0k"})
    assert event["destination_key"] == REDACTED
    assert event["api_token"] == REDACTED
    assert event["event"] == "stream_added"


def test_rtmp_url_stream_key_masked():
    event = redact_secrets(None, None, {"event": "spawn", "url": "rtmp://a.rtmp.youtube.com/live2/abcd-efgh-ijkl"})
    assert event["url"] == "rtmp://a.rtmp.youtube.com/live2/***"


def test_credentials_in_urls_masked():
    event = redact_secrets(None, None, {"event": "db", "dsn": "postgresql://ytlive:hunter2@db:5432/ytlive"})
    assert "hunter2" not in event["dsn"]
    assert event["dsn"] == "postgresql://ytlive:***@db:5432/ytlive"


def test_nested_values_masked():
    event = redact_secrets(
        None,
        None,
        {"event": "cmd", "args": ["ffmpeg", "-f", "flv", "rtmps://live.example.com/app/secret-key"]},
    )
    assert event["args"][-1] == "rtmps://live.example.com/app/***"
    assert event["args"][:3] == ["ffmpeg", "-f", "flv"]


def test_harmless_fields_untouched():
    event = redact_secrets(None, None, {"event": "stream_started", "stream_id": "s1", "elapsed_seconds": 5})
    assert event == {"event": "stream_started", "stream_id": "s1", "elapsed_seconds": 5}


def test_get_logger_binds_service():
    logger = get_logger("ytlive.tests")
    assert structlog.get_context(logger)["service"] == "ytlive"
