"""Tests for environment-driven settings."""

from __future__ import annotations

from ytlive.infra.settings import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("YTLIVE_RECONCILE_INTERVAL_SECONDS", raising=False)
    settings = Settings(_env_file=None)
    assert settings.reconcile_interval_seconds == 3.0
    assert settings.start_verify_seconds == 2.0
    assert settings.rtmp_base_url == "rtmp://a.rtmp.youtube.com/live2"


def test_env_aliases(monkeypatch):
    monkeypatch.setenv("YTLIVE_RECONCILE_INTERVAL_SECONDS", "1.5")
    monkeypatch.setenv("YTLIVE_VIDEO_ENCODER", "libx264")
    monkeypatch.setenv("YTLIVE_PERSIST", "false")
    settings = Settings(_env_file=None)
    assert settings.reconcile_interval_seconds == 1.5
    assert settings.video_encoder == "libx264"
    assert settings.persist is False


def test_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("YTLIVE_PORT=9001\nYTLIVE_DATABASE_URL=sqlite:///other.db\n")
    settings = Settings(_env_file=str(env_file))
    assert settings.port == 9001
    assert settings.database_url == "sqlite:///other.db"


def test_log_format(monkeypatch):
    monkeypatch.delenv("YTLIVE_LOG_FORMAT", raising=False)
    assert Settings(_env_file=None).log_format == "json"
    monkeypatch.setenv("YTLIVE_LOG_FORMAT", "console")
    assert Settings(_env_file=None).log_format == "console"
