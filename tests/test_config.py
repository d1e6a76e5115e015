"""Unit tests for settings."""
from cultural_events.config import Settings


def test_session_secret_is_random_when_unset(monkeypatch):
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    first, second = Settings(_env_file=None), Settings(_env_file=None)

    assert first.session_secret != second.session_secret
    assert len(first.session_secret) >= 32


def test_session_secret_from_environment(monkeypatch):
    monkeypatch.setenv("SESSION_SECRET", "shared-with-login-service")
    assert Settings(_env_file=None).session_secret == "shared-with-login-service"
