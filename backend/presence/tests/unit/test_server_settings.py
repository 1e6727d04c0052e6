import pytest
from pydantic import ValidationError

from presence.server.settings import PresenceServerSettings


class TestPresenceServerSettings:
    def test_defaults(self, monkeypatch):
        for name in ("PRESENCE_PORT", "PRESENCE_MAX_PLAYERS", "PRESENCE_MOVEMENT_THROTTLE_MS"):
            monkeypatch.delenv(name, raising=False)
        settings = PresenceServerSettings()
        assert settings.port == 3000
        assert settings.max_players == 5
        assert settings.movement_throttle_ms == 50
        assert settings.liveness_window_ms == 10_000
        assert settings.reaper_interval_seconds == 30.0

    def test_max_players_from_env(self, monkeypatch):
        monkeypatch.setenv("PRESENCE_MAX_PLAYERS", "2")
        assert PresenceServerSettings().max_players == 2

    def test_cors_origins_json_array(self, monkeypatch):
        monkeypatch.setenv("PRESENCE_CORS_ORIGINS", '["http://a.com","http://b.com"]')
        settings = PresenceServerSettings()
        assert settings.cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_csv(self, monkeypatch):
        monkeypatch.setenv("PRESENCE_CORS_ORIGINS", "http://a.com,http://b.com")
        settings = PresenceServerSettings()
        assert settings.cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_invalid_raises(self, monkeypatch):
        monkeypatch.setenv("PRESENCE_CORS_ORIGINS", "")
        with pytest.raises(ValidationError, match="cors_origins"):
            PresenceServerSettings()

    def test_max_players_zero_rejected(self):
        with pytest.raises(ValidationError, match="max_players"):
            PresenceServerSettings(max_players=0)

    def test_port_out_of_range_rejected(self):
        with pytest.raises(ValidationError, match="port"):
            PresenceServerSettings(port=70000)

    def test_negative_throttle_rejected(self):
        with pytest.raises(ValidationError, match="movement_throttle_ms"):
            PresenceServerSettings(movement_throttle_ms=-1)

    def test_heartbeat_timeout_must_exceed_interval(self):
        with pytest.raises(ValidationError, match="heartbeat_timeout_seconds"):
            PresenceServerSettings(heartbeat_interval_seconds=10, heartbeat_timeout_seconds=10)
