"""
Tests for configuration loading.
"""

import json

from streambot.config.loader import load_config, save_config
from streambot.config.schema import Config


class TestConfig:
    """Tests for load_config / save_config."""

    def test_missing_file_yields_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.json")

        assert config.commands.prefix == "!"
        assert config.polling.fallback_delay == 2.0
        assert config.announcements.failure_limit == 2
        assert config.auto_poll is True

    def test_file_values_are_applied(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "mode": "dev",
            "commands": {"prefix": "?"},
            "discord": {"enabled": True, "token": "abc"},
        }))

        config = load_config(path)

        assert config.commands.prefix == "?"
        assert config.discord.token == "abc"
        assert config.auto_poll is False

    def test_invalid_json_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        assert load_config(path).mode == "prod"

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STREAMBOT_YOUTUBE__ACCESS_TOKEN", "env-token")

        assert load_config(tmp_path / "missing.json").youtube.access_token == "env-token"

    def test_save_roundtrip(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = Config()
        config.storage.data_dir = str(tmp_path / "data")

        save_config(config, path)

        assert load_config(path).data_path == tmp_path / "data"
