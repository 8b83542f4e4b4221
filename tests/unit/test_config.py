import json

import pytest

from fuel_planner import config


@pytest.fixture
def config_paths(tmp_path, monkeypatch):
    global_path = tmp_path / "global.json"
    local_path = tmp_path / "local.json"
    monkeypatch.setattr(config, "CONFIG_PATH", global_path)
    monkeypatch.setattr(config, "LOCAL_CONFIG_PATH", local_path)
    monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)
    return global_path, local_path


class TestLoadConfig:
    def test_no_files(self, config_paths):
        assert config.load_config() == {}

    def test_local_overrides_global(self, config_paths):
        global_path, local_path = config_paths
        global_path.write_text(json.dumps({"weather_rate_limit": 10, "openweather_api_key": "g"}))
        local_path.write_text(json.dumps({"weather_rate_limit": 20}))
        assert config.load_config() == {"weather_rate_limit": 20, "openweather_api_key": "g"}

    def test_invalid_json_skipped(self, config_paths):
        global_path, local_path = config_paths
        global_path.write_text("{not json")
        local_path.write_text(json.dumps({"weather_timeout_seconds": 2}))
        assert config.load_config() == {"weather_timeout_seconds": 2}


class TestGetSetting:
    def test_default(self, config_paths):
        assert config.get_setting("weather_cache_ttl_seconds") == 1800
        assert config.get_setting("weather_rate_limit", {}) == 100

    def test_configured_value(self):
        assert config.get_setting("weather_rate_limit", {"weather_rate_limit": 5}) == 5

    def test_unknown_key(self):
        assert config.get_setting("nope", {}) is None


class TestApiKey:
    def test_from_config(self, config_paths):
        assert config.get_openweather_api_key({"openweather_api_key": "abc"}) == "abc"

    def test_env_takes_precedence(self, config_paths, monkeypatch):
        monkeypatch.setenv("OPENWEATHER_API_KEY", "env-key")
        assert config.get_openweather_api_key({"openweather_api_key": "abc"}) == "env-key"

    def test_missing(self, config_paths):
        assert config.get_openweather_api_key() is None
        assert config.get_openweather_api_key({"openweather_api_key": ""}) is None
