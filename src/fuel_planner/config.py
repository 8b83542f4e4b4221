"""Configuration loading.

Merges config from global and local files:
1. ~/.config/fuel-planner/fuel-planner.json (global, loaded first)
2. ./fuel-planner.json (local, overrides global)

Secrets may also come from environment variables, which take precedence.
"""

import json
import os
from pathlib import Path

CONFIG_DIR = Path.home() / ".config" / "fuel-planner"
CONFIG_PATH = CONFIG_DIR / "fuel-planner.json"
LOCAL_CONFIG_PATH = Path("fuel-planner.json")

DEFAULTS = {
    "weather_timeout_seconds": 5.0,
    "weather_cache_ttl_seconds": 30 * 60,
    "weather_cache_max_size": 500,
    "weather_rate_limit": 100,
    "weather_rate_window_seconds": 60 * 60,
}


def load_config() -> dict:
    """Load configuration from config files.

    Returns:
        Dict with merged config values, empty dict if no files exist.
    """
    config = {}
    for config_path in [CONFIG_PATH, LOCAL_CONFIG_PATH]:
        if config_path.exists():
            try:
                with config_path.open() as f:
                    config.update(json.load(f))
            except (json.JSONDecodeError, OSError):
                continue
    return config


def get_setting(key: str, config: dict | None = None):
    """Config value for key, falling back to DEFAULTS."""
    if config is None:
        config = load_config()
    return config.get(key, DEFAULTS.get(key))


def get_openweather_api_key(config: dict | None = None) -> str | None:
    """OpenWeather API key from OPENWEATHER_API_KEY or the config file.

    Config file format:
        {
            "openweather_api_key": "your-api-key"
        }
    """
    env_key = os.environ.get("OPENWEATHER_API_KEY")
    if env_key:
        return env_key
    if config is None:
        config = load_config()
    return config.get("openweather_api_key") or None
