"""
Layered configuration.

Settings are merged from three sources, highest precedence first:
    1. Environment variables (PANELSEARCH_SECTION__KEY)
    2. Config file (YAML or JSON)
    3. Built-in defaults

Usage:
    config = Config(config_file="panelsearch.yaml")

    config.get("remote.index_urls")   # dot-notation access
    config.get("paths.cache_dir")     # resolved path
    config.validated().cache.max_age  # typed view
"""

import json
import os
from typing import Any

import yaml

from .exceptions import ConfigurationError

_DEFAULT_ENV_PREFIX = "PANELSEARCH_"
_DEFAULT_DATA_DIR_NAME = ".panelsearch-data"

DEFAULT_MIRROR_BASE = "https://cdn.jsdelivr.net/gh/yayiji/readbert@main/static"
DEFAULT_LOCAL_BASE = "http://localhost:5173"


def default_settings(data_dir: str) -> dict[str, Any]:
    """The built-in settings tree for a given data directory."""
    data_dir = os.path.expanduser(data_dir)
    mirror = f"{DEFAULT_MIRROR_BASE}/dilbert-index"
    local = f"{DEFAULT_LOCAL_BASE}/dilbert-index"
    return {
        "paths": {
            "data_dir": data_dir,
            "cache_dir": os.path.join(data_dir, "cache"),
            "log_dir": os.path.join(data_dir, "logs"),
        },
        "remote": {
            # CDN mirror first, then the local dev server
            "index_urls": [f"{mirror}/search-index.min.json", f"{local}/search-index.min.json"],
            "archive_urls": [f"{mirror}/document-archive.min.json", f"{local}/document-archive.min.json"],
            "probe_url": None,
            "timeout": 30.0,
        },
        "cache": {"enabled": True, "max_age_hours": 24},
        "search": {"max_results": 50, "debounce_ms": 150},
        "assets": {"url_template": f"{DEFAULT_MIRROR_BASE}/dilbert-comics/{{year}}/{{id}}.gif"},
        "logging": {"level": "WARNING", "file": None},
    }


def _merge(target: dict, source: dict) -> None:
    """Recursively merge ``source`` into ``target``; nested dicts merge, everything else replaces."""
    for key, value in source.items():
        if isinstance(target.get(key), dict) and isinstance(value, dict):
            _merge(target[key], value)
        else:
            target[key] = value


def _parse_env_value(value: str) -> Any:
    """Convert YAML scalars and lists (``6``, ``true``, ``[a, b]``); keep anything else as the raw string."""
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError:
        return value
    if parsed is None or isinstance(parsed, (bool, int, float, list)):
        return parsed
    return value


class Config:
    """
    Central configuration manager.

    Env vars use a double underscore to denote nesting:
    PANELSEARCH_CACHE__MAX_AGE_HOURS=6 -> config["cache"]["max_age_hours"] = 6
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = _DEFAULT_ENV_PREFIX,
        data_dir: str | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            config_file: Path to a YAML or JSON configuration file. Must exist if given.
            env_prefix: Prefix for environment variable overrides. Empty disables them.
            data_dir: Base directory for cached artifacts. Defaults to ~/.panelsearch-data.
            defaults: Extra defaults merged over the built-in ones.
        """
        self.config_file = config_file
        self.env_prefix = env_prefix or ""
        self._data_dir = data_dir or os.path.join("~", _DEFAULT_DATA_DIR_NAME)
        self.config_data: dict[str, Any] = default_settings(self._data_dir)

        if defaults:
            _merge(self.config_data, defaults)
        if config_file:
            _merge(self.config_data, self._read_file(config_file))
        self._apply_env()

    @staticmethod
    def _read_file(path: str) -> dict[str, Any]:
        if not os.path.exists(path):
            raise ConfigurationError(f"Config file not found: {path}")

        ext = os.path.splitext(path)[1].lower()
        if ext not in (".yaml", ".yml", ".json"):
            raise ConfigurationError(f"Unsupported config file type: {path}")
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f) if ext == ".json" else yaml.safe_load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping at the top level")
        return data

    def _apply_env(self) -> None:
        if not self.env_prefix:
            return
        for env_key, env_value in os.environ.items():
            if env_key.startswith(self.env_prefix):
                parts = env_key[len(self.env_prefix) :].lower().split("__")
                self._parent(parts)[parts[-1]] = _parse_env_value(env_value)

    def _parent(self, parts: list[str]) -> dict[str, Any]:
        """Dict that holds the last of ``parts``, creating (or replacing non-dict) intermediates."""
        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        return current

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a config value by dot-notation path.

        Args:
            key_path: e.g. "paths.cache_dir", "remote.index_urls"
            default: Returned when the key is not found.
        """
        current: Any = self.config_data
        for part in key_path.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def set(self, key_path: str, value: Any) -> None:
        """Set a config value by dot-notation path, creating intermediate sections."""
        parts = key_path.split(".")
        self._parent(parts)[parts[-1]] = value

    def get_data_dir(self) -> str:
        return os.path.expanduser(self.get("paths.data_dir", self._data_dir))

    def validated(self):
        """Return a typed, validated ``PanelSearchConfig`` view of the current data."""
        from pydantic import ValidationError

        from .config_schema import PanelSearchConfig

        try:
            return PanelSearchConfig.model_validate(self.config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


_config_instance: Config | None = None


def get_config(
    config_file: str | None = None,
    env_prefix: str = _DEFAULT_ENV_PREFIX,
    data_dir: str | None = None,
) -> Config:
    """Return the process-wide Config, creating it on first use."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_file=config_file, env_prefix=env_prefix, data_dir=data_dir)
    return _config_instance


def reset_config() -> None:
    """Forget the process-wide Config (tests use this between cases)."""
    global _config_instance
    _config_instance = None
