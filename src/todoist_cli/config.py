"""Configuration file handling.

The configuration lives in a single JSON document::

    {
      "auth": {"token": "..."},
      "defaults": {"format": "table"},
      "output": {"color": true},
      "api": {"base_url": "https://api.todoist.com/rest/v2"}
    }

It is loaded once at startup into a :class:`Config` value which is then
passed to whatever needs it.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.todoist.com/rest/v2"
LEGACY_BASE_URL = "https://api.todoist.com/rest/v1"
CONFIG_FILENAME = "config.json"
SNAPSHOT_FILENAME = "tasks-snapshot.json"
OUTPUT_FORMATS = ("table", "json", "detail")


def default_config_dir() -> Path:
    """Return the config directory (``~/.config/todoist-cli`` unless overridden)."""
    base = os.environ.get("TODOIST_CLI_CONFIG_DIR")
    if base:
        return Path(base)
    return Path.home() / ".config" / "todoist-cli"


@dataclass(frozen=True)
class Config:
    token: str | None = None
    base_url: str = DEFAULT_BASE_URL
    default_format: str = "table"
    color: bool = True
    config_dir: Path | None = None

    @property
    def directory(self) -> Path:
        return self.config_dir or default_config_dir()

    @property
    def path(self) -> Path:
        return self.directory / CONFIG_FILENAME

    def cache_path(self, filename: str) -> Path:
        return self.directory / filename

    @property
    def snapshot_path(self) -> Path:
        return self.cache_path(SNAPSHOT_FILENAME)

    def with_token(self, token: str | None) -> "Config":
        return replace(self, token=token)

    def to_dict(self) -> dict[str, Any]:
        return {
            "auth": {"token": self.token},
            "defaults": {"format": self.default_format},
            "output": {"color": self.color},
            "api": {"base_url": self.base_url},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_dir: Path | None = None) -> "Config":
        def section(name: str) -> dict[str, Any]:
            value = data.get(name)
            return value if isinstance(value, dict) else {}

        fmt = section("defaults").get("format") or "table"
        if fmt not in OUTPUT_FORMATS:
            logger.warning("Ignoring unknown default format %r", fmt)
            fmt = "table"
        return cls(
            token=section("auth").get("token"),
            base_url=section("api").get("base_url") or DEFAULT_BASE_URL,
            default_format=fmt,
            color=section("output").get("color", True) is not False,
            config_dir=config_dir,
        )


def _migrate(data: dict[str, Any]) -> bool:
    """Upgrade old settings in place. Returns True when anything changed."""
    api = data.get("api")
    if isinstance(api, dict) and api.get("base_url") == LEGACY_BASE_URL:
        api["base_url"] = DEFAULT_BASE_URL
        return True
    return False


def load_config(config_dir: Path | None = None) -> Config:
    """Load the config file, falling back to defaults when absent or broken."""
    directory = config_dir or default_config_dir()
    path = directory / CONFIG_FILENAME
    if not path.exists():
        return Config(config_dir=directory)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Failed to load config %s, using defaults: %s", path, exc)
        return Config(config_dir=directory)
    if not isinstance(data, dict):
        logger.warning("Config %s is not a JSON object, using defaults", path)
        return Config(config_dir=directory)

    migrated = _migrate(data)
    config = Config.from_dict(data, config_dir=directory)
    if migrated:
        logger.info("Upgraded API base URL to %s", DEFAULT_BASE_URL)
        save_config(config)
    return config


def save_config(config: Config) -> Path:
    path = config.path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path
