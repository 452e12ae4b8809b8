"""Layered settings loader: JSON files overlaid by environment variables."""

import json
import os
from pathlib import Path
from typing import Any

from src.commons.settings.models import Settings

ENV_PREFIX = "VIDEO_PIPELINE__"
CONFIG_DIR_ENV = "VIDEO_PIPELINE_CONFIG_DIR"


def coerce_env_value(value: str) -> Any:
    """Turn an environment string into bool, int, float, JSON or str."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"

    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue

    if value.startswith(("[", "{")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    return value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class SettingsLoader:
    """Builds Settings from up to three layers.

    Later layers win:
    1. config/appsettings.json
    2. config/appsettings.{environment}.json
    3. VIDEO_PIPELINE__SECTION__KEY environment variables
    """

    def __init__(
        self,
        config_dir: Path | None = None,
        environment: str | None = None,
    ) -> None:
        """Initialize the settings loader.

        Args:
            config_dir: Directory holding the JSON files. Defaults to
                $VIDEO_PIPELINE_CONFIG_DIR or ./config.
            environment: dev, staging or prod. Defaults to
                VIDEO_PIPELINE__APP__ENVIRONMENT or 'dev'.
        """
        self.config_dir = config_dir or Path(os.getenv(CONFIG_DIR_ENV, "config"))
        self.environment = environment or os.getenv(
            f"{ENV_PREFIX}APP__ENVIRONMENT", "dev"
        )

    def load(self) -> Settings:
        """Merge every layer and validate the result."""
        layers = [
            self._read_json("appsettings.json"),
            self._read_json(f"appsettings.{self.environment}.json"),
            self._read_env(),
        ]
        config: dict[str, Any] = {}
        for layer in layers:
            config = deep_merge(config, layer)
        return Settings(**config)

    def _read_env(self) -> dict[str, Any]:
        """Collect prefixed environment variables into a nested dict.

        VIDEO_PIPELINE__PIPELINE__RETRY__MAX_ATTEMPTS=5 becomes
        {"pipeline": {"retry": {"max_attempts": 5}}}.
        """
        nested: dict[str, Any] = {}
        for key, raw in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            *parents, leaf = key[len(ENV_PREFIX) :].lower().split("__")
            node = nested
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = coerce_env_value(raw)
        return nested

    def _read_json(self, filename: str) -> dict[str, Any]:
        path = self.config_dir / filename
        if not path.exists():
            return {}
        with path.open(encoding="utf-8") as f:
            return dict(json.load(f))


_settings: Settings | None = None


def get_settings(
    config_dir: Path | None = None,
    environment: str | None = None,
    *,
    reload: bool = False,
) -> Settings:
    """Get or create the process-wide settings instance.

    Args:
        config_dir: Optional config directory override.
        environment: Optional environment override.
        reload: Force reload settings from files.

    Returns:
        Settings instance.
    """
    global _settings  # noqa: PLW0603
    if _settings is None or reload:
        _settings = SettingsLoader(config_dir=config_dir, environment=environment).load()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings instance. Useful for testing."""
    global _settings  # noqa: PLW0603
    _settings = None
