"""Configuration management for Folio.

Settings live in a YAML file (``~/.folio/config.yaml`` by default) and can be
overridden per process through ``FOLIO__SECTION__KEY`` environment variables
or by command line flags.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import FolioConfig
from .resolver import ENV_PREFIX, flatten_for_env, overrides_from_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.folio/config.yaml")
_HEADER_LINES = (
    "# Folio configuration file",
    "# Edit with `folio config edit`, or change one key with `folio config set KEY --value V`.",
)


class ConfigManager:
    """Read, write, and resolve the Folio configuration file.

    Args:
        config_path: File to manage; defaults to ``~/.folio/config.yaml``.
        env: Environment consulted for overrides; defaults to ``os.environ``.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._path = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = os.environ if env is None else env

    @property
    def config_path(self) -> Path:
        return self._path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> FolioConfig:
        """Return the effective configuration.

        Args:
            cli_overrides: Highest-precedence values, keyed by dotted path.
            include_env: Whether ``FOLIO__`` environment variables apply.
            ensure_file: Create the file with defaults first when it is missing.
            env_overrides: Environment to read instead of the manager's own.

        Raises:
            ConfigError: If the file cannot be parsed or a value is invalid.
        """
        if ensure_file:
            self.ensure_exists()

        env_layer = None
        if include_env:
            env_layer = overrides_from_env(self._env if env_overrides is None else env_overrides)

        return resolve_with_precedence(
            defaults=FolioConfig(),
            file_overrides=self._read_file(),
            env_overrides=env_layer or None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored in the file, without defaults applied."""
        return self._read_file()

    def save(self, config: FolioConfig | Mapping[str, Any]) -> None:
        """Replace the file contents with ``config``."""
        if isinstance(config, FolioConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)
        self._write_file(data)

    def ensure_exists(self) -> Path:
        """Write a default configuration file unless one is already present."""
        if not self._path.exists():
            self._write_file(FolioConfig().model_dump(mode="python"))
        return self._path

    def read_text(self) -> str:
        if not self._path.exists():
            return ""
        return self._path.read_text(encoding="utf-8")

    def _read_file(self) -> dict[str, Any]:
        text = self.read_text()
        if not text:
            return {}
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {self._path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{self._path} must contain a mapping at the top level.")
        return data

    def _write_file(self, data: Mapping[str, Any]) -> None:
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True)
        header = "\n".join([*_HEADER_LINES, f"# Last updated: {stamp}"])
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(f"{header}\n{body}", encoding="utf-8")


__all__ = [
    "ConfigError",
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "ENV_PREFIX",
    "FolioConfig",
    "flatten_for_env",
    "resolve_with_precedence",
]
