"""Application configuration management."""

from __future__ import annotations

import json
import logging
import os
import sys
from configparser import ConfigParser
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping

CONFIG_DIR_NAME = "CiteChat"
DEFAULT_JSON_FILENAME = "settings.json"
DEFAULT_INI_FILENAME = "settings.ini"
SETTINGS_SECTION = "chat"


logger = logging.getLogger(__name__)


def get_user_config_dir(app_name: str = CONFIG_DIR_NAME) -> Path:
    """Return the configuration directory for the current user.

    The directory is created on first use. On Windows the directory is
    under ``%APPDATA%``; otherwise the XDG base directory or ``~/.config``
    is used.
    """
    if sys.platform.startswith("win"):
        base_dir = Path(os.getenv("APPDATA", Path.home()))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    config_dir = base_dir / app_name
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


class ConfigManager:
    """Handle loading and saving user configuration settings."""

    def __init__(
        self,
        app_name: str = CONFIG_DIR_NAME,
        *,
        format: str = "json",
        filename: str | None = None,
    ) -> None:
        self.app_name = app_name
        self.format = format.lower()
        if self.format not in {"json", "ini"}:
            raise ValueError("format must be either 'json' or 'ini'")
        if filename is None:
            filename = (
                DEFAULT_JSON_FILENAME if self.format == "json" else DEFAULT_INI_FILENAME
            )
        self.config_dir = get_user_config_dir(app_name)
        self.config_path = self.config_dir / filename

    def load(self) -> dict[str, Any]:
        """Load configuration from disk.

        Returns an empty dictionary if the configuration file is absent.
        """
        if not self.config_path.exists():
            return {}

        if self.format == "json":
            with self.config_path.open("r", encoding="utf-8") as fh:
                return json.load(fh)

        parser = ConfigParser()
        parser.read(self.config_path, encoding="utf-8")
        return {section: dict(parser.items(section)) for section in parser.sections()}

    def save(self, data: MutableMapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        if self.format == "json":
            with self.config_path.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
                fh.write("\n")
            return

        parser = ConfigParser()
        for section, values in data.items():
            if not isinstance(values, MutableMapping):
                raise ValueError("INI configuration requires mapping values per section")
            parser[section] = {
                str(key): "" if value is None else str(value)
                for key, value in values.items()
            }
        with self.config_path.open("w", encoding="utf-8") as fh:
            parser.write(fh)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"ConfigManager(app_name={self.app_name!r}, format={self.format!r}, path={self.config_path!s})"


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _coerce_optional_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


@dataclass
class ChatSettings:
    """Tunable parameters for browsing, context assembly and inference."""

    base_url: str = "http://127.0.0.1:1234"
    model: str = "llama-3.2-1b-instruct"
    auto_browse: bool = True
    temperature: float = 0.2
    max_tokens: int = 600
    max_web_results: int = 3
    chunk_size: int = 1600
    chunk_overlap: int = 200
    top_k: int = 5
    max_source_chars: int = 8000
    max_document_chars: int = 500_000
    request_timeout: float | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ChatSettings":
        """Build settings from ``data`` converting string values from INI files."""

        defaults = cls()
        values: dict[str, Any] = {}
        for entry in fields(cls):
            if entry.name not in data:
                continue
            raw = data[entry.name]
            default = getattr(defaults, entry.name)
            if entry.name == "request_timeout":
                values[entry.name] = _coerce_optional_float(raw)
            elif isinstance(default, bool):
                values[entry.name] = _coerce_bool(raw)
            elif isinstance(default, int):
                values[entry.name] = int(raw)
            elif isinstance(default, float):
                values[entry.name] = float(raw)
            else:
                values[entry.name] = str(raw)
        unknown = sorted(set(data) - {entry.name for entry in fields(cls)})
        if unknown:
            logger.debug("Ignoring unknown settings", extra={"keys": unknown})
        return cls(**values)

    @classmethod
    def load(cls, manager: ConfigManager) -> "ChatSettings":
        """Return stored settings merged over the defaults."""

        stored = manager.load()
        if manager.format == "ini":
            stored = stored.get(SETTINGS_SECTION, {})
        return cls.from_mapping(stored)

    def save(self, manager: ConfigManager) -> None:
        payload = asdict(self)
        if manager.format == "ini":
            manager.save({SETTINGS_SECTION: payload})
        else:
            manager.save(payload)


__all__ = ["ChatSettings", "ConfigManager", "get_user_config_dir"]
