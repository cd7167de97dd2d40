from __future__ import annotations

import json
from pathlib import Path

import pytest

from citechat.config import ChatSettings, ConfigManager, get_user_config_dir


@pytest.fixture()
def config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    monkeypatch.setenv("APPDATA", str(tmp_path))
    return tmp_path


def test_user_config_dir_is_created(config_home: Path) -> None:
    path = get_user_config_dir("CiteChatTest")

    assert path == config_home / "CiteChatTest"
    assert path.is_dir()


def test_missing_settings_file_yields_defaults(config_home: Path) -> None:
    settings = ChatSettings.load(ConfigManager())

    assert settings == ChatSettings()
    assert settings.auto_browse is True
    assert settings.max_web_results == 3
    assert (settings.chunk_size, settings.chunk_overlap, settings.top_k) == (1600, 200, 5)


def test_json_settings_round_trip(config_home: Path) -> None:
    manager = ConfigManager()
    settings = ChatSettings(model="qwen2.5-7b-instruct", auto_browse=False, request_timeout=30.0)

    settings.save(manager)

    stored = json.loads(manager.config_path.read_text(encoding="utf-8"))
    assert stored["model"] == "qwen2.5-7b-instruct"
    assert ChatSettings.load(manager) == settings


def test_ini_settings_are_coerced(config_home: Path) -> None:
    manager = ConfigManager(format="ini")
    manager.config_path.write_text(
        "[chat]\n"
        "auto_browse = no\n"
        "temperature = 0.7\n"
        "max_tokens = 256\n"
        "request_timeout =\n"
        "base_url = http://localhost:8080\n",
        encoding="utf-8",
    )

    settings = ChatSettings.load(manager)

    assert settings.auto_browse is False
    assert settings.temperature == pytest.approx(0.7)
    assert settings.max_tokens == 256
    assert settings.request_timeout is None
    assert settings.base_url == "http://localhost:8080"


def test_ini_save_writes_chat_section(config_home: Path) -> None:
    manager = ConfigManager(format="ini")

    ChatSettings(max_source_chars=4000).save(manager)

    assert manager.load()["chat"]["max_source_chars"] == "4000"
    assert ChatSettings.load(manager).max_source_chars == 4000


def test_unknown_keys_are_ignored() -> None:
    settings = ChatSettings.from_mapping({"top_k": "7", "theme": "dark"})

    assert settings.top_k == 7
    assert not hasattr(settings, "theme")


def test_config_manager_rejects_unknown_format(config_home: Path) -> None:
    with pytest.raises(ValueError):
        ConfigManager(format="yaml")
