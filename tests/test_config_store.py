from __future__ import annotations

import json
from pathlib import Path

import pytest

from config import DEFAULT_MODEL, DEFAULT_TRANSCRIPTION_URL, JsonConfigStore, PipelineSettings


@pytest.fixture(autouse=True)
def _no_env_key(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("GROQ_API_KEY", raising=False)


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.alt_r"

    store.set_api_key(" gsk_abc ")
    store.set_hotkey("Key.alt_l")

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "gsk_abc"
    assert reloaded.get_hotkey() == "Key.alt_l"


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.alt_r"
    assert store.get_settings() == PipelineSettings()


def test_api_key_falls_back_to_environment(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setenv("GROQ_API_KEY", "env-key")
    store = JsonConfigStore(path=tmp_path / "config.json")
    assert store.get_api_key() == "env-key"

    store.set_api_key("stored-key")
    assert store.get_api_key() == "stored-key"


def test_default_settings(tmp_path: Path) -> None:
    settings = JsonConfigStore(path=tmp_path / "config.json").get_settings()

    assert settings.transcription_url == DEFAULT_TRANSCRIPTION_URL
    assert settings.model == DEFAULT_MODEL
    assert settings.language == "en"
    assert settings.request_timeout_s == 30.0
    assert settings.max_duration_s == 60.0
    assert settings.error_display_s == 2.0


def test_settings_overrides_and_invalid_values(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "transcription_url": "http://localhost:8000/transcribe",
                "language": "fr",
                "request_timeout_s": "10",
                "max_duration_s": -5,
                "error_display_s": "soon",
            }
        ),
        encoding="utf-8",
    )
    settings = JsonConfigStore(path=path).get_settings()

    assert settings.transcription_url == "http://localhost:8000/transcribe"
    assert settings.language == "fr"
    assert settings.request_timeout_s == 10.0
    assert settings.max_duration_s == 60.0
    assert settings.error_display_s == 2.0
