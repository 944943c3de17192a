"""JSON-based config store shared by the tray menu and the pipeline."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

API_KEY_ENV = "GROQ_API_KEY"
DEFAULT_HOTKEY = "Key.alt_r"
DEFAULT_TRANSCRIPTION_URL = "https://api.groq.com/openai/v1/audio/transcriptions"
DEFAULT_MODEL = "whisper-large-v3"


@dataclass(frozen=True)
class PipelineSettings:
    transcription_url: str = DEFAULT_TRANSCRIPTION_URL
    model: str = DEFAULT_MODEL
    language: str = "en"
    request_timeout_s: float = 30.0
    max_duration_s: float = 60.0
    error_display_s: float = 2.0


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "talk2type" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        key = str(data.get("api_key", "") or "").strip()
        return key or os.getenv(API_KEY_ENV, "").strip()

    def set_api_key(self, key: str) -> None:
        data = self._read_all()
        data["api_key"] = key.strip()
        self._write_all(data)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        data = self._read_all()
        data["hotkey"] = hotkey
        self._write_all(data)

    def get_settings(self) -> PipelineSettings:
        data = self._read_all()
        defaults = PipelineSettings()
        return PipelineSettings(
            transcription_url=str(data.get("transcription_url") or defaults.transcription_url),
            model=str(data.get("model") or defaults.model),
            language=str(data.get("language") or defaults.language),
            request_timeout_s=_positive_float(data, "request_timeout_s", defaults.request_timeout_s),
            max_duration_s=_positive_float(data, "max_duration_s", defaults.max_duration_s),
            error_display_s=_positive_float(data, "error_display_s", defaults.error_display_s),
        )

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def _positive_float(data: dict, key: str, default: float) -> float:
    value: Any = data.get(key)
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s=%r in config, using %s", key, value, default)
        return default
    return number if number > 0 else default
