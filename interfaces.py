"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from config import PipelineSettings
from models import AudioArtifact, CaptureResult, PasteResult, TranscriptionResult


class AudioRecorder(Protocol):
    def start(
        self,
        on_result: Callable[[CaptureResult], None],
        on_limit: Optional[Callable[[], None]] = None,
    ) -> None: ...

    def stop(self) -> None: ...


class Transcriber(Protocol):
    def transcribe(
        self,
        artifact: AudioArtifact,
        credential: str,
        on_result: Callable[[TranscriptionResult], None],
    ) -> None: ...


class MicrophonePermission(Protocol):
    def request(self, on_result: Callable[[bool], None]) -> None: ...


class PasteService(Protocol):
    def paste_text(self, text: str) -> PasteResult: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_settings(self) -> PipelineSettings: ...
