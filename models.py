"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from errors import PipelineError

SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes, signed 16-bit little-endian
MAX_DURATION_S = 60.0


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PROCESSING = "PROCESSING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class StateChange:
    """Presentation event fired on every transition."""

    previous: SessionState
    state: SessionState
    message: str = ""
    code: str = ""


@dataclass(frozen=True)
class AudioArtifact:
    """A finalized WAV file produced by one capture."""

    path: Path
    size_bytes: int
    duration_s: float
    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS

    @property
    def file_name(self) -> str:
        return self.path.name


@dataclass
class CaptureResult:
    artifact: Optional[AudioArtifact] = None
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.artifact is not None


@dataclass
class TranscriptionResult:
    text: str = ""
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RecordingSession:
    session_id: int
    started_at: Optional[float] = None
    artifact: Optional[AudioArtifact] = None
    awaiting_permission: bool = False
    release_requested: bool = False
    recovery_timer: Any = field(default=None, repr=False)


@dataclass
class PasteResult:
    success: bool
    reason: str
    clipboard_restored: bool
