"""Shared error codes and user-facing messages."""

from __future__ import annotations

from typing import Optional

# Capture
PERMISSION_DENIED = "PERMISSION_DENIED"
DEVICE_SETUP_FAILED = "DEVICE_SETUP_FAILED"
RECORDING_FAILED = "RECORDING_FAILED"

# Transcription
INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
FILE_READ_ERROR = "FILE_READ_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
TIMEOUT = "TIMEOUT"
SERVER_ERROR = "SERVER_ERROR"
DECODING_ERROR = "DECODING_ERROR"

# Insertion
NO_ACTIVE_TARGET = "NO_ACTIVE_TARGET"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone permission denied",
    DEVICE_SETUP_FAILED: "Failed to setup audio device",
    RECORDING_FAILED: "Recording failed",
    INVALID_CREDENTIAL: "Invalid API key. Please check your settings.",
    FILE_READ_ERROR: "Failed to read audio file",
    NETWORK_ERROR: "Network error: {detail}",
    TIMEOUT: "Request timed out. Please try again.",
    SERVER_ERROR: "Server error ({status_code}): {detail}",
    DECODING_ERROR: "Failed to decode response",
    NO_ACTIVE_TARGET: "No active input target: {detail}",
}

UNKNOWN_SERVER_MESSAGE = "Unknown error"


class PipelineError(Exception):
    """A session-scoped failure, tagged by ``code``.

    ``detail`` and ``status_code`` carry the code-specific payload; ``message``
    renders the text shown to the user.
    """

    def __init__(self, code: str, detail: str = "", status_code: Optional[int] = None) -> None:
        self.code = code
        self.detail = detail
        self.status_code = status_code
        super().__init__(self.message)

    @property
    def message(self) -> str:
        template = ERROR_MESSAGES.get(self.code)
        if template is None:
            return self.detail or self.code
        return template.format(detail=self.detail, status_code=self.status_code)

    def __repr__(self) -> str:
        return f"PipelineError(code={self.code!r}, detail={self.detail!r}, status_code={self.status_code!r})"
