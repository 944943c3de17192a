"""Transcription client for an OpenAI-compatible Whisper endpoint (Groq by default).

One call uploads one WAV artifact as multipart form data and yields either
the transcript text or a classified ``PipelineError``. There is no retry.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Optional

import requests

from config import DEFAULT_MODEL, DEFAULT_TRANSCRIPTION_URL, PipelineSettings
from errors import (
    DECODING_ERROR,
    FILE_READ_ERROR,
    INVALID_CREDENTIAL,
    NETWORK_ERROR,
    SERVER_ERROR,
    TIMEOUT,
    UNKNOWN_SERVER_MESSAGE,
    PipelineError,
)
from models import AudioArtifact, TranscriptionResult

logger = logging.getLogger(__name__)


class TranscriptionClient:
    def __init__(
        self,
        url: str = DEFAULT_TRANSCRIPTION_URL,
        model: str = DEFAULT_MODEL,
        language: str = "en",
        request_timeout_s: float = 30.0,
    ) -> None:
        self._url = url
        self._model = model
        self._language = language
        self._request_timeout_s = request_timeout_s

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "TranscriptionClient":
        return cls(
            url=settings.transcription_url,
            model=settings.model,
            language=settings.language,
            request_timeout_s=settings.request_timeout_s,
        )

    def transcribe(
        self,
        artifact: AudioArtifact,
        credential: str,
        on_result: Callable[[TranscriptionResult], None],
    ) -> None:
        """Fire ``on_result`` exactly once.

        Credential and file problems are reported before this returns; the
        upload itself runs on a worker thread.
        """
        try:
            audio = self._prepare(artifact, credential)
        except PipelineError as exc:
            on_result(TranscriptionResult(error=exc))
            return
        threading.Thread(
            target=self._worker,
            args=(artifact.file_name, audio, credential, on_result),
            name="transcription",
            daemon=True,
        ).start()

    def transcribe_sync(self, artifact: AudioArtifact, credential: str) -> TranscriptionResult:
        try:
            audio = self._prepare(artifact, credential)
        except PipelineError as exc:
            return TranscriptionResult(error=exc)
        return self._upload(artifact.file_name, audio, credential)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _prepare(self, artifact: AudioArtifact, credential: str) -> bytes:
        if not credential or not credential.strip():
            raise PipelineError(INVALID_CREDENTIAL)
        try:
            return artifact.path.read_bytes()
        except OSError as exc:
            raise PipelineError(FILE_READ_ERROR, str(exc)) from exc

    def _worker(
        self,
        file_name: str,
        audio: bytes,
        credential: str,
        on_result: Callable[[TranscriptionResult], None],
    ) -> None:
        on_result(self._upload(file_name, audio, credential))

    def _upload(self, file_name: str, audio: bytes, credential: str) -> TranscriptionResult:
        logger.info("Uploading %s (%d bytes) to %s", file_name, len(audio), self._url)
        started = time.monotonic()
        deadline = started + self._request_timeout_s
        try:
            resp = requests.post(
                self._url,
                headers={"Authorization": f"Bearer {credential.strip()}"},
                data={"model": self._model, "language": self._language},
                files={"file": (file_name, audio, "audio/wav")},
                timeout=(self._request_timeout_s, self._request_timeout_s),
                stream=True,
            )
            try:
                status = resp.status_code
                content = self._read_body(resp, deadline)
            finally:
                resp.close()
        except requests.exceptions.Timeout as exc:
            logger.warning("Transcription request timed out: %s", exc)
            return TranscriptionResult(error=PipelineError(TIMEOUT, str(exc)))
        except requests.exceptions.RequestException as exc:
            logger.warning("Transcription request failed: %s", exc)
            return TranscriptionResult(error=PipelineError(NETWORK_ERROR, str(exc)))

        elapsed = time.monotonic() - started
        body = _decode_json(content)
        if not 200 <= status < 300:
            message = _extract_error_message(body) or UNKNOWN_SERVER_MESSAGE
            logger.warning("Transcription failed: %s - %s", status, message)
            return TranscriptionResult(
                error=PipelineError(SERVER_ERROR, message, status_code=status)
            )

        text = body.get("text") if isinstance(body, dict) else None
        if not isinstance(text, str):
            return TranscriptionResult(error=PipelineError(DECODING_ERROR))
        logger.info("Transcription complete: %d chars in %.2fs", len(text), elapsed)
        return TranscriptionResult(text=text)

    def _read_body(self, resp: requests.Response, deadline: float) -> bytes:
        """Read the whole body, failing once the request deadline has passed.

        The read timeout only bounds each socket read, so the total is checked
        as bytes arrive.
        """
        content = bytearray()
        if time.monotonic() > deadline:
            raise requests.exceptions.ReadTimeout(
                f"no response within {self._request_timeout_s:.0f}s"
            )
        for chunk in resp.iter_content(chunk_size=1):
            content.extend(chunk)
            if time.monotonic() > deadline:
                raise requests.exceptions.ReadTimeout(
                    f"response not complete within {self._request_timeout_s:.0f}s"
                )
        return bytes(content)


def _decode_json(content: bytes) -> Any:
    try:
        return json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None


def _extract_error_message(body: Any) -> Optional[str]:
    """Pull ``error.message`` from a JSON error body."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    return message if isinstance(message, str) else None
