"""State-machine based session orchestration.

All transitions run on a single ``ControlLoop`` thread. Public entrypoints
and every asynchronous completion are posted there and tagged with the id of
the session that issued them, so results from an earlier session are dropped.
"""

from __future__ import annotations

import logging
import time
from functools import partial
from typing import Callable, Optional

from control_loop import ControlLoop
from errors import DEVICE_SETUP_FAILED, NO_ACTIVE_TARGET, PERMISSION_DENIED, RECORDING_FAILED, PipelineError
from interfaces import AudioRecorder, MicrophonePermission, PasteService, Transcriber
from models import (
    AudioArtifact,
    CaptureResult,
    PasteResult,
    RecordingSession,
    SessionState,
    StateChange,
    TranscriptionResult,
)

logger = logging.getLogger(__name__)

StateCallback = Callable[[StateChange], None]
CredentialSource = Callable[[], str]


class SessionController:
    def __init__(
        self,
        recorder: AudioRecorder,
        transcriber: Transcriber,
        paste_service: PasteService,
        credentials: CredentialSource,
        permission: Optional[MicrophonePermission] = None,
        error_display_s: float = 2.0,
        loop: Optional[ControlLoop] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._recorder = recorder
        self._transcriber = transcriber
        self._paste_service = paste_service
        self._credentials = credentials
        self._permission = permission
        self._error_display_s = error_display_s
        self._loop = loop or ControlLoop()
        self._owns_loop = loop is None
        self._on_state_change = on_state_change

        self._state = SessionState.IDLE
        self._session_id = 0
        self._session: Optional[RecordingSession] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[RecordingSession]:
        return self._session

    @property
    def loop(self) -> ControlLoop:
        return self._loop

    # ------------------------------------------------------------------
    # Public entrypoints (any thread)
    # ------------------------------------------------------------------

    def start_session(self) -> None:
        self._loop.post(self._begin)

    def stop_session(self) -> None:
        self._loop.post(self._end)

    def cancel_session(self, reason: str) -> None:
        self._loop.post(self._cancel, reason)

    def close(self) -> None:
        if self._owns_loop:
            self._loop.close()

    # ------------------------------------------------------------------
    # Triggers (control thread)
    # ------------------------------------------------------------------

    def _begin(self) -> None:
        if self._state != SessionState.IDLE or self._session is not None:
            logger.debug("Press ignored in state %s", self._state.value)
            return
        self._session_id += 1
        session = RecordingSession(session_id=self._session_id)
        self._session = session
        if self._permission is None:
            self._start_capture(session)
            return
        session.awaiting_permission = True
        on_granted = partial(self._post, self._on_permission, session.session_id)
        try:
            self._permission.request(on_granted)
        except Exception as exc:
            session.awaiting_permission = False
            self._fail(PipelineError(DEVICE_SETUP_FAILED, str(exc)))

    def _end(self) -> None:
        session = self._session
        if session is not None and session.awaiting_permission:
            session.release_requested = True
            return
        if self._state != SessionState.RECORDING:
            logger.debug("Release ignored in state %s", self._state.value)
            return
        self._transition(SessionState.PROCESSING)
        try:
            self._recorder.stop()
        except Exception as exc:
            self._fail(PipelineError(RECORDING_FAILED, str(exc)))

    def _cancel(self, reason: str) -> None:
        if self._session is None and self._state == SessionState.IDLE:
            return
        logger.info("Cancelling session: %s", reason)
        if self._state == SessionState.RECORDING:
            self._safe_stop_recorder()
        self._end_session()

    # ------------------------------------------------------------------
    # Completions (control thread)
    # ------------------------------------------------------------------

    def _post(self, handler: Callable[..., None], session_id: int, *args: object) -> None:
        self._loop.post(handler, session_id, *args)

    def _is_current(self, session_id: int) -> bool:
        return self._session is not None and self._session.session_id == session_id

    def _on_permission(self, session_id: int, granted: bool) -> None:
        session = self._session
        if not self._is_current(session_id) or session is None or not session.awaiting_permission:
            return
        session.awaiting_permission = False
        if session.release_requested:
            logger.info("Released before microphone was ready, not recording")
            self._end_session()
            return
        if not granted:
            self._fail(PipelineError(PERMISSION_DENIED))
            return
        self._start_capture(session)

    def _start_capture(self, session: RecordingSession) -> None:
        on_result = partial(self._post, self._on_capture_result, session.session_id)
        on_limit = partial(self._post, self._on_capture_limit, session.session_id)
        try:
            self._recorder.start(on_result, on_limit)
        except PipelineError as exc:
            self._fail(exc)
            return
        except Exception as exc:
            self._fail(PipelineError(DEVICE_SETUP_FAILED, str(exc)))
            return
        session.started_at = time.time()
        self._transition(SessionState.RECORDING)

    def _on_capture_limit(self, session_id: int) -> None:
        if not self._is_current(session_id) or self._state != SessionState.RECORDING:
            return
        self._transition(SessionState.PROCESSING)

    def _on_capture_result(self, session_id: int, result: CaptureResult) -> None:
        if not self._is_current(session_id) or self._state not in (
            SessionState.RECORDING,
            SessionState.PROCESSING,
        ):
            logger.debug("Dropping capture result from stale session %d", session_id)
            if result.artifact is not None:
                self._delete_artifact(result.artifact)
            return
        if self._state == SessionState.RECORDING:
            self._transition(SessionState.PROCESSING)
        if not result.ok:
            self._fail(result.error or PipelineError(RECORDING_FAILED))
            return
        if self._session is None or result.artifact is None:
            self._fail(PipelineError(RECORDING_FAILED))
            return
        self._session.artifact = result.artifact
        logger.info(
            "Captured %s (%.1fs, %d bytes)",
            result.artifact.file_name,
            result.artifact.duration_s,
            result.artifact.size_bytes,
        )
        on_result = partial(self._post, self._on_transcription_result, session_id)
        self._transcriber.transcribe(result.artifact, self._credentials(), on_result)

    def _on_transcription_result(self, session_id: int, result: TranscriptionResult) -> None:
        if not self._is_current(session_id) or self._state != SessionState.PROCESSING:
            return
        self._release_artifact()
        if not result.ok:
            self._fail(result.error or PipelineError(RECORDING_FAILED))
            return
        paste = self._run_paste(result.text + " ")
        if not paste.success:
            logger.warning("Insertion failed: %s", paste.reason)
            self._fail(PipelineError(NO_ACTIVE_TARGET, paste.reason))
            return
        self._end_session()

    def _on_recovery(self, session_id: int) -> None:
        if not self._is_current(session_id) or self._state != SessionState.ERROR:
            return
        self._end_session()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_paste(self, text: str) -> PasteResult:
        try:
            return self._paste_service.paste_text(text)
        except Exception as exc:
            return PasteResult(success=False, reason=str(exc), clipboard_restored=False)

    def _fail(self, error: PipelineError) -> None:
        logger.warning("Session failed: %r", error)
        if self._state == SessionState.RECORDING:
            self._safe_stop_recorder()
        self._release_artifact()
        self._transition(SessionState.ERROR, message=error.message, code=error.code)
        session = self._session
        if session is None:
            return
        session.recovery_timer = self._loop.call_later(
            self._error_display_s, self._on_recovery, session.session_id
        )

    def _end_session(self) -> None:
        session = self._session
        if session is not None and session.recovery_timer is not None:
            session.recovery_timer.cancel()
        self._release_artifact()
        self._session = None
        self._transition(SessionState.IDLE)

    def _release_artifact(self) -> None:
        session = self._session
        if session is None or session.artifact is None:
            return
        artifact, session.artifact = session.artifact, None
        self._delete_artifact(artifact)

    def _delete_artifact(self, artifact: AudioArtifact) -> None:
        try:
            artifact.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete %s: %s", artifact.path, exc)

    def _safe_stop_recorder(self) -> None:
        try:
            self._recorder.stop()
        except Exception as exc:
            logger.warning("Recorder stop failed: %s", exc)

    def _transition(self, to_state: SessionState, message: str = "", code: str = "") -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.info("Session state %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(StateChange(from_state, to_state, message=message, code=code))
