"""Microphone recorder adapter.

Audio is buffered in memory while the stream runs. ``stop()`` closes the
device right away and hands the samples to a finalizer thread, which writes
the WAV artifact and fires the result callback exactly once per capture.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
import wave
from pathlib import Path
from typing import Any, Callable, Optional

from errors import DEVICE_SETUP_FAILED, RECORDING_FAILED, PipelineError
from models import CHANNELS, MAX_DURATION_S, SAMPLE_RATE, SAMPLE_WIDTH, AudioArtifact, CaptureResult

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

ResultCallback = Callable[[CaptureResult], None]


class DurationWatchdog:
    """Polls elapsed time and fires ``on_expired`` once the limit is reached."""

    def __init__(
        self,
        max_duration_s: float,
        on_expired: Callable[[], None],
        interval_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_duration_s = max_duration_s
        self._on_expired = on_expired
        self._interval_s = interval_s
        self._clock = clock
        self._cancelled = threading.Event()
        self._started_at: Optional[float] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def elapsed_s(self) -> float:
        if self._started_at is None:
            return 0.0
        return self._clock() - self._started_at

    def start(self) -> None:
        self._started_at = self._clock()
        self._cancelled.clear()
        self._thread = threading.Thread(target=self._run, name="capture-watchdog", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def _run(self) -> None:
        while not self._cancelled.wait(self._interval_s):
            if self.elapsed_s >= self._max_duration_s:
                self._cancelled.set()
                logger.info("Recording reached %.0fs limit, stopping", self._max_duration_s)
                self._on_expired()
                return


class SoundDeviceRecorder:
    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
        chunk_ms: int = 100,
        max_duration_s: float = MAX_DURATION_S,
        watchdog_interval_s: float = 1.0,
        output_dir: Path | None = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.max_duration_s = max_duration_s
        self.watchdog_interval_s = watchdog_interval_s
        self.output_dir = output_dir
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._pcm = bytearray()
        self._max_bytes = int(sample_rate * max_duration_s) * channels * SAMPLE_WIDTH
        self._watchdog: Optional[DurationWatchdog] = None
        self._on_result: Optional[ResultCallback] = None
        self._on_limit: Optional[Callable[[], None]] = None
        self.overflow_count = 0

    @property
    def is_recording(self) -> bool:
        return self._running

    def start(
        self,
        on_result: ResultCallback,
        on_limit: Optional[Callable[[], None]] = None,
    ) -> None:
        with self._lock:
            if self._running:
                logger.warning("Capture already active, ignoring start")
                return
            if sd is None:
                raise PipelineError(DEVICE_SETUP_FAILED, "sounddevice is not installed")
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            self._pcm = bytearray()
            self.overflow_count = 0
            try:
                stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    callback=self._on_audio,
                )
                stream.start()
            except Exception as exc:
                raise PipelineError(DEVICE_SETUP_FAILED, str(exc)) from exc
            self._stream = stream
            self._on_result = on_result
            self._on_limit = on_limit
            self._running = True
            self._watchdog = DurationWatchdog(
                self.max_duration_s,
                self._on_watchdog_expired,
                interval_s=self.watchdog_interval_s,
            )
            self._watchdog.start()
        logger.info("Capture started (%d Hz, %d ch)", self.sample_rate, self.channels)

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            if self._watchdog is not None:
                self._watchdog.cancel()
                self._watchdog = None
            stream, self._stream = self._stream, None
            fault: Optional[PipelineError] = None
            try:
                if stream is not None:
                    stream.stop()
                    stream.close()
            except Exception as exc:
                fault = PipelineError(RECORDING_FAILED, str(exc))
            self._running = False
            pcm, self._pcm = bytes(self._pcm), bytearray()
            on_result, self._on_result = self._on_result, None
            self._on_limit = None
        logger.info("Capture stopped, %d bytes buffered", len(pcm))
        threading.Thread(
            target=self._finalize,
            args=(pcm, fault, on_result),
            name="capture-finalize",
            daemon=True,
        ).start()

    def _on_watchdog_expired(self) -> None:
        on_limit = self._on_limit
        self.stop()
        if on_limit is not None:
            on_limit()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running:
            return
        if status:
            self.overflow_count += 1
            logger.warning("Input stream status: %s", status)
        if np is None:
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        room = self._max_bytes - len(self._pcm)
        if room <= 0:
            return
        self._pcm.extend(payload[:room])

    def _finalize(
        self,
        pcm: bytes,
        fault: Optional[PipelineError],
        on_result: Optional[ResultCallback],
    ) -> None:
        if fault is None:
            try:
                result = CaptureResult(artifact=self._write_artifact(pcm))
            except (OSError, wave.Error) as exc:
                logger.warning("Failed to write recording: %s", exc)
                result = CaptureResult(error=PipelineError(RECORDING_FAILED, str(exc)))
        else:
            logger.warning("Device fault while stopping capture: %s", fault.detail)
            result = CaptureResult(error=fault)
        if on_result is None:
            if result.artifact is not None:
                result.artifact.path.unlink(missing_ok=True)
            return
        on_result(result)

    def _write_artifact(self, pcm: bytes) -> AudioArtifact:
        fd, name = tempfile.mkstemp(prefix="recording_", suffix=".wav", dir=self.output_dir)
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as fh:
                with wave.open(fh, "wb") as wf:
                    wf.setnchannels(self.channels)
                    wf.setsampwidth(SAMPLE_WIDTH)
                    wf.setframerate(self.sample_rate)
                    wf.writeframes(pcm)
            size = path.stat().st_size
        except (OSError, wave.Error):
            path.unlink(missing_ok=True)
            raise
        bytes_per_second = self.sample_rate * self.channels * SAMPLE_WIDTH
        return AudioArtifact(
            path=path,
            size_bytes=size,
            duration_s=len(pcm) / bytes_per_second,
            sample_rate=self.sample_rate,
            channels=self.channels,
        )
