"""Microphone permission check.

There is no portable way to query the OS microphone grant, so the default
input device is checked against the capture settings instead; a denied or
missing microphone fails that check.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from models import CHANNELS, SAMPLE_RATE

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDevicePermission:
    def __init__(self, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._granted = False

    def request(self, on_result: Callable[[bool], None]) -> None:
        if self._granted:
            on_result(True)
            return
        threading.Thread(target=self._check_device, args=(on_result,), name="mic-permission", daemon=True).start()

    def _check_device(self, on_result: Callable[[bool], None]) -> None:
        granted = self.check()
        if granted:
            self._granted = True
        on_result(granted)

    def check(self) -> bool:
        if sd is None:
            logger.warning("sounddevice is not installed, microphone unavailable")
            return False
        try:
            sd.check_input_settings(samplerate=self.sample_rate, channels=self.channels, dtype="int16")
        except Exception as exc:
            logger.warning("Microphone unavailable: %s", exc)
            return False
        return True
