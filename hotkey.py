"""Global push-to-talk key based on pynput."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)


def normalize_key_name(name: str) -> str:
    """Accept ``alt_r``, ``Key.alt_r`` or a single character."""
    name = name.strip()
    if len(name) == 1:
        return repr(name)
    if not name.startswith("Key."):
        return f"Key.{name}"
    return name


class PushToTalkHotkey:
    def __init__(self, hotkey_name: str = "Key.alt_r") -> None:
        self._hotkey_name = normalize_key_name(hotkey_name)
        self._listener: Optional[object] = None
        self._held = False
        self._lock = threading.Lock()

    @property
    def hotkey_name(self) -> str:
        return self._hotkey_name

    @property
    def is_held(self) -> bool:
        return self._held

    def matches(self, key: object) -> bool:
        return str(key) == self._hotkey_name

    def handle_press(self, key: object, on_press: Callable[[], None]) -> None:
        if not self.matches(key):
            return
        with self._lock:
            # Key auto-repeat delivers repeated presses while held.
            if self._held:
                return
            self._held = True
        on_press()

    def handle_release(self, key: object, on_release: Callable[[], None]) -> None:
        if not self.matches(key):
            return
        with self._lock:
            if not self._held:
                return
            self._held = False
        on_release()

    def start(self, on_press: Callable[[], None], on_release: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self._listener = keyboard.Listener(
            on_press=lambda key: self.handle_press(key, on_press),
            on_release=lambda key: self.handle_release(key, on_release),
        )
        self._listener.start()
        logger.info("Listening for push-to-talk key %s", self._hotkey_name)

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
