"""Insert text at the cursor through the clipboard and a paste keystroke."""

from __future__ import annotations

import logging
import sys
import time

from models import PasteResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


class ClipboardPasteService:
    def __init__(self, restore_delay_s: float = 0.1, platform: str | None = None) -> None:
        self._restore_delay_s = restore_delay_s
        self._platform = platform or sys.platform

    def _modifier(self) -> object:
        return Key.cmd if self._platform == "darwin" else Key.ctrl

    def paste_text(self, text: str) -> PasteResult:
        if not text:
            return PasteResult(success=False, reason="empty text", clipboard_restored=True)
        if pyperclip is None or Controller is None or Key is None:
            return PasteResult(
                success=False,
                reason="clipboard/keyboard dependency missing",
                clipboard_restored=False,
            )

        old_clip: str | None = None
        try:
            old_clip = pyperclip.paste()
            pyperclip.copy(text)
            keyboard = Controller()
            modifier = self._modifier()
            with keyboard.pressed(modifier):
                keyboard.press("v")
                keyboard.release("v")
            time.sleep(self._restore_delay_s)
            pyperclip.copy(old_clip)
            logger.debug("Inserted %d chars", len(text))
            return PasteResult(success=True, reason="ok", clipboard_restored=True)
        except Exception as exc:
            logger.warning("Paste failed: %s", exc)
            restored = False
            if old_clip is not None:
                try:
                    pyperclip.copy(old_clip)
                    restored = True
                except Exception as restore_exc:
                    logger.warning("Could not restore clipboard: %s", restore_exc)
            return PasteResult(success=False, reason=str(exc), clipboard_restored=restored)
