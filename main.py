"""Application entrypoint."""

from __future__ import annotations

import logging
import os
import sys

from auto_paste import ClipboardPasteService
from config import JsonConfigStore
from hotkey import PushToTalkHotkey
from models import SessionState, StateChange
from overlay import StatusOverlay
from permission import SoundDevicePermission
from recorder import SoundDeviceRecorder
from session_controller import SessionController
from transcriber import TranscriptionClient

try:
    from PySide6.QtCore import QObject, QSize, Signal
    from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QLineEdit, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)

ICON_COLORS = {
    SessionState.IDLE.value: "#888888",  # grey
    SessionState.RECORDING.value: "#FF4444",  # red
    SessionState.PROCESSING.value: "#3B82F6",  # blue
    SessionState.ERROR.value: "#FF8800",  # orange
}

TOOLTIPS = {
    SessionState.IDLE.value: "talk2type — Ready",
    SessionState.RECORDING.value: "talk2type — Recording...",
    SessionState.PROCESSING.value: "talk2type — Transcribing...",
    SessionState.ERROR.value: "talk2type — Error",
}


def _create_icon(color: str, size: int = 22) -> QIcon:
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


def setup_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


class UIBridge(QObject):
    state_signal = Signal(str, str)  # state, message


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        settings = self.config_store.get_settings()

        self.overlay = StatusOverlay()
        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_change_ui)

        self.controller = SessionController(
            recorder=SoundDeviceRecorder(max_duration_s=settings.max_duration_s),
            transcriber=TranscriptionClient.from_settings(settings),
            paste_service=ClipboardPasteService(),
            credentials=self.config_store.get_api_key,
            permission=SoundDevicePermission(),
            error_display_s=settings.error_display_s,
            on_state_change=self._on_state_change,
        )
        self.hotkey = PushToTalkHotkey(hotkey_name=self.config_store.get_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_COLORS[SessionState.IDLE.value]))
        self.tray.setToolTip(TOOLTIPS[SessionState.IDLE.value])
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        hotkey_action = QAction("Set Hotkey", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)
        self._menu = menu

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(
            None, "API Key", "Groq API Key", QLineEdit.EchoMode.Password
        )
        if not ok:
            return
        self.config_store.set_api_key(value)
        QMessageBox.information(None, "Saved", "API Key saved. It applies to the next recording.")

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Hotkey", "Use pynput key format, e.g. Key.alt_r"
        )
        if not ok or not value:
            return
        self.config_store.set_hotkey(value)
        QMessageBox.information(None, "Saved", "Hotkey saved. Restart app to apply.")

    # ------------------------------------------------------------------
    # Controller callback (control thread → signal to UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, change: StateChange) -> None:
        self.ui.state_signal.emit(change.state.value, change.message)

    def _on_state_change_ui(self, state: str, message: str) -> None:
        self.tray.setIcon(_create_icon(ICON_COLORS[state]))
        tooltip = TOOLTIPS[state]
        if message:
            tooltip = f"{tooltip}: {message}"
        self.tray.setToolTip(tooltip)
        self.overlay.show_state(state, message)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        if not self.config_store.get_api_key():
            self.tray.showMessage("talk2type", "Set your Groq API key from the tray menu.")
        try:
            self.hotkey.start(
                on_press=self.controller.start_session,
                on_release=self.controller.stop_session,
            )
        except Exception as exc:
            logger.error("Hotkey disabled: %s", exc)
            self.overlay.show_state(SessionState.ERROR.value, f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.cancel_session("app quit")
        self.controller.loop.flush(timeout=1.0)
        self.controller.close()
        self.app.quit()


def main() -> int:
    setup_logging()
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
