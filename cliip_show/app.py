"""Resident HUD application: Qt event loop, clipboard polling and auto-dismiss."""
from __future__ import annotations

import logging
import os
import signal
import sys
import time
from typing import Callable, Optional

from PyQt6.QtCore import QTimer
from PyQt6.QtGui import QClipboard
from PyQt6.QtWidgets import QApplication

from cliip_show.clipboard_watcher import ClipboardSnapshot, ClipboardWatcher
from cliip_show.config_store import config_file_path, resolve_display_settings
from cliip_show.display_controller import DisplayController
from cliip_show.errors import CliipShowError
from cliip_show.logging_utils import configure_app_logging
from cliip_show.overlay_window import HudOverlayWindow
from cliip_show.settings import DisplaySettings

_LOGGER = logging.getLogger("CliipShow.App")

# Lets the Python interpreter run its signal handlers while Qt owns the loop.
_SIGNAL_WAKE_MS = 250


def clipboard_reader(clipboard: QClipboard) -> Callable[[], Optional[str]]:
    def read_text() -> Optional[str]:
        mime = clipboard.mimeData(QClipboard.Mode.Clipboard)
        if mime is None or not mime.hasText():
            return None
        return mime.text()

    return read_text


def _seconds_to_ms(seconds: float) -> int:
    return max(1, int(round(seconds * 1000.0)))


class ResidentHud:
    """Wires the watcher, the controller and the overlay to two QTimers."""

    def __init__(
        self,
        settings: DisplaySettings,
        *,
        read_text: Callable[[], Optional[str]],
        window: HudOverlayWindow,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = window
        self.watcher = ClipboardWatcher(read_text)
        self.controller = DisplayController(
            settings,
            present=window.present,
            hide=window.dismiss,
            clock=clock,
        )
        self.poll_timer = QTimer()
        self.poll_timer.setInterval(_seconds_to_ms(settings.poll_interval_secs))
        self.poll_timer.timeout.connect(self.poll_once)
        self.dismiss_timer = QTimer()
        self.dismiss_timer.setSingleShot(True)
        self.dismiss_timer.timeout.connect(self._on_dismiss_timeout)
        self.controller.configure_timer_hooks(
            arm_timer=lambda seconds: self.dismiss_timer.start(_seconds_to_ms(seconds)),
            cancel_timer=self.dismiss_timer.stop,
        )

    def start(self) -> None:
        self.watcher.poll()
        self.poll_timer.start()

    def stop(self) -> None:
        self.poll_timer.stop()
        self.controller.dismiss()

    def update_settings(self, settings: DisplaySettings) -> None:
        self.controller.update_settings(settings)
        self.poll_timer.setInterval(_seconds_to_ms(settings.poll_interval_secs))

    def poll_once(self) -> Optional[ClipboardSnapshot]:
        snapshot = self.watcher.poll()
        if snapshot is None:
            return None
        try:
            self.controller.handle_change(snapshot)
        except CliipShowError as exc:
            _LOGGER.warning("Failed to show clipboard HUD: %s", exc)
        return snapshot

    def _on_dismiss_timeout(self) -> None:
        self.controller.tick()


def run_resident(argv: Optional[list[str]] = None) -> int:
    log_path = configure_app_logging()
    settings = resolve_display_settings()
    _LOGGER.info("Starting cliip-show (pid=%s); log file %s", os.getpid(), log_path)
    _LOGGER.info("Config path: %s", config_file_path())
    _LOGGER.info("Effective settings: %s", "; ".join(settings.describe()))

    app = QApplication.instance() or QApplication(sys.argv if argv is None else argv)
    app.setQuitOnLastWindowClosed(False)
    window = HudOverlayWindow()
    resident = ResidentHud(settings, read_text=clipboard_reader(app.clipboard()), window=window)
    app.aboutToQuit.connect(resident.stop)

    signal.signal(signal.SIGINT, lambda *_: app.quit())
    signal.signal(signal.SIGTERM, lambda *_: app.quit())
    wake_timer = QTimer()
    wake_timer.timeout.connect(lambda: None)
    wake_timer.start(_SIGNAL_WAKE_MS)

    resident.start()
    exit_code = app.exec()
    wake_timer.stop()
    _LOGGER.info("cliip-show exiting with code %s", exit_code)
    return int(exit_code)
