"""Application runtime."""

import signal
import sys
from typing import Optional

from PySide6.QtCore import QFileSystemWatcher, QObject
from PySide6.QtWidgets import QApplication

from voxrelay import __app_name__, __version__
from voxrelay.core.asr import TranscriptionDispatcher
from voxrelay.core.audio import AudioRecorder
from voxrelay.core.input import KeyEventInterpreter, KeyMonitorProcess
from voxrelay.core.output import TextOutputController
from voxrelay.core.session.controller import RecordingSessionController
from voxrelay.core.session.status import RecordingStatus
from voxrelay.core.settings import HistoryRecorder, get_config_dir, get_settings, reload_settings
from voxrelay.ui.tray import SystemTray
from voxrelay.utils.logger import get_logger, shutdown_logging

logger = get_logger(__name__)


class VoxRelayApp(QObject):

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)

        self._settings = get_settings()

        self._tray = SystemTray()
        self._recorder = AudioRecorder(
            sample_rate=self._settings.audio.sample_rate,
            device=self._settings.audio.input_device,
        )
        self._history = HistoryRecorder()
        self._text_output = TextOutputController()
        self._controller = RecordingSessionController(
            capture=self._recorder,
            dispatcher=TranscriptionDispatcher(),
            history=self._history,
            output=self._text_output.output_text,
            parent=self,
        )

        shortcut = self._settings.shortcut
        self._interpreter = KeyEventInterpreter(
            status_provider=lambda: self._controller.status,
            hold_threshold_ms=shortcut.hold_threshold_ms,
            double_click_window_ms=shortcut.double_click_window_ms,
            watched_keys=shortcut.watched_keys,
            parent=self,
        )
        self._key_monitor = KeyMonitorProcess(
            self._interpreter,
            helper_path=shortcut.key_monitor_path,
            restart_backoff_ms=shortcut.restart_backoff_ms,
            parent=self,
        )

        self._settings_watcher = QFileSystemWatcher(self)
        settings_file = get_config_dir() / "settings.json"
        if settings_file.exists():
            self._settings_watcher.addPath(str(settings_file))
        self._settings_watcher.fileChanged.connect(self._on_settings_file_changed)

        self._interpreter.intent.connect(self._controller.handle_intent)
        self._interpreter.raw_action.connect(self._on_raw_action)
        self._controller.status_changed.connect(self._on_status_changed)
        self._controller.error_occurred.connect(self._tray.show_error)
        self._controller.result_ready.connect(self._on_result_ready)
        self._tray.quit_requested.connect(self._quit)

    def run(self) -> None:
        logger.info(f"Starting {__app_name__} v{__version__}")
        logger.info(
            f"Settings: provider={self._settings.transcription.provider}, "
            f"enhancement={'on' if self._settings.enhancement.enabled else 'off'}, "
            f"keys={', '.join(self._settings.shortcut.watched_keys)}"
        )
        self._key_monitor.start(self._settings.shortcut.watched_keys)
        logger.info("Application initialization complete")

    def apply_settings(self) -> None:
        old_keys = list(self._settings.shortcut.watched_keys)
        self._settings = reload_settings()
        shortcut = self._settings.shortcut

        self._interpreter.hold_threshold_ms = shortcut.hold_threshold_ms
        self._interpreter.double_click_window_ms = shortcut.double_click_window_ms
        self._key_monitor.restart_backoff_ms = shortcut.restart_backoff_ms

        if not self._recorder.is_recording:
            self._recorder.sample_rate = self._settings.audio.sample_rate
            self._recorder.device = self._settings.audio.input_device

        if shortcut.watched_keys != old_keys:
            logger.info(
                f"Watched keys changed: {old_keys} -> {shortcut.watched_keys}, restarting key monitor"
            )
            self._key_monitor.start(shortcut.watched_keys)

    def _on_settings_file_changed(self, path: str) -> None:
        logger.info("Settings file changed, reloading")
        # Editors that replace the file drop it from the watch list
        if path not in self._settings_watcher.files():
            self._settings_watcher.addPath(path)
        self.apply_settings()

    def _on_status_changed(self, status: RecordingStatus) -> None:
        self._tray.set_status(status)

    def _on_raw_action(self, action: str, key_name: str) -> None:
        logger.debug(f"Shortcut action {action} on {key_name}")

    def _on_result_ready(self, outcome) -> None:
        if outcome.enhancement_failed:
            logger.warning("Delivered original transcription after enhancement failure")

    def _quit(self) -> None:
        logger.info("Shutting down application")
        self._key_monitor.stop()
        self._controller.shutdown()
        self._tray.hide()
        QApplication.quit()
        logger.info("Application shutdown complete")
        shutdown_logging()


def main():
    app = QApplication(sys.argv)
    app.setApplicationName(__app_name__)
    app.setQuitOnLastWindowClosed(False)
    signal.signal(signal.SIGINT, lambda *args: QApplication.quit())

    voxrelay_app = VoxRelayApp()
    voxrelay_app.run()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
