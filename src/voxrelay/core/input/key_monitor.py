"""
Supervision of the native key-monitor helper.

The helper is started with the watched key names as arguments and reports
key edges on stdout, one per line. A crash (non-zero exit) restarts it after
a fixed backoff with the same key set.
"""

from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QObject, QProcess, QTimer, Signal

from ...utils.logger import get_logger
from ..settings.config import KEY_MONITOR_RESTART_MS
from .shortcut import KeyEventInterpreter

logger = get_logger(__name__)


def default_helper_path() -> Path:
    return Path(__file__).resolve().parents[2] / "resources" / "key-monitor"


class KeyMonitorProcess(QObject):
    """
    Signals:
        started: Emitted once the helper process is running
        stopped: Emitted when the helper exits and will not be restarted
    """

    started = Signal()
    stopped = Signal()

    def __init__(
        self,
        interpreter: KeyEventInterpreter,
        helper_path: Optional[str] = None,
        restart_backoff_ms: int = KEY_MONITOR_RESTART_MS,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._interpreter = interpreter
        self.helper_path = str(helper_path or default_helper_path())
        self.restart_backoff_ms = restart_backoff_ms

        self._process: Optional[QProcess] = None
        self._keys: List[str] = []
        self._stop_requested = False
        self._stdout_buffer = b""

        self._restart_timer = QTimer(self)
        self._restart_timer.setSingleShot(True)
        self._restart_timer.timeout.connect(self._restart)

    @property
    def keys(self) -> List[str]:
        return list(self._keys)

    @property
    def is_running(self) -> bool:
        return (
            self._process is not None
            and self._process.state() != QProcess.ProcessState.NotRunning
        )

    def start(self, keys) -> None:
        if self._process is not None:
            logger.debug("Stopping existing key monitor before starting a new one")
            self.stop()

        names = [getattr(k, "value", k) for k in keys]
        if not names:
            logger.info("No keys specified to monitor, key monitor not started")
            self._keys = []
            self._interpreter.reset()
            return

        self._keys = names
        self._stop_requested = False
        self._interpreter.set_watched_keys(names)
        self._launch()

    def stop(self) -> None:
        self._restart_timer.stop()
        self._stop_requested = True

        process = self._process
        self._process = None
        if process is not None:
            logger.info("Stopping key monitor process")
            process.readyReadStandardOutput.disconnect(self._on_stdout)
            process.readyReadStandardError.disconnect(self._on_stderr)
            process.finished.disconnect(self._on_finished)
            process.errorOccurred.disconnect(self._on_error)
            process.kill()
            process.waitForFinished(1000)
            process.deleteLater()

        self._keys = []
        self._stdout_buffer = b""
        self._interpreter.reset()

    def _launch(self) -> None:
        logger.info(
            f"Starting key monitor at {self.helper_path} with keys: {', '.join(self._keys)}"
        )
        self._interpreter.reset()
        self._stdout_buffer = b""

        process = QProcess(self)
        process.readyReadStandardOutput.connect(self._on_stdout)
        process.readyReadStandardError.connect(self._on_stderr)
        process.finished.connect(self._on_finished)
        process.errorOccurred.connect(self._on_error)
        process.started.connect(self.started)
        self._process = process
        process.start(self.helper_path, self._keys)

    def _restart(self) -> None:
        if self._stop_requested or not self._keys:
            return
        logger.info("Restarting key monitor")
        self._launch()

    def _on_stdout(self) -> None:
        if self._process is None:
            return
        self._stdout_buffer += bytes(self._process.readAllStandardOutput())
        *lines, self._stdout_buffer = self._stdout_buffer.split(b"\n")
        for raw in lines:
            line = raw.decode("utf-8", errors="replace").strip()
            if line:
                self._interpreter.on_line(line)

    def _on_stderr(self) -> None:
        if self._process is None:
            return
        text = bytes(self._process.readAllStandardError()).decode(
            "utf-8", errors="replace"
        )
        if text.strip():
            logger.error(f"Key monitor error: {text.strip()}")

    def _on_finished(self, exit_code: int, exit_status) -> None:
        logger.warning(f"Key monitor process exited with code {exit_code}")
        process, self._process = self._process, None
        if process is not None:
            process.deleteLater()

        crashed = exit_status == QProcess.ExitStatus.CrashExit
        if (exit_code != 0 or crashed) and not self._stop_requested:
            logger.info(f"Restarting key monitor in {self.restart_backoff_ms}ms")
            self._interpreter.reset()
            self._restart_timer.start(self.restart_backoff_ms)
            return

        self._keys = []
        self._interpreter.reset()
        self.stopped.emit()

    def _on_error(self, error) -> None:
        if error != QProcess.ProcessError.FailedToStart:
            logger.debug(f"Key monitor process error: {error}")
            return

        logger.error(f"Failed to start key monitor process at {self.helper_path}")
        process, self._process = self._process, None
        if process is not None:
            process.deleteLater()
        self._keys = []
        self._interpreter.reset()
        self.stopped.emit()
