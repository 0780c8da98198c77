"""
Tests for KeyMonitorProcess supervision.

The helper process is never launched; ``_launch`` is patched and the QProcess
callbacks are driven directly.
"""

from unittest.mock import MagicMock, patch

import pytest
from PySide6.QtCore import QProcess

from voxrelay.core.input.key_monitor import KeyMonitorProcess, default_helper_path


@pytest.fixture
def interpreter():
    return MagicMock()


@pytest.fixture
def monitor(interpreter):
    with patch.object(KeyMonitorProcess, "_launch") as launch:
        mon = KeyMonitorProcess(interpreter, helper_path="/opt/key-monitor", restart_backoff_ms=5000)
        mon.launch = launch
        yield mon
        mon._restart_timer.stop()


class TestStart:
    def test_empty_key_set_does_not_start(self, monitor, interpreter):
        monitor.start([])

        monitor.launch.assert_not_called()
        assert monitor.keys == []
        interpreter.reset.assert_called()

    def test_start_configures_interpreter(self, monitor, interpreter):
        monitor.start(["COMMAND", "FN"])

        monitor.launch.assert_called_once()
        assert monitor.keys == ["COMMAND", "FN"]
        interpreter.set_watched_keys.assert_called_once_with(["COMMAND", "FN"])

    def test_default_helper_path(self):
        path = default_helper_path()
        assert path.name == "key-monitor"
        assert path.parent.name == "resources"


class TestRestart:
    def test_crash_restarts_after_backoff(self, monitor):
        monitor.start(["COMMAND"])
        monitor._on_finished(1, QProcess.ExitStatus.NormalExit)

        assert monitor._restart_timer.isActive()
        assert monitor._restart_timer.interval() == 5000

        monitor._restart()
        assert monitor.launch.call_count == 2
        assert monitor.keys == ["COMMAND"]

    def test_crash_exit_status_restarts(self, monitor):
        monitor.start(["COMMAND"])
        monitor._on_finished(0, QProcess.ExitStatus.CrashExit)

        assert monitor._restart_timer.isActive()

    def test_clean_exit_does_not_restart(self, monitor, qtbot):
        monitor.start(["COMMAND"])

        with qtbot.waitSignal(monitor.stopped, timeout=1000):
            monitor._on_finished(0, QProcess.ExitStatus.NormalExit)

        assert not monitor._restart_timer.isActive()
        assert monitor.keys == []

    def test_stop_cancels_pending_restart(self, monitor):
        monitor.start(["COMMAND"])
        monitor._on_finished(1, QProcess.ExitStatus.NormalExit)
        monitor.stop()

        assert not monitor._restart_timer.isActive()
        monitor._restart()
        assert monitor.launch.call_count == 1

    def test_failed_to_start_does_not_loop(self, monitor, qtbot):
        monitor.start(["COMMAND"])

        with qtbot.waitSignal(monitor.stopped, timeout=1000):
            monitor._on_error(QProcess.ProcessError.FailedToStart)

        assert not monitor._restart_timer.isActive()
        assert monitor.keys == []


class TestOutput:
    def test_lines_are_split_across_reads(self, monitor, interpreter):
        process = MagicMock()
        process.readAllStandardOutput.side_effect = [
            b"Monitoring keys: COMMAND\nCOMMAND_DO",
            b"WN\nCOMMAND_UP\n",
        ]
        monitor._process = process

        monitor._on_stdout()
        monitor._on_stdout()

        lines = [c.args[0] for c in interpreter.on_line.call_args_list]
        assert lines == ["Monitoring keys: COMMAND", "COMMAND_DOWN", "COMMAND_UP"]

    def test_stderr_is_logged(self, monitor):
        process = MagicMock()
        process.readAllStandardError.return_value = b"tap disabled\n"
        monitor._process = process

        with patch("voxrelay.core.input.key_monitor.logger") as mock_logger:
            monitor._on_stderr()

        mock_logger.error.assert_called_once()
        assert "tap disabled" in mock_logger.error.call_args.args[0]
