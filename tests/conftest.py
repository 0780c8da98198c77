"""
Pytest configuration for Qt-based tests.

Provides fixtures for proper Qt object cleanup between tests to prevent segfaults,
plus fakes for the clock, audio capture, transcription provider and worker.
"""

import os
import tempfile

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("VOXRELAY_LOG_DIR", tempfile.mkdtemp(prefix="voxrelay-logs-"))

import pytest
from PySide6.QtCore import QObject, Signal
from PySide6.QtWidgets import QApplication

from voxrelay.core.audio.recorder import AudioBuffer
from voxrelay.core.errors import CaptureError
from voxrelay.core.settings.history import HistoryRecorder
from voxrelay.core.settings.settings import Settings


@pytest.fixture(autouse=True)
def cleanup_qt_objects(qtbot, request):
    """
    Auto-cleanup fixture that runs after each test to ensure Qt objects are
    properly destroyed before the next test starts.

    This prevents segmentation faults caused by dangling Qt object references.
    """
    yield

    # Process any pending events
    app = QApplication.instance()
    if app:
        app.processEvents()


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def set(self, ms: float) -> None:
        self.now = ms


def make_buffer(peak: float = 0.5, frames: int = 16000) -> AudioBuffer:
    return AudioBuffer(
        data=b"RIFF0000WAVEfmt ",
        mime_type="audio/wav",
        frames=frames,
        sample_rate=16000,
        peak=peak,
    )


class FakeAudioCapture:
    def __init__(self):
        self.is_recording = False
        self.fail_start = False
        self.fail_stop = False
        self.next_buffer = make_buffer()
        self.start_calls = 0
        self.stop_calls = 0
        self.cancel_calls = 0

    def start(self) -> None:
        self.start_calls += 1
        if self.fail_start:
            raise CaptureError("no input device")
        self.is_recording = True

    def stop(self):
        self.stop_calls += 1
        if self.fail_stop:
            raise OSError("device disconnected")
        self.is_recording = False
        return self.next_buffer

    def cancel(self) -> None:
        self.cancel_calls += 1
        self.is_recording = False


class FakeProvider:
    def __init__(self, provider_id: str = "fake", text: str = "hello world", error=None):
        self.provider_id = provider_id
        self.text = text
        self.error = error
        self.calls = []

    def transcribe(self, buffer, settings, language=None):
        self.calls.append((buffer, settings, language))
        if self.error is not None:
            raise self.error
        return self.text


class FakeDispatcher:
    def __init__(self, text: str = "hello world", error=None, on_transcribe=None):
        self.text = text
        self.error = error
        self.on_transcribe = on_transcribe
        self.calls = 0

    def transcribe(self, buffer):
        self.calls += 1
        if self.on_transcribe is not None:
            self.on_transcribe()
        if self.error is not None:
            raise self.error
        return self.text


class FakeWorker(QObject):
    """Stands in for ProcessingWorker; the test emits its signals by hand."""

    completed = Signal(object, object)
    failed = Signal(object, str)
    cancelled = Signal(object)
    finished = Signal()

    instances = []

    def __init__(self, buffer, token, dispatcher, settings_provider=None, parent=None):
        super().__init__(parent)
        self.buffer = buffer
        self.token = token
        self.dispatcher = dispatcher
        self.started = False
        FakeWorker.instances.append(self)

    def start(self) -> None:
        self.started = True

    def wait(self, timeout_ms: int = 0) -> bool:
        return True

    def isFinished(self) -> bool:
        return False


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def capture():
    return FakeAudioCapture()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def history(tmp_path):
    return HistoryRecorder(tmp_path / "history.db")


@pytest.fixture
def fake_worker_factory():
    FakeWorker.instances = []
    yield FakeWorker
    FakeWorker.instances = []
