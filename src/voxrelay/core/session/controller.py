"""
Recording session orchestration.

The controller owns the single recording session, turns shortcut intents
into capture/processing actions, and is the only place that decides the
user-visible status. A cancelled session suppresses every later side effect:
transcription, history and paste.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ...utils.logger import get_logger
from ..asr.dispatcher import TranscriptionDispatcher
from ..audio.recorder import AudioBuffer, AudioCapture
from ..errors import CaptureError, HistoryError
from ..input.shortcut import ShortcutIntent
from ..settings.history import HistoryEntry, HistoryRecorder
from ..settings.settings import Settings, get_settings
from .status import RecordingStatus
from .token import CancellationToken
from .worker import ProcessingOutcome, ProcessingWorker

logger = get_logger(__name__)


@dataclass
class RecordingSession:
    status: RecordingStatus = RecordingStatus.RECORDING
    token: CancellationToken = field(default_factory=CancellationToken)

    @property
    def cancelled(self) -> bool:
        return self.token.is_cancelled()


class RecordingSessionController(QObject):
    """
    Signals:
        status_changed: Emitted with the new RecordingStatus on every transition
        result_ready: Emitted with the ProcessingOutcome once text was delivered
        error_occurred: Emitted with a message when a run ends in ERROR
    """

    status_changed = Signal(object)
    result_ready = Signal(object)
    error_occurred = Signal(str)

    def __init__(
        self,
        capture: AudioCapture,
        dispatcher: TranscriptionDispatcher,
        history: Optional[HistoryRecorder] = None,
        output: Optional[Callable[[str], None]] = None,
        settings_provider: Callable[[], Settings] = get_settings,
        worker_factory: Callable[..., ProcessingWorker] = ProcessingWorker,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._capture = capture
        self._dispatcher = dispatcher
        self._history = history
        self._output = output
        self._settings_provider = settings_provider
        self._worker_factory = worker_factory

        self._session: Optional[RecordingSession] = None
        self._status = RecordingStatus.IDLE
        self._workers: List[ProcessingWorker] = []

        self._error_timer = QTimer(self)
        self._error_timer.setSingleShot(True)
        self._error_timer.timeout.connect(self._on_error_timeout)

    @property
    def status(self) -> RecordingStatus:
        return self._status

    @property
    def session(self) -> Optional[RecordingSession]:
        return self._session

    def handle_intent(self, intent: ShortcutIntent) -> None:
        logger.debug(f"Intent {intent.value} with status {self._status.value}")

        if intent in (ShortcutIntent.START, ShortcutIntent.TOGGLE_START):
            self.start()
        elif intent in (ShortcutIntent.STOP_HOLD, ShortcutIntent.TOGGLE_STOP):
            buffer = self.stop_and_finalize()
            if buffer is not None:
                self._begin_processing(buffer)
        elif intent in (
            ShortcutIntent.CANCEL_CLICK,
            ShortcutIntent.ESCAPE_CANCEL,
            ShortcutIntent.CANCEL_PROCESSING,
        ):
            self.cancel()

    def start(self) -> bool:
        if self._session is not None:
            logger.warning(
                f"Cannot start recording, a session is already {self._session.status.value}"
            )
            return False

        self._error_timer.stop()

        try:
            self._capture.start()
        except CaptureError as e:
            self._fail(f"Could not start recording: {e}")
            return False

        self._session = RecordingSession()
        self._set_status(RecordingStatus.RECORDING)
        logger.info("Recording started")
        return True

    def stop_and_finalize(self) -> Optional[AudioBuffer]:
        """
        Stop capture and return the recorded buffer.

        Returns None, and ends the session as if cancelled, when nothing
        audible was captured.
        """
        session = self._session
        if session is None or session.status is not RecordingStatus.RECORDING:
            logger.debug("Stop requested with no active recording")
            return None

        try:
            buffer = self._capture.stop()
        except Exception as e:
            self._capture.cancel()
            self._fail(f"Could not finish recording: {e}")
            return None

        if session.cancelled:
            self._end_session()
            return None

        if buffer is None or buffer.frames == 0:
            logger.info("No audio captured, discarding session")
            self._end_session()
            return None

        threshold = self._settings_provider().audio.silence_threshold
        if buffer.is_silent(threshold):
            logger.info(f"Recording is silent (peak {buffer.peak:.3f}), discarding session")
            self._end_session()
            return None

        logger.info(f"Recording finalized: {buffer.duration:.1f}s")
        return buffer

    def cancel(self) -> None:
        session = self._session
        if session is None:
            return

        session.token.cancel()
        if session.status is RecordingStatus.RECORDING:
            self._capture.cancel()
            logger.info("Recording cancelled")
        else:
            logger.info("Processing cancelled")

        self._end_session()

    def shutdown(self, timeout_ms: int = 5000) -> None:
        self.cancel()
        self._error_timer.stop()
        for worker in list(self._workers):
            if not worker.wait(timeout_ms):
                logger.warning("Processing worker did not finish before shutdown")

    def _begin_processing(self, buffer: AudioBuffer) -> None:
        session = self._session
        session.status = RecordingStatus.PROCESSING
        self._set_status(RecordingStatus.PROCESSING)

        worker = self._worker_factory(
            buffer,
            session.token,
            self._dispatcher,
            settings_provider=self._settings_provider,
            parent=self,
        )
        worker.completed.connect(self._on_worker_completed)
        worker.failed.connect(self._on_worker_failed)
        worker.cancelled.connect(self._on_worker_cancelled)
        worker.finished.connect(self._on_worker_thread_finished)
        self._workers.append(worker)
        worker.start()

    def _is_current(self, token: CancellationToken) -> bool:
        session = self._session
        return (
            session is not None
            and session.token is token
            and session.status is RecordingStatus.PROCESSING
            and not token.is_cancelled()
        )

    def _on_worker_completed(self, token: CancellationToken, outcome: ProcessingOutcome) -> None:
        if not self._is_current(token):
            logger.info("Discarding result of a cancelled session")
            return

        self._record_history(outcome)
        self._deliver(outcome.delivered_text)
        self._session = None
        self.result_ready.emit(outcome)

        if outcome.enhancement_failed:
            self._fail(f"Enhancement failed: {outcome.enhancement_error}")
        else:
            self._set_status(RecordingStatus.IDLE)

    def _on_worker_failed(self, token: CancellationToken, message: str) -> None:
        if not self._is_current(token):
            logger.debug(f"Ignoring failure of a stale session: {message}")
            return
        self._session = None
        self._fail(message)

    def _on_worker_cancelled(self, token: CancellationToken) -> None:
        if not self._is_current(token):
            return
        self._end_session()

    def _on_worker_thread_finished(self) -> None:
        for worker in [w for w in self._workers if w.isFinished()]:
            self._workers.remove(worker)
            worker.deleteLater()

    def _record_history(self, outcome: ProcessingOutcome) -> None:
        if self._history is None:
            return

        entry = HistoryEntry.create(
            original_text=outcome.original_text,
            final_text=outcome.final_text,
            steps=outcome.steps,
        )
        try:
            self._history.record(entry)
        except HistoryError as e:
            logger.error(f"Failed to save history entry: {e}", exc_info=True)

    def _deliver(self, text: str) -> None:
        if self._output is None:
            return
        try:
            self._output(text)
        except Exception as e:
            logger.error(f"Failed to deliver text: {e}", exc_info=True)

    def _end_session(self) -> None:
        self._session = None
        self._set_status(RecordingStatus.IDLE)

    def _fail(self, message: str) -> None:
        logger.error(message)
        self._session = None
        self._set_status(RecordingStatus.ERROR)
        self.error_occurred.emit(message)
        self._error_timer.start(self._settings_provider().error_display_ms)

    def _on_error_timeout(self) -> None:
        if self._status is RecordingStatus.ERROR and self._session is None:
            self._set_status(RecordingStatus.IDLE)

    def _set_status(self, status: RecordingStatus) -> None:
        if status is self._status and status is not RecordingStatus.ERROR:
            return
        self._status = status
        logger.debug(f"Status -> {status.value}")
        self.status_changed.emit(status)
