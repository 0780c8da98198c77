"""
Tests for RecordingSessionController.

The worker is replaced by FakeWorker, whose signals the tests emit by hand to
simulate a background thread finishing at a chosen moment.
"""

import pytest

from voxrelay.core.input.shortcut import ShortcutIntent
from voxrelay.core.session.controller import RecordingSessionController
from voxrelay.core.session.status import RecordingStatus
from voxrelay.core.session.worker import ProcessingOutcome
from voxrelay.core.transcript_processor.pipeline import PromptStepResult

from conftest import FakeDispatcher, make_buffer


@pytest.fixture
def pasted():
    return []


@pytest.fixture
def controller(capture, history, settings, pasted, fake_worker_factory):
    ctrl = RecordingSessionController(
        capture,
        FakeDispatcher(),
        history=history,
        output=pasted.append,
        settings_provider=lambda: settings,
        worker_factory=fake_worker_factory,
    )
    ctrl.statuses = []
    ctrl.status_changed.connect(ctrl.statuses.append)
    yield ctrl
    ctrl.shutdown()


def record_and_stop(controller, intent=ShortcutIntent.STOP_HOLD):
    controller.handle_intent(ShortcutIntent.START)
    controller.handle_intent(intent)


STEP = PromptStepResult(
    step_id="default_clean_transcription",
    step_name="Clean Transcription",
    rendered_prompt="prompt",
    output_text="Hello world.",
)


class TestRecording:
    def test_start_sets_recording(self, controller, capture):
        controller.handle_intent(ShortcutIntent.START)

        assert controller.status is RecordingStatus.RECORDING
        assert capture.start_calls == 1
        assert controller.statuses == [RecordingStatus.RECORDING]

    def test_start_while_recording_is_ignored(self, controller, capture):
        controller.handle_intent(ShortcutIntent.START)
        assert controller.start() is False
        assert capture.start_calls == 1

    def test_click_cancel_discards_recording(self, controller, capture, fake_worker_factory):
        record_and_stop(controller, ShortcutIntent.CANCEL_CLICK)

        assert capture.cancel_calls == 1
        assert controller.status is RecordingStatus.IDLE
        assert fake_worker_factory.instances == []

    def test_stop_starts_processing(self, controller, capture, fake_worker_factory):
        record_and_stop(controller)

        assert capture.stop_calls == 1
        assert controller.status is RecordingStatus.PROCESSING
        worker = fake_worker_factory.instances[0]
        assert worker.started is True
        assert worker.token is controller.session.token

    def test_toggle_stop_starts_processing(self, controller):
        controller.handle_intent(ShortcutIntent.TOGGLE_START)
        controller.handle_intent(ShortcutIntent.TOGGLE_STOP)

        assert controller.status is RecordingStatus.PROCESSING

    def test_stop_without_session_does_nothing(self, controller, capture):
        controller.handle_intent(ShortcutIntent.STOP_HOLD)

        assert capture.stop_calls == 0
        assert controller.statuses == []

    def test_silent_recording_returns_to_idle(self, controller, capture, fake_worker_factory):
        capture.next_buffer = make_buffer(peak=0.02)
        record_and_stop(controller)

        assert controller.status is RecordingStatus.IDLE
        assert fake_worker_factory.instances == []

    def test_silence_threshold_from_settings(self, controller, capture, settings, fake_worker_factory):
        settings.audio.silence_threshold = 0.01
        capture.next_buffer = make_buffer(peak=0.02)
        record_and_stop(controller)

        assert len(fake_worker_factory.instances) == 1

    def test_zero_frames_returns_to_idle(self, controller, capture, fake_worker_factory):
        capture.next_buffer = make_buffer(frames=0)
        record_and_stop(controller)

        assert controller.status is RecordingStatus.IDLE
        assert fake_worker_factory.instances == []

    def test_no_buffer_returns_to_idle(self, controller, capture):
        capture.next_buffer = None
        record_and_stop(controller)

        assert controller.status is RecordingStatus.IDLE


class TestCompletion:
    def test_result_is_pasted_and_recorded(self, controller, history, pasted, fake_worker_factory):
        results = []
        controller.result_ready.connect(results.append)
        record_and_stop(controller)
        worker = fake_worker_factory.instances[0]

        outcome = ProcessingOutcome(original_text="hello world", final_text="Hello world.", steps=(STEP,))
        worker.completed.emit(worker.token, outcome)

        assert pasted == ["Hello world."]
        assert results == [outcome]
        assert controller.status is RecordingStatus.IDLE
        assert controller.session is None

        entry = history.list().entries[0]
        assert entry.original_text == "hello world"
        assert entry.final_text == "Hello world."
        assert [s.step_id for s in entry.steps] == ["default_clean_transcription"]

    def test_plain_transcription_has_null_final_text(self, controller, history, pasted, fake_worker_factory):
        record_and_stop(controller)
        worker = fake_worker_factory.instances[0]
        worker.completed.emit(worker.token, ProcessingOutcome(original_text="hello"))

        assert pasted == ["hello"]
        assert history.list().entries[0].final_text is None

    def test_status_sequence(self, controller, fake_worker_factory):
        record_and_stop(controller)
        worker = fake_worker_factory.instances[0]
        worker.completed.emit(worker.token, ProcessingOutcome(original_text="hi"))

        assert controller.statuses == [
            RecordingStatus.RECORDING,
            RecordingStatus.PROCESSING,
            RecordingStatus.IDLE,
        ]

    def test_enhancement_failure_pastes_original_and_shows_error(
        self, controller, history, pasted, fake_worker_factory
    ):
        errors = []
        controller.error_occurred.connect(errors.append)
        record_and_stop(controller)
        worker = fake_worker_factory.instances[0]

        worker.completed.emit(
            worker.token,
            ProcessingOutcome(
                original_text="raw text",
                steps=(STEP,),
                enhancement_failed=True,
                enhancement_error="rate limited",
            ),
        )

        assert pasted == ["raw text"]
        assert controller.status is RecordingStatus.ERROR
        assert "rate limited" in errors[0]
        entry = history.list().entries[0]
        assert entry.final_text is None
        assert len(entry.steps) == 1

    def test_history_failure_still_pastes(self, controller, history, pasted, fake_worker_factory, tmp_path):
        history.db_path = tmp_path / "missing" / "history.db"
        history._initialized = False
        record_and_stop(controller)
        worker = fake_worker_factory.instances[0]

        worker.completed.emit(worker.token, ProcessingOutcome(original_text="hello"))

        assert pasted == ["hello"]
        assert controller.status is RecordingStatus.IDLE

    def test_without_history_or_output(self, capture, settings, fake_worker_factory):
        ctrl = RecordingSessionController(
            capture,
            FakeDispatcher(),
            settings_provider=lambda: settings,
            worker_factory=fake_worker_factory,
        )
        record_and_stop(ctrl)
        worker = fake_worker_factory.instances[0]
        worker.completed.emit(worker.token, ProcessingOutcome(original_text="hello"))

        assert ctrl.status is RecordingStatus.IDLE

    def test_worker_cancelled_returns_to_idle(self, controller, pasted, fake_worker_factory):
        record_and_stop(controller)
        worker = fake_worker_factory.instances[0]
        worker.cancelled.emit(worker.token)

        assert controller.status is RecordingStatus.IDLE
        assert pasted == []


class TestCancellation:
    def test_escape_while_recording(self, controller, capture, history, pasted, fake_worker_factory):
        controller.handle_intent(ShortcutIntent.START)
        controller.handle_intent(ShortcutIntent.ESCAPE_CANCEL)

        assert capture.cancel_calls == 1
        assert controller.status is RecordingStatus.IDLE
        assert fake_worker_factory.instances == []
        assert history.list().total_entries == 0
        assert pasted == []

    def test_cancel_during_processing_suppresses_side_effects(
        self, controller, history, pasted, fake_worker_factory
    ):
        record_and_stop(controller)
        worker = fake_worker_factory.instances[0]
        token = worker.token

        controller.handle_intent(ShortcutIntent.CANCEL_PROCESSING)
        assert token.is_cancelled()
        assert controller.status is RecordingStatus.IDLE

        # Worker finishes transcribing after the cancel
        worker.completed.emit(token, ProcessingOutcome(original_text="late text"))

        assert history.list().total_entries == 0
        assert pasted == []
        assert controller.status is RecordingStatus.IDLE

    def test_stale_result_does_not_affect_new_session(
        self, controller, history, pasted, fake_worker_factory
    ):
        record_and_stop(controller)
        old_worker = fake_worker_factory.instances[0]
        controller.cancel()

        record_and_stop(controller)
        new_worker = fake_worker_factory.instances[1]

        old_worker.completed.emit(old_worker.token, ProcessingOutcome(original_text="old"))
        old_worker.failed.emit(old_worker.token, "old failure")
        assert controller.status is RecordingStatus.PROCESSING

        new_worker.completed.emit(new_worker.token, ProcessingOutcome(original_text="new"))

        assert pasted == ["new"]
        assert [e.original_text for e in history.list().entries] == ["new"]

    def test_cancel_when_idle_is_noop(self, controller):
        controller.cancel()
        assert controller.statuses == []


class TestErrors:
    def test_capture_error_shows_error_then_reverts(self, controller, capture, settings, qtbot):
        settings.error_display_ms = 10
        capture.fail_start = True
        errors = []
        controller.error_occurred.connect(errors.append)

        controller.handle_intent(ShortcutIntent.START)

        assert controller.status is RecordingStatus.ERROR
        assert controller.session is None
        assert "no input device" in errors[0]

        qtbot.waitUntil(lambda: controller.status is RecordingStatus.IDLE, timeout=1000)

    def test_start_after_error_is_allowed(self, controller, capture):
        capture.fail_start = True
        controller.handle_intent(ShortcutIntent.START)
        capture.fail_start = False

        controller.handle_intent(ShortcutIntent.START)

        assert controller.status is RecordingStatus.RECORDING

    def test_transcription_failure(self, controller, pasted, fake_worker_factory):
        errors = []
        controller.error_occurred.connect(errors.append)
        record_and_stop(controller)
        worker = fake_worker_factory.instances[0]

        worker.failed.emit(worker.token, "No API key configured for openai transcription")

        assert controller.status is RecordingStatus.ERROR
        assert errors == ["No API key configured for openai transcription"]
        assert pasted == []

    def test_error_timer_does_not_clobber_new_session(self, controller, capture):
        capture.fail_start = True
        controller.handle_intent(ShortcutIntent.START)
        capture.fail_start = False
        controller.handle_intent(ShortcutIntent.START)

        controller._on_error_timeout()

        assert controller.status is RecordingStatus.RECORDING

    def test_stop_failure_releases_device_and_allows_restart(self, controller, capture, fake_worker_factory):
        errors = []
        controller.error_occurred.connect(errors.append)
        controller.handle_intent(ShortcutIntent.START)
        capture.fail_stop = True

        controller.handle_intent(ShortcutIntent.STOP_HOLD)

        assert capture.cancel_calls == 1
        assert controller.status is RecordingStatus.ERROR
        assert controller.session is None
        assert "device disconnected" in errors[0]
        assert fake_worker_factory.instances == []

        capture.fail_stop = False
        assert controller.start() is True
        assert controller.status is RecordingStatus.RECORDING
