import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from PySide6.QtCore import QThread, Signal

from ...utils.logger import get_logger
from ..asr.dispatcher import TranscriptionDispatcher
from ..audio.recorder import AudioBuffer
from ..errors import EnhancementError, ProcessingCancelled, ProviderError
from ..settings.settings import Settings, get_settings
from ..transcript_processor.context import ContextSources, gather_context
from ..transcript_processor.llm_processor import LLMProcessor
from ..transcript_processor.pipeline import EnhancementPipeline, PromptStepResult
from ..transcript_processor.prompts import PromptLibrary
from .token import CancellationToken

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProcessingOutcome:
    original_text: str
    final_text: Optional[str] = None
    steps: Tuple[PromptStepResult, ...] = ()
    enhancement_failed: bool = False
    enhancement_error: Optional[str] = None

    @property
    def delivered_text(self) -> str:
        return self.final_text if self.final_text is not None else self.original_text


class ProcessingWorker(QThread):
    """
    Background thread for transcription + prompt-chain enhancement.

    The cancellation token is checked before transcription, after it, and
    before every enhancement step.

    Signals carry the session's token first so the receiver can drop results
    from a session that is no longer current.

    Signals:
        completed: (token, ProcessingOutcome)
        failed: (token, error_message)
        cancelled: (token,) also used when the transcription came back empty
    """

    completed = Signal(object, object)
    failed = Signal(object, str)
    cancelled = Signal(object)

    def __init__(
        self,
        buffer: AudioBuffer,
        token: CancellationToken,
        dispatcher: TranscriptionDispatcher,
        settings_provider: Callable[[], Settings] = get_settings,
        context_sources: Optional[ContextSources] = None,
        processor_factory: Callable[[Settings], LLMProcessor] = LLMProcessor.from_settings,
        parent=None,
    ):
        super().__init__(parent)
        self._buffer = buffer
        self._token = token
        self._dispatcher = dispatcher
        self._settings_provider = settings_provider
        self._context_sources = context_sources
        self._processor_factory = processor_factory

    @property
    def token(self) -> CancellationToken:
        return self._token

    def run(self):
        start_time = time.time()

        try:
            self._check_cancelled()
            text = self._dispatcher.transcribe(self._buffer)
            self._check_cancelled()

            if not text.strip():
                logger.info("Transcription is empty, nothing to deliver")
                self.cancelled.emit(self._token)
                return

            outcome = self._enhance(text)
            logger.info(f"Processing completed in {time.time() - start_time:.2f}s")
            self.completed.emit(self._token, outcome)

        except ProcessingCancelled:
            logger.info("Processing cancelled")
            self.cancelled.emit(self._token)
        except ProviderError as e:
            logger.error(f"Transcription failed: {e}")
            self.failed.emit(self._token, str(e))
        except Exception as e:
            logger.exception(f"Background processing error: {e}")
            self.failed.emit(self._token, str(e))

    def _check_cancelled(self) -> None:
        if self._token.is_cancelled():
            raise ProcessingCancelled()

    def _enhance(self, text: str) -> ProcessingOutcome:
        settings = self._settings_provider()
        if not settings.enhancement.enabled:
            return ProcessingOutcome(original_text=text)

        try:
            pipeline = EnhancementPipeline(
                self._processor_factory(settings), PromptLibrary.from_settings(settings)
            )
            context = gather_context(settings, self._context_sources)
            run = pipeline.run(
                text,
                list(settings.enhancement.active_prompt_chain),
                context,
                should_cancel=self._token.is_cancelled,
            )
        except EnhancementError as e:
            logger.error(f"Enhancement failed, delivering original transcription: {e}")
            return ProcessingOutcome(
                original_text=text,
                steps=e.completed,
                enhancement_failed=True,
                enhancement_error=str(e),
            )

        final_text = run.final_text if run.final_text != text else None
        return ProcessingOutcome(original_text=text, final_text=final_text, steps=run.steps)
