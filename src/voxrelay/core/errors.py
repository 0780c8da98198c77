"""Typed failures reported by the processing stages to the session controller."""

from typing import TYPE_CHECKING, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from .transcript_processor.pipeline import PromptStepResult
    from .transcript_processor.prompts import PromptStep


class VoxRelayError(Exception):
    pass


class CaptureError(VoxRelayError):
    """The audio input device could not be opened."""


class ProviderError(VoxRelayError):
    """The active transcription provider is unset, misconfigured or failed."""

    def __init__(self, message: str, provider_id: Optional[str] = None):
        super().__init__(message)
        self.provider_id = provider_id


class EnhancementError(VoxRelayError):
    """
    An enhancement step failed or returned an empty response.

    ``completed`` holds the results of the steps that finished before the
    failing one so they can still be written to history.
    """

    def __init__(
        self,
        message: str,
        step: Optional["PromptStep"] = None,
        completed: Sequence["PromptStepResult"] = (),
    ):
        super().__init__(message)
        self.step = step
        self.completed: Tuple["PromptStepResult", ...] = tuple(completed)


class HistoryError(VoxRelayError):
    pass


class ProcessingCancelled(Exception):
    """Raised between stages once the session's cancellation flag is set."""
