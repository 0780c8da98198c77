import time
from typing import Callable, Dict, Iterable, List, Optional

from ...utils.logger import get_logger
from ..audio.recorder import AudioBuffer
from ..errors import ProviderError
from ..settings.settings import Settings, get_settings
from .providers import (
    DeepgramTranscriptionProvider,
    LocalTranscriptionProvider,
    OpenAITranscriptionProvider,
    TranscriptionProvider,
)

logger = get_logger(__name__)


def default_providers() -> List[TranscriptionProvider]:
    return [
        OpenAITranscriptionProvider(),
        DeepgramTranscriptionProvider(),
        LocalTranscriptionProvider(),
    ]


class TranscriptionDispatcher:
    """
    Routes audio to the active transcription provider.

    The active provider is read from settings on every call, so switching
    providers takes effect on the next recording.
    """

    def __init__(
        self,
        providers: Optional[Iterable[TranscriptionProvider]] = None,
        settings_provider: Callable[[], Settings] = get_settings,
    ):
        self._settings_provider = settings_provider
        self._providers: Dict[str, TranscriptionProvider] = {}
        for provider in default_providers() if providers is None else providers:
            self.register(provider)

    def register(self, provider: TranscriptionProvider) -> None:
        if provider.provider_id in self._providers:
            logger.debug(f"Replacing transcription provider '{provider.provider_id}'")
        self._providers[provider.provider_id] = provider

    @property
    def providers(self) -> Dict[str, TranscriptionProvider]:
        return dict(self._providers)

    @property
    def active_provider_id(self) -> Optional[str]:
        return self._settings_provider().transcription.provider

    def transcribe(self, buffer: AudioBuffer) -> str:
        """
        Transcribe ``buffer`` with the active provider.

        Raises:
            ProviderError: no provider is configured, the configured one is
                unknown or misconfigured, or the provider call failed.
        """
        settings = self._settings_provider()
        provider_id = settings.transcription.provider

        if not provider_id:
            logger.error("No active transcription provider configured")
            raise ProviderError("No transcription provider configured")

        provider = self._providers.get(provider_id)
        if provider is None:
            logger.error(f"Transcription provider '{provider_id}' is not available")
            raise ProviderError(
                f"Transcription provider '{provider_id}' is not available", provider_id
            )

        provider_settings = settings.transcription.get_provider_settings(provider_id)

        start_time = time.time()
        logger.info(
            f"Transcribing {buffer.duration:.1f}s of audio ({buffer.mime_type}) with {provider_id}"
        )
        try:
            text = provider.transcribe(
                buffer, provider_settings, settings.transcription.language
            )
        except ProviderError:
            raise
        except Exception as e:
            logger.error(f"Transcription via {provider_id} failed: {e}", exc_info=True)
            raise ProviderError(f"Transcription failed: {e}", provider_id) from e

        logger.info(
            f"Transcription completed in {time.time() - start_time:.2f}s: "
            f"'{text[:50]}{'...' if len(text) > 50 else ''}'"
        )
        return text
