from .dispatcher import TranscriptionDispatcher, default_providers
from .providers import (
    MIME_EXTENSIONS,
    DeepgramTranscriptionProvider,
    LocalTranscriptionProvider,
    OpenAITranscriptionProvider,
    TranscriptionProvider,
    extension_for_mime,
)

__all__ = [
    "TranscriptionDispatcher",
    "default_providers",
    "MIME_EXTENSIONS",
    "DeepgramTranscriptionProvider",
    "LocalTranscriptionProvider",
    "OpenAITranscriptionProvider",
    "TranscriptionProvider",
    "extension_for_mime",
]
