"""
Speech-to-text providers.

Remote providers go through ``litellm.transcription``; the local provider
runs a sherpa-onnx model from the user's data directory.
"""

import io
import os
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

import numpy as np
from litellm import transcription

from ...utils.logger import get_logger
from ..audio.recorder import AudioBuffer, decode_wav
from ..errors import ProviderError
from ..settings.settings import TranscriptionProviderSettings
from .file_utils import (
    find_file_by_suffix,
    find_file_exact,
    is_transducer_model,
    resolve_model_dir,
)

logger = get_logger(__name__)

MIME_EXTENSIONS: Dict[str, str] = {
    "audio/webm": "webm",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mp4": "mp4",
    "audio/mp3": "mp3",
    "audio/mpeg": "mpeg",
    "audio/mpga": "mpga",
    "audio/aac": "m4a",
    "audio/x-m4a": "m4a",
    "audio/m4a": "m4a",
    "audio/ogg": "ogg",
}


def extension_for_mime(mime_type: str, provider_id: Optional[str] = None) -> str:
    base = mime_type.split(";")[0].strip().lower()
    extension = MIME_EXTENSIONS.get(base)
    if extension is None:
        raise ProviderError(f"Unsupported audio format: {mime_type}", provider_id)
    return extension


class TranscriptionProvider(Protocol):
    provider_id: str

    def transcribe(
        self,
        buffer: AudioBuffer,
        settings: TranscriptionProviderSettings,
        language: Optional[str] = None,
    ) -> str: ...


class LiteLLMTranscriptionProvider:
    provider_id = ""
    default_model = ""
    model_prefix = ""
    env_var: Optional[str] = None

    def transcribe(
        self,
        buffer: AudioBuffer,
        settings: TranscriptionProviderSettings,
        language: Optional[str] = None,
    ) -> str:
        model = settings.model or self.default_model
        if not model:
            raise ProviderError(f"No model configured for {self.provider_id}", self.provider_id)

        api_key = settings.api_key or (os.environ.get(self.env_var) if self.env_var else None)
        if not api_key:
            raise ProviderError(
                f"No API key configured for {self.provider_id} transcription",
                self.provider_id,
            )

        extension = extension_for_mime(buffer.mime_type, self.provider_id)
        audio_file = io.BytesIO(buffer.data)
        audio_file.name = f"recording.{extension}"

        kwargs = {
            "model": self._format_model(model),
            "file": audio_file,
            "api_key": api_key,
        }
        if settings.api_base:
            kwargs["api_base"] = settings.api_base
        if language:
            kwargs["language"] = language

        logger.info(
            f"Sending {len(buffer.data)} bytes ({buffer.mime_type}) to {self.provider_id} model {model}"
        )
        try:
            response = transcription(**kwargs)
        except Exception as e:
            logger.error(f"{self.provider_id} transcription failed: {e}", exc_info=True)
            raise ProviderError(
                f"{self.provider_id} transcription failed: {e}", self.provider_id
            ) from e

        text = getattr(response, "text", None) or ""
        return text.strip()

    def _format_model(self, model: str) -> str:
        if self.model_prefix and not model.startswith(self.model_prefix):
            return f"{self.model_prefix}{model}"
        return model


class OpenAITranscriptionProvider(LiteLLMTranscriptionProvider):
    provider_id = "openai"
    default_model = "gpt-4o-mini-transcribe"
    env_var = "OPENAI_API_KEY"


class DeepgramTranscriptionProvider(LiteLLMTranscriptionProvider):
    provider_id = "deepgram"
    default_model = "nova-3"
    model_prefix = "deepgram/"
    env_var = "DEEPGRAM_API_KEY"


class LocalTranscriptionProvider:
    """sherpa-onnx offline recognizer. Accepts WAV buffers only."""

    provider_id = "local"

    def __init__(self, num_threads: int = 4):
        self.num_threads = num_threads
        self._recognizer = None
        self._model_dir: Optional[Path] = None
        self._lock = threading.Lock()

    def transcribe(
        self,
        buffer: AudioBuffer,
        settings: TranscriptionProviderSettings,
        language: Optional[str] = None,
    ) -> str:
        if not settings.model:
            raise ProviderError("No local model selected", self.provider_id)
        if extension_for_mime(buffer.mime_type, self.provider_id) != "wav":
            raise ProviderError(
                f"Local transcription requires WAV audio, got {buffer.mime_type}",
                self.provider_id,
            )

        try:
            samples, sample_rate = decode_wav(buffer.data)
        except ValueError as e:
            raise ProviderError(f"Could not decode WAV audio: {e}", self.provider_id) from e

        with self._lock:
            recognizer = self._load(resolve_model_dir(settings.model))
            try:
                stream = recognizer.create_stream()
                stream.accept_waveform(sample_rate, samples.astype(np.float32))
                recognizer.decode_stream(stream)
                text = stream.result.text
            except Exception as e:
                logger.error(f"Local transcription failed: {e}", exc_info=True)
                raise ProviderError(f"Local transcription failed: {e}", self.provider_id) from e

        return (text or "").strip()

    def _load(self, model_dir: Path):
        if self._recognizer is not None and self._model_dir == model_dir:
            return self._recognizer

        if not model_dir.is_dir():
            raise ProviderError(f"Model directory not found: {model_dir}", self.provider_id)

        import sherpa_onnx

        try:
            if is_transducer_model(model_dir):
                recognizer = self._load_transducer(sherpa_onnx, model_dir)
            else:
                recognizer = self._load_whisper(sherpa_onnx, model_dir)
        except (RuntimeError, ValueError) as e:
            raise ProviderError(f"Failed to load local model: {e}", self.provider_id) from e

        self._recognizer = recognizer
        self._model_dir = model_dir
        return recognizer

    def _load_whisper(self, sherpa_onnx, model_dir: Path):
        encoder = find_file_by_suffix(model_dir, "-encoder.onnx", "-encoder.int8.onnx")
        decoder = find_file_by_suffix(model_dir, "-decoder.onnx", "-decoder.int8.onnx")
        tokens = find_file_by_suffix(model_dir, "-tokens.txt", "tokens.txt")

        if not encoder or not decoder or not tokens:
            raise ProviderError(
                f"Missing Whisper model files in {model_dir}", self.provider_id
            )

        logger.info(f"Loading Whisper model from {model_dir}")
        return sherpa_onnx.OfflineRecognizer.from_whisper(
            encoder=encoder,
            decoder=decoder,
            tokens=tokens,
            num_threads=self.num_threads,
            provider="cpu",
            decoding_method="greedy_search",
        )

    def _load_transducer(self, sherpa_onnx, model_dir: Path):
        encoder = find_file_exact(
            model_dir, ["encoder.onnx", "encoder.int8.onnx", "encoder.fp16.onnx"]
        )
        decoder = find_file_exact(
            model_dir, ["decoder.onnx", "decoder.int8.onnx", "decoder.fp16.onnx"]
        )
        joiner = find_file_exact(
            model_dir, ["joiner.onnx", "joiner.int8.onnx", "joiner.fp16.onnx"]
        )
        tokens = find_file_exact(model_dir, ["tokens.txt"])

        if not all([encoder, decoder, joiner, tokens]):
            raise ProviderError(
                f"Missing Transducer model files in {model_dir}", self.provider_id
            )

        logger.info(f"Loading Transducer model from {model_dir}")
        return sherpa_onnx.OfflineRecognizer.from_transducer(
            encoder=encoder,
            decoder=decoder,
            joiner=joiner,
            tokens=tokens,
            num_threads=self.num_threads,
            provider="cpu",
            decoding_method="greedy_search",
            model_type="nemo_transducer",
        )
