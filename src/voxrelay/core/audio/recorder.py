import io
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

import numpy as np
import sounddevice as sd
from scipy.io import wavfile

from ...utils.logger import get_logger
from ..errors import CaptureError

logger = get_logger(__name__)

SILENCE_THRESHOLD = 0.07


@dataclass
class AudioDevice:
    name: str
    index: int
    channels: int
    default_sample_rate: float


@dataclass(frozen=True)
class AudioBuffer:
    data: bytes
    mime_type: str
    frames: int
    sample_rate: int
    peak: float = 0.0

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate if self.sample_rate else 0.0

    def is_silent(self, threshold: float = SILENCE_THRESHOLD) -> bool:
        return bool(np.float32(self.peak) <= np.float32(threshold))


class AudioCapture(Protocol):
    @property
    def is_recording(self) -> bool: ...

    def start(self) -> None: ...

    def stop(self) -> Optional[AudioBuffer]: ...

    def cancel(self) -> None: ...


def is_silent(samples: np.ndarray, threshold: float = SILENCE_THRESHOLD) -> bool:
    """True when the peak absolute amplitude of float samples does not exceed ``threshold``."""
    if samples.size == 0:
        return True
    return bool(np.max(np.abs(samples)).astype(np.float32) <= np.float32(threshold))


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode float samples in [-1, 1] as 16-bit PCM WAV."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)
    out = io.BytesIO()
    wavfile.write(out, sample_rate, pcm)
    return out.getvalue()


def decode_wav(data: bytes) -> Tuple[np.ndarray, int]:
    """Decode WAV bytes to mono float32 samples and their sample rate."""
    sample_rate, audio = wavfile.read(io.BytesIO(data))

    if audio.dtype == np.int16:
        audio = audio.astype(np.float32) / 32768.0
    elif audio.dtype == np.int32:
        audio = audio.astype(np.float32) / 2147483648.0
    elif audio.dtype == np.uint8:
        audio = (audio.astype(np.float32) - 128.0) / 128.0
    else:
        audio = audio.astype(np.float32)

    if audio.ndim > 1:
        audio = audio.mean(axis=1)

    return audio, sample_rate


class AudioRecorder:

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        device: Optional[str] = None,
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device

        self._stream: Optional[sd.InputStream] = None
        self._audio_buffer: List[np.ndarray] = []
        self._is_recording = False

    @property
    def is_recording(self) -> bool:
        return self._is_recording

    def start(self) -> None:
        if self._is_recording:
            return

        self._audio_buffer = []

        try:
            self._stream = sd.InputStream(
                samplerate=float(self.sample_rate),
                channels=self.channels,
                dtype="float32",
                device=self._get_device_index(),
                callback=self._audio_callback,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            self._close_stream()
            raise CaptureError(f"Audio device error: {e}") from e
        except Exception as e:
            self._close_stream()
            raise CaptureError(f"Failed to start recording: {e}") from e

        self._is_recording = True
        logger.debug(f"Recording started at {self.sample_rate}Hz")

    def stop(self) -> Optional[AudioBuffer]:
        """Stop capture and return the WAV-encoded recording, or None when nothing was captured."""
        if not self._is_recording:
            return None

        self._is_recording = False
        self._close_stream()

        chunks, self._audio_buffer = self._audio_buffer, []
        if not chunks:
            logger.info("Recording stopped with no audio frames")
            return None

        audio = np.concatenate(chunks, axis=0)
        mono = audio.mean(axis=1) if audio.ndim > 1 else audio
        if mono.size == 0:
            logger.info("Recording stopped with no audio frames")
            return None

        peak = float(np.max(np.abs(mono)))
        logger.debug(f"Recording stopped: {mono.size} frames, peak={peak:.3f}")

        return AudioBuffer(
            data=encode_wav(mono, self.sample_rate),
            mime_type="audio/wav",
            frames=int(mono.size),
            sample_rate=self.sample_rate,
            peak=peak,
        )

    def cancel(self) -> None:
        if not self._is_recording:
            return
        self._is_recording = False
        self._close_stream()
        self._audio_buffer = []
        logger.debug("Recording cancelled, audio discarded")

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except sd.PortAudioError as e:
            logger.warning(f"Error closing audio stream: {e}")

    def _audio_callback(self, indata: np.ndarray, frames: int, time, status) -> None:
        if status:
            logger.debug(f"Audio callback status: {status}")
        if self._is_recording:
            self._audio_buffer.append(indata.copy())

    def _get_device_index(self) -> Optional[int]:
        if self.device is None:
            return None

        for device in self.list_devices():
            if device.name == self.device:
                return device.index

        logger.warning(f"Input device '{self.device}' not found, using default")
        return None

    @staticmethod
    def list_devices() -> List[AudioDevice]:
        devices = []

        for i, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                devices.append(
                    AudioDevice(
                        name=device["name"],
                        index=i,
                        channels=device["max_input_channels"],
                        default_sample_rate=device["default_samplerate"],
                    )
                )

        return devices
