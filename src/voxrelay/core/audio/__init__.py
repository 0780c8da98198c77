from .recorder import (
    SILENCE_THRESHOLD,
    AudioBuffer,
    AudioCapture,
    AudioDevice,
    AudioRecorder,
    decode_wav,
    encode_wav,
    is_silent,
)

__all__ = [
    "SILENCE_THRESHOLD",
    "AudioBuffer",
    "AudioCapture",
    "AudioDevice",
    "AudioRecorder",
    "decode_wav",
    "encode_wav",
    "is_silent",
]
