# VoxRelay - Modifier-key dictation with prompt-chain enhancement

"""
Desktop dictation daemon: modifier-key gestures start and stop recording,
audio is transcribed by a pluggable provider, refined by a chain of LLM
prompt steps and pasted back into the focused application.
"""

__version__ = "0.1.0"
__app_name__ = "VoxRelay"
