# Core module - Business logic

"""
Core functionality for the dictation daemon.
Contains shortcut interpretation, audio capture, transcription providers,
prompt-chain enhancement, history and the recording session controller.
"""
