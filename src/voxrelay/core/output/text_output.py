"""
Delivery of the final text to the focused application.

Copies the text to the clipboard and sends the platform paste shortcut.
"""

import time
from typing import Callable

from ...utils.logger import get_logger
from ...utils.platform import get_platform, read_clipboard, write_clipboard
from ..settings.settings import Settings, get_settings

logger = get_logger(__name__)


def paste_modifier():
    from pynput.keyboard import Key

    return Key.cmd if get_platform() == "macos" else Key.ctrl


class TextOutputController:

    def __init__(
        self,
        settings_provider: Callable[[], Settings] = get_settings,
        keyboard=None,
    ):
        self._settings_provider = settings_provider
        if keyboard is None:
            from pynput.keyboard import Controller

            keyboard = Controller()
        self._keyboard = keyboard

    def output_text(self, text: str) -> None:
        output = self._settings_provider().output

        logger.debug(
            f"Delivering text: '{text[:50]}{'...' if len(text) > 50 else ''}'"
        )

        previous = read_clipboard() if output.restore_clipboard else None

        if not write_clipboard(text):
            if output.auto_paste:
                logger.warning("Clipboard unavailable, falling back to direct typing")
                self._keyboard.type(text)
            return

        if not output.auto_paste:
            logger.info("Auto-paste disabled, text copied to clipboard")
            return

        time.sleep(0.05)
        self._paste()

        if previous:
            time.sleep(0.1)
            write_clipboard(previous)

    def _paste(self) -> None:
        with self._keyboard.pressed(paste_modifier()):
            self._keyboard.tap("v")
