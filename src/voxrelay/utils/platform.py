"""Platform-specific utilities for cross-platform compatibility."""

import platform
import subprocess
from typing import List, Optional, Tuple

from .logger import get_logger

logger = get_logger(__name__)


def get_platform() -> str:
    system = platform.system()
    if system == "Darwin":
        return "macos"
    return system.lower()


def get_subprocess_kwargs(**kwargs) -> dict:
    """Keyword arguments for ``subprocess.run`` that keep console windows hidden on Windows."""
    if get_platform() == "windows":
        kwargs.setdefault("creationflags", getattr(subprocess, "CREATE_NO_WINDOW", 0))
    return kwargs


def get_clipboard_commands() -> Optional[Tuple[List[str], List[str]]]:
    """Return ``(copy_cmd, paste_cmd)`` for this platform, or None when unsupported."""
    system = get_platform()

    if system == "linux":
        return (
            ["xclip", "-selection", "clipboard"],
            ["xclip", "-selection", "clipboard", "-o"],
        )
    elif system == "macos":
        return ["pbcopy"], ["pbpaste"]
    elif system == "windows":
        return ["clip"], ["powershell", "-command", "Get-Clipboard"]

    return None


def read_clipboard() -> Optional[str]:
    commands = get_clipboard_commands()
    if commands is None:
        return None

    _, paste_cmd = commands
    try:
        result = subprocess.run(
            paste_cmd,
            **get_subprocess_kwargs(capture_output=True, text=True, timeout=1),
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.debug(f"Could not read clipboard: {e}")
        return None
    return result.stdout if result.returncode == 0 else None


def write_clipboard(text: str) -> bool:
    commands = get_clipboard_commands()
    if commands is None:
        return False

    copy_cmd, _ = commands
    try:
        subprocess.run(
            copy_cmd,
            **get_subprocess_kwargs(input=text, text=True, timeout=1, check=True),
        )
        return True
    except (
        subprocess.TimeoutExpired,
        FileNotFoundError,
        subprocess.CalledProcessError,
    ) as e:
        logger.error(f"Failed to set clipboard: {e}")
        return False


_FOCUSED_VALUE_SCRIPT = """
tell application "System Events"
    set frontApp to first application process whose frontmost is true
    try
        return value of attribute "AXValue" of (value of attribute "AXFocusedUIElement" of frontApp)
    on error
        return ""
    end try
end tell
"""


def read_focused_input_text() -> Optional[str]:
    """Text of the focused input element. Only available on macOS."""
    if get_platform() != "macos":
        return None

    try:
        result = subprocess.run(
            ["osascript", "-e", _FOCUSED_VALUE_SCRIPT],
            capture_output=True,
            text=True,
            timeout=2,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.warning(f"Failed to read focused input field: {e}")
        return None

    if result.returncode != 0:
        logger.debug(f"osascript exited with {result.returncode}: {result.stderr.strip()}")
        return None
    return result.stdout.rstrip("\n")
