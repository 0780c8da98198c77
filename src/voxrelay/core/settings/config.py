"""
Centralized application configuration.

Edit the variables below to configure development settings.
"""

import logging
import os

# =============================================================================
# DEVELOPMENT SETTINGS - Edit these for local development
# =============================================================================
LOG_LEVEL = "DEBUG"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_TO_CONSOLE = True  # Set to True to output logs to terminal
# =============================================================================

# =============================================================================
# HISTORY SETTINGS
# =============================================================================
HISTORY_PAGE_SIZE = 10  # Entries per page in the history view
HISTORY_DB_NAME = "transcription_history.db"
# =============================================================================

# =============================================================================
# SHORTCUT TIMING
# =============================================================================
HOLD_THRESHOLD_MS = 500  # Key held at least this long is push-to-talk
DOUBLE_CLICK_WINDOW_MS = 500  # Second press within this window toggles
KEY_MONITOR_RESTART_MS = 5000  # Backoff before restarting a crashed key monitor
ERROR_DISPLAY_MS = 3000  # Error status reverts to idle after this delay
# =============================================================================


def get_log_level() -> int:
    """Get the logging level as an integer."""
    level = os.environ.get("VOXRELAY_LOG_LEVEL", LOG_LEVEL)
    return getattr(logging, level.upper(), logging.INFO)
