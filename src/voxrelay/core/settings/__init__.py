from .history import HistoryEntry, HistoryPage, HistoryRecorder, HistoryStep
from .settings import Settings, get_config_dir, get_data_dir, get_settings, reload_settings

__all__ = [
    "HistoryEntry",
    "HistoryPage",
    "HistoryRecorder",
    "HistoryStep",
    "Settings",
    "get_config_dir",
    "get_data_dir",
    "get_settings",
    "reload_settings",
]
