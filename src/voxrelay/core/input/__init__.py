from .key_events import KeyEdge, KeyEvent, KeyName, MonitoredKey, parse_key_event
from .key_monitor import KeyMonitorProcess
from .shortcut import KeyEventInterpreter, ShortcutIntent, ShortcutState

__all__ = [
    "KeyEdge",
    "KeyEvent",
    "KeyName",
    "MonitoredKey",
    "parse_key_event",
    "KeyMonitorProcess",
    "KeyEventInterpreter",
    "ShortcutIntent",
    "ShortcutState",
]
