"""
Parsing of the key-monitor helper's stdout protocol.

The helper prints one event per line: ``<KEY>_DOWN`` / ``<KEY>_UP`` for the
watched modifier keys and ``ESCAPE_DOWN`` for the escape key. It also prints
a few informational lines at startup which are not events.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class KeyName(str, Enum):
    COMMAND = "COMMAND"
    OPTION = "OPTION"
    CONTROL = "CONTROL"
    FN = "FN"
    ESCAPE = "ESCAPE"


class KeyEdge(str, Enum):
    DOWN = "DOWN"
    UP = "UP"


MODIFIER_KEYS = (KeyName.COMMAND, KeyName.OPTION, KeyName.CONTROL, KeyName.FN)

_INFO_PREFIXES = ("Monitoring", "Event tap created")


@dataclass(frozen=True)
class KeyEvent:
    key: KeyName
    edge: KeyEdge


@dataclass(frozen=True)
class EscapeEvent:
    pass


@dataclass(frozen=True)
class UnrecognizedEvent:
    line: str
    informational: bool = False


ParsedLine = Union[KeyEvent, EscapeEvent, UnrecognizedEvent]


@dataclass
class MonitoredKey:
    name: KeyName
    is_down: bool = False


def parse_key_event(line: str) -> ParsedLine:
    text = line.strip()

    if text == "ESCAPE_DOWN":
        return EscapeEvent()

    if text.startswith(_INFO_PREFIXES):
        return UnrecognizedEvent(text, informational=True)

    name, sep, edge = text.rpartition("_")
    if not sep:
        return UnrecognizedEvent(text)

    try:
        key = KeyName(name)
        key_edge = KeyEdge(edge)
    except ValueError:
        return UnrecognizedEvent(text)

    if key not in MODIFIER_KEYS:
        return UnrecognizedEvent(text)

    return KeyEvent(key, key_edge)
