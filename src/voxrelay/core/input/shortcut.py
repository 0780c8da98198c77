"""
Click / hold / double-click interpretation of a single modifier key.

Recording starts optimistically on key-down. A quick release cancels it and
opens a short window in which a second press switches to toggle mode; a long
press is push-to-talk and stops on release.

All events and timer callbacks run on the Qt event loop, so a timer expiry
and a key event are never processed concurrently.
"""

import time
from enum import Enum, auto
from typing import Callable, Dict, Iterable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ...utils.logger import get_logger
from ..session.status import RecordingStatus
from ..settings.config import DOUBLE_CLICK_WINDOW_MS, HOLD_THRESHOLD_MS
from .key_events import (
    MODIFIER_KEYS,
    EscapeEvent,
    KeyEdge,
    KeyEvent,
    KeyName,
    MonitoredKey,
    parse_key_event,
)

logger = get_logger(__name__)


class ShortcutState(Enum):
    IDLE = auto()
    ARMED_CLICK_OR_HOLD = auto()
    AWAITING_SECOND_CLICK = auto()
    TOGGLE_ACTIVE = auto()


class ShortcutIntent(str, Enum):
    START = "start"
    STOP_HOLD = "stop_hold"
    TOGGLE_START = "toggle_start"
    TOGGLE_STOP = "toggle_stop"
    CANCEL_CLICK = "cancel_click"
    ESCAPE_CANCEL = "escape_cancel"
    CANCEL_PROCESSING = "cancel_processing"


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class KeyEventInterpreter(QObject):
    """
    Turns raw key edges into recording intents.

    Signals:
        intent: Emitted with a ShortcutIntent for every recognised gesture
        raw_action: Emitted with (action, key name) for UI feedback, e.g.
            ("clickCancel", "COMMAND")
    """

    intent = Signal(object)
    raw_action = Signal(str, str)

    def __init__(
        self,
        status_provider: Callable[[], RecordingStatus],
        clock: Callable[[], float] = _monotonic_ms,
        hold_threshold_ms: int = HOLD_THRESHOLD_MS,
        double_click_window_ms: int = DOUBLE_CLICK_WINDOW_MS,
        watched_keys: Iterable = (KeyName.COMMAND,),
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._status_provider = status_provider
        self._clock = clock
        self.hold_threshold_ms = hold_threshold_ms
        self.double_click_window_ms = double_click_window_ms

        self.hold_timer = QTimer(self)
        self.hold_timer.setSingleShot(True)
        self.hold_timer.timeout.connect(self._on_hold_timeout)

        self.double_click_timer = QTimer(self)
        self.double_click_timer.setSingleShot(True)
        self.double_click_timer.timeout.connect(self._on_double_click_timeout)

        self._monitored: Dict[KeyName, MonitoredKey] = {}
        self._state = ShortcutState.IDLE
        self._active_key: Optional[KeyName] = None
        self._key_down_time: Optional[float] = None
        self._first_click_up_time: Optional[float] = None
        self._hold_reached = False
        self._ignore_next_up = False

        self.set_watched_keys(watched_keys)

    @property
    def state(self) -> ShortcutState:
        return self._state

    @property
    def monitored_keys(self) -> Dict[KeyName, MonitoredKey]:
        return dict(self._monitored)

    def set_watched_keys(self, keys: Iterable) -> None:
        names = []
        for key in keys:
            name = KeyName(key.upper() if isinstance(key, str) else key)
            if name not in MODIFIER_KEYS:
                raise ValueError(f"{name.value} cannot be used as a shortcut key")
            if name not in names:
                names.append(name)

        self._monitored = {name: MonitoredKey(name) for name in names}
        logger.info(f"Watching keys: {', '.join(n.value for n in names) or 'none'}")
        self.reset()

    def reset(self) -> None:
        if self._state is not ShortcutState.IDLE:
            logger.debug(f"Resetting shortcut state from {self._state.name} to IDLE")
        self._state = ShortcutState.IDLE
        self._active_key = None
        self._key_down_time = None
        self._first_click_up_time = None
        self._hold_reached = False
        self._ignore_next_up = False
        self.hold_timer.stop()
        self.double_click_timer.stop()

    def on_line(self, line: str) -> None:
        """Feed one line of key-monitor output."""
        event = parse_key_event(line)

        if isinstance(event, EscapeEvent):
            self.on_escape()
        elif isinstance(event, KeyEvent):
            if event.key not in self._monitored:
                logger.warning(f"Received event for unexpected key: {event.key.value}")
                return
            self.on_raw_event(event.key, event.edge)
        elif event.informational:
            logger.debug(f"Key monitor: {event.line}")
        elif event.line:
            logger.warning(f"Received unknown message from key monitor: {event.line}")

    def on_raw_event(self, key_name, edge) -> None:
        key = KeyName(key_name)
        edge = KeyEdge(edge)
        monitored = self._monitored.get(key)
        if monitored is None:
            logger.debug(f"Ignoring {key.value}_{edge.value}, key is not watched")
            return

        logger.debug(f"Key event {key.value}_{edge.value} in state {self._state.name}")

        if edge is KeyEdge.DOWN:
            monitored.is_down = True
            self._on_key_down(key)
        else:
            monitored.is_down = False
            self._on_key_up(key)

    def on_escape(self) -> None:
        status = self._status_provider()

        if status is RecordingStatus.RECORDING:
            logger.info("Escape pressed, cancelling recording")
            self.reset()
            self.intent.emit(ShortcutIntent.ESCAPE_CANCEL)
        elif status is RecordingStatus.PROCESSING:
            logger.info("Escape pressed, cancelling processing")
            self.reset()
            self.intent.emit(ShortcutIntent.CANCEL_PROCESSING)
        else:
            if self._state is not ShortcutState.IDLE:
                logger.info(f"Escape pressed in {self._state.name}, resetting")
            self.reset()

    def _on_key_down(self, key: KeyName) -> None:
        if self._status_provider() is RecordingStatus.PROCESSING:
            logger.debug(f"Ignoring {key.value} down while processing")
            return

        if self._state is ShortcutState.IDLE:
            self._arm(key)
            return

        if key is not self._active_key:
            logger.debug(f"Ignoring {key.value} down, {self._active_key.value} is active")
            return

        if self._state is ShortcutState.AWAITING_SECOND_CLICK:
            self.double_click_timer.stop()
            elapsed = self._clock() - (self._first_click_up_time or 0.0)
            if elapsed < self.double_click_window_ms:
                logger.info(f"Double click on {key.value}, starting toggle recording")
                self._state = ShortcutState.TOGGLE_ACTIVE
                self._ignore_next_up = True
                self._first_click_up_time = None
                self.raw_action.emit("doubleClickStartToggle", key.value)
                self.intent.emit(ShortcutIntent.TOGGLE_START)
            else:
                logger.debug(f"Second press on {key.value} too late, treating as new press")
                self._arm(key)
        else:
            logger.debug(f"Ignoring duplicate {key.value} down in {self._state.name}")

    def _on_key_up(self, key: KeyName) -> None:
        if key is not self._active_key or self._state in (
            ShortcutState.IDLE,
            ShortcutState.AWAITING_SECOND_CLICK,
        ):
            logger.debug(f"Ignoring {key.value} up in {self._state.name}")
            return

        if self._state is ShortcutState.ARMED_CLICK_OR_HOLD:
            duration = self._clock() - (self._key_down_time or 0.0)
            self.hold_timer.stop()

            if self._hold_reached or duration >= self.hold_threshold_ms:
                logger.info(f"Hold released on {key.value} after {duration:.0f}ms")
                self.reset()
                self.raw_action.emit("holdEnd", key.value)
                self.intent.emit(ShortcutIntent.STOP_HOLD)
            else:
                logger.info(f"Quick click on {key.value}, cancelling recording")
                self._state = ShortcutState.AWAITING_SECOND_CLICK
                self._key_down_time = None
                self._first_click_up_time = self._clock()
                self.double_click_timer.start(self.double_click_window_ms)
                self.raw_action.emit("clickCancel", key.value)
                self.intent.emit(ShortcutIntent.CANCEL_CLICK)

        elif self._state is ShortcutState.TOGGLE_ACTIVE:
            if self._ignore_next_up:
                logger.debug("Ignoring release of the press that confirmed the double click")
                self._ignore_next_up = False
                return
            logger.info(f"Stopping toggle recording on {key.value}")
            self.reset()
            self.raw_action.emit("toggleStop", key.value)
            self.intent.emit(ShortcutIntent.TOGGLE_STOP)

    def _arm(self, key: KeyName) -> None:
        logger.debug(f"{key.value} down, starting recording (click or hold)")
        self._state = ShortcutState.ARMED_CLICK_OR_HOLD
        self._active_key = key
        self._key_down_time = self._clock()
        self._first_click_up_time = None
        self._hold_reached = False
        self._ignore_next_up = False
        self.hold_timer.start(self.hold_threshold_ms)
        self.raw_action.emit("pressStart", key.value)
        self.intent.emit(ShortcutIntent.START)

    def _on_hold_timeout(self) -> None:
        if self._state is not ShortcutState.ARMED_CLICK_OR_HOLD:
            return
        self._hold_reached = True
        logger.debug(f"Hold threshold reached on {self._active_key.value}")
        self.raw_action.emit("holdStart", self._active_key.value)

    def _on_double_click_timeout(self) -> None:
        if self._state is not ShortcutState.AWAITING_SECOND_CLICK:
            return
        logger.debug("Double click window expired, single click discarded")
        self.reset()
