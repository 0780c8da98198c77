"""Tests for the key-monitor line parser."""

import pytest

from voxrelay.core.input.key_events import (
    EscapeEvent,
    KeyEdge,
    KeyEvent,
    KeyName,
    UnrecognizedEvent,
    parse_key_event,
)


class TestParseKeyEvent:
    @pytest.mark.parametrize(
        "line,key,edge",
        [
            ("COMMAND_DOWN", KeyName.COMMAND, KeyEdge.DOWN),
            ("COMMAND_UP", KeyName.COMMAND, KeyEdge.UP),
            ("OPTION_DOWN", KeyName.OPTION, KeyEdge.DOWN),
            ("CONTROL_UP", KeyName.CONTROL, KeyEdge.UP),
            ("FN_DOWN", KeyName.FN, KeyEdge.DOWN),
        ],
    )
    def test_modifier_edges(self, line, key, edge):
        assert parse_key_event(line) == KeyEvent(key, edge)

    def test_escape(self):
        assert parse_key_event("ESCAPE_DOWN") == EscapeEvent()

    def test_surrounding_whitespace_is_stripped(self):
        assert parse_key_event("  FN_UP\r\n") == KeyEvent(KeyName.FN, KeyEdge.UP)

    def test_informational_lines(self):
        for line in ("Monitoring keys: COMMAND", "Event tap created successfully"):
            event = parse_key_event(line)
            assert isinstance(event, UnrecognizedEvent)
            assert event.informational is True

    @pytest.mark.parametrize(
        "line",
        ["", "   ", "garbage", "SHIFT_DOWN", "COMMAND_PRESSED", "ESCAPE_UP", "command_down"],
    )
    def test_unrecognized_lines(self, line):
        event = parse_key_event(line)
        assert isinstance(event, UnrecognizedEvent)
        assert event.informational is False
