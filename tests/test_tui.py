import pytest

from buxndbg.tui import (
    Event,
    EventType,
    Key,
    StepCommand,
    TuiAction,
    handle_event,
    status_line,
    step_command,
)


def key(ch="", code=Key.NONE):
    return Event(EventType.KEY, code, ch)


def test_default_event_is_refresh():
    assert handle_event(Event()) is TuiAction.REFRESH


@pytest.mark.parametrize(
    "event, action",
    [
        (key(code=Key.CTRL_C), TuiAction.QUIT),
        (key(code=Key.ESC), TuiAction.QUIT),
        (key("q"), TuiAction.QUIT),
        (key("l"), TuiAction.MOVE_RIGHT),
        (key(code=Key.ARROW_RIGHT), TuiAction.MOVE_RIGHT),
        (key("h"), TuiAction.MOVE_LEFT),
        (key("k"), TuiAction.MOVE_UP),
        (key(code=Key.ARROW_DOWN), TuiAction.MOVE_DOWN),
        (key("0"), TuiAction.MOVE_TO_LINE_START),
        (key(code=Key.END), TuiAction.MOVE_TO_LINE_END),
        (key("$"), TuiAction.MOVE_TO_LINE_END),
        (key("s"), TuiAction.STEP),
        (key("n"), TuiAction.STEP),
        (key("r"), TuiAction.STEP),
        (key("c"), TuiAction.STEP),
        (key("b"), TuiAction.TOGGLE_BREAKPOINT),
        (key("x"), TuiAction.UNKNOWN),
        (Event(EventType.RESIZE), TuiAction.UNKNOWN),
    ],
)
def test_bindings(event, action):
    assert handle_event(event) is action


@pytest.mark.parametrize(
    "ch, command",
    [
        ("s", StepCommand.STEP_IN),
        ("n", StepCommand.STEP_OVER),
        ("r", StepCommand.STEP_OUT),
        ("c", StepCommand.RESUME),
        ("q", None),
    ],
)
def test_step_command(ch, command):
    assert step_command(key(ch)) is command


def test_step_needs_key_event():
    assert step_command(Event(EventType.MOUSE, Key.NONE, "s")) is None


def test_every_step_key_maps_to_step_action():
    for ch in "snrc":
        assert handle_event(key(ch)) is TuiAction.STEP
        assert step_command(key(ch)) is not None


def test_status_line_padded_to_width():
    line = status_line("breakpoints", 20)
    assert line.startswith("breakpoints")
    assert len(line) == 20


def test_status_line_clipped():
    assert status_line("abcdef", 3) == "abc"


def test_status_line_too_long():
    assert status_line("x" * 2000, 80) is None