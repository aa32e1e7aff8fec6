"""Key bindings and small helpers shared by every terminal view."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

_STATUS_BUFFER_SIZE = 1024


class TuiAction(enum.Enum):
    UNKNOWN = "unknown"
    REFRESH = "refresh"
    QUIT = "quit"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    MOVE_TO_LINE_START = "move_to_line_start"
    MOVE_TO_LINE_END = "move_to_line_end"
    STEP = "step"
    TOGGLE_BREAKPOINT = "toggle_breakpoint"


class EventType(enum.IntEnum):
    REFRESH = 0
    KEY = 1
    RESIZE = 2
    MOUSE = 3


class Key(enum.IntEnum):
    NONE = 0
    CTRL_C = 0x03
    ESC = 0x1B
    HOME = 0xFFFF - 14
    END = 0xFFFF - 15
    ARROW_UP = 0xFFFF - 18
    ARROW_DOWN = 0xFFFF - 19
    ARROW_LEFT = 0xFFFF - 20
    ARROW_RIGHT = 0xFFFF - 21


@dataclass(frozen=True)
class Event:
    """A terminal event; the default value asks the view to redraw."""

    type: EventType = EventType.REFRESH
    key: int = Key.NONE
    ch: str = ""


class StepCommand(enum.Enum):
    STEP_IN = "step_in"
    STEP_OVER = "step_over"
    STEP_OUT = "step_out"
    RESUME = "resume"


_STEP_KEYS = {
    "s": StepCommand.STEP_IN,
    "n": StepCommand.STEP_OVER,
    "r": StepCommand.STEP_OUT,
    "c": StepCommand.RESUME,
}

_BINDINGS = (
    ((Key.CTRL_C, Key.ESC), ("q",), TuiAction.QUIT),
    ((Key.ARROW_RIGHT,), ("l",), TuiAction.MOVE_RIGHT),
    ((Key.ARROW_LEFT,), ("h",), TuiAction.MOVE_LEFT),
    ((Key.ARROW_UP,), ("k",), TuiAction.MOVE_UP),
    ((Key.ARROW_DOWN,), ("j",), TuiAction.MOVE_DOWN),
    ((Key.HOME,), ("0",), TuiAction.MOVE_TO_LINE_START),
    ((Key.END,), ("$",), TuiAction.MOVE_TO_LINE_END),
    ((), tuple(_STEP_KEYS), TuiAction.STEP),
    ((), ("b",), TuiAction.TOGGLE_BREAKPOINT),
)


def handle_event(event: Event) -> TuiAction:
    """Map a terminal event to the action every view understands."""
    if event.type == EventType.REFRESH:
        return TuiAction.REFRESH
    if event.type != EventType.KEY:
        return TuiAction.UNKNOWN
    for keys, chars, action in _BINDINGS:
        if event.key in keys or event.ch in chars:
            return action
    return TuiAction.UNKNOWN


def step_command(event: Event) -> Optional[StepCommand]:
    """The execution command a key asks for (pdb-style keys), if any."""
    if event.type != EventType.KEY:
        return None
    return _STEP_KEYS.get(event.ch)


def status_line(text: str, width: int) -> Optional[str]:
    """The visible status bar: ``text`` padded to the full width.

    Returns None when the text is too long to be shown at all.
    """
    if len(text) >= _STATUS_BUFFER_SIZE:
        return None
    return text.ljust(width)[:width]