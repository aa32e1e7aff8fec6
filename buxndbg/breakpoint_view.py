"""State of the breakpoint list view."""

from __future__ import annotations

import dataclasses
from typing import List, NamedTuple, Optional, Tuple

from .breakpoints import BreakpointSet
from .protocol import Breakpoint, BreakpointFlag, VmInfo
from .tui import TuiAction

NUM_ATTRIBUTES = 5

# Column attribute -> mask bit toggled by the breakpoint key.
_ATTRIBUTE_BITS = (
    BreakpointFlag.LOAD,
    BreakpointFlag.STORE,
    BreakpointFlag.EXEC,
    BreakpointFlag.PAUSE,
    BreakpointFlag.DEV,
)


class Outcome(NamedTuple):
    """What a key press asks of the client."""

    brkp_set: Optional[Tuple[int, Breakpoint]] = None
    focus: Optional[int] = None


class Row(NamedTuple):
    id: int
    addr: int
    read: bool
    write: bool
    execute: bool
    pause: bool
    where: str
    active: bool
    focused: bool
    hit: bool


class BreakpointView:
    """One row per breakpoint slot from 1; one attribute column is selected."""

    def __init__(self, breakpoints: BreakpointSet, info: VmInfo) -> None:
        self.breakpoints = breakpoints
        self.info = info
        self.focus = 1
        self.attribute = 0

    def update_focus(self) -> None:
        """Focus the memory breakpoint at the shared focus address, if any."""
        count = len(self.breakpoints)
        for index in range(count):
            brkp = self.breakpoints[index]
            if brkp.mask == 0:
                continue
            if (
                (brkp.mask & BreakpointFlag.TYPE_MASK) == BreakpointFlag.MEM
                and brkp.addr == self.info.focus
            ):
                self.focus = index
                break
        if self.focus >= count:
            self.focus = count - 1
        if self.focus <= 0:
            self.focus = 1

    def handle(self, action: TuiAction) -> Outcome:
        old_focus = self.focus
        brkp_set = None

        if action is TuiAction.MOVE_LEFT:
            self.attribute = self.attribute - 1 if self.attribute > 0 else NUM_ATTRIBUTES - 1
        elif action is TuiAction.MOVE_RIGHT:
            self.attribute = (self.attribute + 1) % NUM_ATTRIBUTES
        elif action is TuiAction.MOVE_UP:
            if self.focus > 1:
                self.focus -= 1
        elif action is TuiAction.MOVE_DOWN:
            if self.focus < len(self.breakpoints) - 1:
                self.focus += 1
        elif action is TuiAction.MOVE_TO_LINE_START:
            self.attribute = 0
        elif action is TuiAction.MOVE_TO_LINE_END:
            self.attribute = NUM_ATTRIBUTES - 1
        elif action is TuiAction.TOGGLE_BREAKPOINT:
            current = self.breakpoints[self.focus]
            bit = int(_ATTRIBUTE_BITS[self.attribute])
            toggled = dataclasses.replace(current, mask=current.mask ^ bit)
            # Edited in place: the slot count is left as it is.
            self.breakpoints.slots[self.focus] = toggled
            brkp_set = (self.focus, toggled)

        focus = None
        if self.focus != old_focus:
            brkp = self.breakpoints[self.focus]
            if brkp.mask != 0:
                focus = brkp.addr
        return Outcome(brkp_set, focus)

    def rows(self) -> List[Row]:
        result = []
        for index in range(1, len(self.breakpoints)):
            brkp = self.breakpoints[index]
            mask = brkp.mask
            where = "mem" if (mask & BreakpointFlag.TYPE_MASK) == BreakpointFlag.MEM else "dev"
            result.append(
                Row(
                    id=index,
                    addr=brkp.addr,
                    read=bool(mask & BreakpointFlag.LOAD),
                    write=bool(mask & BreakpointFlag.STORE),
                    execute=bool(mask & BreakpointFlag.EXEC),
                    pause=bool(mask & BreakpointFlag.PAUSE),
                    where=where,
                    active=mask != 0,
                    focused=index == self.focus,
                    hit=index == self.info.brkp_id,
                )
            )
        return result