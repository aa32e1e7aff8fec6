"""Navigation state for the return-stack view and layout of the working stack."""

from __future__ import annotations

import enum
from typing import List, Optional, Sequence, Tuple

from .protocol import VmInfo
from .tui import TuiAction

NUM_SPACES_PER_BYTE = 3

_MOVE_BACK = (TuiAction.MOVE_UP, TuiAction.MOVE_LEFT)
_MOVE_FORWARD = (TuiAction.MOVE_DOWN, TuiAction.MOVE_RIGHT)


class RstFocus(enum.Enum):
    UNKNOWN = "unknown"
    VECTOR = "vector"
    RST = "rst"
    PC = "pc"


class ReturnStackView:
    """The vector, the return addresses and the pc, one of which has focus.

    ``stack`` holds the raw bytes of the return stack, up to its pointer.
    """

    def __init__(self, info: VmInfo, stack: Sequence[int] = b"") -> None:
        self.info = info
        self.stack = bytes(stack)
        self.focus_type = RstFocus.UNKNOWN
        self.focus_index = 0
        self._sync()

    @property
    def depth(self) -> int:
        return len(self.stack) // 2

    def return_addresses(self) -> List[int]:
        """Return addresses from least to most recent."""
        data = self.stack
        return [
            (data[i] << 8) | (data[i + 1] if i + 1 < len(data) else 0)
            for i in range(0, len(data), 2)
        ]

    def _sync(self) -> None:
        """Work out which entry has focus from the shared focus address."""
        focus = self.info.focus
        self.focus_type = RstFocus.UNKNOWN
        if self.info.vector_addr == focus:
            self.focus_type = RstFocus.VECTOR
        for index, address in enumerate(self.return_addresses()):
            if address == focus:
                self.focus_type = RstFocus.RST
                self.focus_index = index
        if self.info.pc == focus:
            self.focus_type = RstFocus.PC

    def _move_back(self) -> None:
        if self.focus_type in (RstFocus.UNKNOWN, RstFocus.PC):
            if self.depth > 0:
                self.focus_type = RstFocus.RST
                self.focus_index = self.depth - 1
            else:
                self.focus_type = RstFocus.VECTOR
        elif self.focus_type is RstFocus.RST:
            if self.focus_index > 0:
                self.focus_index -= 1
            else:
                self.focus_type = RstFocus.VECTOR
        else:
            self.focus_type = RstFocus.PC

    def _move_forward(self) -> None:
        if self.focus_type is RstFocus.PC:
            self.focus_type = RstFocus.VECTOR
        elif self.focus_type is RstFocus.RST:
            if self.focus_index < self.depth - 1:
                self.focus_index += 1
            else:
                self.focus_type = RstFocus.PC
        elif self.depth > 0:
            self.focus_type = RstFocus.RST
            self.focus_index = 0
        else:
            self.focus_type = RstFocus.PC

    def handle(self, action: TuiAction) -> Optional[int]:
        """Apply a navigation action.

        Returns the new focus address to announce, or None when the focus
        did not move.
        """
        self._sync()
        if action in _MOVE_BACK:
            self._move_back()
        elif action in _MOVE_FORWARD:
            self._move_forward()
        elif action is TuiAction.MOVE_TO_LINE_START:
            self.focus_type = RstFocus.VECTOR
        elif action is TuiAction.MOVE_TO_LINE_END:
            self.focus_type = RstFocus.PC
        else:
            return None

        next_focus = self.focus_address()
        if next_focus == self.info.focus:
            return None
        self.info.focus = next_focus
        return next_focus

    def focus_address(self) -> int:
        """The address of the entry that has focus."""
        if self.focus_type is RstFocus.VECTOR:
            return self.info.vector_addr
        if self.focus_type is RstFocus.RST:
            return self.return_addresses()[self.focus_index]
        return self.info.pc


def render_working_stack(data: Sequence[int], width: int) -> List[Tuple[int, int, str]]:
    """Screen cells ``(x, y, text)`` for the working stack bytes."""
    per_row = width // NUM_SPACES_PER_BYTE
    if per_row <= 0:
        raise ValueError("Screen is too narrow")
    return [
        ((i % per_row) * NUM_SPACES_PER_BYTE, i // per_row, f"{byte:02x}")
        for i, byte in enumerate(data)
    ]