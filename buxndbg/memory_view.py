"""State of the memory hex-dump view: visible range, loaded bytes and focus."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .breakpoints import BreakpointSet
from .protocol import Breakpoint, BreakpointFlag, VmInfo
from .symbols import Symbol, SymbolTable, SymbolType
from .tui import TuiAction

NUM_HEADER_LINES = 1
NUM_SPACES_PER_BYTE = 3  # A space and 2 nibbles
BYTE_CHUNK_SIZE = 2  # Rows always hold a whole number of 2-byte groups
MAX_ADDRESS = 0xFFFF

_SYMBOL_TYPE_NAMES = {
    SymbolType.OPCODE: "opcode",
    SymbolType.TEXT: "text",
    SymbolType.NUMBER: "number",
    SymbolType.LABEL: "label",
    SymbolType.LABEL_REF: "label",
}


@dataclass
class LoadPlan:
    """A new buffer for ``[start, end)``, prefilled with reusable bytes.

    ``reads`` lists the ``(address, size)`` ranges still to fetch from the VM.
    """

    start: int
    end: int
    data: bytearray
    reads: List[Tuple[int, int]] = field(default_factory=list)

    def fill(self, address: int, values: Sequence[int]) -> None:
        """Store bytes read from the VM at ``address``."""
        offset = address - self.start
        if offset < 0 or offset + len(values) > len(self.data):
            raise ValueError("Read falls outside the planned range")
        self.data[offset:offset + len(values)] = bytes(values)


class ViewBuffer:
    """The bytes shown on screen and the range being loaded."""

    def __init__(self) -> None:
        self.buffer = b""
        self.loaded_start = 0
        self.loaded_end = 0
        self.loading_start = 0
        self.loading_end = 0

    def needs_load(self, start: int, end: int) -> bool:
        """Whether ``[start, end)`` is not covered by the range being loaded."""
        return not (
            self.loading_start <= start < self.loading_end
            and self.loading_start <= end <= self.loading_end
        )

    def plan_load(self, start: int, end: int) -> LoadPlan:
        """Mark ``[start, end)`` as loading and work out what must be read.

        Bytes already loaded that overlap the new range are copied over.
        """
        self.loading_start = start
        self.loading_end = end
        plan = LoadPlan(start, end, bytearray(max(end - start, 0)))

        loaded_start, loaded_end = self.loaded_start, self.loaded_end
        if loaded_start <= start < loaded_end:
            reuse_start = start
            reuse_end = min(end, loaded_end)
            self._reuse(plan, reuse_start, reuse_end)
            load_size = end - reuse_end
            if load_size > 0:
                plan.reads.append((reuse_end, load_size))
        elif loaded_start <= end < loaded_end:
            reuse_end = end
            reuse_start = max(start, loaded_start)
            self._reuse(plan, reuse_start, reuse_end)
            load_size = reuse_start - start
            if load_size > 0:
                plan.reads.append((start, load_size))
        else:
            plan.reads.append((start, end - start))
        return plan

    def _reuse(self, plan: LoadPlan, reuse_start: int, reuse_end: int) -> None:
        chunk = self.buffer[reuse_start - self.loaded_start:reuse_end - self.loaded_start]
        plan.data[reuse_start - plan.start:reuse_end - plan.start] = chunk

    def commit(self, start: int, end: int, data: Sequence[int]) -> None:
        """Make ``data`` the bytes shown for ``[start, end)``."""
        if len(data) != end - start:
            raise ValueError("Data does not match the address range")
        self.buffer = bytes(data)
        self.loaded_start = start
        self.loaded_end = end

    def byte_at(self, address: int) -> Optional[int]:
        """The loaded byte at ``address``, or None if it is not loaded."""
        if self.loaded_start <= address < self.loaded_end:
            return self.buffer[address - self.loaded_start]
        return None


class Layout(NamedTuple):
    bytes_per_row: int
    top_line: int
    bottom_line: int
    focus_line: int
    start_address: int
    end_address: int  # exclusive


class Outcome(NamedTuple):
    """What a key press asks of the client."""

    focus: Optional[int] = None
    brkp_set: Optional[Tuple[int, Breakpoint]] = None


class MemoryView:
    """Focus and scrolling of the hex dump."""

    def __init__(self, focus_address: int = 0, pc: int = 0, vm_paused: bool = False) -> None:
        self.focus_address = focus_address
        self.pc = pc
        self.vm_paused = vm_paused
        self.top_line = 0
        self.buffer = ViewBuffer()
        self.breakpoints = BreakpointSet()
        self.symtab: Optional[SymbolTable] = None
        self._layout: Optional[Layout] = None

    def layout(self, width: int, height: int) -> Layout:
        """Scroll so the focused byte is visible and return the visible range."""
        bytes_per_row = (width // NUM_SPACES_PER_BYTE) // BYTE_CHUNK_SIZE * BYTE_CHUNK_SIZE
        if bytes_per_row <= 0:
            raise ValueError("Screen is too narrow")

        focus_line = self.focus_address // bytes_per_row
        if focus_line < self.top_line:
            self.top_line = focus_line

        bottom_line = self.top_line + height - NUM_HEADER_LINES - 1 - 1
        if focus_line > bottom_line:
            movement = focus_line - bottom_line
            self.top_line += movement
            bottom_line += movement

        start_address = self.top_line * bytes_per_row
        end_address = min((bottom_line + 1) * bytes_per_row, MAX_ADDRESS)
        self._layout = Layout(
            bytes_per_row, self.top_line, bottom_line, focus_line, start_address, end_address
        )
        return self._layout

    def pending_load(self, layout: Layout) -> Optional[Tuple[int, int]]:
        """The range to request from the VM, if the visible one is not loading."""
        if self.vm_paused and self.buffer.needs_load(layout.start_address, layout.end_address):
            return layout.start_address, layout.end_address
        return None

    def apply_info(self, info: VmInfo) -> Optional[Tuple[int, int]]:
        """Take a pushed VM state; returns the loaded range to re-read if paused."""
        self.focus_address = info.focus
        self.pc = info.pc
        self.vm_paused = info.vm_paused
        if info.vm_paused:
            return self.buffer.loaded_start, self.buffer.loaded_end - self.buffer.loaded_start
        return None

    def cell_text(self, address: int) -> str:
        value = self.buffer.byte_at(address)
        return "??" if value is None else f"{value:02x}"

    def focused_symbol(self) -> Optional[Symbol]:
        if self.symtab is None:
            return None
        return self.symtab.find(self.focus_address)

    def focus_type_name(self) -> Optional[str]:
        """Kind of symbol under the focus, as shown in the header."""
        symbol = self.focused_symbol()
        if symbol is None:
            return None
        return _SYMBOL_TYPE_NAMES.get(symbol.type, "Unknown")

    def handle(self, action: TuiAction) -> Outcome:
        """Apply a key action using the most recent layout."""
        if self._layout is None:
            raise RuntimeError("layout() must be called first")
        per_row = self._layout.bytes_per_row
        focus_line = self._layout.focus_line
        old_focus = self.focus_address
        brkp_set = None

        if action is TuiAction.MOVE_UP:
            self.focus_address = max(self.focus_address - per_row, 0)
        elif action is TuiAction.MOVE_DOWN:
            self.focus_address = min(self.focus_address + per_row, MAX_ADDRESS)
        elif action is TuiAction.MOVE_LEFT:
            self.focus_address = max(self.focus_address - 1, 0)
        elif action is TuiAction.MOVE_RIGHT:
            self.focus_address = min(self.focus_address + 1, MAX_ADDRESS)
        elif action is TuiAction.MOVE_TO_LINE_START:
            self.focus_address = focus_line * per_row
        elif action is TuiAction.MOVE_TO_LINE_END:
            self.focus_address = (focus_line + 1) * per_row - 1
        elif action is TuiAction.TOGGLE_BREAKPOINT:
            brkp_set = self.breakpoints.toggle(
                self.focus_address,
                BreakpointFlag.MEM | BreakpointFlag.PAUSE,
                self.focused_symbol(),
            )

        focus = self.focus_address if self.focus_address != old_focus else None
        return Outcome(focus, brkp_set)