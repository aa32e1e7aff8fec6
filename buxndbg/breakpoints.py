"""Client-side mirror of the VM's breakpoint table."""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from .protocol import Breakpoint, BreakpointFlag
from .symbols import Symbol, SymbolType

MAX_BREAKPOINTS = 255
_EMPTY = Breakpoint()


class BreakpointSet:
    """Breakpoint slots; ``len()`` is one past the highest active slot.

    Slot 0 is reserved for "run to cursor" and is never picked by ``toggle``.
    """

    def __init__(self) -> None:
        self.slots: List[Breakpoint] = [_EMPTY] * MAX_BREAKPOINTS
        self.count = 0

    def __len__(self) -> int:
        return self.count

    def __getitem__(self, brkp_id: int) -> Breakpoint:
        return self.slots[brkp_id]

    def __iter__(self) -> Iterator[Breakpoint]:
        return iter(self.slots[: self.count])

    def update(self, brkp_id: int, brkp: Breakpoint) -> None:
        """Store ``brkp`` in a slot and adjust the count."""
        self.slots[brkp_id] = brkp
        if brkp.mask == 0:
            self.count = next(
                (i + 1 for i in range(self.count - 1, -1, -1) if self.slots[i].mask != 0),
                0,
            )
        elif brkp_id >= self.count:
            self.count = brkp_id + 1

    def find(self, address: int, where: int) -> Optional[Breakpoint]:
        """The active breakpoint at ``address`` in memory or device space."""
        for brkp in self:
            if (
                brkp.mask != 0
                and brkp.addr == address
                and (brkp.mask & BreakpointFlag.TYPE_MASK) == where
            ):
                return brkp
        return None

    def toggle(
        self, address: int, mask: int, symbol: Optional[Symbol] = None
    ) -> Optional[Tuple[int, Breakpoint]]:
        """Remove the breakpoint at ``address`` or add one.

        Returns the slot and breakpoint to send to the VM, or None when no
        free slot is left.
        """
        brkp_type = mask & BreakpointFlag.TYPE_MASK
        existing = next(
            (
                i
                for i, brkp in enumerate(self)
                if brkp.mask != 0
                and brkp.addr == address
                and (brkp.mask & BreakpointFlag.TYPE_MASK) == brkp_type
            ),
            None,
        )
        if existing is not None:
            self.update(existing, _EMPTY)
            return existing, _EMPTY

        if symbol is not None:
            if symbol.type is SymbolType.OPCODE:
                mask |= BreakpointFlag.EXEC
            else:
                mask |= BreakpointFlag.LOAD | BreakpointFlag.STORE
        else:
            mask |= BreakpointFlag.EXEC | BreakpointFlag.LOAD | BreakpointFlag.STORE

        free = next((i for i in range(1, MAX_BREAKPOINTS) if self.slots[i].mask == 0), None)
        if free is None:
            return None
        brkp = Breakpoint(address, int(mask))
        self.update(free, brkp)
        return free, brkp