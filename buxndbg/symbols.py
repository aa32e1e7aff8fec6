"""Debug symbols and address lookup."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple


class SymbolType(enum.Enum):
    OPCODE = "opcode"
    TEXT = "text"
    NUMBER = "number"
    LABEL = "label"
    LABEL_REF = "label_ref"


@dataclass(frozen=True)
class Position:
    line: int = 0
    col: int = 0
    byte: int = 0


@dataclass(frozen=True)
class Region:
    filename: Optional[str] = None
    start: Position = Position()
    end: Position = Position()


@dataclass(frozen=True)
class Symbol:
    type: SymbolType
    addr_min: int
    addr_max: int
    region: Region = Region()

    def covers(self, address: int) -> bool:
        return self.addr_min <= address <= self.addr_max


class SymbolTable:
    """Symbols sorted by address, as produced by the assembler."""

    def __init__(self, symbols: Iterable[Symbol]) -> None:
        self.symbols: List[Symbol] = list(symbols)

    def __len__(self) -> int:
        return len(self.symbols)

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self.symbols)

    def __getitem__(self, index: int) -> Symbol:
        return self.symbols[index]

    def index_of(self, symbol: Symbol) -> int:
        """Position of this very symbol object in the table."""
        for index, candidate in enumerate(self.symbols):
            if candidate is symbol:
                return index
        raise ValueError("Symbol is not in this table")

    def locate(self, address: int, hint: int = 0) -> Tuple[Optional[Symbol], int]:
        """Find the symbol at ``address``, searching from index ``hint``.

        Non-label symbols are preferred; a label is returned only if nothing
        else covers the address. Returns the symbol and the index to use as
        the hint for the next, higher address.
        """
        index = hint
        while index < len(self.symbols):
            symbol = self.symbols[index]
            if symbol.type is not SymbolType.LABEL:
                if symbol.covers(address):
                    return symbol, index
                if symbol.addr_min > address:
                    break
            index += 1

        index = hint
        while index < len(self.symbols):
            symbol = self.symbols[index]
            if symbol.covers(address):
                return symbol, index
            if symbol.addr_min > address:
                break
            index += 1
        return None, index

    def find(self, address: int, hint: int = 0) -> Optional[Symbol]:
        """The symbol at ``address``, or None."""
        return self.locate(address, hint)[0]