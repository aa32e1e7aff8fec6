"""Source files split into lines, and symbol-wise navigation through them."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from .symbols import Symbol, SymbolTable


@dataclass
class SourceLine:
    """One line of a source file and the symbols that start on it."""

    text: str
    symbols: List[Symbol] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.text)


@dataclass
class SourceFile:
    """A loaded source file; symbol regions index into ``content`` by byte."""

    content: bytes = b""
    lines: List[SourceLine] = field(default_factory=list)

    def symbol_text(self, symbol: Symbol) -> str:
        """The source text that a symbol spans."""
        start = symbol.region.start.byte
        end = symbol.region.end.byte
        return self.content[start:end].decode("utf-8", errors="replace")

    def line(self, lineno: int) -> Optional[SourceLine]:
        """The line with the 1-based number ``lineno``, if there is one."""
        if 1 <= lineno <= len(self.lines):
            return self.lines[lineno - 1]
        return None


def split_lines(content: str) -> List[str]:
    """Split on ``\\n``, ``\\r\\n`` or a lone ``\\r``.

    A final terminator does not start an extra empty line.
    """
    lines: List[str] = []
    start = 0
    index = 0
    size = len(content)
    while index < size:
        ch = content[index]
        if ch == "\n":
            lines.append(content[start:index])
            start = index + 1
        elif ch == "\r":
            lines.append(content[start:index])
            if index + 1 < size and content[index + 1] == "\n":
                index += 1
            start = index + 1
        index += 1
    if start < size:
        lines.append(content[start:])
    return lines


def load_source(
    path: Union[str, Path], symtab: SymbolTable, filename: str
) -> SourceFile:
    """Read a source file and attach to each line the symbols starting on it.

    Tabs are turned into spaces since they cannot be rendered. Only symbols
    whose region names ``filename`` are indexed. Raises OSError if the file
    cannot be read.
    """
    content = Path(path).read_bytes().replace(b"\t", b" ")
    text = content.decode("utf-8", errors="replace")
    source = SourceFile(content, [SourceLine(line) for line in split_lines(text)])

    for symbol in symtab:
        if symbol.region.filename != filename:
            continue
        line = source.line(symbol.region.start.line)
        if line is not None:
            line.symbols.append(symbol)
    return source


class SourceNavigator:
    """Moves the focus from symbol to symbol within a source file.

    Each move returns the new focus address to announce, or None when the
    focused symbol did not change.
    """

    def __init__(
        self,
        symtab: SymbolTable,
        source: Optional[SourceFile] = None,
        focus_address: int = 0,
    ) -> None:
        self.symtab = symtab
        self.source = source
        self.focus_address = focus_address
        self.focused: Optional[Symbol] = symtab.find(focus_address)

    def set_focus(self, address: int) -> None:
        """Follow a focus address set elsewhere, keeping the old symbol if none matches."""
        self.focus_address = address
        symbol = self.symtab.find(address)
        if symbol is not None:
            self.focused = symbol

    def _commit(self, old: Optional[Symbol]) -> Optional[int]:
        if self.focused is old or self.focused is None:
            return None
        self.focus_address = self.focused.addr_min
        return self.focus_address

    def _search_sideways(self, step: int) -> Optional[int]:
        focused = self.focused
        if focused is None:
            return None
        index = self.symtab.index_of(focused)
        start_byte = focused.region.start.byte
        candidates = (
            range(index - 1, -1, -1) if step < 0 else range(index + 1, len(self.symtab))
        )
        for i in candidates:
            symbol = self.symtab[i]
            if symbol.region.filename != focused.region.filename:
                continue
            if step < 0:
                matches = (
                    symbol.region.start.byte < start_byte
                    and symbol.addr_min < self.focus_address
                )
            else:
                matches = (
                    symbol.region.start.byte > start_byte
                    and symbol.addr_min > self.focus_address
                )
            if matches:
                self.focused = symbol
                break
        return self._commit(focused)

    def move_left(self) -> Optional[int]:
        """Focus the previous symbol in the same file at a lower address."""
        return self._search_sideways(-1)

    def move_right(self) -> Optional[int]:
        """Focus the next symbol in the same file at a higher address."""
        return self._search_sideways(1)

    def _search_vertically(self, step: int) -> Optional[int]:
        focused = self.focused
        if focused is None or self.source is None:
            return None

        lineno = focused.region.start.line
        num_lines = len(self.source.lines)
        if step < 0:
            linenos = range(lineno - 1, 0, -1)
            reaches: Callable[[Symbol], bool] = lambda s: s.addr_min < self.focus_address
            beyond: Callable[[Symbol], bool] = lambda s: s.addr_min < focused.addr_min
        else:
            linenos = range(lineno + 1, num_lines + 1)
            reaches = lambda s: s.addr_min > self.focus_address
            beyond = lambda s: s.addr_min > focused.addr_min

        line = next(
            (
                self.source.lines[n - 1]
                for n in linenos
                if 1 <= n <= num_lines
                and any(reaches(s) for s in self.source.lines[n - 1].symbols)
            ),
            None,
        )
        if line is not None:
            col = focused.region.start.col
            best: Optional[Symbol] = None
            best_diff: Optional[int] = None
            for candidate in line.symbols:
                if not beyond(candidate):
                    continue
                diff = abs(candidate.region.start.col - col)
                if best_diff is None or diff < best_diff:
                    best, best_diff = candidate, diff
            if best is not None:
                self.focused = best
        return self._commit(focused)

    def move_up(self) -> Optional[int]:
        """Focus the closest-column symbol on an earlier line at a lower address."""
        return self._search_vertically(-1)

    def move_down(self) -> Optional[int]:
        """Focus the closest-column symbol on a later line at a higher address."""
        return self._search_vertically(1)

    def _line_symbols(self) -> List[Symbol]:
        if self.focused is None or self.source is None:
            return []
        line = self.source.line(self.focused.region.start.line)
        return line.symbols if line is not None else []

    def line_start(self) -> Optional[int]:
        """Focus the first symbol on the focused symbol's line."""
        old = self.focused
        symbols = self._line_symbols()
        if symbols:
            self.focused = symbols[0]
        return self._commit(old)

    def line_end(self) -> Optional[int]:
        """Focus the last symbol on the focused symbol's line."""
        old = self.focused
        symbols = self._line_symbols()
        if symbols:
            self.focused = symbols[-1]
        return self._commit(old)