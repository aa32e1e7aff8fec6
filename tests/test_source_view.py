import pytest

from buxndbg.source_view import (
    SourceFile,
    SourceLine,
    SourceNavigator,
    load_source,
    split_lines,
)
from buxndbg.symbols import Position, Region, Symbol, SymbolTable, SymbolType

FILENAME = "main.tal"


def _sym(addr, line, col, byte, length=1, filename=FILENAME):
    return Symbol(
        SymbolType.OPCODE,
        addr,
        addr,
        Region(
            filename,
            Position(line, col, byte),
            Position(line, col + length, byte + length),
        ),
    )


@pytest.fixture
def symbols():
    # "a b\nc d\n"
    return [
        _sym(0x100, 1, 1, 0),
        _sym(0x101, 1, 3, 2),
        _sym(0x102, 2, 1, 4),
        _sym(0x103, 2, 3, 6),
    ]


@pytest.fixture
def symtab(symbols):
    return SymbolTable(symbols)


@pytest.fixture
def source(tmp_path, symtab):
    path = tmp_path / FILENAME
    path.write_bytes(b"a b\nc d\n")
    return load_source(path, symtab, FILENAME)


def test_split_lines_mixed_terminators():
    assert split_lines("a\r\nb\rc\nd") == ["a", "b", "c", "d"]


def test_split_lines_trailing_newline_and_empty():
    assert split_lines("x\n") == ["x"]
    assert split_lines("") == []
    assert split_lines("\n\n") == ["", ""]


def test_load_source_indexes_symbols(source, symbols):
    assert [line.text for line in source.lines] == ["a b", "c d"]
    assert source.lines[0].symbols == symbols[:2]
    assert source.lines[1].symbols == symbols[2:]
    assert source.symbol_text(symbols[1]) == "b"


def test_load_source_replaces_tabs_and_filters(tmp_path):
    other = _sym(0x100, 1, 1, 0, filename="other.tal")
    beyond = _sym(0x101, 5, 1, 0)
    mine = _sym(0x102, 1, 3, 2)
    path = tmp_path / "f.tal"
    path.write_bytes(b"a\tb")
    source = load_source(path, SymbolTable([other, beyond, mine]), FILENAME)
    assert "\t" not in source.lines[0].text
    assert b"\t" not in source.content
    assert source.lines[0].symbols == [mine]


def test_load_source_missing_file(tmp_path, symtab):
    with pytest.raises(OSError):
        load_source(tmp_path / "absent.tal", symtab, FILENAME)


def test_source_line_length():
    assert len(SourceLine("abc")) == 3
    assert SourceFile().line(1) is None


def test_move_right_and_left(symtab, source, symbols):
    nav = SourceNavigator(symtab, source, 0x100)
    assert nav.focused is symbols[0]
    assert nav.move_right() == symbols[1].addr_min
    assert nav.focused is symbols[1]
    assert nav.move_left() == symbols[0].addr_min
    assert nav.move_left() is None
    assert nav.focused is symbols[0]


def test_move_right_at_end(symtab, source, symbols):
    nav = SourceNavigator(symtab, source, 0x103)
    assert nav.move_right() is None
    assert nav.focus_address == 0x103


def test_move_down_keeps_column(symtab, source, symbols):
    nav = SourceNavigator(symtab, source, symbols[1].addr_min)
    assert nav.move_down() == symbols[3].addr_min
    assert nav.focused is symbols[3]
    assert nav.move_down() is None


def test_move_up_keeps_column(symtab, source, symbols):
    nav = SourceNavigator(symtab, source, symbols[2].addr_min)
    assert nav.move_up() == symbols[0].addr_min
    assert nav.move_up() is None


def test_move_up_needs_source(symtab, symbols):
    nav = SourceNavigator(symtab, None, symbols[3].addr_min)
    assert nav.move_up() is None
    assert nav.focused is symbols[3]


def test_line_start_and_end(symtab, source, symbols):
    nav = SourceNavigator(symtab, source, symbols[2].addr_min)
    assert nav.line_end() == symbols[3].addr_min
    assert nav.line_end() is None
    assert nav.line_start() == symbols[2].addr_min
    assert nav.focus_address == symbols[2].addr_min


def test_unknown_address_does_nothing(symtab, source):
    nav = SourceNavigator(symtab, source, 0x0)
    assert nav.focused is None
    assert nav.move_right() is None
    assert nav.move_down() is None
    assert nav.line_start() is None


def test_set_focus_keeps_symbol_when_unmatched(symtab, source, symbols):
    nav = SourceNavigator(symtab, source, symbols[0].addr_min)
    nav.set_focus(symbols[2].addr_min)
    assert nav.focused is symbols[2]
    nav.set_focus(0x0)
    assert nav.focused is symbols[2]
    assert nav.focus_address == 0x0