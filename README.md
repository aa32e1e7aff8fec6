# buxndbg

Building blocks for debugging programs on the buxn virtual machine: the
state of a debug server that sits between the VM and many viewer clients,
the messages they exchange, and the focus and navigation logic behind each
viewer. It has no dependencies outside the standard library.

## Modules

- `buxndbg.args`: a command-line option parser. `ArgParser(options,
  allow_positional, usage, summary)` parses an `argv` whose first item is the
  command name and returns a `ParseResult` (`status`, `arg_index`, `value`,
  `message`, and the collected `values` keyed by option name). `Option`
  supports long and short names, `--opt=value`, `--opt value`, `-ovalue`,
  boolean flags and repeatable options; `ArrayValue` collects a bounded
  number of repeated values. `format_help()` and `format_result()` produce
  the help and error text. Also `parse_int` (decimal, `0x` hex, leading-zero
  octal, within 32-bit range), `parse_flag`, `help_option` and
  `hidden_help_option`.
- `buxndbg.transport`: `parse_transport` turns `file:<path>`,
  `unix-connect:<name>`, `unix-listen:<name>`, `abstract-connect:<name>`,
  `abstract-listen:<name>`, `tcp-connect:<address>:<port>` and
  `tcp-listen:<port>` into a frozen `Transport`. `parse_connect_transport`
  and `parse_listen_transport` accept only the matching kind,
  `parse_log_level` reads `trace` … `fatal` into a `LogLevel`, and
  `connect_option()` builds the `--connect` option. Invalid input raises
  `ValueError`.
- `buxndbg.protocol`: the message dataclasses (`InitRequest`, `InitReply`,
  `VmInfo`, `Config`, `SetFocus`, `BreakpointPush`, `Bye`, `Breakpoint`),
  the flag enums (`Subscription`, `InitOption`, `BreakpointFlag`) and
  `encode_message` / `decode_message`, which convert to and from plain
  records of the form `{"type": <int>, "body": {...}}`. Core VM messages are
  not handled by this codec.
- `buxndbg.symbols`: `Symbol`, `Region`, `Position`, `SymbolType` and
  `SymbolTable`, whose `find(address, hint=0)` returns the symbol at an
  address, preferring non-label symbols. `locate()` also returns the index
  to use as the hint for the next, higher address.
- `buxndbg.breakpoints`: `BreakpointSet`, 255 slots of which slot 0 is kept
  for "run to cursor". `update`, `find` and `toggle`. `toggle` returns the
  `(slot, breakpoint)` to send to the VM, or `None` when no slot is free.
- `buxndbg.tui`: the key bindings shared by every view. `handle_event`
  maps an `Event` to a `TuiAction`, `step_command` maps a key to a
  `StepCommand`, and `status_line` pads text to the screen width.
- `buxndbg.stack_view`: `ReturnStackView` (focus moves between the vector,
  the return addresses and the pc) and `render_working_stack`, which lays
  out stack bytes as `(x, y, text)` cells.
- `buxndbg.breakpoint_view`: `BreakpointView`, with `update_focus`,
  `handle` (moving between rows and the r/w/x/pause/where columns, toggling
  bits) and `rows`.
- `buxndbg.memory_view`: `ViewBuffer`, which plans reads that reuse
  already-loaded bytes (`plan_load`, `commit`, `byte_at`), and
  `MemoryView`, which scrolls the hex dump (`layout`) and moves the focus
  (`handle`).
- `buxndbg.source_view`: `split_lines`, `load_source` (reads a file, turns
  tabs into spaces and attaches symbols to their lines) and
  `SourceNavigator`, which moves the focus symbol by symbol
  (`move_left`, `move_right`, `move_up`, `move_down`, `line_start`,
  `line_end`).
- `buxndbg.server`: `DebugServer`, which holds up to 32 clients, their
  subscriptions and the shared `VmInfo`, and routes init, focus changes,
  breakpoint updates and VM events (`add_client`, `remove_client`,
  `broadcast`, `vm_notify`, `set_focus`, `client_request`). A client that
  breaks the protocol is removed and `ServerError` is raised. Also
  `guess_dbg_filename`, `guess_src_dir` and `absolute_path`.

## Examples

Parsing options:

```python
from buxndbg.args import ArgParser, hidden_help_option
from buxndbg.transport import connect_option

parser = ArgParser([connect_option(), hidden_help_option()],
                   usage="view:memory [options]")
result = parser.parse(["view:memory", "--connect", "tcp-listen:7000"])
print(result.status, result.message)   # PARSE_ERROR: not a connect transport

result = parser.parse(["view:memory", "-c", "abstract-connect:buxn/dbg"])
transport = result.values["connect"]   # Transport(kind=NET_CONNECT, address="@buxn/dbg", ...)
```

Looking up a symbol:

```python
from buxndbg.symbols import Symbol, SymbolTable, SymbolType

symtab = SymbolTable([Symbol(SymbolType.OPCODE, 0x0100, 0x0100)])
symbol = symtab.find(0x0100)
```

Toggling a breakpoint:

```python
from buxndbg.breakpoints import BreakpointSet
from buxndbg.protocol import BreakpointFlag

breakpoints = BreakpointSet()
slot, brkp = breakpoints.toggle(0x0100, BreakpointFlag.PAUSE, None)
```

Driving the server state:

```python
from buxndbg.protocol import Config, InitOption, InitRequest, Subscription
from buxndbg.server import DebugServer

received = []
server = DebugServer(Config(), send_vm_command=lambda command: 0x0100)
client_id = server.add_client(received.append)
server.client_request(client_id, InitRequest("viewer", Subscription.FOCUS, InitOption.INFO))
# received[0] is an InitReply carrying the current VmInfo
```

## Key bindings

`handle_event` and `step_command` give every view the same keys:

| Key | Action |
| --- | --- |
| `q`, `Esc`, `Ctrl-C` | quit |
| `h`/`j`/`k`/`l`, arrows | move |
| `0`, `Home` / `$`, `End` | line start / end |
| `s` / `n` / `r` / `c` | step in / step over / step out / continue |
| `b` | toggle breakpoint |

## What this package does not do

- It has no command to run: there is no command-line program, only the
  pieces such a program would be built from.
- It opens no sockets and does not connect to a VM. `DebugServer` is given
  events and messages by its caller and reaches the VM only through the
  `send_vm_command` callable.
- It does not draw to a terminal. The view classes hold focus, scrolling
  and row data; rendering and reading keys are left to the caller.
- It does not read `.rom.dbg` files. A `SymbolTable` is built from `Symbol`
  values that the caller provides.
- It has no remote log server or log client.

## Tests

The tests use pytest; install the `test` extra and run `pytest`.