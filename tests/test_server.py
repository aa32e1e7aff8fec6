import pytest

from buxndbg.protocol import (
    NO_BREAKPOINT,
    Breakpoint,
    BreakpointPush,
    Config,
    InitOption,
    InitReply,
    InitRequest,
    MessageType,
    SetFocus,
    Subscription,
    VmInfo,
)
from buxndbg.server import (
    MAX_CLIENTS,
    PC_QUERY,
    DebugServer,
    ServerError,
    guess_dbg_filename,
    guess_src_dir,
)
from buxndbg.symbols import Region, Symbol, SymbolTable, SymbolType


class Recorder:
    def __init__(self, accept=True):
        self.messages = []
        self.accept = accept

    def __call__(self, message):
        self.messages.append(message)
        return self.accept


class FakeVm:
    def __init__(self, pc=0):
        self.commands = []
        self.pc = pc

    def __call__(self, command):
        self.commands.append(command)
        if command == PC_QUERY:
            return self.pc
        return "done"


def make_client(server, subscriptions, options=0):
    handler = Recorder()
    client_id = server.add_client(handler)
    server.client_request(client_id, InitRequest("view", subscriptions, options))
    handler.messages.clear()
    return client_id, handler


def test_add_client_assigns_slots_in_order_until_full():
    server = DebugServer(Config(), FakeVm())
    ids = [server.add_client(Recorder()) for _ in range(MAX_CLIENTS)]
    assert ids == list(range(MAX_CLIENTS))
    with pytest.raises(ServerError):
        server.add_client(Recorder())


def test_removed_slot_is_reused():
    server = DebugServer(Config(), FakeVm())
    server.add_client(Recorder())
    second = server.add_client(Recorder())
    server.add_client(Recorder())
    server.remove_client(second)
    assert second not in server.clients
    assert server.add_client(Recorder()) == second


def test_init_reply_carries_info_and_config():
    config = Config("game.rom.dbg", "/src")
    server = DebugServer(config, FakeVm())
    handler = Recorder()
    client_id = server.add_client(handler)
    server.client_request(
        client_id,
        InitRequest("view", int(Subscription.INFO_PUSH), int(InitOption.INFO | InitOption.CONFIG)),
    )
    reply = handler.messages[-1]
    assert isinstance(reply, InitReply)
    assert reply.info.focus == 0x0100
    assert reply.info.brkp_id == NO_BREAKPOINT
    assert reply.config == config
    assert server.clients[client_id].initialized


def test_init_without_options_gives_empty_reply():
    server = DebugServer(Config("a"), FakeVm())
    handler = Recorder()
    client_id = server.add_client(handler)
    server.client_request(client_id, InitRequest("view", 0, 0))
    assert handler.messages == [InitReply()]


def test_message_before_init_disconnects_client():
    server = DebugServer(Config(), FakeVm())
    client_id = server.add_client(Recorder())
    with pytest.raises(ServerError):
        server.client_request(client_id, SetFocus(5))
    assert client_id not in server.clients


def test_init_twice_disconnects_client():
    server = DebugServer(Config(), FakeVm())
    client_id, _ = make_client(server, 0)
    with pytest.raises(ServerError):
        server.client_request(client_id, InitRequest("again"))
    assert client_id not in server.clients


def test_invalid_message_disconnects_client():
    server = DebugServer(Config(), FakeVm())
    client_id, _ = make_client(server, 0)
    with pytest.raises(ServerError):
        server.client_request(client_id, VmInfo())
    assert client_id not in server.clients


def test_core_reply_from_client_is_rejected():
    server = DebugServer(Config(), FakeVm())
    client_id, _ = make_client(server, 0)
    with pytest.raises(ServerError):
        server.client_request(
            client_id, {"type": MessageType.CORE, "command": "x", "reply": 1}
        )
    assert client_id not in server.clients


def test_broadcast_respects_subscription_init_and_exclude():
    server = DebugServer(Config(), FakeVm())
    focus_id, focus_handler = make_client(server, int(Subscription.FOCUS))
    other_id, other_handler = make_client(server, int(Subscription.BRKP))
    excluded_id, excluded_handler = make_client(server, int(Subscription.FOCUS))
    uninit = Recorder()
    server.add_client(uninit)

    delivered = server.broadcast("hello", Subscription.FOCUS, excluded_id)
    assert delivered == [focus_id]
    assert focus_handler.messages == ["hello"]
    assert other_handler.messages == []
    assert excluded_handler.messages == []
    assert uninit.messages == []


def test_slow_client_is_dropped_on_broadcast():
    server = DebugServer(Config(), FakeVm())
    client_id, handler = make_client(server, int(Subscription.FOCUS))
    handler.accept = False
    assert server.broadcast("x", Subscription.FOCUS) == []
    assert client_id not in server.clients


def test_set_focus_updates_info_and_skips_sender():
    server = DebugServer(Config(), FakeVm())
    sender, sender_handler = make_client(server, int(Subscription.FOCUS))
    _, listener = make_client(server, int(Subscription.FOCUS))
    server.client_request(sender, SetFocus(0x0234))
    assert server.info.focus == 0x0234
    assert listener.messages == [SetFocus(0x0234)]
    assert sender_handler.messages == []


def test_paused_queries_pc_and_pushes_info():
    vm = FakeVm(pc=0x0120)
    server = DebugServer(Config(), vm)
    _, info_handler = make_client(server, int(Subscription.INFO_PUSH))
    _, state_handler = make_client(server, int(Subscription.VM_STATE))
    server.vm_notify("paused")
    assert vm.commands == [PC_QUERY]
    assert server.info.vm_paused
    assert server.info.focus == server.info.pc == 0x0120
    assert info_handler.messages == [server.info]
    assert state_handler.messages == [
        {"type": MessageType.CORE, "event": "paused", "value": None}
    ]


def test_exec_and_break_events_update_info():
    server = DebugServer(Config(), FakeVm())
    _, info_handler = make_client(server, int(Subscription.INFO_PUSH))
    server.vm_notify("begin_exec", 0x0100)
    assert server.info.vm_executing
    assert server.info.vector_addr == server.info.pc == 0x0100
    server.vm_notify("begin_break", 3)
    assert server.info.brkp_id == 3
    assert info_handler.messages == []
    server.vm_notify("end_break")
    assert server.info.brkp_id == NO_BREAKPOINT
    assert not server.info.vm_paused
    assert len(info_handler.messages) == 1
    server.vm_notify("end_exec")
    assert not server.info.vm_executing


def test_unknown_vm_event_is_rejected():
    server = DebugServer(Config(), FakeVm())
    with pytest.raises(ValueError):
        server.vm_notify("explode")


def test_core_command_is_forwarded_and_breakpoint_broadcast():
    vm = FakeVm()
    server = DebugServer(Config(), vm)
    sender, sender_handler = make_client(server, int(Subscription.BRKP))
    _, listener = make_client(server, int(Subscription.BRKP))
    command = BreakpointPush(1, Breakpoint(0x0150, 0x0C))
    server.client_request(sender, {"type": MessageType.CORE, "command": command})
    assert vm.commands == [command]
    assert sender_handler.messages == [
        {"type": MessageType.CORE, "command": command, "reply": "done"}
    ]
    assert listener.messages == [command]


def test_plain_core_command_is_not_broadcast():
    vm = FakeVm()
    server = DebugServer(Config(), vm)
    sender, sender_handler = make_client(server, int(Subscription.BRKP))
    _, listener = make_client(server, int(Subscription.BRKP))
    server.client_request(sender, {"type": MessageType.CORE, "command": "step_in"})
    assert vm.commands == ["step_in"]
    assert len(sender_handler.messages) == 1
    assert listener.messages == []


def test_guess_dbg_filename(tmp_path):
    rom = tmp_path / "game.rom"
    (tmp_path / "game.rom.dbg").write_bytes(b"")
    missing = tmp_path / "other.rom"
    argv = ["uxnemu", str(missing), str(rom)]
    assert guess_dbg_filename(argv) == f"{rom}.dbg"
    assert guess_dbg_filename(["uxnemu", str(missing)]) is None
    assert guess_dbg_filename([str(rom)]) is None


def test_guess_src_dir(tmp_path):
    project = tmp_path / "project"
    (project / "build").mkdir(parents=True)
    (project / "main.tal").write_text("|0100")
    dbg = project / "build" / "main.rom.dbg"
    symtab = SymbolTable(
        [Symbol(SymbolType.OPCODE, 0x100, 0x100, Region(filename="main.tal"))]
    )
    assert guess_src_dir(str(dbg), symtab) == str(project)


def test_guess_src_dir_without_sources(tmp_path):
    dbg = tmp_path / "main.rom.dbg"
    assert guess_src_dir(str(dbg), SymbolTable([])) is None
    symtab = SymbolTable([Symbol(SymbolType.OPCODE, 0, 0, Region(filename="nope.tal"))])
    assert guess_src_dir(str(dbg), symtab) is None