"""Debug server state: connected clients, VM state and message routing.

The transport work (sockets, the VM connection) is left to the caller. The
server is handed VM events through ``vm_notify`` and client messages through
``client_request``. It talks to the VM through the ``send_vm_command``
callable given at construction.

Core debug messages are plain mappings:

* a client's command request: ``{"type": MessageType.CORE, "command": cmd}``
* the reply sent back: the same keys plus ``"reply": <result>``
* a VM event forwarded to clients:
  ``{"type": MessageType.CORE, "event": kind, "value": value}``

A breakpoint-set command is given as a ``BreakpointPush``. Once the VM has
run it, it is announced to the other clients.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .protocol import (
    NO_BREAKPOINT,
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
from .symbols import SymbolTable

logger = logging.getLogger(__name__)

MAX_CLIENTS = 32
DEFAULT_FOCUS = 0x0100
PC_QUERY = "info:pc"
_PATH_BUFFER_SIZE = 1024

VM_EVENTS = frozenset({"begin_exec", "end_exec", "begin_break", "end_break", "paused"})

Handler = Callable[[Any], Optional[bool]]


class ServerError(Exception):
    """A client misbehaved or the server could not accept it."""


@dataclass
class ClientSlot:
    """A connected client and what it has subscribed to."""

    id: int
    handler: Handler
    initialized: bool = False
    subscriptions: int = 0


class DebugServer:
    """Routes messages between the VM and up to ``MAX_CLIENTS`` clients."""

    def __init__(
        self,
        config: Optional[Config] = None,
        send_vm_command: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self.config = config if config is not None else Config()
        self.send_vm_command = send_vm_command
        self.info = VmInfo(brkp_id=NO_BREAKPOINT, focus=DEFAULT_FOCUS)
        self.slots: List[Optional[ClientSlot]] = [None] * MAX_CLIENTS

    @property
    def clients(self) -> Dict[int, ClientSlot]:
        return {slot.id: slot for slot in self.slots if slot is not None}

    def _vm(self, command: Any) -> Any:
        if self.send_vm_command is None:
            raise ServerError("No VM is connected")
        return self.send_vm_command(command)

    def add_client(self, handler: Handler) -> int:
        """Give a new client the first free slot and return its id."""
        for client_id, slot in enumerate(self.slots):
            if slot is None:
                self.slots[client_id] = ClientSlot(client_id, handler)
                logger.info("Client %d connected", client_id)
                return client_id
        raise ServerError("Maximum number of clients reached, rejecting connection")

    def remove_client(self, client_id: int) -> None:
        """Free the slot of a client that has gone away."""
        if 0 <= client_id < MAX_CLIENTS and self.slots[client_id] is not None:
            logger.info("Client %d disconnected", client_id)
            self.slots[client_id] = None

    def _slot(self, client_id: int) -> ClientSlot:
        slot = self.slots[client_id] if 0 <= client_id < MAX_CLIENTS else None
        if slot is None:
            raise ServerError(f"Client {client_id} is not connected")
        return slot

    def _terminate(self, client_id: int, reason: str) -> ServerError:
        logger.warning("Client %d %s", client_id, reason)
        self.remove_client(client_id)
        return ServerError(f"Client {client_id} {reason}")

    def broadcast(self, message: Any, mask: int, exclude: int = -1) -> List[int]:
        """Send to every initialized client subscribed to ``mask``.

        A handler that returns False is too slow and gets disconnected.
        Returns the ids of the clients that took the message.
        """
        delivered = []
        for slot in list(self.slots):
            if (
                slot is None
                or slot.id == exclude
                or not slot.initialized
                or (slot.subscriptions & int(mask)) == 0
            ):
                continue
            if slot.handler(message) is False:
                logger.warning("Client %d takes too long to process messages", slot.id)
                self.remove_client(slot.id)
            else:
                delivered.append(slot.id)
        return delivered

    def _push_info(self) -> None:
        self.broadcast(dataclasses.replace(self.info), Subscription.INFO_PUSH)

    def vm_notify(self, kind: str, value: Optional[int] = None) -> None:
        """Take an event from the VM, update its state and tell the clients."""
        if kind not in VM_EVENTS:
            raise ValueError(f"Unknown VM event: {kind}")

        if kind == "begin_exec":
            self.info.vm_executing = True
            self.info.vector_addr = value or 0
            self.info.pc = value or 0
        elif kind == "end_exec":
            self.info.vm_executing = False
        elif kind == "begin_break":
            self.info.brkp_id = value if value is not None else NO_BREAKPOINT
        elif kind == "end_break":
            self.info.vm_paused = False
            self.info.brkp_id = NO_BREAKPOINT
            self._push_info()
        elif kind == "paused":
            self.info.vm_paused = True
            # Cache pc so new clients immediately get an up-to-date value
            self.info.pc = int(self._vm(PC_QUERY))
            self.info.focus = self.info.pc
            self._push_info()

        notification = {"type": MessageType.CORE, "event": kind, "value": value}
        self.broadcast(notification, Subscription.VM_STATE)

    def set_focus(self, client_id: int, address: int) -> None:
        """Move the shared focus and tell every other focus subscriber."""
        self.info.focus = address
        self.broadcast(SetFocus(address), Subscription.FOCUS, client_id)

    def client_request(self, client_id: int, message: Any) -> None:
        """Handle a message from a client.

        A client that breaks the protocol is disconnected and ServerError is
        raised.
        """
        slot = self._slot(client_id)
        if not slot.initialized and not isinstance(message, InitRequest):
            raise self._terminate(client_id, "sends message without initialization")

        if isinstance(message, InitRequest):
            if slot.initialized:
                raise self._terminate(client_id, "sent init twice")
            reply = InitReply()
            if message.options & InitOption.INFO:
                reply.info = dataclasses.replace(self.info)
            if message.options & InitOption.CONFIG:
                reply.config = dataclasses.replace(self.config)
            slot.subscriptions = int(message.subscriptions)
            slot.handler(reply)
            slot.initialized = True
        elif isinstance(message, SetFocus):
            self.set_focus(client_id, message.address)
        elif _is_core_request(message):
            command = message["command"]
            result = self._vm(command)
            slot.handler({"type": MessageType.CORE, "command": command, "reply": result})
            if isinstance(command, BreakpointPush):
                push = BreakpointPush(command.id, command.brkp)
                self.broadcast(push, Subscription.BRKP, client_id)
        elif isinstance(message, Mapping) and message.get("type") == MessageType.CORE:
            raise self._terminate(client_id, "sends invalid core message")
        else:
            raise self._terminate(client_id, "sends invalid message")


def _is_core_request(message: Any) -> bool:
    return (
        isinstance(message, Mapping)
        and message.get("type") == MessageType.CORE
        and "command" in message
        and "reply" not in message
        and "event" not in message
    )


def _openable(path: str) -> bool:
    try:
        with open(path, "rb"):
            return True
    except OSError:
        return False


def guess_dbg_filename(argv: Sequence[str]) -> Optional[str]:
    """Find ``<rom>.dbg`` for the first ``.rom`` argument after the command."""
    for arg in argv[1:]:
        if not arg.endswith(".rom"):
            continue
        candidate = f"{arg}.dbg"
        if 0 < len(candidate) < _PATH_BUFFER_SIZE and _openable(candidate):
            return candidate
    return None


def guess_src_dir(dbg_filename: str, symtab: SymbolTable) -> Optional[str]:
    """Search upward from the debug file for the directory holding the sources.

    The source file looked for is the last one named in the symbol table.
    """
    src_file = None
    for symbol in symtab:
        if symbol.region.filename is not None:
            src_file = symbol.region.filename
    if src_file is None:
        return None

    for i in range(len(dbg_filename) - 1, 0, -1):
        if dbg_filename[i] not in "/\\":
            continue
        directory = dbg_filename[:i]
        candidate = f"{directory}/{src_file}"
        if 0 < len(candidate) < _PATH_BUFFER_SIZE and _openable(candidate):
            return directory
    return None


def absolute_path(path: Optional[str]) -> Optional[str]:
    """Resolve a path so clients can open it from any directory."""
    return None if path is None else os.path.realpath(path)