"""Messages exchanged between the debug server and its clients.

A message travels as a record: ``{"type": <int>, "body": {...}}``. The body
layout mirrors the keys of each message kind. Absent optional parts are sent
as empty lists, and absent strings as empty strings.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

NO_BREAKPOINT = 255


class MessageType(enum.IntEnum):
    BYE = 0
    INIT = 1
    INIT_REP = 2
    CORE = 3
    SET_FOCUS = 4
    INFO_PUSH = 5
    BRKP_PUSH = 6


class Subscription(enum.IntFlag):
    NONE = 0
    INFO_PUSH = 1 << 0
    FOCUS = 1 << 1
    VM_STATE = 1 << 2
    BRKP = 1 << 3


class InitOption(enum.IntFlag):
    NONE = 0
    INFO = 1 << 0
    CONFIG = 1 << 1


class BreakpointFlag(enum.IntFlag):
    MEM = 0
    LOAD = 1 << 0
    STORE = 1 << 1
    EXEC = 1 << 2
    PAUSE = 1 << 3
    DEV = 1 << 4
    TYPE_MASK = 1 << 4


@dataclass(frozen=True)
class Breakpoint:
    addr: int = 0
    mask: int = 0

    @property
    def active(self) -> bool:
        return self.mask != 0


@dataclass
class VmInfo:
    vector_addr: int = 0
    pc: int = 0
    brkp_id: int = 0
    vm_executing: bool = False
    vm_paused: bool = False
    focus: int = 0


@dataclass
class Config:
    dbg_filename: Optional[str] = None
    src_dir: Optional[str] = None


@dataclass
class InitRequest:
    client_name: Optional[str] = None
    subscriptions: int = 0
    options: int = 0


@dataclass
class InitReply:
    info: Optional[VmInfo] = None
    config: Optional[Config] = None


@dataclass
class SetFocus:
    address: int = 0


@dataclass
class BreakpointPush:
    id: int = 0
    brkp: Breakpoint = field(default_factory=Breakpoint)


@dataclass
class Bye:
    pass


Message = Union[Bye, InitRequest, InitReply, SetFocus, VmInfo, BreakpointPush]


def _str_out(value: Optional[str]) -> str:
    return value if value is not None else ""


def _str_in(body: Mapping[str, Any], key: str) -> Optional[str]:
    value = body.get(key, "")
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Malformed string field: {key}")
    return value or None


def _int_in(body: Mapping[str, Any], key: str, bits: int, default: int = 0) -> int:
    value = body.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Malformed integer field: {key}")
    if value < 0 or value >= (1 << bits):
        raise ValueError(f"Integer field out of range: {key}")
    return value


def _bool_in(body: Mapping[str, Any], key: str) -> bool:
    value = body.get(key, False)
    if not isinstance(value, bool):
        raise ValueError(f"Malformed boolean field: {key}")
    return value


def _optional_in(body: Mapping[str, Any], key: str) -> Optional[Mapping[str, Any]]:
    entries = body.get(key, [])
    if not isinstance(entries, (list, tuple)) or len(entries) > 1:
        raise ValueError(f"Malformed optional field: {key}")
    if not entries:
        return None
    entry = entries[0]
    if not isinstance(entry, Mapping):
        raise ValueError(f"Malformed record: {key}")
    return entry


def _info_out(info: VmInfo) -> Dict[str, Any]:
    return {
        "vector_addr": info.vector_addr,
        "pc": info.pc,
        "brkp_id": info.brkp_id,
        "vm_executing": info.vm_executing,
        "vm_paused": info.vm_paused,
        "focus": info.focus,
    }


def _info_in(body: Mapping[str, Any]) -> VmInfo:
    return VmInfo(
        vector_addr=_int_in(body, "vector_addr", 16),
        pc=_int_in(body, "pc", 16),
        brkp_id=_int_in(body, "brkp_id", 8),
        vm_executing=_bool_in(body, "vm_executing"),
        vm_paused=_bool_in(body, "vm_paused"),
        focus=_int_in(body, "focus", 16),
    )


def _config_out(config: Config) -> Dict[str, Any]:
    return {
        "dbg_filename": _str_out(config.dbg_filename),
        "src_dir": _str_out(config.src_dir),
    }


def encode_message(message: Message) -> Dict[str, Any]:
    """Turn a message into its wire record."""
    if isinstance(message, Bye):
        return {"type": int(MessageType.BYE)}
    if isinstance(message, InitRequest):
        body: Dict[str, Any] = {
            "client_name": _str_out(message.client_name),
            "subscriptions": int(message.subscriptions),
            "options": int(message.options),
        }
        return {"type": int(MessageType.INIT), "body": body}
    if isinstance(message, InitReply):
        body = {
            "info": [] if message.info is None else [_info_out(message.info)],
            "config": [] if message.config is None else [_config_out(message.config)],
        }
        return {"type": int(MessageType.INIT_REP), "body": body}
    if isinstance(message, SetFocus):
        return {"type": int(MessageType.SET_FOCUS), "body": {"address": message.address}}
    if isinstance(message, VmInfo):
        return {"type": int(MessageType.INFO_PUSH), "body": _info_out(message)}
    if isinstance(message, BreakpointPush):
        body = {
            "id": message.id,
            "address": message.brkp.addr,
            "mask": int(message.brkp.mask),
        }
        return {"type": int(MessageType.BRKP_PUSH), "body": body}
    raise TypeError(f"Cannot encode message of type {type(message).__name__}")


def decode_message(record: Mapping[str, Any]) -> Message:
    """Rebuild a message from its wire record; raises ValueError if malformed."""
    try:
        kind = MessageType(record["type"])
    except (KeyError, ValueError, TypeError):
        raise ValueError("Malformed message header") from None

    body = record.get("body", {})
    if not isinstance(body, Mapping):
        raise ValueError("Malformed message body")

    if kind is MessageType.BYE:
        return Bye()
    if kind is MessageType.INIT:
        return InitRequest(
            client_name=_str_in(body, "client_name"),
            subscriptions=_int_in(body, "subscriptions", 32),
            options=_int_in(body, "options", 32),
        )
    if kind is MessageType.INIT_REP:
        info = _optional_in(body, "info")
        config = _optional_in(body, "config")
        return InitReply(
            info=None if info is None else _info_in(info),
            config=None if config is None else Config(
                dbg_filename=_str_in(config, "dbg_filename"),
                src_dir=_str_in(config, "src_dir"),
            ),
        )
    if kind is MessageType.SET_FOCUS:
        return SetFocus(address=_int_in(body, "address", 16))
    if kind is MessageType.INFO_PUSH:
        return _info_in(body)
    if kind is MessageType.BRKP_PUSH:
        return BreakpointPush(
            id=_int_in(body, "id", 8),
            brkp=Breakpoint(
                addr=_int_in(body, "address", 16),
                mask=_int_in(body, "mask", 8),
            ),
        )
    raise ValueError("Core messages are not handled by this codec")


__all__: List[str] = [
    "NO_BREAKPOINT",
    "MessageType",
    "Subscription",
    "InitOption",
    "BreakpointFlag",
    "Breakpoint",
    "VmInfo",
    "Config",
    "InitRequest",
    "InitReply",
    "SetFocus",
    "BreakpointPush",
    "Bye",
    "encode_message",
    "decode_message",
]