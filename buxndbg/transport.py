"""Transport descriptions, log levels and their option parsers."""

from __future__ import annotations

import enum
import re
import socket
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .args import Option, parse_flag

DEFAULT_CONNECT = "abstract-connect:buxn/dbg"

CONNECT_TRANSPORT_OPT_DESC = (
    "Default value: abstract-connect:buxn/dbg\n"
    "Available transports:\n\n"
    "* tcp-connect:<address>:<port>: Connect to an address\n"
    "* unix-connect:<name>: Connect to a unix domain socket\n"
    "* abstract-connect:<name>: Connect to an abstract socket\n"
)

LOG_LEVEL_OPT_DESC = (
    "Default level: info\n"
    "Valid levels:\n\n"
    "* trace\n"
    "* debug\n"
    "* info\n"
    "* warn\n"
    "* error\n"
    "* fatal\n"
)

# Capacity of a named socket address, as for a unix socket path.
MAX_NAMED_ADDRESS_LEN = 108
_TCP_CONNECT_MAX_LEN = len("255.255.255.255:65535") + 1
_LONG_MIN = -(2**63)
_LONG_MAX = 2**63 - 1
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class TransportKind(enum.Enum):
    FILE = "file"
    NET_CONNECT = "connect"
    NET_LISTEN = "listen"


class AddressType(enum.Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    NAMED = "named"


@dataclass(frozen=True)
class Transport:
    """Where to read from or connect to."""

    kind: TransportKind
    address_type: Optional[AddressType] = None
    address: Union[bytes, str, None] = None
    port: int = 0
    path: Optional[str] = None


class LogLevel(enum.IntEnum):
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    FATAL = 5


_LOG_LEVEL_NAMES = {level.name.lower(): level for level in LogLevel}


def _invalid() -> ValueError:
    return ValueError("Invalid transport")


def _named(kind: TransportKind, name: str, abstract: bool) -> Transport:
    size = len(name.encode())
    too_long = size >= MAX_NAMED_ADDRESS_LEN if abstract else size > MAX_NAMED_ADDRESS_LEN
    if too_long:
        raise _invalid()
    address = "@" + name if abstract else name
    return Transport(kind, AddressType.NAMED, address)


def _tcp_connect(text: str) -> Transport:
    if len(text) > _TCP_CONNECT_MAX_LEN or ":" not in text:
        raise _invalid()
    host, _, port = text.partition(":")
    try:
        infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError, OSError) as exc:
        raise _invalid() from exc
    if not infos:
        raise _invalid()
    family, _, _, _, sockaddr = infos[0]
    if family == socket.AF_INET:
        return Transport(
            TransportKind.NET_CONNECT,
            AddressType.IPV4,
            socket.inet_pton(socket.AF_INET, sockaddr[0]),
            sockaddr[1],
        )
    if family == socket.AF_INET6:
        return Transport(
            TransportKind.NET_CONNECT,
            AddressType.IPV6,
            socket.inet_pton(socket.AF_INET6, sockaddr[0]),
            sockaddr[1],
        )
    raise _invalid()


def _tcp_listen(text: str) -> Transport:
    match = _LEADING_INT.match(text)
    port = int(match.group(1)) if match else 0
    if port < _LONG_MIN or port > _LONG_MAX:
        raise _invalid()
    return Transport(TransportKind.NET_LISTEN, AddressType.IPV4, bytes(4), port & 0xFFFF)


def parse_transport(text: str) -> Transport:
    """Parse a transport string such as ``tcp-connect:host:port``."""
    if (arg := parse_flag(text, "file:")) is not None:
        return Transport(TransportKind.FILE, path=arg)
    if (arg := parse_flag(text, "unix-connect:")) is not None:
        return _named(TransportKind.NET_CONNECT, arg, abstract=False)
    if (arg := parse_flag(text, "unix-listen:")) is not None:
        return _named(TransportKind.NET_LISTEN, arg, abstract=False)
    if (arg := parse_flag(text, "abstract-connect:")) is not None:
        return _named(TransportKind.NET_CONNECT, arg, abstract=True)
    if (arg := parse_flag(text, "abstract-listen:")) is not None:
        return _named(TransportKind.NET_LISTEN, arg, abstract=True)
    if (arg := parse_flag(text, "tcp-connect:")) is not None:
        return _tcp_connect(arg)
    if (arg := parse_flag(text, "tcp-listen:")) is not None:
        return _tcp_listen(arg)
    raise _invalid()


def parse_connect_transport(text: str) -> Transport:
    transport = parse_transport(text)
    if transport.kind is not TransportKind.NET_CONNECT:
        raise _invalid()
    return transport


def parse_listen_transport(text: str) -> Transport:
    transport = parse_transport(text)
    if transport.kind is not TransportKind.NET_LISTEN:
        raise _invalid()
    return transport


def parse_log_level(text: str) -> LogLevel:
    """Parse a lower-case log level name such as ``info``."""
    try:
        return _LOG_LEVEL_NAMES[text]
    except KeyError:
        raise ValueError("Invalid log level") from None


def connect_option(store: Optional[Callable[[Transport], None]] = None) -> Option:
    """The ``--connect`` option; ``store`` is called with each parsed transport."""

    def parser(value: Optional[str]) -> Transport:
        transport = parse_connect_transport(value or "")
        if store is not None:
            store(transport)
        return transport

    return Option(
        name="connect",
        short_name="c",
        value_name="transport",
        parser=parser,
        summary="How to connect to the debug server",
        description=CONNECT_TRANSPORT_OPT_DESC,
    )