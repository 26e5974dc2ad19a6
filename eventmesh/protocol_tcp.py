"""Commands, headers and packages of the mesh TCP protocol."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class Command(IntEnum):
    """Command carried in a TCP package header."""

    HEARTBEAT_REQUEST = 0
    HEARTBEAT_RESPONSE = 1
    HELLO_REQUEST = 2
    HELLO_RESPONSE = 3
    CLIENT_GOODBYE_REQUEST = 4
    CLIENT_GOODBYE_RESPONSE = 5
    SERVER_GOODBYE_REQUEST = 6
    SERVER_GOODBYE_RESPONSE = 7
    SUBSCRIBE_REQUEST = 8
    SUBSCRIBE_RESPONSE = 9
    UNSUBSCRIBE_REQUEST = 10
    UNSUBSCRIBE_RESPONSE = 11
    LISTEN_REQUEST = 12
    LISTEN_RESPONSE = 13
    REQUEST_TO_SERVER = 14
    REQUEST_TO_CLIENT = 15
    REQUEST_TO_CLIENT_ACK = 16
    RESPONSE_TO_SERVER = 17
    RESPONSE_TO_CLIENT = 18
    RESPONSE_TO_CLIENT_ACK = 19
    ASYNC_MESSAGE_TO_SERVER = 20
    ASYNC_MESSAGE_TO_SERVER_ACK = 21
    ASYNC_MESSAGE_TO_CLIENT = 22
    ASYNC_MESSAGE_TO_CLIENT_ACK = 23
    BROADCAST_MESSAGE_TO_SERVER = 24
    BROADCAST_MESSAGE_TO_SERVER_ACK = 25
    BROADCAST_MESSAGE_TO_CLIENT = 26
    BROADCAST_MESSAGE_TO_CLIENT_ACK = 27
    SYS_LOG_TO_LOGSERVER = 28
    TRACE_LOG_TO_LOGSERVER = 29
    REDIRECT_TO_CLIENT = 30
    REGISTER_REQUEST = 31
    REGISTER_RESPONSE = 32
    UNREGISTER_REQUEST = 33
    UNREGISTER_RESPONSE = 34
    RECOMMEND_REQUEST = 35
    RECOMMEND_RESPONSE = 36


def _as_command(value: int) -> Command | int:
    try:
        return Command(value)
    except ValueError:
        return int(value)


@dataclass
class Header:
    """Header of a TCP package."""

    cmd: Command | int = Command.HEARTBEAT_REQUEST
    code: int = 0
    desc: str = ""
    seq: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the header as its JSON object."""
        return {"cmd": int(self.cmd), "code": self.code, "desc": self.desc, "seq": self.seq}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Header:
        """Build a header from its JSON object; missing keys take zero values."""
        return cls(
            cmd=_as_command(int(data.get("cmd", 0))),
            code=int(data.get("code", 0)),
            desc=str(data.get("desc", "")),
            seq=str(data.get("seq", "")),
        )


@dataclass
class Package:
    """A TCP package: a header and an arbitrary body."""

    header: Header = field(default_factory=Header)
    body: Any = None