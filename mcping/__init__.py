"""Minecraft Java 版服务器状态查询（Server List Ping）"""

from .address import DEFAULT_PORT, Address, parse_host
from .connection import Connection, ConnectionState, query_status
from .exceptions import (
    ConnectFailed,
    ConnectionLost,
    ConnStatus,
    InvalidState,
    MalformedVarInt,
    MCPingError,
    MissingField,
    OversizedFrame,
    PayloadDecodeError,
    ProtocolError,
    ResolutionFailed,
    StatusDecodeError,
    Timeout,
    TruncatedStream,
    TypeMismatch,
    UnexpectedPacketId,
    UnexpectedPong,
)
from .packets import DEFAULT_PROTOCOL_VERSION
from .resolver import DnsResolver, Endpoint, PassThroughResolver, Resolver
from .status import ModInfo, Player, Players, ServerStatus, Version, decode_status
from .transport import Connector, StreamTransport, Transport

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_PROTOCOL_VERSION",
    "Address",
    "ConnStatus",
    "Connection",
    "ConnectionState",
    "ConnectFailed",
    "ConnectionLost",
    "Connector",
    "DnsResolver",
    "Endpoint",
    "InvalidState",
    "MCPingError",
    "MalformedVarInt",
    "MissingField",
    "ModInfo",
    "OversizedFrame",
    "PassThroughResolver",
    "PayloadDecodeError",
    "Player",
    "Players",
    "ProtocolError",
    "ResolutionFailed",
    "Resolver",
    "ServerStatus",
    "StatusDecodeError",
    "StreamTransport",
    "Timeout",
    "Transport",
    "TruncatedStream",
    "TypeMismatch",
    "UnexpectedPacketId",
    "UnexpectedPong",
    "Version",
    "decode_status",
    "parse_host",
    "query_status",
]
