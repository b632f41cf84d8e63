"""
状态查询所需的数据包定义

详见 https://minecraft.wiki/w/Java_Edition_protocol/Server_List_Ping
"""

from dataclasses import dataclass
import struct

from .exceptions import TruncatedStream, UnexpectedPacketId, UnexpectedPong
from .framing import Frame, pack_string, unpack_string, write_frame
from .varint import decode_varint, encode_varint

HANDSHAKE_ID = 0x00
STATUS_REQUEST_ID = 0x00
STATUS_RESPONSE_ID = 0x00
PING_REQUEST_ID = 0x01
PONG_RESPONSE_ID = 0x01

NEXT_STATE_STATUS = 1
"""握手后的下一状态（1 为状态查询，2 为登录）"""

DEFAULT_PROTOCOL_VERSION = 768
"""默认协议版本号（Minecraft 1.21.2）。查询状态时服务器不校验此值"""


@dataclass(frozen=True)
class Handshake:
    server_address: str
    server_port: int
    protocol_version: int = DEFAULT_PROTOCOL_VERSION
    next_state: int = NEXT_STATE_STATUS

    def encode(self) -> bytes:
        # Protocol version
        body = encode_varint(self.protocol_version)
        # Server address, VarInt length + UTF8
        body += pack_string(self.server_address)
        # Server port, unsigned short big-endian
        body += struct.pack(">H", self.server_port)
        # Next state (1 for status, 2 for login)
        body += encode_varint(self.next_state)
        return body

    def to_frame(self) -> bytes:
        return write_frame(HANDSHAKE_ID, self.encode())

    @classmethod
    def decode(cls, body: bytes) -> "Handshake":
        protocol_version, offset = decode_varint(body)
        server_address, used = unpack_string(body, offset)
        offset += used
        if len(body) - offset < 2:
            raise TruncatedStream("Handshake ends before server port")
        (server_port,) = struct.unpack_from(">H", body, offset)
        next_state, _ = decode_varint(body, offset + 2)
        return cls(server_address, server_port, protocol_version, next_state)


@dataclass(frozen=True)
class StatusRequest:
    def to_frame(self) -> bytes:
        # varint len, 0x00
        return write_frame(STATUS_REQUEST_ID)


@dataclass(frozen=True)
class StatusResponse:
    payload: str
    """服务器返回的 JSON 文本"""

    def to_frame(self) -> bytes:
        return write_frame(STATUS_RESPONSE_ID, pack_string(self.payload))

    @classmethod
    def from_frame(cls, frame: Frame) -> "StatusResponse":
        if frame.packet_id != STATUS_RESPONSE_ID:
            raise UnexpectedPacketId(STATUS_RESPONSE_ID, frame.packet_id)
        payload, _ = unpack_string(frame.body)
        return cls(payload)


@dataclass(frozen=True)
class PingRequest:
    payload: int
    """任意 64 位有符号整数，服务器会原样返回"""

    def to_frame(self) -> bytes:
        return write_frame(PING_REQUEST_ID, struct.pack(">q", self.payload))


@dataclass(frozen=True)
class PongResponse:
    payload: int

    def to_frame(self) -> bytes:
        return write_frame(PONG_RESPONSE_ID, struct.pack(">q", self.payload))

    @classmethod
    def from_frame(cls, frame: Frame) -> "PongResponse":
        if frame.packet_id != PONG_RESPONSE_ID:
            raise UnexpectedPacketId(PONG_RESPONSE_ID, frame.packet_id)
        if len(frame.body) < 8:
            raise TruncatedStream("Pong body is shorter than 8 bytes")
        (payload,) = struct.unpack_from(">q", frame.body)
        return cls(payload)

    def check(self, ping: PingRequest) -> None:
        if self.payload != ping.payload:
            raise UnexpectedPong(ping.payload, self.payload)
