"""帧编解码：VarInt(长度) + VarInt(包 ID) + 数据"""

from typing import TYPE_CHECKING, NamedTuple

from .exceptions import (
    MalformedVarInt,
    OversizedFrame,
    PayloadDecodeError,
    TruncatedStream,
)
from .varint import decode_varint, encode_varint, read_varint

if TYPE_CHECKING:
    from .transport import Transport

MAX_FRAME_LENGTH = 2097151
"""单帧允许的最大长度（3 字节 VarInt 的上限）"""


class Frame(NamedTuple):
    packet_id: int
    body: bytes


def write_frame(packet_id: int, body: bytes = b"") -> bytes:
    """
    构建一个完整的数据包。

    :param packet_id: 包 ID
    :param body: 包内容
    :returns: 长度前缀 + 包 ID + 内容
    """
    inner = encode_varint(packet_id) + body
    return encode_varint(len(inner)) + inner


def _split_window(window: bytes) -> Frame:
    """把长度前缀之后的定长窗口拆分为 (包 ID, 内容)"""
    try:
        packet_id, used = decode_varint(window)
    except TruncatedStream as e:
        raise MalformedVarInt("Packet id runs past the end of the frame") from e
    return Frame(packet_id, bytes(window[used:]))


async def read_frame(
    transport: "Transport", max_length: int = MAX_FRAME_LENGTH
) -> Frame:
    """
    从传输层读取一个数据包。

    会一直等待，直到读满声明的长度、连接关闭（抛出 `TruncatedStream`）或超时。

    :param transport: 已连接的传输层
    :param max_length: 允许的最大帧长度
    """
    length = await read_varint(transport)
    if length > max_length:
        raise OversizedFrame(length, max_length)

    window = await transport.read_exact(length)
    return _split_window(window)


def parse_frame(data: bytes | bytearray, offset: int = 0) -> tuple[Frame, int]:
    """
    从内存缓冲区解析一个数据包。

    :returns: (帧, 消耗的字节数)
    """
    length, used = decode_varint(data, offset)
    start = offset + used
    if len(data) - start < length:
        raise TruncatedStream(
            f"Frame declares {length} bytes, only {len(data) - start} available"
        )
    return _split_window(bytes(data[start : start + length])), used + length


def pack_string(text: str) -> bytes:
    """VarInt 字节数前缀 + UTF-8 字符串"""
    encoded = text.encode("utf8")
    return encode_varint(len(encoded)) + encoded


def unpack_string(data: bytes | bytearray, offset: int = 0) -> tuple[str, int]:
    """
    读取一个带长度前缀的 UTF-8 字符串。

    :returns: (字符串, 消耗的字节数)
    """
    length, used = decode_varint(data, offset)
    start = offset + used
    raw = data[start : start + length]
    if len(raw) < length:
        raise TruncatedStream(
            f"String declares {length} bytes, only {len(raw)} available"
        )
    try:
        text = bytes(raw).decode("utf8")
    except UnicodeDecodeError as e:
        raise PayloadDecodeError(f"Invalid UTF-8 in string: {e}") from e
    return text, used + length
