"""Minecraft VarInt 编解码

每字节 7 位有效数据（低位在前），最高位为 1 表示后面还有字节。
一个 VarInt 最多 5 个字节（32 位）。
"""

import struct
from typing import TYPE_CHECKING

from .exceptions import MalformedVarInt, TruncatedStream

if TYPE_CHECKING:
    from .transport import Transport

VARINT_MAX_BYTES = 5
"""VarInt 的最大字节数"""
UINT32_MAX = 0xFFFFFFFF
INT32_MIN = -(1 << 31)


def encode_varint(value: int) -> bytes:
    """
    将整数编码为 VarInt。

    负数（不小于 -2^31）按 32 位补码编码，协议中的 VarInt 本质上是有符号 32 位整数。

    :param value: 需要编码的整数，范围 [-2^31, 2^32-1]
    :returns: 最短的 VarInt 编码
    """
    if not INT32_MIN <= value <= UINT32_MAX:
        raise ValueError(f"{value} does not fit in a 32-bit VarInt")
    value &= UINT32_MAX

    ordinal = b""

    while True:
        byte = value & 0x7F
        value >>= 7
        ordinal += struct.pack("B", byte | (0x80 if value > 0 else 0))

        if value == 0:
            break

    return ordinal


def varint_size(value: int) -> int:
    """返回 `value` 编码后的字节数"""
    return len(encode_varint(value))


def _accumulate(result: int, index: int, byte: int) -> int:
    if index == VARINT_MAX_BYTES - 1:
        if byte & 0x80:
            raise MalformedVarInt("VarInt is longer than 5 bytes")
        # The 5th byte may only carry bits 28..31
        if byte & 0x70:
            raise MalformedVarInt("VarInt does not fit in 32 bits")
    return result | (byte & 0x7F) << 7 * index


def decode_varint(data: bytes | bytearray, offset: int = 0) -> tuple[int, int]:
    """
    从缓冲区中解码一个 VarInt。

    :param data: 数据缓冲区
    :param offset: 开始解码的位置
    :returns: (值, 消耗的字节数)
    """
    result = 0
    for i in range(VARINT_MAX_BYTES):
        if offset + i >= len(data):
            raise TruncatedStream("Unexpected end of data while reading VarInt")

        byte = data[offset + i]
        result = _accumulate(result, i, byte)

        if not byte & 0x80:
            return result, i + 1

    # unreachable: _accumulate rejects a 5th continuation byte
    raise MalformedVarInt("VarInt is longer than 5 bytes")


async def read_varint(transport: "Transport") -> int:
    """逐字节从传输层读取一个 VarInt"""
    result = 0
    for i in range(VARINT_MAX_BYTES):
        byte = (await transport.read_exact(1))[0]
        result = _accumulate(result, i, byte)

        if not byte & 0x80:
            return result

    raise MalformedVarInt("VarInt is longer than 5 bytes")
