import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Protocol

from .exceptions import TruncatedStream


class Transport(Protocol):
    """
    双向字节流。由 Connection 独占，其他组件不会读写它。
    """

    async def write(self, data: bytes) -> None: ...

    async def read_exact(self, size: int) -> bytes:
        """
        读取恰好 `size` 个字节。

        对端在读满之前关闭连接时抛出 `TruncatedStream`，其他 I/O 错误以 `OSError` 抛出。
        """
        ...

    async def close(self) -> None: ...


Connector = Callable[[str, int], Awaitable[Transport]]
"""根据 (主机, 端口) 打开一个 Transport"""


class StreamTransport:
    """基于 asyncio StreamReader/StreamWriter 的 TCP 传输层"""

    def __init__(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._reader = reader
        self._writer = writer

    @classmethod
    async def open(cls, host: str, port: int) -> "StreamTransport":
        reader, writer = await asyncio.open_connection(host, port)
        return cls(reader, writer)

    async def write(self, data: bytes) -> None:
        self._writer.write(data)
        await self._writer.drain()

    async def read_exact(self, size: int) -> bytes:
        try:
            return await self._reader.readexactly(size)
        except asyncio.IncompleteReadError as e:
            raise TruncatedStream(
                f"Connection closed after {len(e.partial)} of {size} bytes"
            ) from e

    async def close(self) -> None:
        if self._writer.is_closing():
            return
        self._writer.close()
        # the peer may already have reset the connection
        with contextlib.suppress(OSError):
            await self._writer.wait_closed()
