import asyncio
import contextlib
from enum import Enum
from time import perf_counter, time
from typing import Awaitable, TypeVar

from loguru import logger

from .address import DEFAULT_PORT, Address, check_port, is_ip_address, to_ascii_host
from .exceptions import (
    ConnectFailed,
    ConnectionLost,
    InvalidState,
    MCPingError,
    ResolutionFailed,
    Timeout,
)
from .framing import read_frame
from .packets import (
    DEFAULT_PROTOCOL_VERSION,
    Handshake,
    PingRequest,
    PongResponse,
    StatusRequest,
    StatusResponse,
)
from .resolver import DnsResolver, Endpoint, Resolver
from .status import ServerStatus, decode_status
from .transport import Connector, StreamTransport, Transport
from .varint import encode_varint

T = TypeVar("T")


class ConnectionState(Enum):
    def __str__(self) -> str:
        return str(self.name)

    IDLE = 0
    RESOLVING = 1
    CONNECTING = 2
    CONNECTED = 3
    HANDSHAKE_SENT = 4
    STATUS_REQUESTED = 5
    STATUS_RECEIVED = 6
    """查询成功（终态）"""
    FAILED = -1
    """查询失败（终态），原因见 `Connection.failure`"""
    CLOSED = -2
    """调用方主动关闭（终态）"""


class Connection:
    """
    到 Minecraft Java 版服务器的一次状态查询。

    一个 Connection 只进行一次查询：`connect()` 之后调用一次 `ping()`。
    任何失败都会关闭传输层并把状态置为 `FAILED`，不会自动重试。

    ```python
    async with Connection(("play.example.com", 25565), timeout=5) as conn:
        status = await conn.ping()
    ```
    """

    def __init__(
        self,
        address: Address | tuple[str, int],
        *,
        timeout: float | None = None,
        resolver: Resolver | None = None,
        connector: Connector | None = None,
        protocol_version: int = DEFAULT_PROTOCOL_VERSION,
    ) -> None:
        """
        :param address: 服务器地址 (主机, 端口)
        :param timeout: 整个 connect() + ping() 过程的超时时间（秒），None 表示不限
        :param resolver: 域名解析器，默认使用 DnsResolver
        :param connector: 打开传输层的函数，默认使用 TCP
        :param protocol_version: 握手包中的协议版本号
        """
        host, port = address
        self.address = Address(host, check_port(port))
        self.timeout = timeout
        self.resolver = resolver if resolver is not None else DnsResolver()
        self.connector = connector or StreamTransport.open
        # ValueError for versions outside the VarInt range
        encode_varint(protocol_version)
        self.protocol_version = protocol_version

        self.state = ConnectionState.IDLE
        self.failure: Exception | None = None
        """导致 `FAILED` 的异常"""
        self.endpoint: Endpoint | None = None
        """实际连接的端点"""
        self.status: ServerStatus | None = None

        self._transport: Transport | None = None
        self._deadline: float | None = None

    def __repr__(self) -> str:
        return f"<Connection {self.address.host}:{self.address.port} {self.state}>"

    async def __aenter__(self) -> "Connection":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        """在剩余的超时时间内等待 `awaitable`"""
        if self._deadline is None:
            return await awaitable

        remaining = self._deadline - asyncio.get_running_loop().time()
        try:
            if remaining <= 0:
                raise asyncio.TimeoutError
            return await asyncio.wait_for(awaitable, remaining)
        except asyncio.TimeoutError as e:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise Timeout(
                f"Query to {self.address.host}:{self.address.port} "
                f"timed out after {self.timeout}s ({self.state})"
            ) from e

    async def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            with contextlib.suppress(OSError):
                await transport.close()

    async def _fail(self, error: Exception) -> None:
        logger.debug(f"{self!r} failed: {error!r}")
        self.failure = error
        self.state = ConnectionState.FAILED
        await self._close_transport()

    async def _resolve(self) -> list[Endpoint]:
        host, port = self.address
        self.state = ConnectionState.RESOLVING
        endpoints = await self._bounded(self.resolver.resolve(host, port))
        if not endpoints:
            raise ResolutionFailed(f"Could not resolve address: {host}")
        return endpoints

    async def _open(
        self, endpoints: list[Endpoint], error: type[MCPingError]
    ) -> Transport:
        """
        按顺序尝试每个端点，第一个成功的端点胜出。

        :param endpoints: 需要尝试的端点
        :param error: 全部失败时抛出的异常类型
        """
        last_error: OSError | None = None
        for endpoint in endpoints:
            try:
                transport = await self._bounded(
                    self.connector(endpoint.host, endpoint.port)
                )
            except OSError as e:
                logger.warning(
                    f"Failed to connect to {endpoint.host}:{endpoint.port}: {e!r}"
                )
                last_error = e
                continue

            self.endpoint = endpoint
            return transport

        raise error(
            f"Could not connect to {self.address.host}:{self.address.port}"
        ) from last_error

    async def connect(self) -> None:
        """
        解析地址（如有必要）并建立连接。

        IP 地址会直接连接，失败时抛出 ConnectFailed；
        域名会先经过解析器，按顺序尝试每个端点，全部失败时抛出 ResolutionFailed。
        """
        if self.state is not ConnectionState.IDLE:
            raise InvalidState(self.state, "connect")

        if self.timeout is not None:
            self._deadline = asyncio.get_running_loop().time() + self.timeout

        host, port = self.address
        try:
            if is_ip_address(host):
                endpoints, exhausted = [Endpoint(host.strip("[]"), port)], ConnectFailed
            else:
                endpoints, exhausted = await self._resolve(), ResolutionFailed
            self.state = ConnectionState.CONNECTING
            self._transport = await self._open(endpoints, exhausted)
        except MCPingError as e:
            await self._fail(e)
            raise
        except OSError as e:
            error = ConnectFailed(f"Could not connect to {host}:{port}: {e!r}")
            await self._fail(error)
            raise error from e
        except Exception as e:
            await self._fail(e)
            raise

        self.state = ConnectionState.CONNECTED
        logger.debug(f"Established connection to {self.endpoint}")

    async def _measure_latency(self, transport: Transport) -> int:
        ping = PingRequest(int(time() * 1000))
        start_time = perf_counter()
        await self._bounded(transport.write(ping.to_frame()))
        pong = PongResponse.from_frame(await self._bounded(read_frame(transport)))
        pong.check(ping)
        return round((perf_counter() - start_time) * 1000)

    async def _query(self, transport: Transport, with_latency: bool) -> ServerStatus:
        handshake = Handshake(
            to_ascii_host(self.address.host),
            self.endpoint.port,
            self.protocol_version,
        )
        # Handshake and status request are written back to back, nothing is read in between
        await self._bounded(transport.write(handshake.to_frame()))
        self.state = ConnectionState.HANDSHAKE_SENT
        await self._bounded(transport.write(StatusRequest().to_frame()))
        self.state = ConnectionState.STATUS_REQUESTED

        response = StatusResponse.from_frame(await self._bounded(read_frame(transport)))
        logger.debug(f"Answer to status request is {len(response.payload)} chars long")
        status = decode_status(response.payload)

        if with_latency:
            status = status.with_latency(await self._measure_latency(transport))
        return status

    async def ping(self, *, with_latency: bool = False) -> ServerStatus:
        """
        发送握手包和状态请求，读取并解析状态响应。

        :param with_latency: 是否额外进行 Ping/Pong 交换以测量延迟
        :returns: 服务器状态
        """
        transport = self._transport
        if self.state is not ConnectionState.CONNECTED or transport is None:
            raise InvalidState(self.state, "ping")

        try:
            status = await self._query(transport, with_latency)
        except MCPingError as e:
            await self._fail(e)
            raise
        except OSError as e:
            error = ConnectionLost(
                f"Connection to {self.endpoint} lost during query: {e!r}"
            )
            await self._fail(error)
            raise error from e
        except Exception as e:
            await self._fail(e)
            raise

        self.status = status
        self.state = ConnectionState.STATUS_RECEIVED
        return status

    async def close(self) -> None:
        """关闭连接。任何状态下都可以调用，重复调用无副作用"""
        await self._close_transport()
        self.state = ConnectionState.CLOSED


async def query_status(
    host: str,
    port: int = DEFAULT_PORT,
    *,
    timeout: float | None = 5,
    with_latency: bool = True,
    resolver: Resolver | None = None,
    connector: Connector | None = None,
    protocol_version: int = DEFAULT_PROTOCOL_VERSION,
) -> ServerStatus:
    """
    查询一次服务器状态。

    :param host: 服务器地址（IP 或域名）
    :param port: 服务器端口，默认 25565
    :param timeout: 整个查询的超时时间（秒），默认 5 秒
    :param with_latency: 是否测量延迟
    """
    async with Connection(
        (host, port),
        timeout=timeout,
        resolver=resolver,
        connector=connector,
        protocol_version=protocol_version,
    ) as conn:
        return await conn.ping(with_latency=with_latency)
