from abc import ABC, abstractmethod
import asyncio
from typing import NamedTuple

import dns.asyncresolver
import dns.exception
import dns.resolver
from loguru import logger

from .address import is_ip_address, to_ascii_host
from .exceptions import ResolutionFailed

_IGNORED_DNS_ERRORS = (
    dns.resolver.NoAnswer,
    dns.resolver.NXDOMAIN,
    dns.exception.Timeout,
    dns.resolver.NoNameservers,
)


async def _gather(*aws) -> list:
    """等待所有查询结束，再抛出第一个失败的异常"""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class Endpoint(NamedTuple):
    host: str
    """IP 地址"""
    port: int


class Resolver(ABC):
    """把主机名解析为可连接的端点列表，Connection 会按顺序尝试"""

    @abstractmethod
    async def resolve(self, host: str, port: int) -> list[Endpoint]: ...


class PassThroughResolver(Resolver):
    """不做任何查询，只接受已经是 IP 的地址"""

    async def resolve(self, host: str, port: int) -> list[Endpoint]:
        if not is_ip_address(host):
            raise ResolutionFailed(
                f"'{host}' is not an IP address and domain resolving is disabled"
            )
        return [Endpoint(host.strip("[]"), port)]


class DnsResolver(Resolver):
    """
    使用 dnspython 解析域名。

    如果启用 SRV，会先查询 `_minecraft._tcp.<host>`，SRV 记录中的端口会替换传入的端口；
    之后依次是 AAAA 和 A 记录。
    """

    def __init__(
        self,
        srv: bool = True,
        lifetime: float = 10,
        resolver: dns.asyncresolver.Resolver | None = None,
    ) -> None:
        """
        :param srv: 是否解析 SRV 记录，默认 True
        :param lifetime: 单次查询的最长时间（秒）
        :param resolver: 自定义的 dnspython 解析器，默认读取系统配置
        """
        self.srv = srv
        self.lifetime = lifetime
        self._resolver = resolver

    @property
    def resolver(self) -> dns.asyncresolver.Resolver:
        if self._resolver is None:
            self._resolver = dns.asyncresolver.Resolver()
        return self._resolver

    async def _lookup(self, name: str, rdtype: str) -> list:
        try:
            answer = await self.resolver.resolve(name, rdtype, lifetime=self.lifetime)
        except _IGNORED_DNS_ERRORS as e:
            logger.debug(f"No {rdtype} record for {name}: {e!r}")
            return []
        return list(answer)

    async def _resolve_addresses(self, host: str, port: int) -> list[Endpoint]:
        aaaa, a = await _gather(self._lookup(host, "AAAA"), self._lookup(host, "A"))
        return [Endpoint(str(rdata.address), port) for rdata in aaaa + a]

    async def _resolve_srv(self, host: str) -> list[Endpoint]:
        records = await self._lookup(f"_minecraft._tcp.{host}", "SRV")
        records.sort(key=lambda rdata: (rdata.priority, -rdata.weight))

        endpoints = []
        for rdata in records:
            target = str(rdata.target).rstrip(".")
            if is_ip_address(target):
                endpoints.append(Endpoint(target, rdata.port))
            else:
                endpoints += await self._resolve_addresses(target, rdata.port)
        return endpoints

    async def resolve(self, host: str, port: int) -> list[Endpoint]:
        if is_ip_address(host):
            return [Endpoint(host.strip("[]"), port)]

        ascii_host = to_ascii_host(host)
        try:
            if self.srv:
                srv, direct = await _gather(
                    self._resolve_srv(ascii_host),
                    self._resolve_addresses(ascii_host, port),
                )
            else:
                srv, direct = [], await self._resolve_addresses(ascii_host, port)
        except dns.exception.DNSException as e:
            raise ResolutionFailed(f"Could not resolve address: {host} ({e})") from e

        endpoints = list(dict.fromkeys(srv + direct))
        if not endpoints:
            raise ResolutionFailed(f"Could not resolve address: {host}")

        logger.debug(f"Resolved {host} to {endpoints}")
        return endpoints
