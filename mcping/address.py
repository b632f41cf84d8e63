import ipaddress
import re
from typing import NamedTuple

import idna

DEFAULT_PORT = 25565
"""状态查询的默认 TCP 端口"""


class Address(NamedTuple):
    host: str
    port: int = DEFAULT_PORT


def check_port(port: int) -> int:
    if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
        raise ValueError(f"Invalid port: {port!r}")
    return port


def is_ip_address(address: str) -> bool:
    """
    判断给定的地址是否为 IPv4 或 IPv6 字面量。

    :params address: 需要验证的地址。
    """
    try:
        ipaddress.ip_address(address.strip("[]"))
    except ValueError:
        return False
    return True


def is_domain(address: str) -> bool:
    """
    判断给定的地址是否为域名。

    :params address: 需要验证的地址。

    :returns: 如果地址为域名则返回True，否则返回False。
    """
    try:
        punycode_address = idna.encode(address).decode("utf-8")
    except idna.IDNAError:
        return False

    domain_pattern = re.compile(
        r"^(?!-)(?:[A-Za-z0-9-]{1,63}\.)+(?:[A-Za-z]{2,}|xn--[A-Za-z0-9-]{2,})$|^(localhost)$"
    )
    return bool(domain_pattern.match(punycode_address))


def is_validity_address(address: str) -> bool:
    """判断给定的地址是否为有效的域名或IP地址。"""
    return is_ip_address(address) or is_domain(address)


def to_ascii_host(host: str) -> str:
    """将国际化域名转换为 punycode，IP 或无法转换时原样返回"""
    if is_ip_address(host):
        return host
    try:
        return idna.encode(host).decode("utf-8")
    except idna.IDNAError:
        return host


def parse_host(host_name: str, default_port: int = DEFAULT_PORT) -> Address:
    """
    解析主机名（可选端口）。

    支持 `host`、`host:port`、`[IPv6]:port` 以及全角冒号。
    裸 IPv6 地址（不带方括号）视为没有端口。

    :params host_name: 主机名，可能包含端口。
    :params default_port: 未指定端口时使用的端口。
    """
    host_name = host_name.strip()
    if is_ip_address(host_name):
        return Address(host_name, default_port)

    pattern = r"(?:\[(.+?)\]|(.+?))(?:[:：](\d+))?$"
    if not (match := re.match(pattern, host_name)):
        return Address(host_name, default_port)

    address = match[1] or match[2]
    port = int(match[3]) if match[3] else default_port
    return Address(address, check_port(port))
