import traceback

from nonebot import logger, require

from mcping import (
    Address,
    Connection,
    DnsResolver,
    Endpoint,
    MCPingError,
    ServerStatus,
)

from . import configs
from .config import config as plugin_config
from .configs import lang_data

require("nonebot_plugin_alconna")
require("nonebot_plugin_uninfo")
from nonebot_plugin_alconna import Image, SupportScope, Text
from nonebot_plugin_uninfo import Uninfo


def handle_exception(e: Exception) -> Text:
    error_message = str(e)
    logger.error(traceback.format_exc())
    return Text(f"[CrashHandle]{error_message}\n>>更多信息详见日志文件<<")


def change_language_to(language: str) -> str:
    try:
        _ = lang_data[language]
    except KeyError:
        return f"No language named '{language}'!"
    else:
        if language == configs.lang:
            return f"The language is already '{language}'!"
        configs.lang = language
        return f"Change to '{language}' success!"


def build_result(
    status: ServerStatus, address: Address, endpoint: Endpoint | None
) -> list[Image | Text]:
    """
    构建并返回查询结果。

    :params status: 服务器状态。
    :params address: 用户输入的地址。
    :params endpoint: 实际连接的端点。
    """
    text = lang_data[configs.lang]

    result = (
        f"{text['version']}{status.version.name}"
        f"\n{text['protocol_version']}{status.version.protocol}"
        f"\n{text['address']}{address.host}"
    )
    if endpoint is not None:
        result += f"\n{text['ip']}{endpoint.host}\n{text['port']}{endpoint.port}"
    if status.latency is not None:
        result += f"\n{text['delay']}{status.latency}ms"
    if status.stripped_description:
        result += f"\n{text['motd']}{status.stripped_description}"
    result += f"\n{text['players']}{status.players.online}/{status.players.max}"
    if status.players.sample:
        result += f"\n{text['player_list']}" + ", ".join(
            player.name for player in status.players.sample
        )
    if status.mods:
        result += f"\n{text['mods']}{len(status.mods)}"

    favicon = status.favicon_bytes() if plugin_config.show_favicon else None
    return (
        [Text(result), Text("\nFavicon:"), Image(raw=favicon)]
        if favicon
        else [Text(result)]
    )


async def get_status(address: Address) -> tuple[ServerStatus, Endpoint | None]:
    """
    查询服务器状态。

    :params address: 服务器地址。

    :returns: 服务器状态和实际连接的端点。
    """
    async with Connection(
        address,
        timeout=plugin_config.timeout,
        resolver=DnsResolver(srv=plugin_config.resolve_srv),
        protocol_version=plugin_config.protocol_version,
    ) as conn:
        status = await conn.ping(with_latency=plugin_config.show_latency)
        return status, conn.endpoint


async def get_message_list(address: Address) -> list[Image | Text]:
    """
    查询服务器并构建回复消息。查询失败时返回对应的错误提示。

    :params address: 服务器地址。
    """
    try:
        status, endpoint = await get_status(address)
    except MCPingError as e:
        logger.info(f"Query to {address.host}:{address.port} failed: {e!r}")
        return [Text(lang_data[configs.lang][str(e.status)])]
    return build_result(status, address, endpoint)


def is_qbot(session: Uninfo) -> bool:
    """判断bot是否为qq官bot

    参数:
        session: Uninfo

    返回:
        bool: 是否为官bot
    """
    return session.scope == SupportScope.qq_api
