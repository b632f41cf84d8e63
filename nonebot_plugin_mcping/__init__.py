from nonebot import require
from nonebot.plugin import PluginMetadata, inherit_supported_adapters

from mcping.address import Address, is_validity_address, parse_host

from . import configs
from .config import Config
from .configs import lang_data
from .utils import (
    change_language_to,
    get_message_list,
    handle_exception,
    is_qbot,
)

require("nonebot_plugin_alconna")
require("nonebot_plugin_uninfo")
from arclet.alconna import Alconna, Args, CommandMeta
from nonebot_plugin_alconna import Arparma, Text, UniMessage, on_alconna
from nonebot_plugin_uninfo import Session, UniSession

__plugin_meta__ = PluginMetadata(
    name="Minecraft查服",
    description="Minecraft Java版服务器状态查询/Minecraft Java Edition server status query",  # noqa: E501
    type="application",
    homepage="https://github.com/molanp/nonebot_plugin_mcping",
    supported_adapters=inherit_supported_adapters(
        "nonebot_plugin_alconna", "nonebot_plugin_uninfo"
    ),
    config=Config,
    usage="""
    Minecraft Java版服务器状态查询，支持IPv6与SRV记录
    用法：
        查服 [ip]:[端口] / 查服 [ip]
        设置语言 zh-cn
        当前语言
        语言列表
    usage:
        mcping ip:port / mcping ip
        set_lang en
        lang_now
        lang_list
    """.strip(),
    extra={"author": "molanp <luotian233@foxmail.com>"},
)

check = on_alconna(
    Alconna("mcping", Args["host?", str]),
    aliases={"查服"},
    priority=10,
    block=True,
)


lang_change = on_alconna(
    Alconna("set_lang", Args["language", str], meta=CommandMeta(compact=True)),
    aliases={"设置语言"},
    priority=10,
    block=True,
)

lang_now = on_alconna(
    Alconna("lang_now", meta=CommandMeta(compact=True)),
    aliases={"当前语言"},
    priority=10,
    block=True,
)

lang_list = on_alconna(
    Alconna("lang_list", meta=CommandMeta(compact=True)),
    aliases={"语言列表"},
    priority=10,
    block=True,
)


@check.handle()
async def _(p: Arparma, session: Session = UniSession()):
    if not p.find("host"):
        await check.finish(Text(lang_data[configs.lang]["where_ip"]), reply_to=True)

    try:
        address = parse_host(p.query("host"))
    except ValueError:
        await check.finish(Text(lang_data[configs.lang]["where_port"]), reply_to=True)

    if not is_validity_address(address.host):
        await check.finish(Text(lang_data[configs.lang]["bad_address"]), reply_to=True)

    await get_info(address, session)


async def get_info(address: Address, session: Session):
    try:
        message_list = await get_message_list(address)
    except Exception as e:
        await check.send(UniMessage(handle_exception(e)), reply_to=True)
        return

    if is_qbot(session):
        for m in message_list:
            await check.send(UniMessage(m), reply_to=True)
    else:
        await check.send(UniMessage(message_list), reply_to=True)


@lang_change.handle()
async def _(language: str):
    if language:
        await lang_change.send(Text(change_language_to(language)), reply_to=True)
    else:
        await lang_change.send(Text("Language?"), reply_to=True)


@lang_now.handle()
async def _():
    await lang_now.send(Text(f"Language: {configs.lang}."), reply_to=True)


@lang_list.handle()
async def _():
    i = "\n".join(list(lang_data.keys()))
    await lang_list.send(Text(f"Language List:\n{i}"), reply_to=True)
