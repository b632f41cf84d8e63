import base64
import binascii
from dataclasses import dataclass, field, replace
import re
from typing import Any

from loguru import logger
import ujson

from .exceptions import MissingField, PayloadDecodeError, TypeMismatch

_MISSING = object()


@dataclass(frozen=True)
class Version:
    name: str
    """服务器版本名称，例如 "Paper 1.21.1" """
    protocol: int
    """服务器协议版本号"""


@dataclass(frozen=True)
class Player:
    name: str
    id: str
    """玩家 UUID"""


@dataclass(frozen=True)
class Players:
    online: int
    max: int
    sample: list[Player] = field(default_factory=list)
    """在线玩家样本，即使 `online` 大于 0 也可能为空"""


@dataclass(frozen=True)
class ModInfo:
    id: str
    name: str | None = None
    version: str | None = None


@dataclass(frozen=True)
class ServerStatus:
    version: Version
    players: Players
    description: str | None = None
    """服务器 MOTD，结构化文本已展开为纯文本（保留 § 格式代码）"""
    favicon: str | None = None
    """base64 编码的服务器图标（data URI）"""
    mods: list[ModInfo] = field(default_factory=list)
    latency: int | None = None
    """往返延迟（毫秒），只有进行了 Ping/Pong 交换才会设置"""
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    """原始 JSON 对象"""

    @property
    def stripped_description(self) -> str | None:
        """去除所有格式代码后的 MOTD（人类可读）"""
        if self.description is None:
            return None
        return re.sub(r"§.", "", self.description)

    def favicon_bytes(self) -> bytes | None:
        """解码后的图标数据，没有图标或无法解码时返回 None"""
        if not self.favicon:
            return None
        try:
            return base64.b64decode(self.favicon.split("base64,")[-1], validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Ignoring undecodable favicon")
            return None

    def with_latency(self, latency: int) -> "ServerStatus":
        return replace(self, latency=latency)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _matches(value: Any, kind: type) -> bool:
    # bool is a subclass of int, JSON true/false are never counts
    if kind is int and isinstance(value, bool):
        return False
    return isinstance(value, kind)


_KIND_NAMES = {str: "string", int: "integer", dict: "object", list: "list"}


def _get(node: dict, key: str, path: str, kind: type, required: bool = True) -> Any:
    value = node.get(key, _MISSING)
    if value is _MISSING or (value is None and not required):
        if required:
            raise MissingField(path)
        return None
    if not _matches(value, kind):
        raise TypeMismatch(path, _KIND_NAMES[kind], _type_name(value))
    return value


def flatten_description(node: Any) -> str:
    """
    将 MOTD 展开为纯文本。
    支持 JSON 聊天组件（字典或列表形式）以及纯字符串

    :param node: 原始 description 节点
    """
    parts = []
    # explicit stack, nesting depth is controlled by the server
    stack = [node]
    while stack:
        node = stack.pop()
        if node is None:
            continue
        if isinstance(node, str):
            parts.append(node)
        elif isinstance(node, list):
            stack.extend(reversed(node))
        elif isinstance(node, dict):
            extra = node.get("extra")
            if isinstance(extra, list):
                stack.extend(reversed(extra))
            text = node.get("text")
            if text is None:
                text = node.get("translate", "")
            stack.append(text)
        else:
            parts.append(str(node))
    return "".join(parts)


def _decode_sample(players: dict) -> list[Player]:
    raw_sample = _get(players, "sample", "players.sample", list, required=False)
    sample = []
    for index, entry in enumerate(raw_sample or []):
        path = f"players.sample[{index}]"
        if not isinstance(entry, dict):
            raise TypeMismatch(path, "object", _type_name(entry))
        sample.append(
            Player(
                name=_get(entry, "name", f"{path}.name", str),
                id=_get(entry, "id", f"{path}.id", str),
            )
        )
    return sample


def _decode_mods(payload: dict) -> list[ModInfo]:
    """
    收集模组列表。出现在以下位置之一：
    - `mods`: [{"id", "name"}]
    - `modinfo.modList`: [{"modid", "version"}]（Forge FML）
    模组列表只是附加信息，格式不符的条目会被跳过
    """
    candidates = []
    if isinstance(payload.get("mods"), list):
        candidates += [(m, "id", "name", None) for m in payload["mods"]]
    modinfo = payload.get("modinfo")
    if isinstance(modinfo, dict) and isinstance(modinfo.get("modList"), list):
        candidates += [(m, "modid", None, "version") for m in modinfo["modList"]]

    mods = []
    for entry, id_key, name_key, version_key in candidates:
        if not isinstance(entry, dict) or not isinstance(entry.get(id_key), str):
            logger.debug(f"Skipping malformed mod entry: {entry!r}")
            continue
        name = entry.get(name_key) if name_key else None
        version = entry.get(version_key) if version_key else None
        mods.append(
            ModInfo(
                id=entry[id_key],
                name=name if isinstance(name, str) else None,
                version=version if isinstance(version, str) else None,
            )
        )
    return mods


def decode_status(text: str | bytes | bytearray) -> ServerStatus:
    """
    将状态响应中的 JSON 文本解析为 ServerStatus。

    必需字段：`version.name`、`version.protocol`、`players.online`、`players.max`；
    其余字段缺失时取空值，未知字段会被忽略。

    :param text: 状态响应负载（不含包头和字符串长度）
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf8")
        except UnicodeDecodeError as e:
            raise PayloadDecodeError(f"Status payload is not UTF-8: {e}") from e

    try:
        payload = ujson.loads(text)
    except ujson.JSONDecodeError as e:
        raise PayloadDecodeError(f"Status payload is not JSON: {e}") from e

    if not isinstance(payload, dict):
        raise PayloadDecodeError(
            f"Status payload must be a JSON object, got {_type_name(payload)}"
        )

    version = _get(payload, "version", "version", dict)
    players = _get(payload, "players", "players", dict)

    # The motd might be a string directly, not a json object
    description = payload.get("description")
    if description is not None:
        description = flatten_description(description)

    return ServerStatus(
        version=Version(
            name=_get(version, "name", "version.name", str),
            protocol=_get(version, "protocol", "version.protocol", int),
        ),
        players=Players(
            online=_get(players, "online", "players.online", int),
            max=_get(players, "max", "players.max", int),
            sample=_decode_sample(players),
        ),
        description=description,
        favicon=_get(payload, "favicon", "favicon", str, required=False),
        mods=_decode_mods(payload),
        raw=payload,
    )
