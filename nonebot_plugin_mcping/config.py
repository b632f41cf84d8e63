from nonebot.plugin import get_plugin_config
from pydantic import BaseModel, Field

from mcping import DEFAULT_PROTOCOL_VERSION


class ScopedConfig(BaseModel):
    language: str = Field(default="zh-cn")
    """插件回复所使用的语言"""
    timeout: float = Field(default=5)
    """单次查询（解析、连接、读写）的超时时间，单位秒"""
    protocol_version: int = Field(default=DEFAULT_PROTOCOL_VERSION)
    """握手包中发送的协议版本号"""
    resolve_srv: bool = Field(default=True)
    """是否解析 _minecraft._tcp SRV 记录"""
    show_latency: bool = Field(default=True)
    """是否测量并显示延迟"""
    show_favicon: bool = Field(default=True)
    """是否发送服务器图标"""


class Config(BaseModel):
    mcping: ScopedConfig = Field(default_factory=ScopedConfig)
    """MCPing Config"""


config: ScopedConfig = get_plugin_config(Config).mcping
