from enum import Enum


class ConnStatus(Enum):
    """
    包含可能的连接状态
    - `SUCCESS`：状态查询成功（请求和响应解析正常）
    - `CONNFAIL`：无法建立到服务器的连接。服务器离线、主机名或端口错误？
    - `TIMEOUT`：连接超时。（服务器负载过高？防火墙规则是否正确？）
    - `UNKNOWN`：连接已建立，但服务器的响应无法识别
    """

    def __str__(self) -> str:
        return str(self.name)

    SUCCESS = 0
    """状态查询成功（请求和响应解析正常）"""

    CONNFAIL = -1
    """无法建立与服务器的连接。（服务器离线，主机名或端口错误？）"""

    TIMEOUT = -2
    """连接超时。（服务器负载过高？防火墙规则是否正确？）"""

    UNKNOWN = -3
    """连接已建立，但服务器的响应无法识别"""


class MCPingError(Exception):
    """所有查询失败的基类"""

    status: ConnStatus = ConnStatus.UNKNOWN


class ResolutionFailed(MCPingError):
    """域名无法解析为任何可用地址"""

    status = ConnStatus.CONNFAIL


class ConnectFailed(MCPingError):
    """连接被拒绝、不可达或其他网络错误"""

    status = ConnStatus.CONNFAIL


class ConnectionLost(MCPingError):
    """连接建立后读写失败（对端重置、中止等）"""


class Timeout(MCPingError):
    """查询在截止时间内未完成"""

    status = ConnStatus.TIMEOUT


class InvalidState(MCPingError):
    """操作调用顺序错误"""

    def __init__(self, state, operation: str) -> None:
        self.state = state
        self.operation = operation
        super().__init__(f"Cannot {operation}() in state {state}")


class ProtocolError(MCPingError):
    """服务器发送的数据不符合协议"""


class TruncatedStream(ProtocolError):
    """数据流在帧中途结束"""


class MalformedVarInt(ProtocolError):
    """VarInt 过长或无法解码"""


class OversizedFrame(ProtocolError):
    """帧声明的长度超过上限"""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(f"Frame length {length} exceeds limit {limit}")


class UnexpectedPacketId(ProtocolError):
    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Unexpected packet id 0x{actual:02x} (expected 0x{expected:02x})"
        )


class UnexpectedPong(ProtocolError):
    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Pong payload {actual} does not match ping {expected}")


class StatusDecodeError(ProtocolError):
    """状态 JSON 无法映射为 ServerStatus"""


class PayloadDecodeError(StatusDecodeError):
    """负载不是合法的 UTF-8 / JSON 对象"""


class MissingField(StatusDecodeError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Missing required field '{path}'")


class TypeMismatch(StatusDecodeError):
    def __init__(self, path: str, expected: str, actual: str) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"Field '{path}' should be {expected}, got {actual}")
