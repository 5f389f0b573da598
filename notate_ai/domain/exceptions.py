"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层或 UI 层做统一捕获与用户提示。

传输层异常只在 GeminiClient 内部抛出，并在其边界转换为 ReplyFailure；
执行层异常在 CommandExecutor 内部转换为 ExecutionResult / BatchResult。
"""

from typing import Dict, Optional

from .models import FailureKind


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "BUSY"）。
        message: 用户可读错误信息。
        extra: 其他补充字段（例如 detail、line 等）。
    """

    def __init__(self, code: str, message: str, **extra):
        self.code = code
        self.message = message
        self.extra = extra
        super().__init__(message)


class TransportError(BusinessError):
    """传输层错误基类，kind 决定映射到哪一种 ReplyFailure。"""

    kind: FailureKind = FailureKind.NETWORK_ERROR

    @property
    def detail(self) -> Optional[str]:
        return self.extra.get("detail")


class AuthError(TransportError):
    """缺少 API key，或远端返回 401/403。"""

    kind = FailureKind.AUTH_ERROR


class NetworkError(TransportError):
    """网络层错误，例如连接失败、DNS 失败、非 2xx 响应等。"""

    kind = FailureKind.NETWORK_ERROR


class RateLimitError(TransportError):
    """Provider 限流错误；不做自动重试，由用户决定何时再发。"""

    kind = FailureKind.RATE_LIMITED


class RequestTimeoutError(TransportError):
    """请求超过固定的超时预算。"""

    kind = FailureKind.TIMEOUT


class MalformedResponseError(TransportError):
    """响应体不是 JSON，或缺少 candidates → content → parts → text 结构。"""

    kind = FailureKind.MALFORMED_RESPONSE


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class ConversationBusyError(BusinessError):
    """已有请求在途时再次发送消息。"""

    def __init__(self, message: str = "A request is already in progress. Please wait for the reply."):
        super().__init__(code="BUSY", message=message)


class NoActiveDocumentError(BusinessError):
    """执行命令时没有打开的乐谱。"""

    def __init__(self, message: str = "No score is currently open. Please open a score first."):
        super().__init__(code="NO_ACTIVE_DOCUMENT", message=message)


class ScriptError(BusinessError):
    """脚本引擎求值失败。line 为出错的源代码行（若脚本引擎能提供）。"""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(code="SCRIPT_ERROR", message=message, line=line)
        self.line = line


# 每种失败类型对应一条简短、可操作的提示；原始错误文本只作为 detail 附带
USER_MESSAGES: Dict[FailureKind, str] = {
    FailureKind.AUTH_ERROR: "API key not configured or rejected. Please add your Gemini API key in Preferences.",
    FailureKind.NETWORK_ERROR: "Network error. Please check your internet connection.",
    FailureKind.RATE_LIMITED: "API rate limit exceeded. Please wait and try again.",
    FailureKind.TIMEOUT: "The request timed out. Please try again.",
    FailureKind.MALFORMED_RESPONSE: "Received an unexpected response from the AI service. Please try again.",
}
