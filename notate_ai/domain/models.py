"""统一的对话与结果数据模型。

本模块定义了会话管理器、传输适配器与上层 UI 之间共享的标准数据结构：

- ConversationTurn: 一条已被模型“看到”的对话消息（user/model）。
- OutboundRequest: 发给 Gemini 的完整请求（由会话状态推导，不单独保存）。
- ReplySuccess / ReplyFailure: 一次往返的结果，二者必居其一。

传输适配器（GeminiClient）只依赖这些模型，
并负责在 generateContent 的 JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class Role(str, Enum):
    """对话角色，取值与 Gemini contents[].role 字段一致。"""

    USER = "user"
    MODEL = "model"


class FailureKind(str, Enum):
    """传输层失败分类。"""

    NETWORK_ERROR = "network_error"
    AUTH_ERROR = "auth_error"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class ConversationTurn:
    """一条对话消息，创建后不可修改。"""

    role: Role
    text: str


@dataclass(frozen=True)
class OutboundRequest:
    """一次完整的 generateContent 请求。

    - system_prompt: 基础提示词 + （首条消息时的）协议文档 + （可选的）乐谱快照。
    - turns: 历史对话，按时间顺序原样发送。
    - current_message: 本次用户消息，位于 turns 之后。
    """

    system_prompt: str
    turns: Tuple[ConversationTurn, ...]
    current_message: str


@dataclass(frozen=True)
class ReplySuccess:
    text: str


@dataclass(frozen=True)
class ReplyFailure:
    """失败结果。

    - kind: 失败类型。
    - message: 面向用户的简短提示。
    - detail: 原始的传输层/远端错误文本，仅作补充信息。
    """

    kind: FailureKind
    message: str
    detail: Optional[str] = None


ReplyOutcome = Union[ReplySuccess, ReplyFailure]
