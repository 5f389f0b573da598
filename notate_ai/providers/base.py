"""Provider 抽象接口。

ConversationManager 不直接依赖具体厂商的 HTTP 调用，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 GeminiClient）。
- 负责：将 OutboundRequest 转成具体 API 请求，并把响应 JSON 解析为 ReplyOutcome。
- 任何传输层问题都以 ReplyFailure 返回，而不是抛出异常。
"""

from typing import Protocol

from notate_ai.domain.models import OutboundRequest, ReplyOutcome


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - post(req): 执行一次同步调用，返回 ReplySuccess 或 ReplyFailure。
    """

    name: str

    def post(self, req: OutboundRequest) -> ReplyOutcome:
        ...
