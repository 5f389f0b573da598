from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .models import ConversationTurn, Role


class ConversationStatus(str, Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"


@dataclass
class ConversationState:
    """会话状态，只由 ConversationManager 修改。

    pending_user_text 仅在请求在途时非空，并且只会被清除一次：
    成功时随两条 turn 一起提交，失败时直接丢弃。
    """

    history: List[ConversationTurn] = field(default_factory=list)
    pending_user_text: Optional[str] = None
    status: ConversationStatus = ConversationStatus.IDLE

    def commit(self, user_text: str, model_text: str) -> None:
        self.history.append(ConversationTurn(role=Role.USER, text=user_text))
        self.history.append(ConversationTurn(role=Role.MODEL, text=model_text))
        self.pending_user_text = None

    def discard_pending(self) -> None:
        self.pending_user_text = None

    def reset(self) -> None:
        self.history.clear()
        self.pending_user_text = None
