"""会话管理器。

负责维护有序的对话历史、决定每次请求需要附带哪些上下文（协议文档、乐谱快照），
并把请求交给 Provider 在工作线程上执行。

- 同一时间只允许一个请求在途；在途时再次发送直接抛出 ConversationBusyError。
- 网络调用通过 asyncio.to_thread 在工作线程完成，结果只交付一次，
  所有状态修改都发生在持有会话的事件循环上。
- 成功时依次追加 USER / MODEL 两条 turn；失败时历史保持不变。
- 协议文档只在历史为空（会话第一条消息）时发送。
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from notate_ai.config.settings import settings
from notate_ai.document.interfaces import SnapshotSource
from notate_ai.domain.conversation import ConversationState, ConversationStatus
from notate_ai.domain.exceptions import ConversationBusyError, ValidationError
from notate_ai.domain.models import ConversationTurn, OutboundRequest, ReplyOutcome, ReplySuccess
from notate_ai.infrastructure.logging.logger import logger
from notate_ai.prompts import load_base_prompt, load_protocol_documentation
from notate_ai.providers.base import ProviderClient

SNAPSHOT_HEADER = "Current score (MusicXML):"
NO_SNAPSHOT_NOTE = "No score is currently open, so no score data is attached."


class ConversationManager:
    def __init__(
        self,
        provider_client: ProviderClient,
        snapshot_source: Optional[SnapshotSource] = None,
        base_prompt: Optional[str] = None,
        protocol_documentation: Optional[str] = None,
        cfg=settings,
    ):
        locale = getattr(cfg, "prompt_locale", "en")
        self._provider_client = provider_client
        self._snapshot_source = snapshot_source
        self._base_prompt = load_base_prompt(locale) if base_prompt is None else base_prompt
        self._protocol_documentation = (
            load_protocol_documentation(locale) if protocol_documentation is None else protocol_documentation
        )
        self._state = ConversationState()

    @property
    def history(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self._state.history)

    @property
    def pending_user_text(self) -> Optional[str]:
        return self._state.pending_user_text

    @property
    def is_busy(self) -> bool:
        return self._state.status is ConversationStatus.AWAITING_REPLY

    def build_request(self, text: str, include_document_snapshot: bool = False) -> OutboundRequest:
        """根据当前历史构造请求；不修改任何状态。"""

        sections = [self._base_prompt]
        if not self._state.history:
            sections.append(self._protocol_documentation)
        if include_document_snapshot:
            sections.append(self._snapshot_section())
        return OutboundRequest(
            system_prompt="\n\n".join(s for s in sections if s),
            turns=tuple(self._state.history),
            current_message=text,
        )

    async def send_user_message(self, text: str, include_document_snapshot: bool = False) -> ReplyOutcome:
        """发送一条用户消息并等待回复。

        Raises:
            ValidationError: text 为空。
            ConversationBusyError: 已有请求在途。
        """

        if not text or not text.strip():
            raise ValidationError(code="EMPTY_MESSAGE", message="Message must not be empty")
        log_ctx: Dict[str, Any] = {"trace_id": f"tr-{uuid4().hex}"}
        if self.is_busy:
            self._log(logging.WARNING, "Request already in flight, message rejected", log_ctx)
            raise ConversationBusyError()

        # 1. 构造请求（协议文档是否附带只取决于此刻历史是否为空）
        request = self.build_request(text, include_document_snapshot)
        self._log(
            logging.INFO,
            "Sending user message",
            log_ctx,
            history_turns=len(request.turns),
            include_protocol_docs=not request.turns,
            include_snapshot=include_document_snapshot,
        )

        # 2. 进入等待状态，网络调用放到工作线程
        self._state.status = ConversationStatus.AWAITING_REPLY
        self._state.pending_user_text = text
        start_time = time.time()
        try:
            outcome = await asyncio.to_thread(self._provider_client.post, request)
        except BaseException:
            self._state.discard_pending()
            self._log(logging.ERROR, "Provider call raised", log_ctx)
            raise
        finally:
            self._state.status = ConversationStatus.IDLE

        # 3. 回到持有会话的上下文后再提交/丢弃
        elapsed = round(time.time() - start_time, 2)
        if isinstance(outcome, ReplySuccess):
            self._state.commit(text, outcome.text)
            self._log(
                logging.INFO,
                "Committed round-trip",
                log_ctx,
                elapsed_seconds=elapsed,
                history_turns=len(self._state.history),
            )
        else:
            self._state.discard_pending()
            self._log(
                logging.WARNING,
                "Round-trip failed, history unchanged",
                log_ctx,
                elapsed_seconds=elapsed,
                kind=outcome.kind.value,
            )
        return outcome

    def clear_history(self) -> None:
        """清空历史与待确认消息。

        在途请求不会被取消，也不会释放忙碌标记；若其成功，结果会提交到清空后的历史中。
        """

        self._state.reset()
        self._log(logging.INFO, "Conversation cleared", {"busy": self.is_busy})

    def _snapshot_section(self) -> str:
        snapshot = self._snapshot_source.export_current_document() if self._snapshot_source else None
        if not snapshot:
            return NO_SNAPSHOT_NOTE
        return f"{SNAPSHOT_HEADER}\n\n{snapshot}"

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
