"""对外 API 服务模块。

提供简化的函数接口供宿主应用（编辑器插件面板等）调用。
"""

from typing import Any, Dict, List, Optional

from notate_ai.agents.conversation_manager import ConversationManager
from notate_ai.agents.notate_assistant import AssistantReply, NotateAssistant
from notate_ai.commands.definitions import BatchResult
from notate_ai.commands.executor import CommandExecutor
from notate_ai.config.settings import settings
from notate_ai.document.interfaces import ActiveDocument, ScriptEngine, SnapshotSource
from notate_ai.domain.exceptions import ValidationError
from notate_ai.domain.models import ReplySuccess
from notate_ai.infrastructure.credentials import CredentialStore, EnvFileCredentialStore
from notate_ai.infrastructure.logging.logger import logger
from notate_ai.providers import create_provider
from notate_ai.providers.base import ProviderClient


_credentials: Optional[CredentialStore] = None


def get_credential_store() -> CredentialStore:
    """获取默认的 CredentialStore 实例（单例）。"""
    global _credentials
    if _credentials is None:
        _credentials = EnvFileCredentialStore(cfg=settings)
    return _credentials


def build_assistant(
    document: ActiveDocument,
    script_engine: ScriptEngine,
    snapshot_source: Optional[SnapshotSource] = None,
    provider: Optional[ProviderClient] = None,
) -> NotateAssistant:
    """用默认配置组装一个 NotateAssistant。

    Args:
        document: 当前乐谱
        script_engine: 脚本引擎
        snapshot_source: 乐谱快照导出（可选，不提供则无法附带快照）
        provider: Provider 实例（可选，默认使用 Gemini 与默认 CredentialStore）
    """
    provider_client = provider or create_provider(credentials=get_credential_store())
    conversation = ConversationManager(provider_client, snapshot_source=snapshot_source, cfg=settings)
    executor = CommandExecutor(document, script_engine, cfg=settings)
    return NotateAssistant(conversation, executor)


async def run_notate_chat(
    assistant: NotateAssistant,
    user_input: str,
    include_document_snapshot: bool = False,
) -> Dict[str, Any]:
    """发送一条消息并执行回复中的命令。

    Args:
        assistant: build_assistant 返回的实例
        user_input: 用户输入内容
        include_document_snapshot: 是否随消息附带当前乐谱

    Returns:
        可直接展示的字典：ok、reply_text、error、commands、execution、failure_messages

    Raises:
        ValidationError: 输入为空
        ConversationBusyError: 已有请求在途
    """
    try:
        reply = await assistant.ask(user_input, include_document_snapshot=include_document_snapshot)
    except Exception as e:
        logger.error(f"Chat failed: {e}", extra={"extra": {
            "error_type": type(e).__name__,
            "error": str(e),
        }})
        raise
    return _reply_to_dict(reply)


def set_api_key(key: str) -> None:
    """保存 API key，之后的请求立即使用新 key。"""
    if not key or not key.strip():
        raise ValidationError(code="EMPTY_API_KEY", message="API key must not be empty")
    get_credential_store().set_api_key(key)
    logger.info("API key updated", extra={"extra": {"key_length": len(key.strip())}})


def has_api_key() -> bool:
    return get_credential_store().get_api_key() is not None


def _reply_to_dict(reply: AssistantReply) -> Dict[str, Any]:
    outcome = reply.outcome
    if not isinstance(outcome, ReplySuccess):
        return {
            "ok": False,
            "reply_text": None,
            "error": {
                "kind": outcome.kind.value,
                "message": outcome.message,
                "detail": outcome.detail,
            },
            "commands": [],
            "execution": None,
            "failure_messages": [],
        }

    return {
        "ok": True,
        "reply_text": outcome.text,
        "error": None,
        "commands": [
            {"code": c.code, "start_offset": c.start_offset, "end_offset": c.end_offset}
            for c in reply.commands
        ],
        "execution": _batch_to_dict(reply.batch) if reply.batch is not None else None,
        "failure_messages": failure_messages(reply.batch) if reply.batch is not None else [],
    }


def _batch_to_dict(batch: BatchResult) -> Dict[str, Any]:
    return {
        "success": batch.success,
        "results": [
            {
                "success": r.success,
                "error_message": r.error_message,
                "error_location": r.error_location,
            }
            for r in batch.results
        ],
        "first_failure_index": batch.first_failure_index,
        "error": batch.error,
        "error_code": batch.error_code,
    }


def failure_messages(batch: BatchResult) -> List[str]:
    """每条失败命令一行提示；批次级失败只返回一行。"""
    if batch.error is not None:
        return [batch.error]
    messages = []
    for index in batch.failures:
        result = batch.results[index]
        line = f"Command {index + 1} failed: {result.error_message}"
        if result.error_location is not None:
            line += f" (line {result.error_location})"
        messages.append(line)
    return messages
