"""NotateAI 助手：把会话、命令提取与命令执行串成一条流水线。

request → reply → extract → execute：
网络调用在工作线程完成，提取与执行在调用方所在的上下文同步进行。
"""

from dataclasses import dataclass, field
from typing import List, Optional

from notate_ai.agents.conversation_manager import ConversationManager
from notate_ai.commands.definitions import BatchResult, ParsedCommand
from notate_ai.commands.executor import CommandExecutor
from notate_ai.commands.parser import extract_commands
from notate_ai.domain.models import ReplyOutcome, ReplySuccess


@dataclass
class AssistantReply:
    """一次流水线运行的结果。batch 仅在执行了命令时存在。"""

    outcome: ReplyOutcome
    commands: List[ParsedCommand] = field(default_factory=list)
    batch: Optional[BatchResult] = None

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, ReplySuccess)


class NotateAssistant:
    def __init__(self, conversation: ConversationManager, executor: CommandExecutor):
        self._conversation = conversation
        self._executor = executor

    @property
    def conversation(self) -> ConversationManager:
        return self._conversation

    @property
    def is_busy(self) -> bool:
        return self._conversation.is_busy

    async def ask(
        self,
        text: str,
        include_document_snapshot: bool = False,
        execute: bool = True,
    ) -> AssistantReply:
        """发送消息；成功时提取命令，并在 execute=True 时按顺序执行。

        Raises:
            ValidationError / ConversationBusyError: 来自 ConversationManager。
        """

        outcome = await self._conversation.send_user_message(text, include_document_snapshot)
        if not isinstance(outcome, ReplySuccess):
            return AssistantReply(outcome=outcome)

        commands = extract_commands(outcome.text)
        batch = self._executor.run_batch(commands) if execute and commands else None
        return AssistantReply(outcome=outcome, commands=commands, batch=batch)

    def run_commands(self, commands: List[ParsedCommand]) -> BatchResult:
        """执行此前以 execute=False 取回的命令。"""

        return self._executor.run_batch(commands)

    def clear_conversation(self) -> None:
        self._conversation.clear_history()
