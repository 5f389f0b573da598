"""从模型回复中提取 notateai 命令块。

命令块格式：字面量 ```notateai，可选空白，代码，字面量 ```。
只识别 notateai 这一个标记名；```javascript 等其他代码块永远不会被当作命令。
"""

import re
from typing import List

from notate_ai.commands.definitions import ParsedCommand
from notate_ai.infrastructure.logging.logger import logger

COMMAND_MARKER = "```notateai"
CLOSING_MARKER = "```"

# 非贪婪匹配，相邻代码块不会合并；[\s\S] 跨行
COMMAND_PATTERN = re.compile(r"```notateai\s*([\s\S]*?)```")


def extract_commands(reply_text: str) -> List[ParsedCommand]:
    """按出现顺序返回所有非空命令块。"""

    commands: List[ParsedCommand] = []
    for match in COMMAND_PATTERN.finditer(reply_text):
        code = match.group(1).strip()
        if not code:
            continue
        commands.append(ParsedCommand(code=code, start_offset=match.start(), end_offset=match.end()))

    logger.info(
        "Extracted commands from reply",
        extra={"extra": {"reply_chars": len(reply_text), "command_count": len(commands)}},
    )
    if not commands:
        if COMMAND_MARKER in reply_text:
            logger.warning("Found '```notateai' text but no complete command block, check formatting")
        if "```javascript" in reply_text:
            logger.warning("Found '```javascript' block, the model should use '```notateai' instead")
    return commands


def has_commands(reply_text: str) -> bool:
    """判断回复中是否至少包含一条可执行命令，结果与 extract_commands 是否为空一致。

    \\s* 是贪婪的，所以捕获组要么为空，要么以非空白字符开头；
    捕获组非空即等价于 strip() 之后非空。
    """

    return any(m.end(1) > m.start(1) for m in COMMAND_PATTERN.finditer(reply_text))


def wrap_command(code: str) -> str:
    """把代码包装成一个完整的命令块。"""

    return f"{COMMAND_MARKER}\n{code}\n{CLOSING_MARKER}"
