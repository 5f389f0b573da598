"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取 Markdown 文本：
- base_system.md：每次请求都会发送的基础提示词。
- plugin_api.md：命令块协议与插件 API 文档，只随会话的第一条消息发送。
"""

from functools import lru_cache
from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_prompt(name: str, locale: str = "en") -> str:
    fname = PROMPTS_DIR / locale / f"{name}.md"
    return fname.read_text(encoding="utf-8").strip()


def load_base_prompt(locale: str = "en") -> str:
    return load_prompt("base_system", locale)


def load_protocol_documentation(locale: str = "en") -> str:
    return load_prompt("plugin_api", locale)
