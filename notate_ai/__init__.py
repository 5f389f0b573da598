"""NotateAI 顶层包。

该包提供乐谱编辑器内 AI 助手的核心实现，
包括配置加载、领域模型、Gemini Provider 适配、会话管理、
命令块提取以及在当前乐谱上执行命令的能力。
"""

from notate_ai.api.service import build_assistant, has_api_key, run_notate_chat, set_api_key

__all__ = ["build_assistant", "run_notate_chat", "set_api_key", "has_api_key"]
