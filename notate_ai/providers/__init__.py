"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供具体实现 (gemini_client)。
"""

from typing import Optional

from notate_ai.config.settings import settings
from notate_ai.infrastructure.credentials import CredentialStore
from notate_ai.providers.base import ProviderClient
from notate_ai.providers.gemini_client import GeminiClient
from notate_ai.providers.registry import get_provider_config


def create_provider(name: Optional[str] = None, credentials: Optional[CredentialStore] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，未知名称抛出 KeyError。"""

    provider_cfg = get_provider_config(name or "gemini")
    if provider_cfg.name == "gemini":
        return GeminiClient(settings, credentials=credentials)
    raise KeyError(f"Provider {provider_cfg.name!r} has no client")
