import pytest

from notate_ai.providers import create_provider
from notate_ai.providers.gemini_client import GeminiClient
from notate_ai.providers.registry import get_provider_config


def test_create_provider_default(monkeypatch):
    class DummySettings:
        gemini_api_key = "g" * 12
        http_timeout = 1.0
        gemini_base_url = "https://example.invalid/v1beta"
        gemini_model = ""

    monkeypatch.setattr("notate_ai.providers.settings", DummySettings())
    provider = create_provider()
    assert isinstance(provider, GeminiClient)
    assert provider.name == "gemini"
    # 未配置模型时回退到注册表中的模型
    assert provider.endpoint_url == "https://example.invalid/v1beta/models/gemini-pro:generateContent"


def test_create_provider_unknown():
    with pytest.raises(KeyError):
        create_provider("kimi")


def test_registry_lookup_case_insensitive():
    cfg = get_provider_config("Gemini")
    assert cfg.models["notate-chat"].provider_model == "gemini-pro"
    assert cfg.verify_tls is False
