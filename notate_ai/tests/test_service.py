import asyncio
import tempfile
from pathlib import Path

import pytest

from notate_ai.api import service
from notate_ai.domain.exceptions import ScriptError, ValidationError
from notate_ai.domain.models import FailureKind, ReplyFailure, ReplySuccess
from notate_ai.infrastructure.credentials import EnvFileCredentialStore
from notate_ai.providers.gemini_client import GeminiClient


class FakeProvider:
    name = "fake"

    def __init__(self, outcome):
        self.outcome = outcome

    def post(self, req):
        return self.outcome


class FakeDocument:
    def __init__(self, open_=True):
        self.open = open_

    def has_active_document(self):
        return self.open

    def begin_change(self):
        pass

    def end_change(self):
        pass

    def rollback_change(self):
        pass


class FakeEngine:
    def evaluate(self, script_path):
        if Path(script_path).read_text(encoding="utf-8") == "stepB();":
            raise ScriptError("undefined method", line=3)


REPLY = "Sure!\n```notateai\nstepA();\n```\nDone.\n```notateai\nstepB();\n```"


def test_run_notate_chat_success_dict():
    assistant = service.build_assistant(FakeDocument(), FakeEngine(), provider=FakeProvider(ReplySuccess(REPLY)))
    out = asyncio.run(service.run_notate_chat(assistant, "two steps please"))

    assert out["ok"] is True
    assert out["reply_text"] == REPLY
    assert out["error"] is None
    assert [c["code"] for c in out["commands"]] == ["stepA();", "stepB();"]
    assert out["execution"]["first_failure_index"] == 1
    assert [r["success"] for r in out["execution"]["results"]] == [True, False]
    assert out["failure_messages"] == ["Command 2 failed: undefined method (line 3)"]


def test_run_notate_chat_failure_dict():
    failure = ReplyFailure(FailureKind.RATE_LIMITED, "API rate limit exceeded.", "API error 429: quota")
    assistant = service.build_assistant(FakeDocument(), FakeEngine(), provider=FakeProvider(failure))
    out = asyncio.run(service.run_notate_chat(assistant, "hi"))

    assert out["ok"] is False
    assert out["error"] == {
        "kind": "rate_limited",
        "message": "API rate limit exceeded.",
        "detail": "API error 429: quota",
    }
    assert out["commands"] == []
    assert out["execution"] is None


def test_run_notate_chat_no_document():
    assistant = service.build_assistant(FakeDocument(open_=False), FakeEngine(), provider=FakeProvider(ReplySuccess(REPLY)))
    out = asyncio.run(service.run_notate_chat(assistant, "two steps please"))
    assert out["ok"] is True
    assert out["execution"]["error_code"] == "NO_ACTIVE_DOCUMENT"
    assert out["execution"]["results"] == []
    assert out["failure_messages"] == ["No score is currently open. Please open a score first."]


def test_run_notate_chat_empty_input_raises():
    assistant = service.build_assistant(FakeDocument(), FakeEngine(), provider=FakeProvider(ReplySuccess("x")))
    with pytest.raises(ValidationError):
        asyncio.run(service.run_notate_chat(assistant, ""))


def test_api_key_roundtrip(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    class NoKey:
        gemini_api_key = None

    with tempfile.TemporaryDirectory() as d:
        store = EnvFileCredentialStore(env_file=Path(d) / ".env", cfg=NoKey())
        monkeypatch.setattr(service, "_credentials", store)

        assert service.has_api_key() is False
        service.set_api_key("  new-key-0123456789 ")
        assert service.has_api_key() is True
        assert store.get_api_key() == "new-key-0123456789"

        with pytest.raises(ValidationError):
            service.set_api_key("   ")


def test_build_assistant_default_provider(monkeypatch):
    monkeypatch.setattr(service, "_credentials", None)
    assistant = service.build_assistant(FakeDocument(), FakeEngine())
    assert isinstance(assistant.conversation._provider_client, GeminiClient)
