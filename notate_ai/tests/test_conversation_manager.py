"""测试会话管理器。"""

import asyncio
import threading

import pytest

from notate_ai.agents.conversation_manager import NO_SNAPSHOT_NOTE, SNAPSHOT_HEADER, ConversationManager
from notate_ai.domain.exceptions import ConversationBusyError, ValidationError
from notate_ai.domain.models import FailureKind, ReplyFailure, ReplySuccess, Role


class FakeProvider:
    """按顺序返回预设结果，并记录收到的请求。"""

    name = "fake"

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.requests = []

    def post(self, req):
        self.requests.append(req)
        if self.outcomes:
            return self.outcomes.pop(0)
        return ReplySuccess(text=f"reply to {req.current_message}")


class BlockingProvider(FakeProvider):
    def __init__(self, outcome):
        super().__init__([outcome])
        self.entered = threading.Event()
        self.release = threading.Event()

    def post(self, req):
        self.entered.set()
        self.release.wait(5)
        return super().post(req)


class FakeSnapshot:
    def __init__(self, xml):
        self.xml = xml

    def export_current_document(self):
        return self.xml


def _manager(provider, snapshot=None):
    return ConversationManager(provider, snapshot_source=snapshot, base_prompt="BASE", protocol_documentation="DOCS")


def test_success_appends_user_then_model():
    mgr = _manager(FakeProvider([ReplySuccess("hello there")]))
    res = asyncio.run(mgr.send_user_message("hi"))

    assert res == ReplySuccess("hello there")
    assert [(t.role, t.text) for t in mgr.history] == [(Role.USER, "hi"), (Role.MODEL, "hello there")]
    assert mgr.pending_user_text is None
    assert not mgr.is_busy


def test_failure_leaves_history_unchanged():
    failure = ReplyFailure(FailureKind.NETWORK_ERROR, "Network error.", "boom")
    provider = FakeProvider([ReplySuccess("first"), failure])
    mgr = _manager(provider)

    asyncio.run(mgr.send_user_message("one"))
    res = asyncio.run(mgr.send_user_message("two"))

    assert res is failure
    assert len(mgr.history) == 2
    assert mgr.pending_user_text is None
    assert not mgr.is_busy


def test_docs_only_on_first_message():
    provider = FakeProvider()
    mgr = _manager(provider)

    asyncio.run(mgr.send_user_message("one"))
    asyncio.run(mgr.send_user_message("two"))

    first, second = provider.requests
    assert first.system_prompt == "BASE\n\nDOCS"
    assert first.turns == ()
    assert second.system_prompt == "BASE"
    assert [t.text for t in second.turns] == ["one", "reply to one"]
    assert second.current_message == "two"


def test_docs_sent_again_after_clear():
    provider = FakeProvider()
    mgr = _manager(provider)

    asyncio.run(mgr.send_user_message("one"))
    mgr.clear_history()
    assert mgr.history == ()
    asyncio.run(mgr.send_user_message("again"))

    assert "DOCS" in provider.requests[1].system_prompt
    assert provider.requests[1].turns == ()


def test_docs_resent_while_first_exchange_failed():
    provider = FakeProvider([ReplyFailure(FailureKind.TIMEOUT, "timed out")])
    mgr = _manager(provider)

    asyncio.run(mgr.send_user_message("one"))
    asyncio.run(mgr.send_user_message("one again"))

    assert all("DOCS" in r.system_prompt for r in provider.requests)


def test_snapshot_included_on_request():
    provider = FakeProvider()
    mgr = _manager(provider, FakeSnapshot("<score-partwise/>"))

    asyncio.run(mgr.send_user_message("look", include_document_snapshot=True))
    asyncio.run(mgr.send_user_message("no look"))

    assert provider.requests[0].system_prompt == f"BASE\n\nDOCS\n\n{SNAPSHOT_HEADER}\n\n<score-partwise/>"
    assert "<score-partwise/>" not in provider.requests[1].system_prompt


def test_snapshot_unavailable_adds_note():
    provider = FakeProvider()
    mgr = _manager(provider, FakeSnapshot(None))
    asyncio.run(mgr.send_user_message("look", include_document_snapshot=True))
    assert provider.requests[0].system_prompt.endswith(NO_SNAPSHOT_NOTE)


def test_empty_message_rejected():
    provider = FakeProvider()
    mgr = _manager(provider)
    with pytest.raises(ValidationError) as exc:
        asyncio.run(mgr.send_user_message("   "))
    assert exc.value.code == "EMPTY_MESSAGE"
    assert provider.requests == []


def test_second_send_while_pending_is_busy():
    provider = BlockingProvider(ReplySuccess("done"))
    mgr = _manager(provider)

    async def scenario():
        task = asyncio.create_task(mgr.send_user_message("first"))
        await asyncio.to_thread(provider.entered.wait, 5)
        assert mgr.is_busy
        assert mgr.pending_user_text == "first"

        with pytest.raises(ConversationBusyError):
            await mgr.send_user_message("second")
        assert mgr.pending_user_text == "first"
        assert mgr.history == ()

        provider.release.set()
        return await task

    res = asyncio.run(scenario())
    assert res == ReplySuccess("done")
    assert [t.text for t in mgr.history] == ["first", "done"]
    assert len(provider.requests) == 1


def test_clear_while_pending_keeps_guard():
    provider = BlockingProvider(ReplySuccess("late"))
    mgr = _manager(provider)

    async def scenario():
        task = asyncio.create_task(mgr.send_user_message("first"))
        await asyncio.to_thread(provider.entered.wait, 5)
        mgr.clear_history()
        assert mgr.pending_user_text is None
        assert mgr.is_busy
        provider.release.set()
        await task

    asyncio.run(scenario())
    assert [t.text for t in mgr.history] == ["first", "late"]
    assert not mgr.is_busy


def test_provider_exception_releases_guard():
    class ExplodingProvider(FakeProvider):
        def post(self, req):
            raise RuntimeError("bug")

    mgr = _manager(ExplodingProvider())
    with pytest.raises(RuntimeError):
        asyncio.run(mgr.send_user_message("hi"))
    assert not mgr.is_busy
    assert mgr.pending_user_text is None
    assert mgr.history == ()
