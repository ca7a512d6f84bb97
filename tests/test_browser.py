"""Tests for the Playwright host adapters against a mocked page."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from codelink.browser import ChatComposerSurface, ChatPageDocument, PageCandidateView, is_chat_url
from codelink.browser.scripts import BINDING_NAME, BRIDGE_SCRIPT
from codelink.common.models import Rect
from codelink.core.live_context.host import Candidate, HostEvent


@pytest.fixture
def page():
    page = AsyncMock()
    page.url = "https://chatgpt.com/"
    page.on = MagicMock()
    page.remove_listener = MagicMock()
    return page


@pytest.fixture
def document(page):
    return ChatPageDocument(page)


def test_is_chat_url():
    assert is_chat_url("https://chatgpt.com/c/123")
    assert is_chat_url("https://www.chatgpt.com/")
    assert not is_chat_url("https://example.com/chatgpt.com")
    assert not is_chat_url("")


class TestBridgeScript:
    def test_binding_name_used_by_script(self):
        assert BINDING_NAME in BRIDGE_SCRIPT
        assert "window.__codelink" in BRIDGE_SCRIPT

    def test_listeners_are_not_installed_on_load(self):
        assert "listen();" not in BRIDGE_SCRIPT
        assert "observer.disconnect()" in BRIDGE_SCRIPT
        for event in ("input", "keydown", "click"):
            assert f"removeEventListener('{event}'" in BRIDGE_SCRIPT


class TestChatPageDocument:
    @pytest.mark.asyncio
    async def test_attach_installs_bridge_once(self, document, page):
        await document.attach()
        await document.attach()

        page.expose_binding.assert_awaited_once_with(BINDING_NAME, document._on_binding)
        page.add_init_script.assert_awaited_once_with(BRIDGE_SCRIPT)
        page.evaluate.assert_awaited_once_with(BRIDGE_SCRIPT)

    def test_events_reach_subscribers(self, document):
        received = []
        subscription = document.subscribe(HostEvent.KEYDOWN, received.append)

        document._on_binding(None, "keydown", {"key": "Enter"})
        document._on_binding(None, "mutation", None)
        document._on_binding(None, "unknown", {})
        subscription.cancel()
        document._on_binding(None, "keydown", {"key": "Escape"})

        assert received == [{"key": "Enter"}]

    def test_failing_subscriber_does_not_block_others(self, document):
        received = []
        document.subscribe(HostEvent.INPUT, MagicMock(side_effect=RuntimeError("boom")))
        document.subscribe(HostEvent.INPUT, received.append)

        document._on_binding(None, "input")

        assert received == [{}]

    @pytest.mark.asyncio
    async def test_listen_and_detach(self, document, page):
        await document.listen()
        page.on.assert_called_once_with("load", document._on_load)
        assert page.evaluate.await_args.args[0] == "() => window.__codelink.listen()"

        await document.detach()
        page.remove_listener.assert_called_once_with("load", document._on_load)
        assert page.evaluate.await_args.args[0] == "() => window.__codelink.detach()"

        page.evaluate.reset_mock()
        await document.detach()
        page.evaluate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_navigation_restarts_listeners(self, document, page):
        await document._on_load(page)
        page.evaluate.assert_awaited_once_with("() => window.__codelink.listen()")

    @pytest.mark.asyncio
    async def test_find_surface(self, document, page):
        page.evaluate.return_value = None
        assert await document.find_surface() is None

        page.evaluate.return_value = "7"
        surface = await document.find_surface()
        assert isinstance(surface, ChatComposerSurface)
        assert surface.identity == "7"

    @pytest.mark.asyncio
    async def test_conversation_turns(self, document, page):
        page.evaluate.return_value = [{"user": "hi", "ai": "<p>see <code>a.py</code></p>"}, {"user": "q", "ai": None}]
        turns = await document.conversation_turns()
        assert turns[0].ai == "<p>see <code>a.py</code></p>"
        assert turns[1].ai is None

    @pytest.mark.asyncio
    async def test_notify_passes_milliseconds(self, document, page):
        await document.notify("Processing", 2.5)
        args = page.evaluate.await_args.args
        assert args[1] == ["Processing", 2500]

    @pytest.mark.asyncio
    async def test_ready(self, document, page):
        page.evaluate.return_value = False
        assert not await document.ready()


class TestChatComposerSurface:
    @pytest.mark.asyncio
    async def test_operations_address_element(self, page):
        surface = ChatComposerSurface(page, "3")
        await surface.set_text("hello")
        args = page.evaluate.await_args.args
        assert args[1] == ["3", "setText", ["hello"]]

    @pytest.mark.asyncio
    async def test_splice_returns_caret(self, page):
        page.evaluate.return_value = 12
        surface = ChatComposerSurface(page, "3")
        assert await surface.splice_markup(3, 6, "<br>x") == 12
        assert page.evaluate.await_args.args[1] == ["3", "spliceMarkup", [3, 6, "<br>x"]]

    @pytest.mark.asyncio
    async def test_reads_default_when_empty(self, page):
        page.evaluate.return_value = None
        surface = ChatComposerSurface(page, "3")
        assert await surface.get_text() == ""
        assert await surface.get_cursor() == 0

    @pytest.mark.asyncio
    async def test_bounding_box(self, page):
        page.evaluate.return_value = {"left": 1, "top": 2, "width": 3, "height": 4}
        box = await ChatComposerSurface(page, "3").bounding_box()
        assert box == Rect(left=1, top=2, width=3, height=4)


class TestPageCandidateView:
    @pytest.mark.asyncio
    async def test_render_rows(self, page):
        view = PageCandidateView(page)
        await view.render([Candidate(path="src/a.py", name="a.py", display_path="src/a.py")], 0)
        args = page.evaluate.await_args.args
        assert args[1] == [
            "render",
            [[{"path": "src/a.py", "name": "a.py", "display_path": "src/a.py", "icon": "📄"}], 0, None],
        ]
