"""Host interfaces implemented against a live chat page through Playwright."""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Optional

from playwright.async_api import Page

from codelink.browser.scripts import BINDING_NAME, BRIDGE_SCRIPT
from codelink.common.models import ConversationTurn, Rect
from codelink.core.live_context.host import (
    Candidate,
    CandidateListView,
    EditableSurface,
    EventCallback,
    HostDocument,
    HostEvent,
    Subscription,
)

logger = logging.getLogger(__name__)


class ChatComposerSurface(EditableSurface):
    """The ``#prompt-textarea`` element, addressed by the id the bridge stamped on it."""

    def __init__(self, page: Page, element_id: str):
        self._page = page
        self._id = element_id

    @property
    def identity(self) -> str:
        return self._id

    async def _call(self, op: str, *args: Any) -> Any:
        return await self._page.evaluate(
            "([id, op, args]) => window.__codelink.surface(id, op, args)",
            [self._id, op, list(args)],
        )

    async def is_rich_text(self) -> bool:
        return bool(await self._call("isRichText"))

    async def get_text(self) -> str:
        return await self._call("getText") or ""

    async def get_markup(self) -> str:
        return await self._call("getMarkup") or ""

    async def set_text(self, text: str) -> None:
        await self._call("setText", text)

    async def set_markup(self, markup: str) -> None:
        await self._call("setMarkup", markup)

    async def splice_markup(self, start: int, end: int, markup: str) -> int:
        return int(await self._call("spliceMarkup", start, end, markup) or 0)

    async def get_cursor(self) -> int:
        return int(await self._call("getCursor") or 0)

    async def set_cursor(self, offset: int) -> None:
        await self._call("setCursor", offset)

    async def focus(self) -> None:
        await self._call("focus")

    async def emit_input(self) -> None:
        await self._call("emitInput")

    async def bounding_box(self) -> Rect:
        return Rect(**await self._call("boundingBox"))

    async def paste_file(self, name: str, content: str) -> None:
        await self._call("pasteFile", name, content)


class PageCandidateView(CandidateListView):
    def __init__(self, page: Page):
        self._page = page

    async def _call(self, op: str, *args: Any) -> None:
        await self._page.evaluate(
            "([op, args]) => window.__codelink.dropdown(op, args)", [op, list(args)]
        )

    async def show(self, position: Rect) -> None:
        await self._call("show", position.model_dump())

    async def render(
        self,
        items: list[Candidate],
        selected: Optional[int],
        empty_message: Optional[str] = None,
    ) -> None:
        rows = [
            {"path": c.path, "name": c.name, "display_path": c.display_path, "icon": c.icon}
            for c in items
        ]
        await self._call("render", rows, selected, empty_message)

    async def hide(self) -> None:
        await self._call("hide")

    async def remove(self) -> None:
        await self._call("remove")


class ChatPageDocument(HostDocument):
    """The chat page as seen by the engine.

    ``attach()`` must run once before use: it exposes the event binding and
    installs the bridge on the current document and on every later navigation.
    """

    def __init__(self, page: Page):
        self.page = page
        self._subscribers: dict[HostEvent, list[EventCallback]] = defaultdict(list)
        self._attached = False
        self._listening = False

    async def attach(self) -> None:
        if self._attached:
            return
        await self.page.expose_binding(BINDING_NAME, self._on_binding)
        await self.page.add_init_script(BRIDGE_SCRIPT)
        await self.page.evaluate(BRIDGE_SCRIPT)
        self._attached = True
        logger.info("Bridge installed on %s", self.page.url)

    async def listen(self) -> None:
        if not self._listening:
            self.page.on("load", self._on_load)
            self._listening = True
        await self.page.evaluate("() => window.__codelink.listen()")
        logger.debug("Page listeners started")

    async def detach(self) -> None:
        if not self._listening:
            return
        self._listening = False
        self.page.remove_listener("load", self._on_load)
        await self.page.evaluate("() => window.__codelink.detach()")
        logger.debug("Page listeners removed")

    async def _on_load(self, page: Page) -> None:
        # A navigation installs a fresh bridge without listeners.
        try:
            await page.evaluate("() => window.__codelink.listen()")
        except Exception as e:
            logger.warning("Could not restart page listeners: %s", e)

    def _on_binding(self, source: Any, event: str, payload: Optional[dict] = None) -> None:
        try:
            kind = HostEvent(event)
        except ValueError:
            logger.debug("Ignoring unknown page event %r", event)
            return
        for callback in list(self._subscribers[kind]):
            try:
                callback(payload or {})
            except Exception:
                logger.exception("Subscriber for %s failed", kind.value)

    def subscribe(self, event: HostEvent, callback: EventCallback) -> Subscription:
        self._subscribers[event].append(callback)

        def cancel() -> None:
            if callback in self._subscribers[event]:
                self._subscribers[event].remove(callback)

        return Subscription(cancel)

    async def ready(self) -> bool:
        return bool(await self.page.evaluate("() => window.__codelink.ready()"))

    async def conversation_turns(self) -> list[ConversationTurn]:
        turns = await self.page.evaluate("() => window.__codelink.conversationTurns()")
        return [ConversationTurn(**turn) for turn in turns]

    async def find_surface(self) -> Optional[EditableSurface]:
        element_id = await self.page.evaluate("() => window.__codelink.findSurface()")
        if element_id is None:
            return None
        return ChatComposerSurface(self.page, element_id)

    async def attachment_labels(self) -> list[str]:
        return await self.page.evaluate("() => window.__codelink.attachmentLabels()")

    async def composer_text(self) -> str:
        return await self.page.evaluate("() => window.__codelink.composerText()")

    async def snapshot(self) -> str:
        return await self.page.evaluate("() => window.__codelink.snapshot()")

    async def notify(self, message: str, duration: float = 5.0) -> None:
        await self.page.evaluate(
            "([message, ms]) => window.__codelink.notify(message, ms)",
            [message, int(duration * 1000)],
        )

    def candidate_view(self) -> CandidateListView:
        return PageCandidateView(self.page)

    async def clear_transient(self) -> None:
        await self.page.evaluate("() => window.__codelink.clearTransient()")
