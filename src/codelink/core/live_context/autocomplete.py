"""``@`` file autocomplete over the composer."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Coroutine, Optional

from codelink.common.models import Rect
from codelink.core.errors import CodeLinkError, SurfaceUnavailable
from codelink.core.live_context.classifier import Delivery, classify
from codelink.core.live_context.delivery import FileDeliverer
from codelink.core.live_context.formatting import format_file_content
from codelink.core.live_context.host import (
    Candidate,
    CandidateListView,
    EditableSurface,
    HostDocument,
    HostEvent,
    Subscription,
)
from codelink.core.live_context.resolver import FileUniverse
from codelink.core.live_context.settings import EngineSettings
from codelink.core.live_context.surface import InjectionSurface
from codelink.core.live_context.tracker import Channel, DeliveryTracker
from codelink.core.project.directory import DirectoryAccessor

logger = logging.getLogger(__name__)

MAX_DISPLAY_PATH = 40


class DropdownState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


def base_name(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def display_path(path: str) -> str:
    """Shorten long paths to ``.../<two parent dirs>/<name>``."""
    if len(path) <= MAX_DISPLAY_PATH:
        return path
    parts = path.split("/")
    name = parts.pop()
    return ".../" + "/".join(parts[-2:] + [name])


def text_after_last_at(text: str, cursor: int) -> Optional[str]:
    """The query typed after the last ``@`` before the cursor, or None."""
    index = text.rfind("@", 0, cursor)
    if index == -1:
        return None
    query = text[index + 1:cursor]
    if any(ch.isspace() for ch in query):
        return None
    return query


def build_candidates(universe: FileUniverse) -> list[Candidate]:
    paths = sorted(universe, key=lambda p: (base_name(p).lower(), base_name(p), p))
    return [Candidate(path=p, name=base_name(p), display_path=display_path(p)) for p in paths]


class AutocompleteController:
    """Dropdown state machine driven by the host's input, key and click events.

    Events are handled one at a time in arrival order.
    """

    def __init__(
        self,
        document: HostDocument,
        surface: InjectionSurface,
        tracker: DeliveryTracker,
        directory: DirectoryAccessor,
        universe: FileUniverse,
        deliverer: FileDeliverer,
        settings: Optional[EngineSettings] = None,
    ):
        self.document = document
        self.surface = surface
        self.tracker = tracker
        self.directory = directory
        self.universe = universe
        self.deliverer = deliverer
        self.settings = settings or EngineSettings()

        self.state = DropdownState.CLOSED
        self.visible: list[Candidate] = []
        self.selected: Optional[int] = None
        self._candidates: Optional[list[Candidate]] = None
        self._view: Optional[CandidateListView] = None
        self._subscriptions: list[Subscription] = []
        self._tasks: set[asyncio.Task] = set()
        self._events = asyncio.Lock()

    @property
    def candidates(self) -> list[Candidate]:
        if self._candidates is None:
            self._candidates = build_candidates(self.universe)
        return self._candidates

    # -- Lifecycle ------------------------------------------------------------

    def start(self) -> None:
        if self._subscriptions:
            return
        handlers = {
            HostEvent.INPUT: self.handle_input,
            HostEvent.KEYDOWN: self.handle_key,
            HostEvent.CLICK: self.handle_click,
            HostEvent.SELECT: self.handle_select,
        }
        for event, handler in handlers.items():
            self._subscriptions.append(
                self.document.subscribe(event, self._dispatcher(handler))
            )
        logger.info("Autocomplete handlers attached")

    async def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        if self._view is not None:
            try:
                await self._view.remove()
            except Exception as e:
                logger.warning("Could not remove the file dropdown: %s", e)
            self._view = None
        self.state = DropdownState.CLOSED

    async def wait_idle(self) -> None:
        while any(not task.done() for task in self._tasks):
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _dispatcher(self, handler):
        def dispatch(payload: dict) -> None:
            self._spawn(self._serialized(handler, payload))
        return dispatch

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _serialized(self, handler, payload: dict) -> None:
        async with self._events:
            try:
                await handler(payload)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Autocomplete handler failed")

    # -- Events ---------------------------------------------------------------

    async def handle_input(self, payload: Optional[dict] = None) -> None:
        surface = self.surface.current
        if surface is None:
            return
        text = await surface.get_text()
        cursor = await surface.get_cursor()

        if self.state is DropdownState.OPEN:
            query = text_after_last_at(text, cursor)
            if query is None:
                await self.close()
            else:
                await self.filter(query)
            return

        if cursor > 0 and text[cursor - 1:cursor] == "@":
            await self.open(surface)

    async def handle_key(self, payload: dict) -> None:
        if self.state is not DropdownState.OPEN:
            return
        key = payload.get("key")
        count = len(self.visible)
        if key == "ArrowDown" and count:
            self.selected = 0 if self.selected is None else (self.selected + 1) % count
            await self._render()
        elif key == "ArrowUp" and count:
            self.selected = count - 1 if self.selected is None else (self.selected - 1) % count
            await self._render()
        elif key in ("Enter", "Tab") and self.selected is not None:
            await self.commit(self.visible[self.selected].path)
        elif key == "Escape":
            await self.close()

    async def handle_click(self, payload: dict) -> None:
        if self.state is not DropdownState.OPEN:
            return
        if not payload.get("in_dropdown") and not payload.get("on_surface"):
            await self.close()

    async def handle_select(self, payload: dict) -> None:
        path = payload.get("path")
        if self.state is DropdownState.OPEN and path:
            await self.commit(path)

    # -- Dropdown -------------------------------------------------------------

    async def open(self, surface: EditableSurface) -> None:
        logger.debug("Showing file dropdown")
        if self._view is None:
            self._view = self.document.candidate_view()
        box = await surface.bounding_box()
        await self._view.show(Rect(
            left=box.left,
            top=box.top - self.settings.dropdown_offset,
            width=min(box.width, self.settings.dropdown_max_width),
        ))
        self.state = DropdownState.OPEN
        self.visible = list(self.candidates)
        self.selected = 0 if self.visible else None
        await self._render(None if self.visible else "No files found")

    async def filter(self, query: str) -> None:
        needle = query.lower()
        self.visible = [c for c in self.candidates if needle in c.name.lower()]
        self.selected = 0 if self.visible else None
        await self._render(None if self.visible else f'No files matching "{query}"')

    async def close(self) -> None:
        if self.state is DropdownState.CLOSED:
            return
        self.state = DropdownState.CLOSED
        self.visible = []
        self.selected = None
        if self._view is not None:
            await self._view.hide()

    async def _render(self, empty_message: Optional[str] = None) -> None:
        if self._view is not None:
            await self._view.render(self.visible, self.selected, empty_message)

    # -- Commit ---------------------------------------------------------------

    async def commit(self, path: str) -> None:
        """Insert the chosen file in place of the typed ``@query``."""
        await self.close()
        if path not in self.universe:
            logger.warning("Ignoring selection outside the project: %s", path)
            return
        try:
            surface = await self.surface.acquire()
        except SurfaceUnavailable as e:
            logger.error("%s", e)
            return

        text = await surface.get_text()
        cursor = await surface.get_cursor()
        start = text.rfind("@", 0, cursor)
        if start == -1:
            start = cursor
        name = base_name(path)

        if self.tracker.is_delivered(path) or not self.tracker.claim(path):
            logger.info("File %s already added to conversation, skipping", path)
            await self.deliverer.notify(f"File {name} already added to this conversation", 2.0)
            return

        try:
            try:
                record = await self.directory.read_file(path)
            except (CodeLinkError, OSError) as e:
                logger.error("Error inserting file content for %s: %s", path, e)
                await self.surface.replace_span(start, cursor, name)
                return

            verdict = classify(
                record.content,
                self.settings.inline_max_chars,
                self.settings.inline_max_lines,
            )
            if verdict is Delivery.OVERSIZED:
                await self.deliverer.deliver_oversized(record)
            else:
                block = format_file_content(record.name, record.extension, record.content)
                if await self.surface.replace_span(start, cursor, block):
                    self.tracker.record(path, Channel.CONTENT)
            logger.info("File content inserted: %s", path)
        finally:
            self.tracker.release(path)
