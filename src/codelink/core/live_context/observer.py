"""Watches the conversation and answers file requests in the latest assistant turn."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Coroutine, Optional

from codelink.common.models import FileRecord
from codelink.core.errors import CodeLinkError, NotFound
from codelink.core.live_context.classifier import Delivery, classify
from codelink.core.live_context.delivery import FileDeliverer
from codelink.core.live_context.extractor import extract_references
from codelink.core.live_context.host import HostDocument, HostEvent, Subscription
from codelink.core.live_context.resolver import FileUniverse, resolve_path
from codelink.core.live_context.settings import EngineSettings
from codelink.core.live_context.surface import InjectionSurface
from codelink.core.live_context.tracker import DeliveryTracker, fingerprint
from codelink.core.project.directory import DirectoryAccessor

logger = logging.getLogger(__name__)


class ObserverState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"


class ConversationObserver:
    """Reacts to document changes.

    A change notification runs one pass (``tick``). Notifications that arrive
    while a pass is in flight mark the observer dirty and one follow-up pass
    runs afterwards. File deliveries are spawned as their own tasks.
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

        self.state = ObserverState.IDLE
        self._subscription: Optional[Subscription] = None
        self._pass: Optional[asyncio.Task] = None
        self._dirty = False
        self._tasks: set[asyncio.Task] = set()

    # -- Lifecycle ------------------------------------------------------------

    def start(self) -> None:
        if self.state is ObserverState.WATCHING:
            return
        self._subscription = self.document.subscribe(HostEvent.MUTATION, self._on_change)
        self.state = ObserverState.WATCHING
        logger.info("Conversation monitoring started")
        # The conversation already on screen gets one pass up front.
        self._on_change({})

    async def stop(self) -> None:
        """Unsubscribe and cancel every in-flight pass and delivery."""
        self.state = ObserverState.IDLE
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._pass = None
        self._dirty = False

    @property
    def busy(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def wait_idle(self) -> None:
        """Wait for the current pass and every delivery it spawned."""
        while self.busy:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # -- Change feed ----------------------------------------------------------

    def _on_change(self, payload: dict) -> None:
        if self.state is not ObserverState.WATCHING:
            return
        if self._pass is not None and not self._pass.done():
            self._dirty = True
            return
        self._pass = self._spawn(self._run_passes())

    async def _run_passes(self) -> None:
        while True:
            self._dirty = False
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error while checking for new messages")
            if not self._dirty or self.state is not ObserverState.WATCHING:
                return

    # -- One pass -------------------------------------------------------------

    async def check_new_conversation(self) -> bool:
        """Reset the tracker when the host swapped in an empty composer."""
        changed, current = await self.surface.refresh()
        if not changed or current is None:
            return False
        logger.debug("Composer element changed, reference updated")
        if (await current.get_text()).strip():
            return False
        logger.info("Detected new conversation, resetting file tracking")
        await self._cancel_deliveries()
        self.tracker.reset()
        return True

    async def _cancel_deliveries(self) -> None:
        """Cancel deliveries spawned for the previous conversation."""
        current = asyncio.current_task()
        stale = [
            task for task in self._tasks
            if task is not current and task is not self._pass and not task.done()
        ]
        for task in stale:
            task.cancel()
        if stale:
            logger.info("Cancelled %d delivery(ies) for the previous conversation", len(stale))
            await asyncio.gather(*stale, return_exceptions=True)

    async def tick(self) -> None:
        await self.check_new_conversation()

        turns = await self.document.conversation_turns()
        if not turns:
            return
        text = turns[-1].ai
        if not text or not text.strip():
            return

        # From here to the spawn below there is no await: the message and
        # its files are claimed before a concurrent pass can look at them.
        if not self.tracker.mark_processed(fingerprint(text)):
            logger.debug("Message already processed, skipping")
            return
        names = extract_references(text)
        if not names:
            return
        logger.info("File requests detected: %s", names)

        claimed, notices = self._claim(names)
        if claimed or notices:
            self._spawn(self._deliver(claimed, notices))

    def _claim(self, names: list[str]) -> tuple[list[tuple[str, str]], list[str]]:
        claimed: list[tuple[str, str]] = []
        notices: list[str] = []
        for name in names:
            path = resolve_path(name, self.universe)
            if path is None:
                logger.info('File "%s" not found in the project', name)
                notices.append(str(NotFound(name)))
                continue
            if not self.tracker.claim(path):
                logger.debug("File %s already delivered or pending, skipping", path)
                continue
            claimed.append((name, path))
        return claimed, notices

    async def _deliver(self, claimed: list[tuple[str, str]], notices: list[str]) -> None:
        inline: list[FileRecord] = []
        oversized: list[FileRecord] = []
        try:
            for name, path in claimed:
                try:
                    record = await self.directory.read_file(path)
                except (CodeLinkError, OSError) as e:
                    logger.error("Error reading file %s: %s", path, e)
                    notices.append(f'Error reading file "{name}": {e}')
                    self.tracker.release(path)
                    continue
                verdict = classify(
                    record.content,
                    self.settings.inline_max_chars,
                    self.settings.inline_max_lines,
                )
                if verdict is Delivery.OVERSIZED:
                    oversized.append(record)
                else:
                    inline.append(record)

            await self.deliverer.deliver_inline_batch(inline, notices)
            await self.deliverer.deliver_oversized_batch(oversized)
        finally:
            for _, path in claimed:
                self.tracker.release(path)
