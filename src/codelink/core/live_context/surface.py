"""Adapter over the shared composer surface, plus the two delivery strategies."""
from __future__ import annotations

import asyncio
import html
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from codelink.common.models import FileRecord
from codelink.core.errors import DeliveryUnconfirmed, SurfaceUnavailable
from codelink.core.live_context.formatting import (
    file_header,
    format_file_content,
    marked_file_names,
    strip_markers,
)
from codelink.core.live_context.host import EditableSurface, HostDocument
from codelink.core.live_context.settings import EngineSettings
from codelink.core.live_context.tracker import Channel

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```[\w+\-]*\n?([\s\S]*?)```")
LEADING_SPACES_RE = re.compile(r"^ {2,}")
CODE_BLOCK_STYLE = (
    "font-family:monospace; background:#f5f5f5; padding:8px; "
    "margin:8px 0; border-radius:4px; white-space:pre;"
)


def _encode_prose(text: str) -> str:
    lines = html.escape(text, quote=False).split("\n")
    return "<br>".join(
        LEADING_SPACES_RE.sub(lambda m: "&nbsp;" * len(m.group(0)), line) for line in lines
    )


def encode_markup(text: str) -> str:
    """Plain text -> markup-safe HTML for rich-text surfaces.

    Prose is escaped, newlines become ``<br>`` and leading indentation is kept
    with ``&nbsp;``. Fenced code becomes a monospace block with its content
    escaped and its newlines preserved.
    """
    parts: list[str] = []
    last = 0
    for match in FENCE_RE.finditer(text):
        parts.append(_encode_prose(text[last:match.start()]))
        code = html.escape(match.group(1), quote=False)
        parts.append(f'<div style="{CODE_BLOCK_STYLE}">{code}</div>')
        last = match.end()
    parts.append(_encode_prose(text[last:]))
    return "".join(parts)


class InjectionSurface:
    """Owns the reference to the composer and performs every write to it.

    Writes are read-modify-write sequences; they run one at a time.
    """

    def __init__(self, document: HostDocument, settings: Optional[EngineSettings] = None):
        self._document = document
        self._settings = settings or EngineSettings()
        self._surface: Optional[EditableSurface] = None
        self._write_lock = asyncio.Lock()
        self._probes = (
            self._probe_attachment_cards,
            self._probe_composer_text,
            self._probe_snapshot,
        )

    @property
    def current(self) -> Optional[EditableSurface]:
        return self._surface

    async def refresh(self) -> tuple[bool, Optional[EditableSurface]]:
        """Re-query the host for the surface; report whether it was swapped."""
        previous = self._surface
        surface = await self._document.find_surface()
        self._surface = surface
        before = previous.identity if previous is not None else None
        after = surface.identity if surface is not None else None
        return before != after, surface

    async def acquire(self) -> EditableSurface:
        if self._surface is None:
            self._surface = await self._document.find_surface()
        if self._surface is None:
            raise SurfaceUnavailable("Cannot find the composer surface")
        return self._surface

    async def is_empty(self) -> bool:
        surface = await self.acquire()
        return not (await surface.get_text()).strip()

    # -- Writes ---------------------------------------------------------------

    async def set_content(self, text: str, append: bool = False) -> bool:
        """Replace the composer content, or append to it."""
        async with self._write_lock:
            try:
                surface = await self.acquire()
            except SurfaceUnavailable as e:
                logger.error("%s", e)
                return False
            try:
                await surface.focus()
                if append:
                    marked = marked_file_names(text)
                    if marked:
                        current_text = strip_markers(await surface.get_text())
                        if all(file_header(name) in current_text for name in marked):
                            logger.info("%s already in the composer, skipping", ", ".join(marked))
                            return True

                payload = strip_markers(text)
                if await surface.is_rich_text():
                    markup = encode_markup(payload)
                    if append:
                        markup = strip_markers(await surface.get_markup()) + markup
                    await surface.set_markup(markup)
                else:
                    if append:
                        payload = strip_markers(await surface.get_text()) + payload
                    await surface.set_text(payload)

                await surface.emit_input()
                if append:
                    await surface.set_cursor(-1)
                return True
            except Exception as e:
                logger.error("Error setting composer content: %s", e)
                self._surface = None
                return False

    async def replace_span(self, start: int, end: int, text: str) -> bool:
        """Replace ``[start, end)`` of the plain text and put the caret after it."""
        async with self._write_lock:
            try:
                surface = await self.acquire()
            except SurfaceUnavailable as e:
                logger.error("%s", e)
                return False
            try:
                payload = strip_markers(text)
                if await surface.is_rich_text():
                    caret = await surface.splice_markup(start, end, encode_markup(payload))
                else:
                    current = await surface.get_text()
                    await surface.set_text(current[:start] + payload + current[end:])
                    caret = start + len(payload)
                await surface.emit_input()
                await surface.set_cursor(caret)
                return True
            except Exception as e:
                logger.error("Error replacing composer text: %s", e)
                self._surface = None
                return False

    # -- Attachment -----------------------------------------------------------

    async def attempt_attachment(self, record: FileRecord) -> bool:
        """Paste ``record`` as a file and wait for the host to show it.

        Never raises: anything short of a confirmed attachment is ``False``.
        """
        try:
            surface = await self.acquire()
            if record.name in await self._document.attachment_labels():
                logger.info('File "%s" already appears as an attachment', record.name)
                return True

            before = await self._document.snapshot()
            async with self._write_lock:
                await surface.focus()
                await surface.paste_file(record.name, record.content)
            await self._await_confirmation(record.name, before)
            logger.info('File "%s" attached', record.name)
            return True
        except DeliveryUnconfirmed:
            logger.info('Attachment of "%s" not confirmed, falling back', record.name)
            return False
        except SurfaceUnavailable as e:
            logger.error("%s", e)
            return False
        except Exception as e:
            logger.warning('Attachment of "%s" failed: %s', record.name, e)
            return False

    async def _await_confirmation(self, name: str, before: str) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._settings.attachment_timeout
        while True:
            await asyncio.sleep(self._settings.attachment_poll_interval)
            for probe in self._probes:
                if await probe(name, before):
                    return
            if loop.time() >= deadline:
                raise DeliveryUnconfirmed(name)

    async def _probe_attachment_cards(self, name: str, before: str) -> bool:
        return name in await self._document.attachment_labels()

    async def _probe_composer_text(self, name: str, before: str) -> bool:
        return name in await self._document.composer_text()

    async def _probe_snapshot(self, name: str, before: str) -> bool:
        current = await self._document.snapshot()
        return current != before and name in current


class DeliveryStrategy(ABC):
    """One way of getting a file into the conversation."""

    channel: Channel

    def __init__(self, surface: InjectionSurface):
        self.surface = surface

    @abstractmethod
    async def deliver(self, record: FileRecord) -> bool:
        pass


class AttachmentDelivery(DeliveryStrategy):
    """Capability-checked: succeeds only when the host confirms the upload."""

    channel = Channel.ATTACHMENT

    async def deliver(self, record: FileRecord) -> bool:
        return await self.surface.attempt_attachment(record)


class InlineDelivery(DeliveryStrategy):
    """Always available: appends the formatted file to the composer."""

    channel = Channel.CONTENT

    async def deliver(self, record: FileRecord) -> bool:
        block = format_file_content(record.name, record.extension, record.content)
        return await self.surface.set_content(f"\n{block}\n", append=True)
