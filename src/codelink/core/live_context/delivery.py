"""Pipeline glue shared by the observer and autocomplete: get records into the composer."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from codelink.common.models import FileRecord
from codelink.core.live_context.formatting import format_file_content
from codelink.core.live_context.host import HostDocument
from codelink.core.live_context.settings import EngineSettings
from codelink.core.live_context.surface import (
    AttachmentDelivery,
    DeliveryStrategy,
    InjectionSurface,
    InlineDelivery,
)
from codelink.core.live_context.tracker import Channel, DeliveryTracker

logger = logging.getLogger(__name__)


class FileDeliverer:
    """Writes inline batches and walks oversized files through the strategies.

    Every record handed in must already be claimed in the tracker; it is
    released once its outcome is known and recorded only on success.
    """

    def __init__(
        self,
        surface: InjectionSurface,
        document: HostDocument,
        tracker: DeliveryTracker,
        settings: Optional[EngineSettings] = None,
    ):
        self.surface = surface
        self.document = document
        self.tracker = tracker
        self.settings = settings or EngineSettings()
        self.strategies: tuple[DeliveryStrategy, ...] = (
            AttachmentDelivery(surface),
            InlineDelivery(surface),
        )

    async def notify(self, message: str, duration: float = 5.0) -> None:
        """Best-effort transient notification."""
        try:
            await self.document.notify(message, duration)
        except Exception as e:
            logger.warning("Could not show notification %r: %s", message, e)

    async def deliver_inline_batch(
        self, records: list[FileRecord], notices: Optional[list[str]] = None
    ) -> bool:
        """Append all small files (and any notices) in one write."""
        notices = notices or []
        if not records:
            for notice in notices:
                await self.notify(notice)
            return True

        blocks = [format_file_content(r.name, r.extension, r.content) for r in records]
        text = "".join(f"\n{block}\n" for block in blocks)
        text += "".join(f"\n{notice}\n" for notice in notices)
        try:
            written = await self.surface.set_content(text, append=True)
            if written:
                for record in records:
                    self.tracker.record(record.path, Channel.CONTENT)
                logger.info("Inserted %d file(s) into the composer", len(records))
            else:
                logger.warning("Failed to insert %d file(s); they can be requested again", len(records))
            return written
        finally:
            for record in records:
                self.tracker.release(record.path)

    async def deliver_oversized(self, record: FileRecord) -> Optional[Channel]:
        """Attachment first, inline fallback. Returns the channel that worked."""
        for strategy in self.strategies:
            if strategy.channel is Channel.CONTENT:
                await self.notify(f"Inserting content of large file: {record.name}", 3.0)
            if await strategy.deliver(record):
                self.tracker.record(record.path, strategy.channel)
                return strategy.channel
        logger.warning("Could not deliver %s by any strategy", record.path)
        await self.notify(f"Failed to insert file: {record.name}", 3.0)
        return None

    async def deliver_oversized_batch(self, records: list[FileRecord]) -> None:
        """One file at a time, paced, with progress notifications."""
        total = len(records)
        if not total:
            return
        await self.notify(f"Processing {total} large file(s). Please wait...", 3.0)
        for index, record in enumerate(records, start=1):
            if total > 1:
                await self.notify(f"Processing file {index} of {total}: {record.name}", 2.0)
            await asyncio.sleep(self.settings.large_file_delay)
            try:
                await self.deliver_oversized(record)
            finally:
                self.tracker.release(record.path)
            if index < total:
                await asyncio.sleep(self.settings.between_files_delay)
        if total > 1:
            await self.notify(f"All {total} large files have been processed", 3.0)
