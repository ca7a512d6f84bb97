"""Session-wide dedup state: processed messages, delivered and pending files.

Every method is synchronous. Callers check and claim within one stretch of
code with no ``await`` in between, which is what keeps two overlapping ticks
from issuing the same request.
"""
from __future__ import annotations

import hashlib
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    CONTENT = "content"
    ATTACHMENT = "attachment"


def fingerprint(text: str) -> str:
    """Stable hash of an assistant message; equal text gives equal fingerprints."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def delivery_key(channel: Channel, file_key: str) -> str:
    return f"{channel.value}:{file_key}"


class DeliveryTracker:
    def __init__(self):
        self.processed: set[str] = set()
        self.delivered: set[str] = set()
        self.pending: set[str] = set()

    # -- Messages -------------------------------------------------------------

    def mark_processed(self, message_fingerprint: str) -> bool:
        """Record a message; False when it was already processed."""
        if message_fingerprint in self.processed:
            return False
        self.processed.add(message_fingerprint)
        return True

    # -- Files ----------------------------------------------------------------

    def is_delivered(self, file_key: str) -> bool:
        return any(delivery_key(channel, file_key) in self.delivered for channel in Channel)

    def delivered_via(self, file_key: str) -> Channel | None:
        for channel in Channel:
            if delivery_key(channel, file_key) in self.delivered:
                return channel
        return None

    def claim(self, file_key: str) -> bool:
        """Mark a file pending unless it is pending or delivered already."""
        if file_key in self.pending or self.is_delivered(file_key):
            return False
        self.pending.add(file_key)
        return True

    def release(self, file_key: str) -> None:
        self.pending.discard(file_key)

    def record(self, file_key: str, channel: Channel) -> bool:
        """Record a successful delivery. The first channel recorded wins."""
        if self.is_delivered(file_key):
            return False
        self.delivered.add(delivery_key(channel, file_key))
        return True

    def reset(self) -> None:
        self.processed.clear()
        self.delivered.clear()
        self.pending.clear()
        logger.info("Live context state reset")
