"""Interfaces the engine consumes from the page it is attached to.

The engine never touches a browser or widget toolkit directly. A host
(``codelink.browser`` for chatgpt.com, in-memory fakes in the tests)
implements these three abstractions:

- ``HostDocument``: the rendered conversation, its change feed and the
  transient UI the engine may show (notifications, the candidate list)
- ``EditableSurface``: the single composer element shared with the user
- ``CandidateListView``: the autocomplete dropdown

Event callbacks are plain synchronous callables invoked on the event loop
thread; the engine schedules its own tasks from them.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from codelink.common.models import ConversationTurn, Rect

EventCallback = Callable[[dict[str, Any]], None]


class HostEvent(str, Enum):
    MUTATION = "mutation"   # any subtree change of the conversation container
    INPUT = "input"         # user typed into the surface
    KEYDOWN = "keydown"     # payload: {"key": str}
    CLICK = "click"         # payload: {"in_dropdown": bool, "on_surface": bool}
    SELECT = "select"       # candidate clicked; payload: {"path": str}


class Subscription:
    """Handle returned by ``HostDocument.subscribe``; cancel is idempotent."""

    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._cancel()


@dataclass(frozen=True)
class Candidate:
    path: str
    name: str
    display_path: str
    icon: str = "📄"


class EditableSurface(ABC):
    """The composer element. Cursor offsets count plain-text characters."""

    @property
    @abstractmethod
    def identity(self) -> str:
        """Stable id of the underlying element; changes when the host swaps it."""

    @abstractmethod
    async def is_rich_text(self) -> bool:
        pass

    @abstractmethod
    async def get_text(self) -> str:
        pass

    @abstractmethod
    async def get_markup(self) -> str:
        pass

    @abstractmethod
    async def set_text(self, text: str) -> None:
        pass

    @abstractmethod
    async def set_markup(self, markup: str) -> None:
        pass

    @abstractmethod
    async def splice_markup(self, start: int, end: int, markup: str) -> int:
        """Replace plain-text range ``[start, end)`` with ``markup``.

        Returns the plain-text offset just after the inserted content.
        """

    @abstractmethod
    async def get_cursor(self) -> int:
        pass

    @abstractmethod
    async def set_cursor(self, offset: int) -> None:
        """Place the caret; ``-1`` means the end of the content."""

    @abstractmethod
    async def focus(self) -> None:
        pass

    @abstractmethod
    async def emit_input(self) -> None:
        """Raise the host framework's state-change notification."""

    @abstractmethod
    async def bounding_box(self) -> Rect:
        pass

    @abstractmethod
    async def paste_file(self, name: str, content: str) -> None:
        """Synthesize a user paste of a text file named ``name``."""


class CandidateListView(ABC):
    @abstractmethod
    async def show(self, position: Rect) -> None:
        pass

    @abstractmethod
    async def render(
        self,
        items: list[Candidate],
        selected: Optional[int],
        empty_message: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    async def hide(self) -> None:
        pass

    @abstractmethod
    async def remove(self) -> None:
        """Delete the view from the page entirely."""


class HostDocument(ABC):
    @abstractmethod
    async def conversation_turns(self) -> list[ConversationTurn]:
        """Rendered user/assistant pairs in render order."""

    @abstractmethod
    def subscribe(self, event: HostEvent, callback: EventCallback) -> Subscription:
        pass

    @abstractmethod
    async def find_surface(self) -> Optional[EditableSurface]:
        pass

    @abstractmethod
    async def attachment_labels(self) -> list[str]:
        """Visible labels of attachment cards near the composer."""

    @abstractmethod
    async def composer_text(self) -> str:
        """Visible text of the area surrounding the composer."""

    @abstractmethod
    async def snapshot(self) -> str:
        """Markup of the conversation container, for before/after comparison."""

    @abstractmethod
    async def notify(self, message: str, duration: float = 5.0) -> None:
        pass

    @abstractmethod
    def candidate_view(self) -> CandidateListView:
        pass

    @abstractmethod
    async def clear_transient(self) -> None:
        """Remove notifications, dropdown and injected styles."""

    async def ready(self) -> bool:
        """Whether the page is one the engine can attach to."""
        return True

    async def listen(self) -> None:
        """Start delivering page events to subscribers."""

    async def detach(self) -> None:
        """Stop observing the page; no host-side listeners remain afterwards."""
