"""In-memory implementations of the engine's host and directory interfaces."""
from __future__ import annotations

import html
from collections import defaultdict
from typing import Optional

from bs4 import BeautifulSoup

from codelink.common.models import (
    ConversationTurn,
    FileRecord,
    NodeKind,
    ProjectInfo,
    ProjectNode,
    Rect,
)
from codelink.core.errors import AccessDenied, NotFound
from codelink.core.live_context.host import (
    Candidate,
    CandidateListView,
    EditableSurface,
    HostDocument,
    HostEvent,
    Subscription,
)
from codelink.core.project.directory import DirectoryAccessor, file_extension


def plain_text(markup: str) -> str:
    """Plain text of rich composer markup, the way a browser would measure it."""
    markup = markup.replace("<br>", "\n")
    return BeautifulSoup(markup, "html.parser").get_text().replace("\xa0", " ")


PROJECT_FILES = {
    "src/app.js": "console.log('app');",
    "src/utils/helpers.py": "def helper():\n    return 1",
    "readme.md": "# Demo",
    "main.py": "print('hi')",
    "big.py": "\n".join(f"line_{i} = {i}" for i in range(300)),
}


def tree_from_paths(paths: list[str]) -> list[ProjectNode]:
    """Build a sorted project tree (directories first) from file paths."""
    root: dict = {}
    for path in paths:
        node = root
        for part in path.split("/")[:-1]:
            node = node.setdefault(part, {})
        node[path.split("/")[-1]] = None

    def build(entries: dict, prefix: str) -> list[ProjectNode]:
        dirs, files = [], []
        for name, children in entries.items():
            path = f"{prefix}/{name}" if prefix else name
            if children is None:
                files.append(ProjectNode(
                    name=name, path=path, kind=NodeKind.FILE, extension=file_extension(name)
                ))
            else:
                dirs.append(ProjectNode(
                    name=name, path=path, kind=NodeKind.DIRECTORY,
                    children=tuple(build(children, path)),
                ))
        key = lambda n: (n.name.lower(), n.name)  # noqa: E731
        return sorted(dirs, key=key) + sorted(files, key=key)

    return build(root, "")


class FakeSurface(EditableSurface):
    def __init__(self, identity: str = "1", rich: bool = False, text: str = ""):
        self._identity = identity
        self.rich = rich
        self.value = text
        self.cursor = len(text)
        self.inputs = 0
        self.focused = 0
        self.pastes: list[tuple[str, str]] = []
        self.splices = 0
        self.on_paste = None
        self.box = Rect(left=100, top=500, width=600, height=40)

    @property
    def identity(self) -> str:
        return self._identity

    async def is_rich_text(self) -> bool:
        return self.rich

    async def get_text(self) -> str:
        if not self.rich:
            return self.value
        return plain_text(self.value)

    async def get_markup(self) -> str:
        return self.value

    async def set_text(self, text: str) -> None:
        self.value = text

    async def set_markup(self, markup: str) -> None:
        self.value = markup

    async def splice_markup(self, start: int, end: int, markup: str) -> int:
        text = await self.get_text()
        before, after = (
            html.escape(part, quote=False).replace("\n", "<br>") for part in (text[:start], text[end:])
        )
        self.value = before + markup + after
        self.splices += 1
        return start + len(plain_text(markup))

    async def get_cursor(self) -> int:
        return self.cursor

    async def set_cursor(self, offset: int) -> None:
        self.cursor = len(await self.get_text()) if offset < 0 else offset

    async def focus(self) -> None:
        self.focused += 1

    async def emit_input(self) -> None:
        self.inputs += 1

    async def bounding_box(self) -> Rect:
        return self.box

    async def paste_file(self, name: str, content: str) -> None:
        self.pastes.append((name, content))
        if self.on_paste is not None:
            self.on_paste(name)

    def type(self, text: str) -> None:
        """Simulate the user typing at the caret."""
        self.value = self.value[:self.cursor] + text + self.value[self.cursor:]
        self.cursor += len(text)


class FakeView(CandidateListView):
    def __init__(self):
        self.positions: list[Rect] = []
        self.renders: list[tuple[list[Candidate], Optional[int], Optional[str]]] = []
        self.visible = False
        self.removed = False

    @property
    def last(self):
        return self.renders[-1]

    async def show(self, position: Rect) -> None:
        self.positions.append(position)
        self.visible = True

    async def render(self, items, selected, empty_message=None) -> None:
        self.renders.append((list(items), selected, empty_message))

    async def hide(self) -> None:
        self.visible = False

    async def remove(self) -> None:
        self.visible = False
        self.removed = True


class FakeDocument(HostDocument):
    def __init__(self, surface: Optional[FakeSurface] = None, accept_attachments: bool = False):
        self.surface = surface if surface is not None else FakeSurface()
        self.turns: list[ConversationTurn] = []
        self.attachments: list[str] = []
        self.composer = ""
        self.page = "<main></main>"
        self.notifications: list[str] = []
        self.subscribers: dict[HostEvent, list] = defaultdict(list)
        self.view = FakeView()
        self.cleared = False
        self.is_ready = True
        self.listening = False
        self.turn_reads = 0
        self.accept_attachments = accept_attachments
        self._wire(self.surface)

    def _wire(self, surface: Optional[FakeSurface]) -> None:
        if surface is not None:
            surface.on_paste = self._on_paste

    def _on_paste(self, name: str) -> None:
        if self.accept_attachments:
            self.attachments.append(name)

    def swap_surface(self, surface: Optional[FakeSurface]) -> None:
        self.surface = surface
        self._wire(surface)

    def add_turn(self, ai: Optional[str], user: Optional[str] = "question") -> None:
        self.turns.append(ConversationTurn(user=user, ai=ai))

    def emit(self, event: HostEvent, payload: Optional[dict] = None) -> None:
        for callback in list(self.subscribers[event]):
            callback(payload or {})

    def subscriber_count(self) -> int:
        return sum(len(callbacks) for callbacks in self.subscribers.values())

    async def ready(self) -> bool:
        return self.is_ready

    async def listen(self) -> None:
        self.listening = True

    async def detach(self) -> None:
        self.listening = False

    async def conversation_turns(self) -> list[ConversationTurn]:
        self.turn_reads += 1
        return list(self.turns)

    def subscribe(self, event, callback) -> Subscription:
        self.subscribers[event].append(callback)
        return Subscription(lambda: self.subscribers[event].remove(callback))

    async def find_surface(self):
        return self.surface

    async def attachment_labels(self) -> list[str]:
        return list(self.attachments)

    async def composer_text(self) -> str:
        return self.composer

    async def snapshot(self) -> str:
        return self.page

    async def notify(self, message: str, duration: float = 5.0) -> None:
        self.notifications.append(message)

    def candidate_view(self) -> CandidateListView:
        return self.view

    async def clear_transient(self) -> None:
        self.cleared = True
        self.view.visible = False


class FakeDirectory(DirectoryAccessor):
    def __init__(self, files: dict[str, str], name: str = "demo", open_error: Exception = None):
        self.files = dict(files)
        self.name = name
        self.open_error = open_error
        self.denied: set[str] = set()
        self.reads: list[str] = []

    async def open_project(self) -> ProjectInfo:
        if self.open_error is not None:
            raise self.open_error
        return ProjectInfo(name=self.name, root=f"/projects/{self.name}")

    async def list_tree(self) -> list[ProjectNode]:
        return tree_from_paths(list(self.files))

    async def read_file(self, path: str) -> FileRecord:
        self.reads.append(path)
        if path in self.denied:
            raise AccessDenied(f"Failed to read file: {path}")
        if path not in self.files:
            raise NotFound(path, f"Failed to read file: {path}")
        name = path.rsplit("/", 1)[-1]
        content = self.files[path]
        return FileRecord(
            name=name, path=path, extension=file_extension(name),
            content=content, size=len(content.encode("utf-8")),
        )
