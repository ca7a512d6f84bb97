"""Engine session lifecycle and the controller that owns at most one session."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from codelink.common.models import EngineStatus, FileRecord, ProjectInfo, ProjectNode
from codelink.core.errors import CodeLinkError, SurfaceUnavailable, UserCancelled
from codelink.core.live_context.autocomplete import AutocompleteController
from codelink.core.live_context.delivery import FileDeliverer
from codelink.core.live_context.formatting import generate_initial_context
from codelink.core.live_context.host import EditableSurface, HostDocument
from codelink.core.live_context.observer import ConversationObserver
from codelink.core.live_context.resolver import FileUniverse
from codelink.core.live_context.settings import EngineSettings
from codelink.core.live_context.surface import InjectionSurface
from codelink.core.live_context.tracker import DeliveryTracker
from codelink.core.project.directory import DirectoryAccessor

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    STOPPED = "stopped"


class LiveContextSession:
    """One attachment of the engine to one page and one project.

    Sessions are single-use: once stopped, build a new one.
    """

    def __init__(
        self,
        document: HostDocument,
        directory: DirectoryAccessor,
        settings: Optional[EngineSettings] = None,
    ):
        self.document = document
        self.directory = directory
        self.settings = settings or EngineSettings()

        self.state = EngineState.UNINITIALIZED
        self.project: Optional[ProjectInfo] = None
        self.structure: list[ProjectNode] = []
        self.universe = FileUniverse(())

        self.tracker = DeliveryTracker()
        self.surface = InjectionSurface(document, self.settings)
        self.deliverer = FileDeliverer(self.surface, document, self.tracker, self.settings)
        self.observer: Optional[ConversationObserver] = None
        self.autocomplete: Optional[AutocompleteController] = None

    @property
    def is_active(self) -> bool:
        return self.state is EngineState.ACTIVE

    async def start(self) -> bool:
        """Load the project, attach to the page and start watching.

        Raises the directory accessor's errors; the session is left stopped.
        """
        if self.state is not EngineState.UNINITIALIZED:
            return False
        self.state = EngineState.INITIALIZING
        try:
            if not await self.document.ready():
                raise SurfaceUnavailable("This feature can only be used on the ChatGPT website.")
            self.project = await self.directory.open_project()
            self.structure = await self.directory.list_tree()
        except BaseException:
            self.state = EngineState.STOPPED
            raise
        self.universe = FileUniverse.from_tree(self.structure)
        logger.info("Project loaded: %s with %d files", self.project.name, len(self.universe))

        surface = await self._wait_for_surface()

        self.observer = ConversationObserver(
            self.document, self.surface, self.tracker, self.directory,
            self.universe, self.deliverer, self.settings,
        )
        self.autocomplete = AutocompleteController(
            self.document, self.surface, self.tracker, self.directory,
            self.universe, self.deliverer, self.settings,
        )
        try:
            await self.document.listen()
        except BaseException:
            self.state = EngineState.STOPPED
            raise
        self.observer.start()
        self.autocomplete.start()
        self.state = EngineState.ACTIVE

        if surface is None:
            logger.error("Could not find the composer; project context not inserted")
        elif not await self.document.conversation_turns():
            if await self.send_project_structure():
                logger.info("Initial project context set up")
        return True

    async def _wait_for_surface(self) -> Optional[EditableSurface]:
        for attempt in range(self.settings.surface_attempts):
            _, surface = await self.surface.refresh()
            if surface is not None:
                return surface
            logger.debug("Composer not found (attempt %d)", attempt + 1)
            await asyncio.sleep(self.settings.surface_retry_interval)
        return None

    async def send_project_structure(self) -> bool:
        """Replace the composer content with the project context message."""
        if not self.is_active or self.project is None:
            return False
        message = generate_initial_context(
            self.project.name, self.structure, self.universe.paths
        )
        return await self.surface.set_content(message, append=False)

    async def stop(self) -> bool:
        if self.state is EngineState.STOPPED:
            return True
        self.state = EngineState.STOPPED
        if self.observer is not None:
            await self.observer.stop()
        if self.autocomplete is not None:
            await self.autocomplete.stop()
        for cleanup in (self.document.detach, self.document.clear_transient):
            try:
                await cleanup()
            except Exception as e:
                logger.warning("Could not clean up the page: %s", e)
        self.tracker.reset()
        logger.info("Live context stopped")
        return True

    async def wait_idle(self) -> None:
        """Wait until no pass or delivery is running."""
        if self.observer is not None:
            await self.observer.wait_idle()
        if self.autocomplete is not None:
            await self.autocomplete.wait_idle()

    async def collect_records(self) -> list[FileRecord]:
        records = []
        for path in self.universe:
            try:
                records.append(await self.directory.read_file(path))
            except (CodeLinkError, OSError) as e:
                logger.warning("Error reading %s for export: %s", path, e)
                name = path.rsplit("/", 1)[-1]
                records.append(FileRecord(name=name, path=path))
        return records

    def status(self) -> EngineStatus:
        return EngineStatus(
            is_initialized=self.is_active,
            state=self.state.value,
            project=self.project.name if self.project else None,
            total_files=len(self.universe),
        )


SessionFactory = Callable[[Optional[str]], LiveContextSession]


class SessionController:
    """Owns at most one live session and exposes the four control operations."""

    def __init__(self, factory: SessionFactory):
        self._factory = factory
        self.session: Optional[LiveContextSession] = None
        self.last_error: Optional[CodeLinkError] = None
        self._lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self.session is not None and self.session.is_active

    async def init(self, project_root: Optional[str] = None) -> bool:
        """Start a session. Never raises; see ``last_error`` on failure.

        Returns False when a session is already active.
        """
        async with self._lock:
            self.last_error = None
            if self.is_initialized:
                logger.info("Live context already initialized")
                return False
            session = self._factory(project_root)
            try:
                await session.start()
            except UserCancelled as e:
                logger.info("Project selection cancelled")
                self.last_error = e
                return False
            except CodeLinkError as e:
                logger.error("Failed to load project: %s", e)
                self.last_error = e
                await session.stop()
                return False
            except Exception as e:
                logger.exception("Failed to initialize live context")
                self.last_error = CodeLinkError(str(e))
                await session.stop()
                return False
            self.session = session
            return True

    async def send_project_structure(self) -> bool:
        if not self.is_initialized:
            return False
        return await self.session.send_project_structure()

    async def stop(self) -> bool:
        async with self._lock:
            if self.session is None:
                return True
            session, self.session = self.session, None
            return await session.stop()

    def check_status(self) -> EngineStatus:
        if self.session is None:
            return EngineStatus(is_initialized=False, state=EngineState.UNINITIALIZED.value)
        return self.session.status()

    async def export(self, destination: Path | str) -> Path:
        """Write every project file of the active session to a context export."""
        if not self.is_initialized:
            raise CodeLinkError("Live context is not initialized")
        records = await self.session.collect_records()
        return await self.session.directory.export_context(records, destination)
