"""Main application coordinator (pure Python, no Qt)"""
from pathlib import Path
from typing import Optional

from codelink.core.config import Config
from codelink.core.hotkey_manager import HotkeyManager
from codelink.core.live_context import LiveContextSession, SessionController
from codelink.core.live_context.host import HostDocument
from codelink.core.project import LocalDirectoryAccessor


class App:
    """Main application coordinator (business logic only, no GUI)"""

    def __init__(self, config: Optional[Config] = None):
        """Initialize application"""
        self.config = config or Config()
        self.hotkey_manager: Optional[HotkeyManager] = None

    def register_hotkey(self, callback):
        """Register global hotkey with callback"""
        combo = self.config.get("hotkey", "Ctrl+Alt+L")
        self.hotkey_manager = HotkeyManager(callback, combo)
        self.hotkey_manager.register()

    def create_controller(self, document: HostDocument) -> SessionController:
        """Controller whose sessions attach to ``document``."""
        settings = self.config.engine_settings()

        def factory(project_root: Optional[str]) -> LiveContextSession:
            root = project_root or self.config.get("project_root")
            if project_root:
                self.config.set("project_root", project_root)
            return LiveContextSession(document, LocalDirectoryAccessor(root), settings)

        return SessionController(factory)

    def default_export_path(self) -> Path:
        return self.config.config_dir / "exports" / "codelink_context.json"
