"""Configuration and settings storage"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from codelink.core.live_context.settings import EngineSettings

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "on", "yes"}


def default_config_dir() -> Path:
    """Return ``~/.codelink`` (created on demand by ``Config``)."""
    return Path.home() / ".codelink"


class Config:
    """Application configuration manager"""

    def __init__(
        self,
        config_file: str = "codelink_config.json",
        config_dir: Optional[Path] = None,
    ):
        """
        Initialize configuration

        Args:
            config_file: Name of the config file
            config_dir: Directory holding the file (defaults to ~/.codelink)
        """
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file = self.config_dir / config_file
        self._config: Dict[str, Any] = {}
        self.load()

    def load(self):
        """Load configuration from file, filling in missing keys"""
        defaults = self._default_config()
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error("Error loading config %s: %s", self.config_file, e)
                loaded = {}
            self._config = {**defaults, **(loaded if isinstance(loaded, dict) else {})}
        else:
            self._config = defaults
            self.save()

    def save(self):
        """Save configuration to file"""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            logger.error("Error saving config %s: %s", self.config_file, e)

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration"""
        return {
            "hotkey": "Ctrl+Alt+L",
            "chat_url": "https://chatgpt.com/",
            "browser_profile_dir": str(self.config_dir / "browser-profile"),
            "headless": False,
            "api_host": "127.0.0.1",
            "api_port": 17124,
            "project_root": None,
            "inline_max_chars": 10 * 1024,
            "inline_max_lines": 250,
            "attachment_timeout_ms": 1000,
            "attachment_poll_ms": 250,
            "large_file_delay_ms": 500,
            "between_files_delay_ms": 1000,
            "surface_attempts": 10,
            "surface_retry_ms": 500,
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value"""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set a configuration value"""
        self._config[key] = value
        self.save()

    def __getitem__(self, key: str) -> Any:
        """Allow dict-like access"""
        return self._config.get(key)

    def __setitem__(self, key: str, value: Any):
        """Allow dict-like assignment"""
        self.set(key, value)

    # -- Derived settings -----------------------------------------------------

    @property
    def api_host(self) -> str:
        return os.environ.get("CODELINK_HOST") or self.get("api_host", "127.0.0.1")

    @property
    def api_port(self) -> int:
        return int(os.environ.get("CODELINK_PORT") or self.get("api_port", 17124))

    @property
    def headless(self) -> bool:
        raw = os.environ.get("CODELINK_HEADLESS")
        if raw is None:
            return bool(self.get("headless", False))
        return raw.strip().lower() in _TRUTHY

    def engine_settings(self) -> EngineSettings:
        """Build the engine tunables from the stored (millisecond) values."""
        return EngineSettings(
            inline_max_chars=int(self.get("inline_max_chars", 10 * 1024)),
            inline_max_lines=int(self.get("inline_max_lines", 250)),
            attachment_timeout=self.get("attachment_timeout_ms", 1000) / 1000.0,
            attachment_poll_interval=self.get("attachment_poll_ms", 250) / 1000.0,
            large_file_delay=self.get("large_file_delay_ms", 500) / 1000.0,
            between_files_delay=self.get("between_files_delay_ms", 1000) / 1000.0,
            surface_attempts=int(self.get("surface_attempts", 10)),
            surface_retry_interval=self.get("surface_retry_ms", 500) / 1000.0,
        )


def is_debug_enabled() -> bool:
    """Read debug mode from the environment (defaults OFF)."""
    raw = os.environ.get("CODELINK_DEBUG", "0").strip().lower()
    return raw in _TRUTHY


def configure_logging(debug: Optional[bool] = None) -> None:
    """Configure root logging for the entrypoints."""
    if debug is None:
        debug = is_debug_enabled()
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
