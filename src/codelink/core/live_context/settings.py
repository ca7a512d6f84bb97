"""Tunables for the live-context engine."""
from pydantic import BaseModel


class EngineSettings(BaseModel):
    """Thresholds and pacing used by the engine.

    Durations are in seconds; ``Config.engine_settings()`` converts the
    millisecond values stored in the config file.
    """

    inline_max_chars: int = 10 * 1024
    inline_max_lines: int = 250
    attachment_timeout: float = 1.0
    attachment_poll_interval: float = 0.25
    large_file_delay: float = 0.5
    between_files_delay: float = 1.0
    surface_attempts: int = 10
    surface_retry_interval: float = 0.5
    dropdown_offset: float = 210
    dropdown_max_width: float = 350
