"""Live context engine: watch a chat page and feed it project files on request."""
from codelink.core.live_context.session import EngineState, LiveContextSession, SessionController
from codelink.core.live_context.settings import EngineSettings

__all__ = ["EngineSettings", "EngineState", "LiveContextSession", "SessionController"]
