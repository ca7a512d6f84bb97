"""codelink.host.main

Local host daemon: the chat browser, the live context engine and the
control API, all on one asyncio loop.

Run:
  python -m codelink.host
  # or: codelink-host
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

import uvicorn

from codelink.browser import ChatBrowser
from codelink.core.app import App
from codelink.core.config import configure_logging
from codelink.core.live_context import SessionController
from codelink.host.api import create_app

logger = logging.getLogger(__name__)


class HostRuntime:
    """Owns the browser, the session controller and the API server."""

    def __init__(self, core_app: App):
        self.core_app = core_app
        config = core_app.config
        self.browser = ChatBrowser(
            config.get("chat_url", "https://chatgpt.com/"),
            config.get("browser_profile_dir"),
            headless=config.headless,
        )
        self.controller: Optional[SessionController] = None
        self.server: Optional[uvicorn.Server] = None
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.started = threading.Event()

    async def serve(self) -> None:
        """Run until the API server exits, then shut everything down."""
        self.loop = asyncio.get_running_loop()
        config = self.core_app.config
        document = await self.browser.start()
        self.controller = self.core_app.create_controller(document)
        api = create_app(self.controller, self.core_app.default_export_path)
        self.server = uvicorn.Server(
            uvicorn.Config(api, host=config.api_host, port=config.api_port, log_level="info")
        )
        self.started.set()
        logger.info("Control API on http://%s:%d", config.api_host, config.api_port)
        try:
            await self.server.serve()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        if self.controller is not None:
            await self.controller.stop()
        await self.browser.close()

    def request_exit(self) -> None:
        """Ask the server to exit; safe to call from another thread."""
        if self.server is not None:
            self.server.should_exit = True


def main() -> None:
    configure_logging()
    runtime = HostRuntime(App())
    asyncio.run(runtime.serve())


if __name__ == "__main__":
    main()
