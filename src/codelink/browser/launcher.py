"""Launch the browser that hosts the chat page."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from playwright.async_api import BrowserContext, Playwright, async_playwright

from codelink.browser.page import ChatPageDocument

logger = logging.getLogger(__name__)

CHAT_HOSTS = ("chatgpt.com", "www.chatgpt.com")


def is_chat_url(url: str) -> bool:
    return urlparse(url or "").hostname in CHAT_HOSTS


class ChatBrowser:
    """Chromium with a persistent profile so the chat login survives restarts."""

    def __init__(self, chat_url: str, profile_dir: Path | str, headless: bool = False):
        self.chat_url = chat_url
        self.profile_dir = Path(profile_dir).expanduser()
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self.context: Optional[BrowserContext] = None
        self.document: Optional[ChatPageDocument] = None

    async def start(self) -> ChatPageDocument:
        if self.document is not None:
            return self.document
        self.profile_dir.mkdir(parents=True, exist_ok=True)
        self._playwright = await async_playwright().start()
        try:
            logger.info("Launching chromium with profile %s", self.profile_dir)
            self.context = await self._playwright.chromium.launch_persistent_context(
                user_data_dir=str(self.profile_dir),
                headless=self.headless,
                args=["--disable-blink-features=AutomationControlled"],
                no_viewport=True,
            )
            page = self.context.pages[0] if self.context.pages else await self.context.new_page()
            if not is_chat_url(page.url):
                await page.goto(self.chat_url)
        except Exception as e:
            logger.error("Browser launch failed: %s", e)
            await self.close()
            raise

        self.document = ChatPageDocument(page)
        await self.document.attach()
        return self.document

    async def close(self) -> None:
        if self.context is not None:
            await self.context.close()
            self.context = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        self.document = None
