"""Playwright host: the engine's page interfaces backed by a real chat tab."""
from codelink.browser.launcher import ChatBrowser, is_chat_url
from codelink.browser.page import ChatComposerSurface, ChatPageDocument, PageCandidateView

__all__ = [
    "ChatBrowser",
    "ChatComposerSurface",
    "ChatPageDocument",
    "PageCandidateView",
    "is_chat_url",
]
