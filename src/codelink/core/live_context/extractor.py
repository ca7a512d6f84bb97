"""File-reference extraction from free-form assistant text.

Three independent heuristics run over the same text and are merged in pass
order, first occurrence wins:

- marker pass: ``@path/to/file.ext``
- markup pass: inline code, emphasis and list items of HTML content
- phrase pass: "show me app.js", "what's in config.yml", or a bare token
  with a known source extension

This is best-effort extraction, not a grammar. Case is preserved, and
``README.md`` and ``readme.md`` are different references.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from bs4 import BeautifulSoup

MARKER = "@"

MARKER_RE = re.compile(r"@([\w\-./]+\.\w+)\b", re.ASCII)
DOTTED_EXTENSION_RE = re.compile(r"\.\w+$", re.ASCII)

PHRASE_EXTENSIONS = (
    "js", "ts", "jsx", "tsx", "html", "css", "json", "md", "py", "java", "c",
    "cpp", "cs", "go", "rb", "php", "swift", "yml", "yaml", "xml", "sh", "bat",
)

REQUEST_PHRASES = (
    r"show\s+(?:me\s+)?",
    r"share\s+(?:the\s+)?",
    r"see\s+(?:the\s+)?",
    r"check\s+(?:the\s+)?",
    r"take\s+a\s+look\s+at\s+(?:the\s+)?",
    r"view\s+(?:the\s+)?",
    r"let'?s?\s+see\s+(?:the\s+)?",
    r"could\s+you\s+(?:please\s+)?(?:share|show)\s+(?:the\s+)?",
    r"I'd\s+like\s+to\s+see\s+(?:the\s+)?",
    r"please\s+(?:share|show)\s+(?:the\s+)?",
    r"what'?s?\s+in\s+(?:the\s+)?",
    r"contents?\s+of\s+(?:the\s+)?",
    r"open\s+(?:the\s+)?",
    r"looking\s+for\s+(?:the\s+)?",
    r"need\s+(?:to\s+see\s+)?(?:the\s+)?",
)

PHRASE_RE = re.compile(
    r"(%s)?([\w\-./]+\.(?:%s))\b" % ("|".join(REQUEST_PHRASES), "|".join(PHRASE_EXTENSIONS)),
    re.IGNORECASE | re.ASCII,
)

MARKUP_TAGS = ("code", "strong", "em", "li")


class ReferenceSource(str, Enum):
    MARKER = "marker"
    MARKUP = "markup"
    PHRASE = "phrase"


@dataclass(frozen=True)
class Reference:
    name: str
    source: ReferenceSource


def _has_whitespace(token: str) -> bool:
    return any(ch.isspace() for ch in token)


def marker_matches(text: str) -> list[Reference]:
    return [Reference(m.group(1), ReferenceSource.MARKER) for m in MARKER_RE.finditer(text)]


def normalize_markup_text(raw: str) -> str | None:
    """Accept ``@name`` or a single token ending in a dotted extension."""
    text = (raw or "").strip()
    if not text:
        return None
    if text.startswith(MARKER):
        name = text[len(MARKER):].strip()
        return name or None
    if DOTTED_EXTENSION_RE.search(text) and not _has_whitespace(text):
        return text
    return None


def markup_matches(text: str) -> list[Reference]:
    # Plain text has no elements to inspect.
    if "<" not in text:
        return []
    soup = BeautifulSoup(text, "html.parser")
    found: list[Reference] = []
    for tag in MARKUP_TAGS:
        for element in soup.find_all(tag):
            name = normalize_markup_text(element.get_text())
            if name:
                found.append(Reference(name, ReferenceSource.MARKUP))
    return found


def phrase_matches(text: str) -> list[Reference]:
    return [Reference(m.group(2), ReferenceSource.PHRASE) for m in PHRASE_RE.finditer(text)]


def find_references(text: str | None) -> list[Reference]:
    """Run all passes and merge them, keeping each name's first occurrence."""
    if not text:
        return []
    merged: list[Reference] = []
    seen: set[str] = set()
    for pass_results in (marker_matches(text), markup_matches(text), phrase_matches(text)):
        for ref in pass_results:
            if not ref.name or _has_whitespace(ref.name) or ref.name in seen:
                continue
            seen.add(ref.name)
            merged.append(ref)
    return merged


def extract_references(text: str | None) -> list[str]:
    """Ordered, unique candidate file names referenced in ``text``."""
    return [ref.name for ref in find_references(text)]
