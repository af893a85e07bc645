from __future__ import annotations

import re
from typing import Optional

DEFAULT_TEXT_TITLE = "Свободный текст"
MAX_TITLE_LENGTH = 80

# What the paste form leaves when the user skips the title field
_PLACEHOLDER_TITLES = {DEFAULT_TEXT_TITLE.casefold(), "текст", "без названия", "untitled", "text"}

_ATX_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+(.+?)\s*#*\s*$")
_SETEXT_UNDERLINE_RE = re.compile(r"^\s{0,3}(=+|-+)\s*$")
_LIST_MARKER_RE = re.compile(r"^(?:[-*+•>]\s+|\d{1,3}[.)]\s+)+")
_EMPHASIS_RE = re.compile(r"(\*\*|__|\*|`+|~~)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_HAS_WORD_RE = re.compile(r"\w")


def is_generic_title(title: str | None) -> bool:
    if not title or not title.strip():
        return True
    return title.strip().casefold() in _PLACEHOLDER_TITLES


def _strip_markup(line: str) -> str:
    s = _LIST_MARKER_RE.sub("", line.strip())
    s = _LINK_RE.sub(r"\1", s)
    s = _EMPHASIS_RE.sub("", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s.rstrip(":;,.—-–").strip()


def _shorten(title: str) -> str:
    if len(title) <= MAX_TITLE_LENGTH:
        return title
    cut = title[:MAX_TITLE_LENGTH]
    space = cut.rfind(" ")
    if space > MAX_TITLE_LENGTH // 2:
        cut = cut[:space]
    return cut.rstrip(" ,;:—-") + "…"


def extract_title_from_text(text: str | None) -> Optional[str]:
    """First heading of pasted markdown or plain text, else its first line with words in it.

    ATX headings (``# Title``) win over setext ones (``Title`` over ``===``),
    which win over plain lines. Only the top of the text is looked at.
    """
    if not text:
        return None
    lines = [raw for raw in text.splitlines() if raw.strip()][:40]

    for raw in lines:
        m = _ATX_HEADING_RE.match(raw)
        if m and _HAS_WORD_RE.search(m.group(1)):
            return _shorten(_strip_markup(m.group(1)))

    for raw, underline in zip(lines, lines[1:]):
        if _SETEXT_UNDERLINE_RE.match(underline) and not _SETEXT_UNDERLINE_RE.match(raw):
            heading = _strip_markup(raw)
            if _HAS_WORD_RE.search(heading):
                return _shorten(heading)

    for raw in lines:
        if _SETEXT_UNDERLINE_RE.match(raw):
            continue
        cand = _strip_markup(raw)
        if _HAS_WORD_RE.search(cand):
            return _shorten(cand)
    return None


def text_source_title(title: str | None, text: str) -> str:
    """Title for pasted text: the user's title unless it is a placeholder, else one read off the text."""
    if not is_generic_title(title):
        return title.strip()
    return extract_title_from_text(text) or DEFAULT_TEXT_TITLE
