from __future__ import annotations

import re

HEADING_LINE = re.compile(r"^#{1,3}\s")
_HEADING_MARKER = re.compile(r"^#+\s+")
_NON_WORD = re.compile(r"[^\w\s-]", re.ASCII)
_SPACES = re.compile(r"\s+")


def heading_text(line: str) -> str:
    """Return the visible text of a markdown heading line."""
    return _HEADING_MARKER.sub("", line).strip()


def heading_slug(text: str) -> str:
    """Return the anchor slug for a heading title.

    Identical headings produce identical slugs; callers must not assume
    uniqueness within a page.
    """
    cleaned = _NON_WORD.sub("", (text or "").lower())
    return _SPACES.sub("-", cleaned)


def markdown_slugify(value: str, separator: str) -> str:
    """Slug hook for the markdown ``toc`` extension so rendered ids match index anchors."""
    return heading_slug(value)
