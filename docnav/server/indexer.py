from __future__ import annotations

import re
from typing import Iterable, List, Optional

from docnav.app.ui.heading_utils import HEADING_LINE, heading_slug, heading_text

from .models import CategoryManifest, IndexEntry, PageRef, PageSource

# Markdown-style links: [label](target) -> label
MARKDOWN_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\([^)]+\)")
# Emphasis, code and list markers dropped from indexed text
FORMATTING_CHARS = re.compile(r"[`*_\-]")
WHITESPACE = re.compile(r"\s+")


def normalize_content(lines: Iterable[str]) -> str:
    """Flatten raw markdown lines into lowercase searchable text."""
    text = " ".join(lines)
    text = MARKDOWN_LINK_PATTERN.sub(r"\1", text)
    text = FORMATTING_CHARS.sub("", text)
    text = WHITESPACE.sub(" ", text).strip()
    return text.lower()


def flatten_manifest(category_id: str, manifest: CategoryManifest) -> List[PageSource]:
    """Return every leaf page of a category in navigation order."""
    pages: List[PageSource] = []
    for section in manifest.sections:
        _collect_pages(section.children, category_id, section.title, pages)
    return pages


def _collect_pages(
    items: List[PageRef],
    category_id: str,
    section_title: Optional[str],
    pages: List[PageSource],
) -> None:
    for item in items:
        if item.children is not None:
            _collect_pages(item.children, category_id, item.title or section_title, pages)
        elif item.page:
            pages.append(
                PageSource(
                    id=item.id or "",
                    title=item.title or "",
                    category=category_id,
                    section=section_title,
                    page=item.page,
                )
            )


def page_entry(source: PageSource) -> IndexEntry:
    """The whole-page entry that lets a title-only query find the page."""
    return IndexEntry(
        id=source.id,
        title=source.title,
        category=source.category,
        section=source.section,
        page=source.page,
        url=source.id,
        title_lower=source.title.lower(),
        is_header=True,
    )


def split_sections(markdown: str, source: PageSource) -> List[IndexEntry]:
    """Split a markdown page into one entry for the page plus one per H1-H3 section."""
    entries = [page_entry(source)]
    current_heading = source.title
    current_anchor = ""
    current_lines: List[str] = []

    def flush() -> None:
        content = normalize_content(current_lines)
        # A leading heading that merely repeats the page title adds nothing.
        if not content and current_heading == source.title:
            return
        if not content and not current_heading:
            return
        entries.append(
            IndexEntry(
                id=source.id,
                title=current_heading,
                category=source.category,
                section=source.section,
                page=source.page,
                url=source.id,
                anchor=current_anchor,
                content=content,
                title_lower=current_heading.lower(),
                is_sub_section=current_anchor != "",
            )
        )

    for line in markdown.split("\n"):
        if HEADING_LINE.match(line):
            flush()
            current_lines = []
            current_heading = heading_text(line)
            current_anchor = heading_slug(current_heading)
        else:
            current_lines.append(line)
    flush()
    return entries
