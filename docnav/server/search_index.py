"""In-memory documentation search index.

The index is fetched and split once per session, then ranked with a cheap
substring/term-overlap score on every keystroke.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Callable, List, Optional, Sequence

import httpx

from .adapters.remote import REGISTRY_PATH, DocsSource, open_client
from .errors import ManifestFetchError, PageFetchError, RegistryFetchError
from .indexer import flatten_manifest, split_sections
from .models import CategoryManifest, CategoryMeta, IndexEntry, PageSource, Registry
from .state import IndexStatus, StateManager

logger = logging.getLogger(__name__)

MAX_RESULTS = 20
BATCH_SIZE = 5

TITLE_PHRASE_SCORE = 100
TITLE_TERMS_SCORE = 50
CONTENT_PHRASE_SCORE = 20
CONTENT_TERM_SCORE = 5


def score_entry(entry: IndexEntry, query_lower: str, terms: Sequence[str]) -> int:
    score = 0
    title = entry.title_lower
    if title:
        if query_lower in title:
            score += TITLE_PHRASE_SCORE
        elif all(term in title for term in terms):
            score += TITLE_TERMS_SCORE
    content = entry.content
    if content:
        if query_lower in content:
            score += CONTENT_PHRASE_SCORE
        else:
            # No per-term cap: a section hitting many terms can outrank a title match.
            score += CONTENT_TERM_SCORE * sum(1 for term in terms if term in content)
    return score


def rank(query: str, entries: Sequence[IndexEntry], max_results: int = MAX_RESULTS) -> List[IndexEntry]:
    """Return up to ``max_results`` entries by descending score, ties in index order."""
    query_lower = (query or "").strip().lower()
    if not query_lower:
        return []
    terms = query_lower.split()
    scored = []
    for entry in entries:
        score = score_entry(entry, query_lower, terms)
        if score > 0:
            scored.append((score, entry))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [entry for _score, entry in scored[:max_results]]


class SearchIndex:
    """Owns one session's registry, page list and flattened search entries.

    ``build()`` runs at most one pass at a time; callers arriving while a pass
    is running wait for it instead of starting another, and a ready index is
    never rebuilt.
    """

    def __init__(
        self,
        base_url: str,
        *,
        registry_path: str = REGISTRY_PATH,
        batch_size: int = BATCH_SIZE,
        max_results: int = MAX_RESULTS,
        registry: Optional[Registry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.registry_path = registry_path
        self.batch_size = max(1, batch_size)
        self.max_results = max_results
        self._transport = transport
        self._registry = registry
        self._pages: List[PageSource] = []
        self._state = StateManager()
        self._build_lock = threading.Lock()
        self._pending: Optional[concurrent.futures.Future] = None

    @property
    def status(self) -> IndexStatus:
        return self._state.status

    @property
    def is_ready(self) -> bool:
        return self._state.status is IndexStatus.READY

    @property
    def entries(self) -> tuple[IndexEntry, ...]:
        return self._state.entries

    @property
    def registry(self) -> Optional[Registry]:
        return self._registry

    def find_page(self, page_id: str, category_id: str) -> Optional[PageSource]:
        for source in self._pages:
            if source.id == page_id and source.category == category_id:
                return source
        return None

    def search(self, query: str) -> List[IndexEntry]:
        if not self.is_ready:
            return []
        return rank(query, self._state.entries, self.max_results)

    def dispose(self) -> None:
        """Drop the index; a build still in flight finishes without publishing."""
        self._state.dispose()
        self._pages = []

    async def build(self) -> None:
        with self._build_lock:
            pending = self._pending
            owner = False
            if pending is None:
                if not self._state.begin_build():
                    return
                pending = concurrent.futures.Future()
                self._pending = pending
                owner = True
        if not owner:
            await asyncio.wrap_future(pending)
            return
        try:
            await self._run_build()
        finally:
            with self._build_lock:
                self._pending = None
            pending.set_result(None)

    def start_background_build(self, on_done: Optional[Callable[[bool], None]] = None) -> threading.Thread:
        """Build on a daemon thread with its own event loop; abandoned if the app exits."""

        def run() -> None:
            try:
                asyncio.run(self.build())
            except Exception:
                logger.exception("Search indexing failed")
            if on_done:
                on_done(self.is_ready)

        thread = threading.Thread(target=run, name="docnav-search-index", daemon=True)
        thread.start()
        return thread

    async def _run_build(self) -> None:
        published = False
        try:
            async with open_client(self.base_url, self._transport) as client:
                entries = await self._collect(DocsSource(client, self.registry_path))
            if entries is not None:
                published = self._state.publish(tuple(entries))
        finally:
            if not published:
                self._state.fail_build()

    async def _collect(self, source: DocsSource) -> Optional[List[IndexEntry]]:
        registry = self._registry
        if registry is None:
            try:
                registry = await source.fetch_registry()
            except RegistryFetchError as exc:
                logger.warning("Search indexing aborted: %s", exc)
                return None
        if not registry.categories:
            logger.warning("Search: no categories found in registry")
            return None
        self._registry = registry

        loaded = await self._load_categories(source, registry.categories)
        pages: List[PageSource] = []
        for category, manifest in loaded:
            pages.extend(flatten_manifest(category.id, manifest))
        self._pages = pages

        entries = await self._index_pages(source, pages)
        logger.info(
            "Search index built: %d items indexed from %d categories", len(entries), len(loaded)
        )
        return entries

    async def _load_categories(
        self, source: DocsSource, categories: Sequence[CategoryMeta]
    ) -> List[tuple[CategoryMeta, CategoryManifest]]:
        async def load(category: CategoryMeta) -> Optional[tuple[CategoryMeta, CategoryManifest]]:
            if not category.data_file:
                return None
            try:
                return category, await source.fetch_manifest(category)
            except ManifestFetchError as exc:
                logger.warning("Search: failed to load data for %s: %s", category.id, exc)
                return None

        results = await asyncio.gather(*(load(category) for category in categories))
        return [result for result in results if result is not None]

    async def _index_pages(self, source: DocsSource, pages: Sequence[PageSource]) -> List[IndexEntry]:
        async def index_page(page: PageSource) -> List[IndexEntry]:
            try:
                markdown = await source.fetch_page(page)
            except PageFetchError as exc:
                logger.warning("Failed to index page %s: %s", page.page, exc)
                return []
            return split_sections(markdown, page)

        entries: List[IndexEntry] = []
        for start in range(0, len(pages), self.batch_size):
            batch = pages[start : start + self.batch_size]
            logger.debug("Indexing pages %d-%d of %d", start + 1, start + len(batch), len(pages))
            for page_entries in await asyncio.gather(*(index_page(page) for page in batch)):
                entries.extend(page_entries)
        return entries
