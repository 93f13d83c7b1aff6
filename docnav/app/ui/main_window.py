from __future__ import annotations

import logging
import re
from typing import Optional

import httpx
import markdown
from PySide6.QtCore import QEvent, Qt, QTimer, Signal
from PySide6.QtGui import QKeySequence, QShortcut
from PySide6.QtWidgets import QLineEdit, QMainWindow, QTextBrowser, QToolBar

from docnav.app.palette import PaletteController, route_hash
from docnav.server.adapters.remote import page_url
from docnav.server.search_index import SearchIndex

from .heading_utils import markdown_slugify
from .search_palette_dialog import SearchPaletteDialog

logger = logging.getLogger(__name__)

_HEADING_ID = re.compile(r'<h([1-6]) id="([^"]+)">')


def render_markdown(text: str) -> str:
    """Render a page with heading ids matching the search index anchors."""
    body = markdown.markdown(
        text,
        extensions=["fenced_code", "tables", "toc"],
        extension_configs={"toc": {"slugify": markdown_slugify}},
    )
    # QTextBrowser.scrollToAnchor only knows <a name=...> targets.
    return _HEADING_ID.sub(r'<h\1 id="\2"><a name="\2"></a>', body)


class MainWindow(QMainWindow):
    indexFinished = Signal(bool)

    def __init__(
        self,
        index: SearchIndex,
        index_delay_ms: int = 1000,
        http: Optional[httpx.Client] = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("DocNav")
        self.resize(1000, 720)
        self.index = index
        self.http = http or httpx.Client(base_url=index.base_url, timeout=10.0)
        self.current_route: Optional[str] = None

        self.viewer = QTextBrowser()
        self.viewer.setOpenExternalLinks(True)
        self.viewer.setMarkdown("Press **Ctrl+K** to search the documentation.")
        self.setCentralWidget(self.viewer)

        toolbar = QToolBar("Search")
        toolbar.setMovable(False)
        self.search_trigger = QLineEdit()
        self.search_trigger.setPlaceholderText("Search documentation... (Ctrl+K)")
        self.search_trigger.setMaximumWidth(320)
        self.search_trigger.setFocusPolicy(Qt.NoFocus)
        self.search_trigger.installEventFilter(self)
        toolbar.addWidget(self.search_trigger)
        self.addToolBar(toolbar)

        self.palette_controller = PaletteController(self.index.search, self.navigate_to_page)
        self.palette = SearchPaletteDialog(self.palette_controller, self)

        self._search_shortcut = QShortcut(QKeySequence("Ctrl+K"), self)
        self._search_shortcut.activated.connect(lambda: self.palette_controller.handle_shortcut("k", True))

        self.indexFinished.connect(self._on_index_finished)
        self.statusBar().showMessage("Indexing documentation...")
        QTimer.singleShot(max(0, index_delay_ms), self._start_index_build)

    def eventFilter(self, obj, event):  # type: ignore[override]
        # The toolbar field is only an affordance; typing happens in the palette.
        if obj is self.search_trigger and event.type() == QEvent.MouseButtonPress:
            QTimer.singleShot(0, self.palette_controller.open)
            return True
        return super().eventFilter(obj, event)

    def _start_index_build(self) -> None:
        self.index.start_background_build(self.indexFinished.emit)

    def _on_index_finished(self, ready: bool) -> None:
        if not ready:
            self.statusBar().showMessage("Search index unavailable", 5000)
            return
        self.statusBar().showMessage(f"Search index ready: {len(self.index.entries)} entries", 5000)
        if self.current_route is None:
            self._open_default_page()

    def _open_default_page(self) -> None:
        registry = self.index.registry
        if not registry:
            return
        for category in registry.categories:
            if category.default_page and self.index.find_page(category.default_page, category.id):
                self.navigate_to_page(category.default_page, category.id)
                return

    def navigate_to_page(self, page_id: str, category_id: str, anchor: str = "") -> None:
        source = self.index.find_page(page_id, category_id)
        if source is None:
            logger.warning("Unknown page %s in category %s", page_id, category_id)
            self.statusBar().showMessage(f"Page not found: {page_id}", 5000)
            return
        try:
            resp = self.http.get(page_url(source.page))
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to load page %s: %s", source.page, exc)
            self.statusBar().showMessage(f"Failed to load page: {exc}", 5000)
            return
        self.viewer.setHtml(render_markdown(resp.text))
        self.current_route = route_hash(page_id, category_id, anchor)
        self.setWindowTitle(f"{source.title} | DocNav")
        if anchor:
            self.viewer.scrollToAnchor(anchor)
        else:
            self.viewer.verticalScrollBar().setValue(0)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.palette_controller.dismiss()
        self.index.dispose()
        self.http.close()
        super().closeEvent(event)
