from __future__ import annotations

import html
import logging
import re
from typing import List, Optional

from PySide6.QtCore import Qt, QByteArray, QSize, QTimer
from PySide6.QtGui import QPainter, QTextDocument
from PySide6.QtWidgets import (
    QDialog,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QStyle,
    QStyledItemDelegate,
    QVBoxLayout,
)

from docnav.app import config
from docnav.app.palette import PaletteController, PaletteState, ResultRow
from docnav.server.models import IndexEntry

logger = logging.getLogger(__name__)

_KEY_NAMES = {
    int(Qt.Key_Down): "ArrowDown",
    int(Qt.Key_Up): "ArrowUp",
    int(Qt.Key_Return): "Enter",
    int(Qt.Key_Enter): "Enter",
    int(Qt.Key_Escape): "Escape",
}


class HTMLDelegate(QStyledItemDelegate):
    """Custom delegate to render HTML in list items."""

    def _document(self, option, index) -> QTextDocument:
        doc = QTextDocument()
        doc.setDefaultFont(option.font)
        doc.setDocumentMargin(2)
        doc.setHtml(index.data(Qt.DisplayRole))
        return doc

    def paint(self, painter: QPainter, option, index):
        painter.save()
        doc = self._document(option, index)
        doc.setTextWidth(option.rect.width())
        if option.state & QStyle.StateFlag.State_Selected:
            painter.fillRect(option.rect, option.palette.highlight())
            doc.setDefaultStyleSheet("body { color: white; }")
            doc.setHtml(index.data(Qt.DisplayRole))
        painter.translate(option.rect.topLeft())
        doc.drawContents(painter)
        painter.restore()

    def sizeHint(self, option, index):
        doc = self._document(option, index)
        doc.setTextWidth(option.rect.width() if option.rect.width() > 0 else 400)
        size = doc.size()
        return QSize(int(size.width()), int(size.height()))


class SearchPaletteDialog(QDialog):
    """Popup view of a PaletteController; every redraw comes from its state."""

    def __init__(self, controller: PaletteController, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Search documentation")
        # Popup windows close themselves on a click outside their surface.
        self.setWindowFlags(Qt.Popup)
        self.controller = controller
        self._rendered_results: Optional[List[IndexEntry]] = None

        self.geometry_save_timer = QTimer(self)
        self.geometry_save_timer.setInterval(500)
        self.geometry_save_timer.setSingleShot(True)
        self.geometry_save_timer.timeout.connect(self._save_geometry)

        self.resize(640, 360)
        layout = QVBoxLayout()

        self.search = QLineEdit()
        self.search.setPlaceholderText("Type to search documentation...")
        self.search.textChanged.connect(self.controller.set_query)
        layout.addWidget(self.search)

        self.list_widget = QListWidget()
        self.list_widget.setItemDelegate(HTMLDelegate(self.list_widget))
        self.list_widget.setMouseTracking(True)
        self.list_widget.setFocusPolicy(Qt.NoFocus)
        self.list_widget.itemEntered.connect(self._on_item_entered)
        self.list_widget.itemClicked.connect(self._on_item_clicked)
        layout.addWidget(self.list_widget, 1)

        self.empty_label = QLabel()
        self.empty_label.setAlignment(Qt.AlignCenter)
        self.empty_label.hide()
        layout.addWidget(self.empty_label)

        footer = QLabel("ESC to close   ↑↓ to navigate   ↵ to select")
        footer.setAlignment(Qt.AlignRight)
        footer.setStyleSheet("color: #888; font-size: 11px;")
        layout.addWidget(footer)

        self.setLayout(layout)
        self._restore_geometry()
        self.controller.set_on_change(self._render)

    # --- Rendering ---

    def _render(self, state: PaletteState) -> None:
        if not state.is_open:
            self.geometry_save_timer.stop()
            self.hide()
            return
        if not self.isVisible():
            self._place_over_parent()
            self.show()
            self.raise_()
            self.activateWindow()
            self.search.setFocus()
        if self.search.text() != state.query:
            self.search.blockSignals(True)
            self.search.setText(state.query)
            self.search.blockSignals(False)
        if state.results is not self._rendered_results:
            self._rebuild_list()
        elif state.results:
            self.list_widget.setCurrentRow(state.selected_index)
            self.list_widget.scrollToItem(self.list_widget.currentItem())

    def _rebuild_list(self) -> None:
        state = self.controller.state
        self._rendered_results = state.results
        self.list_widget.clear()
        for row in self.controller.render_rows():
            item = QListWidgetItem(self._row_html(row))
            self.list_widget.addItem(item)
        if state.results:
            self.list_widget.setCurrentRow(state.selected_index)
        message = self.controller.empty_message()
        self.empty_label.setText(message or "")
        self.empty_label.setVisible(bool(message))

    def _row_html(self, row: ResultRow) -> str:
        marker = "<span style='color:#888;'>#</span>" if row.is_sub_section else "<span style='color:#888;'>&#9643;</span>"
        parts = [f"<div><b>{marker} {html.escape(row.title)}</b>"]
        if row.snippet:
            parts.append(f"<br><span style='font-size:11px; color:#666;'>{self._highlight_search_term(row.snippet)}</span>")
        if row.context:
            parts.append(f"<br><span style='font-size:10px; color:#999;'>{html.escape(row.context.title())}</span>")
        parts.append("</div>")
        return "".join(parts)

    def _highlight_search_term(self, text: str) -> str:
        """Highlight search term in text using HTML."""
        search_term = self.controller.state.query.strip()
        escaped_text = html.escape(text)
        if len(search_term) < 2:
            return escaped_text
        pattern = re.compile(f"({re.escape(html.escape(search_term))})", re.IGNORECASE)
        return pattern.sub(r"<b>\1</b>", escaped_text)

    def _place_over_parent(self) -> None:
        parent = self.parentWidget()
        if parent is None:
            return
        origin = parent.mapToGlobal(parent.rect().topLeft())
        x = origin.x() + (parent.width() - self.width()) // 2
        y = origin.y() + parent.height() // 5
        self.move(x, y)

    # --- Events ---

    def _on_item_entered(self, item: QListWidgetItem) -> None:
        self.controller.hover(self.list_widget.row(item))

    def _on_item_clicked(self, item: QListWidgetItem) -> None:
        self.controller.activate(self.list_widget.row(item))

    def keyPressEvent(self, event):  # type: ignore[override]
        if event.key() == Qt.Key_K and event.modifiers() & Qt.ControlModifier:
            self.controller.handle_shortcut("k", True)
            return
        key_name = _KEY_NAMES.get(int(event.key()))
        if key_name and self.controller.handle_key(key_name):
            event.accept()
            return
        if key_name in ("Enter", "Escape"):
            # Keep QDialog from accepting/rejecting behind the controller's back.
            event.accept()
            return
        super().keyPressEvent(event)

    def reject(self) -> None:
        self.controller.dismiss()
        self.hide()

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.geometry_save_timer.stop()
        self._save_geometry()
        self.controller.dismiss()
        super().closeEvent(event)

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self.geometry_save_timer.start()

    # --- Geometry ---

    def _restore_geometry(self) -> None:
        saved_geometry = config.load_dialog_geometry("search_palette")
        if not saved_geometry:
            return
        try:
            self.restoreGeometry(QByteArray.fromBase64(saved_geometry.encode("ascii")))
        except Exception as exc:
            logger.warning("Failed to restore search palette geometry: %s", exc)

    def _save_geometry(self) -> None:
        try:
            geometry_b64 = self.saveGeometry().toBase64().data().decode("ascii")
            config.save_dialog_geometry("search_palette", geometry_b64)
        except Exception as exc:
            logger.warning("Failed to save search palette geometry: %s", exc)
