import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QEvent, Qt
from PySide6.QtGui import QKeyEvent
from PySide6.QtWidgets import QApplication

from docnav.app import config
from docnav.app.palette import PaletteController
from docnav.app.ui.main_window import render_markdown
from docnav.app.ui.search_palette_dialog import SearchPaletteDialog
from docnav.server.models import IndexEntry
from docnav.server.search_index import rank


def _ensure_qapp() -> QApplication:
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


@pytest.fixture(scope="module")
def app() -> QApplication:
    return _ensure_qapp()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "GLOBAL_CONFIG", tmp_path / "docnav_config.json")


def _entry(title: str, content: str = "", anchor: str = "") -> IndexEntry:
    return IndexEntry(
        id="consensus",
        title=title,
        category="distributed-systems",
        section="Coordination",
        page="content/consensus.md",
        url="consensus",
        anchor=anchor,
        content=content,
        title_lower=title.lower(),
        is_header=not anchor,
        is_sub_section=bool(anchor),
    )


ENTRIES = [
    _entry("Consensus"),
    _entry("Raft", "leader election and log replication for consensus", anchor="raft"),
    _entry("Paxos", "proposers acceptors learners reach consensus", anchor="paxos"),
]


def _key(dialog: SearchPaletteDialog, key, modifiers=Qt.NoModifier) -> None:
    dialog.keyPressEvent(QKeyEvent(QEvent.KeyPress, key, modifiers))


def _dialog(navigated: list) -> SearchPaletteDialog:
    controller = PaletteController(
        lambda q: rank(q, ENTRIES),
        lambda page_id, category_id, anchor: navigated.append((page_id, category_id, anchor)),
    )
    return SearchPaletteDialog(controller)


def test_typing_fills_results(app):
    dialog = _dialog([])
    dialog.controller.open()
    dialog.search.setText("consensus")
    assert dialog.list_widget.count() == 3
    assert dialog.list_widget.currentRow() == 0
    assert not dialog.empty_label.isVisibleTo(dialog)


def test_no_results_shows_empty_message(app):
    dialog = _dialog([])
    dialog.controller.open()
    dialog.search.setText("gossip")
    assert dialog.list_widget.count() == 0
    assert dialog.empty_label.text() == "No results found."


def test_arrow_keys_follow_controller_selection(app):
    dialog = _dialog([])
    dialog.controller.open()
    dialog.search.setText("consensus")
    _key(dialog, Qt.Key_Down)
    assert dialog.controller.state.selected_index == 1
    assert dialog.list_widget.currentRow() == 1
    _key(dialog, Qt.Key_Up)
    _key(dialog, Qt.Key_Up)
    assert dialog.list_widget.currentRow() == 2


def test_enter_navigates_and_hides(app):
    navigated = []
    dialog = _dialog(navigated)
    dialog.controller.open()
    dialog.search.setText("raft")
    _key(dialog, Qt.Key_Return)
    assert navigated == [("consensus", "distributed-systems", "raft")]
    assert not dialog.controller.is_open
    assert not dialog.isVisible()


def test_escape_dismisses(app):
    navigated = []
    dialog = _dialog(navigated)
    dialog.controller.open()
    dialog.search.setText("raft")
    _key(dialog, Qt.Key_Escape)
    assert not dialog.controller.is_open
    assert navigated == []


def test_reopen_clears_previous_query(app):
    dialog = _dialog([])
    dialog.controller.open()
    dialog.search.setText("paxos")
    dialog.controller.close()
    dialog.controller.open()
    assert dialog.search.text() == ""
    assert dialog.list_widget.count() == 0


def test_row_html_escapes_and_highlights(app):
    dialog = _dialog([])
    dialog.controller.open()
    dialog.search.setText("leader")
    label = dialog.list_widget.item(0).text()
    assert "Raft" in label
    assert "<b>leader</b>" in label
    assert "Distributed Systems &gt; Coordination" in label


def test_hovering_a_row_selects_it(app):
    navigated = []
    dialog = _dialog(navigated)
    dialog.controller.open()
    dialog.search.setText("consensus")
    dialog.list_widget.itemEntered.emit(dialog.list_widget.item(2))
    assert dialog.controller.state.selected_index == 2
    assert dialog.list_widget.currentRow() == 2
    assert navigated == []
    assert dialog.controller.is_open


def test_clicking_a_row_navigates_to_it(app):
    navigated = []
    dialog = _dialog(navigated)
    dialog.controller.open()
    dialog.search.setText("consensus")
    dialog.list_widget.itemClicked.emit(dialog.list_widget.item(1))
    assert navigated == [("consensus", "distributed-systems", "raft")]
    assert not dialog.controller.is_open
    assert not dialog.isVisible()


def test_render_markdown_adds_scroll_targets():
    html = render_markdown("# Raft Basics\n\nText\n\n## Log Replication\n")
    assert 'id="raft-basics"' in html
    assert '<a name="log-replication"></a>' in html
