import asyncio
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import httpx
import pytest
from PySide6.QtWidgets import QApplication

from docnav.app import config
from docnav.app.ui.main_window import MainWindow
from docnav.server.search_index import SearchIndex

BASE_URL = "http://docs.test"

ROUTES = {
    "/navigation/nav.json": {
        "categories": [
            {
                "id": "distributed-systems",
                "title": "Distributed Systems",
                "heading": "Distributed Systems",
                "defaultPage": "raft",
                "dataFile": "/navigation/distributed-systems.json",
            }
        ]
    },
    "/navigation/distributed-systems.json": {
        "sections": [
            {
                "title": "Coordination",
                "children": [{"id": "raft", "title": "Raft", "page": "content/raft.md"}],
            }
        ]
    },
    "/content/raft.md": "# Raft\n\nLeader election.\n\n## Log Replication\n\nEntries flow from the leader.\n",
}


def _handler(request: httpx.Request) -> httpx.Response:
    body = ROUTES.get(request.url.path)
    if body is None:
        return httpx.Response(404)
    if isinstance(body, dict):
        return httpx.Response(200, json=body)
    return httpx.Response(200, text=body)


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


@pytest.fixture
def window(app):
    index = SearchIndex(BASE_URL, transport=httpx.MockTransport(_handler))
    asyncio.run(index.build())
    http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(_handler))
    win = MainWindow(index, index_delay_ms=60_000, http=http)
    win.show()
    yield win
    win.close()


def test_navigate_renders_page_and_records_route(window):
    window.navigate_to_page("raft", "distributed-systems", "log-replication")
    assert window.current_route == "#distributed-systems/raft#log-replication"
    assert window.windowTitle() == "Raft | DocNav"
    assert "Entries flow from the leader." in window.viewer.toPlainText()


def test_unknown_page_keeps_current_view(window):
    window.navigate_to_page("paxos", "distributed-systems")
    assert window.current_route is None
    assert "Page not found" in window.statusBar().currentMessage()


def test_palette_selection_drives_navigation(window):
    controller = window.palette_controller
    controller.open()
    controller.set_query("log replication")
    assert controller.handle_key("Enter")
    assert window.current_route == "#distributed-systems/raft#log-replication"
    assert not controller.is_open


def test_index_ready_opens_default_page(window):
    window._on_index_finished(True)
    assert window.current_route == "#distributed-systems/raft"


def test_close_disposes_index(window):
    window.close()
    assert window.index.search("raft") == []
