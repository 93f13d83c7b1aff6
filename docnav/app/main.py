from __future__ import annotations

import argparse
import logging
import os
import sys
import time
import traceback

from PySide6.QtWidgets import QApplication

from docnav.app import config
from docnav.app.ui.main_window import MainWindow
from docnav.server.search_index import SearchIndex

logger = logging.getLogger(__name__)


# ============================================================================
# DEBUG CONFIGURATION - Environment Variables
# ============================================================================
# DOCNAV_DEBUG_SEARCH - Per-batch indexing progress and page fetch details
# DOCNAV_BASE_URL     - Documentation site root (overrides ~/.docnav_config.json)
#
# Example:
#   DOCNAV_DEBUG_SEARCH=1 python -m docnav.app.main --base-url http://localhost:8080
# ============================================================================

def _debug_enabled(var_name: str) -> bool:
    """Check if a debug flag is enabled."""
    return os.getenv(var_name, "0") not in ("0", "false", "False", "", None)


def _configure_logging() -> None:
    level = logging.DEBUG if _debug_enabled("DOCNAV_DEBUG_SEARCH") else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="DocNav documentation browser.")
    parser.add_argument("--base-url", help="Documentation site root (default: configured or DOCNAV_BASE_URL).")
    parser.add_argument("--index-delay", type=int, help="Milliseconds to wait before building the search index.")
    return parser.parse_args(argv)


def build_search_index(base_url: str) -> SearchIndex:
    return SearchIndex(
        base_url,
        registry_path=config.load_registry_path(),
        batch_size=config.load_index_batch_size(),
        max_results=config.load_max_results(),
    )


def main() -> None:
    args = _parse_args(sys.argv[1:])
    _configure_logging()
    config.init_settings()
    start_ts = time.time()

    base_url = (args.base_url or config.load_base_url()).rstrip("/")
    delay_ms = args.index_delay if args.index_delay is not None else config.load_index_delay_ms()
    logger.info("Starting DocNav for %s", base_url)

    qt_app = QApplication(sys.argv)
    window = MainWindow(build_search_index(base_url), index_delay_ms=delay_ms)
    window.show()
    try:
        rc = qt_app.exec()
    except BaseException as exc:
        logger.error("Unhandled exception after %.2fs: %s", time.time() - start_ts, exc)
        traceback.print_exc()
        sys.exit(1)
    logger.info("Qt event loop exited with code %s after %.2fs", rc, time.time() - start_ts)
    sys.exit(rc)


if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
