from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from docnav.server.adapters.remote import REGISTRY_PATH
from docnav.server.search_index import BATCH_SIZE, MAX_RESULTS

GLOBAL_CONFIG = Path.home() / ".docnav_config.json"

DEFAULT_BASE_URL = "http://127.0.0.1:8000"
DEFAULT_INDEX_DELAY_MS = 1000


def init_settings() -> None:
    GLOBAL_CONFIG.parent.mkdir(parents=True, exist_ok=True)


def _read_global_config() -> dict:
    """Return the parsed global config, or an empty dict on error/missing."""
    if not GLOBAL_CONFIG.exists():
        return {}
    try:
        payload = json.loads(GLOBAL_CONFIG.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _update_global_config(updates: dict) -> None:
    """Merge updates into global config file."""
    existing = _read_global_config()
    existing.update(updates)
    GLOBAL_CONFIG.write_text(json.dumps(existing, indent=2), encoding="utf-8")


def _load_int(key: str, default: int, minimum: int) -> int:
    value = _read_global_config().get(key)
    if value is None:
        return default
    try:
        return max(minimum, int(value))
    except (TypeError, ValueError):
        return default


def load_base_url() -> str:
    """Documentation site root. DOCNAV_BASE_URL wins over the config file."""
    env_value = os.getenv("DOCNAV_BASE_URL")
    if env_value:
        return env_value.rstrip("/")
    value = _read_global_config().get("base_url")
    if isinstance(value, str) and value.strip():
        return value.strip().rstrip("/")
    return DEFAULT_BASE_URL


def save_base_url(url: str) -> None:
    _update_global_config({"base_url": url.strip().rstrip("/")})


def load_registry_path() -> str:
    value = _read_global_config().get("registry_path")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return REGISTRY_PATH


def load_index_batch_size(default: int = BATCH_SIZE) -> int:
    return _load_int("index_batch_size", default, 1)


def load_max_results(default: int = MAX_RESULTS) -> int:
    return _load_int("max_results", default, 1)


def load_index_delay_ms(default: int = DEFAULT_INDEX_DELAY_MS) -> int:
    return _load_int("index_delay_ms", default, 0)


def save_index_delay_ms(ms: int) -> None:
    _update_global_config({"index_delay_ms": max(0, int(ms))})


def load_dialog_geometry(dialog_name: str) -> Optional[str]:
    """Load the saved dialog geometry (base64 encoded QByteArray)."""
    geometry = _read_global_config().get("dialog_geometry", {})
    if not isinstance(geometry, dict):
        return None
    value = geometry.get(dialog_name)
    return value if isinstance(value, str) else None


def save_dialog_geometry(dialog_name: str, geometry: str) -> None:
    """Save the dialog geometry (base64 encoded QByteArray)."""
    existing = _read_global_config().get("dialog_geometry", {})
    if not isinstance(existing, dict):
        existing = {}
    existing[dialog_name] = geometry
    _update_global_config({"dialog_geometry": existing})
