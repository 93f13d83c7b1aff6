from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from threading import RLock
from typing import Tuple

from .models import IndexEntry


class IndexStatus(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    READY = "ready"


@dataclass
class BuildState:
    status: IndexStatus = IndexStatus.IDLE
    disposed: bool = False
    entries: Tuple[IndexEntry, ...] = ()


class StateManager:
    def __init__(self) -> None:
        self._state = BuildState()
        self._lock = RLock()

    @property
    def status(self) -> IndexStatus:
        with self._lock:
            return self._state.status

    @property
    def disposed(self) -> bool:
        with self._lock:
            return self._state.disposed

    @property
    def entries(self) -> Tuple[IndexEntry, ...]:
        with self._lock:
            return self._state.entries

    def begin_build(self) -> bool:
        """Move IDLE -> BUILDING. Returns False when a build is running, done, or disposed."""
        with self._lock:
            if self._state.disposed or self._state.status is not IndexStatus.IDLE:
                return False
            self._state.status = IndexStatus.BUILDING
            return True

    def publish(self, entries: Tuple[IndexEntry, ...]) -> bool:
        """Store a finished build and move BUILDING -> READY, unless disposed meanwhile."""
        with self._lock:
            if self._state.disposed or self._state.status is not IndexStatus.BUILDING:
                return False
            self._state.entries = entries
            self._state.status = IndexStatus.READY
            return True

    def fail_build(self) -> None:
        with self._lock:
            if self._state.status is IndexStatus.BUILDING:
                self._state.status = IndexStatus.IDLE

    def dispose(self) -> None:
        with self._lock:
            self._state.disposed = True
            self._state.status = IndexStatus.IDLE
            self._state.entries = ()
