"""
Access-ordered registry of cached file paths.

The registry only tracks recency; it never decides what to evict. Keys
are kept in an OrderedDict so a touch is an O(1) move to the end.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any


class AccessTracker:
    """Ordered set of local paths, least recently touched first.

    All reads and writes happen under ``lock``. Callers that need several
    operations to be atomic (touch then sweep) hold the lock themselves;
    it is reentrant by default.
    """

    def __init__(self, lock: AbstractContextManager[Any] | None = None) -> None:
        """Initialize an empty tracker.

        Args:
            lock: Reentrant mutual-exclusion scope shared with the owning
                loader. A non-reentrant lock deadlocks when the owner holds it
                while calling tracker methods.
        """
        self.lock = lock if lock is not None else threading.RLock()
        self._entries: OrderedDict[Path, None] = OrderedDict()

    def touch(self, path: str | Path) -> None:
        """Insert path, or move it to the most-recently-used end."""
        key = Path(path)
        with self.lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            else:
                self._entries[key] = None

    def remove(self, path: str | Path) -> bool:
        """Forget path. Returns False if it was not tracked."""
        key = Path(path)
        with self.lock:
            if key not in self._entries:
                return False
            del self._entries[key]
            return True

    def oldest_first(self) -> list[Path]:
        """Snapshot of tracked paths in ascending recency order.

        The snapshot is a plain list, so it can be walked again and the
        tracker can be mutated while walking it.
        """
        with self.lock:
            return list(self._entries)

    def newest(self) -> Path | None:
        """Most recently touched path, if any."""
        with self.lock:
            if not self._entries:
                return None
            return next(reversed(self._entries))

    def clear(self) -> None:
        with self.lock:
            self._entries.clear()

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self.lock:
            return Path(path) in self._entries

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)
