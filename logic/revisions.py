"""Last-write-wins bookkeeping for text rasters regenerated on every edit."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class RasterRevisionTracker:
    """Hands out revision numbers and drops stale render results.

    Each edit takes a revision with :meth:`next_revision` before rendering.
    When the render finishes it is :meth:`offer`-ed back; results older than
    the newest accepted revision for that key are discarded. Revisions come
    from one counter shared by all keys, so a key that is :meth:`forget`-ten
    and reopened never reuses a number.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._accepted: Dict[Hashable, Tuple[int, str]] = {}

    def next_revision(self, key: Hashable) -> int:
        with self._lock:
            return next(self._counter)

    def offer(self, key: Hashable, revision: int, raster: str) -> bool:
        """Accept ``raster`` unless a newer revision has already landed."""

        with self._lock:
            current = self._accepted.get(key)
            if current is not None and revision < current[0]:
                logger.debug(
                    "Discarding superseded raster",
                    extra={"key": str(key), "revision": revision, "accepted": current[0]},
                )
                return False
            self._accepted[key] = (revision, raster)
            return True

    def latest(self, key: Hashable) -> Optional[str]:
        with self._lock:
            current = self._accepted.get(key)
        return current[1] if current is not None else None

    def latest_revision(self, key: Hashable) -> int:
        with self._lock:
            current = self._accepted.get(key)
        return current[0] if current is not None else 0

    def forget(self, key: Hashable) -> bool:
        """Drop the accepted raster for ``key``, e.g. when its design is closed."""

        with self._lock:
            return self._accepted.pop(key, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._accepted)


__all__ = ["RasterRevisionTracker"]
