"""
Compiled layout cache and seat-id translation.

One writer lock guards publishes; reads go straight at an immutable snapshot
reference, so a reader sees either the old or the new layout and never a mix.
Only geometry lives here: price and availability belong to the booking side,
joined on the same seat ids.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Iterable, Optional, Protocol

from .layout import LayoutSnapshot, Seat


logger = logging.getLogger(__name__)

CacheKey = tuple[str, str]


class StaleSnapshotError(Exception):
    pass


class StoreUnavailable(Exception):
    """Transient failure of a snapshot store; reads are retried on this."""


class SnapshotStore(Protocol):
    def load(self, venue_id: str, show_id: str) -> Optional[LayoutSnapshot]: ...

    def save(self, snapshot: LayoutSnapshot) -> None: ...


class LayoutCache:
    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        *,
        read_attempts: int = 3,
        retry_delay: float = 0.05,
    ):
        if read_attempts < 1:
            raise ValueError("read_attempts must be >= 1")
        self.store = store
        self.read_attempts = read_attempts
        self.retry_delay = retry_delay
        self._entries: dict[CacheKey, LayoutSnapshot] = {}
        self._lock = threading.Lock()

    def _load(self, venue_id: str, show_id: str) -> Optional[LayoutSnapshot]:
        assert self.store is not None
        for attempt in range(1, self.read_attempts + 1):
            try:
                return self.store.load(venue_id, show_id)
            except StoreUnavailable as e:
                if attempt == self.read_attempts:
                    raise
                logger.warning(
                    "snapshot store read failed for %s/%s (attempt %d/%d): %s",
                    venue_id,
                    show_id,
                    attempt,
                    self.read_attempts,
                    e,
                )
                time.sleep(self.retry_delay * attempt)
        return None

    def get(self, venue_id: str, show_id: str) -> Optional[LayoutSnapshot]:
        snap = self._entries.get((venue_id, show_id))
        if snap is not None or self.store is None:
            return snap
        loaded = self._load(venue_id, show_id)
        if loaded is None:
            return None
        with self._lock:
            current = self._entries.get(loaded.key)
            if current is None or current.version < loaded.version:
                self._entries[loaded.key] = loaded
                current = loaded
        return current

    def current_version(self, venue_id: str, show_id: str) -> int:
        snap = self.get(venue_id, show_id)
        return snap.version if snap is not None else 0

    def publish(self, snapshot: LayoutSnapshot) -> None:
        with self._lock:
            current = self._entries.get(snapshot.key)
            if current is not None and snapshot.version <= current.version:
                raise StaleSnapshotError(
                    f"{snapshot.venue_id}/{snapshot.show_id}: version {snapshot.version} "
                    f"is not newer than cached version {current.version}"
                )
            if self.store is not None:
                self.store.save(snapshot)
            # single reference assignment; readers never see a partial entry
            self._entries[snapshot.key] = snapshot
        logger.info("published layout %s/%s v%d", snapshot.venue_id, snapshot.show_id, snapshot.version)

    def evict(self, venue_id: str, show_id: str) -> bool:
        with self._lock:
            removed = self._entries.pop((venue_id, show_id), None)
        if removed is not None:
            logger.info("evicted layout %s/%s", venue_id, show_id)
        return removed is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[CacheKey]:
        with self._lock:
            keys = list(self._entries)
        return sorted(keys)

    def translate(self, venue_id: str, show_id: str, seat_ids: Iterable[str]) -> list[tuple[str, Optional[Seat]]]:
        """
        Resolve seat ids to geometry, one result per id in input order.

        Unknown ids come back as ``None`` so callers can render what they
        recognise and skip the rest.
        """
        ids = list(seat_ids)
        snap = self.get(venue_id, show_id)
        if snap is None:
            logger.warning("no layout cached for %s/%s; %d ids unresolved", venue_id, show_id, len(ids))
            return [(sid, None) for sid in ids]

        results = [(sid, snap.find(sid)) for sid in ids]
        missing = [sid for sid, seat in results if seat is None]
        if missing:
            logger.warning(
                "%d/%d seat ids not in layout %s/%s v%d: %s",
                len(missing),
                len(ids),
                venue_id,
                show_id,
                snap.version,
                ", ".join(missing[:10]),
            )
        return results

    def resolve(self, venue_id: str, show_id: str, seat_id: str) -> Optional[Seat]:
        snap = self.get(venue_id, show_id)
        return snap.find(seat_id) if snap is not None else None
