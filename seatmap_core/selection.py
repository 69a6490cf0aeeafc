"""
Per-session seat selection.

Each session owns exactly one SelectionCoordinator, and every toggle for that
session goes through its lock. Duplicate taps arriving close together are
debounced per seat, but the lock is what prevents double selections.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .cache import LayoutCache


logger = logging.getLogger(__name__)


class SelectionError(Exception):
    pass


class UnknownSeat(SelectionError):
    def __init__(self, seat_id: str):
        self.seat_id = seat_id
        super().__init__(f"unknown seat: {seat_id}")


class SelectionLimitExceeded(SelectionError):
    def __init__(self, seat_id: str, limit: int):
        self.seat_id = seat_id
        self.limit = limit
        super().__init__(f"cannot select {seat_id}: limit of {limit} seats reached")


class ToggleOutcome(str, enum.Enum):
    added = "added"
    removed = "removed"
    ignored = "ignored"


@dataclass(frozen=True)
class SelectionSet:
    venue_id: str
    show_id: str
    selected: tuple[str, ...]
    last_action_at: dict[str, float]
    max_selectable: int


class SelectionCoordinator:
    def __init__(
        self,
        cache: LayoutCache,
        venue_id: str,
        show_id: str,
        *,
        max_selectable: int,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_selectable < 1:
            raise ValueError("max_selectable must be >= 1")
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.cache = cache
        self.venue_id = venue_id
        self.show_id = show_id
        self.max_selectable = max_selectable
        self.min_interval = min_interval
        self._clock = clock
        self._selected: set[str] = set()
        self._last_action_at: dict[str, float] = {}
        self._lock = threading.Lock()

    def toggle(self, seat_id: str, now: Optional[float] = None) -> ToggleOutcome:
        if now is None:
            now = self._clock()
        if self.cache.resolve(self.venue_id, self.show_id, seat_id) is None:
            raise UnknownSeat(seat_id)

        with self._lock:
            last = self._last_action_at.get(seat_id)
            if last is not None and now - last < self.min_interval:
                logger.debug("debounced toggle of %s", seat_id)
                return ToggleOutcome.ignored

            if seat_id in self._selected:
                self._selected.remove(seat_id)
                outcome = ToggleOutcome.removed
            elif len(self._selected) >= self.max_selectable:
                logger.info("selection limit %d reached, rejected %s", self.max_selectable, seat_id)
                raise SelectionLimitExceeded(seat_id, self.max_selectable)
            else:
                self._selected.add(seat_id)
                outcome = ToggleOutcome.added

            self._last_action_at[seat_id] = now
            return outcome

    def selected(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._selected))

    def snapshot(self) -> SelectionSet:
        with self._lock:
            return SelectionSet(
                venue_id=self.venue_id,
                show_id=self.show_id,
                selected=tuple(sorted(self._selected)),
                last_action_at=dict(self._last_action_at),
                max_selectable=self.max_selectable,
            )

    def handoff(self) -> tuple[str, ...]:
        """Give the selected ids to checkout and start over."""
        with self._lock:
            ids = tuple(sorted(self._selected))
            self._selected.clear()
            self._last_action_at.clear()
        logger.info("handed off %d seats for %s/%s", len(ids), self.venue_id, self.show_id)
        return ids

    def clear(self) -> None:
        with self._lock:
            self._selected.clear()
            self._last_action_at.clear()


class SelectionSessions:
    """Owns the one coordinator each session is allowed to have."""

    def __init__(
        self,
        cache: LayoutCache,
        *,
        max_selectable: int,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cache = cache
        self.max_selectable = max_selectable
        self.min_interval = min_interval
        self._clock = clock
        self._sessions: dict[str, SelectionCoordinator] = {}
        self._lock = threading.Lock()

    def open(self, session_id: str, venue_id: str, show_id: str) -> SelectionCoordinator:
        with self._lock:
            existing = self._sessions.get(session_id)
            if existing is not None:
                if (existing.venue_id, existing.show_id) != (venue_id, show_id):
                    raise SelectionError(
                        f"session {session_id} is already selecting for {existing.venue_id}/{existing.show_id}"
                    )
                return existing
            coord = SelectionCoordinator(
                self.cache,
                venue_id,
                show_id,
                max_selectable=self.max_selectable,
                min_interval=self.min_interval,
                clock=self._clock,
            )
            self._sessions[session_id] = coord
            return coord

    def get(self, session_id: str) -> Optional[SelectionCoordinator]:
        return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)
