from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Sequence

from .boundary import compute_boundary, validate_no_overlap
from .geometry import GeometryError, generate_section_seats, mean_radius
from .layout import CompiledSection, LayoutSnapshot, Rect, Seat, SeatPosition, SectionConfig, SectionMetadata

if TYPE_CHECKING:
    from .cache import LayoutCache


logger = logging.getLogger(__name__)

# rows at the front of an accessible section that are entirely accessible
ACCESSIBLE_FRONT_ROWS = 2


class CompileError(Exception):
    pass


class InvalidSectionConfig(CompileError):
    def __init__(self, section_id: Optional[str], reason: str):
        self.section_id = section_id
        self.reason = reason
        where = f"section {section_id!r}" if section_id is not None else "layout"
        super().__init__(f"invalid {where}: {reason}")


class CapacityMismatch(CompileError):
    def __init__(self, section_id: str, expected: int, generated: int):
        self.section_id = section_id
        self.expected = expected
        self.generated = generated
        super().__init__(f"section {section_id!r}: capacity {expected} but {generated} seats")


class SectionOverlap(CompileError):
    def __init__(self, pairs: Sequence[tuple[str, str]]):
        self.pairs = list(pairs)
        desc = ", ".join(f"{a} <-> {b}" for a, b in self.pairs)
        super().__init__(f"overlapping sections: {desc}")


def estimate_row_profile(rows: int, capacity: int, *, section_id: Optional[str] = None) -> list[int]:
    """
    Spread ``capacity`` seats over ``rows`` rows, lighter at the front.

    Every row gets one seat; the rest is split by linear weights ``rows + r``
    using largest-remainder rounding (ties go to later rows), then sorted so
    counts never decrease towards the back. The sum is always ``capacity``.
    """
    if rows < 1:
        raise InvalidSectionConfig(section_id, f"rows must be >= 1, got {rows}")
    if capacity < rows:
        raise InvalidSectionConfig(section_id, f"capacity {capacity} is smaller than row count {rows}")

    extra = capacity - rows
    weights = [rows + r for r in range(rows)]
    total_weight = sum(weights)
    shares = [extra * w / total_weight for w in weights]
    counts = [int(s) for s in shares]
    remainder = extra - sum(counts)
    by_fraction = sorted(range(rows), key=lambda r: (shares[r] - counts[r], r), reverse=True)
    for r in by_fraction[:remainder]:
        counts[r] += 1
    return sorted(1 + c for c in counts)


def _resolve_profile(config: SectionConfig) -> list[int]:
    if config.row_seat_counts is None:
        return estimate_row_profile(config.rows, config.capacity, section_id=config.id)
    counts = list(config.row_seat_counts)
    if len(counts) != config.rows:
        raise InvalidSectionConfig(
            config.id, f"row_seat_counts has {len(counts)} entries but rows is {config.rows}"
        )
    if any(c < 1 for c in counts):
        raise InvalidSectionConfig(config.id, "every row needs at least one seat")
    if sum(counts) != config.capacity:
        raise CapacityMismatch(config.id, config.capacity, sum(counts))
    return counts


def _validate_config(config: SectionConfig) -> None:
    if not config.id or not config.id.strip():
        raise InvalidSectionConfig(None, "section id must be a non-empty string")
    if config.rows < 1:
        raise InvalidSectionConfig(config.id, f"rows must be >= 1, got {config.rows}")
    if config.capacity < 1:
        raise InvalidSectionConfig(config.id, f"capacity must be >= 1, got {config.capacity}")
    if config.buffer < 0:
        raise InvalidSectionConfig(config.id, f"buffer must be >= 0, got {config.buffer}")


def _mark_accessible(config: SectionConfig, positions: list[SeatPosition], counts: list[int]) -> list[bool]:
    if not config.accessible:
        return [False] * len(positions)
    per_row = dict(zip((p.row for p in positions if p.number == 1), counts))
    flags = []
    row_index = -1
    for p in positions:
        if p.number == 1:
            row_index += 1
        flags.append(row_index < ACCESSIBLE_FRONT_ROWS or p.number == 1 or p.number == per_row[p.row])
    return flags


def compile_section(venue_id: str, config: SectionConfig) -> CompiledSection:
    _validate_config(config)
    counts = _resolve_profile(config)
    try:
        positions = generate_section_seats(config, counts)
    except GeometryError as e:
        raise InvalidSectionConfig(config.id, str(e)) from e
    if len(positions) != config.capacity:
        raise CapacityMismatch(config.id, config.capacity, len(positions))

    flags = _mark_accessible(config, positions, counts)
    seats = tuple(
        Seat(
            venue_id=venue_id,
            section_id=config.id,
            row=p.row,
            number=p.number,
            x=p.x,
            y=p.y,
            angle=p.angle,
            accessible=a,
        )
        for p, a in zip(positions, flags)
    )
    boundary = compute_boundary(seats, config.buffer)
    metadata = SectionMetadata(
        total_seats=len(seats),
        rows=config.rows,
        average_seats_per_row=round(len(seats) / config.rows, 2),
        mean_radius=round(mean_radius(config.shape, config.rows), 2),
        accessible_seats=sum(flags),
    )
    return CompiledSection(config=config, seats=seats, boundary=boundary, metadata=metadata)


def compile_layout(
    venue_id: str,
    show_id: str,
    sections: Sequence[SectionConfig],
    stage: Rect,
    *,
    version: int = 1,
    compiled_at: Optional[datetime] = None,
) -> LayoutSnapshot:
    """
    Build a validated snapshot, or raise a CompileError.

    Pure: nothing is cached or published here, so a failure leaves no trace.
    """
    if not sections:
        raise InvalidSectionConfig(None, "a layout needs at least one section")
    if version < 1:
        raise ValueError(f"version must be >= 1, got {version}")

    seen: set[str] = set()
    for s in sections:
        if s.id in seen:
            raise InvalidSectionConfig(s.id, "duplicate section id")
        seen.add(s.id)

    compiled = [compile_section(venue_id, s) for s in sections]

    conflicts = validate_no_overlap([c.boundary for c in compiled])
    if conflicts:
        raise SectionOverlap([(compiled[i].id, compiled[j].id) for i, j in conflicts])

    bounds = stage
    for c in compiled:
        bounds = bounds.union(c.boundary)

    return LayoutSnapshot(
        venue_id=venue_id,
        show_id=show_id,
        sections=tuple(compiled),
        seats=tuple(seat for c in compiled for seat in c.seats),
        stage=stage,
        bounds=bounds,
        version=version,
        compiled_at=compiled_at or datetime.now(timezone.utc),
    )


class LayoutCompiler:
    """
    Compiles layouts and publishes them into a LayoutCache.

    The cache is the only place versions live; compiles for the same key are
    serialized so each one gets the next version number.
    """

    def __init__(self, cache: "LayoutCache"):
        self.cache = cache
        self._lock = threading.Lock()

    def compile(
        self,
        venue_id: str,
        show_id: str,
        sections: Sequence[SectionConfig],
        stage: Rect,
    ) -> LayoutSnapshot:
        with self._lock:
            version = self.cache.current_version(venue_id, show_id) + 1
            try:
                snapshot = compile_layout(venue_id, show_id, sections, stage, version=version)
            except CompileError as e:
                logger.warning("compile failed for %s/%s: %s", venue_id, show_id, e)
                raise
            self.cache.publish(snapshot)
        logger.info(
            "compiled %s/%s v%d: %d sections, %d seats",
            venue_id,
            show_id,
            snapshot.version,
            len(snapshot.sections),
            len(snapshot.seats),
        )
        return snapshot
