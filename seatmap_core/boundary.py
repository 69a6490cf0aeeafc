from __future__ import annotations

from typing import Iterable, Sequence, Union

from shapely.geometry import MultiPoint

from .geometry import GeometryError
from .layout import Rect, Seat, SeatPosition

PointLike = Union[Seat, SeatPosition, tuple[float, float]]


def _xy(p: PointLike) -> tuple[float, float]:
    if isinstance(p, tuple):
        return (float(p[0]), float(p[1]))
    return (p.x, p.y)


def compute_boundary(points: Iterable[PointLike], buffer: float = 0.0) -> Rect:
    """Axis-aligned bounds of ``points`` grown by ``buffer`` on every side."""
    pts = [_xy(p) for p in points]
    if not pts:
        raise GeometryError("cannot compute a boundary without seats")
    if buffer < 0:
        raise GeometryError(f"buffer must be >= 0, got {buffer}")
    min_x, min_y, max_x, max_y = MultiPoint(pts).bounds
    return Rect(min_x, min_y, max_x, max_y).expanded(buffer)


def overlaps(a: Rect, b: Rect) -> bool:
    # Disjoint only when one lies wholly to one side of the other; shared edges don't count.
    return not (a.max_x <= b.min_x or b.max_x <= a.min_x or a.max_y <= b.min_y or b.max_y <= a.min_y)


def validate_no_overlap(rects: Sequence[Rect]) -> list[tuple[int, int]]:
    """
    Return every conflicting index pair ``(i, j)`` with ``i < j``.

    An empty list means the set is valid. Quadratic, which is fine for the few
    dozen sections a venue has.
    """
    conflicts: list[tuple[int, int]] = []
    for i in range(len(rects)):
        for j in range(i + 1, len(rects)):
            if overlaps(rects[i], rects[j]):
                conflicts.append((i, j))
    return conflicts
