from __future__ import annotations

from dataclasses import dataclass

from .boundary import compute_boundary
from .layout import LayoutSnapshot, Rect


MIN_CONTAINER_WIDTH = 320.0
MIN_CONTAINER_HEIGHT = 240.0

STAGE_WIDTH_RATIO = 0.6
STAGE_HEIGHT_RATIO = 0.08
STAGE_MARGIN_RATIO = 0.02


@dataclass(frozen=True)
class FramedSeat:
    seat_id: str
    nx: float
    ny: float
    px: float
    py: float


@dataclass(frozen=True)
class ViewFrame:
    bounds: Rect
    container_width: float
    container_height: float
    scale: float
    seats: tuple[FramedSeat, ...]
    stage: Rect

    def normalize(self, x: float, y: float) -> tuple[float, float]:
        return normalize(x, y, self.bounds)

    def to_container(self, nx: float, ny: float) -> tuple[float, float]:
        return to_container(nx, ny, self.container_width, self.container_height)

    def to_dict(self) -> dict:
        return {
            "bounds": self.bounds.to_dict(),
            "container_width": self.container_width,
            "container_height": self.container_height,
            "scale": self.scale,
            "stage": self.stage.to_dict(),
            "seats": [
                {"seat_id": s.seat_id, "nx": s.nx, "ny": s.ny, "px": s.px, "py": s.py} for s in self.seats
            ],
        }


def _clamp01(v: float) -> float:
    return 0.0 if v < 0.0 else 1.0 if v > 1.0 else v


def normalize(x: float, y: float, bounds: Rect) -> tuple[float, float]:
    w = bounds.width or 1.0
    h = bounds.height or 1.0
    return (_clamp01((x - bounds.min_x) / w), _clamp01((y - bounds.min_y) / h))


def to_container(nx: float, ny: float, width: float, height: float) -> tuple[float, float]:
    return (round(nx * width, 2), round(ny * height, 2))


def stage_rect(width: float, height: float) -> Rect:
    """Stage pinned bottom-center of the container, whatever the seat bounds are."""
    sw = width * STAGE_WIDTH_RATIO
    sh = height * STAGE_HEIGHT_RATIO
    x = (width - sw) / 2.0
    y = height - sh - height * STAGE_MARGIN_RATIO
    return Rect.from_origin(round(x, 2), round(y, 2), round(sw, 2), round(sh, 2))


def fit_container(aspect: float, max_width: float, max_height: float) -> tuple[float, float]:
    width = max_width
    height = width / aspect
    if height > max_height:
        height = max_height
        width = height * aspect
    return (round(max(width, MIN_CONTAINER_WIDTH), 2), round(max(height, MIN_CONTAINER_HEIGHT), 2))


def frame(snapshot: LayoutSnapshot, max_width: float, max_height: float, padding: float = 0.0) -> ViewFrame:
    if max_width <= 0 or max_height <= 0:
        raise ValueError(f"viewport must be positive, got {max_width}x{max_height}")
    if padding < 0:
        raise ValueError(f"padding must be >= 0, got {padding}")
    if not snapshot.seats:
        raise ValueError("snapshot has no seats to frame")

    raw = compute_boundary(snapshot.seats, padding)
    # a single row along one axis would otherwise give a zero-size box
    if raw.width == 0:
        raw = Rect(raw.min_x - 0.5, raw.min_y, raw.max_x + 0.5, raw.max_y)
    if raw.height == 0:
        raw = Rect(raw.min_x, raw.min_y - 0.5, raw.max_x, raw.max_y + 0.5)

    width, height = fit_container(raw.width / raw.height, max_width, max_height)
    seats = []
    for seat in snapshot.seats:
        nx, ny = normalize(seat.x, seat.y, raw)
        px, py = to_container(nx, ny, width, height)
        seats.append(FramedSeat(seat.seat_id, round(nx, 6), round(ny, 6), px, py))

    return ViewFrame(
        bounds=raw,
        container_width=width,
        container_height=height,
        scale=round(width / raw.width, 6),
        seats=tuple(seats),
        stage=stage_rect(width, height),
    )
