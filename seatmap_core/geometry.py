from __future__ import annotations

import math
from typing import Sequence

from .layout import (
    AmphitheaterCurve,
    BalconyCurve,
    CurveShape,
    SeatPosition,
    SectionConfig,
    is_finite,
)


COORDINATE_PRECISION = 2
_RADIUS_TOLERANCE = 1e-9


class GeometryError(Exception):
    pass


def _deg_to_rad(d: float) -> float:
    return d * math.pi / 180.0


def _round(v: float) -> float:
    r = round(v, COORDINATE_PRECISION)
    # avoid "-0.0" leaking into ids/exports
    return 0.0 if r == 0 else r


def row_label(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA, 27 -> AB ..."""
    if index < 0:
        raise GeometryError(f"row index must be >= 0, got {index}")
    label = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        label = chr(65 + rem) + label
    return label


def validate_shape(shape: CurveShape) -> None:
    if not is_finite(
        shape.center_x,
        shape.center_y,
        shape.start_angle,
        shape.end_angle,
        shape.inner_radius,
        shape.outer_radius,
        shape.row_depth,
    ):
        raise GeometryError("curve parameters must be finite numbers")
    if shape.start_angle == shape.end_angle:
        raise GeometryError("start_angle and end_angle must differ")
    if shape.inner_radius < 0:
        raise GeometryError("inner_radius must be >= 0")
    if shape.outer_radius <= shape.inner_radius:
        raise GeometryError("outer_radius must be greater than inner_radius")
    if shape.row_depth <= 0:
        raise GeometryError("row_depth must be positive")
    if isinstance(shape, BalconyCurve) and not (math.isfinite(shape.clearance) and shape.clearance >= 1.0):
        raise GeometryError("balcony clearance must be >= 1")
    if isinstance(shape, AmphitheaterCurve) and not (math.isfinite(shape.growth) and shape.growth >= 0.0):
        raise GeometryError("amphitheater growth must be >= 0")


def row_angles(start_angle: float, end_angle: float, seats_in_row: int) -> list[float]:
    if seats_in_row == 1:
        return [(start_angle + end_angle) / 2.0]
    step = (end_angle - start_angle) / (seats_in_row - 1)
    angles = [start_angle + i * step for i in range(seats_in_row)]
    # pin the last seat exactly on the bound
    angles[-1] = end_angle
    return angles


def generate_curved_seats(shape: CurveShape, row_seat_counts: Sequence[int]) -> list[SeatPosition]:
    """
    Place seats row by row along concentric arcs.

    Row ``r`` sits on ``shape.row_radius(r)``; seats are spread evenly across
    ``[start_angle, end_angle]``. Output is rounded to COORDINATE_PRECISION so
    repeated compiles of the same input are identical.
    """
    validate_shape(shape)
    counts = list(row_seat_counts)
    if not counts:
        raise GeometryError("row_seat_counts must contain at least one row")
    for i, c in enumerate(counts):
        if isinstance(c, bool) or not isinstance(c, int) or c < 1:
            raise GeometryError(f"row {row_label(i)} must have at least one seat, got {c!r}")
    last_radius = shape.row_radius(len(counts) - 1)
    if last_radius > shape.outer_radius + _RADIUS_TOLERANCE:
        raise GeometryError(
            f"{len(counts)} rows reach radius {last_radius:g}, beyond outer_radius {shape.outer_radius:g}"
        )

    out: list[SeatPosition] = []
    for r, seats_in_row in enumerate(counts):
        label = row_label(r)
        radius = shape.row_radius(r)
        for i, angle in enumerate(row_angles(shape.start_angle, shape.end_angle, seats_in_row)):
            rad = _deg_to_rad(angle)
            out.append(
                SeatPosition(
                    row=label,
                    number=i + 1,
                    x=_round(shape.center_x + radius * math.cos(rad)),
                    y=_round(shape.center_y + radius * math.sin(rad)),
                    angle=round(angle, 6),
                )
            )
    return out


def generate_section_seats(config: SectionConfig, row_seat_counts: Sequence[int]) -> list[SeatPosition]:
    if config.rows < 1:
        raise GeometryError(f"rows must be >= 1, got {config.rows}")
    if len(row_seat_counts) != config.rows:
        raise GeometryError(
            f"row_seat_counts has {len(row_seat_counts)} entries but section declares {config.rows} rows"
        )
    return generate_curved_seats(config.shape, row_seat_counts)


def mean_radius(shape: CurveShape, rows: int) -> float:
    if rows < 1:
        return shape.inner_radius
    return sum(shape.row_radius(r) for r in range(rows)) / rows
