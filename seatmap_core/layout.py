from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Literal, Mapping, Optional, Union


ShapeTag = Literal["orchestra-curve", "balcony-curve", "amphitheater-curve"]


@dataclass(frozen=True)
class Rect:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> tuple[float, float]:
        return ((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    def expanded(self, buffer: float) -> "Rect":
        return Rect(self.min_x - buffer, self.min_y - buffer, self.max_x + buffer, self.max_y + buffer)

    def union(self, other: "Rect") -> "Rect":
        return Rect(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def contains_point(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def to_dict(self) -> dict:
        return {"min_x": self.min_x, "min_y": self.min_y, "max_x": self.max_x, "max_y": self.max_y}

    @classmethod
    def from_dict(cls, data: dict) -> "Rect":
        return cls(float(data["min_x"]), float(data["min_y"]), float(data["max_x"]), float(data["max_y"]))

    @classmethod
    def from_origin(cls, x: float, y: float, width: float, height: float) -> "Rect":
        return cls(x, y, x + width, y + height)


@dataclass(frozen=True)
class _Curve(ABC):
    center_x: float
    center_y: float
    start_angle: float  # degrees
    end_angle: float  # degrees
    inner_radius: float
    outer_radius: float
    row_depth: float

    @abstractmethod
    def row_radius(self, row_index: int) -> float:
        """Radius of the zero-based row ``row_index``."""

    def _base_dict(self) -> dict:
        return {
            "center_x": self.center_x,
            "center_y": self.center_y,
            "start_angle": self.start_angle,
            "end_angle": self.end_angle,
            "inner_radius": self.inner_radius,
            "outer_radius": self.outer_radius,
            "row_depth": self.row_depth,
        }


@dataclass(frozen=True)
class OrchestraCurve(_Curve):
    """Main floor: constant per-row radius increment."""

    tag: ShapeTag = field(default="orchestra-curve", init=False)

    def row_radius(self, row_index: int) -> float:
        return self.inner_radius + row_index * self.row_depth

    def to_dict(self) -> dict:
        return {"shape": self.tag, **self._base_dict()}


@dataclass(frozen=True)
class BalconyCurve(_Curve):
    """Upper level: a larger constant increment for sightline clearance."""

    clearance: float = 1.25
    tag: ShapeTag = field(default="balcony-curve", init=False)

    def row_radius(self, row_index: int) -> float:
        return self.inner_radius + row_index * self.row_depth * self.clearance

    def to_dict(self) -> dict:
        return {"shape": self.tag, **self._base_dict(), "clearance": self.clearance}


@dataclass(frozen=True)
class AmphitheaterCurve(_Curve):
    """Wrap-around bowl: the increment itself grows by `growth` every row."""

    growth: float = 0.2
    tag: ShapeTag = field(default="amphitheater-curve", init=False)

    def row_radius(self, row_index: int) -> float:
        # sum of row_depth * (1 + growth * k) for k in [0, row_index)
        steps = row_index + self.growth * row_index * (row_index - 1) / 2.0
        return self.inner_radius + self.row_depth * steps

    def to_dict(self) -> dict:
        return {"shape": self.tag, **self._base_dict(), "growth": self.growth}


CurveShape = Union[OrchestraCurve, BalconyCurve, AmphitheaterCurve]

_SHAPES: dict[str, type] = {
    "orchestra-curve": OrchestraCurve,
    "balcony-curve": BalconyCurve,
    "amphitheater-curve": AmphitheaterCurve,
}


def shape_from_dict(data: dict) -> CurveShape:
    data = dict(data)
    tag = data.pop("shape", None)
    cls = _SHAPES.get(tag)
    if cls is None:
        raise ValueError(f"unknown section shape: {tag!r}")
    return cls(**{k: float(v) for k, v in data.items()})


@dataclass(frozen=True)
class SectionConfig:
    id: str
    name: str
    shape: CurveShape
    rows: int
    capacity: int
    row_seat_counts: Optional[tuple[int, ...]] = None
    buffer: float = 40.0
    color: str = "standard"
    accessible: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "shape": self.shape.to_dict(),
            "rows": self.rows,
            "capacity": self.capacity,
            "row_seat_counts": list(self.row_seat_counts) if self.row_seat_counts is not None else None,
            "buffer": self.buffer,
            "color": self.color,
            "accessible": self.accessible,
        }

    @classmethod
    def from_dict(cls, data: dict, *, default_buffer: float = 40.0) -> "SectionConfig":
        counts = data.get("row_seat_counts")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            shape=shape_from_dict(data["shape"]),
            rows=int(data["rows"]),
            capacity=int(data["capacity"]),
            row_seat_counts=tuple(int(c) for c in counts) if counts is not None else None,
            buffer=float(data.get("buffer", default_buffer)),
            color=str(data.get("color", "standard")),
            accessible=bool(data.get("accessible", False)),
        )


@dataclass(frozen=True)
class SeatPosition:
    row: str
    number: int
    x: float
    y: float
    angle: float


def make_seat_id(section_id: str, row: str, number: int) -> str:
    return f"{section_id}-{row}-{number}"


def parse_seat_id(seat_id: str) -> tuple[str, str, int]:
    """Split ``"<section>-<row>-<number>"``; section ids may contain dashes."""
    parts = seat_id.rsplit("-", 2)
    if len(parts) != 3 or not parts[0] or not parts[1].isalpha() or not parts[2].isdigit():
        raise ValueError(f"malformed seat id: {seat_id!r}")
    return parts[0], parts[1], int(parts[2])


@dataclass(frozen=True)
class Seat:
    venue_id: str
    section_id: str
    row: str
    number: int
    x: float
    y: float
    angle: float
    accessible: bool = False

    @property
    def seat_id(self) -> str:
        return make_seat_id(self.section_id, self.row, self.number)

    @property
    def stable_key(self) -> tuple[str, str, str, int]:
        return (self.venue_id, self.section_id, self.row, self.number)

    def to_dict(self) -> dict:
        return {
            "seat_id": self.seat_id,
            "section_id": self.section_id,
            "row": self.row,
            "number": self.number,
            "x": self.x,
            "y": self.y,
            "angle": self.angle,
            "accessible": self.accessible,
        }


@dataclass(frozen=True)
class SectionMetadata:
    total_seats: int
    rows: int
    average_seats_per_row: float
    mean_radius: float
    accessible_seats: int


@dataclass(frozen=True)
class CompiledSection:
    config: SectionConfig
    seats: tuple[Seat, ...]
    boundary: Rect
    metadata: SectionMetadata

    @property
    def id(self) -> str:
        return self.config.id


@dataclass(frozen=True)
class LayoutSnapshot:
    """One compiled, validated layout for a (venue, show). Never edited in place."""

    venue_id: str
    show_id: str
    sections: tuple[CompiledSection, ...]
    seats: tuple[Seat, ...]
    stage: Rect
    bounds: Rect
    version: int
    compiled_at: datetime
    _index: Mapping[str, Seat] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", MappingProxyType({s.seat_id: s for s in self.seats}))

    @property
    def key(self) -> tuple[str, str]:
        return (self.venue_id, self.show_id)

    def find(self, seat_id: str) -> Optional[Seat]:
        return self._index.get(seat_id)

    def section(self, section_id: str) -> Optional[CompiledSection]:
        for s in self.sections:
            if s.id == section_id:
                return s
        return None

    def stats(self) -> dict:
        return {
            "total_seats": len(self.seats),
            "accessible_seats": sum(1 for s in self.seats if s.accessible),
            "sections": {s.id: s.metadata.total_seats for s in self.sections},
        }

    def to_dict(self) -> dict:
        return {
            "venue_id": self.venue_id,
            "show_id": self.show_id,
            "version": self.version,
            "compiled_at": self.compiled_at.isoformat(),
            "stage": self.stage.to_dict(),
            "bounds": self.bounds.to_dict(),
            "sections": [
                {
                    "config": s.config.to_dict(),
                    "boundary": s.boundary.to_dict(),
                    "metadata": {
                        "total_seats": s.metadata.total_seats,
                        "rows": s.metadata.rows,
                        "average_seats_per_row": s.metadata.average_seats_per_row,
                        "mean_radius": s.metadata.mean_radius,
                        "accessible_seats": s.metadata.accessible_seats,
                    },
                    "seats": [seat.to_dict() for seat in s.seats],
                }
                for s in self.sections
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LayoutSnapshot":
        venue_id = str(data["venue_id"])
        sections: list[CompiledSection] = []
        for raw in data["sections"]:
            config = SectionConfig.from_dict(raw["config"])
            seats = tuple(
                Seat(
                    venue_id=venue_id,
                    section_id=config.id,
                    row=str(s["row"]),
                    number=int(s["number"]),
                    x=float(s["x"]),
                    y=float(s["y"]),
                    angle=float(s["angle"]),
                    accessible=bool(s.get("accessible", False)),
                )
                for s in raw["seats"]
            )
            sections.append(
                CompiledSection(
                    config=config,
                    seats=seats,
                    boundary=Rect.from_dict(raw["boundary"]),
                    metadata=SectionMetadata(**raw["metadata"]),
                )
            )
        return cls(
            venue_id=venue_id,
            show_id=str(data["show_id"]),
            sections=tuple(sections),
            seats=tuple(seat for s in sections for seat in s.seats),
            stage=Rect.from_dict(data["stage"]),
            bounds=Rect.from_dict(data["bounds"]),
            version=int(data["version"]),
            compiled_at=datetime.fromisoformat(data["compiled_at"]),
        )


def is_finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)
