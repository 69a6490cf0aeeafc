from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from seatmap_core.layout import (
    AmphitheaterCurve,
    BalconyCurve,
    CurveShape,
    OrchestraCurve,
    Rect,
    SectionConfig,
)


class _CurveBase(BaseModel):
    center_x: float
    center_y: float
    start_angle: float
    end_angle: float
    inner_radius: float = Field(ge=0)
    outer_radius: float = Field(gt=0)
    row_depth: float = Field(gt=0)

    @model_validator(mode="after")
    def _check_curve(self):
        if self.start_angle == self.end_angle:
            raise ValueError("start_angle and end_angle must differ")
        if self.outer_radius <= self.inner_radius:
            raise ValueError("outer_radius must be greater than inner_radius")
        return self


class OrchestraShape(_CurveBase):
    shape: Literal["orchestra-curve"]

    def to_curve(self) -> CurveShape:
        return OrchestraCurve(**self.model_dump(exclude={"shape"}))


class BalconyShape(_CurveBase):
    shape: Literal["balcony-curve"]
    clearance: float = Field(ge=1.0, default=1.25)

    def to_curve(self) -> CurveShape:
        return BalconyCurve(**self.model_dump(exclude={"shape"}))


class AmphitheaterShape(_CurveBase):
    shape: Literal["amphitheater-curve"]
    growth: float = Field(ge=0.0, default=0.2)

    def to_curve(self) -> CurveShape:
        return AmphitheaterCurve(**self.model_dump(exclude={"shape"}))


ShapeSpec = Annotated[Union[OrchestraShape, BalconyShape, AmphitheaterShape], Field(discriminator="shape")]


class SectionIn(BaseModel):
    id: str = Field(min_length=1)
    name: Optional[str] = None
    shape: ShapeSpec
    rows: int = Field(ge=1)
    capacity: int = Field(ge=1)
    # Explicit per-row seat counts; estimated from capacity when omitted.
    row_seat_counts: Optional[list[int]] = None
    buffer: Optional[float] = Field(default=None, ge=0)
    color: str = "standard"
    accessible: bool = False

    @field_validator("id")
    @classmethod
    def _no_blank_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("id must not be blank")
        return v

    def to_config(self, default_buffer: float) -> SectionConfig:
        return SectionConfig(
            id=self.id,
            name=self.name or self.id,
            shape=self.shape.to_curve(),
            rows=self.rows,
            capacity=self.capacity,
            row_seat_counts=tuple(self.row_seat_counts) if self.row_seat_counts is not None else None,
            buffer=self.buffer if self.buffer is not None else default_buffer,
            color=self.color,
            accessible=self.accessible,
        )


class StageIn(BaseModel):
    x: float
    y: float
    width: float = Field(gt=0)
    height: float = Field(gt=0)

    def to_rect(self) -> Rect:
        return Rect.from_origin(self.x, self.y, self.width, self.height)


class CompileRequest(BaseModel):
    stage: StageIn
    sections: list[SectionIn] = Field(min_length=1)


class TranslateRequest(BaseModel):
    seat_ids: list[str] = Field(min_length=1)


class SessionOpen(BaseModel):
    session_id: str = Field(min_length=1)
    venue_id: str
    show_id: str


class ToggleRequest(BaseModel):
    seat_id: str


class RectOut(BaseModel):
    min_x: float
    min_y: float
    max_x: float
    max_y: float


class SeatOut(BaseModel):
    seat_id: str
    section_id: str
    row: str
    number: int
    x: float
    y: float
    angle: float
    accessible: bool


class TranslateItem(BaseModel):
    seat_id: str
    seat: Optional[SeatOut] = None


class SelectionOut(BaseModel):
    session_id: str
    venue_id: str
    show_id: str
    selected: list[str]
    max_selectable: int
    outcome: Optional[str] = None


class FramedSeatOut(BaseModel):
    seat_id: str
    nx: float
    ny: float
    px: float
    py: float


class FrameOut(BaseModel):
    bounds: RectOut
    container_width: float
    container_height: float
    scale: float
    stage: RectOut
    seats: list[FramedSeatOut]
