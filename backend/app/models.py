from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LayoutRecord(SQLModel, table=True):
    """The current compiled layout for one (venue, show); replaced on every publish."""

    __table_args__ = (UniqueConstraint("venue_id", "show_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    venue_id: str = Field(index=True)
    show_id: str = Field(index=True)
    version: int

    # LayoutSnapshot.to_dict() as JSON; see seatmap_core/layout.py for shape.
    snapshot_json: str

    updated_at: datetime = Field(default_factory=_utc_now)
