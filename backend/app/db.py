from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine, select

from seatmap_core.cache import StoreUnavailable
from seatmap_core.config import Settings
from seatmap_core.layout import LayoutSnapshot

from .models import LayoutRecord


def make_engine(settings: Settings):
    if settings.db_url is None:
        # Keep data out of git by default.
        settings.data_dir.mkdir(parents=True, exist_ok=True)
    url = settings.database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


def init_db(engine) -> None:
    SQLModel.metadata.create_all(engine)


class SqlSnapshotStore:
    """Snapshot store backed by the ``layoutrecord`` table, one row per (venue, show)."""

    def __init__(self, engine):
        self.engine = engine

    def load(self, venue_id: str, show_id: str) -> Optional[LayoutSnapshot]:
        try:
            with Session(self.engine) as session:
                rec = session.exec(
                    select(LayoutRecord).where(LayoutRecord.venue_id == venue_id, LayoutRecord.show_id == show_id)
                ).first()
        except OperationalError as e:
            raise StoreUnavailable(str(e)) from e
        if rec is None:
            return None
        return LayoutSnapshot.from_dict(json.loads(rec.snapshot_json))

    def save(self, snapshot: LayoutSnapshot) -> None:
        payload = json.dumps(snapshot.to_dict(), sort_keys=True)
        try:
            with Session(self.engine) as session:
                rec = session.exec(
                    select(LayoutRecord).where(
                        LayoutRecord.venue_id == snapshot.venue_id, LayoutRecord.show_id == snapshot.show_id
                    )
                ).first()
                if rec is None:
                    rec = LayoutRecord(venue_id=snapshot.venue_id, show_id=snapshot.show_id, version=snapshot.version, snapshot_json=payload)
                else:
                    rec.version = snapshot.version
                    rec.snapshot_json = payload
                    rec.updated_at = datetime.now(timezone.utc)
                session.add(rec)
                session.commit()
        except OperationalError as e:
            raise StoreUnavailable(str(e)) from e
