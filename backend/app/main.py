from __future__ import annotations

import csv
import io
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from seatmap_core.cache import LayoutCache, StoreUnavailable
from seatmap_core.compiler import CapacityMismatch, CompileError, LayoutCompiler, SectionOverlap
from seatmap_core.config import Settings, configure_logging
from seatmap_core.layout import LayoutSnapshot, Seat
from seatmap_core.selection import (
    SelectionCoordinator,
    SelectionError,
    SelectionLimitExceeded,
    SelectionSessions,
    UnknownSeat,
)
from seatmap_core.transform import frame

from .db import SqlSnapshotStore, init_db, make_engine
from .schemas import (
    CompileRequest,
    FrameOut,
    SeatOut,
    SelectionOut,
    SessionOpen,
    ToggleRequest,
    TranslateItem,
    TranslateRequest,
)


logger = logging.getLogger(__name__)


def _seat_out(seat: Seat) -> SeatOut:
    return SeatOut(**seat.to_dict())


def _selection_out(session_id: str, coord: SelectionCoordinator, outcome: Optional[str] = None) -> SelectionOut:
    return SelectionOut(
        session_id=session_id,
        venue_id=coord.venue_id,
        show_id=coord.show_id,
        selected=list(coord.selected()),
        max_selectable=coord.max_selectable,
        outcome=outcome,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    engine = make_engine(settings)
    init_db(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.cache.clear()
        engine.dispose()
        logger.info("layout cache released")

    app = FastAPI(title="Seat Layout API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One cache handle per process, injected into every route below.
    cache = LayoutCache(SqlSnapshotStore(engine))
    app.state.settings = settings
    app.state.cache = cache
    app.state.compiler = LayoutCompiler(cache)
    app.state.sessions = SelectionSessions(
        cache,
        max_selectable=settings.max_selectable,
        min_interval=settings.min_interval,
    )

    _register_routes(app)
    return app


def _cache(request: Request) -> LayoutCache:
    return request.app.state.cache


def _sessions(request: Request) -> SelectionSessions:
    return request.app.state.sessions


def _snapshot_or_404(cache: LayoutCache, venue_id: str, show_id: str) -> LayoutSnapshot:
    try:
        snap = cache.get(venue_id, show_id)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=f"layout store unavailable: {e}") from e
    if snap is None:
        raise HTTPException(status_code=404, detail="layout not found")
    return snap


def _session_or_404(sessions: SelectionSessions, session_id: str) -> SelectionCoordinator:
    coord = sessions.get(session_id)
    if coord is None:
        raise HTTPException(status_code=404, detail="session not found")
    return coord


def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    def health() -> dict:
        return {"ok": True}

    @app.post("/venues/{venue_id}/shows/{show_id}/layout")
    def compile_layout(venue_id: str, show_id: str, payload: CompileRequest, request: Request) -> dict:
        settings: Settings = request.app.state.settings
        sections = [s.to_config(settings.section_buffer) for s in payload.sections]
        try:
            snap = request.app.state.compiler.compile(venue_id, show_id, sections, payload.stage.to_rect())
        except SectionOverlap as e:
            raise HTTPException(
                status_code=409,
                detail={"message": str(e), "overlaps": [list(p) for p in e.pairs]},
            ) from e
        except CapacityMismatch as e:
            raise HTTPException(
                status_code=400,
                detail={"message": str(e), "section_id": e.section_id, "expected": e.expected, "generated": e.generated},
            ) from e
        except CompileError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except StoreUnavailable as e:
            raise HTTPException(status_code=503, detail=f"layout store unavailable: {e}") from e
        return {
            "venue_id": venue_id,
            "show_id": show_id,
            "version": snap.version,
            "sections": len(snap.sections),
            "seats": len(snap.seats),
        }

    @app.get("/venues/{venue_id}/shows/{show_id}/layout")
    def get_layout(venue_id: str, show_id: str, cache: LayoutCache = Depends(_cache)) -> dict:
        snap = _snapshot_or_404(cache, venue_id, show_id)
        return {**snap.to_dict(), "stats": snap.stats()}

    @app.post("/venues/{venue_id}/shows/{show_id}/translate", response_model=list[TranslateItem])
    def translate(
        venue_id: str, show_id: str, payload: TranslateRequest, cache: LayoutCache = Depends(_cache)
    ) -> list[TranslateItem]:
        _snapshot_or_404(cache, venue_id, show_id)
        return [
            TranslateItem(seat_id=sid, seat=_seat_out(seat) if seat is not None else None)
            for sid, seat in cache.translate(venue_id, show_id, payload.seat_ids)
        ]

    @app.get("/venues/{venue_id}/shows/{show_id}/frame", response_model=FrameOut)
    def view_frame(
        venue_id: str,
        show_id: str,
        max_width: float,
        max_height: float,
        padding: float = 0.0,
        cache: LayoutCache = Depends(_cache),
    ) -> FrameOut:
        snap = _snapshot_or_404(cache, venue_id, show_id)
        try:
            return FrameOut(**frame(snap, max_width, max_height, padding).to_dict())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    @app.get("/venues/{venue_id}/shows/{show_id}/seats.csv")
    def export_seats_csv(venue_id: str, show_id: str, cache: LayoutCache = Depends(_cache)) -> Response:
        snap = _snapshot_or_404(cache, venue_id, show_id)
        out = io.StringIO()
        w = csv.writer(out)
        w.writerow(["seat_id", "section_id", "row", "number", "x", "y", "accessible"])
        for s in snap.seats:
            w.writerow([s.seat_id, s.section_id, s.row, s.number, s.x, s.y, int(s.accessible)])
        return Response(
            content=out.getvalue(),
            media_type="text/csv",
            headers={"content-disposition": f'attachment; filename="{venue_id}_{show_id}_v{snap.version}_seats.csv"'},
        )

    @app.post("/sessions", response_model=SelectionOut)
    def open_session(
        payload: SessionOpen,
        cache: LayoutCache = Depends(_cache),
        sessions: SelectionSessions = Depends(_sessions),
    ) -> SelectionOut:
        _snapshot_or_404(cache, payload.venue_id, payload.show_id)
        try:
            coord = sessions.open(payload.session_id, payload.venue_id, payload.show_id)
        except SelectionError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return _selection_out(payload.session_id, coord)

    @app.get("/sessions/{session_id}", response_model=SelectionOut)
    def get_session(session_id: str, sessions: SelectionSessions = Depends(_sessions)) -> SelectionOut:
        return _selection_out(session_id, _session_or_404(sessions, session_id))

    @app.post("/sessions/{session_id}/toggle", response_model=SelectionOut)
    def toggle_seat(
        session_id: str, payload: ToggleRequest, sessions: SelectionSessions = Depends(_sessions)
    ) -> SelectionOut:
        coord = _session_or_404(sessions, session_id)
        try:
            outcome = coord.toggle(payload.seat_id)
        except UnknownSeat as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except SelectionLimitExceeded as e:
            raise HTTPException(status_code=409, detail={"message": str(e), "limit": e.limit}) from e
        return _selection_out(session_id, coord, outcome.value)

    @app.post("/sessions/{session_id}/handoff")
    def handoff(session_id: str, sessions: SelectionSessions = Depends(_sessions)) -> dict:
        coord = _session_or_404(sessions, session_id)
        seat_ids = coord.handoff()
        sessions.close(session_id)
        return {
            "session_id": session_id,
            "venue_id": coord.venue_id,
            "show_id": coord.show_id,
            "seat_ids": list(seat_ids),
        }

    @app.delete("/sessions/{session_id}")
    def close_session(session_id: str, sessions: SelectionSessions = Depends(_sessions)) -> dict:
        if not sessions.close(session_id):
            raise HTTPException(status_code=404, detail="session not found")
        return {"deleted": True}


def _default_app() -> FastAPI:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return create_app(settings)


app = _default_app()
