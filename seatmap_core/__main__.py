from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path

from .cache import LayoutCache, StoreUnavailable
from .compiler import CompileError, LayoutCompiler, SectionOverlap
from .config import Settings, configure_logging
from .geometry import GeometryError
from .storage import JsonSnapshotStore, SnapshotFormatError, load_venue_document
from .transform import frame


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--data-dir", help="Snapshot directory (default: $SEATMAP_DATA_DIR or ./data)")
    p.add_argument("--venue", required=True)
    p.add_argument("--show", required=True)


def _cache(args: argparse.Namespace, settings: Settings) -> LayoutCache:
    data_dir = Path(args.data_dir) if args.data_dir else settings.data_dir
    return LayoutCache(JsonSnapshotStore(data_dir / "snapshots"))


def _require_snapshot(cache: LayoutCache, args: argparse.Namespace):
    snap = cache.get(args.venue, args.show)
    if snap is None:
        raise SnapshotFormatError(f"no compiled layout for {args.venue}/{args.show}; run compile first")
    return snap


def cmd_compile(args: argparse.Namespace, settings: Settings) -> int:
    stage, sections = load_venue_document(args.input, default_buffer=settings.section_buffer)
    cache = _cache(args, settings)
    snap = LayoutCompiler(cache).compile(args.venue, args.show, sections, stage)
    print(f"Compiled {args.venue}/{args.show} v{snap.version}: {len(snap.sections)} sections, {len(snap.seats)} seats")
    return 0


def cmd_show(args: argparse.Namespace, settings: Settings) -> int:
    snap = _require_snapshot(_cache(args, settings), args)
    print(f"{snap.venue_id}/{snap.show_id} v{snap.version} compiled {snap.compiled_at.isoformat()}")
    for s in snap.sections:
        b = s.boundary
        print(
            f"  {s.id:<16} {s.config.shape.tag:<20} rows={s.metadata.rows:<3} seats={s.metadata.total_seats:<5} "
            f"bounds=({b.min_x:g},{b.min_y:g})-({b.max_x:g},{b.max_y:g})"
        )
    stats = snap.stats()
    print(f"  total seats: {stats['total_seats']} (accessible: {stats['accessible_seats']})")
    return 0


def cmd_translate(args: argparse.Namespace, settings: Settings) -> int:
    cache = _cache(args, settings)
    _require_snapshot(cache, args)
    missing = 0
    for seat_id, seat in cache.translate(args.venue, args.show, args.seat_ids):
        if seat is None:
            missing += 1
            print(f"{seat_id}\tunknown")
        else:
            print(f"{seat_id}\t{seat.x:g}\t{seat.y:g}")
    return 1 if missing else 0


def cmd_frame(args: argparse.Namespace, settings: Settings) -> int:
    snap = _require_snapshot(_cache(args, settings), args)
    view = frame(snap, args.max_width, args.max_height, args.padding)
    print(json.dumps(view.to_dict(), indent=2))
    return 0


def cmd_export_csv(args: argparse.Namespace, settings: Settings) -> int:
    snap = _require_snapshot(_cache(args, settings), args)
    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["seat_id", "section_id", "row", "number", "x", "y", "accessible"])
        for seat in snap.seats:
            w.writerow([seat.seat_id, seat.section_id, seat.row, seat.number, seat.x, seat.y, int(seat.accessible)])
    print(f"Exported {len(snap.seats)} seats to {out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="seatmap_core", description="Compile and inspect venue seat layouts.")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_compile = sub.add_parser("compile", help="Compile a venue JSON document into a layout snapshot")
    _add_common_args(p_compile)
    p_compile.add_argument("--input", required=True, help="Venue JSON with stage and sections")
    p_compile.set_defaults(func=cmd_compile)

    p_show = sub.add_parser("show", help="Summarise the current layout snapshot")
    _add_common_args(p_show)
    p_show.set_defaults(func=cmd_show)

    p_translate = sub.add_parser("translate", help="Look up seat ids in the current layout")
    _add_common_args(p_translate)
    p_translate.add_argument("seat_ids", nargs="+")
    p_translate.set_defaults(func=cmd_translate)

    p_frame = sub.add_parser("frame", help="Print the view frame for a viewport as JSON")
    _add_common_args(p_frame)
    p_frame.add_argument("--max-width", type=float, required=True)
    p_frame.add_argument("--max-height", type=float, required=True)
    p_frame.add_argument("--padding", type=float, default=0.0)
    p_frame.set_defaults(func=cmd_frame)

    p_export = sub.add_parser("export-csv", help="Export seat ids and coordinates to a CSV file")
    _add_common_args(p_export)
    p_export.add_argument("--output", required=True)
    p_export.set_defaults(func=cmd_export_csv)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    try:
        return int(args.func(args, settings))
    except SectionOverlap as e:
        print(f"Error: {e}")
        for a, b in e.pairs:
            print(f"  {a} overlaps {b}")
        return 2
    except (CompileError, GeometryError, SnapshotFormatError, StoreUnavailable, ValueError) as e:
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
