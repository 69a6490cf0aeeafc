from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from .cache import StoreUnavailable
from .compiler import InvalidSectionConfig
from .layout import LayoutSnapshot, Rect, SectionConfig


class SnapshotFormatError(Exception):
    pass


def _snapshot_path(directory: Path, venue_id: str, show_id: str) -> Path:
    for part in (venue_id, show_id):
        if not part or "/" in part or "\\" in part or part in (".", ".."):
            raise SnapshotFormatError(f"unsafe id for a file name: {part!r}")
    return directory / f"{venue_id}__{show_id}.json"


def load_snapshot(path: str | Path) -> LayoutSnapshot:
    p = Path(path)
    if not p.exists():
        raise SnapshotFormatError(f"snapshot file not found: {p}")

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
        return LayoutSnapshot.from_dict(data)
    except (ValueError, KeyError, TypeError) as e:
        raise SnapshotFormatError(f"failed to read snapshot JSON {p}: {e}") from e


def save_snapshot(snapshot: LayoutSnapshot, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    # write-then-rename so a reader never sees half a file
    tmp = p.with_suffix(p.suffix + ".tmp")
    tmp.write_text(json.dumps(snapshot.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    os.replace(tmp, p)


class JsonSnapshotStore:
    """One JSON file per (venue, show), overwritten by each newer compile."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def load(self, venue_id: str, show_id: str) -> Optional[LayoutSnapshot]:
        p = _snapshot_path(self.directory, venue_id, show_id)
        if not p.exists():
            return None
        try:
            return load_snapshot(p)
        except OSError as e:
            raise StoreUnavailable(str(e)) from e

    def save(self, snapshot: LayoutSnapshot) -> None:
        save_snapshot(snapshot, _snapshot_path(self.directory, snapshot.venue_id, snapshot.show_id))


def load_venue_document(path: str | Path, *, default_buffer: float = 40.0) -> tuple[Rect, list[SectionConfig]]:
    """
    Read an authored venue document::

        {"stage": {"x": .., "y": .., "width": .., "height": ..},
         "sections": [{"id": .., "shape": {"shape": "orchestra-curve", ...}, ...}]}
    """
    p = Path(path)
    if not p.exists():
        raise SnapshotFormatError(f"venue file not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except ValueError as e:
        raise SnapshotFormatError(f"failed to read venue JSON {p}: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotFormatError(f"venue file {p} must hold a JSON object")

    try:
        st = data["stage"]
        stage = Rect.from_origin(float(st["x"]), float(st["y"]), float(st["width"]), float(st["height"]))
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotFormatError(f"venue file {p} has no valid stage: {e}") from e

    raw_sections = data.get("sections", [])
    if not isinstance(raw_sections, list):
        raise SnapshotFormatError(f"venue file {p}: sections must be a list")

    sections: list[SectionConfig] = []
    for i, raw in enumerate(raw_sections):
        if not isinstance(raw, dict):
            raise InvalidSectionConfig(None, f"section #{i} must be an object, got {type(raw).__name__}")
        try:
            sections.append(SectionConfig.from_dict(raw, default_buffer=default_buffer))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSectionConfig(raw.get("id"), str(e)) from e
    return stage, sections
