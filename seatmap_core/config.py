from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


@dataclass(frozen=True)
class Settings:
    max_selectable: int = 8
    min_interval_ms: int = 300
    section_buffer: float = 40.0
    data_dir: Path = Path("data")
    db_url: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_selectable < 1:
            raise ValueError(f"max_selectable must be >= 1, got {self.max_selectable}")
        if self.min_interval_ms < 0:
            raise ValueError(f"min_interval_ms must be >= 0, got {self.min_interval_ms}")
        if self.section_buffer < 0:
            raise ValueError(f"section_buffer must be >= 0, got {self.section_buffer}")
        if logging.getLevelName(self.log_level.upper()) == f"Level {self.log_level.upper()}":
            raise ValueError(f"unknown log level: {self.log_level}")

    @property
    def min_interval(self) -> float:
        return self.min_interval_ms / 1000.0

    @property
    def database_url(self) -> str:
        return self.db_url or f"sqlite:///{self.data_dir / 'seatmap.db'}"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        try:
            return cls(
                max_selectable=int(env.get("SEATMAP_MAX_SELECTABLE", "8")),
                min_interval_ms=int(env.get("SEATMAP_MIN_INTERVAL_MS", "300")),
                section_buffer=float(env.get("SEATMAP_SECTION_BUFFER", "40")),
                data_dir=Path(env.get("SEATMAP_DATA_DIR", str(Path.cwd() / "data"))),
                db_url=env.get("SEATMAP_DB_URL") or None,
                log_level=env.get("SEATMAP_LOG_LEVEL", "INFO"),
            )
        except ValueError as e:
            raise ValueError(f"invalid seatmap settings: {e}") from e


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
