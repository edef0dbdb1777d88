"""File-based persistence for downloaded spreadsheets and the last known location."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

from ..config import settings

logger = logging.getLogger(__name__)


class FileStorage:
    """Thin wrapper around the data root for storing JSON and binary files."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.cache_root = self.root / "cache"
        self.cache_root.mkdir(parents=True, exist_ok=True)

    def read_json(self, path: Path) -> Any:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)

    def write_bytes(self, path: Path, payload: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as handle:
            handle.write(payload)


class SpreadsheetCache:
    """Per-region ``<region>.xlsx`` files with a ``.metadata`` timestamp sidecar."""

    def __init__(self, storage: FileStorage | None = None, max_age: timedelta | None = None) -> None:
        self.storage = storage or FileStorage()
        self.directory = self.storage.cache_root / "spreadsheets"
        self.directory.mkdir(parents=True, exist_ok=True)
        self.max_age = max_age if max_age is not None else timedelta(hours=settings.spreadsheet_cache_max_age_hours)

    def file_path(self, region: str) -> Path:
        return self.directory / f"{region}.xlsx"

    def metadata_path(self, region: str) -> Path:
        return self.directory / f"{region}.xlsx.metadata"

    def save(self, region: str, payload: bytes, *, now: datetime | None = None) -> Path:
        path = self.file_path(region)
        self.storage.write_bytes(path, payload)
        timestamp = (now or datetime.now(timezone.utc)).timestamp()
        self.storage.write_json(self.metadata_path(region), {"lastUpdate": timestamp})
        logger.info(f"Cached {len(payload)} bytes for {region}")
        return path

    def last_update(self, region: str) -> Optional[datetime]:
        path = self.metadata_path(region)
        if not path.exists():
            return None
        try:
            timestamp = float(self.storage.read_json(path)["lastUpdate"])
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning(f"Ignoring unreadable cache metadata for {region}: {exc}")
            return None
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)

    def is_fresh(self, region: str, *, now: datetime | None = None) -> bool:
        if not self.file_path(region).exists():
            return False
        updated = self.last_update(region)
        if updated is None:
            return False
        return (now or datetime.now(timezone.utc)) - updated <= self.max_age

    def load(self, region: str) -> bytes:
        return self.file_path(region).read_bytes()

    def delete(self, region: str) -> None:
        for path in (self.file_path(region), self.metadata_path(region)):
            path.unlink(missing_ok=True)
        logger.info(f"Deleted cache for {region}")

    def clear(self) -> None:
        for path in self.directory.iterdir():
            if path.is_file():
                path.unlink()
