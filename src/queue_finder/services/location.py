"""Current and last known user location."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..models.domain import Coordinate
from ..persistence.filesystem import FileStorage
from .geospatial import is_valid_coordinate

logger = logging.getLogger(__name__)

LOCATION_FILENAME = "last_location.json"
SESSION_LOCATION_DIR = "locations"


class UserLocation:
    """Holds the location reported by the client and remembers the last one.

    The last known location survives restarts when a storage is given; the
    current location only lives for the session. Each owner gets its own
    file, so sessions never see each other's coordinates.
    """

    def __init__(self, storage: FileStorage | None = None, filename: str = LOCATION_FILENAME) -> None:
        self.storage = storage
        self.filename = filename
        self.current: Optional[Coordinate] = None
        self.last_known: Optional[Coordinate] = self._load()

    @classmethod
    def for_session(cls, storage: FileStorage | None, session_id: str) -> "UserLocation":
        return cls(storage, f"{SESSION_LOCATION_DIR}/{session_id}.json")

    @property
    def _path(self) -> Optional[Path]:
        return self.storage.root / self.filename if self.storage else None

    def _load(self) -> Optional[Coordinate]:
        path = self._path
        if path is None or not path.exists():
            return None
        try:
            data = self.storage.read_json(path)
            latitude, longitude = float(data["latitude"]), float(data["longitude"])
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning(f"Ignoring unreadable last known location: {exc}")
            return None
        # (0, 0) is the "never set" marker.
        if latitude == 0 and longitude == 0:
            return None
        return Coordinate(latitude, longitude)

    def update(self, latitude: float, longitude: float) -> Coordinate:
        if not is_valid_coordinate(latitude, longitude):
            raise ValueError(f"Invalid coordinate ({latitude}, {longitude}).")
        coordinate = Coordinate(latitude, longitude)
        self.current = coordinate
        self.last_known = coordinate
        if self.storage is not None:
            self.storage.write_json(self._path, {"latitude": latitude, "longitude": longitude})
        return coordinate

    def clear_current(self) -> None:
        self.current = None

    def forget(self) -> None:
        """Drop both locations and the stored file."""

        self.current = None
        self.last_known = None
        path = self._path
        if path is not None:
            path.unlink(missing_ok=True)

    @property
    def for_distance(self) -> Optional[Coordinate]:
        return self.current or self.last_known
