"""Per-client search sessions sharing one set of upstream clients."""

from __future__ import annotations

import functools
import logging
import time
import uuid
from collections import OrderedDict
from enum import Enum
from typing import Callable, Optional

from ...config import settings
from ...data.spreadsheet_repository import SpreadsheetRepository
from ...persistence.filesystem import FileStorage, SpreadsheetCache
from ..distance import DistanceResolver
from ..geocoding import NominatimGeocoder
from ..location import UserLocation
from ..nfz.client import NFZClient
from ..sources import ApiRecordSource, RawRecordSource, SpreadsheetRecordSource
from .orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    API = "api"
    SPREADSHEET = "spreadsheet"


class SessionRegistry:
    """Creates orchestrators on demand and keeps them by session id.

    The NFZ client, geocoder and spreadsheet repository are shared by every
    session; the distance resolver is shared too so geocoding results are
    memoised across sessions. Sessions idle for longer than ``idle_seconds``
    are dropped, and the least recently used one goes when ``max_sessions``
    is reached.
    """

    def __init__(
        self,
        client: NFZClient | None = None,
        spreadsheets: SpreadsheetRepository | None = None,
        resolver: DistanceResolver | None = None,
        storage: FileStorage | None = None,
        max_sessions: int | None = None,
        idle_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client or NFZClient()
        self._spreadsheets = spreadsheets
        self.storage = storage
        if resolver is None:
            geocoder = NominatimGeocoder() if settings.geocoding_enabled else None
            resolver = DistanceResolver(geocoder)
        self.resolver = resolver
        self.max_sessions = max_sessions if max_sessions is not None else settings.max_sessions
        self.idle_seconds = idle_seconds if idle_seconds is not None else settings.session_idle_seconds
        self._clock = clock
        self._sessions: OrderedDict[str, SearchOrchestrator] = OrderedDict()
        self._last_seen: dict[str, float] = {}

    @property
    def spreadsheets(self) -> SpreadsheetRepository:
        if self._spreadsheets is None:
            self._spreadsheets = SpreadsheetRepository(cache=SpreadsheetCache(self.storage))
        return self._spreadsheets

    def _source(self, kind: SourceKind) -> RawRecordSource:
        if kind is SourceKind.SPREADSHEET:
            return SpreadsheetRecordSource(self.spreadsheets)
        return ApiRecordSource(self.client)

    def _touch(self, session_id: str) -> None:
        self._sessions.move_to_end(session_id)
        self._last_seen[session_id] = self._clock()

    def _evict(self) -> None:
        now = self._clock()
        expired = [key for key, seen in self._last_seen.items() if now - seen > self.idle_seconds]
        for session_id in expired:
            self.delete(session_id)
        while len(self._sessions) >= self.max_sessions:
            oldest = next(iter(self._sessions))
            self.delete(oldest)
        if expired:
            logger.info(f"Dropped {len(expired)} idle sessions")

    def create(self, kind: SourceKind = SourceKind.API) -> tuple[str, SearchOrchestrator]:
        self._evict()
        session_id = uuid.uuid4().hex
        orchestrator = SearchOrchestrator(
            source=self._source(kind),
            names=self.client,
            resolver=self.resolver,
            location=UserLocation.for_session(self.storage, session_id),
        )
        self._sessions[session_id] = orchestrator
        self._touch(session_id)
        logger.info(f"Created {kind.value} session {session_id}")
        return session_id, orchestrator

    def get(self, session_id: str) -> Optional[SearchOrchestrator]:
        orchestrator = self._sessions.get(session_id)
        if orchestrator is None:
            return None
        if self._clock() - self._last_seen[session_id] > self.idle_seconds:
            self.delete(session_id)
            return None
        self._touch(session_id)
        return orchestrator

    def delete(self, session_id: str) -> bool:
        orchestrator = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if orchestrator is None:
            return False
        orchestrator.location.forget()
        return True

    def __len__(self) -> int:
        return len(self._sessions)

    async def aclose(self) -> None:
        self._sessions.clear()
        self._last_seen.clear()
        await self.client.aclose()
        geocoder = self.resolver.geocoder
        if isinstance(geocoder, NominatimGeocoder):
            await geocoder.aclose()


@functools.lru_cache(maxsize=1)
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(storage=FileStorage())
