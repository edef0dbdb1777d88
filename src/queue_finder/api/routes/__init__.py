"""Route group exports."""

from . import catalog, health, regions, sessions, spreadsheets

__all__ = ["catalog", "health", "regions", "sessions", "spreadsheets"]
