"""Shared FastAPI dependencies."""

from __future__ import annotations

from ..data.spreadsheet_repository import SpreadsheetRepository
from ..services.nfz.client import NFZClient
from ..services.search.sessions import SessionRegistry, get_session_registry


def get_registry() -> SessionRegistry:
    return get_session_registry()


def get_nfz_client() -> NFZClient:
    return get_session_registry().client


def get_spreadsheet_repository() -> SpreadsheetRepository:
    return get_session_registry().spreadsheets
