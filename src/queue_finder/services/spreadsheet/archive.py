"""Extraction of the worksheet members from an XLSX (ZIP) payload."""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from dataclasses import dataclass
from typing import Optional

from ...errors import HtmlPayload, MissingWorksheet, NotAnArchive

logger = logging.getLogger(__name__)

SHARED_STRINGS_PATH = "xl/sharedStrings.xml"
WORKSHEET_PATH = "xl/worksheets/sheet1.xml"
SHARED_STRINGS_SUFFIX = "sharedstrings.xml"
WORKSHEET_SUFFIX = "sheet1.xml"
SNIFF_BYTES = 512
HTML_MARKERS = ("<!doctype", "<html")


@dataclass(frozen=True, slots=True)
class WorkbookMembers:
    worksheet: bytes
    shared_strings: Optional[bytes] = None


def looks_like_html(payload: bytes) -> bool:
    """Sniff the leading bytes for an HTML document."""

    head = payload[:SNIFF_BYTES].decode("utf-8", errors="ignore").lstrip("﻿ \t\r\n").lower()
    return any(marker in head for marker in HTML_MARKERS)


def _pick_member(names: list[str], exact: str, suffix: str) -> Optional[str]:
    if exact in names:
        return exact
    candidates = sorted(name for name in names if name.lower().endswith(suffix))
    return candidates[0] if candidates else None


def extract_workbook_members(payload: bytes) -> WorkbookMembers:
    """Return the shared-string and first-worksheet XML members of an XLSX blob.

    HTML is checked first: an upstream error page often arrives with status 200.
    """

    logger.debug(f"Processing {len(payload)} byte payload")
    if looks_like_html(payload):
        raise HtmlPayload()

    try:
        archive = zipfile.ZipFile(io.BytesIO(payload))
    except zipfile.BadZipFile as exc:
        raise NotAnArchive(f"Payload is not a ZIP archive: {exc}") from exc

    with archive:
        names = archive.namelist()
        worksheet_name = _pick_member(names, WORKSHEET_PATH, WORKSHEET_SUFFIX)
        if worksheet_name is None:
            raise MissingWorksheet(f"No worksheet member among {len(names)} entries")
        shared_name = _pick_member(names, SHARED_STRINGS_PATH, SHARED_STRINGS_SUFFIX)

        try:
            worksheet = archive.read(worksheet_name)
            shared_strings = archive.read(shared_name) if shared_name else None
        except (zipfile.BadZipFile, KeyError, EOFError, zlib.error) as exc:
            raise NotAnArchive(f"Archive member could not be read: {exc}") from exc

    logger.debug(f"Extracted {worksheet_name} ({len(worksheet)} bytes), shared strings: {shared_name}")
    return WorkbookMembers(worksheet=worksheet, shared_strings=shared_strings)
