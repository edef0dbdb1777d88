"""Raw XLSX ingestion helpers."""

from .archive import WorkbookMembers, extract_workbook_members, looks_like_html
from .cells import column_letter_to_index, decode_cell, parse_shared_strings
from .rows import ColumnMap, find_header_row, map_columns, parse_rows

__all__ = [
    "WorkbookMembers",
    "extract_workbook_members",
    "looks_like_html",
    "column_letter_to_index",
    "decode_cell",
    "parse_shared_strings",
    "ColumnMap",
    "find_header_row",
    "map_columns",
    "parse_rows",
]
