"""Decoding of individual worksheet cells and the shared-string table."""

from __future__ import annotations

import re
from typing import Sequence
from xml.etree import ElementTree as ET

SHARED_STRING_TYPE = "s"
INLINE_STRING_TYPE = "inlineStr"

_CELL_REFERENCE = re.compile(r"^([A-Za-z]+)(\d*)$")


def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(node: ET.Element, name: str) -> ET.Element | None:
    for child in node:
        if local_name(child.tag) == name:
            return child
    return None


def joined_text(node: ET.Element) -> str:
    """Concatenate every ``<t>`` run below ``node`` (plain and rich text)."""

    parts = [elem.text or "" for elem in node.iter() if local_name(elem.tag) == "t"]
    return "".join(parts)


def column_letter_to_index(letters: str) -> int:
    """Convert spreadsheet column letters to a zero-based index (A -> 0, AA -> 26)."""

    index = 0
    for char in letters.upper():
        if not "A" <= char <= "Z":
            raise ValueError(f"Invalid column letter '{char}' in '{letters}'.")
        index = index * 26 + (ord(char) - ord("A") + 1)
    if index == 0:
        raise ValueError("Column reference is empty.")
    return index - 1


def column_index_from_reference(reference: str) -> int | None:
    """Extract the column index from a cell reference such as ``"AB12"``."""

    match = _CELL_REFERENCE.match(reference.strip())
    if not match:
        return None
    return column_letter_to_index(match.group(1))


def parse_shared_strings(xml_payload: bytes | str | None) -> list[str]:
    """Parse ``sharedStrings.xml`` into the ordered string pool."""

    if not xml_payload:
        return []
    root = ET.fromstring(xml_payload)
    return [joined_text(item) for item in root if local_name(item.tag) == "si"]


def decode_cell(cell: ET.Element, shared_strings: Sequence[str]) -> str:
    """Resolve a ``<c>`` element to its text value.

    Shared-string references resolve through the pool, with an out-of-range or
    malformed index yielding ``""``. Otherwise the inline string wins, then
    the direct ``<v>`` value.
    """

    cell_type = cell.get("t", "")
    value_node = _child(cell, "v")
    raw_value = value_node.text if value_node is not None and value_node.text is not None else None

    if cell_type == SHARED_STRING_TYPE:
        if raw_value is None:
            return ""
        try:
            index = int(raw_value.strip())
        except ValueError:
            return ""
        if 0 <= index < len(shared_strings):
            return shared_strings[index]
        return ""

    inline = _child(cell, "is")
    if inline is not None:
        return joined_text(inline)

    if raw_value is not None:
        return raw_value
    return ""
