"""Free-text clean-up shared by both ingestion pipelines."""

from __future__ import annotations

import re
from typing import Optional

NAMED_ENTITIES: dict[str, str] = {
    "quot": '"',
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "nbsp": " ",
    "apos": "'",
    "ndash": "–",
    "mdash": "—",
    "hellip": "…",
    "copy": "©",
    "reg": "®",
    "trade": "™",
    "euro": "€",
    "pound": "£",
    "yen": "¥",
    "cent": "¢",
    "deg": "°",
    "plusmn": "±",
    "times": "×",
    "divide": "÷",
    "frac12": "½",
    "frac14": "¼",
    "frac34": "¾",
}

_ENTITY_PATTERN = re.compile(r"&(#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")


def _replace_entity(match: re.Match[str]) -> str:
    token = match.group(1)
    if token.startswith("#"):
        try:
            code_point = int(token[2:], 16) if token[1] in "xX" else int(token[1:])
            return chr(code_point)
        except (ValueError, OverflowError):
            return match.group(0)
    return NAMED_ENTITIES.get(token, match.group(0))


def decode_html_entities(text: str) -> str:
    """Decode HTML entities in a single left-to-right pass.

    Output of one replacement is never re-scanned, so ``&amp;amp;`` becomes
    ``&amp;``. Unknown entities are left untouched.
    """

    if "&" not in text:
        return text
    return _ENTITY_PATTERN.sub(_replace_entity, text)


def clean_text(value: Optional[str]) -> Optional[str]:
    """Decode entities and trim; empty results become ``None``."""

    if value is None:
        return None
    cleaned = decode_html_entities(str(value)).strip()
    return cleaned or None
