"""Chain segmentation for shush.

This module defines the data structures representing a parsed input
line (command text plus the control operator that follows it) and the
scanner that turns a raw line into a sequence of these segments.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Separator(Enum):
    """Control operator that follows a chain segment."""
    NONE = ""
    SEMICOLON = ";"
    AND = "&&"
    OR = "||"


# Characters that may end a segment outside of a quoted span
SEPARATOR_CHARS = {";", "&", "|"}


@dataclass
class ChainSegment:
    """One command's text and the operator that follows it."""
    text: str
    separator: Separator = Separator.NONE

    @property
    def is_empty(self) -> bool:
        return not self.text


# --- Splitting ---

def split_chain(line: str) -> list[ChainSegment]:
    """Split a raw line on `;`, `&&`, `||`, `&` and `|`.

    Separators inside a double-quoted span or escaped with a backslash
    do not split. A lone `&` or `|` sequences like `;`. Backslashes and
    quotes are kept in the segment text for the tokenizer.
    """
    segments: list[ChainSegment] = []
    buf: list[str] = []
    in_double = False
    i = 0
    n = len(line)

    def flush(sep: Separator) -> None:
        segments.append(ChainSegment(''.join(buf).strip(), sep))
        buf.clear()

    while i < n:
        ch = line[i]
        if ch == '\\' and i + 1 < n:
            buf.append(ch)
            buf.append(line[i + 1])
            i += 2
            continue
        if ch == '"':
            in_double = not in_double
            buf.append(ch)
            i += 1
            continue
        if not in_double and ch in SEPARATOR_CHARS:
            if ch in ('&', '|') and i + 1 < n and line[i + 1] == ch:
                flush(Separator.AND if ch == '&' else Separator.OR)
                i += 2
                continue
            flush(Separator.SEMICOLON)
            i += 1
            continue
        buf.append(ch)
        i += 1
    flush(Separator.NONE)
    return segments


# --- Formatting (debug / test aid) ---

def format_segments(segments: Iterable[ChainSegment]) -> str:
    lines: list[str] = []
    for seg in segments:
        line = "CMD  " + (seg.text or "<empty>")
        if seg.separator is not Separator.NONE:
            line += "\nOP   " + seg.separator.value
        lines.append(line)
    return "\n".join(lines) if lines else "<empty>"
