"""Tab completion for the shush line editor.

The word under the cursor is completed either against the filesystem
(when it looks like a path) or against the executables on PATH (when it
is the first word of the line).
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

# Spaces added after the longest candidate when laying out columns
COLUMN_PADDING = 2


@dataclass
class CompletionSet:
    """Candidates for one tab press and the part of the word already typed."""
    candidates: List[str] = field(default_factory=list)
    prefix: str = ""
    context: Optional[str] = None  # "command", "path" or None

    @property
    def unique(self) -> bool:
        return len(self.candidates) == 1

    def remainder(self) -> str:
        """Characters a unique candidate adds after the typed prefix."""
        return self.candidates[0][len(self.prefix):]


def current_word(buffer: str, cursor: int) -> Tuple[int, str]:
    start = cursor
    while start > 0 and not buffer[start - 1].isspace():
        start -= 1
    return start, buffer[start:cursor]


def _list_matching(directory: str, prefix: str, *, show_hidden: bool = True) -> List[str]:
    try:
        names = os.listdir(directory)
    except OSError:
        return []
    return sorted(
        name for name in names
        if name.startswith(prefix) and (show_hidden or not name.startswith('.'))
    )


def complete(buffer: str, cursor: int, env: Optional[Mapping[str, str]] = None) -> CompletionSet:
    start, word = current_word(buffer, cursor)

    if word.startswith(('.', '/')):
        head, slash, rest = word.rpartition('/')
        if slash:
            directory = head or '/'
        else:
            directory = '.'
        names = _list_matching(directory, rest, show_hidden=rest.startswith('.'))
        return CompletionSet(names, rest, "path")

    if not buffer[:start].strip():
        search_path = (os.environ if env is None else env).get("PATH", "")
        candidates: List[str] = []
        # Same name in several PATH entries is listed once per entry
        for directory in search_path.split(os.pathsep):
            if directory:
                candidates.extend(_list_matching(directory, word))
        return CompletionSet(candidates, word, "command")

    return CompletionSet(prefix=word)


def format_columns(candidates: List[str], width: int) -> str:
    """Lay candidates out row by row in as many columns as fit in `width`."""
    if not candidates:
        return ""
    col_width = max(len(c) for c in candidates) + COLUMN_PADDING
    cols = max(1, width // col_width)
    rows: List[str] = []
    for i in range(0, len(candidates), cols):
        row = candidates[i:i + cols]
        rows.append("".join(c.ljust(col_width) for c in row).rstrip())
    return "\n".join(rows)
