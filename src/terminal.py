"""Raw-mode line editing for shush.

LineEditor reads one key at a time from a terminal with echo and
canonical input turned off, keeps its own buffer and cursor, and
repaints only the part of the line that an edit changed.
"""
from __future__ import annotations

import codecs
import os
import shutil
import sys
import termios
from typing import Callable, List, Mapping, Optional, TextIO

from completion import CompletionSet, complete, format_columns
from errors import TerminalModeError

ESC = '\x1b'
CSI = ESC + '['
ERASE_TO_EOL = CSI + 'K'

KEY_CTRL_A = '\x01'
KEY_CTRL_D = '\x04'
KEY_CTRL_E = '\x05'
KEY_CTRL_H = '\x08'
KEY_TAB = '\t'
KEY_BACKSPACE = '\x7f'
KEYS_ENTER = ('\r', '\n')

Completer = Callable[[str, int, Optional[Mapping[str, str]]], CompletionSet]


class RawMode:
    """Turn off echo and line buffering on `fd` for the life of the block.

    Does nothing when `fd` is not a terminal, so the editor can be fed
    from a pipe.
    """

    def __init__(self, fd: int) -> None:
        self.fd = fd
        self._saved: Optional[list] = None

    def __enter__(self) -> "RawMode":
        if not os.isatty(self.fd):
            return self
        try:
            saved = termios.tcgetattr(self.fd)
            raw = termios.tcgetattr(self.fd)
            # ISIG stays on so Ctrl-C still reaches the SIGINT handler
            raw[3] &= ~(termios.ECHO | termios.ICANON)
            raw[6][termios.VMIN] = 1
            raw[6][termios.VTIME] = 0
            termios.tcsetattr(self.fd, termios.TCSADRAIN, raw)
        except termios.error as e:
            raise TerminalModeError(f"cannot enter raw mode: {e}") from e
        self._saved = saved
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._saved is None:
            return
        saved, self._saved = self._saved, None
        try:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, saved)
        except termios.error as e:
            raise TerminalModeError(f"cannot restore terminal mode: {e}") from e


class LineBuffer:
    """Editable characters plus a cursor, 0 <= cursor <= len."""

    def __init__(self) -> None:
        self.chars: List[str] = []
        self.cursor = 0

    def __len__(self) -> int:
        return len(self.chars)

    def __str__(self) -> str:
        return ''.join(self.chars)

    def tail(self) -> str:
        return ''.join(self.chars[self.cursor:])

    def insert(self, text: str) -> None:
        self.chars[self.cursor:self.cursor] = list(text)
        self.cursor += len(text)

    def delete_before(self) -> bool:
        if self.cursor == 0:
            return False
        self.cursor -= 1
        del self.chars[self.cursor]
        return True

    def delete_at(self) -> bool:
        if self.cursor >= len(self.chars):
            return False
        del self.chars[self.cursor]
        return True

    def move(self, offset: int) -> int:
        """Move the cursor, clamped to the buffer. Returns the distance moved."""
        target = min(max(self.cursor + offset, 0), len(self.chars))
        moved = target - self.cursor
        self.cursor = target
        return moved


def _left(n: int) -> str:
    return f"{CSI}{n}D" if n > 0 else ""


def _right(n: int) -> str:
    return f"{CSI}{n}C" if n > 0 else ""


class LineEditor:
    def __init__(
        self,
        completer: Completer = complete,
        fd: Optional[int] = None,
        out: Optional[TextIO] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.completer = completer
        self.fd = sys.stdin.fileno() if fd is None else fd
        self.out = sys.stdout if out is None else out
        # Consulted for PATH during completion; os.environ when None
        self.env = env
        self._decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')

    def read_line(self, prompt: str) -> Optional[str]:
        """Read one line. Returns None at end of input when nothing was typed.

        KeyboardInterrupt propagates after the terminal mode is restored.
        """
        self._decoder.reset()
        with RawMode(self.fd):
            self._write(prompt)
            return self._edit(prompt)

    # --- Input ---

    def _read_char(self) -> Optional[str]:
        while True:
            data = os.read(self.fd, 1)
            if not data:
                return None
            ch = self._decoder.decode(data)
            if ch:
                return ch

    def _edit(self, prompt: str) -> Optional[str]:
        line = LineBuffer()
        typed = False
        while True:
            ch = self._read_char()
            if ch is None:
                if not typed:
                    return None
                self._write("\n")
                return str(line)
            if ch in KEYS_ENTER:
                self._write("\n")
                return str(line)
            if ch == KEY_CTRL_D:
                if not line:
                    return None
            elif ch == ESC:
                self._escape(line)
            elif ch in (KEY_BACKSPACE, KEY_CTRL_H):
                self._backspace(line)
            elif ch == KEY_TAB:
                self._complete(line, prompt)
                typed = typed or bool(line)
            elif ch == KEY_CTRL_A:
                self._move(line, -len(line))
            elif ch == KEY_CTRL_E:
                self._move(line, len(line))
            elif ch.isprintable():
                self._insert(line, ch)
                typed = True

    def _escape(self, line: LineBuffer) -> None:
        if self._read_char() != '[':
            return
        ch = self._read_char()
        if ch == 'C':
            self._move(line, 1)
        elif ch == 'D':
            self._move(line, -1)
        elif ch == 'H':
            self._move(line, -len(line))
        elif ch == 'F':
            self._move(line, len(line))
        elif ch is not None and ch.isdigit():
            # ESC [ <number> ~
            param = ch
            ch = self._read_char()
            while ch is not None and ch.isdigit():
                param += ch
                ch = self._read_char()
            if ch != '~':
                return
            if param == '3':
                self._delete(line)
            elif param in ('1', '7'):
                self._move(line, -len(line))
            elif param in ('4', '8'):
                self._move(line, len(line))

    # --- Rendering ---

    def _write(self, text: str) -> None:
        self.out.write(text)
        self.out.flush()

    def _insert(self, line: LineBuffer, text: str) -> None:
        line.insert(text)
        tail = line.tail()
        self._write(text + tail + _left(len(tail)))

    def _backspace(self, line: LineBuffer) -> None:
        if line.delete_before():
            tail = line.tail()
            self._write(_left(1) + tail + ERASE_TO_EOL + _left(len(tail)))

    def _delete(self, line: LineBuffer) -> None:
        if line.delete_at():
            tail = line.tail()
            self._write(tail + ERASE_TO_EOL + _left(len(tail)))

    def _move(self, line: LineBuffer, offset: int) -> None:
        moved = line.move(offset)
        self._write(_right(moved) if moved > 0 else _left(-moved))

    def _complete(self, line: LineBuffer, prompt: str) -> None:
        result = self.completer(str(line), line.cursor, self.env)
        if not result.candidates:
            return
        if result.unique:
            remainder = result.remainder()
            if remainder:
                self._insert(line, remainder)
            return
        width = shutil.get_terminal_size().columns
        self._write("\n" + format_columns(result.candidates, width) + "\n")
        self._write(prompt + str(line) + _left(len(line) - line.cursor))
