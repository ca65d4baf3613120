from __future__ import annotations

import os
import subprocess
import sys
from collections import deque
from typing import Deque, Dict, List, Optional

import command
from errors import ExpansionError, NotFoundError, ShellError, SpawnError
from groups import ChainSegment, Separator, split_chain

# Capacity of the in-memory history ring
HISTORY_SIZE = 100


class ShellSession:
    """Holds session-wide shell context: environment, last status, history, aliases."""

    def __init__(self, inherit_env: bool = True, history_size: int = HISTORY_SIZE) -> None:
        # String-only environment used for expansion and as base for subprocesses
        self.env: Dict[str, str] = dict(os.environ) if inherit_env else {}
        self.last_status: int = 0
        # Oldest entries fall off the left once the ring is full
        self.history: Deque[str] = deque(maxlen=history_size)
        self.aliases: Dict[str, str] = {}
        # The single foreground child, if one is running
        self.child: Optional[subprocess.Popen] = None

    def get_env(self) -> Dict[str, str]:
        return dict(self.env)

    def get_var(self, name: str) -> Optional[str]:
        return self.env.get(name)

    def set_var(self, name: str, value: str) -> None:
        self.env[name] = value

    def unset_var(self, name: str) -> None:
        self.env.pop(name, None)

    def record_history(self, entry: str) -> None:
        self.history.append(entry)

    def interrupt_child(self) -> bool:
        """Ask the live child to terminate. Returns False when none is running.

        Safe to call from a SIGINT handler: it only signals the child, the
        executor's wait reaps it and clears the handle.
        """
        child = self.child
        if child is None:
            return False
        child.terminate()
        return True


# --------- Expansion ---------

def _is_name_char(ch: str) -> bool:
    return ch == '_' or (ch.isascii() and ch.isalnum())


def expand_variables(text: str, session: ShellSession) -> str:
    """Expand ~, $NAME and $? using the session environment.

    Rules (shush simplified):
    - `~` is replaced only at the start of a word
    - `$NAME` takes the longest run of [A-Za-z0-9_]; unset names expand to ''
    - `$?` is the last exit status
    - A `$` with no name after it is kept literally
    """
    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '~' and (i == 0 or text[i - 1].isspace()):
            home = session.get_var("HOME")
            if home is None:
                raise ExpansionError("HOME not set")
            out.append(home)
            i += 1
            continue
        if ch == '$' and i + 1 < n:
            if text[i + 1] == '?':
                out.append(str(session.last_status))
                i += 2
                continue
            j = i + 1
            while j < n and _is_name_char(text[j]):
                j += 1
            if j > i + 1:
                val = session.get_var(text[i + 1:j])
                out.append('' if val is None else val)
                i = j
                continue
        # default
        out.append(ch)
        i += 1
    return ''.join(out)


# --------- Tokenization ---------

def tokenize(text: str) -> List[str]:
    """Split one command into argv, honouring double quotes and backslashes.

    An unterminated quote runs to the end of the text.
    """
    args: List[str] = []
    buf: List[str] = []
    # Distinguishes an empty quoted word ("") from no word at all
    in_word = False
    in_double = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '\\':
            if i + 1 < n:
                buf.append(text[i + 1])
                i += 2
            else:
                buf.append(ch)
                i += 1
            in_word = True
            continue
        if ch == '"':
            in_double = not in_double
            in_word = True
            i += 1
            continue
        if ch.isspace() and not in_double:
            if in_word:
                args.append(''.join(buf))
                buf.clear()
                in_word = False
            i += 1
            continue
        buf.append(ch)
        in_word = True
        i += 1
    if in_word:
        args.append(''.join(buf))
    return args


# --------- Execution ---------

def _exit_shell(args: List[str]) -> None:
    code = 0
    if len(args) > 1:
        try:
            code = int(args[1])
        except ValueError:
            sys.stderr.write(f"shush: exit: {args[1]}: numeric argument required\n")
            sys.stderr.flush()
            code = 2
    sys.exit(code)


def _spawn(args: List[str], session: ShellSession) -> int:
    try:
        proc = subprocess.Popen(args, env=session.get_env())
    except FileNotFoundError:
        if '/' in args[0]:
            raise NotFoundError(f"{args[0]}: No such file or directory") from None
        raise NotFoundError(f"{args[0]}: command not found") from None
    except OSError as e:
        raise SpawnError(f"{args[0]}: {e.strerror or e}") from e

    try:
        session.child = proc
        rc = proc.wait()
    except KeyboardInterrupt:
        # Interrupt arrived before the SIGINT handler could see the child,
        # or no handler is installed
        proc.terminate()
        rc = proc.wait()
    finally:
        session.child = None
    # Negative return codes mean the child died from a signal
    session.last_status = 1 if rc < 0 else rc
    return session.last_status


def execute_command(args: List[str], session: ShellSession) -> int:
    """Run one argv as an alias, built-in or external program.

    Raises IsADirectoryError, NotFoundError or SpawnError; the chain
    controller turns those into an exit status.
    """
    if not args:
        return 0

    alias = session.aliases.get(args[0])
    if alias is not None:
        args = tokenize(alias) + args[1:]
        if not args:
            return 0

    if args[0] == 'exit':
        _exit_shell(args)

    session.record_history(args[0])

    if os.path.isdir(args[0]):
        raise IsADirectoryError(f"{args[0]}: Is a directory")

    if command.is_builtin(args[0]):
        return command.run_builtin(args, session)

    return _spawn(args, session)


def _run_segment(text: str, session: ShellSession) -> int:
    try:
        args = tokenize(expand_variables(text, session))
        return execute_command(args, session)
    except (ShellError, OSError) as e:
        sys.stderr.write(f"shush: {e}\n")
        sys.stderr.flush()
        session.last_status = getattr(e, 'status', 1)
        return session.last_status


def exec_chain(segments: List[ChainSegment], session: ShellSession) -> int:
    run_next = True
    for seg in segments:
        if run_next and not seg.is_empty:
            _run_segment(seg.text, session)
        # Skipped segments still decide the next step from the last recorded status
        status = session.last_status
        if seg.separator is Separator.AND:
            run_next = status == 0
        elif seg.separator is Separator.OR:
            run_next = status != 0
        else:
            run_next = True
    return session.last_status


def execute_line(line: str, session: ShellSession) -> int:
    return exec_chain(split_chain(line), session)
