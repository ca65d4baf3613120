#!/usr/bin/env python3

# Entry of shush

from __future__ import annotations

import argparse
import os
import signal
import socket
import sys
from typing import Mapping, Optional

from errors import ConfigurationError, TerminalModeError
from ops import HISTORY_SIZE, ShellSession, execute_line  # local module in the same folder
from terminal import LineEditor

DEFAULT_HISTFILE = "~/.shush_history"


# --- Configuration ---

def resolve_histfile(flag: Optional[str], env: Mapping[str, str]) -> str:
    """Pick the history file: command-line flag, then $SHUSH_HISTFILE, then the default."""
    path = flag or env.get("SHUSH_HISTFILE") or DEFAULT_HISTFILE
    if path.startswith("~") and env.get("HOME"):
        path = env["HOME"] + path[1:]
    return path


def resolve_histsize(flag: Optional[int], env: Mapping[str, str]) -> int:
    if flag is not None:
        return max(flag, 0)
    raw = env.get("SHUSH_HISTSIZE")
    if raw:
        try:
            return max(int(raw), 0)
        except ValueError:
            print(f"shush: ignoring invalid SHUSH_HISTSIZE: {raw}", file=sys.stderr)
    return HISTORY_SIZE


# --- Start-up ---

def read_hostname() -> str:
    try:
        with open("/etc/hostname") as f:
            name = f.readline().strip()
    except OSError:
        name = ""
    return name or socket.gethostname() or "localhost"


def initialize_shell(session: ShellSession) -> None:
    if not session.get_var("HOME"):
        raise ConfigurationError("HOME not set")
    if not session.get_var("HOSTNAME"):
        session.set_var("HOSTNAME", read_hostname())
    if not session.get_var("PATH"):
        session.set_var("PATH", os.defpath)


def build_prompt(session: ShellSession) -> str:
    user = session.get_var("USER") or "user"
    host = session.get_var("HOSTNAME") or "localhost"
    try:
        cwd = os.getcwd()
    except OSError:
        cwd = "[unknown]"
    home = (session.get_var("HOME") or "").rstrip("/")
    if home and (cwd == home or cwd.startswith(home + "/")):
        cwd = "~" + cwd[len(home):]
    mark = "#" if os.geteuid() == 0 else "$"
    return f"[{user}@{host} {cwd}]{mark} "


# --- History file ---

def load_history(path: str, session: ShellSession) -> None:
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            for line in f:
                line = line.rstrip("\n")
                if line:
                    session.record_history(line)
    except FileNotFoundError:
        return
    except OSError as e:
        print(f"shush: cannot read history {path}: {e.strerror or e}", file=sys.stderr)


def append_history(path: str, line: str) -> None:
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        print(f"shush: cannot write history {path}: {e.strerror or e}", file=sys.stderr)


# --- Signals ---

class SigintHandler:
    """Ctrl-C kills the foreground child if there is one, else abandons the edit."""

    def __init__(self, session: ShellSession) -> None:
        self.session = session

    def __call__(self, signum, frame) -> None:
        if self.session.interrupt_child():
            return
        raise KeyboardInterrupt


def install_sigint_handler(session: ShellSession) -> None:
    signal.signal(signal.SIGINT, SigintHandler(session))


# --- Loop ---

def _read_plain() -> Optional[str]:
    line = sys.stdin.readline()
    if not line:
        return None
    return line.rstrip("\n")


def repl(session: ShellSession, histfile: Optional[str] = None) -> int:
    interactive = sys.stdin.isatty()
    editor = LineEditor(env=session.env) if interactive else None

    while True:
        try:
            if editor is not None:
                line = editor.read_line(build_prompt(session))
            else:
                line = _read_plain()
        except KeyboardInterrupt:
            # Ctrl-C at prompt -> new line and fresh prompt
            print()
            continue

        if line is None:
            if interactive:
                print()
            break

        if not line.strip():
            continue

        if histfile:
            append_history(histfile, line)

        try:
            execute_line(line, session)
        except KeyboardInterrupt:
            print()

    return session.last_status


def parse_args(args=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="shush",
        description="shush - a small interactive command shell",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  shush                          # interactive shell
  shush -c 'make && ./app'       # run one line and exit with its status
  shush --histfile /tmp/hist     # keep history somewhere else

Environment: SHUSH_HISTFILE, SHUSH_HISTSIZE
"""
    )

    parser.add_argument(
        "--command", "-c",
        metavar="LINE",
        help="Run LINE and exit with its status"
    )
    parser.add_argument(
        "--histfile",
        metavar="PATH",
        help=f"History file (default: $SHUSH_HISTFILE or {DEFAULT_HISTFILE})"
    )
    parser.add_argument(
        "--histsize",
        metavar="N",
        type=int,
        help=f"Entries kept in memory (default: $SHUSH_HISTSIZE or {HISTORY_SIZE})"
    )
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Do not read or write the history file"
    )

    return parser.parse_args(args)


def main(argv=None) -> None:
    args = parse_args(argv)
    session = ShellSession(history_size=resolve_histsize(args.histsize, os.environ))
    try:
        initialize_shell(session)
    except ConfigurationError as e:
        print(f"shush: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command is not None:
        sys.exit(execute_line(args.command, session))

    histfile = None if args.no_history else resolve_histfile(args.histfile, session.env)
    if histfile:
        load_history(histfile, session)

    install_sigint_handler(session)
    try:
        status = repl(session, histfile)
    except TerminalModeError as e:
        print(f"shush: {e}", file=sys.stderr)
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
