# module for built-in commands

from __future__ import annotations

import os
import signal
import sys
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from errors import NotFoundError

if TYPE_CHECKING:
    from ops import ShellSession

VERSION = "1.0"

Handler = Callable[[List[str], "ShellSession"], int]


def _error(name: str, message: str) -> int:
    sys.stderr.write(f"shush: {name}: {message}\n")
    sys.stderr.flush()
    return 1


def _out(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def builtin_cd(args: List[str], session: ShellSession) -> int:
    if len(args) < 2:
        target = session.get_var("HOME")
        if target is None:
            return _error("cd", "HOME not set")
    elif args[1] == '-':
        target = session.get_var("OLDPWD")
        if target is None:
            return _error("cd", "OLDPWD not set")
        _out(target + "\n")
    else:
        target = args[1]
    try:
        old = os.getcwd()
        os.chdir(target)
    except OSError as e:
        return _error("cd", f"{target}: {e.strerror or e}")
    session.set_var("OLDPWD", old)
    session.set_var("PWD", os.getcwd())
    return 0


def builtin_pwd(args: List[str], session: ShellSession) -> int:
    _out(os.getcwd() + "\n")
    return 0


def builtin_echo(args: List[str], session: ShellSession) -> int:
    _out(" ".join(args[1:]) + "\n")
    return 0


def builtin_ver(args: List[str], session: ShellSession) -> int:
    _out(f"shush version {VERSION}\n")
    return 0


def builtin_export(args: List[str], session: ShellSession) -> int:
    if len(args) < 2:
        for name, value in sorted(session.env.items()):
            _out(f"export {name}={value}\n")
        return 0
    rc = 0
    for arg in args[1:]:
        name, sep, value = arg.partition('=')
        if not name or not all(ch == '_' or ch.isalnum() for ch in name):
            rc = _error("export", f"`{arg}': not a valid identifier")
            continue
        if sep:
            session.set_var(name, value)
        elif session.get_var(name) is None:
            session.set_var(name, "")
    return rc


def builtin_unset(args: List[str], session: ShellSession) -> int:
    for name in args[1:]:
        session.unset_var(name)
    return 0


def builtin_alias(args: List[str], session: ShellSession) -> int:
    if len(args) < 2:
        for name, value in session.aliases.items():
            _out(f"alias {name}='{value}'\n")
        return 0
    rc = 0
    for arg in args[1:]:
        name, sep, value = arg.partition('=')
        if sep:
            session.aliases[name] = value
        elif name in session.aliases:
            _out(f"alias {name}='{session.aliases[name]}'\n")
        else:
            rc = _error("alias", f"{name}: not found")
    return rc


def builtin_unalias(args: List[str], session: ShellSession) -> int:
    rc = 0
    for name in args[1:]:
        if session.aliases.pop(name, None) is None:
            rc = _error("unalias", f"{name}: not found")
    return rc


def builtin_history(args: List[str], session: ShellSession) -> int:
    for i, entry in enumerate(session.history, start=1):
        _out(f"{i} {entry}\n")
    return 0


def _parse_signal(spec: str) -> signal.Signals:
    if spec.isdigit():
        return signal.Signals(int(spec))
    name = spec.upper()
    if not name.startswith("SIG"):
        name = "SIG" + name
    return signal.Signals[name]


def builtin_kill(args: List[str], session: ShellSession) -> int:
    sig = signal.SIGTERM
    targets = args[1:]
    if targets and targets[0].startswith('-') and len(targets[0]) > 1:
        try:
            sig = _parse_signal(targets[0][1:])
        except (KeyError, ValueError):
            return _error("kill", f"{targets[0][1:]}: invalid signal specification")
        targets = targets[1:]
    if not targets:
        return _error("kill", "usage: kill [-SIGNAL] pid ...")
    rc = 0
    for target in targets:
        try:
            os.kill(int(target), sig)
        except ValueError:
            rc = _error("kill", f"{target}: arguments must be process ids")
        except OSError as e:
            rc = _error("kill", f"({target}) - {e.strerror or e}")
    return rc


BUILTINS: Dict[str, Handler] = {
    'cd': builtin_cd,
    'pwd': builtin_pwd,
    'echo': builtin_echo,
    'ver': builtin_ver,
    'export': builtin_export,
    'unset': builtin_unset,
    'alias': builtin_alias,
    'unalias': builtin_unalias,
    'history': builtin_history,
    'kill': builtin_kill,
}


def lookup(name: str) -> Optional[Handler]:
    """Return the handler for a built-in, or None when `name` is not one."""
    return BUILTINS.get(name)


def is_builtin(name: str) -> bool:
    return name in BUILTINS


def run_builtin(args: List[str], session: ShellSession) -> int:
    handler = lookup(args[0])
    if handler is None:
        raise NotFoundError(f"{args[0]}: not a shell builtin")
    session.last_status = handler(args, session)
    return session.last_status
