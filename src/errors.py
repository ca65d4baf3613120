"""Exception types raised by the shush core.

Every error that can stop a single chain segment derives from
ShellError and carries the exit status the segment should report.
"""

from __future__ import annotations


class ShellError(Exception):
    """Base exception for shush."""

    def __init__(self, message: str, status: int = 1) -> None:
        super().__init__(message)
        self.status = status


class ConfigurationError(ShellError):
    """Raised when the shell environment is missing something it needs."""


class ExpansionError(ConfigurationError):
    """Raised when a word cannot be expanded, e.g. `~` without HOME."""


class SpawnError(ShellError):
    """Raised when a child process cannot be started."""


class NotFoundError(SpawnError):
    """Raised when no built-in or executable matches a command name."""


class TerminalModeError(ShellError):
    """Raised when the terminal cannot be switched into or out of raw mode."""
