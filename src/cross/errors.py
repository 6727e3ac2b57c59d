"""Exception hierarchy shared by the git-cross commands."""

from __future__ import annotations

from typing import Sequence

__all__ = [
    "CrossError",
    "ExternalToolError",
    "GitError",
    "InvalidSpecError",
    "MirrorError",
    "PatchNotFoundError",
    "RegistryError",
    "RemoteNotFoundError",
    "SettingsError",
    "UserInputError",
]


class CrossError(RuntimeError):
    """Base class for every failure reported by a git-cross command."""


class UserInputError(CrossError):
    """Raised when a command argument cannot be acted upon."""


class InvalidSpecError(UserInputError):
    """Raised when a ``remote[:branch]:path`` reference is malformed."""


class PatchNotFoundError(UserInputError):
    """Raised when no registered patch matches the requested local path."""


class RemoteNotFoundError(UserInputError):
    """Raised when a spec names a remote the host repository does not know."""


class SettingsError(UserInputError):
    """Raised when the settings file cannot be loaded."""


class RegistryError(CrossError):
    """Raised when the patch registry document is not well formed."""


class ExternalToolError(CrossError):
    """Raised when an external command exits with a non-zero status.

    The combined output of the failed command is kept verbatim so the
    underlying tool's own diagnostics reach the operator.
    """

    def __init__(self, command: Sequence[str], output: str, returncode: int | None = None) -> None:
        self.command = list(command)
        self.output = output
        self.returncode = returncode
        detail = output.strip() or "no output"
        super().__init__(f"{' '.join(self.command)} failed: {detail}")


class GitError(ExternalToolError):
    """Raised when a git command fails or the repository cannot be used."""


class MirrorError(ExternalToolError):
    """Raised when a directory mirror copy fails."""
