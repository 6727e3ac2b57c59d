"""Capability interfaces the git-cross core depends on.

The core never shells out directly: it talks to a remote through
:class:`RemoteBranchResolver`, drives hidden checkouts through
:class:`WorktreeProvider`, copies trees with :class:`TreeMirror` and inspects
drift with :class:`DiffInspector`.  Production adapters live in
:mod:`cross.backends.git` and :mod:`cross.mirror`; :mod:`cross.backends.memory`
provides in-memory fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

__all__ = [
    "Backends",
    "DiffInspector",
    "HostRepository",
    "RemoteBranchResolver",
    "TreeMirror",
    "WorktreeProvider",
]


class RemoteBranchResolver(ABC):
    """Queries a remote (by name or URL) for its branch references."""

    @abstractmethod
    def symbolic_head(self, remote: str) -> Optional[str]:
        """Return the branch the remote's ``HEAD`` points at, if it says."""

    @abstractmethod
    def list_heads(self, remote: str) -> List[str]:
        """Return branch names advertised by the remote, in remote order."""


class WorktreeProvider(ABC):
    """Creates and drives linked worktrees sharing the host object store."""

    @abstractmethod
    def fetch(self, remote: str, branch: str) -> None:
        ...

    @abstractmethod
    def add_worktree(self, path: Path, ref: str) -> None:
        """Create a detached worktree at ``path`` on ``ref`` without checking out."""

    @abstractmethod
    def sparse_checkout(self, path: Path, remote_path: str) -> None:
        """Restrict the worktree at ``path`` to ``remote_path`` (cone mode)."""

    @abstractmethod
    def checkout(self, path: Path) -> None:
        ...

    @abstractmethod
    def remove_worktree(self, path: Path) -> None:
        ...

    @abstractmethod
    def pull(self, path: Path, remote: str, branch: str) -> None:
        """Rebase the worktree at ``path`` onto ``remote``/``branch``."""

    @abstractmethod
    def status_short(self, path: Path) -> str:
        ...

    @abstractmethod
    def commit_all(self, path: Path, message: str) -> Optional[str]:
        """Stage everything and commit; ``None`` when there was nothing to commit."""

    @abstractmethod
    def push(self, path: Path, remote: str, refspec: str, *, force: bool = False) -> None:
        ...

    @abstractmethod
    def prune_worktrees(self) -> None:
        ...


class TreeMirror(ABC):
    """One-directional, delete-aware directory copy."""

    @abstractmethod
    def mirror(self, source: Path, destination: Path) -> None:
        """Make ``destination`` match ``source`` exactly."""


class DiffInspector(ABC):
    """Read-only comparison primitives used by ``status`` and ``diff``."""

    @abstractmethod
    def has_differences(self, left: Path, right: Path) -> bool:
        ...

    @abstractmethod
    def render_diff(self, left: Path, right: Path) -> str:
        ...

    @abstractmethod
    def ahead_behind(self, worktree: Path, upstream_ref: str) -> Tuple[int, int]:
        """Return ``(ahead, behind)`` commit counts of ``HEAD`` versus ``upstream_ref``."""

    @abstractmethod
    def has_conflicts(self, worktree: Path) -> bool:
        ...


class HostRepository(ABC):
    """Operations on the host repository itself."""

    root: Path

    @abstractmethod
    def remotes(self) -> List[str]:
        ...

    @abstractmethod
    def remote_urls(self) -> Dict[str, Tuple[str, str]]:
        """Map remote name to ``(fetch_url, push_url)``."""

    @abstractmethod
    def add_or_update_remote(self, name: str, url: str) -> bool:
        """Register ``name``; return ``True`` when it already existed."""

    @abstractmethod
    def remove_remote(self, name: str) -> None:
        ...

    @abstractmethod
    def last_commit_subject(self, path: str) -> Optional[str]:
        ...


@dataclass(frozen=True, slots=True)
class Backends:
    """One implementation of every capability, built once per command."""

    host: HostRepository
    resolver: RemoteBranchResolver
    worktrees: WorktreeProvider
    mirror: TreeMirror
    inspector: DiffInspector
