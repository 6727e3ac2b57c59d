"""Hidden, sparse, single-subtree worktrees keyed by a short hash."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

from .backends.base import WorktreeProvider
from .settings import CrossSettings

LOGGER = logging.getLogger(__name__)

KEY_LENGTH = 8

__all__ = ["KEY_LENGTH", "MaterializedWorktree", "materialize_worktree", "worktree_key", "worktree_path"]


def worktree_key(remote: str, remote_path: str, branch: str) -> str:
    """Return the short hex key for a ``(remote, remote_path, branch)`` triple.

    Keys are truncated sha256 digests; collisions are not detected.
    """
    digest = hashlib.sha256(f"{remote}{remote_path}{branch}".encode("utf-8")).hexdigest()
    return digest[:KEY_LENGTH]


def worktree_path(settings: CrossSettings, remote: str, remote_path: str, branch: str) -> Path:
    """Absolute directory of the worktree serving the given triple."""
    return settings.worktrees_dir / f"{remote}_{worktree_key(remote, remote_path, branch)}"


@dataclass(frozen=True, slots=True)
class MaterializedWorktree:
    path: Path
    key: str
    created: bool


def materialize_worktree(
    settings: CrossSettings,
    provider: WorktreeProvider,
    remote: str,
    remote_path: str,
    branch: str,
) -> MaterializedWorktree:
    """Ensure a checked-out worktree restricted to ``remote_path`` exists.

    An existing directory is reused as-is, without fetching.  Otherwise the
    branch is fetched, a detached no-checkout worktree is added on
    ``remote/branch``, cone-mode sparse checkout is set to ``remote_path`` and
    the tree is checked out.  Failures propagate unchanged and a partially
    created directory is left in place for inspection.
    """
    key = worktree_key(remote, remote_path, branch)
    path = worktree_path(settings, remote, remote_path, branch)
    if path.exists():
        LOGGER.debug("reusing worktree %s", path)
        return MaterializedWorktree(path=path, key=key, created=False)

    LOGGER.debug("creating worktree %s for %s:%s:%s", path, remote, branch, remote_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    provider.fetch(remote, branch)
    provider.add_worktree(path, f"{remote}/{branch}")
    provider.sparse_checkout(path, remote_path)
    provider.checkout(path)
    return MaterializedWorktree(path=path, key=key, created=True)
