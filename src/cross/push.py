"""Push local edits of a vendored directory back to its upstream."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .backends.base import Backends
from .errors import PatchNotFoundError
from .registry import Patch, Registry
from .settings import CrossSettings

LOGGER = logging.getLogger(__name__)

__all__ = ["PushOptions", "PushOutcome", "push_patch", "push_refspec", "select_push_patch"]


@dataclass(frozen=True, slots=True)
class PushOptions:
    local_path: str = ""
    branch: Optional[str] = None
    force: bool = False
    yes: bool = False
    message: Optional[str] = None


@dataclass(slots=True)
class PushOutcome:
    patch: Patch
    worktree: Path
    status: str = ""
    cancelled: bool = False
    commit: Optional[str] = None
    message: str = ""
    refspec: str = ""


def push_refspec(branch: str) -> str:
    """Full ref update for ``branch`` (``refs/...`` values are used verbatim)."""
    target = branch if branch.startswith("refs/") else f"refs/heads/{branch}"
    return f"HEAD:{target}"


def select_push_patch(registry: Registry, local_path: str) -> Patch:
    """Pick the patch named by ``local_path`` or the first one when it is empty."""
    if local_path:
        patch = registry.find(local_path)
    else:
        patch = registry.patches[0] if registry.patches else None
    if patch is None:
        raise PatchNotFoundError(f"Could not resolve patch context for '{local_path}'")
    return patch


def push_patch(
    settings: CrossSettings,
    backends: Backends,
    registry: Registry,
    options: PushOptions,
    *,
    confirm: Callable[[str], bool],
    report: Callable[[str], None] = lambda message: None,
) -> PushOutcome:
    """Mirror the local copy into the worktree, commit there and push.

    ``confirm`` receives the worktree status and decides whether to continue;
    declining leaves the mirrored worktree in place and returns a cancelled
    outcome.  Only the final push can fail after the worktree has changed.
    """
    patch = select_push_patch(registry, options.local_path)
    worktree = settings.resolve(patch.worktree)
    outcome = PushOutcome(patch=patch, worktree=worktree)

    report(f"Syncing changes from {patch.local_path} back to {patch.worktree}...")
    backends.mirror.mirror(settings.resolve(patch.local_path), worktree / patch.remote_path)

    outcome.status = backends.worktrees.status_short(worktree)
    if not options.yes and not confirm(outcome.status):
        outcome.cancelled = True
        return outcome

    outcome.message = (
        options.message
        or backends.host.last_commit_subject(patch.local_path)
        or settings.default_commit_message
    )
    report("Committing and pushing...")
    outcome.commit = backends.worktrees.commit_all(worktree, outcome.message)
    if outcome.commit is None:
        LOGGER.debug("nothing to commit in %s", worktree)

    outcome.refspec = push_refspec(options.branch or patch.branch)
    backends.worktrees.push(worktree, patch.remote, outcome.refspec, force=options.force)
    return outcome
