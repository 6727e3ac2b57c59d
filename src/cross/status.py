"""Read-only inspection of registered patches."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from .backends.base import DiffInspector
from .errors import ExternalToolError
from .registry import Patch
from .settings import CrossSettings

LOGGER = logging.getLogger(__name__)

__all__ = ["DiffState", "PatchDiff", "PatchStatus", "collect_diffs", "collect_status", "inspect_patch", "upstream_ref"]


class DiffState(str, Enum):
    """Working-copy drift between the worktree subtree and the local copy."""

    CLEAN = "Clean"
    MODIFIED = "Modified"
    MISSING_WORKTREE = "Missing Worktree"
    ERROR = "Error"


@dataclass(slots=True)
class PatchStatus:
    """Everything ``status`` knows about one patch.

    ``ahead`` and ``behind`` are kept separately; :attr:`upstream` renders them.
    """

    patch: Patch
    diff: DiffState
    ahead: int = 0
    behind: int = 0
    conflicts: bool = False
    error: Optional[str] = None

    @property
    def upstream(self) -> str:
        if self.diff in (DiffState.MISSING_WORKTREE, DiffState.ERROR):
            return "-"
        if self.ahead and self.behind:
            return f"{self.behind} behind, {self.ahead} ahead"
        if self.behind:
            return f"{self.behind} behind"
        if self.ahead:
            return f"{self.ahead} ahead"
        return "Synced"

    @property
    def conflicts_label(self) -> str:
        if self.diff in (DiffState.MISSING_WORKTREE, DiffState.ERROR):
            return "-"
        return "YES" if self.conflicts else "No"


def upstream_ref(patch: Patch) -> str:
    return f"refs/remotes/{patch.remote}/{patch.branch}"


def inspect_patch(settings: CrossSettings, inspector: DiffInspector, patch: Patch) -> PatchStatus:
    """Compute drift, ahead/behind counts and conflict state for ``patch``."""
    worktree = settings.resolve(patch.worktree)
    if not worktree.exists():
        return PatchStatus(patch=patch, diff=DiffState.MISSING_WORKTREE)

    try:
        modified = inspector.has_differences(worktree / patch.remote_path, settings.resolve(patch.local_path))
        ahead, behind = inspector.ahead_behind(worktree, upstream_ref(patch))
        conflicts = inspector.has_conflicts(worktree)
    except ExternalToolError as error:
        LOGGER.debug("status failed for %s: %s", patch.local_path, error)
        return PatchStatus(patch=patch, diff=DiffState.ERROR, error=str(error))

    return PatchStatus(
        patch=patch,
        diff=DiffState.MODIFIED if modified else DiffState.CLEAN,
        ahead=ahead,
        behind=behind,
        conflicts=conflicts,
    )


def collect_status(
    settings: CrossSettings,
    inspector: DiffInspector,
    patches: Iterable[Patch],
) -> List[PatchStatus]:
    """Inspect every patch; one broken patch never hides the others."""
    return [inspect_patch(settings, inspector, patch) for patch in patches]


@dataclass(slots=True)
class PatchDiff:
    patch: Patch
    text: str = ""
    error: Optional[str] = None


def collect_diffs(
    settings: CrossSettings,
    inspector: DiffInspector,
    patches: Iterable[Patch],
) -> List[PatchDiff]:
    """Render the textual diff between each worktree subtree and local copy."""
    results: List[PatchDiff] = []
    for patch in patches:
        worktree = settings.resolve(patch.worktree)
        if not worktree.exists():
            results.append(PatchDiff(patch=patch, error=f"Worktree not found for {patch.local_path}"))
            continue
        try:
            text = inspector.render_diff(worktree / patch.remote_path, settings.resolve(patch.local_path))
        except ExternalToolError as error:
            results.append(PatchDiff(patch=patch, error=str(error)))
            continue
        results.append(PatchDiff(patch=patch, text=text))
    return results
