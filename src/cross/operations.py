"""Top-level git-cross operations composed from the core components.

Each function performs one command for one invocation.  Registry and
Crossfile writes happen only after the operations they record succeeded.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .branches import BranchResolution, detect_default_branch
from .context import CrossContext
from .errors import ExternalToolError, PatchNotFoundError, RemoteNotFoundError, UserInputError
from .registry import Patch
from .spec import PatchSpec, parse_patch_spec
from .utils.paths import normalize_local_path
from .worktree import MaterializedWorktree, materialize_worktree

LOGGER = logging.getLogger(__name__)

__all__ = [
    "PatchResult",
    "PruneResult",
    "Reporter",
    "SyncOutcome",
    "add_patch",
    "prune",
    "remote_rows",
    "remove_patch",
    "sync_patches",
    "use_remote",
]


def _silent(message: str) -> None:
    return None


@dataclass(frozen=True, slots=True)
class Reporter:
    """Callbacks used to narrate progress; defaults discard everything."""

    info: Callable[[str], None] = _silent
    success: Callable[[str], None] = _silent
    warning: Callable[[str], None] = _silent
    error: Callable[[str], None] = _silent


# ---------------------------------------------------------------------- use
def use_remote(ctx: CrossContext, name: str, url: str, report: Reporter = Reporter()) -> BranchResolution:
    """Register or update remote ``name`` and fetch its default branch."""
    report.info(f"Adding remote {name} ({url})")
    existed = ctx.backends.host.add_or_update_remote(name, url)
    LOGGER.debug("remote %s %s", name, "updated" if existed else "added")

    report.info("Autodetecting default branch...")
    resolution = detect_default_branch(ctx.backends.resolver, url, fallback=ctx.settings.fallback_branch)
    if resolution.warning:
        report.warning(resolution.warning)
    report.info(f"Detected default branch: {resolution.branch}")

    ctx.backends.worktrees.fetch(name, resolution.branch)
    ctx.crossfile.append(f"use {name} {url}")
    return resolution


# -------------------------------------------------------------------- patch
@dataclass(slots=True)
class PatchResult:
    patch: Patch
    spec: PatchSpec
    worktree: MaterializedWorktree
    resolution: Optional[BranchResolution] = None


def add_patch(
    ctx: CrossContext,
    spec_text: str,
    local_path: Optional[str] = None,
    report: Reporter = Reporter(),
) -> PatchResult:
    """Vendor ``remote[:branch]:path`` into ``local_path`` (repository-relative)."""
    spec = parse_patch_spec(spec_text)
    if spec.remote not in ctx.backends.host.remotes():
        raise RemoteNotFoundError(f"Remote {spec.remote} not found. Run 'use' first.")

    resolution: Optional[BranchResolution] = None
    if not spec.branch_provided:
        report.info("Autodetecting default branch...")
        resolution = detect_default_branch(
            ctx.backends.resolver,
            spec.remote,
            fallback=ctx.settings.fallback_branch,
        )
        if resolution.warning:
            report.warning(resolution.warning)
        report.info(f"Using branch: {resolution.branch}")
        spec = spec.with_branch(resolution.branch)
    branch = spec.branch or ctx.settings.fallback_branch

    target = normalize_local_path(local_path) if local_path else spec.default_local_path()
    if not target:
        raise UserInputError(f"Invalid local path: {local_path!r}")

    report.info(f"Patching {spec.canonical()} to {target}")
    worktree = materialize_worktree(ctx.settings, ctx.backends.worktrees, spec.remote, spec.remote_path, branch)
    if worktree.created:
        report.info(f"Set up worktree at {ctx.settings.relative(worktree.path)}")

    report.info(f"Syncing files to {target}...")
    destination = ctx.settings.resolve(target)
    destination.mkdir(parents=True, exist_ok=True)
    ctx.backends.mirror.mirror(worktree.path / spec.remote_path, destination)

    patch = Patch(
        remote=spec.remote,
        remote_path=spec.remote_path,
        local_path=target,
        worktree=ctx.settings.relative(worktree.path),
        branch=branch,
    )
    previous = ctx.registry.load().find(target)
    registry = ctx.registry.upsert(patch)
    if previous is not None and previous.worktree != patch.worktree:
        if not any(other.worktree == previous.worktree for other in registry.patches):
            _remove_worktree(ctx, previous.worktree, report)
        ctx.crossfile.remove_patch_lines(target)
    ctx.crossfile.append(f"patch {spec.canonical()} {target}")
    return PatchResult(patch=patch, spec=spec, worktree=worktree, resolution=resolution)


# --------------------------------------------------------------------- sync
@dataclass(slots=True)
class SyncOutcome:
    patch: Patch
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def sync_patches(ctx: CrossContext, local_path: str = "", report: Reporter = Reporter()) -> List[SyncOutcome]:
    """Pull upstream into the worktree of each selected patch, then mirror it out.

    A failing patch is reported and skipped; the remaining patches still sync.
    """
    registry = ctx.registry.load()
    key = normalize_local_path(local_path)
    selected = [patch for patch in registry.patches if not key or normalize_local_path(patch.local_path) == key]

    outcomes: List[SyncOutcome] = []
    for patch in selected:
        report.info(f"Syncing {patch.local_path}...")
        worktree = ctx.settings.resolve(patch.worktree)
        if not worktree.exists():
            message = f"Worktree not found for {patch.local_path}. Run patch again."
            report.error(message)
            outcomes.append(SyncOutcome(patch=patch, error=message))
            continue

        try:
            ctx.backends.worktrees.pull(worktree, patch.remote, patch.branch)
        except ExternalToolError as error:
            message = f"Failed to pull for {patch.local_path}: {error}"
            report.error(message)
            report.error(f"Resolve conflicts manually in worktree: {patch.worktree}")
            outcomes.append(SyncOutcome(patch=patch, error=message))
            continue

        try:
            ctx.backends.mirror.mirror(worktree / patch.remote_path, ctx.settings.resolve(patch.local_path))
        except ExternalToolError as error:
            message = f"Failed to sync files for {patch.local_path}: {error}"
            report.error(message)
            outcomes.append(SyncOutcome(patch=patch, error=message))
            continue

        report.success(f"Sync completed for {patch.local_path}")
        outcomes.append(SyncOutcome(patch=patch))
    return outcomes


# ------------------------------------------------------------------- remove
def _remove_worktree(ctx: CrossContext, relative: str, report: Reporter) -> None:
    worktree = ctx.settings.resolve(relative)
    if not worktree.exists():
        return
    report.info(f"Removing git worktree at {relative}...")
    try:
        ctx.backends.worktrees.remove_worktree(worktree)
    except ExternalToolError as error:
        report.error(f"Failed to remove worktree: {error}")


def _discard_patch(ctx: CrossContext, patch: Patch, report: Reporter) -> None:
    _remove_worktree(ctx, patch.worktree, report)

    removed_lines = ctx.crossfile.remove_patch_lines(normalize_local_path(patch.local_path))
    LOGGER.debug("removed %d Crossfile line(s) for %s", removed_lines, patch.local_path)

    local = ctx.settings.resolve(patch.local_path)
    if local.exists():
        report.info(f"Deleting local directory {patch.local_path}...")
        try:
            shutil.rmtree(local)
        except OSError as error:
            report.error(f"Failed to remove local directory: {error}")


def remove_patch(ctx: CrossContext, local_path: str, report: Reporter = Reporter()) -> Patch:
    """Deregister the patch at ``local_path`` and delete its worktree and files."""
    registry = ctx.registry.load()
    patch = registry.find(local_path)
    if patch is None:
        raise PatchNotFoundError(f"Patch not found for path: {normalize_local_path(local_path)}")

    report.info(f"Removing patch at {patch.local_path}...")
    registry.remove(patch.local_path)
    ctx.registry.save(registry)
    _discard_patch(ctx, patch, report)
    return patch


# -------------------------------------------------------------------- prune
@dataclass(slots=True)
class PruneResult:
    removed_patches: List[Patch] = field(default_factory=list)
    removed_remotes: List[str] = field(default_factory=list)
    unused_remotes: List[str] = field(default_factory=list)


PROTECTED_REMOTES = ("origin",)


def prune(
    ctx: CrossContext,
    remote: Optional[str] = None,
    *,
    confirm: Callable[[List[str]], bool] = lambda remotes: False,
    report: Reporter = Reporter(),
) -> PruneResult:
    """Remove every patch of ``remote`` and the remote itself.

    Without ``remote``, remotes no patch uses are removed once ``confirm``
    accepts them, and stale worktree administration is pruned.
    """
    result = PruneResult()
    registry = ctx.registry.load()

    if remote:
        report.info(f"Pruning all patches for remote: {remote}...")
        doomed = [patch for patch in registry.patches if patch.remote == remote]
        if not doomed:
            report.info(f"No patches found for remote: {remote}")
        for patch in doomed:
            report.info(f"Removing patch: {patch.local_path}")
            registry.remove(patch.local_path)
            ctx.registry.save(registry)
            _discard_patch(ctx, patch, report)
            result.removed_patches.append(patch)

        if remote in ctx.backends.host.remotes():
            report.info(f"Removing git remote: {remote}")
            ctx.backends.host.remove_remote(remote)
            ctx.crossfile.remove_use_lines(remote)
            result.removed_remotes.append(remote)
        return result

    used = {patch.remote for patch in registry.patches}
    result.unused_remotes = [
        name for name in ctx.backends.host.remotes() if name not in used and name not in PROTECTED_REMOTES
    ]
    if not result.unused_remotes:
        report.info("No unused remotes found.")
    elif confirm(result.unused_remotes):
        for name in result.unused_remotes:
            report.info(f"Removing remote: {name}")
            ctx.backends.host.remove_remote(name)
            ctx.crossfile.remove_use_lines(name)
            result.removed_remotes.append(name)
    else:
        report.info("Pruning cancelled.")

    report.info("Pruning stale worktrees...")
    ctx.backends.worktrees.prune_worktrees()
    return result


# --------------------------------------------------------------------- list
def remote_rows(ctx: CrossContext) -> List[Tuple[str, str]]:
    """``(name, url)`` rows for remotes referenced by at least one patch."""
    used = {patch.remote for patch in ctx.registry.load().patches}
    rows: List[Tuple[str, str]] = []
    for name, (fetch, push) in sorted(ctx.backends.host.remote_urls().items()):
        if name not in used:
            continue
        if not push or fetch == push:
            rows.append((name, fetch))
        else:
            rows.append((name, f"{fetch} (fetch)"))
            rows.append((name, f"{push} (push)"))
    return rows
