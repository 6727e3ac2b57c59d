from __future__ import annotations

import shutil

from cross.context import CrossContext
from cross.operations import add_patch
from cross.registry import Patch
from cross.status import DiffState, PatchStatus, collect_diffs, collect_status, upstream_ref


def _status(ctx: CrossContext) -> PatchStatus:
    patches = ctx.registry.load().patches
    return collect_status(ctx.settings, ctx.backends.inspector, patches)[0]


def test_fresh_patch_is_clean_and_synced(memory_context: CrossContext) -> None:
    add_patch(memory_context, "up:libs/foo", "vendor/foo")

    status = _status(memory_context)

    assert status.diff is DiffState.CLEAN
    assert status.upstream == "Synced"
    assert status.conflicts_label == "No"


def test_local_edit_is_reported_as_modified(memory_context: CrossContext) -> None:
    add_patch(memory_context, "up:libs/foo", "vendor/foo")
    (memory_context.settings.repo_root / "vendor" / "foo" / "lib.txt").write_text("edited\n", encoding="utf-8")

    assert _status(memory_context).diff is DiffState.MODIFIED

    diffs = collect_diffs(memory_context.settings, memory_context.backends.inspector, memory_context.registry.load().patches)
    assert "-foo v1" in diffs[0].text
    assert "+edited" in diffs[0].text


def test_ahead_and_behind_are_both_rendered(memory_context: CrossContext) -> None:
    result = add_patch(memory_context, "up:libs/foo", "vendor/foo")
    state = memory_context.backends.worktrees.worktrees[result.worktree.path]
    state.ahead = 1
    state.behind = 2
    state.conflicted = True

    status = _status(memory_context)

    assert (status.ahead, status.behind) == (1, 2)
    assert status.upstream == "2 behind, 1 ahead"
    assert status.conflicts_label == "YES"


def test_missing_worktree_is_reported_without_failing(memory_context: CrossContext) -> None:
    result = add_patch(memory_context, "up:libs/foo", "vendor/foo")
    add_patch(memory_context, "up:libs/bar", "vendor/bar")
    shutil.rmtree(result.worktree.path)

    statuses = collect_status(
        memory_context.settings,
        memory_context.backends.inspector,
        memory_context.registry.load().patches,
    )

    assert statuses[0].diff is DiffState.MISSING_WORKTREE
    assert statuses[0].upstream == "-"
    assert statuses[0].conflicts_label == "-"
    assert statuses[1].diff is DiffState.CLEAN

    diffs = collect_diffs(memory_context.settings, memory_context.backends.inspector, memory_context.registry.load().patches)
    assert diffs[0].error == "Worktree not found for vendor/foo"


def test_upstream_label_variants() -> None:
    patch = Patch(remote="up", remote_path="a", local_path="a", worktree="w", branch="develop")

    assert PatchStatus(patch, DiffState.CLEAN, behind=3).upstream == "3 behind"
    assert PatchStatus(patch, DiffState.CLEAN, ahead=4).upstream == "4 ahead"
    assert upstream_ref(patch) == "refs/remotes/up/develop"
