from __future__ import annotations

from typing import List

import pytest

from cross.context import CrossContext
from cross.errors import PatchNotFoundError
from cross.operations import add_patch
from cross.push import PushOptions, push_patch, push_refspec


def _edit(ctx: CrossContext) -> None:
    (ctx.settings.repo_root / "vendor" / "foo" / "lib.txt").write_text("foo local\n", encoding="utf-8")


def test_push_commits_and_pushes_to_tracked_branch(memory_context: CrossContext) -> None:
    result = add_patch(memory_context, "up:libs/foo", "vendor/foo")
    _edit(memory_context)
    provider = memory_context.backends.worktrees

    outcome = push_patch(
        memory_context.settings,
        memory_context.backends,
        memory_context.registry.load(),
        PushOptions(local_path="vendor/foo", yes=True),
        confirm=lambda status: pytest.fail("confirmation must be skipped"),
    )

    worktree_file = result.worktree.path / "libs" / "foo" / "lib.txt"
    assert worktree_file.read_text(encoding="utf-8") == "foo local\n"
    assert outcome.commit is not None
    assert outcome.message == "Update from git-cross"
    assert provider.pushes == [(result.worktree.path, "up", "HEAD:refs/heads/develop", False)]


def test_push_uses_last_host_commit_subject(memory_context: CrossContext) -> None:
    add_patch(memory_context, "up:libs/foo", "vendor/foo")
    _edit(memory_context)
    memory_context.backends.host.subjects["vendor/foo"] = "Tweak foo"

    outcome = push_patch(
        memory_context.settings,
        memory_context.backends,
        memory_context.registry.load(),
        PushOptions(yes=True),
        confirm=lambda status: True,
    )

    assert outcome.message == "Tweak foo"
    assert memory_context.backends.worktrees.worktrees[outcome.worktree].commits == ["Tweak foo"]


def test_push_branch_override_and_force(memory_context: CrossContext) -> None:
    add_patch(memory_context, "up:libs/foo", "vendor/foo")

    outcome = push_patch(
        memory_context.settings,
        memory_context.backends,
        memory_context.registry.load(),
        PushOptions(branch="feature/x", force=True, yes=True, message="Custom"),
        confirm=lambda status: True,
    )

    assert outcome.message == "Custom"
    assert outcome.refspec == "HEAD:refs/heads/feature/x"
    assert memory_context.backends.worktrees.pushes[-1][3] is True


def test_declined_confirmation_cancels_before_commit(memory_context: CrossContext) -> None:
    add_patch(memory_context, "up:libs/foo", "vendor/foo")
    _edit(memory_context)
    seen: List[str] = []

    def confirm(status: str) -> bool:
        seen.append(status)
        return False

    outcome = push_patch(
        memory_context.settings,
        memory_context.backends,
        memory_context.registry.load(),
        PushOptions(),
        confirm=confirm,
    )

    assert outcome.cancelled is True
    assert seen == [" M changed\n"]
    operations = [call[0] for call in memory_context.backends.worktrees.calls]
    assert "commit" not in operations
    assert "push" not in operations


def test_push_without_matching_patch(memory_context: CrossContext) -> None:
    with pytest.raises(PatchNotFoundError, match="Could not resolve patch context"):
        push_patch(
            memory_context.settings,
            memory_context.backends,
            memory_context.registry.load(),
            PushOptions(),
            confirm=lambda status: True,
        )


def test_push_refspec_keeps_full_refs() -> None:
    assert push_refspec("main") == "HEAD:refs/heads/main"
    assert push_refspec("refs/for/main") == "HEAD:refs/for/main"
