from __future__ import annotations

from typing import List, Optional

from cross.backends.base import RemoteBranchResolver
from cross.branches import detect_default_branch
from cross.errors import GitError


class StubResolver(RemoteBranchResolver):
    def __init__(self, head: Optional[str] = None, heads: Optional[List[str]] = None, fail: bool = False) -> None:
        self.head = head
        self.heads = heads or []
        self.fail = fail

    def symbolic_head(self, remote: str) -> Optional[str]:
        if self.fail:
            raise GitError(["git", "ls-remote"], "fatal: could not read from remote", 128)
        return self.head

    def list_heads(self, remote: str) -> List[str]:
        if self.fail:
            raise GitError(["git", "ls-remote"], "fatal: could not read from remote", 128)
        return self.heads


def test_symbolic_head_wins() -> None:
    resolution = detect_default_branch(StubResolver(head="develop", heads=["main"]), "origin")

    assert resolution.branch == "develop"
    assert resolution.source == "symref"
    assert resolution.warning is None


def test_main_then_master_preferred() -> None:
    assert detect_default_branch(StubResolver(heads=["feature", "master", "main"]), "origin").branch == "main"
    assert detect_default_branch(StubResolver(heads=["feature", "master"]), "origin").branch == "master"


def test_first_advertised_branch_used_otherwise() -> None:
    resolution = detect_default_branch(StubResolver(heads=["trunk", "feature"]), "origin")

    assert resolution.branch == "trunk"
    assert resolution.source == "first"


def test_unreachable_remote_falls_back_with_warning() -> None:
    resolution = detect_default_branch(StubResolver(fail=True), "https://example/gone.git", fallback="main")

    assert resolution.branch == "main"
    assert resolution.is_fallback
    assert "could not read from remote" in resolution.warning
    assert "Falling back to main" in resolution.warning


def test_remote_without_branches_falls_back() -> None:
    resolution = detect_default_branch(StubResolver(), "origin", fallback="trunk")

    assert resolution.branch == "trunk"
    assert resolution.is_fallback
