"""Production adapters that shell out to ``git`` via :class:`GitRepository`."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..tools.vcs import GitRepository
from .base import DiffInspector, HostRepository, RemoteBranchResolver, WorktreeProvider

LOGGER = logging.getLogger(__name__)

_HEADS_PREFIX = "refs/heads/"

__all__ = [
    "GitBranchResolver",
    "GitDiffInspector",
    "GitHostRepository",
    "GitWorktreeProvider",
    "parse_heads",
    "parse_symref",
]


def parse_symref(output: str) -> Optional[str]:
    """Extract the branch from ``git ls-remote --symref <remote> HEAD`` output."""
    for line in output.splitlines():
        if not line.startswith("ref: "):
            continue
        refspec, _, target = line[len("ref: "):].partition("\t")
        if target.strip() == "HEAD" and refspec.startswith(_HEADS_PREFIX):
            branch = refspec[len(_HEADS_PREFIX):].strip()
            if branch:
                return branch
    return None


def parse_heads(output: str) -> List[str]:
    """Extract branch names from ``git ls-remote --heads`` output."""
    branches: List[str] = []
    for line in output.splitlines():
        _sha, _, refname = line.partition("\t")
        refname = refname.strip()
        if refname.startswith(_HEADS_PREFIX):
            branch = refname[len(_HEADS_PREFIX):]
            if branch:
                branches.append(branch)
    return branches


class GitHostRepository(HostRepository):
    def __init__(self, repo: GitRepository) -> None:
        self.repo = repo
        self.root = repo.root

    def remotes(self) -> List[str]:
        return self.repo.remotes()

    def remote_urls(self) -> Dict[str, Tuple[str, str]]:
        return self.repo.remote_urls()

    def add_or_update_remote(self, name: str, url: str) -> bool:
        return self.repo.add_or_update_remote(name, url)

    def remove_remote(self, name: str) -> None:
        self.repo.remove_remote(name)

    def last_commit_subject(self, path: str) -> Optional[str]:
        return self.repo.last_commit_subject(path)


class GitBranchResolver(RemoteBranchResolver):
    """Resolves branches with ``git ls-remote`` (works with names and URLs)."""

    def __init__(self, repo: GitRepository) -> None:
        self.repo = repo

    def symbolic_head(self, remote: str) -> Optional[str]:
        return parse_symref(self.repo.ls_remote("--symref", remote, "HEAD"))

    def list_heads(self, remote: str) -> List[str]:
        return parse_heads(self.repo.ls_remote("--heads", remote))


class GitWorktreeProvider(WorktreeProvider):
    def __init__(self, repo: GitRepository) -> None:
        self.repo = repo

    def fetch(self, remote: str, branch: str) -> None:
        self.repo.fetch(remote, branch)

    def add_worktree(self, path: Path, ref: str) -> None:
        self.repo.git("worktree", "add", "--no-checkout", "--detach", path.as_posix(), ref)

    def sparse_checkout(self, path: Path, remote_path: str) -> None:
        self.repo.git("sparse-checkout", "init", "--cone", cwd=path)
        self.repo.git("sparse-checkout", "set", remote_path, cwd=path)

    def checkout(self, path: Path) -> None:
        self.repo.git("checkout", cwd=path)

    def remove_worktree(self, path: Path) -> None:
        self.repo.git("worktree", "remove", "--force", path.as_posix())

    def pull(self, path: Path, remote: str, branch: str) -> None:
        self.repo.git("pull", "--rebase", remote, branch, cwd=path)

    def status_short(self, path: Path) -> str:
        return self.repo.git("status", "--short", cwd=path).stdout

    def commit_all(self, path: Path, message: str) -> Optional[str]:
        return self.repo.commit_all(message, cwd=path)

    def push(self, path: Path, remote: str, refspec: str, *, force: bool = False) -> None:
        self.repo.push(remote, refspec, force=force, cwd=path)

    def prune_worktrees(self) -> None:
        self.repo.git("worktree", "prune", "--verbose")


class GitDiffInspector(DiffInspector):
    def __init__(self, repo: GitRepository) -> None:
        self.repo = repo

    def has_differences(self, left: Path, right: Path) -> bool:
        return self.repo.diff_no_index(left, right, quiet=True).returncode == 1

    def render_diff(self, left: Path, right: Path) -> str:
        return self.repo.diff_no_index(left, right).stdout

    def ahead_behind(self, worktree: Path, upstream_ref: str) -> Tuple[int, int]:
        ahead = self.repo.count_commits(f"{upstream_ref}..HEAD", cwd=worktree)
        behind = self.repo.count_commits(f"HEAD..{upstream_ref}", cwd=worktree)
        return ahead, behind

    def has_conflicts(self, worktree: Path) -> bool:
        result = self.repo.git("ls-files", "-u", cwd=worktree, check=False)
        if result.returncode != 0:
            LOGGER.warning("Unable to list unmerged entries in %s", worktree)
            return False
        return bool(result.stdout.strip())
