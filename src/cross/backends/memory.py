"""In-memory stand-ins for the capability interfaces.

Remotes are plain dictionaries of ``branch -> {relative path: text}``.  The
fakes still materialise worktree directories on disk so that the mirror and
status code paths operate on real files, but no ``git`` binary is involved.
"""

from __future__ import annotations

import difflib
import filecmp
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from ..errors import GitError
from .base import (
    Backends,
    DiffInspector,
    HostRepository,
    RemoteBranchResolver,
    TreeMirror,
    WorktreeProvider,
)

__all__ = [
    "MemoryBranchResolver",
    "MemoryDiffInspector",
    "MemoryHostRepository",
    "MemoryRemote",
    "MemoryTreeMirror",
    "MemoryWorktreeProvider",
    "memory_backends",
]


@dataclass
class MemoryRemote:
    """A fake upstream repository."""

    url: str
    branches: Dict[str, Dict[str, str]] = field(default_factory=dict)
    head: Optional[str] = None
    reachable: bool = True


def _fail(operation: str, message: str) -> GitError:
    return GitError(["git", operation], message, 128)


@dataclass
class MemoryHostRepository(HostRepository):
    root: Path
    remote_map: Dict[str, MemoryRemote] = field(default_factory=dict)
    subjects: Dict[str, str] = field(default_factory=dict)
    push_urls: Dict[str, str] = field(default_factory=dict)

    def remotes(self) -> List[str]:
        return list(self.remote_map)

    def remote_urls(self) -> Dict[str, Tuple[str, str]]:
        return {
            name: (remote.url, self.push_urls.get(name, remote.url))
            for name, remote in self.remote_map.items()
        }

    def add_or_update_remote(self, name: str, url: str) -> bool:
        existing = self.remote_map.get(name)
        if existing is not None:
            existing.url = url
            return True
        self.remote_map[name] = MemoryRemote(url=url)
        return False

    def remove_remote(self, name: str) -> None:
        if name not in self.remote_map:
            raise _fail("remote", f"error: No such remote: '{name}'")
        del self.remote_map[name]

    def last_commit_subject(self, path: str) -> Optional[str]:
        return self.subjects.get(path)


class MemoryBranchResolver(RemoteBranchResolver):
    def __init__(self, host: MemoryHostRepository) -> None:
        self.host = host

    def _lookup(self, remote: str) -> MemoryRemote:
        candidate = self.host.remote_map.get(remote)
        if candidate is None:
            for item in self.host.remote_map.values():
                if item.url == remote:
                    candidate = item
                    break
        if candidate is None or not candidate.reachable:
            raise _fail("ls-remote", f"fatal: unable to access '{remote}'")
        return candidate

    def symbolic_head(self, remote: str) -> Optional[str]:
        return self._lookup(remote).head

    def list_heads(self, remote: str) -> List[str]:
        return list(self._lookup(remote).branches)


@dataclass
class MemoryWorktree:
    remote: str
    branch: str
    sparse_path: Optional[str] = None
    commits: List[str] = field(default_factory=list)
    ahead: int = 0
    behind: int = 0
    conflicted: bool = False


class MemoryWorktreeProvider(WorktreeProvider):
    """Records every call and can be told to fail on a named operation."""

    def __init__(self, host: MemoryHostRepository) -> None:
        self.host = host
        self.fetched: Set[Tuple[str, str]] = set()
        self.worktrees: Dict[Path, MemoryWorktree] = {}
        self.calls: List[Tuple[str, ...]] = []
        self.pushes: List[Tuple[Path, str, str, bool]] = []
        self.fail_on: Set[str] = set()
        self.dirty: Set[Path] = set()

    def _record(self, operation: str, *args: str) -> None:
        self.calls.append((operation, *args))
        if operation in self.fail_on:
            raise _fail(operation, f"fatal: simulated {operation} failure")

    def _remote_files(self, remote: str, branch: str) -> Dict[str, str]:
        upstream = self.host.remote_map.get(remote)
        if upstream is None or branch not in upstream.branches:
            raise _fail("fetch", f"fatal: couldn't find remote ref {branch}")
        return upstream.branches[branch]

    def fetch(self, remote: str, branch: str) -> None:
        self._record("fetch", remote, branch)
        self._remote_files(remote, branch)
        self.fetched.add((remote, branch))

    def add_worktree(self, path: Path, ref: str) -> None:
        self._record("worktree-add", path.as_posix(), ref)
        remote, _, branch = ref.partition("/")
        if (remote, branch) not in self.fetched:
            raise _fail("worktree", f"fatal: invalid reference: {ref}")
        path.mkdir(parents=True, exist_ok=True)
        (path / ".git").write_text(f"gitdir: memory/{path.name}\n", encoding="utf-8")
        self.worktrees[path] = MemoryWorktree(remote=remote, branch=branch)

    def sparse_checkout(self, path: Path, remote_path: str) -> None:
        self._record("sparse-checkout", path.as_posix(), remote_path)
        self.worktrees[path].sparse_path = remote_path

    def _materialise(self, path: Path) -> None:
        state = self.worktrees[path]
        prefix = (state.sparse_path or "").strip("/")
        for relative, text in self._remote_files(state.remote, state.branch).items():
            if prefix and relative != prefix and not relative.startswith(prefix + "/"):
                continue
            target = path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")

    def checkout(self, path: Path) -> None:
        self._record("checkout", path.as_posix())
        self._materialise(path)

    def remove_worktree(self, path: Path) -> None:
        self._record("worktree-remove", path.as_posix())
        shutil.rmtree(path, ignore_errors=True)
        self.worktrees.pop(path, None)

    def pull(self, path: Path, remote: str, branch: str) -> None:
        self._record("pull", path.as_posix(), remote, branch)
        state = self.worktrees.get(path)
        if state is None:
            raise _fail("pull", f"fatal: not a git repository: {path}")
        self._materialise(path)
        state.behind = 0

    def status_short(self, path: Path) -> str:
        self._record("status", path.as_posix())
        return " M changed\n" if path in self.dirty else ""

    def commit_all(self, path: Path, message: str) -> Optional[str]:
        self._record("commit", path.as_posix(), message)
        if path not in self.dirty:
            return None
        self.dirty.discard(path)
        state = self.worktrees[path]
        state.commits.append(message)
        state.ahead += 1
        return f"{len(state.commits):040x}"

    def push(self, path: Path, remote: str, refspec: str, *, force: bool = False) -> None:
        self._record("push", path.as_posix(), remote, refspec)
        self.pushes.append((path, remote, refspec, force))

    def prune_worktrees(self) -> None:
        self._record("worktree-prune")


class MemoryTreeMirror(TreeMirror):
    """Delegates to a real mirror while recording the direction of each copy."""

    def __init__(self, delegate: TreeMirror, provider: Optional[MemoryWorktreeProvider] = None) -> None:
        self.delegate = delegate
        self.provider = provider
        self.copies: List[Tuple[Path, Path]] = []

    def mirror(self, source: Path, destination: Path) -> None:
        self.copies.append((source, destination))
        self.delegate.mirror(source, destination)
        if self.provider is not None:
            for worktree in self.provider.worktrees:
                if destination == worktree or worktree in destination.parents:
                    self.provider.dirty.add(worktree)


def _tree_files(root: Path) -> Dict[str, Path]:
    files: Dict[str, Path] = {}
    if not root.exists():
        return files
    for item in sorted(root.rglob("*")):
        if ".git" in item.relative_to(root).parts:
            continue
        if item.is_file() or item.is_symlink():
            files[item.relative_to(root).as_posix()] = item
    return files


class MemoryDiffInspector(DiffInspector):
    def __init__(self, provider: MemoryWorktreeProvider) -> None:
        self.provider = provider

    def has_differences(self, left: Path, right: Path) -> bool:
        left_files = _tree_files(left)
        right_files = _tree_files(right)
        if set(left_files) != set(right_files):
            return True
        return any(
            not filecmp.cmp(left_files[name], right_files[name], shallow=False)
            for name in left_files
        )

    def render_diff(self, left: Path, right: Path) -> str:
        left_files = _tree_files(left)
        right_files = _tree_files(right)
        chunks: List[str] = []
        for name in sorted(set(left_files) | set(right_files)):
            before = left_files[name].read_text(encoding="utf-8").splitlines(keepends=True) if name in left_files else []
            after = right_files[name].read_text(encoding="utf-8").splitlines(keepends=True) if name in right_files else []
            chunks.extend(difflib.unified_diff(before, after, f"a/{name}", f"b/{name}"))
        return "".join(chunks)

    def ahead_behind(self, worktree: Path, upstream_ref: str) -> Tuple[int, int]:
        state = self.provider.worktrees.get(worktree)
        if state is None:
            return 0, 0
        return state.ahead, state.behind

    def has_conflicts(self, worktree: Path) -> bool:
        state = self.provider.worktrees.get(worktree)
        return bool(state and state.conflicted)


def memory_backends(root: Path, delegate_mirror: TreeMirror) -> Backends:
    """Wire a complete set of fakes rooted at ``root``."""
    host = MemoryHostRepository(root=root)
    provider = MemoryWorktreeProvider(host)
    return Backends(
        host=host,
        resolver=MemoryBranchResolver(host),
        worktrees=provider,
        mirror=MemoryTreeMirror(delegate_mirror, provider),
        inspector=MemoryDiffInspector(provider),
    )
