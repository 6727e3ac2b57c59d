"""Minimal git helpers
The helpers below provide just enough structure to manage remotes, fetch
branches, drive linked worktrees and inspect them from the host repository.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from ..errors import GitError, UserInputError

LOGGER = logging.getLogger(__name__)


def _decode(payload: bytes | None) -> str:
    return payload.decode("utf-8", errors="replace") if payload else ""


def run_git(
    args: Sequence[str],
    *,
    cwd: Path,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run ``git`` in ``cwd`` and return the decoded result.

    When ``check`` is true a non-zero exit raises :class:`GitError` carrying
    the combined stdout/stderr of the command.
    """

    command = ["git", *args]
    LOGGER.debug("running %s (cwd=%s)", " ".join(command), cwd)
    process = subprocess.run(
        command,
        cwd=cwd,
        capture_output=True,
        text=False,
        check=False,
    )
    stdout = _decode(process.stdout)
    stderr = _decode(process.stderr)
    result = subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)
    if check and result.returncode != 0:
        combined = "\n".join(part for part in (stdout.strip(), stderr.strip()) if part)
        raise GitError(command, combined or "unknown git error", result.returncode)
    return result


class GitRepository:
    """Lightweight wrapper around ``git`` commands."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        if not (self.root / ".git").exists():
            raise UserInputError(f"Not a git repository: {self.root}")

    @classmethod
    def discover(cls, start: Path | str | None = None) -> "GitRepository":
        """Locate the nearest git repository starting from ``start``."""

        path = Path(start or Path.cwd()).resolve()
        for candidate in (path, *path.parents):
            if (candidate / ".git").exists():
                return cls(candidate)
        raise UserInputError(f"Unable to locate a git repository from {path}")

    # ------------------------------------------------------------------ git IO
    def git(self, *args: str, check: bool = True, cwd: Path | str | None = None) -> subprocess.CompletedProcess[str]:
        """Execute ``git`` with ``args`` relative to the repository root.

        ``cwd`` runs the command inside another directory, typically a linked
        worktree that shares this repository's object store.
        """

        return run_git(list(args), cwd=Path(cwd) if cwd is not None else self.root, check=check)

    def output(self, *args: str, cwd: Path | str | None = None) -> str:
        """Return the stripped stdout of a successful git command."""

        return self.git(*args, cwd=cwd).stdout.strip()

    # -------------------------------------------------------------- remotes
    def remotes(self) -> List[str]:
        """Return the names of configured remotes."""

        return [line.strip() for line in self.output("remote").splitlines() if line.strip()]

    def has_remote(self, name: str) -> bool:
        return name in self.remotes()

    def remote_urls(self) -> Dict[str, Tuple[str, str]]:
        """Map remote name to its ``(fetch_url, push_url)`` pair."""

        urls: Dict[str, Tuple[str, str]] = {}
        for line in self.output("remote", "-v").splitlines():
            fields = line.split()
            if len(fields) < 3:
                continue
            name, url, kind = fields[0], fields[1], fields[2]
            fetch, push = urls.get(name, ("", ""))
            if "fetch" in kind:
                fetch = url
            elif "push" in kind:
                push = url
            urls[name] = (fetch, push)
        return urls

    def add_or_update_remote(self, name: str, url: str) -> bool:
        """Register ``name`` at ``url``; return ``True`` when it already existed."""

        if self.has_remote(name):
            self.git("remote", "set-url", name, url)
            return True
        self.git("remote", "add", name, url)
        return False

    def remove_remote(self, name: str) -> None:
        self.git("remote", "remove", name)

    def fetch(self, remote: str, branch: str) -> None:
        """Fetch ``branch`` from ``remote`` into the shared object store."""

        self.git("fetch", remote, branch)

    def ls_remote(self, *args: str) -> str:
        """Run ``git ls-remote`` and return its stdout."""

        return self.git("ls-remote", *args).stdout

    # --------------------------------------------------------------- history
    def last_commit_subject(self, path: str) -> str | None:
        """Return the subject of the newest commit touching ``path``."""

        result = self.git("log", "-1", "--pretty=%s", "--", path, check=False)
        if result.returncode != 0:
            return None
        subject = result.stdout.strip()
        return subject or None

    def count_commits(self, revision_range: str, *, cwd: Path | str | None = None) -> int:
        """Return ``rev-list --count`` for ``revision_range`` (0 on failure)."""

        result = self.git("rev-list", "--count", revision_range, cwd=cwd, check=False)
        if result.returncode != 0:
            return 0
        try:
            return int(result.stdout.strip() or "0")
        except ValueError:
            return 0

    # ----------------------------------------------------------- diff helpers
    def diff_no_index(self, left: Path, right: Path, *, quiet: bool = False) -> subprocess.CompletedProcess[str]:
        """Compare two directories outside of any index.

        Exit status 1 means the trees differ; anything above that is a failure.
        """

        args: List[str] = ["diff", "--no-index"]
        if quiet:
            args.append("--quiet")
        args.extend([left.as_posix(), right.as_posix()])
        result = self.git(*args, check=False)
        if result.returncode > 1:
            combined = "\n".join(part for part in (result.stdout.strip(), result.stderr.strip()) if part)
            raise GitError(["git", *args], combined or "unknown git error", result.returncode)
        return result

    # -------------------------------------------------------------- commits
    def commit_all(self, message: str, *, cwd: Path | str | None = None) -> str | None:
        """Add all changes to the index and create a commit.

        Returns the new commit SHA when a commit was created.  Returns ``None`` when
        there were no changes to commit.
        """

        self.git("add", "--all", cwd=cwd)

        commit = self.git("commit", "-m", message, cwd=cwd, check=False)
        if commit.returncode != 0:
            output = commit.stdout.strip() + "\n" + commit.stderr.strip()
            if "nothing to commit" in output.lower() or "nothing added to commit" in output.lower():
                return None
            raise GitError(["git", "commit", "-m", message], output.strip(), commit.returncode)

        return self.output("rev-parse", "HEAD", cwd=cwd)

    def push(self, remote: str, refspec: str, *, force: bool = False, cwd: Path | str | None = None) -> None:
        """Push ``refspec`` to ``remote`` applying requested flags."""

        args: List[str] = ["push"]
        if force:
            args.append("--force")
        args.extend([remote, refspec])
        self.git(*args, cwd=cwd)


__all__ = ["GitRepository", "run_git"]
