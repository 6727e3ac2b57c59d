from __future__ import annotations

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from cross.backends.base import Backends  # noqa: E402
from cross.backends.memory import MemoryRemote, memory_backends  # noqa: E402
from cross.context import CrossContext  # noqa: E402
from cross.mirror import PythonTreeMirror  # noqa: E402
from cross.settings import CrossSettings  # noqa: E402

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def _git(cwd: Path, *cmd: str) -> str:
    result = subprocess.run(
        ["git", *cmd],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


@dataclass(slots=True)
class CrossWorkspace:
    """A host repository plus a bare upstream whose default branch is ``develop``."""

    host: Path
    upstream: Path
    upstream_work: Path

    def run_cli(self, *args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
        """Invoke ``python -m cross`` with the provided arguments."""

        env = os.environ.copy()
        pythonpath = str(SRC)
        if env.get("PYTHONPATH"):
            pythonpath = os.pathsep.join([pythonpath, env["PYTHONPATH"]])
        env["PYTHONPATH"] = pythonpath

        command = [sys.executable, "-m", "cross", *args]
        return subprocess.run(  # noqa: S603 - command constructed from known values
            command,
            cwd=cwd or self.host,
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )

    def git(self, *cmd: str) -> str:
        return _git(self.host, *cmd)

    def upstream_git(self, *cmd: str) -> str:
        return _git(self.upstream, *cmd)

    def commit_upstream(self, files: Dict[str, str], message: str) -> None:
        """Commit ``files`` in the upstream working clone and push them to ``develop``."""

        for relative, text in files.items():
            target = self.upstream_work / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        _git(self.upstream_work, "add", "--all")
        _git(self.upstream_work, "commit", "-m", message)
        _git(self.upstream_work, "push", "origin", "HEAD:refs/heads/develop")


@pytest.fixture()
def cross_workspace(tmp_path: Path) -> CrossWorkspace:
    """Create an upstream with ``libs/foo`` and ``libs/bar`` on ``develop`` and an empty host."""

    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    upstream = tmp_path / "upstream.git"
    upstream.mkdir()
    _git(upstream, "init", "--bare")
    _git(upstream, "symbolic-ref", "HEAD", "refs/heads/develop")

    work = tmp_path / "upstream-work"
    work.mkdir()
    _git(work, "init")
    _git(work, "config", "user.email", "upstream@example.com")
    _git(work, "config", "user.name", "Upstream Author")
    _git(work, "checkout", "-b", "develop")
    (work / "libs" / "foo").mkdir(parents=True)
    (work / "libs" / "foo" / "lib.txt").write_text("foo v1\n", encoding="utf-8")
    (work / "libs" / "bar").mkdir(parents=True)
    (work / "libs" / "bar" / "bar.txt").write_text("bar v1\n", encoding="utf-8")
    (work / "README.md").write_text("upstream\n", encoding="utf-8")
    _git(work, "add", "--all")
    _git(work, "commit", "-m", "Initial upstream content")
    _git(work, "remote", "add", "origin", str(upstream))
    _git(work, "push", "origin", "develop")

    host = tmp_path / "host"
    host.mkdir()
    _git(host, "init")
    _git(host, "config", "user.email", "host@example.com")
    _git(host, "config", "user.name", "Host Author")
    (host / "README.md").write_text("host\n", encoding="utf-8")
    _git(host, "add", "--all")
    _git(host, "commit", "-m", "Initial host commit")

    return CrossWorkspace(host=host.resolve(), upstream=upstream.resolve(), upstream_work=work.resolve())


UPSTREAM_FILES = {
    "libs/foo/lib.txt": "foo v1\n",
    "libs/foo/nested/deep.txt": "deep\n",
    "libs/bar/bar.txt": "bar v1\n",
    "README.md": "upstream\n",
}


@pytest.fixture()
def memory_context(tmp_path: Path) -> CrossContext:
    """A context wired to in-memory backends with remote ``up`` defaulting to ``develop``."""

    root = tmp_path / "host"
    root.mkdir()
    settings = CrossSettings.from_mapping(root, environ={"SHELL": "/bin/sh"})
    backends: Backends = memory_backends(settings.repo_root, PythonTreeMirror())
    backends.host.remote_map["up"] = MemoryRemote(
        url="mem://up",
        branches={"develop": dict(UPSTREAM_FILES)},
        head="develop",
    )
    return CrossContext.create(settings, backends)
