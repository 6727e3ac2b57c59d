"""Delete-aware directory mirroring used in both sync directions."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, Sequence

from .backends.base import TreeMirror
from .errors import MirrorError, SettingsError
from .settings import CrossSettings

LOGGER = logging.getLogger(__name__)

__all__ = ["PythonTreeMirror", "RsyncTreeMirror", "build_mirror"]


class RsyncTreeMirror(TreeMirror):
    """Mirror with ``rsync --archive --delete``."""

    def __init__(self, exclude: Sequence[str] = (".git",), executable: str = "rsync") -> None:
        self.exclude = tuple(exclude)
        self.executable = executable

    def command(self, source: Path, destination: Path) -> list[str]:
        args = [self.executable, "--archive", "--delete"]
        for pattern in self.exclude:
            args.extend(["--exclude", pattern])
        # trailing separators copy the directory contents, not the directory
        args.extend([f"{source.as_posix().rstrip('/')}/", f"{destination.as_posix().rstrip('/')}/"])
        return args

    def mirror(self, source: Path, destination: Path) -> None:
        if not source.is_dir():
            raise MirrorError(["rsync", source.as_posix()], f"source directory does not exist: {source}")
        destination.mkdir(parents=True, exist_ok=True)
        command = self.command(source, destination)
        LOGGER.debug("running %s", " ".join(command))
        process = subprocess.run(command, capture_output=True, text=True, check=False)
        if process.returncode != 0:
            combined = "\n".join(part for part in (process.stdout.strip(), process.stderr.strip()) if part)
            raise MirrorError(command, combined or "unknown rsync error", process.returncode)


class PythonTreeMirror(TreeMirror):
    """Mirror implemented with :mod:`shutil`, for hosts without ``rsync``.

    Symlinks are copied as links, permissions and timestamps are preserved
    with :func:`shutil.copy2`, and excluded names are neither copied nor
    deleted at the destination.
    """

    def __init__(self, exclude: Sequence[str] = (".git",)) -> None:
        self.exclude = frozenset(exclude)

    def _entries(self, directory: Path) -> Iterable[os.DirEntry[str]]:
        with os.scandir(directory) as iterator:
            return [entry for entry in iterator if entry.name not in self.exclude]

    @staticmethod
    def _remove(path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()

    def _sync_dir(self, source: Path, destination: Path) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        wanted = {entry.name: entry for entry in self._entries(source)}

        for existing in self._entries(destination):
            incoming = wanted.get(existing.name)
            target = destination / existing.name
            if incoming is None:
                LOGGER.debug("deleting %s", target)
                self._remove(target)
                continue
            incoming_is_dir = incoming.is_dir(follow_symlinks=False)
            existing_is_dir = existing.is_dir(follow_symlinks=False)
            if incoming_is_dir != existing_is_dir or existing.is_symlink() != incoming.is_symlink():
                self._remove(target)

        for name, entry in wanted.items():
            src = source / name
            dst = destination / name
            if entry.is_symlink():
                if dst.is_symlink() or dst.exists():
                    dst.unlink()
                os.symlink(os.readlink(src), dst)
            elif entry.is_dir(follow_symlinks=False):
                self._sync_dir(src, dst)
                shutil.copystat(src, dst)
            else:
                shutil.copy2(src, dst, follow_symlinks=False)

    def mirror(self, source: Path, destination: Path) -> None:
        if not source.is_dir():
            raise MirrorError(["mirror", source.as_posix()], f"source directory does not exist: {source}")
        try:
            self._sync_dir(source, destination)
            shutil.copystat(source, destination)
        except OSError as error:
            raise MirrorError(
                ["mirror", source.as_posix(), destination.as_posix()],
                str(error),
            ) from error


def build_mirror(settings: CrossSettings) -> TreeMirror:
    """Pick the mirror implementation requested by ``settings``."""
    strategy = settings.mirror_strategy
    if strategy == "auto":
        strategy = "rsync" if shutil.which("rsync") else "python"
    if strategy == "rsync":
        if not shutil.which("rsync"):
            raise SettingsError("mirror.strategy is 'rsync' but rsync is not on PATH")
        return RsyncTreeMirror(settings.mirror_exclude)
    LOGGER.debug("using the built-in mirror")
    return PythonTreeMirror(settings.mirror_exclude)
