"""Wiring of settings, backends and persisted state for one invocation."""

from __future__ import annotations

from dataclasses import dataclass

from .backends.base import Backends
from .backends.git import GitBranchResolver, GitDiffInspector, GitHostRepository, GitWorktreeProvider
from .crossfile import Crossfile
from .mirror import build_mirror
from .registry import PatchRegistry
from .settings import CrossSettings
from .tools.vcs import GitRepository

__all__ = ["CrossContext", "git_backends"]


def git_backends(settings: CrossSettings, repo: GitRepository) -> Backends:
    """Production backends shelling out to ``git`` and the configured mirror."""
    return Backends(
        host=GitHostRepository(repo),
        resolver=GitBranchResolver(repo),
        worktrees=GitWorktreeProvider(repo),
        mirror=build_mirror(settings),
        inspector=GitDiffInspector(repo),
    )


@dataclass(frozen=True, slots=True)
class CrossContext:
    settings: CrossSettings
    backends: Backends
    registry: PatchRegistry
    crossfile: Crossfile

    @classmethod
    def create(cls, settings: CrossSettings, backends: Backends) -> "CrossContext":
        return cls(
            settings=settings,
            backends=backends,
            registry=PatchRegistry(settings.metadata_path),
            crossfile=Crossfile(
                settings.crossfile_path,
                prefix=settings.command_prefix,
                header=settings.crossfile_header,
            ),
        )

    @classmethod
    def from_settings(cls, settings: CrossSettings) -> "CrossContext":
        repo = GitRepository(settings.repo_root)
        return cls.create(settings, git_backends(settings, repo))
