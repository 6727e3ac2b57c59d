"""Wrappers around the external tools git-cross drives."""

from .vcs import GitRepository, run_git

__all__ = ["GitRepository", "run_git"]
