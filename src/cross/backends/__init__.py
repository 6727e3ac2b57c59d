"""Capability interfaces for git-cross and their implementations."""

from .base import Backends, DiffInspector, HostRepository, RemoteBranchResolver, TreeMirror, WorktreeProvider
from .git import GitBranchResolver, GitDiffInspector, GitHostRepository, GitWorktreeProvider
from .memory import MemoryRemote, memory_backends

__all__ = [
    "Backends",
    "DiffInspector",
    "GitBranchResolver",
    "GitDiffInspector",
    "GitHostRepository",
    "GitWorktreeProvider",
    "HostRepository",
    "MemoryRemote",
    "RemoteBranchResolver",
    "TreeMirror",
    "WorktreeProvider",
    "memory_backends",
]
