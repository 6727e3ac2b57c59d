"""git-cross: vendor directories of other git repositories with sparse worktrees."""

__version__ = "0.1.0"

__all__ = ["__version__"]
