"""Helpers for turning user-typed paths into repository-relative keys."""

from __future__ import annotations

import os
from pathlib import Path


def normalize_local_path(value: str | None) -> str:
    """Normalise ``value`` into a ``/``-separated path without leading ``./``."""
    normalized = (value or "").replace("\\", "/").strip()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.strip("/")


def repo_relative(value: str, prefix: str = "") -> str:
    """Interpret ``value`` relative to ``prefix`` (the cwd inside the repository).

    ``..`` segments are folded so a path typed from a subdirectory maps back
    onto the repository root.
    """
    combined = normalize_local_path(value)
    if prefix:
        combined = f"{normalize_local_path(prefix)}/{combined}" if combined else normalize_local_path(prefix)
    parts: list[str] = []
    for segment in combined.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)
    return "/".join(parts)


def relative_to_cwd(target: Path, cwd: Path | None = None) -> str:
    """Render ``target`` relative to ``cwd`` (``..`` allowed), for display."""
    base = (cwd or Path.cwd()).resolve()
    try:
        return os.path.relpath(target.resolve(), base)
    except ValueError:
        return target.as_posix()


__all__ = ["normalize_local_path", "relative_to_cwd", "repo_relative"]
