"""Parsing of ``remote[:branch]:path`` patch references."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .errors import InvalidSpecError

__all__ = ["PatchSpec", "parse_patch_spec"]


@dataclass(frozen=True, slots=True)
class PatchSpec:
    """Structured form of a patch reference typed by the user."""

    remote: str
    remote_path: str
    branch: Optional[str] = None
    branch_provided: bool = False

    def with_branch(self, branch: str) -> "PatchSpec":
        """Return a copy pinned to ``branch`` (used once a default is detected)."""
        return replace(self, branch=branch)

    def canonical(self) -> str:
        """Serialise back to ``remote:path`` or ``remote:branch:path``."""
        if self.branch:
            return f"{self.remote}:{self.branch}:{self.remote_path}"
        return f"{self.remote}:{self.remote_path}"

    def default_local_path(self) -> str:
        """Local directory used when the user does not name one."""
        return self.remote_path.rsplit("/", 1)[-1]


def parse_patch_spec(spec: str) -> PatchSpec:
    """Parse ``spec`` into a :class:`PatchSpec`.

    Two segments are ``remote:path``. Three are ``remote:branch:path`` where an
    empty branch (``remote::path``) means "detect it". With more segments the
    first two are remote and branch and the rest is a path containing colons.
    """
    parts = spec.split(":")
    if len(parts) < 2:
        raise InvalidSpecError(f"Invalid spec {spec!r}. Use remote[:branch]:remote_path")

    remote = parts[0].strip()
    if not remote:
        raise InvalidSpecError(f"Invalid spec {spec!r}: remote name is empty")

    branch: Optional[str] = None
    if len(parts) == 2:
        raw_path = parts[1]
    else:
        if parts[1]:
            branch = parts[1]
        raw_path = ":".join(parts[2:])

    remote_path = raw_path.strip("/")
    if not remote_path:
        raise InvalidSpecError(f"Invalid remote path in spec: {spec}")

    return PatchSpec(
        remote=remote,
        remote_path=remote_path,
        branch=branch,
        branch_provided=branch is not None,
    )
