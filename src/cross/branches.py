"""Best-effort detection of a remote's default branch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .backends.base import RemoteBranchResolver
from .errors import ExternalToolError

LOGGER = logging.getLogger(__name__)

PREFERRED_BRANCHES = ("main", "master")

__all__ = ["BranchResolution", "PREFERRED_BRANCHES", "detect_default_branch"]


@dataclass(frozen=True, slots=True)
class BranchResolution:
    """Detected branch plus the warning raised when a fallback was used."""

    branch: str
    source: str
    warning: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


def detect_default_branch(
    resolver: RemoteBranchResolver,
    remote: str,
    *,
    fallback: str = "main",
) -> BranchResolution:
    """Resolve the default branch of ``remote`` (a remote name or a URL).

    The symbolic ``HEAD`` wins; otherwise ``main`` then ``master`` if
    advertised; otherwise the first advertised branch.  When the remote cannot
    be queried or has no branches, ``fallback`` is returned with a warning
    instead of an error.
    """
    failures: list[str] = []

    try:
        head = resolver.symbolic_head(remote)
    except ExternalToolError as error:
        failures.append(str(error))
        head = None
    if head:
        return BranchResolution(branch=head, source="symref")

    try:
        heads = resolver.list_heads(remote)
    except ExternalToolError as error:
        failures.append(str(error))
        heads = []

    for candidate in PREFERRED_BRANCHES:
        if candidate in heads:
            return BranchResolution(branch=candidate, source="preferred")
    if heads:
        return BranchResolution(branch=heads[0], source="first")

    reason = failures[-1] if failures else "remote advertises no branches"
    warning = f"Failed to detect default branch for {remote}: {reason}. Falling back to {fallback}."
    LOGGER.debug("%s", warning)
    return BranchResolution(branch=fallback, source="fallback", warning=warning)
