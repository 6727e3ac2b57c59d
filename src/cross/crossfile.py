"""The Crossfile: an append-only, human-editable log of issued commands.

Every managed line starts with the command prefix (``cross`` by default), so
the file doubles as a shell script once a ``cross`` function is defined.
Replaying it from an empty checkout reconstructs every remote and patch.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .errors import CrossError, InvalidSpecError
from .spec import parse_patch_spec
from .utils.paths import normalize_local_path

LOGGER = logging.getLogger(__name__)

__all__ = ["Crossfile", "ReplayStep", "ReplayError"]


class ReplayError(CrossError):
    """Raised when a Crossfile line fails during replay."""

    def __init__(self, line: str, returncode: int) -> None:
        self.line = line
        self.returncode = returncode
        super().__init__(f"Replay failed at {line!r} (exit {returncode})")


@dataclass(frozen=True, slots=True)
class ReplayStep:
    """One executable Crossfile line.

    ``argv`` holds the tool arguments when the line is a managed invocation;
    otherwise ``argv`` is ``None`` and ``line`` is run through a shell.
    """

    line: str
    argv: Optional[List[str]]


def _collapse(line: str) -> str:
    return " ".join(line.split())


class Crossfile:
    def __init__(self, path: Path, prefix: str = "cross", header: str = "") -> None:
        self.path = Path(path)
        self.prefix = prefix
        self.header = header

    # ------------------------------------------------------------------ io
    def exists(self) -> bool:
        return self.path.exists()

    def read_lines(self) -> List[str]:
        if not self.path.exists():
            return []
        return self.path.read_text(encoding="utf-8").splitlines()

    def init(self) -> bool:
        """Create the file with its header; return ``False`` if it already exists."""
        if self.path.exists():
            return False
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(f"{self.header}\n" if self.header else "", encoding="utf-8")
        return True

    # --------------------------------------------------------------- parse
    def _managed_args(self, line: str) -> Optional[List[str]]:
        """Arguments of a managed line (``<prefix> ...`` or ``just <prefix> ...``)."""
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return None
        try:
            words = shlex.split(stripped)
            prefix = shlex.split(self.prefix)
        except ValueError:
            return None
        if prefix and words[: len(prefix)] == prefix:
            return words[len(prefix):]
        if prefix[:1] != ["just"] and words[: len(prefix) + 1] == ["just", *prefix]:
            return words[len(prefix) + 1:]
        return None

    @staticmethod
    def _patch_target(args: List[str]) -> Optional[str]:
        """Local path a ``patch`` invocation writes to, defaulted like the command does."""
        if len(args) >= 3:
            return normalize_local_path(args[2])
        if len(args) == 2:
            try:
                return parse_patch_spec(args[1]).default_local_path()
            except InvalidSpecError:
                return None
        return None

    # -------------------------------------------------------------- append
    def strip_prefix(self, line: str) -> str:
        """Return ``line`` without the managed prefix."""
        collapsed = _collapse(line)
        for marker in (f"{self.prefix} ", f"just {self.prefix} "):
            if collapsed.startswith(marker):
                return collapsed[len(marker):].strip()
        return collapsed

    def contains(self, line: str) -> bool:
        """Whether ``line`` is already recorded, with or without a managed prefix."""
        bare = self.strip_prefix(line)
        wanted = self._managed_args(f"{self.prefix} {bare}")
        for existing in self.read_lines():
            if _collapse(existing) in (bare, f"{self.prefix} {bare}"):
                return True
            if wanted and self._managed_args(existing) == wanted:
                return True
        return False

    def append(self, line: str) -> bool:
        """Append ``line`` with the managed prefix unless already present.

        Returns ``True`` when the file changed.
        """
        bare = self.strip_prefix(line)
        if not bare:
            return False
        if self.contains(bare):
            LOGGER.debug("Crossfile already records %r", bare)
            return False

        content = self.path.read_text(encoding="utf-8") if self.path.exists() else ""
        if content and not content.endswith("\n"):
            content += "\n"
        content += f"{self.prefix} {bare}\n"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(content, encoding="utf-8")
        return True

    # --------------------------------------------------------------- scrub
    def _scrub(self, matches: Callable[[List[str]], bool]) -> int:
        if not self.path.exists():
            return 0
        kept: List[str] = []
        removed = 0
        for line in self.read_lines():
            args = self._managed_args(line)
            if args and matches(args):
                removed += 1
                continue
            kept.append(line)
        if removed:
            self.path.write_text("".join(f"{line}\n" for line in kept), encoding="utf-8")
        return removed

    def remove_patch_lines(self, local_path: str) -> int:
        """Drop managed ``patch`` lines targeting ``local_path``; return how many."""
        target = normalize_local_path(local_path)
        return self._scrub(lambda args: args[0] == "patch" and self._patch_target(args) == target)

    def remove_use_lines(self, remote: str) -> int:
        """Drop managed ``use`` lines registering ``remote``."""
        return self._scrub(lambda args: args[0] == "use" and len(args) >= 2 and args[1] == remote)

    # -------------------------------------------------------------- replay
    def steps(self) -> List[ReplayStep]:
        """Parse the file into executable steps, skipping blanks and comments."""
        steps: List[ReplayStep] = []
        for raw in self.read_lines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            steps.append(ReplayStep(line=line, argv=self._managed_args(line)))
        return steps

    def replay(
        self,
        run_tool: Callable[[Sequence[str]], int],
        run_shell: Callable[[str], int],
        *,
        on_step: Optional[Callable[[ReplayStep], None]] = None,
    ) -> int:
        """Execute every step in order, stopping at the first failure.

        Returns the number of steps executed.
        """
        executed = 0
        for step in self.steps():
            if on_step is not None:
                on_step(step)
            if step.argv is not None:
                if not step.argv:
                    continue
                returncode = run_tool(step.argv)
            else:
                returncode = run_shell(step.line)
            executed += 1
            if returncode != 0:
                raise ReplayError(step.line, returncode)
        return executed
