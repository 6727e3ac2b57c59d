"""Durable table of configured patches, keyed by host-local path."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import PatchNotFoundError, RegistryError
from .utils.paths import normalize_local_path

LOGGER = logging.getLogger(__name__)

__all__ = ["Patch", "PatchRegistry", "Registry"]


class RecordModel(BaseModel):
    """Base model for persisted records; unknown keys are dropped on load."""

    model_config = ConfigDict(extra="ignore", frozen=False)


class Patch(RecordModel):
    """One vendoring relationship between a remote subtree and a local directory."""

    remote: str
    remote_path: str
    local_path: str
    worktree: str
    branch: str

    @field_validator("local_path")
    @classmethod
    def _normalise_local_path(cls, value: str) -> str:
        return normalize_local_path(value)


class Registry(RecordModel):
    """Ordered collection of patches as stored on disk."""

    patches: List[Patch] = Field(default_factory=list)

    def find(self, local_path: str) -> Optional[Patch]:
        key = normalize_local_path(local_path)
        for patch in self.patches:
            if normalize_local_path(patch.local_path) == key:
                return patch
        return None

    def find_containing(self, path: str) -> Optional[Patch]:
        """Return the patch whose local path equals or is the longest prefix of ``path``."""
        key = normalize_local_path(path)
        if not key:
            return None
        selected: Optional[Patch] = None
        longest = 0
        for patch in self.patches:
            local = normalize_local_path(patch.local_path)
            if not local:
                continue
            if key == local or key.startswith(local + "/"):
                if len(local) > longest:
                    longest = len(local)
                    selected = patch
        return selected

    def upsert(self, patch: Patch) -> bool:
        """Replace the record sharing ``patch.local_path`` or append it.

        Returns ``True`` when an existing record was replaced.
        """
        key = normalize_local_path(patch.local_path)
        for index, existing in enumerate(self.patches):
            if normalize_local_path(existing.local_path) == key:
                self.patches[index] = patch
                return True
        self.patches.append(patch)
        return False

    def remove(self, local_path: str) -> Patch:
        key = normalize_local_path(local_path)
        for index, existing in enumerate(self.patches):
            if normalize_local_path(existing.local_path) == key:
                return self.patches.pop(index)
        raise PatchNotFoundError(f"Patch not found for path: {key or local_path}")


class PatchRegistry:
    """Whole-document read-modify-write access to the registry file.

    There is no locking: concurrent invocations against the same repository
    may lose updates.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Registry:
        if not self.path.exists():
            return Registry()
        payload = self.path.read_text(encoding="utf-8")
        if not payload.strip():
            return Registry()
        try:
            return Registry.model_validate_json(payload)
        except ValidationError as error:
            raise RegistryError(f"Malformed patch registry {self.path}: {error}") from error

    def save(self, registry: Registry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = registry.model_dump_json(indent=2)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(document, encoding="utf-8")
        tmp_path.replace(self.path)
        LOGGER.debug("saved %d patch(es) to %s", len(registry.patches), self.path)

    def upsert(self, patch: Patch) -> Registry:
        registry = self.load()
        replaced = registry.upsert(patch)
        LOGGER.debug("%s patch %s", "updated" if replaced else "added", patch.local_path)
        self.save(registry)
        return registry

    def remove(self, local_path: str) -> Patch:
        registry = self.load()
        removed = registry.remove(local_path)
        self.save(registry)
        return removed
