"""Per-invocation settings for git-cross commands."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import SettingsError

DEFAULT_SETTINGS_NAME = ".cross.yaml"

DEFAULT_SETTINGS_TEMPLATE: Dict[str, Any] = {
    "paths": {
        "metadata": ".git/cross/metadata.json",
        "worktrees": ".git/cross/worktrees",
        "crossfile": "Crossfile",
    },
    "crossfile": {
        "prefix": "cross",
        "header": "# git-cross configuration",
    },
    "branches": {
        "fallback": "main",
    },
    "push": {
        "default_message": "Update from git-cross",
    },
    "mirror": {
        "strategy": "auto",
        "exclude": [".git"],
    },
    "shell": "",
}

MIRROR_STRATEGIES = {"auto", "rsync", "python"}


def _deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``overrides`` into ``base`` keeping only keys the template knows."""
    for key, value in overrides.items():
        if key not in base:
            continue
        current = base[key]
        if isinstance(current, dict) and isinstance(value, Mapping):
            _deep_merge(current, value)
        else:
            base[key] = value
    return base


def load_settings_file(path: Path, *, required: bool) -> Dict[str, Any]:
    """Load a YAML settings mapping from ``path``.

    A missing file yields an empty mapping unless ``required`` is set.
    """
    if not path.exists():
        if required:
            raise SettingsError(f"Settings file not found: {path}")
        return {}

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise SettingsError(f"Failed to parse settings {path}: {error}") from error

    if not isinstance(data, dict):
        raise SettingsError(f"Settings in {path} must be a mapping at the top level.")
    return data


@dataclass(frozen=True, slots=True)
class CrossSettings:
    """Immutable configuration built once per command invocation."""

    repo_root: Path
    metadata_path: Path
    worktrees_dir: Path
    crossfile_path: Path
    command_prefix: str = "cross"
    crossfile_header: str = "# git-cross configuration"
    fallback_branch: str = "main"
    default_commit_message: str = "Update from git-cross"
    mirror_strategy: str = "auto"
    mirror_exclude: tuple[str, ...] = (".git",)
    shell: str = "/bin/sh"
    dry_run: bool = False

    @classmethod
    def from_mapping(
        cls,
        repo_root: Path,
        overrides: Optional[Mapping[str, Any]] = None,
        *,
        dry_run: bool = False,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "CrossSettings":
        """Build settings from the default template merged with ``overrides``."""
        data = _deep_merge(copy.deepcopy(DEFAULT_SETTINGS_TEMPLATE), overrides or {})
        env = os.environ if environ is None else environ
        root = Path(repo_root).resolve()

        def _resolve(value: Any, name: str) -> Path:
            if not isinstance(value, str) or not value.strip():
                raise SettingsError(f"paths.{name} must be a non-empty string")
            candidate = Path(value.strip())
            return candidate if candidate.is_absolute() else root / candidate

        paths = data["paths"]
        strategy = str(data["mirror"].get("strategy") or "auto").strip().lower()
        if strategy not in MIRROR_STRATEGIES:
            raise SettingsError(
                f"mirror.strategy must be one of {', '.join(sorted(MIRROR_STRATEGIES))}, got {strategy!r}"
            )
        exclude = data["mirror"].get("exclude") or []
        if isinstance(exclude, str):
            exclude = [exclude]
        prefix = str(data["crossfile"].get("prefix") or "cross").strip()
        shell = str(data.get("shell") or "").strip() or env.get("SHELL") or "/bin/sh"

        return cls(
            repo_root=root,
            metadata_path=_resolve(paths.get("metadata"), "metadata"),
            worktrees_dir=_resolve(paths.get("worktrees"), "worktrees"),
            crossfile_path=_resolve(paths.get("crossfile"), "crossfile"),
            command_prefix=prefix,
            crossfile_header=str(data["crossfile"].get("header") or ""),
            fallback_branch=str(data["branches"].get("fallback") or "main").strip(),
            default_commit_message=str(data["push"].get("default_message") or "Update from git-cross"),
            mirror_strategy=strategy,
            mirror_exclude=tuple(str(item) for item in exclude),
            shell=shell,
            dry_run=dry_run,
        )

    @classmethod
    def load(
        cls,
        repo_root: Path,
        config_path: Optional[Path] = None,
        *,
        dry_run: bool = False,
    ) -> "CrossSettings":
        """Load settings for ``repo_root`` from ``config_path`` or ``.cross.yaml``."""
        if config_path is not None:
            path = config_path if config_path.is_absolute() else Path.cwd() / config_path
            overrides = load_settings_file(path, required=True)
        else:
            overrides = load_settings_file(Path(repo_root) / DEFAULT_SETTINGS_NAME, required=False)
        return cls.from_mapping(repo_root, overrides, dry_run=dry_run)

    def resolve(self, value: str) -> Path:
        """Absolute path for a repository-relative ``value``."""
        path = Path(value)
        return path if path.is_absolute() else self.repo_root / path

    def relative(self, path: Path) -> str:
        """Render ``path`` relative to the repository root when possible."""
        try:
            return path.resolve().relative_to(self.repo_root).as_posix()
        except ValueError:
            return path.as_posix()


__all__ = [
    "CrossSettings",
    "DEFAULT_SETTINGS_NAME",
    "DEFAULT_SETTINGS_TEMPLATE",
    "MIRROR_STRATEGIES",
    "load_settings_file",
]
