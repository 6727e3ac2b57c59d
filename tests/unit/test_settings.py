from __future__ import annotations

from pathlib import Path

import pytest

from cross.errors import SettingsError
from cross.settings import CrossSettings


def test_defaults_follow_repository_layout(tmp_path: Path) -> None:
    settings = CrossSettings.from_mapping(tmp_path, environ={"SHELL": "/bin/zsh"})
    root = tmp_path.resolve()

    assert settings.metadata_path == root / ".git" / "cross" / "metadata.json"
    assert settings.worktrees_dir == root / ".git" / "cross" / "worktrees"
    assert settings.crossfile_path == root / "Crossfile"
    assert settings.command_prefix == "cross"
    assert settings.mirror_exclude == (".git",)
    assert settings.shell == "/bin/zsh"
    assert settings.dry_run is False


def test_yaml_file_overrides_known_keys_only(tmp_path: Path) -> None:
    (tmp_path / ".cross.yaml").write_text(
        "crossfile:\n  prefix: just cross\nbranches:\n  fallback: trunk\nunknown: 1\nmirror:\n  exclude: .svn\n",
        encoding="utf-8",
    )

    settings = CrossSettings.load(tmp_path, dry_run=True)

    assert settings.command_prefix == "just cross"
    assert settings.fallback_branch == "trunk"
    assert settings.mirror_exclude == (".svn",)
    assert settings.crossfile_header == "# git-cross configuration"
    assert settings.dry_run is True


def test_explicit_config_must_exist(tmp_path: Path) -> None:
    with pytest.raises(SettingsError):
        CrossSettings.load(tmp_path, tmp_path / "missing.yaml")


@pytest.mark.parametrize("payload", ["- a\n- b\n", "paths: [unclosed\n"])
def test_invalid_yaml_is_a_settings_error(tmp_path: Path, payload: str) -> None:
    config = tmp_path / "cross.yaml"
    config.write_text(payload, encoding="utf-8")

    with pytest.raises(SettingsError):
        CrossSettings.load(tmp_path, config)


def test_unknown_mirror_strategy_rejected(tmp_path: Path) -> None:
    with pytest.raises(SettingsError):
        CrossSettings.from_mapping(tmp_path, {"mirror": {"strategy": "scp"}})


def test_resolve_and_relative_round_trip(tmp_path: Path) -> None:
    settings = CrossSettings.from_mapping(tmp_path)
    absolute = settings.resolve("vendor/foo")

    assert absolute == tmp_path.resolve() / "vendor" / "foo"
    assert settings.relative(absolute) == "vendor/foo"
