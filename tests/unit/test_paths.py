from __future__ import annotations

from pathlib import Path

from cross.utils.paths import normalize_local_path, relative_to_cwd, repo_relative


def test_normalize_local_path_strips_decoration() -> None:
    assert normalize_local_path("./vendor/foo/") == "vendor/foo"
    assert normalize_local_path("vendor\\foo") == "vendor/foo"
    assert normalize_local_path("/vendor/foo") == "vendor/foo"
    assert normalize_local_path(None) == ""


def test_repo_relative_applies_subdirectory_prefix() -> None:
    assert repo_relative("foo", "vendor") == "vendor/foo"
    assert repo_relative("../lib", "vendor/foo") == "vendor/lib"
    assert repo_relative(".", "vendor") == "vendor"
    assert repo_relative("vendor/foo") == "vendor/foo"


def test_relative_to_cwd_walks_upwards(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b"
    target.mkdir(parents=True)
    cwd = tmp_path / "c"
    cwd.mkdir()

    assert relative_to_cwd(target, cwd) == "../a/b"
