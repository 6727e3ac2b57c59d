from __future__ import annotations

import json
from pathlib import Path

import pytest

from cross.errors import PatchNotFoundError, RegistryError
from cross.registry import Patch, PatchRegistry, Registry


def _patch(local_path: str, remote_path: str = "libs/foo", **overrides: str) -> Patch:
    values = {
        "remote": "origin",
        "remote_path": remote_path,
        "local_path": local_path,
        "worktree": ".git/cross/worktrees/origin_0123abcd",
        "branch": "main",
    }
    values.update(overrides)
    return Patch(**values)


def test_missing_and_empty_files_load_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "metadata.json"
    assert PatchRegistry(path).load().patches == []

    path.write_text("  \n", encoding="utf-8")
    assert PatchRegistry(path).load().patches == []


def test_upsert_replaces_record_with_same_local_path(tmp_path: Path) -> None:
    store = PatchRegistry(tmp_path / ".git" / "cross" / "metadata.json")
    store.upsert(_patch("vendor/foo"))
    store.upsert(_patch("vendor/bar", remote_path="libs/bar"))
    registry = store.upsert(_patch("./vendor/foo/", remote_path="libs/baz"))

    assert [p.local_path for p in registry.patches] == ["vendor/foo", "vendor/bar"]
    assert store.load().find("vendor/foo").remote_path == "libs/baz"


def test_patch_normalises_local_path_on_construction(tmp_path: Path) -> None:
    assert _patch("./vendor/foo/").local_path == "vendor/foo"

    path = tmp_path / "metadata.json"
    payload = {"patches": [dict(_patch("vendor/foo").model_dump(), local_path="vendor\\foo\\")]}
    path.write_text(json.dumps(payload), encoding="utf-8")
    assert PatchRegistry(path).load().patches[0].local_path == "vendor/foo"


def test_saved_document_uses_expected_field_names(tmp_path: Path) -> None:
    path = tmp_path / "metadata.json"
    PatchRegistry(path).upsert(_patch("vendor/foo"))

    document = json.loads(path.read_text(encoding="utf-8"))
    assert list(document) == ["patches"]
    assert set(document["patches"][0]) == {"remote", "remote_path", "local_path", "worktree", "branch"}
    assert path.read_text(encoding="utf-8").startswith('{\n  "patches"')
    assert not path.with_name("metadata.json.tmp").exists()


def test_unknown_keys_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "metadata.json"
    payload = {"patches": [dict(_patch("vendor/foo").model_dump(), id="legacy")], "version": 3}
    path.write_text(json.dumps(payload), encoding="utf-8")

    registry = PatchRegistry(path).load()
    assert registry.patches[0].local_path == "vendor/foo"


def test_malformed_document_raises_registry_error(tmp_path: Path) -> None:
    path = tmp_path / "metadata.json"
    path.write_text('{"patches": [{"remote": "origin"}]}', encoding="utf-8")

    with pytest.raises(RegistryError):
        PatchRegistry(path).load()

    path.write_text("not json", encoding="utf-8")
    with pytest.raises(RegistryError):
        PatchRegistry(path).load()


def test_remove_unknown_patch_raises(tmp_path: Path) -> None:
    store = PatchRegistry(tmp_path / "metadata.json")
    store.upsert(_patch("vendor/foo"))

    with pytest.raises(PatchNotFoundError):
        store.remove("vendor/nope")
    assert store.remove("vendor/foo").local_path == "vendor/foo"
    assert store.load().patches == []


def test_find_containing_prefers_longest_prefix() -> None:
    registry = Registry(patches=[_patch("vendor"), _patch("vendor/foo"), _patch("vendor/foobar")])

    assert registry.find_containing("vendor/foo/src/lib.py").local_path == "vendor/foo"
    assert registry.find_containing("vendor/foobar").local_path == "vendor/foobar"
    assert registry.find_containing("vendor/other").local_path == "vendor"
    assert registry.find_containing("elsewhere") is None
    assert registry.find_containing("") is None
