from __future__ import annotations

from pathlib import Path

import pytest
from conftest import write_build_output
from gen_inds_release.core import PackagingError
from gen_inds_release.release import (
    build_release_archive,
    default_input_patterns,
    list_archive,
    resolve_input_paths,
)

PATTERNS = default_input_patterns()


def test_archive_contains_binary_and_libraries(workspace: Path) -> None:
    res = build_release_archive(
        workspace=workspace, patterns=PATTERNS, out_name="gen_inds_v1.tar.gz"
    )

    assert res.path == workspace / "gen_inds_v1.tar.gz"
    assert res.members == (
        "target/release/gen_inds",
        "target/release/gen_inds.d",
        "target/release/libgen_inds.rlib",
        "target/release/libgen_inds.so",
    )
    assert list_archive(res.path) == list(res.members)


def test_matched_directories_are_added_recursively(workspace: Path) -> None:
    assets = workspace / "target" / "release" / "gen_inds_assets"
    assets.mkdir()
    (assets / "table.csv").write_text("a,b\n")

    res = build_release_archive(
        workspace=workspace, patterns=PATTERNS, out_name="out.tar.gz"
    )
    assert "target/release/gen_inds_assets/table.csv" in list_archive(res.path)


def test_missing_library_fails_fast(tmp_path: Path) -> None:
    ws = tmp_path / "ws"
    write_build_output(ws, with_libs=False)

    with pytest.raises(PackagingError, match="libgen_inds"):
        build_release_archive(workspace=ws, patterns=PATTERNS, out_name="x.tar.gz")

    assert not (ws / "x.tar.gz").exists()
    assert list(ws.glob(".x.tar.gz*")) == []


def test_rejects_absolute_patterns_and_bad_names(workspace: Path) -> None:
    with pytest.raises(PackagingError):
        resolve_input_paths(workspace, ["/etc/*"])
    with pytest.raises(PackagingError):
        resolve_input_paths(workspace, [])
    with pytest.raises(PackagingError):
        build_release_archive(workspace=workspace, patterns=PATTERNS, out_name="a/b.tar.gz")


def test_overlapping_patterns_are_deduplicated(workspace: Path) -> None:
    paths = resolve_input_paths(
        workspace, ["target/release/gen_inds", "target/release/gen_inds*"]
    )
    names = [p.name for p in paths]
    assert names == ["gen_inds", "gen_inds.d"]
