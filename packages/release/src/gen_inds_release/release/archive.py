from __future__ import annotations

import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from gen_inds_release.core import (
    PackagingError,
    commit_tmp,
    discard,
    relpath_posix,
    reserve_sibling_tmp,
)


@dataclass(frozen=True, slots=True)
class ArchiveResult:
    path: Path
    members: tuple[str, ...]


def resolve_input_paths(workspace: Path, patterns: Sequence[str]) -> list[Path]:
    """
    Expand `patterns` (relative to `workspace`) in order.

    Every pattern is required: one that matches nothing raises
    PackagingError instead of producing a partial archive. Matches are
    sorted within a pattern and de-duplicated across patterns.
    """
    workspace = Path(workspace)
    if not patterns:
        raise PackagingError("No input patterns given for the release archive")

    seen: set[Path] = set()
    out: list[Path] = []
    for pattern in patterns:
        if Path(pattern).is_absolute():
            raise PackagingError(f"Input pattern must be workspace-relative: {pattern}")
        matches = sorted(workspace.glob(pattern))
        if not matches:
            raise PackagingError(
                f"Pattern {pattern!r} matched no files under {workspace}"
            )
        for p in matches:
            if p not in seen:
                seen.add(p)
                out.append(p)
    return out


def build_release_archive(
    *,
    workspace: Path,
    patterns: Sequence[str],
    out_name: str,
) -> ArchiveResult:
    """
    Write `{workspace}/{out_name}` as a gzip tarball of every matched path,
    stored under its workspace-relative name (like `tar -czf` run from the
    workspace root). Directories are added recursively.
    """
    workspace = Path(workspace)
    if not out_name or "/" in out_name:
        raise PackagingError(f"Invalid archive name: {out_name!r}")

    inputs = resolve_input_paths(workspace, patterns)
    final_path = workspace / out_name
    tmp_path = reserve_sibling_tmp(final_path)

    members: list[str] = []
    try:
        with tarfile.open(tmp_path, "w:gz") as tar:
            for p in inputs:
                arcname = relpath_posix(p, workspace)
                tar.add(p, arcname=arcname, recursive=True)
                members.append(arcname)
        commit_tmp(tmp_path, final_path)
    except OSError as e:
        raise PackagingError(f"Failed to write {final_path}: {e}") from e
    finally:
        discard(tmp_path)

    return ArchiveResult(path=final_path, members=tuple(members))


def list_archive(path: Path) -> list[str]:
    with tarfile.open(path, "r:gz") as tar:
        return tar.getnames()
