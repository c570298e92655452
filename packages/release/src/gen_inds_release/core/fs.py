import os
import shutil
import tempfile
from pathlib import Path, PurePosixPath


def discard(path: os.PathLike[str] | str) -> None:
    """Remove a file if present; a file that cannot be removed is left alone."""
    try:
        Path(path).unlink(missing_ok=True)
    except OSError:
        return


def relpath_posix(path: Path, base_dir: Path) -> str:
    return Path(path).relative_to(base_dir).as_posix()


def file_size(path: Path) -> int:
    return Path(path).stat().st_size


def reserve_sibling_tmp(final_path: Path) -> Path:
    """
    Create an empty hidden temp file in final_path's directory.

    Archives are written there and then renamed over final_path, so a reader
    never observes a half-written tarball.
    """
    final_path = Path(final_path)
    final_path.parent.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(
        prefix=f".{final_path.name}.", suffix=".part", dir=final_path.parent
    )
    os.close(fd)
    return Path(name)


def commit_tmp(tmp_path: Path, final_path: Path) -> None:
    with open(tmp_path, "rb") as f:
        os.fsync(f.fileno())
    os.replace(tmp_path, final_path)


def place_copy(src: Path, dst: Path) -> None:
    """
    Put src at dst, replacing whatever is there. Hardlinks when the two paths
    share a filesystem, copies otherwise.
    """
    src, dst = Path(src), Path(dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    discard(dst)
    try:
        os.link(src, dst)
    except OSError:
        shutil.copy2(src, dst)


def relative_subdir(value: str) -> str:
    """
    Normalize a workspace-relative directory such as `target/release/`.

    Absolute paths, `..` segments and the workspace root itself are rejected
    with ValueError: archive members are stored relative to the workspace.
    """
    p = PurePosixPath(str(value).strip())
    if p.is_absolute() or ".." in p.parts or p.as_posix() in ("", "."):
        raise ValueError(f"Expected a directory inside the workspace, got {value!r}")
    return p.as_posix()
