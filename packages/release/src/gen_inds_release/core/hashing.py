import hashlib
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Mapping

_CHUNK = 1 << 20


@dataclass(frozen=True)
class FileDigest:
    sha256: str
    bytes: int


def digest_file(path: Path) -> FileDigest:
    h = hashlib.sha256()
    size = 0
    with Path(path).open("rb") as f:
        for chunk in iter(partial(f.read, _CHUNK), b""):
            h.update(chunk)
            size += len(chunk)
    return FileDigest(sha256=h.hexdigest(), bytes=size)


def write_checksums(path: Path, digests: Mapping[str, str]) -> None:
    """Write `<sha256>  <name>` lines, sorted by name, readable by `sha256sum -c`."""
    body = "".join(f"{digests[name]}  {name}\n" for name in sorted(digests))
    Path(path).write_text(body, encoding="utf-8")
