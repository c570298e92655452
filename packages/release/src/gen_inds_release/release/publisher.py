from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Sequence

from gen_inds_release.core import PublishError, place_copy


@dataclass(frozen=True, slots=True)
class PublishReceipt:
    tag: str
    assets: tuple[str, ...]
    release_url: Optional[str] = None
    release_id: Optional[int] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "tag": self.tag,
            "assets": list(self.assets),
            "release_url": self.release_url,
            "release_id": self.release_id,
        }


class ReleasePublisher(Protocol):
    # timeout_s bounds network I/O for publishers that do any.
    def publish(
        self,
        *,
        tag: str,
        files: Sequence[Path],
        timeout_s: Optional[float] = None,
    ) -> PublishReceipt: ...


def _require_files(files: Sequence[Path]) -> list[Path]:
    out = [Path(f) for f in files]
    if not out:
        raise PublishError("No release assets to publish")
    missing = [str(p) for p in out if not p.is_file()]
    if missing:
        raise PublishError(f"Release assets not found: {missing}")
    return out


@dataclass(slots=True)
class DirectoryPublisher:
    """
    Mirrors release assets into `{root}/{tag}/`, replacing same-named files.
    """

    root: Path
    published: list[PublishReceipt] = field(default_factory=list)

    def publish(
        self,
        *,
        tag: str,
        files: Sequence[Path],
        timeout_s: Optional[float] = None,
    ) -> PublishReceipt:
        if not tag:
            raise PublishError("Release tag must not be empty")
        paths = _require_files(files)
        dest = Path(self.root) / tag
        try:
            for p in paths:
                place_copy(p, dest / p.name)
        except OSError as e:
            raise PublishError(f"Failed to copy assets into {dest}: {e}") from e

        receipt = PublishReceipt(
            tag=tag,
            assets=tuple(p.name for p in paths),
            release_url=dest.resolve().as_uri(),
        )
        self.published.append(receipt)
        return receipt
