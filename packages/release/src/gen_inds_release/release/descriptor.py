from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from gen_inds_release.core import release_timestamp, relative_subdir
from gen_inds_release.trigger import TriggerContext, strip_tag_prefix

DEFAULT_ARTIFACT_PREFIX = "gen_inds"
DEFAULT_OUTPUT_DIR = "target/release"
ARCHIVE_SUFFIX = ".tar.gz"
RELEASE_ASSET_GLOB = "*" + ARCHIVE_SUFFIX

ENV_TIMESTAMP = "TIMESTAMP"
ENV_RELEASE_FILE = "RELEASE_FILE"


def release_file_name(version: str, *, prefix: str = DEFAULT_ARTIFACT_PREFIX) -> str:
    """
    >>> release_file_name("v2.0.1")
    'gen_inds_v2.0.1.tar.gz'
    """
    return f"{prefix}_{strip_tag_prefix(version)}{ARCHIVE_SUFFIX}"


def default_input_patterns(
    *, output_dir: str = DEFAULT_OUTPUT_DIR, prefix: str = DEFAULT_ARTIFACT_PREFIX
) -> tuple[str, ...]:
    """Binary first, then shared libraries (`lib<prefix>*`)."""
    out = relative_subdir(output_dir)
    return (f"{out}/{prefix}*", f"{out}/lib{prefix}*")


@dataclass(frozen=True, slots=True)
class ReleaseArtifactDescriptor:
    timestamp: str
    version: str
    file_name: str
    input_paths: tuple[str, ...]

    @classmethod
    def for_trigger(
        cls,
        trigger: TriggerContext,
        *,
        output_dir: str = DEFAULT_OUTPUT_DIR,
        prefix: str = DEFAULT_ARTIFACT_PREFIX,
        now: datetime | None = None,
    ) -> "ReleaseArtifactDescriptor":
        if not trigger.is_release_tag:
            raise ValueError(
                f"No release artifact for non-tag ref {trigger.ref_name!r}"
            )
        version = strip_tag_prefix(trigger.ref_name)
        return cls(
            timestamp=release_timestamp(now),
            version=version,
            file_name=release_file_name(version, prefix=prefix),
            input_paths=default_input_patterns(output_dir=output_dir, prefix=prefix),
        )

    def env_exports(self) -> dict[str, str]:
        return {ENV_TIMESTAMP: self.timestamp, ENV_RELEASE_FILE: self.file_name}

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "version": self.version,
            "file_name": self.file_name,
            "input_paths": list(self.input_paths),
        }
