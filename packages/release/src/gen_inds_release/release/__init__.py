from .archive import ArchiveResult, build_release_archive, list_archive, resolve_input_paths
from .descriptor import (
    ENV_RELEASE_FILE,
    ENV_TIMESTAMP,
    RELEASE_ASSET_GLOB,
    ReleaseArtifactDescriptor,
    default_input_patterns,
    release_file_name,
)
from .github import GitHubReleasePublisher
from .publisher import DirectoryPublisher, PublishReceipt, ReleasePublisher

__all__ = [
    "ArchiveResult",
    "build_release_archive",
    "list_archive",
    "resolve_input_paths",
    "ENV_RELEASE_FILE",
    "ENV_TIMESTAMP",
    "RELEASE_ASSET_GLOB",
    "ReleaseArtifactDescriptor",
    "default_input_patterns",
    "release_file_name",
    "GitHubReleasePublisher",
    "DirectoryPublisher",
    "PublishReceipt",
    "ReleasePublisher",
]
