from .checks import stage_build, stage_lint, stage_test
from .registry import DIAGNOSTIC_STAGE_IDS, STAGE_IDS, STAGE_SEQUENCE, build_stages
from .release import (
    stage_list_build_output,
    stage_package_artifact,
    stage_publish_release,
    stage_release_metadata,
)
from .toolchain import stage_toolchain_info, stage_toolchain_setup

__all__ = [
    "stage_toolchain_setup",
    "stage_toolchain_info",
    "stage_lint",
    "stage_test",
    "stage_build",
    "stage_release_metadata",
    "stage_list_build_output",
    "stage_package_artifact",
    "stage_publish_release",
    "STAGE_SEQUENCE",
    "STAGE_IDS",
    "DIAGNOSTIC_STAGE_IDS",
    "build_stages",
]
