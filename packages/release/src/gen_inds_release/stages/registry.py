from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from gen_inds_release.pipeline import FunctionStage, always, never, on_release_tag

from .checks import stage_build, stage_lint, stage_test
from .release import (
    stage_list_build_output,
    stage_package_artifact,
    stage_publish_release,
    stage_release_metadata,
)
from .toolchain import stage_toolchain_info, stage_toolchain_setup

STAGE_SEQUENCE: tuple[FunctionStage, ...] = (
    FunctionStage("toolchain_setup", stage_toolchain_setup, always),
    FunctionStage("toolchain_info", stage_toolchain_info, always),
    FunctionStage("lint", stage_lint, always),
    FunctionStage("test", stage_test, always),
    FunctionStage("build", stage_build, always),
    FunctionStage("release_metadata", stage_release_metadata, on_release_tag),
    FunctionStage("list_build_output", stage_list_build_output, on_release_tag),
    FunctionStage("package_artifact", stage_package_artifact, on_release_tag),
    FunctionStage("publish_release", stage_publish_release, on_release_tag),
)

STAGE_IDS: tuple[str, ...] = tuple(s.stage_id for s in STAGE_SEQUENCE)
PUBLISH_STAGE_ID = "publish_release"

# Observability-only stages; callers may mark them best-effort.
DIAGNOSTIC_STAGE_IDS: frozenset[str] = frozenset({"toolchain_info", "list_build_output"})


def build_stages(
    *,
    best_effort: Iterable[str] = (),
    timeout_s: Optional[float] = None,
    publish: bool = True,
) -> list[FunctionStage]:
    """
    The fixed release pipeline. Every stage gates by default; ids listed in
    `best_effort` are recorded on failure without stopping the run.

    `publish=False` keeps packaging on tag runs but skips publish_release.
    """
    wanted = set(best_effort)
    unknown = sorted(wanted - set(STAGE_IDS))
    if unknown:
        raise ValueError(f"Unknown stage id(s): {unknown}; known: {list(STAGE_IDS)}")

    return [
        replace(
            s,
            gating=s.stage_id not in wanted,
            timeout_s=timeout_s if timeout_s is not None else s.timeout_s,
            predicate=s.predicate if publish or s.stage_id != PUBLISH_STAGE_ID else never,
        )
        for s in STAGE_SEQUENCE
    ]
