from __future__ import annotations

from typing import Any

from gen_inds_release.core import ToolchainError
from gen_inds_release.pipeline import RunContext
from gen_inds_release.toolchain import ToolchainPlan, run_gate


def stage_toolchain_setup(ctx: RunContext) -> dict[str, Any]:
    plan = ToolchainPlan.from_meta(ctx.meta)
    results = run_gate(ctx, plan.setup(), error_cls=ToolchainError)
    return {
        "toolchain": plan.toolchain,
        "commands": [r.to_dict() for r in results],
        "_metrics": {"commands": len(results)},
    }


def stage_toolchain_info(ctx: RunContext) -> dict[str, Any]:
    """Diagnostic only: records the versions of cargo, rustc and clippy."""
    plan = ToolchainPlan.from_meta(ctx.meta)
    results = run_gate(ctx, plan.info(), error_cls=ToolchainError)

    versions = {r.display: (r.stdout.strip().splitlines() or [""])[0] for r in results}
    log = ctx.stage_logger(ctx.stage_id or "toolchain_info")
    log.info("Toolchain versions", versions=versions)
    return {"versions": versions}
