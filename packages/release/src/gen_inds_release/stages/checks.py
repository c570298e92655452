from __future__ import annotations

from typing import Any

from gen_inds_release.core import CheckFailure
from gen_inds_release.pipeline import RunContext
from gen_inds_release.toolchain import ToolchainPlan, run_gate


def _gate(ctx: RunContext, commands) -> dict[str, Any]:
    results = run_gate(ctx, commands, error_cls=CheckFailure)
    return {
        "commands": [r.to_dict() for r in results],
        "_metrics": {"commands": len(results)},
    }


def stage_lint(ctx: RunContext) -> dict[str, Any]:
    # rustfmt check, then clippy with warnings denied
    return _gate(ctx, ToolchainPlan.from_meta(ctx.meta).lint())


def stage_test(ctx: RunContext) -> dict[str, Any]:
    return _gate(ctx, ToolchainPlan.from_meta(ctx.meta).test())


def stage_build(ctx: RunContext) -> dict[str, Any]:
    out = _gate(ctx, ToolchainPlan.from_meta(ctx.meta).build())
    out["output_dir"] = str(ctx.output_dir())
    return out
