from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from gen_inds_release.core import (
    StageError,
    monotonic_ms,
    stage_error_from_exc,
    utc_now_iso,
)
from gen_inds_release.trigger import TriggerContext

from .context import RunContext
from .events import EventType
from .types import ArtifactRef, SkipReason, StageOutcome

StageFn = Callable[[RunContext], dict[str, Any] | None]
Predicate = Callable[[TriggerContext], bool]


def always(_: TriggerContext) -> bool:
    return True


def never(_: TriggerContext) -> bool:
    return False


def on_release_tag(trigger: TriggerContext) -> bool:
    return trigger.is_release_tag


def format_duration_ms(ms: int) -> str:
    """Return a short human-readable duration string."""
    if ms < 1000:
        return f"{ms} ms"
    return f"{ms / 1000:.2f} s"


class Stage(Protocol):
    stage_id: str
    gating: bool
    timeout_s: Optional[float]

    def should_run(self, trigger: TriggerContext) -> bool: ...

    def run(self, ctx: RunContext) -> dict[str, Any] | None: ...


@dataclass(slots=True)
class FunctionStage:
    """
    Adapter that turns a plain function into a Stage.

    `gating=False` marks the stage best-effort: its failure is recorded but
    does not stop the run or change the overall status.
    """

    stage_id: str
    fn: StageFn
    predicate: Predicate = always
    gating: bool = True
    timeout_s: Optional[float] = None

    def should_run(self, trigger: TriggerContext) -> bool:
        return bool(self.predicate(trigger))

    def run(self, ctx: RunContext) -> dict[str, Any] | None:
        return self.fn(ctx)


@dataclass(slots=True)
class StageResult:
    stage: str
    status: StageOutcome
    started_at_utc: Optional[str]
    finished_at_utc: Optional[str]
    duration_ms: int

    gating: bool = True
    skip_reason: Optional[SkipReason] = None
    outputs: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    artifacts: list[ArtifactRef] = field(default_factory=list)
    error: Optional[StageError] = None

    @property
    def blocks_run(self) -> bool:
        return self.gating and self.status == StageOutcome.failure


@dataclass(slots=True)
class StageClock:
    started_at: str = field(default_factory=utc_now_iso)
    t0: int = field(default_factory=monotonic_ms)

    def elapsed_ms(self) -> int:
        return monotonic_ms() - self.t0


def _split_reserved(
    out: dict[str, Any],
) -> tuple[dict[str, Any], list[str], dict[str, Any], list[ArtifactRef]]:
    """
    Stage functions return plain dicts. Keys `_warnings`, `_metrics` and
    `_artifacts` are lifted out of the outputs into their own report fields.
    """
    outputs = dict(out)
    warnings = [str(w) for w in outputs.pop("_warnings", None) or []]
    metrics = dict(outputs.pop("_metrics", None) or {})
    artifacts = list(outputs.pop("_artifacts", None) or [])
    return outputs, warnings, metrics, artifacts


def pending_result(stage: Stage) -> StageResult:
    """Placeholder for a stage the runner has not reached yet."""
    return StageResult(
        stage=stage.stage_id,
        status=StageOutcome.pending,
        started_at_utc=None,
        finished_at_utc=None,
        duration_ms=0,
        gating=stage.gating,
    )


def skipped_result(
    *, ctx: RunContext, stage: Stage, reason: SkipReason
) -> StageResult:
    ctx.emit(EventType.STAGE_SKIPPED, stage=stage.stage_id, reason=reason.value)
    ctx.stage_logger(stage.stage_id).info("Stage skipped", reason=reason.value)
    return StageResult(
        stage=stage.stage_id,
        status=StageOutcome.skipped,
        started_at_utc=None,
        finished_at_utc=None,
        duration_ms=0,
        gating=stage.gating,
        skip_reason=reason,
    )


def failed_result(
    *,
    ctx: RunContext,
    stage: Stage,
    exc: BaseException,
    clock: StageClock,
    position: str | None = None,
) -> StageResult:
    duration = clock.elapsed_ms()
    ctx.emit(
        EventType.STAGE_FAILED,
        stage=stage.stage_id,
        duration_ms=duration,
        exc_type=type(exc).__name__,
        message=str(exc),
        gating=stage.gating,
    )

    log = ctx.stage_logger(stage.stage_id).bind(
        position=position, duration=format_duration_ms(duration), error=str(exc)
    )
    if stage.gating:
        log.error("Stage failed")
    else:
        log.warning("Best-effort stage failed; continuing")

    return StageResult(
        stage=stage.stage_id,
        status=StageOutcome.failure,
        started_at_utc=clock.started_at,
        finished_at_utc=utc_now_iso(),
        duration_ms=duration,
        gating=stage.gating,
        error=stage_error_from_exc(exc),
    )


def run_stage(
    *,
    ctx: RunContext,
    stage: Stage,
    index: int | None = None,
    total: int | None = None,
) -> StageResult:
    """
    Run one stage and turn its return value or exception into a StageResult.

    Only `Exception` is caught; KeyboardInterrupt reaches the runner, which
    records the abort.
    """
    stage_id = stage.stage_id
    position = f"{index}/{total}" if index is not None and total is not None else None
    log = ctx.stage_logger(stage_id)
    clock = StageClock()

    ctx.emit(EventType.STAGE_START, stage=stage_id, gating=stage.gating)
    log.info("Stage starting", position=position)

    try:
        out = stage.run(ctx)
        if out is None:
            out = {}
        elif not isinstance(out, dict):
            raise TypeError(
                f"Stage {stage_id} returned {type(out).__name__}, expected dict or None"
            )
        outputs, warnings, metrics, artifacts = _split_reserved(out)
        # A stage that returns after its deadline still fails.
        ctx.check_deadline()
    except Exception as e:
        return failed_result(ctx=ctx, stage=stage, exc=e, clock=clock, position=position)

    for w in warnings:
        ctx.emit(EventType.STAGE_WARN, stage=stage_id, message=w)
        log.warning(w)
    if metrics:
        ctx.emit(EventType.STAGE_METRICS, stage=stage_id, metrics=metrics)

    duration = clock.elapsed_ms()
    ctx.emit(EventType.STAGE_SUCCESS, stage=stage_id, duration_ms=duration)
    log.info(
        "Stage succeeded",
        position=position,
        duration=format_duration_ms(duration),
        outputs=sorted(outputs),
        artifacts=len(artifacts),
        warnings=len(warnings),
    )

    return StageResult(
        stage=stage_id,
        status=StageOutcome.success,
        started_at_utc=clock.started_at,
        finished_at_utc=utc_now_iso(),
        duration_ms=duration,
        gating=stage.gating,
        outputs=outputs,
        metrics=metrics,
        warnings=warnings,
        artifacts=artifacts,
    )
