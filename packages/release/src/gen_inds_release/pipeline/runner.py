from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Sequence

from gen_inds_release.core import (
    ILogger,
    RunAborted,
    configure_logging,
    get_logger,
    host_info,
    monotonic_ms,
    new_run_id,
    utc_now_iso,
)
from gen_inds_release.trigger import TriggerContext

from .context import RunContext
from .env import RunEnv
from .events import EventSink, EventType
from .report import RunReport, build_run_report
from .stage import (
    FunctionStage,
    Predicate,
    Stage,
    StageFn,
    StageClock,
    StageResult,
    always,
    failed_result,
    format_duration_ms,
    pending_result,
    run_stage,
    skipped_result,
)
from .types import SkipReason, StageOutcome

if TYPE_CHECKING:
    from gen_inds_release.release.publisher import ReleasePublisher
    from gen_inds_release.toolchain.commands import CommandRunner


@dataclass(slots=True)
class RunnerConfig:
    stop_on_failure: bool = True
    # Applied to stages that do not carry their own timeout.
    stage_timeout_s: Optional[float] = None
    stage_exit_codes: bool = False
    # Where run env values are mirrored (GitHub Actions' $GITHUB_ENV).
    env_export_path: Optional[Path] = None


@dataclass(frozen=True, slots=True)
class PlannedStage:
    position: int
    stage_id: str
    will_run: bool
    gating: bool
    timeout_s: Optional[float]


def default_logger() -> ILogger:
    """
    Provide a structlog BoundLogger that satisfies ILogger.
    """
    configure_logging()
    return get_logger("pipeline")


class PipelineRunner:
    """
    Runs a fixed, ordered stage list against one trigger.

    Stages never run concurrently. A stage whose predicate is false is
    skipped; once a gating stage fails every later stage is skipped.
    """

    def __init__(
        self,
        *,
        stages: Sequence[Stage],
        commands: "CommandRunner",
        publisher: Optional["ReleasePublisher"] = None,
        cfg: RunnerConfig | None = None,
        logger: ILogger | None = None,
    ) -> None:
        self.stages = list(stages)
        self.commands = commands
        self.publisher = publisher
        self.cfg = cfg or RunnerConfig()
        self.logger: ILogger = logger or default_logger()
        self._progress: list[StageResult] = []

        ids = [s.stage_id for s in self.stages]
        if len(ids) != len(set(ids)):
            dupes = sorted({x for x in ids if ids.count(x) > 1})
            raise ValueError(f"Duplicate stage_id(s): {dupes}")

    @staticmethod
    def fn(
        stage_id: str,
        fn: StageFn,
        *,
        predicate: Predicate = always,
        gating: bool = True,
        timeout_s: float | None = None,
    ) -> Stage:
        return FunctionStage(
            stage_id=stage_id,
            fn=fn,
            predicate=predicate,
            gating=gating,
            timeout_s=timeout_s,
        )

    def plan(self, trigger: TriggerContext) -> list[PlannedStage]:
        return [
            PlannedStage(
                position=idx,
                stage_id=st.stage_id,
                will_run=st.should_run(trigger),
                gating=st.gating,
                timeout_s=self._timeout_for(st),
            )
            for idx, st in enumerate(self.stages, start=1)
        ]

    def _timeout_for(self, stage: Stage) -> Optional[float]:
        return stage.timeout_s if stage.timeout_s is not None else self.cfg.stage_timeout_s

    def run(
        self,
        *,
        trigger: TriggerContext,
        workspace: Path,
        run_root: Path,
        run_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> RunReport:
        """
        Execute every stage in order and write `events.jsonl` and
        `run_report.json` under `{run_root}/{run_id}/`.

        `report.exit_code` is the status the CLI exits with.
        """
        meta = meta or {}
        rid = run_id or new_run_id()
        run_dir = Path(run_root) / rid
        run_dir.mkdir(parents=True, exist_ok=True)
        events_path = run_dir / "events.jsonl"
        report_path = run_dir / "run_report.json"

        host = host_info()
        started_at = utc_now_iso()
        t0 = monotonic_ms()

        with EventSink(events_path) as sink:
            ctx = RunContext(
                run_id=rid,
                run_root=run_dir,
                workspace=Path(workspace),
                trigger=trigger,
                logger=self.logger,
                events=sink,
                commands=self.commands,
                publisher=self.publisher,
                env=RunEnv(export_path=self.cfg.env_export_path),
                meta=meta,
            )

            self.logger.info(
                "Pipeline starting",
                run_id=rid,
                event_kind=trigger.event_kind.value,
                ref=trigger.ref_name,
                release=trigger.is_release_tag,
                workspace=str(ctx.workspace),
            )
            ctx.emit(
                EventType.RUN_START,
                stage=None,
                trigger=trigger.to_dict(),
                host=host,
                stages=[s.stage_id for s in self.stages],
                meta=meta,
            )

            results, aborted = self._run_stages(ctx)
            write_report = partial(
                self._write_report,
                ctx=ctx,
                results=results,
                started_at=started_at,
                t0=t0,
                host=host,
                events_path=events_path,
                report_path=report_path,
            )
            try:
                report = write_report(aborted=aborted)
            except KeyboardInterrupt:
                report = write_report(aborted=True)

            ctx.emit(
                EventType.RUN_FINISH,
                stage=None,
                status=report.status,
                exit_code=report.exit_code,
                duration_ms=report.duration_ms,
                report_json=str(report_path),
            )

        done = self.logger.info if report.ok else self.logger.error
        done(
            "Run complete",
            status=report.status,
            exit_code=report.exit_code,
            duration=format_duration_ms(report.duration_ms),
            first_failure=report.first_failure.stage if report.first_failure else None,
            report=str(report_path),
        )
        return report

    def progress(self) -> dict[str, StageOutcome]:
        """Outcome of every stage in the current (or last) run, in order."""
        return {r.stage: r.status for r in self._progress}

    def _write_report(
        self,
        *,
        ctx: RunContext,
        results: list[StageResult],
        aborted: bool,
        started_at: str,
        t0: int,
        host: dict[str, str],
        events_path: Path,
        report_path: Path,
    ) -> RunReport:
        report = build_run_report(
            run_id=ctx.run_id,
            started_at_utc=started_at,
            finished_at_utc=utc_now_iso(),
            duration_ms=monotonic_ms() - t0,
            stage_results=results,
            events_jsonl=str(events_path),
            trigger=ctx.trigger.to_dict(),
            run_env=ctx.env.snapshot(),
            host=host,
            aborted=aborted,
            stage_exit_codes=self.cfg.stage_exit_codes,
            meta=ctx.meta,
        )
        report.write_json(report_path)
        return report

    def _advance(
        self, ctx: RunContext, st: Stage, idx: int, total: int, *, halted: bool
    ) -> StageResult:
        if halted:
            return skipped_result(ctx=ctx, stage=st, reason=SkipReason.upstream_failure)
        # Predicates see the trigger fixed at run start.
        if not st.should_run(ctx.trigger):
            return skipped_result(ctx=ctx, stage=st, reason=SkipReason.predicate)

        timeout_s = self._timeout_for(st)
        ctx.stage_id = st.stage_id
        ctx.deadline_ms = (
            None if timeout_s is None else monotonic_ms() + int(timeout_s * 1000)
        )
        return run_stage(ctx=ctx, stage=st, index=idx, total=total)

    def _run_stages(self, ctx: RunContext) -> tuple[list[StageResult], bool]:
        # Every stage starts pending and is replaced by exactly one terminal result.
        results = [pending_result(st) for st in self.stages]
        self._progress = results
        halted = aborted = False
        total = len(self.stages)

        for idx, st in enumerate(self.stages, start=1):
            clock = StageClock()
            try:
                res = self._advance(ctx, st, idx, total, halted=halted)
            except KeyboardInterrupt:
                aborted = True
                ctx.emit(EventType.RUN_ABORTED, stage=st.stage_id)
                res = failed_result(
                    ctx=ctx,
                    stage=st,
                    exc=RunAborted(f"Run aborted during stage {st.stage_id}"),
                    clock=clock,
                    position=f"{idx}/{total}",
                )
                # An abort halts the run even in a best-effort stage.
                res.gating = True
            finally:
                ctx.stage_id = None
                ctx.deadline_ms = None

            results[idx - 1] = res
            if aborted or (res.blocks_run and self.cfg.stop_on_failure):
                halted = True

        return results, aborted
