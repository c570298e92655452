from __future__ import annotations

import argparse
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from gen_inds_release.core import (
    Settings,
    TriggerError,
    bind,
    clear_bindings,
    configure_logging,
    get_logger,
    load_settings,
    new_run_id,
)
from gen_inds_release.pipeline import PipelineRunner, RunnerConfig, StageOutcome
from gen_inds_release.pipeline.stage import FunctionStage, StageFn
from gen_inds_release.release import (
    DirectoryPublisher,
    GitHubReleasePublisher,
    ReleaseArtifactDescriptor,
    ReleasePublisher,
)
from gen_inds_release.stages import DIAGNOSTIC_STAGE_IDS, STAGE_IDS, build_stages
from gen_inds_release.toolchain import SubprocessRunner
from gen_inds_release.trigger import EventKind, TriggerContext
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console()

EXIT_USAGE = 2

# From the workflow's top-level env
COMMAND_ENV = {"CARGO_TERM_COLOR": "always"}


@dataclass(frozen=True, slots=True)
class _CommonArgs:
    cmd: str
    event: Optional[str]
    ref: Optional[str]
    workspace: Optional[str]


def _add_trigger_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--event",
        choices=[k.value for k in EventKind] + ["tag-push", "pull-request"],
        default=None,
        help="Trigger event kind. If omitted: GITHUB_EVENT_NAME.",
    )
    p.add_argument(
        "--ref",
        default=None,
        help="Trigger ref, e.g. refs/heads/main or refs/tags/v1.2.3. If omitted: GITHUB_REF.",
    )
    p.add_argument(
        "--workspace",
        default=None,
        help="Crate checkout to build (default: GEN_INDS_RELEASE_WORKSPACE or .).",
    )


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="gen-inds-release")
    sub = p.add_subparsers(dest="cmd", required=True)

    run = sub.add_parser("run", help="Run the CI pipeline for a trigger")
    _add_trigger_args(run)
    run.add_argument(
        "--best-effort",
        action="append",
        dest="best_effort",
        choices=STAGE_IDS,
        help="Record this stage's failure without aborting the run (repeatable).",
    )
    run.add_argument(
        "--stage-timeout",
        type=float,
        default=None,
        help="Per-stage timeout in seconds (default: none).",
    )
    run.add_argument(
        "--publisher",
        choices=("github", "directory", "none"),
        default=None,
        help=(
            "Where release assets go on tag runs; `none` packages without publishing "
            "(default: GEN_INDS_RELEASE_PUBLISHER)."
        ),
    )
    run.add_argument(
        "--stage-exit-codes",
        action="store_true",
        default=None,
        help="Exit with 10 + the failing stage's position instead of 1.",
    )

    plan = sub.add_parser("plan", help="Show which stages a trigger would run")
    _add_trigger_args(plan)

    name = sub.add_parser("release-name", help="Print RELEASE_FILE for a tag ref")
    name.add_argument("ref", help="Tag ref or tag name, e.g. refs/tags/v2.0.1")

    return p


def _common(args: argparse.Namespace) -> _CommonArgs:
    return _CommonArgs(
        cmd=str(args.cmd),
        event=getattr(args, "event", None),
        ref=getattr(args, "ref", None),
        workspace=getattr(args, "workspace", None),
    )


def resolve_trigger(common: _CommonArgs, s: Settings) -> TriggerContext:
    event = common.event or s.github_event_name
    ref = common.ref or s.github_ref
    if not event or not ref:
        raise TriggerError(
            "Trigger unknown: pass --event and --ref or set GITHUB_EVENT_NAME/GITHUB_REF"
        )
    return TriggerContext.parse(event, ref)


def build_publisher(kind: str, s: Settings) -> Optional[ReleasePublisher]:
    if kind == "none":
        return None
    if kind == "directory":
        return DirectoryPublisher(root=Path(s.publish_dir))
    return GitHubReleasePublisher(
        repository=s.github_repository,
        token=s.github_token,
        api_url=s.github_api_url,
    )


def _with_status(stage_id: str, fn: StageFn) -> StageFn:
    def _run_with_status(ctx):
        with console.status(f"[bold]{stage_id}[/]", spinner="dots"):
            return fn(ctx)

    return _run_with_status


def _decorate(stages: list[FunctionStage]) -> list[FunctionStage]:
    return [replace(st, fn=_with_status(st.stage_id, st.fn)) for st in stages]


_OUTCOME_STYLE = {
    StageOutcome.success: "[green]success[/green]",
    StageOutcome.failure: "[red]failure[/red]",
    StageOutcome.skipped: "[dim]skipped[/dim]",
    StageOutcome.pending: "pending",
}


def _gating_label(stage_id: str, gating: bool) -> str:
    if not gating:
        return "best-effort"
    return "yes (diagnostic)" if stage_id in DIAGNOSTIC_STAGE_IDS else "yes"


def _cmd_release_name(args: argparse.Namespace, s: Settings) -> int:
    try:
        trigger = TriggerContext.parse("tag_push", str(args.ref))
    except TriggerError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    desc = ReleaseArtifactDescriptor.for_trigger(trigger, prefix=s.artifact_prefix)
    console.print(desc.file_name, highlight=False)
    return 0


def _cmd_plan(common: _CommonArgs, s: Settings) -> int:
    trigger = resolve_trigger(common, s)
    stages = build_stages(
        best_effort=s.best_effort_stages,
        timeout_s=s.stage_timeout_s,
        publish=s.publisher != "none",
    )
    runner = PipelineRunner(stages=stages, commands=SubprocessRunner(env=COMMAND_ENV))

    tbl = Table(title=f"Plan for {trigger.event_kind.value} {trigger.ref_name}")
    tbl.add_column("#", justify="right")
    tbl.add_column("stage")
    tbl.add_column("runs")
    tbl.add_column("gating")
    for ps in runner.plan(trigger):
        tbl.add_row(
            str(ps.position),
            ps.stage_id,
            "yes" if ps.will_run else "[dim]skip[/dim]",
            _gating_label(ps.stage_id, ps.gating),
        )
    console.print(tbl)
    if trigger.is_release_tag:
        desc = ReleaseArtifactDescriptor.for_trigger(
            trigger, output_dir=s.output_dir, prefix=s.artifact_prefix
        )
        console.print(f"RELEASE_FILE={desc.file_name}", highlight=False)
    return 0


def _cmd_run(args: argparse.Namespace, common: _CommonArgs, s: Settings) -> int:
    log = get_logger("gen_inds_release")
    trigger = resolve_trigger(common, s)

    best_effort = sorted(set(s.best_effort_stages) | set(args.best_effort or []))
    timeout_s = args.stage_timeout if args.stage_timeout is not None else s.stage_timeout_s
    stage_exit_codes = (
        bool(args.stage_exit_codes)
        if args.stage_exit_codes is not None
        else s.stage_exit_codes
    )
    workspace = Path(common.workspace) if common.workspace else Path(s.workspace)

    run_id = new_run_id()
    bind(run_id=run_id, command=common.cmd, ref=trigger.ref_name)

    publisher_kind = args.publisher or s.publisher
    stages = _decorate(
        build_stages(
            best_effort=best_effort,
            timeout_s=timeout_s,
            publish=publisher_kind != "none",
        )
    )
    runner = PipelineRunner(
        stages=stages,
        commands=SubprocessRunner(env=COMMAND_ENV),
        publisher=build_publisher(publisher_kind, s),
        cfg=RunnerConfig(
            stop_on_failure=True,
            stage_timeout_s=timeout_s,
            stage_exit_codes=stage_exit_codes,
            env_export_path=s.github_env,
        ),
        logger=log,
    )

    console.print(
        Panel.fit(
            Text(
                f"gen-inds-release - {common.cmd}\nrun_id={run_id}\n"
                f"trigger={trigger.event_kind.value} {trigger.ref_name}",
                style="bold",
            ),
            title="Run",
        )
    )

    report = runner.run(
        trigger=trigger,
        workspace=workspace,
        run_root=Path(s.run_root),
        run_id=run_id,
        meta={
            "toolchain": s.toolchain,
            "output_dir": s.output_dir,
            "artifact_prefix": s.artifact_prefix,
            "best_effort": best_effort,
        },
    )

    tbl = Table(title="Result", show_header=True, box=None)
    tbl.add_column("stage")
    tbl.add_column("outcome")
    tbl.add_column("detail")
    for res in report.stages:
        detail = res.error.message.splitlines()[0] if res.error else ""
        if res.skip_reason is not None:
            detail = res.skip_reason.value
        tbl.add_row(res.stage, _OUTCOME_STYLE[res.status], detail)
    tbl.add_row(
        "status", "[green]ok[/green]" if report.ok else "[red]failed[/red]", ""
    )
    tbl.add_row("report", str(Path(s.run_root) / run_id / "run_report.json"), "")
    console.print(tbl)

    return int(report.exit_code)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    common = _common(args)

    s = load_settings()
    configure_logging(level=s.log_level, fmt=s.log_format)

    try:
        if common.cmd == "release-name":
            return _cmd_release_name(args, s)
        if common.cmd == "plan":
            return _cmd_plan(common, s)
        return _cmd_run(args, common, s)
    except (TriggerError, ValueError) as e:
        console.print(f"[red]error:[/red] {e}", highlight=False)
        return EXIT_USAGE
    finally:
        clear_bindings()


if __name__ == "__main__":
    raise SystemExit(main())
