from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from .stage import StageResult
from .types import StageOutcome

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ABORTED = 130
STAGE_EXIT_BASE = 10


@dataclass(frozen=True, slots=True)
class FirstFailure:
    stage: str
    position: int
    exc_type: str
    message: str


@dataclass(slots=True)
class RunReport:
    run_id: str
    started_at_utc: str
    finished_at_utc: str
    status: str  # "success" | "failed"
    duration_ms: int
    exit_code: int

    trigger: dict[str, Any] = field(default_factory=dict)
    stages: list[StageResult] = field(default_factory=list)
    first_failure: Optional[FirstFailure] = None
    aborted: bool = False
    run_env: dict[str, str] = field(default_factory=dict)
    host: dict[str, str] = field(default_factory=dict)
    events_jsonl: Optional[str] = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def outcome(self, stage_id: str) -> StageOutcome:
        for s in self.stages:
            if s.stage == stage_id:
                return s.status
        raise KeyError(stage_id)

    def result(self, stage_id: str) -> StageResult:
        for s in self.stages:
            if s.stage == stage_id:
                return s
        raise KeyError(stage_id)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def write_json(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.to_dict(), ensure_ascii=False, indent=2, default=str),
            encoding="utf-8",
        )


def find_first_failure(stage_results: list[StageResult]) -> Optional[FirstFailure]:
    for pos, s in enumerate(stage_results, start=1):
        if s.blocks_run:
            return FirstFailure(
                stage=s.stage,
                position=pos,
                exc_type=s.error.exc_type if s.error else "UnknownError",
                message=s.error.message if s.error else "",
            )
    return None


def exit_code_for(
    first_failure: Optional[FirstFailure], *, aborted: bool, stage_exit_codes: bool
) -> int:
    """
    0 on success, 130 when aborted, otherwise 1 (or 10 + the failing stage's
    1-based position when per-stage codes are enabled).
    """
    if aborted:
        return EXIT_ABORTED
    if first_failure is None:
        return EXIT_OK
    if stage_exit_codes:
        return STAGE_EXIT_BASE + first_failure.position
    return EXIT_FAILED


def build_run_report(
    *,
    run_id: str,
    started_at_utc: str,
    finished_at_utc: str,
    duration_ms: int,
    stage_results: list[StageResult],
    events_jsonl: str | None,
    trigger: dict[str, Any] | None = None,
    run_env: dict[str, str] | None = None,
    host: dict[str, str] | None = None,
    aborted: bool = False,
    stage_exit_codes: bool = False,
    meta: dict[str, Any] | None = None,
) -> RunReport:
    first = find_first_failure(stage_results)
    status = "success" if first is None and not aborted else "failed"
    return RunReport(
        run_id=run_id,
        started_at_utc=started_at_utc,
        finished_at_utc=finished_at_utc,
        status=status,
        duration_ms=duration_ms,
        exit_code=exit_code_for(
            first, aborted=aborted, stage_exit_codes=stage_exit_codes
        ),
        trigger=trigger or {},
        stages=stage_results,
        first_failure=first,
        aborted=aborted,
        run_env=run_env or {},
        host=host or {},
        events_jsonl=events_jsonl,
        meta=meta or {},
    )
