from .context import RunContext
from .env import RunEnv
from .events import EventSink, EventType, iter_events
from .report import FirstFailure, RunReport
from .runner import PipelineRunner, PlannedStage, RunnerConfig
from .stage import (
    FunctionStage,
    Stage,
    StageFn,
    StageResult,
    always,
    never,
    on_release_tag,
    run_stage,
)
from .types import ArtifactRef, Event, SkipReason, StageOutcome

__all__ = [
    "RunContext",
    "RunEnv",
    "EventSink",
    "EventType",
    "iter_events",
    "FirstFailure",
    "RunReport",
    "PipelineRunner",
    "PlannedStage",
    "RunnerConfig",
    "FunctionStage",
    "Stage",
    "StageFn",
    "StageResult",
    "always",
    "never",
    "on_release_tag",
    "run_stage",
    "ArtifactRef",
    "Event",
    "SkipReason",
    "StageOutcome",
]
