from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Optional


class StageOutcome(StrEnum):
    pending = "pending"
    success = "success"
    failure = "failure"
    skipped = "skipped"


class SkipReason(StrEnum):
    # The stage does not apply to this trigger (e.g. packaging on a branch push).
    predicate = "predicate"
    # An earlier gating stage failed or the run was aborted.
    upstream_failure = "upstream_failure"


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    """A file a stage produced, as recorded in the run report."""

    path: str
    bytes: int
    sha256: str
    content_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Event:
    """One line of events.jsonl. `seq` is assigned by the sink."""

    type: str
    ts_utc: str
    run_id: str
    stage: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)
    seq: int = 0
