from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from gen_inds_release.core import (
    ILogger,
    PackagingError,
    StageTimeoutError,
    digest_file,
    monotonic_ms,
    relative_subdir,
)
from gen_inds_release.trigger import TriggerContext

from .env import RunEnv
from .events import EventSink, EventType, make_event
from .types import ArtifactRef

if TYPE_CHECKING:
    from gen_inds_release.release.publisher import ReleasePublisher
    from gen_inds_release.toolchain.commands import CommandRunner


@dataclass(slots=True)
class RunContext:
    """
    Context shared across stages for a single pipeline run.
    """

    run_id: str
    run_root: Path
    workspace: Path
    trigger: TriggerContext
    logger: ILogger
    events: EventSink
    commands: "CommandRunner"
    publisher: Optional["ReleasePublisher"] = None
    env: RunEnv = field(default_factory=RunEnv)

    # optional free-form metadata
    meta: dict[str, Any] = field(default_factory=dict)

    # set by the runner before each stage
    stage_id: Optional[str] = None
    deadline_ms: Optional[int] = None

    def stage_logger(self, stage: str) -> ILogger:
        return self.logger.bind(stage=stage)

    def emit(self, event: EventType | str, **kw: Any) -> None:
        # Keep event chatter at debug level to leave console logs readable.
        event_value = event.value if isinstance(event, EventType) else str(event)
        stage = kw.pop("stage", self.stage_id)
        self.logger.debug(event_value, event_type=event_value, stage=stage, **kw)
        self.events.emit(
            make_event(event_type=event_value, run_id=self.run_id, stage=stage, **kw)
        )

    def check_deadline(self) -> None:
        """Raise StageTimeoutError once the current stage is past its deadline."""
        if self.deadline_ms is not None and monotonic_ms() >= self.deadline_ms:
            raise StageTimeoutError(f"Stage {self.stage_id} exceeded its timeout")

    def remaining_s(self) -> float | None:
        """
        Seconds left before the current stage's deadline, or None if unbounded.
        """
        if self.deadline_ms is None:
            return None
        self.check_deadline()
        return max(self.deadline_ms - monotonic_ms(), 1) / 1000.0

    def output_dir(self) -> Path:
        raw = str(self.meta.get("output_dir") or "target/release")
        try:
            return self.workspace / relative_subdir(raw)
        except ValueError as e:
            raise PackagingError(str(e)) from e

    # Convenience helpers that standardize artifact emission
    def record_artifact(
        self,
        *,
        path: Path,
        content_type: str | None = None,
        rel_to: Path | None = None,
    ) -> ArtifactRef:
        p = Path(path)
        digest = digest_file(p)
        rel = str(p if rel_to is None else p.relative_to(rel_to).as_posix())
        art = ArtifactRef(
            path=rel, bytes=digest.bytes, sha256=digest.sha256, content_type=content_type
        )
        self.emit(
            EventType.ARTIFACT_WRITTEN,
            path=art.path,
            bytes=art.bytes,
            sha256=art.sha256,
            content_type=art.content_type,
        )
        return art
