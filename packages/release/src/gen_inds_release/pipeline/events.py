from __future__ import annotations

import json
import threading
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import IO, Any, Iterator, Optional

from gen_inds_release.core import utc_now_iso

from .types import Event


class EventType(str, Enum):
    RUN_START = "run.start"
    RUN_ABORTED = "run.aborted"
    RUN_FINISH = "run.finish"

    STAGE_START = "stage.start"
    STAGE_WARN = "stage.warn"
    STAGE_METRICS = "stage.metrics"
    STAGE_SUCCESS = "stage.success"
    STAGE_FAILED = "stage.failed"
    STAGE_SKIPPED = "stage.skipped"

    ARTIFACT_WRITTEN = "artifact.written"

    COMMAND_START = "command.start"
    COMMAND_FINISH = "command.finish"

    ENV_EXPORT = "env.export"
    RELEASE_METADATA = "release.metadata"

    PACKAGE_START = "package.start"
    PACKAGE_FINISH = "package.finish"

    PUBLISH_START = "publish.start"
    PUBLISH_FINISH = "publish.finish"


class EventSink:
    """
    Append-only JSONL event log for one run.

    Every event gets a `seq` number in write order, so the log can be
    replayed in order even when timestamps collide.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._seq = 0
        self._fh: Optional[IO[str]] = self.path.open("a", encoding="utf-8")

    def emit(self, event: Event) -> Event:
        with self._lock:
            if self._fh is None:
                raise RuntimeError(f"Event sink {self.path} is closed")
            self._seq += 1
            stamped = Event(**{**asdict(event), "seq": self._seq})
            self._fh.write(json.dumps(asdict(stamped), ensure_ascii=False, default=str))
            self._fh.write("\n")
            # Flush per event; a killed run still leaves a readable log.
            self._fh.flush()
        return stamped

    def close(self) -> None:
        with self._lock:
            if self._fh is not None:
                self._fh.close()
                self._fh = None

    def __enter__(self) -> "EventSink":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def iter_events(path: Path) -> Iterator[Event]:
    with Path(path).open("r", encoding="utf-8") as f:
        for line in f:
            if line.strip():
                yield Event(**json.loads(line))


def make_event(
    *,
    event_type: EventType | str,
    run_id: str,
    stage: Optional[str] = None,
    **data: Any,
) -> Event:
    return Event(
        type=event_type.value if isinstance(event_type, EventType) else str(event_type),
        ts_utc=utc_now_iso(),
        run_id=run_id,
        stage=stage,
        data=dict(data),
    )
