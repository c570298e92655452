from __future__ import annotations

import traceback
from dataclasses import dataclass
from typing import Sequence


class ReleasePipelineError(RuntimeError):
    """Base error"""


@dataclass(frozen=True, slots=True)
class StageError:
    """
    A normalized error record for stage failures.
    """

    exc_type: str
    message: str
    traceback: str


def stage_error_from_exc(exc: BaseException) -> StageError:
    return StageError(
        exc_type=type(exc).__name__,
        message=str(exc),
        traceback="".join(traceback.format_exception(exc)),
    )


class TriggerError(ReleasePipelineError):
    """Trigger inputs (event kind / ref) cannot be classified"""


class CommandError(ReleasePipelineError):
    """
    An external command exited non-zero.
    """

    def __init__(
        self,
        message: str,
        *,
        argv: Sequence[str] = (),
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.argv = tuple(argv)
        self.returncode = returncode


class ToolchainError(CommandError):
    """Toolchain install/update/info failed"""


class CheckFailure(CommandError):
    """Format, lint, type-check, test or build gate failed"""


class PackagingError(ReleasePipelineError):
    """Release archive could not be assembled"""


class PublishError(ReleasePipelineError):
    """Release publisher rejected or failed the upload"""


class StageTimeoutError(ReleasePipelineError):
    """A stage ran past its deadline"""


class RunAborted(ReleasePipelineError):
    """The run was cancelled from outside (SIGINT)"""
