from __future__ import annotations

import os
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Protocol, Sequence

from gen_inds_release.core import CommandError, StageTimeoutError, monotonic_ms
from gen_inds_release.pipeline.events import EventType

if TYPE_CHECKING:
    from gen_inds_release.pipeline.context import RunContext

_TAIL_CHARS = 2000


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def display(self) -> str:
        return shlex.join(self.argv)

    def tail(self, limit: int = _TAIL_CHARS) -> str:
        """Last `limit` chars of combined output, stderr preferred."""
        text = (self.stderr or "").strip() or (self.stdout or "").strip()
        return text[-limit:]

    def to_dict(self) -> dict[str, object]:
        return {
            "command": self.display,
            "returncode": self.returncode,
            "duration_ms": self.duration_ms,
        }


class CommandRunner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        timeout_s: float | None = None,
    ) -> CommandResult: ...


@dataclass(slots=True)
class SubprocessRunner:
    """
    Runs commands with `subprocess.run`, capturing output.

    A missing executable is reported as exit status 127 (what a shell does)
    so it fails the owning gate like any other non-zero exit.
    """

    env: Mapping[str, str] = field(default_factory=dict)

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        timeout_s: float | None = None,
    ) -> CommandResult:
        cmd = [str(a) for a in argv]
        merged_env = os.environ.copy()
        merged_env.update(self.env)

        t0 = monotonic_ms()
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(cwd),
                env=merged_env,
                capture_output=True,
                text=True,
                timeout=timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise StageTimeoutError(
                f"`{shlex.join(cmd)}` timed out after {timeout_s:.1f}s"
            ) from e
        except FileNotFoundError as e:
            return CommandResult(
                argv=tuple(cmd),
                returncode=127,
                stderr=f"{cmd[0]}: command not found ({e})",
                duration_ms=monotonic_ms() - t0,
            )

        return CommandResult(
            argv=tuple(cmd),
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_ms=monotonic_ms() - t0,
        )


def run_gate(
    ctx: "RunContext",
    commands: Sequence[Sequence[str]],
    *,
    error_cls: type[CommandError],
) -> list[CommandResult]:
    """
    Run `commands` in order inside the workspace; the first non-zero exit
    raises `error_cls` and the remaining commands are not started.
    """
    log = ctx.stage_logger(ctx.stage_id or "-")
    results: list[CommandResult] = []

    for argv in commands:
        display = shlex.join(argv)
        ctx.emit(EventType.COMMAND_START, command=display)

        res = ctx.commands.run(argv, cwd=ctx.workspace, timeout_s=ctx.remaining_s())
        results.append(res)

        ctx.emit(EventType.COMMAND_FINISH, **res.to_dict())
        log.debug(
            "Command output",
            command=display,
            returncode=res.returncode,
            output=res.tail(),
        )

        if not res.ok:
            msg = f"`{display}` exited with status {res.returncode}"
            tail = res.tail()
            if tail:
                msg += f"\n{tail}"
            raise error_cls(msg, argv=res.argv, returncode=res.returncode)

        log.info("Command passed", command=display, duration_ms=res.duration_ms)

    return results
