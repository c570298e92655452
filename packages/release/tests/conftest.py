from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

import pytest
from gen_inds_release.core import PublishError
from gen_inds_release.pipeline import PipelineRunner, RunnerConfig, RunReport
from gen_inds_release.release import PublishReceipt
from gen_inds_release.stages import build_stages
from gen_inds_release.toolchain import CommandResult
from gen_inds_release.trigger import TriggerContext

DEFAULT_META = {
    "toolchain": "nightly",
    "output_dir": "target/release",
    "artifact_prefix": "gen_inds",
}


@dataclass
class FakeCommandRunner:
    """Command runner that succeeds unless a command starts with a listed prefix."""

    failures: dict[str, int] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def run(
        self, argv: Sequence[str], *, cwd: Path, timeout_s: float | None = None
    ) -> CommandResult:
        display = shlex.join(argv)
        self.calls.append(display)
        rc = 0
        for prefix, code in self.failures.items():
            if display.startswith(prefix):
                rc = code
        return CommandResult(
            argv=tuple(argv),
            returncode=rc,
            stdout=f"{argv[0]} 1.80.0-nightly\n",
            stderr="error: check failed" if rc else "",
            duration_ms=1,
        )


@dataclass
class RecordingPublisher:
    fail: bool = False
    calls: list[tuple[str, list[str]]] = field(default_factory=list)
    timeouts: list[float | None] = field(default_factory=list)

    def publish(
        self, *, tag: str, files: Sequence[Path], timeout_s: float | None = None
    ) -> PublishReceipt:
        self.timeouts.append(timeout_s)
        if self.fail:
            raise PublishError("upload rejected: HTTP 422")
        names = [Path(f).name for f in files]
        self.calls.append((tag, names))
        return PublishReceipt(tag=tag, assets=tuple(names))


def write_build_output(workspace: Path, *, with_libs: bool = True) -> Path:
    out = workspace / "target" / "release"
    out.mkdir(parents=True, exist_ok=True)
    (out / "gen_inds").write_bytes(b"\x7fELF-binary")
    (out / "gen_inds.d").write_text("gen_inds: src/vec_based.rs\n")
    if with_libs:
        (out / "libgen_inds.rlib").write_bytes(b"rlib")
        (out / "libgen_inds.so").write_bytes(b"\x7fELF-shared")
    (out / "deps").mkdir(exist_ok=True)
    (out / "deps" / "other.o").write_bytes(b"obj")
    return out


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "ws"
    write_build_output(ws)
    return ws


@pytest.fixture
def commands() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def run_pipeline(
    tmp_path: Path,
    workspace: Path,
    commands: FakeCommandRunner,
    publisher: RecordingPublisher,
) -> Callable[..., RunReport]:
    def _run(
        event: str,
        ref: str,
        *,
        best_effort: Sequence[str] = (),
        env_export_path: Path | None = None,
        stage_exit_codes: bool = False,
        publisher_override=None,
        meta: dict | None = None,
        timeout_s: float | None = None,
    ) -> RunReport:
        runner = PipelineRunner(
            stages=build_stages(best_effort=best_effort, timeout_s=timeout_s),
            commands=commands,
            publisher=publisher_override or publisher,
            cfg=RunnerConfig(
                env_export_path=env_export_path, stage_exit_codes=stage_exit_codes
            ),
        )
        return runner.run(
            trigger=TriggerContext.parse(event, ref),
            workspace=workspace,
            run_root=tmp_path / "_runs",
            meta={**DEFAULT_META, **(meta or {})},
        )

    return _run
