from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeCommandRunner
from gen_inds_release import cli
from gen_inds_release.core.config import load_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    for key in ("GITHUB_EVENT_NAME", "GITHUB_REF", "GITHUB_ENV", "GITHUB_TOKEN"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("GEN_INDS_RELEASE_RUN_ROOT", str(tmp_path / "_runs"))
    monkeypatch.setenv("GEN_INDS_RELEASE_PUBLISH_DIR", str(tmp_path / "_releases"))
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture
def fake_commands(monkeypatch: pytest.MonkeyPatch) -> FakeCommandRunner:
    fake = FakeCommandRunner()
    monkeypatch.setattr(cli, "SubprocessRunner", lambda env: fake)
    return fake


def test_release_name(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["release-name", "refs/tags/v2.0.1"]) == 0
    assert capsys.readouterr().out.strip() == "gen_inds_v2.0.1.tar.gz"


def test_release_name_rejects_branch() -> None:
    assert cli.main(["release-name", "refs/heads/main"]) == 1


def test_plan_for_branch(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["plan", "--event", "push", "--ref", "refs/heads/main"]) == 0
    out = capsys.readouterr().out
    assert "toolchain_setup" in out and "publish_release" in out
    assert "RELEASE_FILE" not in out


def test_plan_reads_github_env(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("GITHUB_EVENT_NAME", "push")
    monkeypatch.setenv("GITHUB_REF", "refs/tags/v0.3.0")
    assert cli.main(["plan"]) == 0
    assert "RELEASE_FILE=gen_inds_v0.3.0.tar.gz" in capsys.readouterr().out


def test_run_without_trigger_is_a_usage_error() -> None:
    assert cli.main(["run"]) == cli.EXIT_USAGE


def test_run_tag_with_directory_publisher(
    tmp_path: Path, workspace: Path, fake_commands: FakeCommandRunner
) -> None:
    code = cli.main(
        [
            "run",
            "--event",
            "tag_push",
            "--ref",
            "v2.0.1",
            "--workspace",
            str(workspace),
            "--publisher",
            "directory",
        ]
    )

    assert code == 0
    assert "cargo build --release" in fake_commands.calls
    published = tmp_path / "_releases" / "v2.0.1" / "gen_inds_v2.0.1.tar.gz"
    assert published.is_file()
    assert len(list((tmp_path / "_runs").glob("*/run_report.json"))) == 1


def test_run_lint_failure_with_stage_exit_codes(
    workspace: Path, fake_commands: FakeCommandRunner
) -> None:
    fake_commands.failures["cargo +nightly fmt"] = 1
    code = cli.main(
        [
            "run",
            "--event",
            "push",
            "--ref",
            "refs/heads/main",
            "--workspace",
            str(workspace),
            "--stage-exit-codes",
        ]
    )
    assert code == 13


def test_best_effort_flag(workspace: Path, fake_commands: FakeCommandRunner) -> None:
    fake_commands.failures["rustc --version"] = 127
    args = ["run", "--event", "push", "--ref", "refs/heads/main", "--workspace", str(workspace)]

    assert cli.main(args) == 1
    assert cli.main(args + ["--best-effort", "toolchain_info"]) == 0


def test_run_tag_without_publisher(
    tmp_path: Path, workspace: Path, fake_commands: FakeCommandRunner
) -> None:
    args = ["run", "--event", "tag_push", "--ref", "refs/tags/v2.0.1"]
    code = cli.main(args + ["--workspace", str(workspace), "--publisher", "none"])

    assert code == 0
    assert (workspace / "gen_inds_v2.0.1.tar.gz").is_file()
    assert not (tmp_path / "_releases").exists()
