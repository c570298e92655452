from __future__ import annotations

from pathlib import Path

import pytest
from gen_inds_release.core.config import Settings
from pydantic import ValidationError


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for key in (
        "GITHUB_TOKEN",
        "GITHUB_REPOSITORY",
        "GITHUB_REF",
        "GITHUB_EVENT_NAME",
        "GITHUB_ENV",
        "GITHUB_API_URL",
    ):
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    s = Settings()
    assert s.output_dir == "target/release"
    assert s.artifact_prefix == "gen_inds"
    assert s.toolchain == "nightly"
    assert s.best_effort_stages == []
    assert s.stage_timeout_s is None
    assert s.publisher == "github"


def test_reads_prefixed_and_github_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEN_INDS_RELEASE_TOOLCHAIN", "stable")
    monkeypatch.setenv("GEN_INDS_RELEASE_BEST_EFFORT_STAGES", '["toolchain_info"]')
    monkeypatch.setenv("GEN_INDS_RELEASE_STAGE_TIMEOUT_S", "900")
    monkeypatch.setenv("GITHUB_REPOSITORY", "octo/gen_inds")
    monkeypatch.setenv("GITHUB_TOKEN", "t0ken")
    monkeypatch.setenv("GITHUB_REF", "refs/tags/v1.0.0")

    s = Settings()
    assert s.toolchain == "stable"
    assert s.best_effort_stages == ["toolchain_info"]
    assert s.stage_timeout_s == 900.0
    assert s.github_repository == "octo/gen_inds"
    assert s.github_token == "t0ken"
    assert s.github_ref == "refs/tags/v1.0.0"
    assert "t0ken" not in repr(s)


def test_prefixed_github_variable_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEN_INDS_RELEASE_GITHUB_REPOSITORY", "mine/fork")
    monkeypatch.setenv("GITHUB_REPOSITORY", "octo/gen_inds")
    assert Settings().github_repository == "mine/fork"


def test_rejects_bad_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEN_INDS_RELEASE_PUBLISHER", "s3")
    with pytest.raises(ValidationError):
        Settings()


@pytest.mark.parametrize("value", ["/abs/target/release", "../target/release", "."])
def test_output_dir_must_stay_inside_workspace(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("GEN_INDS_RELEASE_OUTPUT_DIR", value)
    with pytest.raises(ValidationError):
        Settings()


def test_output_dir_is_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEN_INDS_RELEASE_OUTPUT_DIR", "target/x86_64/release/")
    assert Settings().output_dir == "target/x86_64/release"
