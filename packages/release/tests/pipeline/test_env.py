from __future__ import annotations

from pathlib import Path

import pytest
from gen_inds_release.core import ReleasePipelineError
from gen_inds_release.pipeline import RunEnv


def test_set_get_and_export(tmp_path: Path) -> None:
    export = tmp_path / "github_env"
    env = RunEnv(export_path=export)

    env.set("TIMESTAMP", "2025-01-01_00:00:00")
    env.set("RELEASE_FILE", "gen_inds_v1.tar.gz")

    assert env.get("RELEASE_FILE") == "gen_inds_v1.tar.gz"
    assert "TIMESTAMP" in env
    assert export.read_text() == (
        "TIMESTAMP=2025-01-01_00:00:00\nRELEASE_FILE=gen_inds_v1.tar.gz\n"
    )


def test_require_missing_key() -> None:
    with pytest.raises(ReleasePipelineError, match="RELEASE_FILE"):
        RunEnv().require("RELEASE_FILE")


@pytest.mark.parametrize("key, value", [("BAD-KEY", "x"), ("OK", "two\nlines")])
def test_rejects_invalid_entries(key: str, value: str) -> None:
    env = RunEnv()
    with pytest.raises(ValueError):
        env.set(key, value)
    assert env.snapshot() == {}
