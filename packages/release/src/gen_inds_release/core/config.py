from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .fs import relative_subdir

LogFormat = Literal["json", "console"]
PublisherKind = Literal["github", "directory", "none"]

ENV_PREFIX = "GEN_INDS_RELEASE_"


def _env(name: str, *fallbacks: str) -> AliasChoices:
    return AliasChoices(f"{ENV_PREFIX}{name}", *fallbacks)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    workspace: Path = Field(default=Path("."))
    output_dir: str = Field(default="target/release")
    run_root: Path = Field(default=Path("_runs"))
    artifact_prefix: str = Field(default="gen_inds", min_length=1)
    toolchain: str = Field(default="nightly", min_length=1)

    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="console")

    # Stage ids whose failure is recorded but never aborts the run.
    best_effort_stages: list[str] = Field(default_factory=list)
    stage_timeout_s: Optional[float] = Field(default=None, gt=0)
    stage_exit_codes: bool = Field(default=False)

    publisher: PublisherKind = Field(default="github")
    publish_dir: Path = Field(default=Path("_releases"))

    github_api_url: str = Field(
        default="https://api.github.com",
        validation_alias=_env("GITHUB_API_URL", "GITHUB_API_URL"),
    )
    github_repository: Optional[str] = Field(
        default=None,
        validation_alias=_env("GITHUB_REPOSITORY", "GITHUB_REPOSITORY"),
    )
    github_token: Optional[str] = Field(
        default=None,
        validation_alias=_env("GITHUB_TOKEN", "GITHUB_TOKEN"),
        repr=False,
    )
    github_env: Optional[Path] = Field(
        default=None,
        validation_alias=_env("GITHUB_ENV", "GITHUB_ENV"),
    )
    github_ref: Optional[str] = Field(
        default=None,
        validation_alias=_env("GITHUB_REF", "GITHUB_REF"),
    )
    github_event_name: Optional[str] = Field(
        default=None,
        validation_alias=_env("GITHUB_EVENT_NAME", "GITHUB_EVENT_NAME"),
    )

    @field_validator("output_dir")
    @classmethod
    def _output_dir_inside_workspace(cls, v: str) -> str:
        return relative_subdir(v)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings()
