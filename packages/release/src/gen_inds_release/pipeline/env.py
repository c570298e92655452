from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from gen_inds_release.core import ReleasePipelineError

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(slots=True)
class RunEnv:
    """
    Run-scoped key/value store shared between stages.

    When `export_path` is set (GitHub Actions' `$GITHUB_ENV`), every value is
    also appended there as `KEY=value` so later workflow steps can read it.
    """

    values: dict[str, str] = field(default_factory=dict)
    export_path: Optional[Path] = None

    def set(self, key: str, value: str) -> None:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid run env key: {key!r}")
        value = str(value)
        if "\n" in value or "\r" in value:
            raise ValueError(f"Run env value for {key} must be a single line")

        self.values[key] = value
        if self.export_path is not None:
            path = Path(self.export_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(f"{key}={value}\n")

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.values.get(key, default)

    def require(self, key: str) -> str:
        try:
            return self.values[key]
        except KeyError:
            raise ReleasePipelineError(
                f"Run env has no {key!r}; the stage that sets it did not run"
            ) from None

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def snapshot(self) -> dict[str, str]:
        return dict(self.values)
