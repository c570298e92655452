from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

Argv = tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ToolchainPlan:
    """
    The cargo/rustup invocations behind each gate, for one toolchain channel.
    """

    toolchain: str = "nightly"

    def setup(self) -> list[Argv]:
        return [
            ("rustup", "update"),
            ("rustup", "install", self.toolchain),
            (
                "rustup",
                "component",
                "add",
                "clippy",
                "rustfmt",
                "--toolchain",
                self.toolchain,
            ),
        ]

    def info(self) -> list[Argv]:
        return [
            ("cargo", "--version", "--verbose"),
            ("rustc", "--version"),
            ("cargo", "clippy", "--version"),
        ]

    def lint(self) -> list[Argv]:
        return [
            ("cargo", f"+{self.toolchain}", "fmt", "--", "--check"),
            ("cargo", f"+{self.toolchain}", "clippy", "--", "-D", "warnings"),
        ]

    def test(self) -> list[Argv]:
        return [
            ("cargo", "check"),
            ("cargo", "test", "--all"),
        ]

    def build(self) -> list[Argv]:
        return [("cargo", "build", "--release")]

    @classmethod
    def from_meta(cls, meta: Mapping[str, Any]) -> "ToolchainPlan":
        return cls(toolchain=str(meta.get("toolchain") or "nightly"))
