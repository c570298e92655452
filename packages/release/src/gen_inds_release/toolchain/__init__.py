from .commands import CommandResult, CommandRunner, SubprocessRunner, run_gate
from .plan import ToolchainPlan

__all__ = [
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
    "run_gate",
    "ToolchainPlan",
]
