from __future__ import annotations

import os
import platform
import uuid
from typing import Mapping

from gen_inds_release import __version__

# GitHub Actions run identity, copied into run reports when present.
_GITHUB_RUN_KEYS = ("GITHUB_RUN_ID", "GITHUB_RUN_ATTEMPT", "GITHUB_SHA", "GITHUB_WORKFLOW")


def new_run_id() -> str:
    return uuid.uuid4().hex


def host_info(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Where the pipeline ran: host, interpreter and, under Actions, the workflow run."""
    env = os.environ if environ is None else environ
    info = {
        "tool_version": __version__,
        "hostname": platform.node(),
        "python": platform.python_version(),
        "platform": platform.platform(),
    }
    info.update({k.lower(): env[k] for k in _GITHUB_RUN_KEYS if env.get(k)})
    return info
