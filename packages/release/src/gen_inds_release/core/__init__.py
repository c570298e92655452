from .config import Settings, load_settings
from .errors import (
    CheckFailure,
    CommandError,
    PackagingError,
    PublishError,
    ReleasePipelineError,
    RunAborted,
    StageError,
    StageTimeoutError,
    ToolchainError,
    TriggerError,
    stage_error_from_exc,
)
from .fs import (
    commit_tmp,
    discard,
    file_size,
    place_copy,
    relative_subdir,
    relpath_posix,
    reserve_sibling_tmp,
)
from .hashing import FileDigest, digest_file, write_checksums
from .logging import ILogger, bind, clear_bindings, configure_logging, get_logger
from .provenance import host_info, new_run_id
from .time import monotonic_ms, release_timestamp, utc_now, utc_now_iso

__all__ = [
    "Settings",
    "load_settings",
    "ReleasePipelineError",
    "StageError",
    "stage_error_from_exc",
    "TriggerError",
    "CommandError",
    "ToolchainError",
    "CheckFailure",
    "PackagingError",
    "PublishError",
    "StageTimeoutError",
    "RunAborted",
    "commit_tmp",
    "discard",
    "file_size",
    "place_copy",
    "relative_subdir",
    "relpath_posix",
    "reserve_sibling_tmp",
    "FileDigest",
    "digest_file",
    "write_checksums",
    "ILogger",
    "bind",
    "clear_bindings",
    "configure_logging",
    "get_logger",
    "host_info",
    "new_run_id",
    "monotonic_ms",
    "release_timestamp",
    "utc_now",
    "utc_now_iso",
]
