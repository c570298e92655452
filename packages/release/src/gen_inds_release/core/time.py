import time
from datetime import datetime, timezone

# Matches `date +'%Y-%m-%d_%H:%M:%S'`
RELEASE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat().replace("+00:00", "Z")


def release_timestamp(now: datetime | None = None) -> str:
    return (now or utc_now()).strftime(RELEASE_TIMESTAMP_FORMAT)


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)
