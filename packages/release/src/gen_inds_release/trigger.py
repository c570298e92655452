from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional

from gen_inds_release.core import TriggerError

TAG_REF_PREFIX = "refs/tags/"


class EventKind(StrEnum):
    push = "push"
    pull_request = "pull_request"
    tag_push = "tag_push"


_EVENT_ALIASES: dict[str, EventKind] = {
    "push": EventKind.push,
    "pull_request": EventKind.pull_request,
    "pull-request": EventKind.pull_request,
    "pr": EventKind.pull_request,
    "tag_push": EventKind.tag_push,
    "tag-push": EventKind.tag_push,
    "tag": EventKind.tag_push,
}


def strip_tag_prefix(ref_name: str) -> str:
    if ref_name.startswith(TAG_REF_PREFIX):
        return ref_name[len(TAG_REF_PREFIX) :]
    return ref_name


@dataclass(frozen=True, slots=True)
class TriggerContext:
    """
    The event that started a run. Fixed for the whole run.

    `is_release_tag` is derived from the ref alone, so a plain `push` of a
    tag ref and an explicit `tag_push` are the same trigger.
    """

    event_kind: EventKind
    ref_name: str

    @property
    def is_release_tag(self) -> bool:
        return self.ref_name.startswith(TAG_REF_PREFIX)

    @property
    def tag_name(self) -> Optional[str]:
        if not self.is_release_tag:
            return None
        return strip_tag_prefix(self.ref_name)

    @classmethod
    def parse(cls, event: str, ref: str) -> "TriggerContext":
        """
        Build a trigger from loose inputs (CLI flags, GitHub env).

        - `push` of a `refs/tags/...` ref becomes `tag_push`
        - `tag_push` accepts a bare tag name (`v1.2.3`) and qualifies it
        """
        kind = _EVENT_ALIASES.get(event.strip().lower())
        if kind is None:
            raise TriggerError(
                f"Unknown event kind {event!r}; expected one of "
                f"{sorted(k.value for k in EventKind)}"
            )

        ref = ref.strip()
        if not ref:
            raise TriggerError("Trigger ref must not be empty")

        if kind is EventKind.tag_push and not ref.startswith("refs/"):
            ref = TAG_REF_PREFIX + ref

        is_tag_ref = ref.startswith(TAG_REF_PREFIX)
        if kind is EventKind.push and is_tag_ref:
            kind = EventKind.tag_push
        elif kind is EventKind.tag_push and not is_tag_ref:
            raise TriggerError(f"tag_push trigger needs a tag ref, got {ref!r}")
        elif kind is EventKind.pull_request and is_tag_ref:
            raise TriggerError(f"pull_request trigger cannot carry a tag ref: {ref!r}")

        if is_tag_ref and not strip_tag_prefix(ref):
            raise TriggerError(f"Tag ref has an empty tag name: {ref!r}")

        return cls(event_kind=kind, ref_name=ref)

    def to_dict(self) -> dict[str, object]:
        return {
            "event_kind": self.event_kind.value,
            "ref_name": self.ref_name,
            "is_release_tag": self.is_release_tag,
            "tag_name": self.tag_name,
        }
