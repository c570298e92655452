from __future__ import annotations

from pathlib import Path
from typing import Any

from gen_inds_release.core import (
    PackagingError,
    PublishError,
    file_size,
    write_checksums,
)
from gen_inds_release.pipeline import RunContext
from gen_inds_release.pipeline.events import EventType
from gen_inds_release.release import (
    ENV_RELEASE_FILE,
    RELEASE_ASSET_GLOB,
    ReleaseArtifactDescriptor,
    build_release_archive,
    default_input_patterns,
)


def _prefix(ctx: RunContext) -> str:
    return str(ctx.meta.get("artifact_prefix") or "gen_inds")


def _output_dir(ctx: RunContext) -> str:
    # Same directory list_build_output reads, as a workspace-relative path.
    return ctx.output_dir().relative_to(ctx.workspace).as_posix()


def stage_release_metadata(ctx: RunContext) -> dict[str, Any]:
    desc = ReleaseArtifactDescriptor.for_trigger(
        ctx.trigger, output_dir=_output_dir(ctx), prefix=_prefix(ctx)
    )
    for key, value in desc.env_exports().items():
        ctx.env.set(key, value)

    ctx.emit(EventType.ENV_EXPORT, keys=sorted(desc.env_exports()))
    ctx.emit(EventType.RELEASE_METADATA, **desc.to_dict())
    return desc.to_dict()


def stage_list_build_output(ctx: RunContext) -> dict[str, Any]:
    out_dir = ctx.output_dir()
    if not out_dir.is_dir():
        raise PackagingError(f"Build output directory not found: {out_dir}")

    entries: list[dict[str, Any]] = []
    for p in sorted(out_dir.iterdir()):
        entries.append(
            {
                "name": p.name,
                "kind": "dir" if p.is_dir() else "file",
                "bytes": file_size(p) if p.is_file() else None,
            }
        )

    log = ctx.stage_logger("list_build_output")
    for e in entries:
        log.info("Build output", **e)
    return {"output_dir": str(out_dir), "entries": entries}


def stage_package_artifact(ctx: RunContext) -> dict[str, Any]:
    release_file = ctx.env.require(ENV_RELEASE_FILE)
    patterns = default_input_patterns(output_dir=_output_dir(ctx), prefix=_prefix(ctx))

    ctx.emit(EventType.PACKAGE_START, release_file=release_file, patterns=list(patterns))
    archive = build_release_archive(
        workspace=ctx.workspace, patterns=patterns, out_name=release_file
    )
    art = ctx.record_artifact(
        path=archive.path, content_type="application/gzip", rel_to=ctx.workspace
    )
    write_checksums(ctx.run_root / "sha256sums.txt", {art.path: art.sha256})
    ctx.emit(
        EventType.PACKAGE_FINISH,
        release_file=release_file,
        members=list(archive.members),
    )

    return {
        "release_file": release_file,
        "archive": str(archive.path),
        "members": list(archive.members),
        "_artifacts": [art],
        "_metrics": {"members": len(archive.members), "bytes": art.bytes},
    }


def stage_publish_release(ctx: RunContext) -> dict[str, Any]:
    tag = ctx.trigger.tag_name
    if not tag:
        raise PublishError(f"Trigger ref {ctx.trigger.ref_name!r} is not a release tag")
    if ctx.publisher is None:
        raise PublishError("No release publisher configured")

    files: list[Path] = sorted(ctx.workspace.glob(RELEASE_ASSET_GLOB))
    if not files:
        raise PublishError(f"No {RELEASE_ASSET_GLOB} assets in {ctx.workspace}")

    ctx.emit(EventType.PUBLISH_START, tag=tag, assets=[p.name for p in files])
    receipt = ctx.publisher.publish(tag=tag, files=files, timeout_s=ctx.remaining_s())
    ctx.emit(EventType.PUBLISH_FINISH, **receipt.to_dict())

    return {**receipt.to_dict(), "_metrics": {"assets": len(receipt.assets)}}
