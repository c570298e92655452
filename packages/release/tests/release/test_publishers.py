from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from gen_inds_release.core import PublishError, StageTimeoutError
from gen_inds_release.release import DirectoryPublisher, GitHubReleasePublisher
from gen_inds_release.release.github import make_http_client

API = "https://api.github.com"
UPLOAD = "https://uploads.github.com/repos/octo/gen_inds/releases/7/assets{?name,label}"


def _release(assets: list[dict] | None = None) -> dict:
    return {
        "id": 7,
        "upload_url": UPLOAD,
        "html_url": "https://github.com/octo/gen_inds/releases/tag/v2.0.1",
        "assets": assets or [],
    }


@pytest.fixture
def asset(tmp_path: Path) -> Path:
    p = tmp_path / "gen_inds_v2.0.1.tar.gz"
    p.write_bytes(b"tarball")
    return p


def _publisher(handler, *, token: str | None = "t0ken") -> GitHubReleasePublisher:
    client = make_http_client(transport=httpx.MockTransport(handler))
    return GitHubReleasePublisher(
        repository="octo/gen_inds", token=token, api_url=API, client=client
    )


def test_creates_release_and_uploads(asset: Path) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "GET":
            return httpx.Response(404, json={"message": "Not Found"})
        if request.url.path == "/repos/octo/gen_inds/releases":
            assert json.loads(request.content) == {"tag_name": "v2.0.1", "name": "v2.0.1"}
            return httpx.Response(201, json=_release())
        return httpx.Response(201, json={"id": 11, "name": request.url.params["name"]})

    receipt = _publisher(handler).publish(tag="v2.0.1", files=[asset])

    assert [(r.method, r.url.host, r.url.path) for r in seen] == [
        ("GET", "api.github.com", "/repos/octo/gen_inds/releases/tags/v2.0.1"),
        ("POST", "api.github.com", "/repos/octo/gen_inds/releases"),
        ("POST", "uploads.github.com", "/repos/octo/gen_inds/releases/7/assets"),
    ]
    upload = seen[-1]
    assert upload.url.params["name"] == "gen_inds_v2.0.1.tar.gz"
    assert upload.headers["Content-Type"] == "application/gzip"
    assert upload.headers["Authorization"] == "Bearer t0ken"
    assert upload.content == b"tarball"

    assert receipt.tag == "v2.0.1"
    assert receipt.assets == ("gen_inds_v2.0.1.tar.gz",)
    assert receipt.release_id == 7


def test_replaces_existing_asset(asset: Path) -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(f"{request.method} {request.url.path}")
        if request.method == "GET":
            return httpx.Response(
                200, json=_release([{"id": 99, "name": "gen_inds_v2.0.1.tar.gz"}])
            )
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(201, json={})

    _publisher(handler).publish(tag="v2.0.1", files=[asset])

    assert methods == [
        "GET /repos/octo/gen_inds/releases/tags/v2.0.1",
        "DELETE /repos/octo/gen_inds/releases/assets/99",
        "POST /repos/octo/gen_inds/releases/7/assets",
    ]


def test_rejected_upload_raises(asset: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=_release())
        return httpx.Response(422, json={"message": "Validation Failed"})

    with pytest.raises(PublishError, match="422"):
        _publisher(handler).publish(tag="v2.0.1", files=[asset])


def test_transport_error_raises(asset: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network down", request=request)

    with pytest.raises(PublishError, match="network down"):
        _publisher(handler).publish(tag="v2.0.1", files=[asset])


def test_missing_credentials_fail_before_any_request(asset: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    with pytest.raises(PublishError, match="token"):
        _publisher(handler, token=None).publish(tag="v2.0.1", files=[asset])


def test_directory_publisher(tmp_path: Path, asset: Path) -> None:
    pub = DirectoryPublisher(root=tmp_path / "releases")
    receipt = pub.publish(tag="v2.0.1", files=[asset])

    copied = tmp_path / "releases" / "v2.0.1" / asset.name
    assert copied.read_bytes() == b"tarball"
    assert receipt.assets == (asset.name,)
    assert pub.published == [receipt]

    with pytest.raises(PublishError):
        pub.publish(tag="v2.0.1", files=[])
    with pytest.raises(PublishError):
        pub.publish(tag="v2.0.1", files=[tmp_path / "missing.tar.gz"])


def test_remaining_stage_time_bounds_every_request(asset: Path) -> None:
    timeouts: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        timeouts.append(request.extensions["timeout"])
        if request.method == "GET":
            return httpx.Response(200, json=_release())
        return httpx.Response(201, json={"id": 12})

    _publisher(handler).publish(tag="v2.0.1", files=[asset], timeout_s=7.5)
    assert len(timeouts) == 2
    assert all(set(t.values()) == {7.5} for t in timeouts)

    timeouts.clear()
    _publisher(handler).publish(tag="v2.0.1", files=[asset])
    assert timeouts[0]["read"] == 60.0


def test_request_timeout_is_a_stage_timeout(asset: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(StageTimeoutError):
        _publisher(handler).publish(tag="v2.0.1", files=[asset], timeout_s=0.5)

    with pytest.raises(PublishError, match="timed out"):
        _publisher(handler).publish(tag="v2.0.1", files=[asset])
