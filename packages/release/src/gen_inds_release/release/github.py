from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence
from urllib.parse import quote

import httpx
import structlog
from gen_inds_release.core import PublishError, StageTimeoutError

from .publisher import PublishReceipt, _require_files

log = structlog.get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"


def make_http_client(
    *,
    timeout: httpx.Timeout | None = None,
    follow_redirects: bool = True,
    user_agent: str = "gen-inds-release/0.1",
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    t = timeout or httpx.Timeout(connect=5.0, read=60.0, write=120.0, pool=5.0)
    return httpx.Client(
        timeout=t,
        follow_redirects=follow_redirects,
        headers={"User-Agent": user_agent},
        transport=transport,
    )


def _body_snippet(resp: httpx.Response, *, limit: int = 200) -> str | None:
    try:
        s = (resp.text or "")[:limit].strip()
    except (httpx.HTTPError, UnicodeDecodeError):
        return None
    return s or None


class GitHubStatusError(PublishError):
    def __init__(
        self, *, method: str, url: str, status_code: int, body_snippet: str | None
    ) -> None:
        msg = f"GitHub API returned HTTP {status_code} for {method} {url}"
        if body_snippet:
            msg += f" (body: {body_snippet})"
        super().__init__(msg)
        self.method = method
        self.url = url
        self.status_code = status_code


def _expect(resp: httpx.Response, allowed: Iterable[int]) -> httpx.Response:
    if resp.status_code in set(allowed):
        return resp
    raise GitHubStatusError(
        method=resp.request.method,
        url=str(resp.request.url),
        status_code=resp.status_code,
        body_snippet=_body_snippet(resp),
    )


def _upload_base(upload_url: str) -> str:
    # "https://uploads.github.com/repos/o/r/releases/1/assets{?name,label}"
    return upload_url.split("{", 1)[0]


@dataclass(slots=True)
class GitHubReleasePublisher:
    """
    Publishes assets to the GitHub release bound to a tag.

    The release is created when the tag has none; an existing asset with the
    same file name is deleted before the new one is uploaded. Any unexpected
    HTTP status or transport error raises PublishError; nothing is retried.
    """

    repository: Optional[str]
    token: Optional[str]
    api_url: str = "https://api.github.com"
    client: Optional[httpx.Client] = None
    asset_content_type: str = "application/gzip"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def _repo_url(self, suffix: str) -> str:
        return f"{self.api_url.rstrip('/')}/repos/{self.repository}/{suffix}"

    def publish(
        self,
        *,
        tag: str,
        files: Sequence[Path],
        timeout_s: Optional[float] = None,
    ) -> PublishReceipt:
        if not self.repository or "/" not in self.repository:
            raise PublishError(
                f"GitHub repository must be 'owner/name', got {self.repository!r}"
            )
        if not self.token:
            raise PublishError("GitHub token is not configured (GITHUB_TOKEN)")
        if not tag:
            raise PublishError("Release tag must not be empty")
        paths = _require_files(files)

        # Every request gets the whole remaining stage budget.
        timeout = httpx.Timeout(timeout_s) if timeout_s is not None else None
        req: dict[str, Any] = {"timeout": timeout} if timeout is not None else {}

        owns_client = self.client is None
        client = self.client or make_http_client(timeout=timeout)
        try:
            release = self._get_or_create_release(client, tag, req)
            existing = {
                str(a.get("name")): a
                for a in release.get("assets") or []
                if isinstance(a, dict)
            }
            upload_base = _upload_base(str(release["upload_url"]))

            uploaded: list[str] = []
            for p in paths:
                if p.name in existing:
                    self._delete_asset(client, existing[p.name], req)
                self._upload_asset(client, upload_base, p, req)
                uploaded.append(p.name)

            return PublishReceipt(
                tag=tag,
                assets=tuple(uploaded),
                release_url=release.get("html_url"),
                release_id=release.get("id"),
            )
        except httpx.TimeoutException as e:
            if timeout_s is not None:
                raise StageTimeoutError(
                    f"GitHub request exceeded the remaining {timeout_s:.1f}s stage budget"
                ) from e
            raise PublishError(f"GitHub request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise PublishError(f"GitHub request failed: {e}") from e
        except KeyError as e:
            raise PublishError(f"Unexpected GitHub release payload, missing {e}") from e
        finally:
            if owns_client:
                client.close()

    def _get_or_create_release(
        self, client: httpx.Client, tag: str, req: dict[str, Any]
    ) -> dict[str, Any]:
        url = self._repo_url(f"releases/tags/{quote(tag, safe='')}")
        resp = _expect(client.get(url, headers=self._headers(), **req), (200, 404))
        if resp.status_code == 200:
            log.info("github.release.found", tag=tag)
            return resp.json()

        resp = _expect(
            client.post(
                self._repo_url("releases"),
                headers=self._headers(),
                json={"tag_name": tag, "name": tag},
                **req,
            ),
            (201,),
        )
        log.info("github.release.created", tag=tag)
        return resp.json()

    def _delete_asset(
        self, client: httpx.Client, asset: dict[str, Any], req: dict[str, Any]
    ) -> None:
        url = self._repo_url(f"releases/assets/{asset['id']}")
        _expect(client.delete(url, headers=self._headers(), **req), (204,))
        log.info("github.asset.replaced", name=asset.get("name"))

    def _upload_asset(
        self, client: httpx.Client, upload_base: str, path: Path, req: dict[str, Any]
    ) -> None:
        headers = self._headers()
        headers["Content-Type"] = self.asset_content_type
        _expect(
            client.post(
                upload_base,
                params={"name": path.name},
                headers=headers,
                content=path.read_bytes(),
                **req,
            ),
            (201,),
        )
        log.info("github.asset.uploaded", name=path.name, bytes=path.stat().st_size)
