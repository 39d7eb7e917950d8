import json
import logging
from typing import Any

import httpx
from pydantic import BaseModel

from .errors import MissingArgumentError, PublishError

logger = logging.getLogger("pipeline_release")


class ReleaseInfo(BaseModel):
    id: int | str | None = None
    url: str | None = None


def github_headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github.v3+json"}
    if token:
        headers["Authorization"] = f"token {token}"
    return headers


def _ok(resp: httpx.Response) -> bool:
    return (resp.status_code // 100) == 2


class GitHubReleasePublisher:
    def __init__(
        self,
        token: str | None,
        api_url: str = "https://api.github.com",
        timeout: float = 10,
        structured_logging: bool = True,
    ):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.structured_logging = structured_logging

    async def _existing_release_id(self, client: Any, repo: str, version: str) -> Any:
        url = f"{self.api_url}/repos/{repo}/releases/tags/{version}"
        resp = await client.get(url, headers=github_headers(self.token))
        if resp.status_code == 404:
            return None
        if not _ok(resp):
            raise PublishError(f"lookup release {version}", resp.status_code, resp.text)
        return resp.json().get("id")

    async def publish_release(
        self,
        version: str,
        repo: str,
        body: str | None = None,
        draft: bool = False,
        prerelease: bool | None = None,
    ) -> ReleaseInfo:
        if not version:
            raise MissingArgumentError("publish_release", "version")
        if not repo:
            raise MissingArgumentError("publish_release", "repo")
        if prerelease is None:
            prerelease = "-rc." in version
        payload = {
            "tag_name": version,
            "name": version,
            "body": body or f"Release {version}",
            "draft": draft,
            "prerelease": prerelease,
        }
        headers = github_headers(self.token)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            existing = await self._existing_release_id(client, repo, version)
            if existing is not None:
                logger.info("deleting existing release %s for tag %s", existing, version)
                resp = await client.delete(
                    f"{self.api_url}/repos/{repo}/releases/{existing}", headers=headers
                )
                if not _ok(resp) and resp.status_code != 404:
                    raise PublishError(f"delete release {existing}", resp.status_code, resp.text)
            resp = await client.post(
                f"{self.api_url}/repos/{repo}/releases",
                headers={**headers, "Content-Type": "application/json"},
                content=json.dumps(payload),
            )
        if not _ok(resp):
            raise PublishError(f"create release {version}", resp.status_code, resp.text)
        data = resp.json()
        info = ReleaseInfo(id=data.get("id"), url=data.get("html_url"))
        if self.structured_logging:
            logger.info(
                json.dumps(
                    {"event": "release_published", "version": version, "repo": repo, "id": info.id}
                )
            )
        return info
