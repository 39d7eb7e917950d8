"""Release workflow: calculate the next version, tag it, publish a release.

Collaborators are passed in explicitly:

- a tag source with ``latest_tag() -> str``
- a tag publisher with ``publish_tag(version, message, repo)``
- a release publisher with an async
  ``publish_release(version, repo, body, draft, prerelease) -> ReleaseInfo``
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

from pydantic import BaseModel

from .errors import MissingArgumentError
from .github import ReleaseInfo
from .semver import Bump, VersionDecision, next_version

logger = logging.getLogger("pipeline_release")


class TagSource(Protocol):
    def latest_tag(self) -> str: ...


class TagPublisher(Protocol):
    def publish_tag(self, version: str, message: str | None = None, repo: str | None = None) -> None: ...


class ReleasePublisher(Protocol):
    async def publish_release(
        self,
        version: str,
        repo: str,
        body: str | None = None,
        draft: bool = False,
        prerelease: bool | None = None,
    ) -> ReleaseInfo: ...


class ReleaseResult(BaseModel):
    version: str
    release_id: Any = None
    release_url: str | None = None
    decision: VersionDecision


def release_body(version: str, stable: bool, image_name: str | None = None, image_tag: str | None = None) -> str:
    body = f"{'Release' if stable else 'Pre-release'} {version}"
    if image_name and image_tag:
        body += f"\n\nImage: {image_name}:{image_tag}"
    return body


class ReleaseWorkflow:
    def __init__(
        self,
        tag_source: TagSource,
        tag_publisher: TagPublisher,
        release_publisher: ReleasePublisher,
        structured_logging: bool = True,
    ):
        self.tag_source = tag_source
        self.tag_publisher = tag_publisher
        self.release_publisher = release_publisher
        self.structured_logging = structured_logging

    def calculate(self, stable: bool = False, bump: Bump | str = Bump.minor) -> VersionDecision:
        return next_version(self.tag_source.latest_tag(), stable=stable, bump=bump)

    async def create_release(
        self,
        repo: str,
        stable: bool = False,
        bump: Bump | str = Bump.minor,
        image_name: str | None = None,
        image_tag: str | None = None,
    ) -> ReleaseResult:
        if not repo:
            raise MissingArgumentError("create_release", "repo")

        # blocking git calls stay off the event loop
        decision = await asyncio.to_thread(self.calculate, stable=stable, bump=bump)
        version = decision.tag
        headline = f"{'Release' if stable else 'Pre-release'} {version}"
        logger.info("Creating %s: %s", "release" if stable else "pre-release", version)

        await asyncio.to_thread(self.tag_publisher.publish_tag, version, headline, repo)
        info = await self.release_publisher.publish_release(
            version,
            repo,
            body=release_body(version, stable, image_name, image_tag),
            draft=False,
            prerelease=not stable,
        )
        result = ReleaseResult(
            version=version, release_id=info.id, release_url=info.url, decision=decision
        )
        if self.structured_logging:
            logger.info(
                json.dumps(
                    {
                        "event": "release_created",
                        "repo": repo,
                        "current_tag": decision.current_tag,
                        "version": version,
                        "stable": stable,
                        "release_id": info.id,
                        "release_url": info.url,
                    }
                )
            )
        return result
