import datetime
import json
from typing import Any

import httpx
from pydantic import BaseModel

from .errors import PublishError, UnknownStatusError
from .git import CommitInfo
from .github import github_headers

FAILURE_MARKER = "<!-- jenkins-build-failure -->"
SHADOW_DIFF_MARKER = "<!-- shadow-manifest-diff -->"
DISCORD_RED = 15158332
STATUS_STATES = {"success", "failure", "pending", "error"}


class BuildContext(BaseModel):
    job_name: str = ""
    build_number: str = ""
    build_url: str = ""
    git_branch: str = ""
    git_commit: str = ""
    change_id: str | None = None  # PR number
    change_url: str | None = None
    change_title: str | None = None
    change_author: str | None = None

    @property
    def commit_short(self) -> str:
        return self.git_commit[:7] if self.git_commit else "unknown"

    @property
    def overview_url(self) -> str:
        return f"{self.build_url}pipeline-overview/"


def failure_comment(ctx: BuildContext, repo: str, error_context: str = "", max_chars: int = 3000) -> str:
    if len(error_context) > max_chars:
        error_context = error_context[:max_chars] + "\n... (truncated)"
    return f"""{FAILURE_MARKER}
### ❌ Build Failed

**Job:** {ctx.job_name}
**Build:** [#{ctx.build_number}]({ctx.build_url})
**Branch:** {ctx.git_branch}
**Commit:** [{ctx.commit_short}](https://github.com/{repo}/commit/{ctx.git_commit})

<details>
<summary>Error Context (click to expand)</summary>

```
{error_context}
```

</details>

[\U0001f4cb View Pipeline]({ctx.overview_url}) | [\U0001f4c4 Raw Console]({ctx.build_url}consoleText)

---
_Posted by Jenkins CI_"""


def shadow_diff_comment(
    compare_url: str,
    rendered_dirs: int | None = None,
    failed_dirs: int | None = None,
    commit_short: str = "",
) -> str:
    stats = ""
    if rendered_dirs is not None:
        stats = f"**Rendered:** {rendered_dirs} directories"
        if failed_dirs:
            stats += f" | **Failed:** {failed_dirs} directories"
        stats = f"\n{stats}\n"
    commit_line = f"\n_Rendered from commit {commit_short}_" if commit_short else ""
    return f"""{SHADOW_DIFF_MARKER}
## \U0001f4cb Manifest Preview

This PR changes the following rendered Kubernetes manifests.
{stats}
[\U0001f50d **View rendered manifest diff →**]({compare_url})
{commit_line}
---
_Shadow sync by Jenkins CI_"""


def discord_failure_payload(
    ctx: BuildContext,
    repo: str,
    commit: CommitInfo | None = None,
    now: datetime.datetime | None = None,
) -> dict[str, Any]:
    commit_url = f"https://github.com/{repo}/commit/{ctx.git_commit}"
    desc = f"**Job:** {ctx.job_name}\n**Build:** #{ctx.build_number}\n**Branch:** {ctx.git_branch}\n\n"
    if commit:
        desc += f"**Commit:** [{commit.short}]({commit_url})\n"
        desc += f"**Author:** {commit.author}\n"
        desc += f"**Message:** {commit.message[:100]}"
    else:
        desc += f"**Commit:** [{ctx.commit_short}]({commit_url})"
    if ctx.change_id:
        desc += f"\n\n**PR:** [#{ctx.change_id}]({ctx.change_url}) - {ctx.change_title or 'No title'}"
        desc += f"\n**PR Author:** {ctx.change_author or 'unknown'}"

    now = now or datetime.datetime.now(datetime.timezone.utc)
    return {
        "embeds": [
            {
                "title": "❌ Jenkins Build Failed",
                "description": desc,
                "color": DISCORD_RED,
                "url": ctx.overview_url,
                "footer": {"text": "Jenkins CI"},
                "timestamp": now.strftime("%Y-%m-%dT%H:%M:%SZ"),
            }
        ]
    }


def _check(resp: httpx.Response, action: str) -> httpx.Response:
    if (resp.status_code // 100) != 2:
        raise PublishError(action, resp.status_code, resp.text)
    return resp


async def send_discord(webhook_url: str, payload: dict[str, Any], timeout: float = 10) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.post(
            webhook_url, headers={"Content-Type": "application/json"}, content=json.dumps(payload)
        )
    return _check(resp, "discord webhook")


class GitHubNotifier:
    def __init__(self, token: str | None, api_url: str = "https://api.github.com", timeout: float = 10):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    async def commit_status(
        self,
        repo: str,
        sha: str,
        state: str,
        description: str,
        target_url: str | None = None,
        context: str = "continuous-integration/jenkins",
        build_url: str | None = None,
    ) -> dict[str, Any]:
        state = state.lower()
        if state not in STATUS_STATES:
            raise UnknownStatusError(state, sorted(STATUS_STATES))
        if target_url is None and build_url:
            target_url = f"{build_url}pipeline-overview/"
        payload = {"state": state, "description": description[:140], "context": context}
        if target_url:
            payload["target_url"] = target_url
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                f"{self.api_url}/repos/{repo}/statuses/{sha}",
                headers=github_headers(self.token),
                content=json.dumps(payload),
            )
        return _check(resp, f"commit status {sha}").json()

    async def pr_comment(self, repo: str, number: str | int | None, body: str) -> dict[str, Any] | None:
        if not number:
            return None
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                f"{self.api_url}/repos/{repo}/issues/{number}/comments",
                headers=github_headers(self.token),
                content=json.dumps({"body": body}),
            )
        return _check(resp, f"comment on #{number}").json()

    async def upsert_pr_comment(
        self, repo: str, number: str | int | None, body: str, marker: str
    ) -> dict[str, Any] | None:
        if not number:
            return None
        headers = github_headers(self.token)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(
                f"{self.api_url}/repos/{repo}/issues/{number}/comments", headers=headers
            )
            existing = None
            for comment in _check(resp, f"list comments on #{number}").json():
                if marker in (comment.get("body") or ""):
                    existing = comment.get("id")
                    break
            if existing is None:
                resp = await client.post(
                    f"{self.api_url}/repos/{repo}/issues/{number}/comments",
                    headers=headers,
                    content=json.dumps({"body": body}),
                )
            else:
                resp = await client.patch(
                    f"{self.api_url}/repos/{repo}/issues/comments/{existing}",
                    headers=headers,
                    content=json.dumps({"body": body}),
                )
        return _check(resp, f"comment on #{number}").json()
