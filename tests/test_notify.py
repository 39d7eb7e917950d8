import asyncio
import datetime
import json

import pytest
from httpx import Response

from pipeline_release import notify as N
from pipeline_release.errors import PublishError, ReleaseError, UnknownStatusError
from pipeline_release.git import CommitInfo

CTX = N.BuildContext(
    job_name="widgets/main",
    build_number="17",
    build_url="https://ci.example/job/widgets/17/",
    git_branch="main",
    git_commit="abc1234def5678",
)


def test_failure_comment_truncates():
    body = N.failure_comment(CTX, "acme/widgets", "x" * 50, max_chars=10)
    assert body.startswith(N.FAILURE_MARKER)
    assert "x" * 10 + "\n... (truncated)" in body
    assert "x" * 11 not in body
    assert "[abc1234](https://github.com/acme/widgets/commit/abc1234def5678)" in body
    assert "https://ci.example/job/widgets/17/pipeline-overview/" in body
    assert "https://ci.example/job/widgets/17/consoleText" in body


def test_shadow_diff_comment():
    body = N.shadow_diff_comment("https://github.com/acme/m/compare/a...b", rendered_dirs=12, failed_dirs=2, commit_short="abc1234")
    assert body.startswith(N.SHADOW_DIFF_MARKER)
    assert "**Rendered:** 12 directories | **Failed:** 2 directories" in body
    assert "_Rendered from commit abc1234_" in body
    plain = N.shadow_diff_comment("https://x")
    assert "Rendered:" not in plain and "Rendered from commit" not in plain


def test_discord_payload_with_commit_and_pr():
    ctx = CTX.model_copy(
        update={"change_id": "5", "change_url": "https://github.com/acme/widgets/pull/5", "change_title": "Add thing"}
    )
    commit = CommitInfo(short="abc1234", message="m" * 150, author="dev")
    now = datetime.datetime(2026, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc)
    payload = N.discord_failure_payload(ctx, "acme/widgets", commit, now=now)
    embed = payload["embeds"][0]
    assert embed["color"] == 15158332
    assert embed["timestamp"] == "2026-01-02T03:04:05Z"
    assert embed["url"] == "https://ci.example/job/widgets/17/pipeline-overview/"
    assert embed["footer"] == {"text": "Jenkins CI"}
    assert "**Author:** dev" in embed["description"]
    assert "m" * 100 in embed["description"] and "m" * 101 not in embed["description"]
    assert "**PR:** [#5](https://github.com/acme/widgets/pull/5) - Add thing" in embed["description"]
    assert "**PR Author:** unknown" in embed["description"]


def test_discord_payload_without_commit_info():
    embed = N.discord_failure_payload(CTX, "acme/widgets")["embeds"][0]
    assert "**Commit:** [abc1234](https://github.com/acme/widgets/commit/abc1234def5678)" in embed["description"]
    assert "**PR:**" not in embed["description"]


class Recorder:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []
        rec = self

        class DummyClient:
            def __init__(self, *a, **k):
                pass

            async def __aenter__(self):
                return self

            async def __aexit__(self, *exc):
                return False

            async def _send(self, method, url, headers=None, content=None):
                rec.calls.append((method, url, json.loads(content) if content else None))
                status, body = rec.responses.pop(0)
                return Response(status, json=body)

            async def get(self, url, headers=None):
                return await self._send("GET", url, headers)

            async def post(self, url, headers=None, content=None):
                return await self._send("POST", url, headers, content)

            async def patch(self, url, headers=None, content=None):
                return await self._send("PATCH", url, headers, content)

        self.client = DummyClient


def test_commit_status(monkeypatch):
    rec = Recorder([(201, {"id": 1})])
    monkeypatch.setattr("pipeline_release.notify.httpx.AsyncClient", rec.client)
    gh = N.GitHubNotifier("tok")
    asyncio.run(gh.commit_status("acme/widgets", "abc", "SUCCESS", "Build passed", build_url=CTX.build_url))
    method, url, payload = rec.calls[0]
    assert url == "https://api.github.com/repos/acme/widgets/statuses/abc"
    assert payload["state"] == "success"
    assert payload["target_url"] == CTX.overview_url
    assert payload["context"] == "continuous-integration/jenkins"
    with pytest.raises(UnknownStatusError) as exc:
        asyncio.run(gh.commit_status("acme/widgets", "abc", "UNSTABLE", "?"))
    assert isinstance(exc.value, ReleaseError) and exc.value.state == "unstable"
    assert rec.calls[1:] == []


def test_pr_comment_skips_without_number(monkeypatch):
    rec = Recorder([(201, {"id": 3})])
    monkeypatch.setattr("pipeline_release.notify.httpx.AsyncClient", rec.client)
    gh = N.GitHubNotifier("tok")
    assert asyncio.run(gh.pr_comment("acme/widgets", None, "hi")) is None
    assert rec.calls == []
    assert asyncio.run(gh.pr_comment("acme/widgets", 5, "hi")) == {"id": 3}
    assert rec.calls[0][1].endswith("/repos/acme/widgets/issues/5/comments")


def test_upsert_pr_comment_updates_marked(monkeypatch):
    rec = Recorder([(200, [{"id": 10, "body": "other"}, {"id": 11, "body": N.SHADOW_DIFF_MARKER + "\nold"}]), (200, {"id": 11})])
    monkeypatch.setattr("pipeline_release.notify.httpx.AsyncClient", rec.client)
    gh = N.GitHubNotifier("tok")
    asyncio.run(gh.upsert_pr_comment("acme/widgets", 5, "new", N.SHADOW_DIFF_MARKER))
    assert rec.calls[1][:2] == ("PATCH", "https://api.github.com/repos/acme/widgets/issues/comments/11")


def test_upsert_pr_comment_creates_when_absent(monkeypatch):
    rec = Recorder([(200, []), (201, {"id": 12})])
    monkeypatch.setattr("pipeline_release.notify.httpx.AsyncClient", rec.client)
    asyncio.run(N.GitHubNotifier("tok").upsert_pr_comment("acme/widgets", 5, "new", N.SHADOW_DIFF_MARKER))
    assert rec.calls[1][0] == "POST"


def test_send_discord_error(monkeypatch):
    rec = Recorder([(204, None), (400, {"message": "bad embed"})])
    monkeypatch.setattr("pipeline_release.notify.httpx.AsyncClient", rec.client)
    payload = N.discord_failure_payload(CTX, "acme/widgets")
    asyncio.run(N.send_discord("https://discord.example/hook", payload))
    assert rec.calls[0][2] == payload
    with pytest.raises(PublishError):
        asyncio.run(N.send_discord("https://discord.example/hook", payload))
