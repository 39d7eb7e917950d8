import json
import logging
import time
import uuid

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from pydantic import BaseModel

from pipeline_release.config import Settings, settings_from_env
from pipeline_release.errors import (
    CommandError,
    MalformedVersionError,
    MissingArgumentError,
    PublishError,
    UnknownBumpError,
)
from pipeline_release.git import CommitInfo, GitRepository, GitTagPublisher
from pipeline_release.github import GitHubReleasePublisher
from pipeline_release.notify import BuildContext, discord_failure_payload, send_discord
from pipeline_release.semver import Bump, SemVer, next_version
from pipeline_release.workflow import ReleaseWorkflow

load_dotenv()

logger = logging.getLogger("pipeline_release")
if not logger.handlers:
    handler = logging.StreamHandler()
    logger.addHandler(handler)
logger.setLevel(logging.INFO)

app = FastAPI(title="Pipeline Release", version="0.1.0")

METRIC_DECISIONS = Counter(
    "release_version_decisions_total", "Version decisions computed", ["mode"]
)
METRIC_RELEASES = Counter(
    "release_releases_total", "Release workflow runs", ["mode", "ok"]
)

SET: Settings = settings_from_env()


@app.middleware("http")
async def request_id_middleware(request, call_next):  # type: ignore
    req_id = str(uuid.uuid4())
    request.state.request_id = req_id
    request.state.start_time = time.time()
    resp = await call_next(request)
    resp.headers["X-Request-ID"] = req_id
    return resp


@app.exception_handler(MalformedVersionError)
@app.exception_handler(UnknownBumpError)
async def _bad_version(request: Request, exc: Exception):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(MissingArgumentError)
async def _missing_argument(request: Request, exc: MissingArgumentError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "field": exc.field})


@app.exception_handler(CommandError)
@app.exception_handler(PublishError)
async def _upstream_failure(request: Request, exc: Exception):
    logger.error("release upstream failure: %s", exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


class NextVersionRequest(BaseModel):
    current_tag: str | None = None
    stable: bool = False
    bump: Bump = Bump.minor


class NextVersionResult(BaseModel):
    current_tag: str
    tag: str
    new_version: SemVer
    base_version: SemVer
    bump: Bump | None = None
    request_id: str | None = None


class ReleaseRequest(BaseModel):
    repo: str = ""
    stable: bool = False
    bump: Bump = Bump.minor
    image_name: str | None = None
    image_tag: str | None = None


class FailureNotification(BaseModel):
    repo: str
    build: BuildContext
    commit: CommitInfo | None = None


def _latency_ms(request: Request) -> int | None:
    start = getattr(request.state, "start_time", None)
    return int((time.time() - start) * 1000) if start else None


def repository() -> GitRepository:
    return GitRepository(SET.workspace, safe_directory=SET.safe_directory)


def workflow() -> ReleaseWorkflow:
    repo = repository()
    return ReleaseWorkflow(
        tag_source=repo,
        tag_publisher=GitTagPublisher(
            repo,
            user=SET.git_user,
            token=SET.git_token,
            email=SET.git_email,
            name=SET.git_name,
            structured_logging=SET.structured_logging,
        ),
        release_publisher=GitHubReleasePublisher(
            SET.git_token,
            api_url=SET.github_api_url,
            timeout=SET.http_timeout,
            structured_logging=SET.structured_logging,
        ),
        structured_logging=SET.structured_logging,
    )


def require_auth(request: Request):
    if SET.auth_token:
        auth = request.headers.get("Authorization")
        if not auth or auth != f"Bearer {SET.auth_token}":
            raise HTTPException(status_code=401, detail="unauthorized")
    return True


@app.get("/healthz")
def healthz():
    return {
        "ok": True,
        "workspace": SET.workspace,
        "github": bool(SET.git_token),
        "discord": bool(SET.discord_webhook_url),
    }


@app.get("/readyz")
def readyz():
    return {"ok": True}


@app.post("/versions/next")
def versions_next(req: NextVersionRequest, request: Request):
    current = req.current_tag if req.current_tag is not None else repository().latest_tag()
    decision = next_version(current, stable=req.stable, bump=req.bump)
    mode = "stable" if req.stable else "pre-release"
    METRIC_DECISIONS.labels(mode=mode).inc()
    res = NextVersionResult(
        current_tag=decision.current_tag,
        tag=decision.tag,
        new_version=decision.new_version,
        base_version=decision.base_version,
        bump=decision.bump,
        request_id=getattr(request.state, "request_id", None),
    )
    if SET.structured_logging:
        logger.info(
            json.dumps(
                {
                    "event": "version_decision",
                    "mode": mode,
                    "current_tag": res.current_tag,
                    "tag": res.tag,
                    "request_id": res.request_id,
                    "latency_ms": _latency_ms(request),
                }
            )
        )
    return res


@app.post("/releases")
async def releases(req: ReleaseRequest, request: Request, _: bool = Depends(require_auth)):
    mode = "stable" if req.stable else "pre-release"
    ok = False
    try:
        result = await workflow().create_release(
            req.repo,
            stable=req.stable,
            bump=req.bump,
            image_name=req.image_name,
            image_tag=req.image_tag,
        )
        ok = True
    finally:
        METRIC_RELEASES.labels(mode=mode, ok=str(ok).lower()).inc()
        if SET.structured_logging:
            logger.info(
                json.dumps(
                    {
                        "event": "release_request",
                        "mode": mode,
                        "repo": req.repo,
                        "ok": ok,
                        "request_id": getattr(request.state, "request_id", None),
                        "latency_ms": _latency_ms(request),
                    }
                )
            )
    return Response(content=result.model_dump_json(), media_type="application/json")


@app.post("/notifications/failure")
async def notify_failure(req: FailureNotification, _: bool = Depends(require_auth)):
    if not SET.discord_webhook_url:
        raise MissingArgumentError("notify_failure", "discord_webhook_url")
    payload = discord_failure_payload(req.build, req.repo, req.commit)
    await send_discord(SET.discord_webhook_url, payload, timeout=SET.http_timeout)
    return {"ok": True, "channel": "discord"}


@app.get("/metrics")
def metrics():  # pragma: no cover
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def main():
    # Convenience CLI entrypoint: `pipeline-release-server`
    import os

    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8788"))
    uvicorn.run("services.release.main:app", host=host, port=port, reload=False)
