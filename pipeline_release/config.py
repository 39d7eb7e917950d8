import os

from pydantic import BaseModel


class Settings(BaseModel):
    # git
    workspace: str = "."  # RELEASE_WORKSPACE
    safe_directory: bool = False  # RELEASE_SAFE_DIRECTORY ("1" to enable)
    git_user: str | None = None  # GIT_USER
    git_token: str | None = None  # GIT_TOKEN
    git_email: str = "jenkins@erauner.dev"
    git_name: str = "Jenkins CI"

    # github
    github_api_url: str = "https://api.github.com"
    http_timeout: float = 10.0

    # discord
    discord_webhook_url: str | None = None

    # structured logging toggle
    structured_logging: bool = True  # RELEASE_STRUCT_LOG ("0" to disable)

    # simple bearer auth token for protected endpoints
    auth_token: str | None = None  # RELEASE_AUTH_TOKEN


def settings_from_env() -> Settings:
    return Settings(
        workspace=os.getenv("RELEASE_WORKSPACE") or os.getenv("WORKSPACE") or ".",
        safe_directory=os.getenv("RELEASE_SAFE_DIRECTORY", "0") == "1",
        git_user=os.getenv("GIT_USER"),
        git_token=os.getenv("GIT_TOKEN"),
        git_email=os.getenv("RELEASE_GIT_EMAIL", "jenkins@erauner.dev"),
        git_name=os.getenv("RELEASE_GIT_NAME", "Jenkins CI"),
        github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
        http_timeout=float(os.getenv("RELEASE_HTTP_TIMEOUT", "10") or "10"),
        discord_webhook_url=os.getenv("DISCORD_WEBHOOK_URL"),
        structured_logging=os.getenv("RELEASE_STRUCT_LOG", "1") != "0",
        auth_token=os.getenv("RELEASE_AUTH_TOKEN"),
    )
