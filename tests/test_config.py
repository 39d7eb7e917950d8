from pipeline_release.config import Settings, settings_from_env


def test_defaults(monkeypatch):
    for k in [
        "RELEASE_WORKSPACE",
        "WORKSPACE",
        "RELEASE_SAFE_DIRECTORY",
        "GIT_USER",
        "GIT_TOKEN",
        "RELEASE_GIT_EMAIL",
        "RELEASE_GIT_NAME",
        "GITHUB_API_URL",
        "RELEASE_HTTP_TIMEOUT",
        "DISCORD_WEBHOOK_URL",
        "RELEASE_STRUCT_LOG",
        "RELEASE_AUTH_TOKEN",
    ]:
        monkeypatch.delenv(k, raising=False)
    s = settings_from_env()
    assert s.model_dump() == Settings().model_dump()
    assert s.workspace == "." and s.structured_logging is True and s.http_timeout == 10.0


def test_env_overrides(monkeypatch):
    monkeypatch.delenv("RELEASE_WORKSPACE", raising=False)
    monkeypatch.setenv("WORKSPACE", "/var/jenkins/ws")
    monkeypatch.setenv("RELEASE_SAFE_DIRECTORY", "1")
    monkeypatch.setenv("GIT_TOKEN", "tok")
    monkeypatch.setenv("RELEASE_STRUCT_LOG", "0")
    monkeypatch.setenv("RELEASE_HTTP_TIMEOUT", "2.5")
    s = settings_from_env()
    assert s.workspace == "/var/jenkins/ws"
    assert s.safe_directory is True
    assert s.git_token == "tok"
    assert s.structured_logging is False
    assert s.http_timeout == 2.5
