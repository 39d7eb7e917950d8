class ReleaseError(Exception):
    """Base class for everything this package raises on purpose."""


class MalformedVersionError(ReleaseError, ValueError):
    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(
            f"malformed version tag {raw!r}: expected [v]MAJOR.MINOR.PATCH[-rc.N] "
            "with non-negative integers and N >= 1"
        )


class UnknownBumpError(ReleaseError, ValueError):
    def __init__(self, value: object):
        self.value = value
        super().__init__(f"unknown bump {value!r}: expected one of major, minor, patch")


class MissingArgumentError(ReleaseError):
    def __init__(self, operation: str, field: str):
        self.operation = operation
        self.field = field
        super().__init__(f"{operation}: '{field}' is required")


class CommandError(ReleaseError):
    def __init__(self, cmd: list[str], returncode: int, stderr: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        shown = " ".join(cmd)
        super().__init__(f"command failed ({returncode}): {shown}: {stderr.strip()}")


class PublishError(ReleaseError):
    def __init__(self, action: str, status_code: int, text: str = ""):
        self.action = action
        self.status_code = status_code
        super().__init__(f"{action} failed with HTTP {status_code}: {text[:500]}")


class UnknownStatusError(ReleaseError, ValueError):
    def __init__(self, state: str, allowed: list[str]):
        self.state = state
        super().__init__(f"unknown commit status {state!r}: expected one of {', '.join(allowed)}")
