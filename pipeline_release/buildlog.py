import re
from collections.abc import Iterable

_AGENT_RE = re.compile(r"^\[.+\] Running on")
_CARET_RE = re.compile(r"^\s*\^")


def _is_content(line: str) -> bool:
    if line.startswith("[Pipeline]") or line.startswith("[declarative]"):
        return False
    if _AGENT_RE.match(line):
        return False
    return bool(line.strip())


def _is_error(line: str) -> bool:
    lower = line.lower()
    return (
        "error" in lower
        or "failed" in lower
        or "FAILURE" in line
        or "Exception" in line
        or "✗" in line
        or line.startswith("  at ")  # stack frames
        or bool(_CARET_RE.match(line))  # syntax error pointer
    )


def filter_build_log(lines: Iterable[str], max_lines: int = 60) -> str:
    """Reduce a console log to the part worth pasting into a failure report.

    Pipeline bookkeeping lines are dropped. Error-looking lines win; when
    there are none the tail of the remaining output is returned instead.
    """
    if isinstance(lines, str):
        lines = lines.splitlines()
    content = [line.rstrip("\n") for line in lines if _is_content(line)]
    errors = [line for line in content if _is_error(line)]
    if errors:
        return "\n".join(errors[:max_lines])
    return "\n".join(content[-max_lines:] if max_lines > 0 else [])
