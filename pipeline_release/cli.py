"""Print the next release tag derived from the most recent git tag.

    next-release-version                 # v1.0.0 -> v1.1.0-rc.1
    next-release-version --stable        # v1.1.0-rc.3 -> v1.1.0
    next-release-version --stable --bump patch --tag v1.1.0   # -> v1.1.1
"""
from __future__ import annotations

import argparse
import sys

from .config import settings_from_env
from .errors import MalformedVersionError
from .git import GitRepository
from .semver import Bump, next_version


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="next-release-version", description=__doc__.splitlines()[0])
    p.add_argument("--stable", action="store_true", help="compute the next stable release")
    p.add_argument(
        "--bump",
        choices=[b.value for b in Bump],
        default=Bump.minor.value,
        help="component to bump when the current tag is already stable",
    )
    p.add_argument("--tag", help="current tag (default: git describe --tags --abbrev=0)")
    p.add_argument("--workspace", help="git checkout to read tags from")
    p.add_argument("--json", action="store_true", help="print the full decision as JSON")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    current = args.tag
    if current is None:
        settings = settings_from_env()
        repo = GitRepository(args.workspace or settings.workspace, safe_directory=settings.safe_directory)
        current = repo.latest_tag()
    try:
        decision = next_version(current, stable=args.stable, bump=args.bump)
    except MalformedVersionError as e:
        print(str(e), file=sys.stderr)
        return 2
    if args.json:
        print(decision.model_dump_json())
    else:
        print(decision.tag)
    return 0


if __name__ == "__main__":
    sys.exit(main())
