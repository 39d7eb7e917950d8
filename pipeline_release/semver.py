"""Release version calculation from the most recent git tag.

Version progression:

- ``v1.0.0``      -> ``v1.1.0-rc.1``  (next pre-release of a stable tag bumps minor)
- ``v1.1.0-rc.1`` -> ``v1.1.0-rc.2``  (next pre-release of an rc bumps the counter)
- ``v1.1.0-rc.5`` -> ``v1.1.0``       (next stable of an rc promotes it unchanged)
- ``v1.1.0``      -> ``v1.2.0``       (next stable of a stable tag applies the bump)
"""
from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .errors import MalformedVersionError, UnknownBumpError

DEFAULT_TAG = "v0.0.0"

_TAG_RE = re.compile(r"^v?([0-9]+)\.([0-9]+)\.([0-9]+)(?:-rc\.([0-9]+))?$", re.ASCII)


class Bump(str, Enum):
    major = "major"
    minor = "minor"
    patch = "patch"

    @classmethod
    def coerce(cls, value: Bump | str) -> Bump:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownBumpError(value) from None


class SemVer(BaseModel):
    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int = Field(ge=0)
    pre_release: int | None = Field(default=None, ge=1)

    def __str__(self) -> str:
        tag = f"v{self.major}.{self.minor}.{self.patch}"
        if self.pre_release is not None:
            tag += f"-rc.{self.pre_release}"
        return tag

    @property
    def is_pre_release(self) -> bool:
        return self.pre_release is not None

    def stable(self) -> SemVer:
        return SemVer(major=self.major, minor=self.minor, patch=self.patch, pre_release=None)

    def bumped(self, kind: Bump | str) -> SemVer:
        kind = Bump.coerce(kind)
        if kind is Bump.major:
            return SemVer(major=self.major + 1, minor=0, patch=0, pre_release=None)
        if kind is Bump.minor:
            return SemVer(major=self.major, minor=self.minor + 1, patch=0, pre_release=None)
        return SemVer(major=self.major, minor=self.minor, patch=self.patch + 1, pre_release=None)


class VersionDecision(BaseModel):
    current_tag: str
    new_version: SemVer
    base_version: SemVer
    bump: Bump | None = None

    @property
    def tag(self) -> str:
        return str(self.new_version)

    @property
    def rc_num(self) -> int | None:
        return self.new_version.pre_release


def parse_tag(raw: str) -> SemVer:
    m = _TAG_RE.match((raw or "").strip())
    if not m:
        raise MalformedVersionError(raw)
    try:
        major, minor, patch = (int(part) for part in m.groups()[:3])
        rc = int(m.group(4)) if m.group(4) is not None else None
    except ValueError as e:
        # int() refuses components past the interpreter's digit limit
        raise MalformedVersionError(raw) from e
    if rc is not None and rc < 1:
        raise MalformedVersionError(raw)
    return SemVer(major=major, minor=minor, patch=patch, pre_release=rc)


def next_pre_release(current_tag: str) -> VersionDecision:
    current = parse_tag(current_tag)
    if current.is_pre_release:
        new = current.model_copy(update={"pre_release": current.pre_release + 1})
    else:
        new = SemVer(major=current.major, minor=current.minor + 1, patch=0, pre_release=1)
    return VersionDecision(current_tag=current_tag, new_version=new, base_version=new.stable())


def next_stable(current_tag: str, bump: Bump | str = Bump.minor) -> VersionDecision:
    # reject bad bumps up front, even when an rc promotion would ignore them
    kind = Bump.coerce(bump)
    current = parse_tag(current_tag)
    if current.is_pre_release:
        new = current.stable()
        applied = None
    else:
        new = current.bumped(kind)
        applied = kind
    return VersionDecision(
        current_tag=current_tag, new_version=new, base_version=new, bump=applied
    )


def next_version(current_tag: str, stable: bool = False, bump: Bump | str = Bump.minor) -> VersionDecision:
    if stable:
        return next_stable(current_tag, bump)
    return next_pre_release(current_tag)
