"""Semantic versions, version bounds and version ranges.

Registry files key their dependency and compatibility data by version
ranges such as ``"0.5-0.7"`` or ``"1"``. A bound with fewer than three
components matches every version sharing that prefix, so the lower bound
``1.2`` admits ``1.2.0`` and the upper bound ``1.2`` admits ``1.2.99``.
An empty bound (printed ``*``) is unbounded.

Compatibility specifiers follow the package manager's semver rules:

- ``1.2.3`` / ``^1.2.3``: caret, ``[1.2.3, 2.0.0)``
- ``~1.2.3``: tilde, ``[1.2.3, 1.3.0)``
- ``=1.2.3``: exactly that version
- ``>= 1.2`` / ``≥ 1.2``: at least that version
- ``< 1.2``: strictly below that version
- ``1.2 - 1.5``: hyphen range, both ends inclusive by prefix
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass

_VERSION_RE = re.compile(
    r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


def _identifier_key(part: str) -> tuple:
    return (0, int(part), "") if part.isdigit() else (1, 0, part)


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A semantic version number. Missing minor/patch components are zero."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> Version:
        match = _VERSION_RE.match(str(text).strip())
        if not match:
            raise ValueError(f"invalid version string: {text!r}")
        major, minor, patch, pre, build = match.groups()
        return cls(
            int(major),
            int(minor or 0),
            int(patch or 0),
            tuple(pre.split(".")) if pre else (),
            tuple(build.split(".")) if build else (),
        )

    @property
    def release(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def without_labels(self) -> Version:
        return Version(self.major, self.minor, self.patch)

    def _key(self) -> tuple:
        # A release sorts after its prereleases and before its builds.
        pre = (1,) if not self.prerelease else (0, tuple(map(_identifier_key, self.prerelease)))
        build = (0,) if not self.build else (1, tuple(map(_identifier_key, self.build)))
        return (self.release, pre, build)

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text


# ---------------------------------------------------------------------------
# Bounds and ranges
# ---------------------------------------------------------------------------


def _compare_prefix(a: tuple[int, ...], b: tuple[int, ...]) -> int:
    for x, y in zip(a, b):
        if x != y:
            return -1 if x < y else 1
    return 0


def _padded(parts: tuple[int, ...]) -> tuple[int, ...]:
    return parts + (0,) * (3 - len(parts))


@dataclass(frozen=True)
class VersionBound:
    """Zero to three leading version components."""

    parts: tuple[int, ...] = ()

    def __post_init__(self):
        if len(self.parts) > 3:
            raise ValueError(f"a version bound has at most three components: {self.parts}")
        if any(p < 0 for p in self.parts):
            raise ValueError(f"negative version bound component: {self.parts}")

    @classmethod
    def parse(cls, text: str) -> VersionBound:
        text = text.strip()
        if text == "*":
            return cls()
        if not re.fullmatch(r"v?\d+(\.\d+){0,2}", text):
            raise ValueError(f"invalid version bound: {text!r}")
        return cls(tuple(int(p) for p in text.lstrip("v").split(".")))

    @property
    def unbounded(self) -> bool:
        return not self.parts

    def __str__(self) -> str:
        return ".".join(map(str, self.parts)) if self.parts else "*"


def _lower_lt(a: VersionBound, b: VersionBound) -> bool:
    c = _compare_prefix(a.parts, b.parts)
    if c:
        return c < 0
    return len(a.parts) < len(b.parts)


def _upper_lt(a: VersionBound, b: VersionBound) -> bool:
    c = _compare_prefix(a.parts, b.parts)
    if c:
        return c < 0
    return len(a.parts) > len(b.parts)


def _joinable(upper: VersionBound, lower: VersionBound) -> bool:
    """Whether a range ending at *upper* and one starting at *lower* touch."""
    if upper.unbounded or lower.unbounded:
        return True
    successor = upper.parts[:-1] + (upper.parts[-1] + 1,)
    return _padded(lower.parts) <= _padded(successor)


@dataclass(frozen=True)
class VersionRange:
    """A closed range of versions between two prefix bounds."""

    lower: VersionBound = VersionBound()
    upper: VersionBound = VersionBound()

    @classmethod
    def parse(cls, text: str) -> VersionRange:
        text = text.strip()
        if "-" in text:
            lo, _, hi = text.partition("-")
            return cls(VersionBound.parse(lo), VersionBound.parse(hi))
        bound = VersionBound.parse(text)
        return cls(bound, bound)

    @property
    def is_empty(self) -> bool:
        return _compare_prefix(self.upper.parts, self.lower.parts) < 0

    def __contains__(self, version: Version) -> bool:
        release = version.release
        return (
            _compare_prefix(release, self.lower.parts) >= 0
            and _compare_prefix(release, self.upper.parts) <= 0
        )

    def intersect(self, other: VersionRange) -> VersionRange:
        lower = other.lower if _lower_lt(self.lower, other.lower) else self.lower
        upper = self.upper if _upper_lt(self.upper, other.upper) else other.upper
        return VersionRange(lower, upper)

    def __str__(self) -> str:
        lo, hi = self.lower, self.upper
        if lo.unbounded and hi.unbounded:
            return "*"
        if lo.unbounded:
            return f"0-{hi}"
        if hi.unbounded:
            return f"{lo}-*"
        if lo == hi:
            return str(lo)
        return f"{lo}-{hi}"


def _range_cmp(a: VersionRange, b: VersionRange) -> int:
    if _lower_lt(a.lower, b.lower):
        return -1
    if _lower_lt(b.lower, a.lower):
        return 1
    if _upper_lt(a.upper, b.upper):
        return -1
    if _upper_lt(b.upper, a.upper):
        return 1
    return 0


def union_ranges(ranges: list[VersionRange]) -> list[VersionRange]:
    """Sort *ranges*, drop empty ones and join overlapping or adjacent ones."""
    ordered = sorted(
        (r for r in ranges if not r.is_empty), key=functools.cmp_to_key(_range_cmp)
    )
    if not ordered:
        return []
    joined = []
    lower, upper = ordered[0].lower, ordered[0].upper
    for r in ordered[1:]:
        if _joinable(upper, r.lower):
            if _upper_lt(upper, r.upper):
                upper = r.upper
            continue
        joined.append(VersionRange(lower, upper))
        lower, upper = r.lower, r.upper
    joined.append(VersionRange(lower, upper))
    return joined


class VersionSpec:
    """A union of version ranges."""

    def __init__(self, ranges: list[VersionRange] | None = None):
        self.ranges = union_ranges(list(ranges or []))

    @classmethod
    def parse(cls, text: str) -> VersionSpec:
        return cls([VersionRange.parse(part) for part in text.split(",")])

    def __contains__(self, version: Version) -> bool:
        return any(version in r for r in self.ranges)

    def __eq__(self, other) -> bool:
        return isinstance(other, VersionSpec) and self.ranges == other.ranges

    def __repr__(self) -> str:
        return f"VersionSpec({[str(r) for r in self.ranges]})"


# ---------------------------------------------------------------------------
# Compatibility specifiers
# ---------------------------------------------------------------------------

_NUM = r"v?(\d+)(?:\.(\d+))?(?:\.(\d+))?"
_CARET_TILDE_RE = re.compile(rf"^([~^]?){_NUM}$")
_INEQUALITY_RE = re.compile(rf"^(>=|≥|=|<)\s*{_NUM}$")
_HYPHEN_RE = re.compile(rf"^{_NUM}\s+-\s+{_NUM}$")


def _components(groups) -> tuple[int, ...]:
    return tuple(int(g) for g in groups if g is not None)


def _reject_zero(parts: tuple[int, ...], text: str) -> None:
    if len(parts) == 3 and parts == (0, 0, 0):
        raise ValueError(f'invalid version: "{text}"')


def _caret_or_tilde(kind: str, parts: tuple[int, ...], text: str) -> VersionRange:
    _reject_zero(parts, text)
    major, minor, patch = _padded(parts)
    lower = VersionBound((major, minor, patch))
    if kind == "~":
        upper = (major, minor) if len(parts) >= 2 else (major,)
    elif major != 0:
        upper = (major,)
    elif minor != 0:
        upper = (major, minor)
    elif len(parts) == 1:
        upper = (0,)
    elif len(parts) == 2:
        upper = (0, 0)
    else:
        upper = (0, 0, patch)
    return VersionRange(lower, VersionBound(upper))


def _inequality(op: str, parts: tuple[int, ...], text: str) -> VersionRange:
    _reject_zero(parts, text)
    v = _padded(parts)
    if op == "<":
        if v[2] != 0:
            upper = (v[0], v[1], v[2] - 1)
        elif v[1] != 0:
            upper = (v[0], v[1] - 1)
        else:
            upper = (v[0] - 1,)
        if upper[-1] < 0:
            raise ValueError(f"invalid version specifier: {text!r} excludes every version")
        return VersionRange(VersionBound((0, 0, 0)), VersionBound(upper))
    if op == "=":
        return VersionRange(VersionBound(v), VersionBound(v))
    return VersionRange(VersionBound(v), VersionBound())


def semver_spec(text: str) -> VersionSpec:
    """Parse a comma-separated compatibility specifier.

    Raises:
        ValueError: If any part of the specifier is not understood.
    """
    ranges = []
    for part in (p.strip() for p in text.strip().split(",")):
        if m := _CARET_TILDE_RE.match(part):
            ranges.append(_caret_or_tilde(m.group(1), _components(m.groups()[1:]), part))
        elif m := _INEQUALITY_RE.match(part):
            ranges.append(_inequality(m.group(1), _components(m.groups()[1:]), part))
        elif m := _HYPHEN_RE.match(part):
            lo = _components(m.groups()[:3])
            hi = _components(m.groups()[3:])
            ranges.append(VersionRange(VersionBound(lo), VersionBound(hi)))
        else:
            raise ValueError(f"invalid version specifier: {text!r}")
    return VersionSpec(ranges)


def compat_ranges(text: str) -> list[VersionRange]:
    """Minimal list of ranges equivalent to a compatibility specifier.

    Bounds describing the same padded version collapse onto the shorter
    form, so caret ``1`` is stored as ``"1"`` rather than ``"1.0.0-1"``.
    """
    ranges = []
    for r in semver_spec(text).ranges:
        lower = r.upper if _padded(r.lower.parts) == _padded(r.upper.parts) else r.lower
        ranges.append(VersionRange(lower, r.upper))
    return union_ranges(ranges)


# ---------------------------------------------------------------------------
# Compression
# ---------------------------------------------------------------------------


def compress_versions(pool: list[Version], subset: list[Version]) -> list[VersionRange]:
    """Cover *subset* with few ranges that contain no other version of *pool*.

    Prerelease and build labels are ignored. Wider, shorter ranges are
    preferred: for the smallest remaining version the largest version of
    the same major series is tried first, with bounds of increasing
    precision. Adjacent ranges are joined at the end, so data shared
    across major versions ends up under one key such as ``"1-2"``.
    """
    pool = {v.without_labels() for v in pool}
    remaining = sorted({v.without_labels() for v in subset})
    complement = sorted(pool.difference(remaining))
    ranges = []
    while remaining:
        found = _widest_range(remaining, complement)
        ranges.append(found)
        remaining = [v for v in remaining if v not in found]
    return union_ranges(ranges)


def _widest_range(remaining: list[Version], complement: list[Version]) -> VersionRange:
    a = remaining[0]
    for b in reversed(remaining):
        if a.major != b.major:
            continue
        for m in range(1, 4):
            lower = VersionBound(a.release[:m])
            for n in range(1, 4):
                candidate = VersionRange(lower, VersionBound(b.release[:n]))
                if not any(v in candidate for v in complement):
                    return candidate
    # b == a with full precision can only be blocked by a duplicate in the
    # complement, which the set difference above rules out.
    return VersionRange(VersionBound(a.release), VersionBound(a.release))
