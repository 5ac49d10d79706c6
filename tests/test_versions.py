"""Tests for version numbers, ranges, compat specifiers and compression."""

import pytest

from regforge.versions import (
    Version,
    VersionRange,
    compat_ranges,
    compress_versions,
    semver_spec,
)


def _v(text):
    return Version.parse(text)


def test_version_parse_and_str():
    assert str(_v("1.2.3")) == "1.2.3"
    assert str(_v("1.2")) == "1.2.0"
    assert str(_v("v2")) == "2.0.0"
    assert str(_v("1.0.0-rc1+build.5")) == "1.0.0-rc1+build.5"


def test_version_parse_rejects_garbage():
    with pytest.raises(ValueError):
        Version.parse("one.two")


def test_version_ordering():
    ordered = ["0.9.0", "1.0.0-alpha", "1.0.0-alpha.2", "1.0.0-beta", "1.0.0", "1.2.0", "1.10.0"]
    assert [str(v) for v in sorted(_v(t) for t in reversed(ordered))] == ordered


def test_range_contains_by_prefix():
    r = VersionRange.parse("1.2-1.5")
    assert _v("1.2.0") in r
    assert _v("1.5.9") in r
    assert _v("1.6.0") not in r
    assert _v("1.1.9") not in r
    assert _v("3.4.5") in VersionRange.parse("*")
    assert _v("1.9.0") in VersionRange.parse("1")


def test_range_str_round_trip():
    for text in ["1", "0.5-0.7", "1.2.0-1", "1.2.0-*", "*"]:
        assert str(VersionRange.parse(text)) == text


def test_range_intersection():
    legacy = VersionRange.parse("0-0.6")
    assert legacy.intersect(VersionRange.parse("0.7-1")).is_empty
    assert not legacy.intersect(VersionRange.parse("0.6-1")).is_empty


@pytest.mark.parametrize(
    "spec, expected",
    [
        ("1", ["1"]),
        ("1.2", ["1.2.0-1"]),
        ("^1.2.3", ["1.2.3-1"]),
        ("0.7", ["0.7"]),
        ("0.0.3", ["0.0.3"]),
        ("~1.2.3", ["1.2.3-1.2"]),
        ("=1.2.3", ["1.2.3"]),
        (">= 1.2", ["1.2.0-*"]),
        ("1.2 - 1.5", ["1.2-1.5"]),
        ("0.7, 1", ["0.7", "1"]),
        ("0.5, 0.6", ["0.5.0-0.6"]),
        ("1.2, 2", ["1.2.0-2"]),
    ],
)
def test_compat_ranges(spec, expected):
    assert [str(r) for r in compat_ranges(spec)] == expected


def test_semver_spec_rejects_invalid():
    for bad in ["1.x", "> 1", "0.0.0", "abc", ""]:
        with pytest.raises(ValueError):
            semver_spec(bad)


def test_semver_spec_membership():
    spec = semver_spec("0.7, 1.1")
    assert _v("0.7.3") in spec
    assert _v("1.4.0") in spec
    assert _v("1.0.5") not in spec
    assert _v("2.0.0") not in spec


def test_compress_versions_avoids_other_versions():
    pool = [_v(t) for t in ["1.0.0", "1.1.0", "1.2.0", "2.0.0"]]
    ranges = compress_versions(pool, pool[:2])
    assert [str(r) for r in ranges] == ["1-1.1"]


def test_compress_versions_whole_major():
    pool = [_v(t) for t in ["1.0.0", "1.1.0", "2.0.0"]]
    assert [str(r) for r in compress_versions(pool, pool[:2])] == ["1"]


def test_compress_versions_keeps_gaps_between_majors():
    pool = [_v(t) for t in ["1.0.0", "1.1.0", "2.0.0"]]
    ranges = compress_versions(pool, [pool[0], pool[2]])
    assert [str(r) for r in ranges] == ["1-1.0", "2"]
    for r in ranges:
        assert pool[1] not in r


def test_compress_versions_joins_adjacent_majors():
    pool = [_v(t) for t in ["1.0.0", "1.1.0", "2.0.0", "2.3.0", "3.0.0"]]
    assert [str(r) for r in compress_versions(pool, pool[:4])] == ["1-2"]
    assert [str(r) for r in compress_versions(pool, [pool[0], pool[2]])] == ["1-1.0", "2-2.0"]
