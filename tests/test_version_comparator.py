import pytest

from addon_validator.catalog.version_comparator import (
    NumericVersionComparator,
    canonical_tuple,
    compare_tuples,
    is_numeric_version_token,
    parse_range_key,
    strip_v_prefix,
)


@pytest.fixture
def comparator():
    return NumericVersionComparator()


@pytest.mark.parametrize("version, expected", [
    ("1.15.3", (1, 15, 3)),
    ("v1.11.4-eksbuild.28", (1, 11, 4)),
    ("V2.0", (2, 0)),
    ("1.5.0-rc1", (1, 5, 0)),
    ("master", None),
    ("", None),
])
def test_parse_version(comparator, version, expected):
    assert comparator.parse_version(version) == expected


def test_parse_exact_rejects_suffixes(comparator):
    assert comparator.parse_exact("v1.15") == (1, 15)
    assert comparator.parse_exact("1.15.x") is None
    assert comparator.parse_exact("1.5.0-rc1") is None


@pytest.mark.parametrize("left, right, expected", [
    ("1.10", "1.9", 1),
    ("1.9", "1.10", -1),
    ("1.15", "1.15.0", 0),
    ("v2.0.0", "2.0", 0),
    ("10.0", "2.0", 1),
    ("master", "1.0", -1),
    ("main", "master", 0),
])
def test_compare_versions_is_numeric(comparator, left, right, expected):
    assert comparator.compare_versions(left, right) == expected


@pytest.mark.parametrize("version, expected", [
    ("1.30", "1.30"),
    ("v1.30", "1.30"),
    ("1.30.2", "1.30"),
    ("v1.28.5", "1.28"),
    ("1", "1"),
])
def test_normalize_platform_version(comparator, version, expected):
    assert comparator.normalize_platform_version(version) == expected


def test_compare_platform_versions_ignores_patch(comparator):
    assert comparator.compare_platform_versions("1.28.9", "v1.28") == 0
    assert comparator.compare_platform_versions("1.9", "1.10") == -1


def test_tuple_helpers():
    assert compare_tuples((1, 2), (1, 2, 0)) == 0
    assert compare_tuples((1, 2, 1), (1, 2)) == 1
    assert canonical_tuple((1, 15, 0, 0)) == (1, 15)


def test_strip_v_prefix():
    assert strip_v_prefix(" v1.2 ") == "1.2"
    assert strip_v_prefix("vv1") == "v1"
    assert strip_v_prefix(None) == ""


@pytest.mark.parametrize("token, expected", [
    ("1.28", True),
    ("2.1.3", True),
    ("7", False),
    ("1.x", False),
    ("", False),
])
def test_is_numeric_version_token(token, expected):
    assert is_numeric_version_token(token) == expected


@pytest.mark.parametrize("key, expected", [
    ("v2.0.0-v2.1.3", ("2.0.0", "2.1.3")),
    ("1.124.17-1.128.3", ("1.124.17", "1.128.3")),
    ("0.3.4-7", ("0.3.4", "7")),
    ("1.15", None),
    ("-1.2", None),
    ("1.2-", None),
])
def test_parse_range_key(key, expected):
    assert parse_range_key(key) == expected
