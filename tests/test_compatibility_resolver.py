import random

import pytest

from addon_validator.models import CanonicalEntry, CompatibilityStatus, CompatibilityVerdict, DataSource, NoDeterministicVerdict
from addon_validator.resolution.compatibility_resolver import (
    SCORE_EXACT,
    SCORE_NONE,
    SCORE_NUMERIC_PREFIX,
    SCORE_PATCH_LINE,
    SCORE_RANGE,
    SCORE_WILDCARD,
    VersionCompatibilityResolver,
    find_direct_match,
    find_latest_compatible_version,
    find_threshold_match,
    matrix_key_score,
)

KARPENTER_MATRIX = {
    "1.9.x": ["1.29", "1.30", "1.31", "1.32", "1.33", "1.34", "1.35"],
    "1.6.x": ["1.29", "1.30", "1.31", "1.32", "1.33", "1.34"],
    "1.5.x": ["1.29", "1.30", "1.31", "1.32", "1.33"],
    "1.2.x": ["1.29", "1.30", "1.31", "1.32"],
    "1.0.5": ["1.29", "1.30", "1.31"],
    "0.37": ["1.29", "1.30"],
    "0.34": ["1.29"],
}

ALB_MATRIX = {
    "v2.0.0-v2.1.3": ["1.16", "1.17", "1.18", "1.19", "1.20", "1.21"],
    "v2.4.0-v2.4.7": ["1.22", "1.23", "1.24", "1.25"],
}


@pytest.fixture
def resolver():
    return VersionCompatibilityResolver()


def _shuffled(matrix, seed):
    items = list(matrix.items())
    random.Random(seed).shuffle(items)
    return dict(items)


def test_direct_match_true_cites_key(resolver, make_entry):
    entry = make_entry(matrix={
        "1.15": ["1.28", "1.29", "1.30", "1.31"],
        "1.14": ["1.27", "1.28", "1.29", "1.30"],
    })

    verdict = resolver.resolve(entry, "v1.15.0", "1.30")

    assert verdict.compatible == CompatibilityStatus.TRUE
    assert verdict.matched_key == "1.15"
    assert "1.15" in verdict.note
    assert verdict.data_source == DataSource.STORED


def test_direct_match_false_when_target_not_listed(resolver, make_entry):
    entry = make_entry(matrix={"1.15": ["1.28", "1.29", "1.30"]})

    verdict = resolver.resolve(entry, "v1.15.0", "1.32")

    assert verdict.compatible == CompatibilityStatus.FALSE
    assert verdict.latest_compatible_version is None


def test_direct_match_false_reports_latest_compatible(resolver, make_entry):
    entry = make_entry(matrix={
        "1.14": ["1.27", "1.28"],
        "1.15": ["1.28", "1.29"],
        "1.16": ["1.29", "1.30"],
    })

    verdict = resolver.resolve(entry, "1.14.2", "1.30")

    assert verdict.compatible == CompatibilityStatus.FALSE
    assert verdict.latest_compatible_version == "1.16"
    assert "Latest compatible version: 1.16" in verdict.note


def test_target_is_normalized_to_major_minor(resolver, make_entry):
    entry = make_entry(matrix={"1.15": ["1.30"]})

    assert resolver.resolve(entry, "1.15.1", "v1.30.4").compatible == CompatibilityStatus.TRUE


def test_more_specific_key_wins_over_shorter_prefix(resolver, make_entry):
    entry = make_entry(matrix={"1.1": ["1.20"], "1.15": ["1.28"]})

    for _ in range(20):
        verdict = resolver.resolve(entry, "v1.15.0", "1.28")
        assert verdict.compatible == CompatibilityStatus.TRUE
        assert verdict.matched_key == "1.15"


def test_exact_key_beats_wildcard(resolver, make_entry):
    entry = make_entry(matrix={"1.15.x": ["1.27"], "1.15.2": ["1.28"]})

    verdict = resolver.resolve(entry, "1.15.2", "1.28")

    assert verdict.matched_key == "1.15.2"
    assert verdict.compatible == CompatibilityStatus.TRUE


def test_prefix_key_beats_wildcard(resolver, make_entry):
    entry = make_entry(matrix={"1.15.x": ["1.27"], "1.15": ["1.28"]})

    assert resolver.resolve(entry, "1.15.2", "1.28").matched_key == "1.15"


def test_patch_line_key_matches_build_suffixed_version(resolver, make_entry):
    entry = make_entry(name="CoreDNS", matrix={"v1.11.3": ["1.31", "1.32"]})

    verdict = resolver.resolve(entry, "v1.11.4-eksbuild.28", "1.31")

    assert verdict.compatible == CompatibilityStatus.TRUE
    assert verdict.matched_key == "v1.11.3"


def test_range_key(resolver, make_entry):
    entry = make_entry(matrix={"v2.0.0-v2.1.3": ["1.19"]})

    assert resolver.resolve(entry, "2.1.0", "1.19").compatible == CompatibilityStatus.TRUE
    assert isinstance(resolver.resolve(entry, "2.2.0", "1.19"), NoDeterministicVerdict)


def test_range_key_false_when_target_not_listed(resolver, make_entry):
    entry = make_entry(name="AWS Load Balancer Controller", matrix=ALB_MATRIX)

    assert resolver.resolve(entry, "v2.1.0", "1.19").compatible == CompatibilityStatus.TRUE
    assert resolver.resolve(entry, "v2.1.0", "1.25").compatible == CompatibilityStatus.FALSE


def test_non_numeric_keys_are_skipped(resolver, make_entry):
    entry = make_entry(name="Istio", matrix={
        "master": ["1.31", "1.32", "1.33", "1.34", "1.35"],
        "1.29": ["1.31", "1.32", "1.33", "1.34", "1.35"],
        "1.28": ["1.30", "1.31", "1.32", "1.33", "1.34"],
    })

    verdict = resolver.resolve(entry, "1.29.0", "1.32")

    assert verdict.compatible == CompatibilityStatus.TRUE
    assert verdict.matched_key == "1.29"
    assert "master" not in verdict.note


def test_threshold_fallback_picks_closest_floor_from_below(resolver, make_entry):
    entry = make_entry(name="karpenter", matrix=KARPENTER_MATRIX)

    verdict = resolver.resolve(entry, "v1.8.1", "1.31")

    assert verdict.compatible == CompatibilityStatus.TRUE
    assert verdict.matched_key == "1.6.x"


def test_threshold_fallback_without_qualifying_key_is_undecided(resolver, make_entry):
    entry = make_entry(name="karpenter", matrix=KARPENTER_MATRIX)

    assert isinstance(resolver.resolve(entry, "v1.8.1", "1.35"), NoDeterministicVerdict)


def test_threshold_plus_key_cites_source(resolver, make_entry):
    entry = make_entry(
        name="AWS Load Balancer Controller",
        source_url="https://example.com/alb-compatibility",
        matrix={"v2.5.0+": ["1.22", "1.23", "1.24", "1.25", "1.26", "1.27", "1.28", "1.29", "1.30", "1.31"]},
    )

    verdict = resolver.resolve(entry, "v2.11.0", "1.31")

    assert verdict.compatible == CompatibilityStatus.TRUE
    assert "Source: https://example.com/alb-compatibility" in verdict.note


def test_threshold_fallback_needs_threshold_convention(make_entry):
    matrix = {"1.2": ["1.29"], "1.5": ["1.29"]}

    assert find_threshold_match(matrix, "1.8.0", "1.29") is None
    assert find_threshold_match({"1.2": ["1.29"], ">= 1.5": ["1.29"]}, "1.8.0", "1.29") == ">= 1.5"


def test_threshold_equal_floors_use_key_order():
    matrix = {"1.5.x": ["1.29"], "1.5+": ["1.29"]}

    assert find_threshold_match(matrix, "1.8.0", "1.29") == "1.5+"


@pytest.mark.parametrize("min_version, max_version, target, expected", [
    ("1.23", "", "1.30", CompatibilityStatus.TRUE),
    ("1.30", "", "1.28", CompatibilityStatus.FALSE),
    ("1.20", "1.28", "1.25", CompatibilityStatus.TRUE),
    ("1.20", "1.28", "1.30", CompatibilityStatus.FALSE),
    ("", "1.26", "1.25", CompatibilityStatus.TRUE),
    ("", "1.26", "1.26", CompatibilityStatus.TRUE),
    ("", "1.26", "1.27", CompatibilityStatus.FALSE),
    ("1.9", "", "1.10", CompatibilityStatus.TRUE),
])
def test_min_max_bounds(resolver, make_entry, min_version, max_version, target, expected):
    entry = make_entry(min_version=min_version, max_version=max_version)

    assert resolver.resolve(entry, "v0.35.0", target).compatible == expected


def test_matrix_falls_back_to_bounds(resolver, make_entry):
    entry = make_entry(name="cert-manager", matrix={"1.15": ["1.28", "1.29", "1.30"]}, min_version="1.20")

    verdict = resolver.resolve(entry, "v99.0.0", "1.25")

    assert verdict.compatible == CompatibilityStatus.TRUE
    assert verdict.matched_key is None


def test_no_stored_data(resolver, make_entry):
    outcome = resolver.resolve(make_entry(name="Redis"), "7.2.4", "1.30")

    assert isinstance(outcome, NoDeterministicVerdict)
    assert "No stored compatibility data" in outcome.reason


def test_malformed_bounds_are_ignored(resolver, make_entry):
    outcome = resolver.resolve(make_entry(min_version="latest"), "1.0.0", "1.30")

    assert isinstance(outcome, NoDeterministicVerdict)


def test_empty_installed_version_uses_bounds(resolver, make_entry):
    entry = make_entry(matrix={"1.15": ["1.30"]}, max_version="1.31")

    assert resolver.resolve(entry, "", "1.30").compatible == CompatibilityStatus.TRUE


@pytest.mark.parametrize("seed", range(25))
def test_verdict_independent_of_matrix_order(resolver, make_entry, seed):
    matrices = [
        ({"1.1": ["1.20"], "1.15": ["1.28"], "1.15.x": ["1.27"], "v1.15.0-v1.16.0": ["1.26"]}, "v1.15.0", "1.28"),
        (KARPENTER_MATRIX, "v1.8.1", "1.31"),
        (ALB_MATRIX, "v2.4.3", "1.25"),
        ({"1.5.x": ["1.29"], "1.5+": ["1.29"], "1.2": ["1.29"]}, "1.8.0", "1.29"),
    ]
    for matrix, installed, target in matrices:
        baseline = resolver.resolve(make_entry(matrix=matrix), installed, target)
        shuffled = resolver.resolve(make_entry(matrix=_shuffled(matrix, seed)), installed, target)

        assert isinstance(baseline, CompatibilityVerdict)
        assert shuffled == baseline


@pytest.mark.parametrize("key, installed, expected", [
    ("1.15", "1.15", SCORE_EXACT),
    ("v1.15", "1.15.0", SCORE_NUMERIC_PREFIX),
    ("1.15", "1.15.3", SCORE_NUMERIC_PREFIX),
    ("1.9.x", "1.9.5", SCORE_WILDCARD),
    ("1.9.x", "1.9", SCORE_WILDCARD),
    ("1.15.0", "1.15.7", SCORE_PATCH_LINE),
    ("v2.0.0-v2.1.3", "2.0.0", SCORE_RANGE),
    ("v2.0.0-v2.1.3", "2.1.3", SCORE_RANGE),
    ("1.124.17-1.128.3", "1.125.0", SCORE_RANGE),
    ("v0.6.0-v0.12.0", "0.12.0", SCORE_RANGE),
    ("1.15", "1.16.0", SCORE_NONE),
    ("1.15.7", "1.15.2", SCORE_NONE),
    ("v2.0.0-v2.1.3", "1.9.0", SCORE_NONE),
    ("v2.0.0-v2.1.3", "2.2.0", SCORE_NONE),
    ("1.124.17-1.128.3", "1.128.4", SCORE_NONE),
    ("0.3.4-7", "0.3.5", SCORE_NONE),
])
def test_matrix_key_score(key, installed, expected):
    assert matrix_key_score(key, installed) == expected


@pytest.mark.parametrize("key", ["master", "HEAD", "main", "latest", "cis-1.6", "cis-1.11", "≥0.18.x", "≤0.9.x"])
@pytest.mark.parametrize("installed", ["1.0.0", "0.18.0"])
def test_non_semver_keys_never_match(key, installed):
    assert matrix_key_score(key, installed) == SCORE_NONE


def test_find_direct_match_none_for_unknown_version():
    assert find_direct_match({"1.15": ["1.28"]}, "2.0.0") is None
    assert find_direct_match({"1.15": ["1.28"]}, "") is None


def test_find_latest_compatible_version():
    matrix = {
        "1.15": ["1.28", "1.29", "1.30"],
        "1.14": ["1.27", "1.28", "1.29"],
        "1.13": ["1.26", "1.27", "1.28"],
    }

    assert find_latest_compatible_version(matrix, "1.28") == "1.15"
    assert find_latest_compatible_version(matrix, "1.30") == "1.15"
    assert find_latest_compatible_version(matrix, "1.35") is None
    assert find_latest_compatible_version(matrix, "1.28", exclude="1.15") == "1.14"


def test_find_latest_compatible_version_uses_numeric_ordering():
    matrix = {"1.9": ["1.31"], "1.10": ["1.31"], "1.8": ["1.31"]}

    assert find_latest_compatible_version(matrix, "1.31") == "1.10"


def test_resolver_does_not_mutate_entry(resolver):
    entry = CanonicalEntry(name="x", compatibility_matrix={"1.0": ["1.30"]})

    resolver.resolve(entry, "1.0.1", "1.30")

    assert dict(entry.compatibility_matrix) == {"1.0": ("1.30",)}
