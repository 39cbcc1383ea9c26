import random

import pytest

from addon_validator.catalog.name_matcher import CatalogIndex, NameMatcher, normalize_name, word_subset_match
from addon_validator.config import MatchingConfig
from addon_validator.models import CanonicalEntry, MatchPass


@pytest.fixture
def matcher():
    return NameMatcher()


@pytest.mark.parametrize("detected, expected_names, expected_pass", [
    ("istio", ["Istio"], MatchPass.EXACT),
    ("ISTIO", ["Istio"], MatchPass.EXACT),
    ("cert-manager", ["Cert Manager"], MatchPass.NORMALIZED),
    ("amazon-vpc-cni", ["AWS VPC CNI"], MatchPass.NORMALIZED),
    ("nodelocaldns", ["NodeLocal DNSCache"], MatchPass.ALIAS),
    ("node-local-dns", ["NodeLocal DNSCache"], MatchPass.ALIAS),
    ("prometheus-operator", ["Prometheus"], MatchPass.ROLE_STRIPPED),
    ("redis-master", ["Redis"], MatchPass.ROLE_STRIPPED),
    ("redis-replicas", ["Redis"], MatchPass.ROLE_STRIPPED),
    ("aws-vpc", ["AWS VPC CNI"], MatchPass.FORWARD_PREFIX),
    ("aws-ebs-csi", ["AWS EBS CSI Driver"], MatchPass.FORWARD_PREFIX),
    ("prometheus-adapter", ["Prometheus"], MatchPass.REVERSE_PREFIX),
    ("csi-driver-aws", ["AWS EBS CSI Driver", "AWS EFS CSI Driver"], MatchPass.WORD_SUBSET),
])
def test_match_passes(matcher, sample_catalog, detected, expected_names, expected_pass):
    result = matcher.match(detected, sample_catalog)

    assert result.names == expected_names
    assert result.match_pass == expected_pass


def test_exact_match_returns_single_entry(matcher):
    catalog = [CanonicalEntry(name="Istio"), CanonicalEntry(name="Cert Manager")]

    result = matcher.match("istio", catalog)

    assert result.names == ["Istio"]


def test_sub_component_resolves_to_parent_addon(matcher):
    result = matcher.match("ebs-csi-node", [CanonicalEntry(name="AWS EBS CSI Driver")])

    assert result.names == ["AWS EBS CSI Driver"]


def test_short_name_guard_blocks_fuzzy_passes(matcher):
    result = matcher.match("aws", [CanonicalEntry(name="aws-alb-controller")])

    assert not result.matched
    assert result.match_pass == MatchPass.SHORT_NAME_GUARD


def test_single_word_core_skips_word_subset(matcher, sample_catalog):
    assert not matcher.match("csi-driver", sample_catalog).matched


def test_unknown_workload_is_not_an_error(matcher, sample_catalog):
    result = matcher.match("my-billing-service", sample_catalog)

    assert result.entries == ()
    assert result.match_pass == MatchPass.NONE
    assert result.first is None


def test_empty_name_matches_nothing(matcher, sample_catalog):
    assert not matcher.match("   ", sample_catalog).matched


def test_alias_requires_target_in_catalog(matcher):
    result = matcher.match("nodelocaldns", [CanonicalEntry(name="Istio")])

    assert not result.matched


def test_earlier_pass_wins_without_merging(matcher):
    catalog = [CanonicalEntry(name="Prometheus"), CanonicalEntry(name="Prometheus Operator")]

    result = matcher.match("prometheus-operator", catalog)

    assert result.names == ["Prometheus Operator"]
    assert result.match_pass == MatchPass.NORMALIZED


def test_first_duplicate_name_wins(matcher):
    catalog = [CanonicalEntry(name="Istio", source_url="https://b.example.com"),
               CanonicalEntry(name="istio", source_url="https://a.example.com")]

    result = matcher.match("istio", catalog)

    # Canonical order sorts "Istio" before "istio"
    assert result.first.source_url == "https://b.example.com"


@pytest.mark.parametrize("seed", range(10))
def test_match_is_independent_of_catalog_order(matcher, sample_catalog, seed):
    shuffled = list(sample_catalog)
    random.Random(seed).shuffle(shuffled)

    for detected in ("csi-driver-aws", "aws-vpc", "prometheus-adapter", "ebs-csi-node"):
        assert matcher.match(detected, shuffled) == matcher.match(detected, sample_catalog)


def test_prebuilt_index_gives_same_result(matcher, sample_catalog):
    index = CatalogIndex.build(sample_catalog)

    assert matcher.match("cert-manager", index) == matcher.match("cert-manager", sample_catalog)


def test_from_config_merges_custom_aliases():
    matcher = NameMatcher.from_config(MatchingConfig(custom_aliases={"KP": "Istio"}))

    result = matcher.match("kp", [CanonicalEntry(name="Istio")])

    assert result.names == ["Istio"]
    assert result.match_pass == MatchPass.ALIAS
    assert matcher.aliases["nodelocaldns"] == "nodelocal dnscache"


def test_from_config_role_suffixes_replace_builtin_set():
    matcher = NameMatcher.from_config(MatchingConfig(role_suffixes=["exporter"]))

    assert matcher.strip_role_suffix("prometheus exporter") == ("prometheus", True)
    assert matcher.strip_role_suffix("redis master") == ("redis master", False)


def test_negative_min_fuzzy_length_rejected():
    with pytest.raises(ValueError):
        NameMatcher(min_fuzzy_length=-1)


@pytest.mark.parametrize("name, expected", [
    ("Cert-Manager", "cert manager"),
    ("amazon-vpc-cni", "aws vpc cni"),
    ("  AWS   EBS  CSI ", "aws ebs csi"),
    ("amazonite", "amazonite"),
])
def test_normalize_name(name, expected):
    assert normalize_name(name) == expected


def test_word_subset_match_is_whole_word():
    assert word_subset_match("csi aws", "aws ebs csi driver")
    assert not word_subset_match("cs aws", "aws ebs csi driver")
