"""
Deterministic compatibility resolution from stored catalog data.

Resolution is attempted in strict precedence order and the first strategy that
produces a verdict wins:

A. direct matrix match (highest-scoring key for the installed version)
B. threshold-style matrix fallback (closest floor from below)
C. min/max platform bounds
D. no deterministic verdict

Matrix keys are always evaluated in sorted order, so the outcome never depends
on how the matrix happened to be stored.
"""

import logging
from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union

from ..catalog.version_comparator import (
    NumericVersionComparator,
    VersionTuple,
    compare_tuples,
    default_comparator,
    is_numeric_version_token,
    parse_range_key,
    strip_v_prefix,
)
from ..models import (
    CanonicalEntry,
    CompatibilityStatus,
    CompatibilityVerdict,
    DataSource,
    NoDeterministicVerdict,
)

logger = logging.getLogger(__name__)

# Match scores for direct matrix keys, highest wins
SCORE_EXACT = 5
SCORE_NUMERIC_PREFIX = 4
SCORE_WILDCARD = 3
SCORE_PATCH_LINE = 2
SCORE_RANGE = 1
SCORE_NONE = 0

ResolutionOutcome = Union[CompatibilityVerdict, NoDeterministicVerdict]


def canonical_key_order(matrix: Mapping[str, Sequence[str]]) -> Tuple[str, ...]:
    """Matrix keys in the fixed order used for every scan and tie-break."""
    return tuple(sorted(matrix))


def is_threshold_key(key: str) -> bool:
    """True for ">= X", "X.x" and "X+" style keys."""
    key = key.strip()
    return key.startswith('>=') or '.x' in key or key.endswith('+')


def supports_platform(versions: Iterable[str], target: str,
                      comparator: NumericVersionComparator = default_comparator) -> bool:
    """True if the supported-version list contains the target on major.minor."""
    target_pair = comparator.parse_platform_version(target)
    if target_pair is None:
        return False
    return any(comparator.parse_platform_version(version) == target_pair for version in versions)


def matrix_key_score(key: str, installed_version: str,
                     comparator: NumericVersionComparator = default_comparator) -> int:
    """
    Score how well a matrix key describes the installed version.

    Keys that do not begin with a digit (after an optional 'v') such as
    branch names never match and score zero.

    Args:
        key: Matrix key, e.g. "1.15", "1.9.x", "v2.0.0-v2.1.3"
        installed_version: Installed addon version
        comparator: Numeric comparator

    Returns:
        One of the SCORE_* constants
    """
    key_text = strip_v_prefix(key)
    installed_text = strip_v_prefix(installed_version)
    if not key_text or not key_text[0].isdigit() or not installed_text:
        return SCORE_NONE

    if key_text == installed_text:
        return SCORE_EXACT

    installed = comparator.parse_version(installed_text)
    if installed is None:
        return SCORE_NONE

    key_parts = comparator.parse_exact(key_text)
    if key_parts is not None and len(key_parts) < len(installed) \
            and installed[:len(key_parts)] == key_parts:
        return SCORE_NUMERIC_PREFIX

    if key_text.lower().endswith('.x'):
        base = comparator.parse_exact(key_text[:-2])
        if base is not None and len(base) <= len(installed) and installed[:len(base)] == base:
            return SCORE_WILDCARD
        return SCORE_NONE

    if key_parts is not None and len(key_parts) == 3 \
            and comparator.same_major_minor(key_parts, installed) \
            and compare_tuples(installed, key_parts) >= 0:
        return SCORE_PATCH_LINE

    range_parts = parse_range_key(key)
    if range_parts is not None:
        low_text, high_text = range_parts
        if is_numeric_version_token(low_text) and is_numeric_version_token(high_text):
            low = comparator.parse_exact(low_text)
            high = comparator.parse_exact(high_text)
            if compare_tuples(low, installed) <= 0 <= compare_tuples(high, installed):
                return SCORE_RANGE

    return SCORE_NONE


def find_direct_match(matrix: Mapping[str, Sequence[str]], installed_version: str,
                      comparator: NumericVersionComparator = default_comparator) -> Optional[str]:
    """
    Find the best-scoring matrix key for the installed version.

    Keys are scanned in canonical order and only a strictly higher score
    replaces the current best, so equal scores resolve to the first key in
    that order.

    Returns:
        The winning key, or None if no key is eligible
    """
    best_key = None
    best_score = SCORE_NONE
    for key in canonical_key_order(matrix):
        score = matrix_key_score(key, installed_version, comparator)
        if score > best_score:
            best_key, best_score = key, score
    return best_key


def threshold_floor(key: str, comparator: NumericVersionComparator = default_comparator) -> Optional[VersionTuple]:
    """Leading numeric floor of a key with ">=", "v", "+" and ".x" markers removed."""
    text = key.strip()
    if text.startswith('>='):
        text = text[2:].strip()
    text = strip_v_prefix(text)
    if text.endswith('+'):
        text = text[:-1]
    if text.lower().endswith('.x'):
        text = text[:-2]
    if not text or not text[0].isdigit():
        return None
    return comparator.parse_version(text)


def find_threshold_match(matrix: Mapping[str, Sequence[str]], installed_version: str,
                         target_version: str,
                         comparator: NumericVersionComparator = default_comparator) -> Optional[str]:
    """
    Threshold-style fallback: the closest floor from below that supports the target.

    Only applies when the matrix uses a threshold convention at all. Floors
    that tie are broken by canonical key order.

    Returns:
        The selected key, or None
    """
    if not any(is_threshold_key(key) for key in matrix):
        return None

    installed_floor = comparator.parse_version(strip_v_prefix(installed_version))
    if installed_floor is None:
        return None

    best_key = None
    best_floor: Optional[VersionTuple] = None
    for key in canonical_key_order(matrix):
        floor = threshold_floor(key, comparator)
        if floor is None or compare_tuples(floor, installed_floor) > 0:
            continue
        if not supports_platform(matrix[key], target_version, comparator):
            continue
        if best_floor is None or compare_tuples(floor, best_floor) > 0:
            best_key, best_floor = key, floor
    return best_key


def find_latest_compatible_version(matrix: Mapping[str, Sequence[str]], target_version: str,
                                   exclude: Optional[str] = None,
                                   comparator: NumericVersionComparator = default_comparator) -> Optional[str]:
    """
    Highest matrix key, by numeric ordering, whose supported set contains the target.

    Args:
        matrix: Compatibility matrix
        target_version: Target platform version
        exclude: Key to leave out, typically the one already matched
        comparator: Numeric comparator

    Returns:
        The key, or None when no other key supports the target
    """
    best_key = None
    best_parts: Optional[VersionTuple] = None
    for key in canonical_key_order(matrix):
        if key == exclude:
            continue
        parts = threshold_floor(key, comparator)
        if parts is None or not supports_platform(matrix[key], target_version, comparator):
            continue
        if best_parts is None or compare_tuples(parts, best_parts) > 0:
            best_key, best_parts = key, parts
    return best_key


class VersionCompatibilityResolver:
    """
    Produces a deterministic verdict from a catalog entry's stored data.

    The resolver is stateless and never raises on malformed entries; keys or
    bounds it cannot parse simply do not match.
    """

    def __init__(self, comparator: Optional[NumericVersionComparator] = None):
        self.comparator = comparator or default_comparator

    def resolve(self, entry: CanonicalEntry, installed_version: str,
                target_version: str) -> ResolutionOutcome:
        """
        Resolve compatibility of an installed addon version with a platform version.

        Args:
            entry: Catalog entry carrying stored compatibility data
            installed_version: Installed addon version, possibly empty
            target_version: Target platform version, e.g. "1.30" or "v1.30.2"

        Returns:
            CompatibilityVerdict, or NoDeterministicVerdict when stored data cannot decide
        """
        target = self.comparator.normalize_platform_version(target_version)
        matrix = entry.compatibility_matrix

        if matrix:
            verdict = self._resolve_direct(entry, installed_version, target)
            if verdict is not None:
                return verdict

            verdict = self._resolve_threshold(entry, installed_version, target)
            if verdict is not None:
                return verdict

        verdict = self._resolve_bounds(entry, target)
        if verdict is not None:
            return verdict

        if entry.has_stored_compatibility:
            reason = f"Stored data for {entry.name} does not cover version {installed_version or '(unknown)'}"
        else:
            reason = f"No stored compatibility data for {entry.name}"
        logger.debug(reason)
        return NoDeterministicVerdict(reason=reason)

    def _resolve_direct(self, entry: CanonicalEntry, installed_version: str,
                        target: str) -> Optional[CompatibilityVerdict]:
        matrix = entry.compatibility_matrix
        key = find_direct_match(matrix, installed_version, self.comparator)
        if key is None:
            return None

        supported = supports_platform(matrix[key], target, self.comparator)
        latest = find_latest_compatible_version(matrix, target, exclude=key, comparator=self.comparator)
        logger.debug(f"{entry.name} {installed_version}: matrix key '{key}' -> {supported}")

        if supported:
            note = f"Compatibility matrix key {key} lists Kubernetes {target} as supported."
        else:
            listed = ', '.join(matrix[key])
            note = f"Compatibility matrix key {key} does not list Kubernetes {target} (supported: {listed})."
            if latest:
                note += f" Latest compatible version: {latest}."

        return CompatibilityVerdict(
            compatible=CompatibilityStatus.TRUE if supported else CompatibilityStatus.FALSE,
            note=with_source(note, entry.source_url),
            data_source=DataSource.STORED,
            latest_compatible_version=latest,
            matched_key=key,
        )

    def _resolve_threshold(self, entry: CanonicalEntry, installed_version: str,
                           target: str) -> Optional[CompatibilityVerdict]:
        matrix = entry.compatibility_matrix
        key = find_threshold_match(matrix, installed_version, target, self.comparator)
        if key is None:
            return None

        logger.debug(f"{entry.name} {installed_version}: threshold key '{key}' supports {target}")
        note = (f"Installed version {installed_version} is at or above threshold {key}, "
                f"which lists Kubernetes {target} as supported.")
        return CompatibilityVerdict(
            compatible=CompatibilityStatus.TRUE,
            note=with_source(note, entry.source_url),
            data_source=DataSource.STORED,
            latest_compatible_version=find_latest_compatible_version(
                matrix, target, exclude=key, comparator=self.comparator),
            matched_key=key,
        )

    def _resolve_bounds(self, entry: CanonicalEntry, target: str) -> Optional[CompatibilityVerdict]:
        target_pair = self.comparator.parse_platform_version(target)
        if target_pair is None:
            return None

        min_pair = self._parse_bound(entry.min_platform_version)
        max_pair = self._parse_bound(entry.max_platform_version)
        if min_pair is None and max_pair is None:
            return None

        above_min = min_pair is None or compare_tuples(target_pair, min_pair) >= 0
        below_max = max_pair is None or compare_tuples(target_pair, max_pair) <= 0
        compatible = above_min and below_max

        bounds = []
        if min_pair is not None:
            bounds.append(f"min {entry.min_platform_version}")
        if max_pair is not None:
            bounds.append(f"max {entry.max_platform_version}")
        if compatible:
            note = f"Kubernetes {target} is within the supported range ({', '.join(bounds)})."
        elif not above_min:
            note = f"Kubernetes {target} is below the minimum supported version {entry.min_platform_version}."
        else:
            note = f"Kubernetes {target} is above the maximum supported version {entry.max_platform_version}."

        return CompatibilityVerdict(
            compatible=CompatibilityStatus.TRUE if compatible else CompatibilityStatus.FALSE,
            note=with_source(note, entry.source_url),
            data_source=DataSource.STORED,
        )

    def _parse_bound(self, bound: str) -> Optional[Tuple[int, int]]:
        if not bound or not bound.strip():
            return None
        if self.comparator.parse_exact(bound) is None:
            logger.debug(f"Ignoring malformed platform bound '{bound}'")
            return None
        return self.comparator.parse_platform_version(bound)


def with_source(note: str, source_url: str) -> str:
    """Append " Source: <url>" to a verdict note when the entry has a source URL."""
    if source_url and source_url.strip():
        return f"{note} Source: {source_url.strip()}"
    return note
