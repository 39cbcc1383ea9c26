"""
Data-quality checks for stored compatibility data.

The resolver never raises on malformed entries; it just treats them as
non-matching. These checks surface the same problems as diagnostics.
"""

from dataclasses import dataclass
from typing import Iterable, List

from ..models import CanonicalEntry
from .version_comparator import (
    default_comparator,
    is_numeric_version_token,
    is_platform_version_format,
    parse_range_key,
    strip_v_prefix,
)


@dataclass(frozen=True)
class StoredDataProblem:
    """A validation issue with stored compatibility data."""
    addon_name: str
    field: str
    value: str
    reason: str


def is_resolver_supported_key(raw_key: str) -> bool:
    """
    True if the resolver understands the key format.

    Accepted forms: numeric ranges ("v2.0.0-v2.1.3"), ".x" wildcards,
    ">=" and "+" thresholds, and dotted numerics with an optional
    pre-release suffix ("1.5.0-rc1").
    """
    key = raw_key.strip().lower()
    if not key:
        return False

    range_parts = parse_range_key(key)
    if range_parts is not None and is_numeric_version_token(range_parts[0]) \
            and is_numeric_version_token(range_parts[1]):
        return True

    if key.startswith('>='):
        key = key[2:].strip()
    key = strip_v_prefix(key)
    if key.endswith('+'):
        key = key[:-1]
    if not key:
        return False

    if key.endswith('.x'):
        return is_numeric_version_token(key[:-2])

    hyphen_index = key.find('-')
    if hyphen_index > 0:
        key = key[:hyphen_index]
    return is_numeric_version_token(key)


def validate_stored_data(entries: Iterable[CanonicalEntry]) -> List[StoredDataProblem]:
    """
    Check stored compatibility data for format correctness.

    Args:
        entries: Catalog entries to check

    Returns:
        List of problems, empty when all stored data is well-formed
    """
    problems: List[StoredDataProblem] = []

    for entry in entries:
        min_version = entry.min_platform_version
        max_version = entry.max_platform_version

        if min_version and not is_platform_version_format(min_version):
            problems.append(StoredDataProblem(
                entry.name, 'kubernetes_min_version', min_version, 'must match format X.Y (e.g. 1.28)'))
        if max_version and not is_platform_version_format(max_version):
            problems.append(StoredDataProblem(
                entry.name, 'kubernetes_max_version', max_version, 'must match format X.Y (e.g. 1.28)'))
        if is_platform_version_format(min_version) and is_platform_version_format(max_version):
            if default_comparator.compare_platform_versions(min_version, max_version) > 0:
                problems.append(StoredDataProblem(
                    entry.name,
                    'kubernetes_min_version / kubernetes_max_version',
                    f"{min_version} / {max_version}",
                    'min version must not exceed max version',
                ))

        supported_keys = 0
        non_empty_keys = 0
        for key in sorted(entry.compatibility_matrix):
            versions = entry.compatibility_matrix[key]
            if not key.strip():
                problems.append(StoredDataProblem(
                    entry.name, 'kubernetes_compatibility', '(empty key)', 'addon version key must be non-empty'))
                continue

            non_empty_keys += 1
            if is_resolver_supported_key(key):
                supported_keys += 1

            if not versions:
                problems.append(StoredDataProblem(
                    entry.name, 'kubernetes_compatibility', key, 'K8s version list must be non-empty'))
                continue

            for version in versions:
                if not is_platform_version_format(version):
                    problems.append(StoredDataProblem(
                        entry.name,
                        f"kubernetes_compatibility[{key}]",
                        version,
                        'K8s version must match format X.Y (e.g. 1.28)',
                    ))

        if non_empty_keys > 0 and supported_keys == 0:
            problems.append(StoredDataProblem(
                entry.name,
                'kubernetes_compatibility',
                '(all keys unsupported)',
                'matrix must contain at least one key format supported by stored resolver',
            ))

    return problems
