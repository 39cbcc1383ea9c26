"""
Numeric version comparison for addon versions, matrix keys and platform versions.

Versions are compared as dot-separated integer tuples, left to right, with a
missing trailing component treated as zero. Text comparison is never used for
ordering.
"""

import re
import logging
from typing import Optional, Tuple

from .base import VersionComparator

logger = logging.getLogger(__name__)

_LEADING_NUMERIC = re.compile(r'^(\d+(?:\.\d+)*)')
_NUMERIC_TOKEN = re.compile(r'^\d+(?:\.\d+)*$')
_PLATFORM_VERSION_FORMAT = re.compile(r'^\d+\.\d+$')

VersionTuple = Tuple[int, ...]


def strip_v_prefix(version: str) -> str:
    """Trim whitespace and a single leading 'v'/'V'."""
    version = (version or "").strip()
    if version[:1] in ('v', 'V'):
        return version[1:]
    return version


def canonical_tuple(parts: VersionTuple) -> VersionTuple:
    """Drop trailing zero components so that 1.15 and 1.15.0 order as equal."""
    parts = tuple(parts)
    while parts and parts[-1] == 0:
        parts = parts[:-1]
    return parts


def compare_tuples(left: VersionTuple, right: VersionTuple) -> int:
    """Compare integer tuples component-wise, padding the shorter with zeros."""
    width = max(len(left), len(right))
    padded_left = tuple(left) + (0,) * (width - len(left))
    padded_right = tuple(right) + (0,) * (width - len(right))
    if padded_left < padded_right:
        return -1
    if padded_left > padded_right:
        return 1
    return 0


def is_numeric_version_token(token: str) -> bool:
    """True for dotted all-numeric tokens with at least one dot (e.g. 1.28, 2.1.3)."""
    return bool(token) and '.' in token and bool(_NUMERIC_TOKEN.match(token))


def is_platform_version_format(version: str) -> bool:
    """True for the stored X.Y platform version format."""
    return bool(_PLATFORM_VERSION_FORMAT.match(version or ""))


def parse_range_key(key: str) -> Optional[Tuple[str, str]]:
    """
    Split a two-sided "A-B" matrix key at its first hyphen.

    Returns:
        (low, high) with any 'v' prefixes removed, or None if the key has no
        usable hyphen split. Callers still check both sides are numeric.
    """
    key = key.strip()
    hyphen_index = key.find('-')
    if hyphen_index <= 0 or hyphen_index >= len(key) - 1:
        return None
    low = strip_v_prefix(key[:hyphen_index])
    high = strip_v_prefix(key[hyphen_index + 1:])
    if not low or not high:
        return None
    return low, high


class NumericVersionComparator(VersionComparator):
    """Integer-tuple version comparator used by the resolver and validators."""

    def parse_version(self, version: str) -> Optional[VersionTuple]:
        """
        Parse the leading dotted-numeric run of a version string.

        Suffixes such as pre-release or build markers are ignored, so
        "v1.11.4-eksbuild.28" parses as (1, 11, 4).

        Args:
            version: Version string to parse

        Returns:
            Tuple of integers, or None if the string does not start with a digit
        """
        match = _LEADING_NUMERIC.match(strip_v_prefix(version))
        if not match:
            return None
        return tuple(int(part) for part in match.group(1).split('.'))

    def parse_exact(self, version: str) -> Optional[VersionTuple]:
        """Parse a version that must be entirely dotted-numeric (after an optional 'v')."""
        token = strip_v_prefix(version)
        if not _NUMERIC_TOKEN.match(token):
            return None
        return tuple(int(part) for part in token.split('.'))

    def compare_versions(self, version1: str, version2: str) -> int:
        """
        Compare two version strings numerically.

        Unparseable versions order before every parseable one so that
        the comparison stays total and deterministic.

        Args:
            version1: First version string
            version2: Second version string

        Returns:
            -1 if version1 < version2, 0 if equal, 1 if version1 > version2
        """
        left = self.parse_version(version1)
        right = self.parse_version(version2)
        if left is None or right is None:
            if left is None and right is None:
                return 0
            logger.debug(f"Non-numeric version in comparison: '{version1}' vs '{version2}'")
            return -1 if left is None else 1
        return compare_tuples(left, right)

    def normalize_platform_version(self, version: str) -> str:
        """
        Reduce a platform version to major.minor.

        "v1.28.5" becomes "1.28"; a single component is kept as is.
        """
        parts = strip_v_prefix(version).split('.')
        return '.'.join(parts[:2])

    def parse_platform_version(self, version: str) -> Optional[Tuple[int, int]]:
        """Parse a platform version into a (major, minor) integer pair."""
        parsed = self.parse_version(self.normalize_platform_version(version))
        if parsed is None:
            return None
        minor = parsed[1] if len(parsed) > 1 else 0
        return (parsed[0], minor)

    def compare_platform_versions(self, version1: str, version2: str) -> int:
        """Compare two platform versions on major.minor only."""
        left = self.parse_platform_version(version1)
        right = self.parse_platform_version(version2)
        if left is None or right is None:
            return self.compare_versions(version1, version2)
        return compare_tuples(left, right)

    def same_major_minor(self, left: VersionTuple, right: VersionTuple) -> bool:
        """True when both tuples carry at least major.minor and those agree."""
        return len(left) >= 2 and len(right) >= 2 and left[:2] == right[:2]


# Shared stateless comparator
default_comparator = NumericVersionComparator()
