"""
Abstract base classes for catalog functionality.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from ..models import CanonicalEntry, MatchResult


class VersionComparator(ABC):
    """Abstract base class for version comparison logic."""

    @abstractmethod
    def parse_version(self, version: str) -> Optional[Tuple[int, ...]]:
        """
        Parse the leading dotted-numeric part of a version string.

        Args:
            version: Version string to parse

        Returns:
            Tuple of integer components, or None if the string has no numeric prefix
        """
        pass

    @abstractmethod
    def compare_versions(self, version1: str, version2: str) -> int:
        """
        Compare two version strings.

        Args:
            version1: First version string
            version2: Second version string

        Returns:
            -1 if version1 < version2, 0 if equal, 1 if version1 > version2
        """
        pass


class AddonMatcher(ABC):
    """Abstract base class for addon name matching."""

    @abstractmethod
    def match(self, detected_name: str, catalog: Sequence[CanonicalEntry]) -> MatchResult:
        """
        Resolve a detected workload name to catalog entries.

        Args:
            detected_name: Free-text name reported by discovery
            catalog: Canonical catalog entries

        Returns:
            MatchResult, empty when the name is not a known addon
        """
        pass
