"""
Multi-pass name matcher that reconciles detected workload names with catalog entries.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..models import CanonicalEntry, MatchPass, MatchResult
from .base import AddonMatcher

logger = logging.getLogger(__name__)

# Only names that cannot be derived by normalization belong here.
DEFAULT_ALIASES: Mapping[str, str] = MappingProxyType({
    'nodelocaldns': 'nodelocal dnscache',
    'node-local-dns': 'nodelocal dnscache',
})

# Workload name suffixes that identify a sub-component of a parent addon
# (e.g. "ebs-csi-node" is the node component of the EBS CSI driver).
DEFAULT_ROLE_SUFFIXES: FrozenSet[str] = frozenset({
    'node',
    'controller',
    'master',
    'replica',
    'replicas',
    'server',
    'agent',
    'webhook',
    'init',
    'snapshotter',
    'operator',
    'scheduler',
    'driver',
})

DEFAULT_MIN_FUZZY_LENGTH = 4


def normalize_name(name: str) -> str:
    """
    Normalize a workload or addon name for matching.

    Lowercases, turns hyphens into spaces, collapses whitespace and rewrites a
    leading "amazon " vendor prefix to "aws ".

    Args:
        name: Name to normalize

    Returns:
        Normalized name
    """
    normalized = ' '.join(name.lower().replace('-', ' ').split())
    if normalized.startswith('amazon '):
        normalized = 'aws ' + normalized[len('amazon '):]
    return normalized


def word_subset_match(subset: str, superset: str) -> bool:
    """True if every whitespace-delimited word of subset is a word of superset."""
    super_words = set(superset.split())
    return all(word in super_words for word in subset.split())


@dataclass(frozen=True)
class CatalogIndex:
    """Catalog entries in canonical order with a first-wins lowercase lookup."""
    entries: Tuple[Tuple[str, CanonicalEntry], ...]
    by_lower_name: Mapping[str, CanonicalEntry]

    @classmethod
    def build(cls, catalog: Iterable[CanonicalEntry]) -> 'CatalogIndex':
        # Sorting makes results independent of how the catalog was stored
        ordered = sorted(catalog, key=lambda entry: (entry.name.lower(), entry.name))
        entries = tuple((entry.name.lower(), entry) for entry in ordered)
        by_lower_name: Dict[str, CanonicalEntry] = {}
        for lower_name, entry in entries:
            by_lower_name.setdefault(lower_name, entry)
        return cls(entries=entries, by_lower_name=MappingProxyType(by_lower_name))


class NameMatcher(AddonMatcher):
    """
    Resolves a free-text detected name to zero or more catalog entries.

    Passes run in a fixed order and the first pass that yields anything wins;
    results of different passes are never merged:

    1. alias table
    2. exact (case-insensitive) name
    3. normalized name
    4. normalized name with a component-role suffix stripped
    5. short-name guard (names under ``min_fuzzy_length`` stop here)
    6. forward prefix (catalog name starts with the candidate)
    7. reverse prefix (detected name starts with the catalog name)
    8. word subset (every word of the stripped name appears in the catalog name)

    The alias and role tables are injected at construction and never mutated.
    """

    def __init__(self,
                 aliases: Optional[Mapping[str, str]] = None,
                 role_suffixes: Optional[Iterable[str]] = None,
                 min_fuzzy_length: int = DEFAULT_MIN_FUZZY_LENGTH):
        """
        Initialize the name matcher.

        Args:
            aliases: Lowercase detected name -> lowercase catalog name; defaults to DEFAULT_ALIASES
            role_suffixes: Component-role words; defaults to DEFAULT_ROLE_SUFFIXES
            min_fuzzy_length: Normalized names shorter than this skip the fuzzy passes
        """
        if min_fuzzy_length < 0:
            raise ValueError("min_fuzzy_length must not be negative")

        alias_source = DEFAULT_ALIASES if aliases is None else aliases
        self.aliases: Mapping[str, str] = MappingProxyType(
            {alias.lower(): canonical.lower() for alias, canonical in alias_source.items()}
        )
        self.role_suffixes: FrozenSet[str] = frozenset(
            suffix.lower() for suffix in (DEFAULT_ROLE_SUFFIXES if role_suffixes is None else role_suffixes)
        )
        self.min_fuzzy_length = min_fuzzy_length

    @classmethod
    def from_config(cls, matching_config) -> 'NameMatcher':
        """
        Build a matcher from a MatchingConfig.

        Custom aliases are merged over the built-in table; configured role
        suffixes replace the built-in set when non-empty.
        """
        aliases = dict(DEFAULT_ALIASES)
        aliases.update(matching_config.custom_aliases or {})
        role_suffixes = matching_config.role_suffixes or None
        return cls(aliases=aliases, role_suffixes=role_suffixes,
                   min_fuzzy_length=matching_config.min_fuzzy_length)

    def strip_role_suffix(self, normalized: str) -> Tuple[str, bool]:
        """
        Strip a trailing component-role word from a normalized name.

        Returns:
            Tuple of (core name, whether a suffix was stripped)
        """
        head, separator, last_word = normalized.rpartition(' ')
        if separator and head and last_word in self.role_suffixes:
            return head, True
        return normalized, False

    def match(self, detected_name: str,
              catalog: Union[Sequence[CanonicalEntry], CatalogIndex]) -> MatchResult:
        """
        Resolve a detected workload name to catalog entries.

        Args:
            detected_name: Free-text name reported by discovery
            catalog: Catalog entries, or a prebuilt CatalogIndex for repeated lookups

        Returns:
            MatchResult; empty means the workload is not a known addon
        """
        index = catalog if isinstance(catalog, CatalogIndex) else CatalogIndex.build(catalog)
        lower = detected_name.strip().lower()
        if not lower:
            return MatchResult()

        # Pass 1: alias table
        canonical = self.aliases.get(lower)
        if canonical is not None and canonical in index.by_lower_name:
            return self._result([index.by_lower_name[canonical]], MatchPass.ALIAS, detected_name)

        # Pass 2: exact, case-insensitive
        if lower in index.by_lower_name:
            return self._result([index.by_lower_name[lower]], MatchPass.EXACT, detected_name)

        # Pass 3: normalized exact
        normalized = normalize_name(lower)
        if normalized in index.by_lower_name:
            return self._result([index.by_lower_name[normalized]], MatchPass.NORMALIZED, detected_name)

        # Pass 4: role suffix stripped
        core, stripped = self.strip_role_suffix(normalized)
        if stripped and core in index.by_lower_name:
            return self._result([index.by_lower_name[core]], MatchPass.ROLE_STRIPPED, detected_name)

        # Pass 5: short generic names never reach the fuzzy passes
        if len(normalized) < self.min_fuzzy_length:
            logger.debug(f"Skipping fuzzy matching for short name '{detected_name}'")
            return MatchResult(match_pass=MatchPass.SHORT_NAME_GUARD)

        # Pass 6: forward prefix, first candidate with any hit wins
        for candidate in (lower, normalized, core):
            matches = [
                entry for lower_name, entry in index.entries
                if lower_name.startswith(candidate + ' ') or lower_name.startswith(candidate + '-')
            ]
            if matches:
                return self._result(matches, MatchPass.FORWARD_PREFIX, detected_name)

        # Pass 7: reverse prefix
        matches = [
            entry for lower_name, entry in index.entries
            if len(lower_name) >= self.min_fuzzy_length
            and (normalized.startswith(lower_name + ' ') or normalized.startswith(lower_name + '-'))
        ]
        if matches:
            return self._result(matches, MatchPass.REVERSE_PREFIX, detected_name)

        # Pass 8: word subset
        if len(core.split()) >= 2:
            matches = [entry for lower_name, entry in index.entries if word_subset_match(core, lower_name)]
            if matches:
                return self._result(matches, MatchPass.WORD_SUBSET, detected_name)

        return MatchResult()

    def _result(self, entries: List[CanonicalEntry], match_pass: MatchPass, detected_name: str) -> MatchResult:
        logger.debug(f"Matched '{detected_name}' -> {[entry.name for entry in entries]} ({match_pass.name.lower()})")
        return MatchResult(entries=tuple(entries), match_pass=match_pass)
