"""
Core data models for the Addon Compatibility Validator.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


class CompatibilityStatus(Enum):
    """Tri-state compatibility verdict."""
    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: Any) -> 'CompatibilityStatus':
        """
        Normalize booleans, strings and null into a status.

        Anything that is not an explicit true/false is treated as unknown.
        """
        if value is True:
            return cls.TRUE
        if value is False:
            return cls.FALSE
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "true":
                return cls.TRUE
            if lowered == "false":
                return cls.FALSE
        return cls.UNKNOWN


class DataSource(Enum):
    """Where a compatibility verdict came from."""
    STORED = "stored"
    RUNTIME = "runtime"
    LOCAL = "local"


class MatchPass(IntEnum):
    """Name matcher passes, in execution order."""
    NONE = 0
    ALIAS = 1
    EXACT = 2
    NORMALIZED = 3
    ROLE_STRIPPED = 4
    SHORT_NAME_GUARD = 5
    FORWARD_PREFIX = 6
    REVERSE_PREFIX = 7
    WORD_SUBSET = 8


@dataclass(frozen=True)
class CanonicalEntry:
    """A known addon in the catalog."""
    name: str
    compatibility_matrix: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    min_platform_version: str = ""
    max_platform_version: str = ""
    source_url: str = ""
    project_url: str = ""
    repository: str = ""
    changelog_location: str = ""

    def __post_init__(self):
        """Freeze the compatibility matrix so entries stay immutable after loading."""
        frozen_matrix = {
            key: tuple(versions or ())
            for key, versions in (self.compatibility_matrix or {}).items()
        }
        object.__setattr__(self, 'compatibility_matrix', MappingProxyType(frozen_matrix))

    @property
    def has_stored_compatibility(self) -> bool:
        """True if the entry carries a matrix or a min/max platform bound."""
        return bool(self.compatibility_matrix) or bool(self.min_platform_version) or bool(self.max_platform_version)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CanonicalEntry':
        """
        Build an entry from a catalog JSON record.

        Args:
            data: Record using the catalog's snake_case field names

        Returns:
            CanonicalEntry instance
        """
        return cls(
            name=data["name"],
            compatibility_matrix=data.get("kubernetes_compatibility") or {},
            min_platform_version=data.get("kubernetes_min_version") or "",
            max_platform_version=data.get("kubernetes_max_version") or "",
            source_url=data.get("compatibility_matrix_url") or "",
            project_url=data.get("project_url") or "",
            repository=data.get("repository") or "",
            changelog_location=data.get("changelog_location") or "",
        )


@dataclass(frozen=True)
class DetectedWorkload:
    """A workload reported by the discovery collaborator."""
    name: str
    namespace: str = ""
    installed_version: str = ""
    source: str = ""

    def sort_key(self) -> str:
        """Stable composite key used to order workloads across runs."""
        return f"{self.name.lower()}|{self.namespace.lower()}|{self.installed_version.lower()}"


@dataclass(frozen=True)
class MatchResult:
    """Catalog entries matched for a detected name, plus the pass that produced them."""
    entries: Tuple[CanonicalEntry, ...] = ()
    match_pass: MatchPass = MatchPass.NONE

    @property
    def matched(self) -> bool:
        return bool(self.entries)

    @property
    def first(self) -> Optional[CanonicalEntry]:
        return self.entries[0] if self.entries else None

    @property
    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]


@dataclass(frozen=True)
class CompatibilityVerdict:
    """Compatibility verdict for one workload against the target platform version."""
    compatible: CompatibilityStatus
    note: str
    data_source: DataSource
    latest_compatible_version: Optional[str] = None
    matched_key: Optional[str] = None


@dataclass(frozen=True)
class NoDeterministicVerdict:
    """Stored data could not decide; the pipeline should fall through to interpretation."""
    reason: str


class EOLState(Enum):
    """Parsed form of the polymorphic ``eol`` field of a release cycle."""
    NOT_APPLICABLE = "not_applicable"
    STILL_SUPPORTED = "still_supported"
    SUPPORTED_UNTIL = "supported_until"
    ALREADY_UNSUPPORTED = "already_unsupported"


@dataclass(frozen=True)
class EOLStatus:
    """Tagged end-of-life value decided once at parse time."""
    state: EOLState
    until: Optional[date] = None
    raw_date: str = ""

    @classmethod
    def parse(cls, value: Any) -> 'EOLStatus':
        """
        Parse a raw ``eol`` value.

        ``False`` means still supported with no end date, ``True`` means already
        unsupported, an ISO date string means supported until that date. Any other
        value, including an unparseable date, is not applicable.
        """
        if isinstance(value, bool):
            return cls(EOLState.ALREADY_UNSUPPORTED if value else EOLState.STILL_SUPPORTED)
        if isinstance(value, str):
            try:
                until = datetime.strptime(value, "%Y-%m-%d").date()
            except ValueError:
                return cls(EOLState.NOT_APPLICABLE)
            return cls(EOLState.SUPPORTED_UNTIL, until=until, raw_date=value)
        return cls(EOLState.NOT_APPLICABLE)


@dataclass(frozen=True)
class EOLCycle:
    """A release cycle from the endoflife.date API."""
    cycle: str
    eol: EOLStatus = EOLStatus(EOLState.NOT_APPLICABLE)
    latest: str = ""
    release_date: str = ""
    latest_release_date: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EOLCycle':
        """Build a cycle from an endoflife.date JSON record."""
        return cls(
            cycle=str(data.get("cycle", "")),
            eol=EOLStatus.parse(data.get("eol")),
            latest=str(data.get("latest") or ""),
            release_date=str(data.get("releaseDate") or ""),
            latest_release_date=str(data.get("latestReleaseDate") or ""),
        )


@dataclass(frozen=True)
class EOLProduct:
    """A product from the endoflife.date v1 product catalog."""
    name: str
    label: str = ""
    aliases: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EOLProduct':
        return cls(
            name=str(data.get("name") or ""),
            label=str(data.get("label") or ""),
            aliases=tuple(data.get("aliases") or ()),
        )


@dataclass(frozen=True)
class AddonResult:
    """Resolution result for a single matched workload."""
    name: str
    namespace: str
    installed_version: str
    verdict: CompatibilityVerdict
    matched_name: Optional[str] = None


@dataclass
class PipelineReport:
    """Complete resolution output for one pipeline run."""
    platform_version: str
    results: List[AddonResult]
    total_workloads: int = 0
    compatible_count: int = 0
    incompatible_count: int = 0
    unknown_count: int = 0
    errors: List[str] = field(default_factory=list)
    processing_time: float = 0.0
