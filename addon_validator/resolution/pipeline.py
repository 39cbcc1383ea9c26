"""
Resolution pipeline: match detected workloads to catalog entries and derive a
verdict for each through an ordered chain of strategies.

stored data -> runtime interpretation, with a local-only unknown verdict when
neither produces one.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from ..catalog.name_matcher import CatalogIndex, NameMatcher
from ..models import (
    AddonResult,
    CanonicalEntry,
    CompatibilityStatus,
    CompatibilityVerdict,
    DataSource,
    DetectedWorkload,
    EOLCycle,
    PipelineReport,
)
from .compatibility_resolver import VersionCompatibilityResolver, with_source
from .eol import summarize_eol
from .evidence import EvidencePruner, classify_matrix_tier
from .interpretation import InterpretationRequest, Interpreter

logger = logging.getLogger(__name__)

LOCAL_ONLY_NOTE = "LLM analysis not configured"

T = TypeVar('T')
R = TypeVar('R')


@dataclass(frozen=True)
class MatchedWorkload:
    """A detected workload paired with the catalog entry it resolved to."""
    workload: DetectedWorkload
    entry: CanonicalEntry


@dataclass(frozen=True)
class ResolutionContext:
    """Inputs shared by every strategy for one pipeline run."""
    platform_version: str
    documents: Mapping[str, str]
    eol_cycles: Mapping[str, Sequence[EOLCycle]]
    errors: List[str] = field(default_factory=list)


Strategy = Callable[[MatchedWorkload, ResolutionContext], Optional[CompatibilityVerdict]]


class ResolutionPipeline:
    """
    Orchestrates name matching, stored resolution and evidence preparation.

    Every workload is resolved independently; a failure for one never affects
    the others. Results come back in a fixed order regardless of the order the
    workloads were discovered in.
    """

    def __init__(self, catalog: Iterable[CanonicalEntry],
                 matcher: Optional[NameMatcher] = None,
                 resolver: Optional[VersionCompatibilityResolver] = None,
                 pruner: Optional[EvidencePruner] = None,
                 interpreter: Optional[Interpreter] = None,
                 max_workers: int = 1):
        """
        Initialize the pipeline.

        Args:
            catalog: Catalog entries, loaded once and never modified
            matcher: Name matcher, defaults to the built-in alias and role tables
            resolver: Stored-data resolver
            pruner: Evidence pruner for the interpretation step
            interpreter: Optional interpretation collaborator; None means local-only
            max_workers: Worker threads for matching and resolution, 1 runs inline
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.index = CatalogIndex.build(catalog)
        self.matcher = matcher or NameMatcher()
        self.resolver = resolver or VersionCompatibilityResolver()
        self.pruner = pruner or EvidencePruner()
        self.interpreter = interpreter
        self.max_workers = max_workers
        self.strategies: List[Strategy] = [
            self._resolve_stored,
            self._resolve_runtime,
        ]

    @classmethod
    def from_config(cls, config, catalog: Iterable[CanonicalEntry],
                    interpreter: Optional[Interpreter] = None) -> 'ResolutionPipeline':
        """Build a pipeline from a Config object."""
        return cls(
            catalog,
            matcher=NameMatcher.from_config(config.matching),
            pruner=EvidencePruner.from_config(config.evidence),
            interpreter=interpreter,
            max_workers=config.fetch.max_workers,
        )

    def match_workloads(self, workloads: Iterable[DetectedWorkload],
                        addon_filter: Optional[Iterable[str]] = None) -> List[MatchedWorkload]:
        """
        Match detected workloads to catalog entries.

        Workloads are sorted by name, namespace and version before matching.
        Workloads that match nothing are dropped silently, as are duplicates of
        an entry already matched; a later duplicate only replaces the first
        one when the first has no installed version and the later one does.

        Args:
            workloads: Detected workloads
            addon_filter: Optional detected names to keep (case-insensitive)

        Returns:
            Matched workloads in sorted order, one per catalog entry
        """
        ordered = sorted(workloads, key=lambda workload: workload.sort_key())
        if addon_filter is not None:
            wanted = {name.strip().lower() for name in addon_filter if name.strip()}
            ordered = [workload for workload in ordered if workload.name.lower() in wanted]

        results = self._map(lambda workload: self.matcher.match(workload.name, self.index), ordered)

        by_entry: Dict[str, MatchedWorkload] = {}
        for workload, result in zip(ordered, results):
            if not result.matched:
                continue
            entry = result.first
            key = entry.name.lower()
            existing = by_entry.get(key)
            if existing is None or (not existing.workload.installed_version and workload.installed_version):
                by_entry[key] = MatchedWorkload(workload=workload, entry=entry)

        matched = [by_entry[key] for key in sorted(by_entry)]
        logger.info(f"Matched {len(matched)} known addons")
        return matched

    def pending_interpretation(self, matched: Sequence[MatchedWorkload],
                               platform_version: str) -> List[MatchedWorkload]:
        """Matched workloads that stored data cannot decide."""
        outcomes = self._map(
            lambda item: self.resolver.resolve(item.entry, item.workload.installed_version, platform_version),
            matched,
        )
        return [item for item, outcome in zip(matched, outcomes)
                if not isinstance(outcome, CompatibilityVerdict)]

    def evidence_urls(self, pending: Sequence[MatchedWorkload]) -> List[str]:
        """Distinct source URLs the fetch collaborator should retrieve, sorted."""
        return sorted({item.entry.source_url.strip() for item in pending if item.entry.source_url.strip()})

    def build_request(self, item: MatchedWorkload, context: ResolutionContext) -> InterpretationRequest:
        """
        Prepare the interpretation request for one workload.

        The fetched document for the entry's source URL is pruned and the EOL
        summary is computed from the cycles supplied for the entry.
        """
        source_url = item.entry.source_url.strip()
        document = context.documents.get(source_url, "") if source_url else ""
        evidence = self.pruner.prune(document)
        cycles = context.eol_cycles.get(item.entry.name, ())
        tier = classify_matrix_tier(document) if document else ""
        if tier:
            logger.debug(f"Evidence for {item.entry.name} classified as {tier}")
        return InterpretationRequest(
            target_platform_version=context.platform_version,
            name=item.workload.name,
            namespace=item.workload.namespace,
            installed_version=item.workload.installed_version,
            source_url=source_url,
            pruned_evidence=evidence,
            eol_summary=summarize_eol(item.workload.installed_version, cycles),
            matrix_tier=tier,
        )

    def run(self, workloads: Iterable[DetectedWorkload], platform_version: str,
            documents: Optional[Mapping[str, str]] = None,
            eol_cycles: Optional[Mapping[str, Sequence[EOLCycle]]] = None,
            addon_filter: Optional[Iterable[str]] = None) -> PipelineReport:
        """
        Resolve every detected workload against the target platform version.

        Args:
            workloads: Detected workloads
            platform_version: Target platform version, e.g. "1.30"
            documents: Fetched document text keyed by source URL
            eol_cycles: Release cycles keyed by catalog entry name
            addon_filter: Optional detected names to keep

        Returns:
            PipelineReport with one result per matched catalog entry
        """
        start_time = time.time()
        workloads = list(workloads)
        logger.info(f"Discovered {len(workloads)} workloads")

        context = ResolutionContext(
            platform_version=platform_version,
            documents=documents or {},
            eol_cycles=eol_cycles or {},
        )
        matched = self.match_workloads(workloads, addon_filter)
        verdicts = self._map(lambda item: self._resolve(item, context), matched)

        results = [
            AddonResult(
                name=item.workload.name,
                namespace=item.workload.namespace,
                installed_version=item.workload.installed_version,
                verdict=verdict,
                matched_name=item.entry.name,
            )
            for item, verdict in zip(matched, verdicts)
        ]

        report = PipelineReport(
            platform_version=platform_version,
            results=results,
            total_workloads=len(workloads),
            compatible_count=sum(1 for r in results if r.verdict.compatible == CompatibilityStatus.TRUE),
            incompatible_count=sum(1 for r in results if r.verdict.compatible == CompatibilityStatus.FALSE),
            unknown_count=sum(1 for r in results if r.verdict.compatible == CompatibilityStatus.UNKNOWN),
            errors=sorted(context.errors),
            processing_time=time.time() - start_time,
        )
        logger.info(f"Done: {report.compatible_count} compatible, {report.incompatible_count} incompatible, "
                    f"{report.unknown_count} unknown")
        return report

    def _resolve(self, item: MatchedWorkload, context: ResolutionContext) -> CompatibilityVerdict:
        for strategy in self.strategies:
            verdict = strategy(item, context)
            if verdict is not None:
                return verdict
        return _local_only_verdict(item, context)

    def _resolve_stored(self, item: MatchedWorkload, context: ResolutionContext) -> Optional[CompatibilityVerdict]:
        outcome = self.resolver.resolve(item.entry, item.workload.installed_version, context.platform_version)
        if isinstance(outcome, CompatibilityVerdict):
            return outcome
        logger.debug(f"{item.entry.name}: {outcome.reason}")
        return None

    def _resolve_runtime(self, item: MatchedWorkload, context: ResolutionContext) -> Optional[CompatibilityVerdict]:
        if self.interpreter is None:
            return None

        request = self.build_request(item, context)
        try:
            return self.interpreter.interpret(request)
        except Exception as e:
            logger.warning(f"Interpretation failed for {item.entry.name}: {e}")
            context.errors.append(f"{item.entry.name}: {e}")
            return CompatibilityVerdict(
                compatible=CompatibilityStatus.UNKNOWN,
                note=with_source(f"Interpretation failed: {e}", item.entry.source_url),
                data_source=DataSource.RUNTIME,
            )

    def _map(self, func: Callable[[T], R], items: Sequence[T]) -> List[R]:
        """Apply func to items, in parallel when configured, keeping input order."""
        if self.max_workers == 1 or len(items) <= 1:
            return [func(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(func, items))


def _local_only_verdict(item: MatchedWorkload, context: ResolutionContext) -> CompatibilityVerdict:
    """Unknown verdict carrying whatever local EOL and source details exist."""
    details = []
    cycles = context.eol_cycles.get(item.entry.name, ())
    eol_summary = summarize_eol(item.workload.installed_version, cycles)
    if eol_summary:
        details.append(eol_summary)
    if item.entry.source_url.strip():
        details.append(f"Source: {item.entry.source_url.strip()}")

    note = LOCAL_ONLY_NOTE
    if details:
        note = f"{note}. {' '.join(details)}"
    return CompatibilityVerdict(
        compatible=CompatibilityStatus.UNKNOWN,
        note=note,
        data_source=DataSource.LOCAL,
    )
