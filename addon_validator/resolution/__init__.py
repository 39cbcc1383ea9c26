"""
Resolution Module

Contains stored-data compatibility resolution, end-of-life status resolution,
evidence pruning, the interpretation boundary and the resolution pipeline.
"""

from .compatibility_resolver import VersionCompatibilityResolver, find_latest_compatible_version
from .eol import EOLStatusResolver, build_runtime_slug_lookup, lookup_eol_slug, summarize_eol
from .evidence import EvidencePruner, classify_matrix_tier, truncate_utf8
from .interpretation import InterpretationRequest, Interpreter, RetryingInterpreter, verdict_from_payload
from .pipeline import MatchedWorkload, ResolutionPipeline

__all__ = [
    'VersionCompatibilityResolver',
    'find_latest_compatible_version',
    'EOLStatusResolver',
    'build_runtime_slug_lookup',
    'lookup_eol_slug',
    'summarize_eol',
    'EvidencePruner',
    'classify_matrix_tier',
    'truncate_utf8',
    'InterpretationRequest',
    'Interpreter',
    'RetryingInterpreter',
    'verdict_from_payload',
    'MatchedWorkload',
    'ResolutionPipeline',
]
