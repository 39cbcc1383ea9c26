"""
Boundary to the external interpretation step.

An Interpreter turns pruned evidence plus workload identity into a verdict. It
is treated as unreliable: callers must be ready for it to raise or hang, and
the pipeline always has an unknown verdict to fall back to.
"""

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from ..exceptions import InterpretationError
from ..models import CompatibilityStatus, CompatibilityVerdict, DataSource

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF_SCHEDULE = (0.0, 1.0, 2.0)

_TRANSIENT_MARKERS = (
    'unexpected eof',
    'timeout',
    'timed out',
    'temporary',
    'temporarily unavailable',
    'connection reset',
    '429',
    'resource_exhausted',
)

_CODE_FENCE = re.compile(r'^```[a-zA-Z]*\s*\n?(.*?)\n?```$', re.DOTALL)


@dataclass(frozen=True)
class InterpretationRequest:
    """Everything the interpretation step gets to see for one workload."""
    target_platform_version: str
    name: str
    namespace: str = ""
    installed_version: str = ""
    source_url: str = ""
    pruned_evidence: str = ""
    eol_summary: str = ""
    matrix_tier: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            'k8s_version': self.target_platform_version,
            'name': self.name,
            'namespace': self.namespace,
            'installed_version': self.installed_version,
            'compatibility_url': self.source_url,
            'evidence': self.pruned_evidence,
            'eol_summary': self.eol_summary,
            'matrix_tier': self.matrix_tier,
        }


class Interpreter(ABC):
    """Abstract interpretation collaborator."""

    @abstractmethod
    def interpret(self, request: InterpretationRequest) -> CompatibilityVerdict:
        """
        Produce a verdict from pruned evidence.

        Args:
            request: Workload identity and evidence

        Returns:
            CompatibilityVerdict with data_source RUNTIME

        Raises:
            InterpretationError: If no verdict can be produced
        """
        pass


def verdict_from_payload(payload: Mapping[str, Any]) -> CompatibilityVerdict:
    """
    Convert a JSON-like interpreter response into a verdict.

    The "compatible" field accepts booleans and "true"/"false" strings; any
    other value, including null or a missing field, becomes unknown.

    Args:
        payload: Mapping with "compatible", "note" and optionally "latest_compatible_version"

    Returns:
        CompatibilityVerdict with data_source RUNTIME

    Raises:
        InterpretationError: If the payload is not a mapping
    """
    if not isinstance(payload, Mapping):
        raise InterpretationError(f"expected a JSON object, got {type(payload).__name__}")

    latest = payload.get('latest_compatible_version')
    return CompatibilityVerdict(
        compatible=CompatibilityStatus.from_value(payload.get('compatible')),
        note=str(payload.get('note') or ""),
        data_source=DataSource.RUNTIME,
        latest_compatible_version=str(latest) if latest else None,
    )


def extract_json(text: str) -> str:
    """Strip a surrounding Markdown code fence from a JSON response."""
    text = (text or "").strip()
    match = _CODE_FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text


def parse_verdict_response(text: str) -> CompatibilityVerdict:
    """
    Parse a raw text response into a verdict.

    Raises:
        InterpretationError: If the response is not valid JSON
    """
    try:
        payload = json.loads(extract_json(text))
    except json.JSONDecodeError as e:
        raise InterpretationError(f"invalid JSON response: {e}")
    return verdict_from_payload(payload)


def is_transient_interpretation_error(error: Optional[BaseException]) -> bool:
    """True for errors worth retrying: EOF, timeouts, resets and rate limits."""
    if error is None:
        return False
    if isinstance(error, (EOFError, TimeoutError, ConnectionResetError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class RetryingInterpreter(Interpreter):
    """
    Wraps an interpreter with a fixed, deterministic backoff schedule.

    Only transient errors are retried; anything else is raised immediately.
    """

    def __init__(self, interpreter: Interpreter,
                 backoff_schedule: Sequence[float] = DEFAULT_BACKOFF_SCHEDULE,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the retrying wrapper.

        Args:
            interpreter: Interpreter to call
            backoff_schedule: Delay before each attempt; its length is the attempt count
            sleep: Sleep function, replaceable in tests
        """
        if not backoff_schedule:
            raise ValueError("backoff_schedule must contain at least one attempt")
        self.interpreter = interpreter
        self.backoff_schedule = tuple(backoff_schedule)
        self.sleep = sleep

    def interpret(self, request: InterpretationRequest) -> CompatibilityVerdict:
        last_error: Optional[Exception] = None
        for attempt, delay in enumerate(self.backoff_schedule, start=1):
            if delay > 0:
                self.sleep(delay)
            try:
                return self.interpreter.interpret(request)
            except Exception as e:
                last_error = e
                if not is_transient_interpretation_error(e):
                    raise
                logger.warning(f"Transient interpretation error for {request.name} "
                               f"(attempt {attempt}/{len(self.backoff_schedule)}): {e}")
        raise last_error
