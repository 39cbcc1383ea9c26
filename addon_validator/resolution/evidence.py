"""
Evidence pruning for fetched compatibility documentation.

Fetched pages can be arbitrarily long and noisy. EvidencePruner reduces them to
a small excerpt biased toward platform-compatibility content, and the result is
identical for identical input and budgets.
"""

import logging
import re
from typing import List, Set

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 12000
DEFAULT_MAX_LINES = 220
DEFAULT_HEADER_LINES = 12
DEFAULT_CONTEXT_LINES = 2

# Line scores
SCORE_PLATFORM_AND_VERSION = 5
SCORE_SUPPORT_KEYWORD = 3
SCORE_VERSION_ONLY = 2
SCORE_RELEVANCE_KEYWORD = 1
SCORE_NEGATION = -4

PLATFORM_TOKEN = re.compile(r'(?i)kubernetes|k8s')
VERSION_TOKEN = re.compile(r'v?\d+\.\d+')
_SUPPORT_KEYWORDS_TEXT = (
    r'compatibility\s+matrix|supported\s+(?:kubernetes\s+)?versions?|version\s+support|k8s\s+compatibility'
)
_RELEVANCE_KEYWORDS_TEXT = (
    r'requirements?|prerequisites?|minimum\s+(?:kubernetes\s+)?version|tested\s+(?:on|with|against)'
    r'|works\s+with|compatible\s+with|requires?\s+(?:kubernetes|k8s)|platform\s+(?:support|notes?|requirements?)'
)
SUPPORT_KEYWORDS = re.compile(r'(?i)' + _SUPPORT_KEYWORDS_TEXT)
RELEVANCE_KEYWORDS = re.compile(r'(?i)' + _RELEVANCE_KEYWORDS_TEXT)
NEGATION_PATTERNS = re.compile(
    r"(?i)\bno\s+(?:kubernetes\s+|k8s\s+)?(?:compatibility\s+matrix|version\s+support|supported\s+versions?)"
    r"|(?:does\s+not|doesn't|do\s+not|don't)\s+(?:provide|include|publish|list|maintain)\b[^.]{0,60}compatibility"
    r"|\bnot\s+(?:officially\s+)?(?:tested|supported)\s+(?:on|with|against)\s+(?:any\s+)?(?:specific\s+)?(?:kubernetes|k8s)"
)

# Matrix tiers, see classify_matrix_tier
MATRIX_TIER_STRICT = 'matrix'
MATRIX_TIER_PARTIAL = 'partial-matrix'
MATRIX_TIER_NONE = 'no-matrix'

_PLATFORM_VERSION_STRICT = re.compile(
    r'(?i)(?:(?:kubernetes|k8s)\s*(?:version)?\s*v?\d+\.\d+|v?\d+\.\d+\s*(?:kubernetes|k8s))'
)
_PLATFORM_VERSION_LOOSE = re.compile(
    r'(?i)(?:(?:kubernetes|k8s)[\s\S]{0,200}v?\d+\.\d+|v?\d+\.\d+[\s\S]{0,200}(?:kubernetes|k8s))'
)
_MATRIX_KEYWORD_LOOSE = re.compile(r'(?i)' + _SUPPORT_KEYWORDS_TEXT + '|' + _RELEVANCE_KEYWORDS_TEXT)


def normalize_lines(text: str) -> List[str]:
    """Split into lines, collapse whitespace inside each line and drop empty lines."""
    lines = []
    for raw_line in text.splitlines():
        line = ' '.join(raw_line.split())
        if line:
            lines.append(line)
    return lines


def score_line(line: str) -> int:
    """
    Score a normalized line for compatibility relevance.

    Args:
        line: Normalized document line

    Returns:
        Additive score; only positive scores make a line an anchor
    """
    score = 0
    has_version = bool(VERSION_TOKEN.search(line))
    if has_version and PLATFORM_TOKEN.search(line):
        score += SCORE_PLATFORM_AND_VERSION
    elif has_version:
        score += SCORE_VERSION_ONLY
    if SUPPORT_KEYWORDS.search(line):
        score += SCORE_SUPPORT_KEYWORD
    if RELEVANCE_KEYWORDS.search(line):
        score += SCORE_RELEVANCE_KEYWORD
    if NEGATION_PATTERNS.search(line):
        score += SCORE_NEGATION
    return score


def truncate_utf8(text: str, max_bytes: int) -> str:
    """
    Truncate text to at most max_bytes of UTF-8 without splitting a character.

    Args:
        text: Text to truncate
        max_bytes: Byte budget

    Returns:
        The longest prefix of text whose UTF-8 encoding fits the budget
    """
    if max_bytes <= 0:
        return ""
    encoded = text.encode('utf-8')
    if len(encoded) <= max_bytes:
        return text
    # A cut inside a multi-byte sequence leaves only an incomplete trailing sequence
    return encoded[:max_bytes].decode('utf-8', errors='ignore')


def classify_matrix_tier(text: str) -> str:
    """
    Classify how much platform-version compatibility data a page contains.

    Returns:
        MATRIX_TIER_STRICT when a platform token sits next to a version number
        and a formal matrix keyword appears, MATRIX_TIER_PARTIAL for a looser
        co-occurrence within 200 characters plus a broader relevance keyword,
        MATRIX_TIER_NONE otherwise
    """
    if _PLATFORM_VERSION_STRICT.search(text) and SUPPORT_KEYWORDS.search(text):
        return MATRIX_TIER_STRICT
    if _PLATFORM_VERSION_LOOSE.search(text) and _MATRIX_KEYWORD_LOOSE.search(text):
        return MATRIX_TIER_PARTIAL
    return MATRIX_TIER_NONE


class EvidencePruner:
    """
    Bounded, deterministic excerpt builder.

    Header lines are always kept, then the highest-scoring anchor lines with
    their surrounding context, then the earliest remaining lines until the line
    budget is used. Selected lines are emitted in document order and the text
    is cut to the byte budget.
    """

    def __init__(self,
                 max_chars: int = DEFAULT_MAX_CHARS,
                 max_lines: int = DEFAULT_MAX_LINES,
                 header_lines: int = DEFAULT_HEADER_LINES,
                 context_lines: int = DEFAULT_CONTEXT_LINES):
        """
        Initialize the pruner.

        Args:
            max_chars: Output budget in UTF-8 bytes
            max_lines: Maximum number of lines kept
            header_lines: Leading lines always kept (within max_lines)
            context_lines: Lines kept on each side of an anchor
        """
        self.max_chars = max_chars
        self.max_lines = max_lines
        self.header_lines = header_lines
        self.context_lines = context_lines

    @classmethod
    def from_config(cls, evidence_config) -> 'EvidencePruner':
        """Build a pruner from an EvidenceConfig."""
        return cls(
            max_chars=evidence_config.max_chars,
            max_lines=evidence_config.max_lines,
            header_lines=evidence_config.header_lines,
            context_lines=evidence_config.context_lines,
        )

    def prune(self, text: str) -> str:
        """
        Reduce a document to a bounded excerpt.

        Args:
            text: Raw fetched document text

        Returns:
            Pruned evidence; empty for empty input or a zero budget
        """
        lines = normalize_lines(text or "")
        if not lines or self.max_lines <= 0 or self.max_chars <= 0:
            return ""

        selected: Set[int] = set(range(min(self.header_lines, self.max_lines, len(lines))))

        anchors = [(score_line(line), position) for position, line in enumerate(lines)]
        anchors = sorted(
            ((score, position) for score, position in anchors if score > 0),
            key=lambda anchor: (-anchor[0], anchor[1]),
        )

        for _, position in anchors:
            if len(selected) >= self.max_lines:
                break
            for index in self._window(position, len(lines)):
                if len(selected) >= self.max_lines:
                    break
                selected.add(index)

        for index in range(len(lines)):
            if len(selected) >= self.max_lines:
                break
            selected.add(index)

        excerpt = '\n'.join(lines[index] for index in sorted(selected))
        logger.debug(f"Pruned {len(lines)} lines to {len(selected)} ({len(anchors)} anchors)")
        return truncate_utf8(excerpt, self.max_chars)

    def _window(self, position: int, line_count: int) -> List[int]:
        """Anchor first, then context lines nearest-first, the earlier line of each pair first."""
        window = [position]
        for distance in range(1, self.context_lines + 1):
            if position - distance >= 0:
                window.append(position - distance)
            if position + distance < line_count:
                window.append(position + distance)
        return window
