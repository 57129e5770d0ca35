"""
Line classification module for answer reconstruction.

Decides whether an OCR line starts a new question or continues the
current answer. The decision is an additive score over independent
signals, compared against a fixed threshold.
"""

import logging
import re
from dataclasses import dataclass, field, fields
from typing import List, Optional

from ..config import SegmentationConfig, SignalWeights

logger = logging.getLogger(__name__)


# ============================================================================
# Patterns
# ============================================================================

# "1.", "1)", "Q1:", "Question 1 -", "(1)", "3b)"
QUESTION_NUMBER_RE = re.compile(
    r'^(?:\s*(?:Q\.?|Question)?\s*)?(\d+)[.)\s:\-]'
    r'|\s*\((\d+)\)'
    r'|\s*(\d+)[a-z]?[.)]',
    re.IGNORECASE
)

BARE_NUMBER_CAPITAL_RE = re.compile(r'^\s*\d+\s+[A-Z]')
LEADING_DIGITS_RE = re.compile(r'^\s*(\d+)')
EMBEDDED_DIGIT_RE = re.compile(r'\s\d+\s')
SENTENCE_END_RE = re.compile(r'[.!?]$')
LOWERCASE_START_RE = re.compile(r'^[a-z]')


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class SegmentState:
    """Running state carried from one line to the next."""
    current_question: Optional[str] = None
    answer_lines: List[str] = field(default_factory=list)
    previous_blank: bool = False
    average_indentation: float = 0.0
    indentation_count: int = 0

    @property
    def is_open(self) -> bool:
        return self.current_question is not None


@dataclass
class LineSignals:
    """Which classification signals fired for a line."""
    numbered: bool = False
    follows_blank: bool = False
    at_margin: bool = False
    bare_number_capital: bool = False
    embedded_digit: bool = False
    continuation_indent: bool = False
    lowercase_continuation: bool = False

    def active(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name)]


@dataclass
class LineDecision:
    """Classifier output for one line."""
    signals: LineSignals
    score: int
    is_new_question: bool
    match: Optional[re.Match] = None


# ============================================================================
# Scoring
# ============================================================================

def score_signals(signals: LineSignals, weights: Optional[SignalWeights] = None) -> int:
    """Sum the weights of every signal that fired."""
    weights = weights or SignalWeights()
    return sum(getattr(weights, name) for name in signals.active())


def is_new_question(score: int, threshold: int = 40) -> bool:
    return score >= threshold


def compute_signals(
    line: str,
    left_x: Optional[int],
    state: SegmentState,
    margin: Optional[int] = None,
    has_layout: bool = False,
    indentation_tolerance: int = 15
) -> LineSignals:
    """
    Evaluate every signal for a trimmed, non-empty line.

    Args:
        line: Trimmed line text
        left_x: Line's left x coordinate, if it was matched to a token
        state: Running segmentation state
        margin: Left margin threshold of the page
        has_layout: Whether the page carried any bounding boxes
        indentation_tolerance: Max distance from the running answer indentation

    Returns:
        LineSignals with each flag set independently
    """
    signals = LineSignals()
    matched = QUESTION_NUMBER_RE.search(line) is not None

    signals.numbered = matched
    signals.follows_blank = state.previous_blank

    positioned = bool(has_layout and left_x)
    at_margin = positioned and margin is not None and left_x <= margin
    signals.at_margin = at_margin

    if not matched:
        signals.bare_number_capital = bool(BARE_NUMBER_CAPITAL_RE.search(line))
        signals.embedded_digit = bool(
            EMBEDDED_DIGIT_RE.search(line) and not LEADING_DIGITS_RE.search(line)
        )

    if state.is_open and positioned and state.average_indentation > 0:
        near = abs(left_x - state.average_indentation) < indentation_tolerance
        signals.continuation_indent = near and not at_margin

    if state.is_open and state.answer_lines:
        previous = state.answer_lines[-1]
        signals.lowercase_continuation = bool(
            not SENTENCE_END_RE.search(previous) and LOWERCASE_START_RE.match(line)
        )

    return signals


def classify_line(
    line: str,
    left_x: Optional[int],
    state: SegmentState,
    margin: Optional[int] = None,
    has_layout: bool = False,
    config: Optional[SegmentationConfig] = None
) -> LineDecision:
    """Score a line and decide whether it opens a new question."""
    config = config or SegmentationConfig()

    signals = compute_signals(
        line, left_x, state,
        margin=margin,
        has_layout=has_layout,
        indentation_tolerance=config.indentation_tolerance
    )
    score = score_signals(signals, config.weights)

    return LineDecision(
        signals=signals,
        score=score,
        is_new_question=is_new_question(score, config.new_question_threshold),
        match=QUESTION_NUMBER_RE.search(line)
    )


# ============================================================================
# Question Number Helpers
# ============================================================================

def extract_question_number(line: str, match: Optional[re.Match] = None) -> Optional[str]:
    """
    Get the question number from a line.

    The first non-empty group of the numbered pattern wins; lines that
    only look like "1 Answer" fall back to their leading digits.
    """
    match = match if match is not None else QUESTION_NUMBER_RE.search(line)
    if match:
        for group in match.groups():
            if group:
                return group

    bare = LEADING_DIGITS_RE.match(line)
    if bare:
        return bare.group(1)
    return None


def strip_question_number(line: str) -> str:
    """Remove the first numbered-pattern occurrence and trim."""
    return QUESTION_NUMBER_RE.sub('', line, count=1).strip()
