"""
Genericity checks for extracted feedback.

Decides whether feedback is boilerplate that should be re-requested
with a stricter prompt, and infers a subject area from terminology when
the model did not name one.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..config import GENERIC_PHRASES, SUBJECT_INDICATORS
from .extraction import FeedbackRecord, LIST_FIELDS

logger = logging.getLogger(__name__)

FeedbackLike = Union[FeedbackRecord, Mapping[str, Any]]


def _list_entries(record: FeedbackLike) -> List[str]:
    """Flatten every list field; non-list fields are ignored."""
    if isinstance(record, FeedbackRecord):
        return record.entries()

    entries = []
    for keys in LIST_FIELDS.values():
        for key in keys:
            value = record.get(key)
            if isinstance(value, list):
                entries.extend(str(v) for v in value)
                break
    return entries


def is_generic_feedback(
    record: Optional[FeedbackLike],
    phrases: Iterable[str] = GENERIC_PHRASES,
    ratio: float = 0.5
) -> bool:
    """
    Check whether feedback is mostly boilerplate.

    Args:
        record: FeedbackRecord or a raw mapping with camelCase keys
        phrases: Phrase bank matched case-insensitively as substrings
        ratio: Share of generic entries above which feedback is generic

    Returns:
        True for missing feedback, or when more than ``ratio`` of the
        entries contain a boilerplate phrase
    """
    if record is None:
        return True

    phrases = [p.lower() for p in phrases]
    entries = _list_entries(record)
    if not entries:
        return False

    generic = sum(
        1 for entry in entries
        if any(p in entry.lower() for p in phrases)
    )
    logger.debug(f"Generic entries: {generic}/{len(entries)}")
    return generic / len(entries) > ratio


def is_generic_subject(subject: Optional[str]) -> bool:
    return not subject or "general" in subject.lower()


def infer_subject_area(
    record: FeedbackLike,
    indicators: Optional[Dict[str, List[str]]] = None,
    min_hits: int = 3
) -> Optional[str]:
    """Guess a subject from indicator words used in the feedback."""
    indicators = indicators or SUBJECT_INDICATORS
    text = ' '.join(_list_entries(record))

    best_subject = None
    best_count = 0
    for subject, words in indicators.items():
        count = sum(
            len(re.findall(r'\b' + re.escape(word) + r'\b', text, re.IGNORECASE))
            for word in words
        )
        if count > best_count:
            best_subject, best_count = subject, count

    if best_subject and best_count >= min_hits:
        logger.info(f"Inferred subject area from terminology: {best_subject}")
        return best_subject
    return None
