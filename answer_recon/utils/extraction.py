"""
Structured response extraction for answer reconstruction.

Generative models are asked for JSON but do not reliably return it.
This module recovers a fixed feedback schema from whatever came back:
- Strict parse of the whole text
- Parse of an embedded fenced block or brace span
- Heading-based extraction from free prose

Also provides:
- Subject profile extraction (main subject, topic, level)
- Similarity score extraction from evaluation responses
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config import (
    DEFAULT_EDUCATIONAL_LEVEL,
    DEFAULT_SPECIFIC_TOPIC,
    DEFAULT_SUBJECT_AREA,
    ExtractionConfig,
)

logger = logging.getLogger(__name__)

Attempt = Callable[[str], Optional[Dict[str, Any]]]


# ============================================================================
# Schema
# ============================================================================

# field name -> accepted keys in model output
LIST_FIELDS = {
    "strengths": ("strengths",),
    "areas_for_improvement": ("areasForImprovement", "areas_for_improvement"),
    "missing_concepts": ("missingConcepts", "missing_concepts"),
    "topics_to_improve": ("topicsToImprove", "topics_to_improve"),
}
SUBJECT_KEYS = ("subjectArea", "subject_area")

FEEDBACK_KEYS = tuple(k for keys in LIST_FIELDS.values() for k in keys) + SUBJECT_KEYS

# field name -> headings used in prose responses
HEADINGS = {
    "strengths": ("Strengths",),
    "areas_for_improvement": ("Areas for Improvement",),
    "missing_concepts": ("Missing Concepts",),
    "topics_to_improve": ("Topics to Improve", "Topics to Study"),
}


@dataclass
class FeedbackRecord:
    """Feedback on one answer. Every field is always populated."""
    strengths: List[str] = field(default_factory=list)
    areas_for_improvement: List[str] = field(default_factory=list)
    missing_concepts: List[str] = field(default_factory=list)
    topics_to_improve: List[str] = field(default_factory=list)
    subject_area: str = DEFAULT_SUBJECT_AREA

    def entries(self) -> List[str]:
        """All list entries, in field order."""
        return (
            self.strengths + self.areas_for_improvement
            + self.missing_concepts + self.topics_to_improve
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strengths": list(self.strengths),
            "areasForImprovement": list(self.areas_for_improvement),
            "missingConcepts": list(self.missing_concepts),
            "topicsToImprove": list(self.topics_to_improve),
            "subjectArea": self.subject_area,
        }

    @classmethod
    def from_mapping(
        cls,
        data: Optional[Dict[str, Any]],
        config: Optional[ExtractionConfig] = None
    ) -> 'FeedbackRecord':
        """
        Normalize a loosely shaped mapping into a complete record.

        Scalars become one-element lists; missing or empty lists get the
        configured placeholder; a missing subject gets the default.
        """
        config = config or ExtractionConfig()
        data = data or {}
        values = {}

        for name, keys in LIST_FIELDS.items():
            items = _as_string_list(_first_present(data, keys))
            if not items:
                logger.debug(f"Field '{name}' missing, using placeholder")
                items = [config.placeholders[name]]
            values[name] = items

        subject = _first_present(data, SUBJECT_KEYS)
        if not isinstance(subject, str) or not subject.strip():
            subject = config.default_subject_area
        values["subject_area"] = subject.strip()

        return cls(**values)


def _first_present(data: Dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _as_string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    items = []
    for item in value:
        if item is None:
            continue
        if isinstance(item, str):
            text = item
        elif isinstance(item, (dict, list)):
            text = json.dumps(item)
        else:
            text = str(item)
        text = text.strip()
        if text:
            items.append(text)
    return items


# ============================================================================
# Attempt Chain
# ============================================================================

FENCED_BLOCK_RE = re.compile(r'```(?:json)?\s*\n?(.*?)\n?```', re.DOTALL)
BRACE_SPAN_RE = re.compile(r'\{.*\}', re.DOTALL)


def _load_object(text: str, keys: Sequence[str]) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text.strip())
    except (ValueError, TypeError):
        return None
    if isinstance(value, dict) and any(k in value for k in keys):
        return value
    return None


def parse_whole(text: str, keys: Sequence[str] = FEEDBACK_KEYS) -> Optional[Dict[str, Any]]:
    """Parse the entire text as one JSON object."""
    return _load_object(text, keys)


def find_embedded_json(text: str) -> Optional[str]:
    """Return a fenced block's body, or else the outermost brace span."""
    match = FENCED_BLOCK_RE.search(text)
    if match:
        return match.group(1)
    match = BRACE_SPAN_RE.search(text)
    if match:
        return match.group(0)
    return None


def parse_embedded(text: str, keys: Sequence[str] = FEEDBACK_KEYS) -> Optional[Dict[str, Any]]:
    """Parse JSON embedded in surrounding prose."""
    span = find_embedded_json(text)
    if span is None:
        return None
    return _load_object(span, keys)


BULLET_RE = re.compile(r'^(?:\d+[.)]\s*|[-*•]\s*)')


def _section_pattern(heading: str) -> re.Pattern:
    # Section runs until a newline followed by a capitalized word
    return re.compile(
        re.escape(heading) + r':?\s*\n?(.*?)(?=\n(?-i:[A-Z][a-z])|\Z)',
        re.IGNORECASE | re.DOTALL
    )


SUBJECT_SECTION_RE = re.compile(r'Subject Area:?\s*\n?(.*)', re.IGNORECASE | re.DOTALL)


def split_items(text: str) -> List[str]:
    """Split a captured section into items without bullet markers."""
    if not text or not text.strip():
        return []
    items = []
    for line in text.split('\n'):
        item = BULLET_RE.sub('', line.strip(), count=1).strip()
        if item:
            items.append(item)
    return items


def parse_headings(text: str) -> Optional[Dict[str, Any]]:
    """
    Pull feedback fields out of prose laid out under headings.

    Returns:
        Mapping of the fields found, or None when no heading matched
    """
    found: Dict[str, Any] = {}

    for name, headings in HEADINGS.items():
        for heading in headings:
            match = _section_pattern(heading).search(text)
            if match:
                items = split_items(match.group(1))
                if items:
                    found[name] = items
                    break

    subject = SUBJECT_SECTION_RE.search(text)
    if subject and subject.group(1).strip():
        found["subject_area"] = subject.group(1).strip()

    return found or None


FEEDBACK_ATTEMPTS: List[Attempt] = [parse_whole, parse_embedded, parse_headings]


def run_attempts(text: str, attempts: Sequence[Attempt]) -> Optional[Dict[str, Any]]:
    """Try each extractor in order; the first non-None result wins."""
    for attempt in attempts:
        result = attempt(text)
        if result is not None:
            logger.debug(f"Extraction succeeded with {attempt.__name__}")
            return result
        logger.debug(f"Extraction attempt {attempt.__name__} found nothing")
    return None


def extract_feedback_data(text: Optional[str]) -> Dict[str, Any]:
    """
    Recover the feedback fields a model response actually contains.

    Nothing is defaulted here, so genericity checks see only what the
    model wrote. Returns an empty mapping when every attempt fails.
    """
    data = run_attempts(text or "", FEEDBACK_ATTEMPTS)
    if data is None:
        logger.warning("Could not recover structured feedback")
        return {}
    return data


def extract_feedback(
    text: Optional[str],
    config: Optional[ExtractionConfig] = None
) -> FeedbackRecord:
    """
    Recover a complete feedback record from a model response.

    Never raises on malformed input; fields that cannot be recovered get
    placeholder values.
    """
    return FeedbackRecord.from_mapping(extract_feedback_data(text), config)


def has_all_list_fields(data: Optional[Dict[str, Any]]) -> bool:
    """
    True if every list field is present.

    Any list counts, empty ones included; scalars must be non-empty.
    """
    if not data:
        return False
    for keys in LIST_FIELDS.values():
        value = _first_present(data, keys)
        if not isinstance(value, list) and not value:
            return False
    return True


# ============================================================================
# Subject Profile
# ============================================================================

GENERIC_SUBJECTS = {"general academics", "general", "general knowledge"}

SUBJECT_KEYS_ALL = ("mainSubject", "specificTopic", "educationalLevel")

MAIN_SUBJECT_RES = [
    re.compile(r'["\']?mainSubject["\']?\s*:\s*["\'](.+?)["\']', re.IGNORECASE),
    re.compile(r'main\s*subject\s*:\s*(.+?)(?:\n|$)', re.IGNORECASE),
    re.compile(r'subject\s*:\s*(.+?)(?:\n|$)', re.IGNORECASE),
]
SPECIFIC_TOPIC_RES = [
    re.compile(r'["\']?specificTopic["\']?\s*:\s*["\'](.+?)["\']', re.IGNORECASE),
    re.compile(r'specific\s*topic\s*:\s*(.+?)(?:\n|$)', re.IGNORECASE),
    re.compile(r'sub-topic\s*:\s*(.+?)(?:\n|$)', re.IGNORECASE),
]
LEVEL_RES = [
    re.compile(r'["\']?educationalLevel["\']?\s*:\s*["\'](.+?)["\']', re.IGNORECASE),
    re.compile(r'educational\s*level\s*:\s*(.+?)(?:\n|$)', re.IGNORECASE),
    re.compile(r'level\s*:\s*(.+?)(?:\n|$)', re.IGNORECASE),
]
PROSE_SUBJECT_RE = re.compile(
    r'(?:subject|topic|field|discipline|area)\s+(?:is|appears to be|seems to be)\s+([^,.]+)',
    re.IGNORECASE
)


@dataclass
class SubjectProfile:
    """Academic subject classification of a pair of answers."""
    main_subject: str = DEFAULT_SUBJECT_AREA
    specific_topic: str = DEFAULT_SPECIFIC_TOPIC
    educational_level: str = DEFAULT_EDUCATIONAL_LEVEL

    @property
    def subject_area(self) -> str:
        if self.specific_topic and self.specific_topic != DEFAULT_SPECIFIC_TOPIC:
            return f"{self.main_subject} - {self.specific_topic}"
        return self.main_subject

    @property
    def is_generic(self) -> bool:
        return (
            self.main_subject == DEFAULT_SUBJECT_AREA
            or self.specific_topic == DEFAULT_SPECIFIC_TOPIC
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "mainSubject": self.main_subject,
            "specificTopic": self.specific_topic,
            "educationalLevel": self.educational_level,
        }


def _is_generic_value(value: Any) -> bool:
    return not isinstance(value, str) or value.strip().lower() in GENERIC_SUBJECTS


def _first_group(patterns: Sequence[re.Pattern], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def _profile_from_labels(text: str) -> SubjectProfile:
    profile = SubjectProfile()

    subject = _first_group(MAIN_SUBJECT_RES, text)
    if subject and not _is_generic_value(subject):
        profile.main_subject = subject

    topic = _first_group(SPECIFIC_TOPIC_RES, text)
    if topic and not _is_generic_value(topic):
        profile.specific_topic = topic

    level = _first_group(LEVEL_RES, text)
    if level:
        profile.educational_level = level

    return profile


def extract_subject_profile(text: Optional[str]) -> SubjectProfile:
    """
    Recover a subject profile from a classification response.

    Structured answers are only accepted when both subject and topic are
    present and neither is generic. Label matching is used only when no
    JSON could be located at all.
    """
    text = text or ""
    profile = SubjectProfile()

    data = parse_whole(text, SUBJECT_KEYS_ALL)
    if data is None and find_embedded_json(text) is None:
        profile = _profile_from_labels(text)
        logger.debug(f"Extracted subject data via labels: {profile.to_dict()}")
    else:
        if data is None:
            data = parse_embedded(text, SUBJECT_KEYS_ALL)
        if data and data.get("mainSubject") and data.get("specificTopic"):
            if _is_generic_value(data["mainSubject"]) or _is_generic_value(data["specificTopic"]):
                logger.info("Parsed subject data was too generic")
            else:
                profile = SubjectProfile(
                    main_subject=str(data["mainSubject"]).strip(),
                    specific_topic=str(data["specificTopic"]).strip(),
                    educational_level=str(
                        data.get("educationalLevel") or DEFAULT_EDUCATIONAL_LEVEL
                    ).strip(),
                )

    if profile.is_generic:
        match = PROSE_SUBJECT_RE.search(text)
        if match and len(match.group(1).strip()) > 3:
            profile.main_subject = match.group(1).strip()
            logger.debug(f"Extracted subject from text patterns: {profile.main_subject}")

    return profile


# ============================================================================
# Similarity Score
# ============================================================================

SCORE_RES = [
    re.compile(r'SIMILARITY_SCORE:\s*(\d+(?:\.\d+)?)', re.IGNORECASE),
    re.compile(r'similarity score:?\s*(\d+(?:\.\d+)?)', re.IGNORECASE),
    re.compile(r'score:?\s*(\d+(?:\.\d+)?)', re.IGNORECASE),
]
PERCENT_RE = re.compile(r'\b(\d{1,3}(?:\.\d+)?)\s*(?:/100|percent|%)', re.IGNORECASE)
EVALUATION_RE = re.compile(r'EVALUATION:(.+)', re.IGNORECASE | re.DOTALL)


@dataclass
class SimilarityResult:
    """Similarity score (0-100) and the evaluation text around it."""
    score: float = 0.0
    feedback: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"similarityScore": self.score, "feedback": self.feedback}


def extract_similarity(text: Optional[str]) -> SimilarityResult:
    """Pull a similarity score and evaluation out of a model response."""
    text = text or ""

    score_match = None
    for pattern in SCORE_RES:
        score_match = pattern.search(text)
        if score_match:
            break

    score = 0.0
    if score_match:
        score = float(score_match.group(1))
    else:
        percent = PERCENT_RE.search(text)
        if percent:
            score = float(percent.group(1))
    score = max(0.0, min(100.0, score))

    evaluation = EVALUATION_RE.search(text)
    if evaluation:
        feedback = evaluation.group(1).strip()
    elif score_match:
        feedback = text[score_match.end():].strip()
    else:
        feedback = text.strip()

    logger.debug(f"Extracted similarity score: {score}")
    return SimilarityResult(score=score, feedback=feedback)
