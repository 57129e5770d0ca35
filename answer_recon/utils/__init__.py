"""
Utility modules for the answer reconstruction pipeline.
"""

from .layout import Token, Rect, Line, OCRDocument, normalize_lines, estimate_margin
from .classifier import LineSignals, SegmentState, compute_signals, score_signals, classify_line
from .segmenter import AnswerRecord, SegmentationResult, QuestionSegmenter, segment_document
from .extraction import (
    FeedbackRecord, SubjectProfile, SimilarityResult,
    extract_feedback, extract_feedback_data, extract_subject_profile, extract_similarity,
)
from .genericity import is_generic_feedback, infer_subject_area
from .resources import ResourceLink, TopicResources, fallback_resources, find_learning_resources
from .store import AnswerStore, AnswerPair
from .feedback import FeedbackReviewer, FeedbackReview, evaluate_pairs, similarity_prompt

__all__ = [
    # Layout
    "Token", "Rect", "Line", "OCRDocument", "normalize_lines", "estimate_margin",
    # Classification
    "LineSignals", "SegmentState", "compute_signals", "score_signals", "classify_line",
    # Segmentation
    "AnswerRecord", "SegmentationResult", "QuestionSegmenter", "segment_document",
    # Extraction
    "FeedbackRecord", "SubjectProfile", "SimilarityResult",
    "extract_feedback", "extract_feedback_data", "extract_subject_profile", "extract_similarity",
    "is_generic_feedback", "infer_subject_area",
    # Resources
    "ResourceLink", "TopicResources", "fallback_resources", "find_learning_resources",
    # Comparison
    "AnswerStore", "AnswerPair", "FeedbackReviewer", "FeedbackReview", "evaluate_pairs",
    "similarity_prompt",
]
