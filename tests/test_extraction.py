"""
Tests for structured response extraction.
"""

import json
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from answer_recon.utils.extraction import (
    FeedbackRecord,
    extract_feedback,
    extract_feedback_data,
    extract_similarity,
    extract_subject_profile,
    has_all_list_fields,
    parse_embedded,
    parse_headings,
    parse_whole,
    run_attempts,
    split_items,
)

RECORD = {
    "strengths": ["a"],
    "areasForImprovement": ["b"],
    "missingConcepts": ["c"],
    "topicsToImprove": ["d"],
    "subjectArea": "Math",
}
RECORD_JSON = json.dumps(RECORD)

PLACEHOLDERS = {
    "strengths": ["Good attempt at answering the question"],
    "areasForImprovement": ["Work on being more specific in your answers"],
    "missingConcepts": ["Some key concepts from the reference answer are missing"],
    "topicsToImprove": ["Core subject fundamentals"],
    "subjectArea": "General academics",
}


class TestExtractionLadder:
    """Test each rung of the extraction ladder."""

    def test_strict_json(self):
        """Test well-formed JSON is returned unchanged."""
        assert parse_whole(RECORD_JSON) == RECORD
        assert extract_feedback(RECORD_JSON).to_dict() == RECORD

    def test_fenced_block(self):
        """Test JSON inside a fenced block surrounded by prose."""
        text = f"Here is my analysis:\n```json\n{RECORD_JSON}\n```\nHope this helps!"

        assert parse_whole(text) is None
        assert parse_embedded(text) == RECORD
        assert extract_feedback(text).to_dict() == RECORD

    def test_untagged_fence(self):
        """Test a fence without a language tag."""
        text = f"```\n{RECORD_JSON}\n```"
        assert extract_feedback(text).to_dict() == RECORD

    def test_brace_span(self):
        """Test bare JSON embedded in a sentence."""
        text = f"Sure! {RECORD_JSON} Let me know."
        assert extract_feedback(text).to_dict() == RECORD

    def test_headings(self):
        """Test prose with headings and bullet lists."""
        text = "Strengths:\n- a\n- b\nAreas for Improvement:\n- c"

        assert parse_whole(text) is None
        assert parse_embedded(text) is None

        result = extract_feedback(text).to_dict()

        assert result["strengths"] == ["a", "b"]
        assert result["areasForImprovement"] == ["c"]
        assert result["missingConcepts"] == PLACEHOLDERS["missingConcepts"]
        assert result["topicsToImprove"] == PLACEHOLDERS["topicsToImprove"]
        assert result["subjectArea"] == PLACEHOLDERS["subjectArea"]

    def test_headings_numbered_items_and_subject(self):
        """Test numbered lists, the study alias and the subject heading."""
        text = (
            "Missing Concepts\n1. Chain rule\n2. Product rule\n"
            "Topics to Study:\n* Limits\n"
            "Subject Area: Mathematics - Calculus"
        )

        result = extract_feedback(text)

        assert result.missing_concepts == ["Chain rule", "Product rule"]
        assert result.topics_to_improve == ["Limits"]
        assert result.subject_area == "Mathematics - Calculus"

    def test_json_without_expected_keys_falls_through(self):
        """Test JSON with unrelated keys is not accepted."""
        assert parse_whole('{"answer": 42}') is None

    def test_invalid_embedded_json_falls_to_headings(self):
        """Test a broken fenced block still reaches heading extraction."""
        text = "```json\n{broken\n```\nStrengths:\n- clear reasoning"

        assert extract_feedback(text).strengths == ["clear reasoning"]

    def test_nothing_recoverable(self):
        """Test unusable input yields a fully defaulted record."""
        assert extract_feedback("").to_dict() == PLACEHOLDERS
        assert extract_feedback(None).to_dict() == PLACEHOLDERS
        assert extract_feedback("I cannot help with that.").to_dict() == PLACEHOLDERS


class TestNormalization:
    """Test FeedbackRecord.from_mapping."""

    def test_scalar_wrapped(self):
        """Test single values become one-element lists."""
        record = FeedbackRecord.from_mapping({"strengths": "Clear thesis", "topicsToImprove": 3})

        assert record.strengths == ["Clear thesis"]
        assert record.topics_to_improve == ["3"]

    def test_empty_list_gets_placeholder(self):
        """Test empty lists are treated as missing."""
        record = FeedbackRecord.from_mapping({"missingConcepts": [], "strengths": ["", "  "]})

        assert record.missing_concepts == PLACEHOLDERS["missingConcepts"]
        assert record.strengths == PLACEHOLDERS["strengths"]

    def test_snake_case_keys(self):
        """Test snake_case keys are accepted."""
        record = FeedbackRecord.from_mapping({"areas_for_improvement": ["x"], "subject_area": "Art"})

        assert record.areas_for_improvement == ["x"]
        assert record.subject_area == "Art"

    def test_non_string_subject(self):
        """Test a malformed subject falls back to the default."""
        record = FeedbackRecord.from_mapping({"subjectArea": ["Biology"]})
        assert record.subject_area == "General academics"

    def test_has_all_list_fields(self):
        """Test the completeness check used for retries."""
        assert has_all_list_fields(RECORD) is True
        assert has_all_list_fields({"strengths": ["a"]}) is False
        assert has_all_list_fields(None) is False

    def test_has_all_list_fields_accepts_empty_lists(self):
        """Test empty lists still count as present, empty strings do not."""
        empty = {
            "strengths": [],
            "areasForImprovement": [],
            "missingConcepts": [],
            "topicsToImprove": [],
        }
        assert has_all_list_fields(empty) is True
        assert has_all_list_fields(dict(empty, topicsToImprove="")) is False
        assert has_all_list_fields(dict(empty, topicsToImprove="Optics")) is True

    def test_feedback_data_is_not_defaulted(self):
        """Test raw extraction keeps only the fields the reply carried."""
        assert extract_feedback_data('{"strengths": ["Well done"]}') == {"strengths": ["Well done"]}
        assert extract_feedback_data("I cannot help with that.") == {}


class TestHelpers:
    """Test extraction helpers."""

    def test_split_items_keeps_inner_hyphens(self):
        """Test only leading markers are removed."""
        assert split_items("- self-driving cars\n\n• 2-step proof") == ["self-driving cars", "2-step proof"]

    def test_parse_headings_none(self):
        """Test prose without headings yields nothing."""
        assert parse_headings("no structure here") is None

    def test_run_attempts_order(self):
        """Test the first successful attempt wins."""
        calls = []

        def fails(text):
            calls.append("fails")
            return None

        def works(text):
            calls.append("works")
            return {"strengths": [text]}

        def never(text):
            calls.append("never")
            return {}

        assert run_attempts("x", [fails, works, never]) == {"strengths": ["x"]}
        assert calls == ["fails", "works"]


class TestSubjectProfile:
    """Test subject classification extraction."""

    def test_json(self):
        """Test a specific JSON classification."""
        text = '{"mainSubject": "Biology", "specificTopic": "Genetics", "educationalLevel": "High School"}'
        profile = extract_subject_profile(text)

        assert profile.subject_area == "Biology - Genetics"
        assert profile.educational_level == "High School"
        assert profile.is_generic is False

    def test_generic_json_rejected(self):
        """Test generic classifications keep the defaults."""
        profile = extract_subject_profile('{"mainSubject": "General", "specificTopic": "General"}')

        assert profile.main_subject == "General academics"
        assert profile.specific_topic == "General knowledge"
        assert profile.is_generic is True

    def test_labels(self):
        """Test label lines when no JSON is present."""
        text = "Main subject: Physics\nSpecific topic: Kinematics\nEducational level: Undergraduate"
        profile = extract_subject_profile(text)

        assert profile.main_subject == "Physics"
        assert profile.specific_topic == "Kinematics"
        assert profile.educational_level == "Undergraduate"

    def test_prose(self):
        """Test a subject stated in a sentence."""
        profile = extract_subject_profile("I think the subject is organic chemistry, clearly.")

        assert profile.main_subject == "organic chemistry"
        assert profile.subject_area == "organic chemistry"

    def test_empty(self):
        """Test empty input keeps every default."""
        assert extract_subject_profile("").to_dict() == {
            "mainSubject": "General academics",
            "specificTopic": "General knowledge",
            "educationalLevel": "Unknown",
        }


class TestSimilarity:
    """Test similarity score extraction."""

    def test_labelled_score_and_evaluation(self):
        """Test the requested response format."""
        result = extract_similarity("SIMILARITY_SCORE: 85\nEVALUATION: Close match.")

        assert result.score == 85.0
        assert result.feedback == "Close match."

    def test_clamped(self):
        """Test scores are clamped to 0-100."""
        assert extract_similarity("SIMILARITY_SCORE: 150").score == 100.0

    def test_loose_score_label(self):
        """Test a lowercase label; feedback is the text after it."""
        result = extract_similarity("Overall score: 40.5 and then some")

        assert result.score == 40.5
        assert result.feedback == "and then some"

    def test_percentage(self):
        """Test a bare percentage when no label is present."""
        result = extract_similarity("The answers are about 70% similar.")

        assert result.score == 70.0
        assert result.feedback == "The answers are about 70% similar."

    def test_no_score(self):
        """Test zero when nothing looks like a score."""
        result = extract_similarity("No idea.")

        assert result.score == 0.0
        assert result.to_dict() == {"similarityScore": 0.0, "feedback": "No idea."}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
