"""
Tests for the feedback review flow and the model client.
"""

import json
import pytest
import requests
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

SUBJECT = json.dumps({
    "mainSubject": "Biology",
    "specificTopic": "Cell respiration",
    "educationalLevel": "High School",
})

GENERIC = json.dumps({
    "strengths": ["Good attempt"],
    "areasForImprovement": ["Study more"],
    "missingConcepts": ["Key points"],
    "topicsToImprove": ["Core concepts"],
    "subjectArea": "Biology",
})

SPECIFIC = json.dumps({
    "strengths": ["Named the mitochondria"],
    "areasForImprovement": ["Did not mention ATP"],
    "missingConcepts": ["Electron transport chain"],
    "topicsToImprove": ["Krebs cycle"],
    "subjectArea": "Biology - Cell respiration",
})


class FakeModel:
    """Returns queued replies; exceptions in the queue are raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class TestFeedbackReviewer:
    """Test FeedbackReviewer."""

    def test_specific_feedback_no_retry(self):
        """Test specific feedback is accepted as is."""
        from answer_recon.utils.feedback import FeedbackReviewer

        model = FakeModel(SUBJECT, SPECIFIC)
        review = FeedbackReviewer(model).review("1", "student", "teacher", 70)

        assert review.retried is False
        assert review.feedback.to_dict() == json.loads(SPECIFIC)
        assert review.subject_profile.subject_area == "Biology - Cell respiration"
        assert len(model.prompts) == 2
        assert "Question #1" in model.prompts[1]
        assert "Similarity Score: 70%" in model.prompts[1]

    def test_generic_feedback_retried(self):
        """Test generic feedback triggers the stricter prompt."""
        from answer_recon.utils.feedback import FeedbackReviewer

        model = FakeModel(SUBJECT, GENERIC, SPECIFIC)
        review = FeedbackReviewer(model).review("2", "student", "teacher")

        assert review.retried is True
        assert review.feedback.strengths == ["Named the mitochondria"]
        assert "CRITICALLY IMPORTANT" in model.prompts[2]

    def test_incomplete_retry_keeps_first(self):
        """Test a retry missing list fields is discarded."""
        from answer_recon.utils.feedback import FeedbackReviewer

        model = FakeModel(SUBJECT, GENERIC, '{"strengths": ["Named ATP"]}')
        review = FeedbackReviewer(model).review("2", "student", "teacher")

        assert review.retried is True
        assert review.feedback.strengths == ["Good attempt"]

    def test_failed_retry_keeps_first(self):
        """Test a failing retry call keeps the first feedback."""
        from answer_recon.utils.feedback import FeedbackReviewer

        model = FakeModel(SUBJECT, GENERIC, RuntimeError("boom"))
        review = FeedbackReviewer(model).review("2", "student", "teacher")

        assert review.feedback.to_dict() == json.loads(GENERIC)

    def test_generic_subject_replaced_by_profile(self):
        """Test the classified subject fills a generic subject area."""
        from answer_recon.utils.feedback import FeedbackReviewer

        reply = json.loads(SPECIFIC)
        reply["subjectArea"] = "General"
        model = FakeModel(SUBJECT, json.dumps(reply))

        review = FeedbackReviewer(model).review("1", "student", "teacher")

        assert review.feedback.subject_area == "Biology - Cell respiration"
        assert review.to_dict()["educationalLevel"] == "High School"

    def test_subject_inferred_from_terminology(self):
        """Test terminology is used when classification fails too."""
        from answer_recon.utils.feedback import FeedbackReviewer

        reply = {
            "strengths": ["Described the cell membrane"],
            "areasForImprovement": ["Gene regulation was vague"],
            "missingConcepts": ["Protein synthesis"],
            "topicsToImprove": ["Transcription"],
        }
        model = FakeModel(RuntimeError("classifier down"), json.dumps(reply))

        review = FeedbackReviewer(model).review("1", "student", "teacher")

        assert review.subject_profile.is_generic is True
        assert review.feedback.subject_area == "Biology"

    def test_partial_generic_reply_retried(self):
        """Test missing fields do not dilute the generic ratio."""
        from answer_recon.utils.feedback import FeedbackReviewer

        model = FakeModel(SUBJECT, '{"strengths": ["Well done"]}', SPECIFIC)
        review = FeedbackReviewer(model).review("1", "student", "teacher")

        assert review.retried is True
        assert len(model.prompts) == 3
        assert review.feedback.strengths == ["Named the mitochondria"]

    def test_retry_with_empty_lists_adopted(self):
        """Test a retry carrying every list field is adopted even if lists are empty."""
        from answer_recon.utils.feedback import FeedbackReviewer

        retry = json.dumps({
            "strengths": [],
            "areasForImprovement": [],
            "missingConcepts": [],
            "topicsToImprove": [],
            "subjectArea": "Biology - Enzymes",
        })
        model = FakeModel(SUBJECT, GENERIC, retry)
        review = FeedbackReviewer(model).review("1", "student", "teacher")

        assert review.feedback.subject_area == "Biology - Enzymes"
        assert review.feedback.strengths == ["Good attempt at answering the question"]

    def test_feedback_failure_returns_error_feedback(self):
        """Test a failing feedback request yields the fixed error feedback."""
        from answer_recon.utils.feedback import FeedbackReviewer

        model = FakeModel(SUBJECT, RuntimeError("down"))
        review = FeedbackReviewer(model).review("1", "student", "teacher")
        result = review.to_dict()

        assert result["strengths"] == ["Attempted to answer the question"]
        assert result["areasForImprovement"] == ["Review the reference answer for guidance"]
        assert result["missingConcepts"] == ["Could not analyze missing concepts due to an error"]
        assert result["topicsToImprove"] == ["General subject knowledge", "Foundational concepts"]
        assert result["subjectArea"] == "General academics"
        assert result["educationalLevel"] == "Unknown"
        assert result["retried"] is False
        assert len(model.prompts) == 2

    def test_resources_follow_topics(self):
        """Test resources are recommended for the topics to improve."""
        from answer_recon.utils.feedback import FeedbackReviewer

        model = FakeModel(SUBJECT, SPECIFIC)
        result = FeedbackReviewer(model).review("1", "student", "teacher").to_dict()

        assert [r["topic"] for r in result["resources"]] == ["Krebs cycle"]
        assert result["resources"][0]["links"][0]["title"] == "Khan Academy"


class TestEvaluatePairs:
    """Test evaluate_pairs."""

    def test_scores_complete_pairs_only(self):
        """Test missing teacher answers score zero without a model call."""
        from answer_recon.utils.feedback import evaluate_pairs
        from answer_recon.utils.segmenter import AnswerRecord
        from answer_recon.utils.store import AnswerStore

        store = AnswerStore()
        store.put("student", [AnswerRecord("1", "Paris"), AnswerRecord("2", "Lyon")])
        store.put("teacher", [AnswerRecord("1", "Paris is the capital")])
        model = FakeModel("SIMILARITY_SCORE: 90\nEVALUATION: Same city.")

        results = evaluate_pairs(store, model)

        assert [r.to_dict() for r in results] == [
            {
                "questionNumber": "1",
                "studentAnswer": "Paris",
                "teacherAnswer": "Paris is the capital",
                "similarityScore": 90.0,
                "feedback": "Same city.",
            },
            {
                "questionNumber": "2",
                "studentAnswer": "Lyon",
                "teacherAnswer": "",
                "similarityScore": 0.0,
            },
        ]
        assert len(model.prompts) == 1
        assert "case study answer for Question 1" in model.prompts[0]

    @pytest.mark.parametrize("context_type,marker", [
        ("case-study", "Marking Scheme"),
        ("character-perspective", "character perspective"),
        ("letter-writing", "INTRODUCTION (10 points)"),
        ("general", "Consider accuracy"),
        (None, "Consider accuracy"),
    ])
    def test_context_prompts(self, context_type, marker):
        """Test each context type selects its rubric."""
        from answer_recon.utils.feedback import evaluate_pairs
        from answer_recon.utils.segmenter import AnswerRecord
        from answer_recon.utils.store import AnswerStore

        store = AnswerStore()
        store.put("student", [AnswerRecord("3", "Dear Sir")])
        store.put("teacher", [AnswerRecord("3", "Dear Madam")])
        model = FakeModel("SIMILARITY_SCORE: 50")

        evaluate_pairs(store, model, context_type=context_type)

        assert marker in model.prompts[0]
        assert "Dear Sir" in model.prompts[0]
        assert "Dear Madam" in model.prompts[0]


class FakeResponse:
    def __init__(self, status, body):
        self.status_code = status
        self.body = body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.body


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


class TestMistralClient:
    """Test MistralClient against a fake session."""

    def test_generate(self):
        """Test the reply text is returned and the request is well formed."""
        from answer_recon.config import LLMConfig
        from answer_recon.utils.llm import MistralClient

        session = FakeSession(FakeResponse(200, {"choices": [{"message": {"content": "hi"}}]}))
        client = MistralClient(LLMConfig(api_key="secret"), session=session)

        assert client.generate("Hello") == "hi"

        url, kwargs = session.calls[0]
        assert url == "https://api.mistral.ai/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["json"]["model"] == "mistral-large-latest"
        assert kwargs["json"]["messages"][1] == {"role": "user", "content": "Hello"}

    def test_http_error(self):
        """Test HTTP failures raise LLMError."""
        from answer_recon.config import LLMConfig
        from answer_recon.utils.llm import LLMError, MistralClient

        client = MistralClient(LLMConfig(api_key="k"), session=FakeSession(FakeResponse(500, {})))

        with pytest.raises(LLMError):
            client.generate("Hello")

    def test_bad_shape(self):
        """Test unexpected bodies raise LLMError."""
        from answer_recon.config import LLMConfig
        from answer_recon.utils.llm import LLMError, MistralClient

        client = MistralClient(LLMConfig(api_key="k"), session=FakeSession(FakeResponse(200, {"choices": []})))

        with pytest.raises(LLMError):
            client.generate("Hello")

    def test_missing_key(self):
        """Test a client cannot be built without an API key."""
        from answer_recon.config import LLMConfig
        from answer_recon.utils.llm import LLMError, MistralClient

        with pytest.raises(LLMError):
            MistralClient(LLMConfig(api_key=None))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
