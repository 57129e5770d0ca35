"""
Tests for the student/teacher answer store.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from answer_recon.utils.segmenter import AnswerRecord
from answer_recon.utils.store import AnswerStore


class TestAnswerStore:
    """Test AnswerStore."""

    def test_put_and_get(self):
        """Test records are stored per slot."""
        store = AnswerStore()
        store.put("student", [AnswerRecord("1", "Paris")])

        assert store.get("student") == [AnswerRecord("1", "Paris")]
        assert store.get("teacher") == []
        assert store.is_complete() is False

    def test_latest_wins(self):
        """Test a second upload replaces the first."""
        store = AnswerStore()
        store.put("teacher", [AnswerRecord("1", "old")])
        store.put("teacher", [AnswerRecord("1", "new")])

        assert [r.answer for r in store.get("teacher")] == ["new"]

    def test_unknown_slot(self):
        """Test only student and teacher slots exist."""
        store = AnswerStore()

        with pytest.raises(ValueError):
            store.put("parent", [])
        with pytest.raises(ValueError):
            store.get("parent")

    def test_pairs(self):
        """Test student answers are matched by question number."""
        store = AnswerStore()
        store.put("student", [AnswerRecord("1", "Paris"), AnswerRecord("2", "Lyon")])
        store.put("teacher", [
            AnswerRecord("1", "Paris is the capital"),
            AnswerRecord("1", "duplicate ignored"),
            AnswerRecord("3", "Rome"),
        ])

        pairs = list(store.pairs())

        assert store.is_complete() is True
        assert [(p.question_number, p.student_answer, p.teacher_answer) for p in pairs] == [
            ("1", "Paris", "Paris is the capital"),
            ("2", "Lyon", ""),
        ]
        assert pairs[0].is_complete is True
        assert pairs[1].is_complete is False

    def test_to_dict(self):
        """Test serialization of both slots."""
        store = AnswerStore()
        store.put("student", [AnswerRecord("1", "Paris", 80)])

        assert store.to_dict() == {
            "student": [{"questionNumber": "1", "answer": "Paris", "confidence": 80}],
            "teacher": [],
        }


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
