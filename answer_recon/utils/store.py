"""
Student/teacher answer store.

Holds the latest segmented answers for each side of a comparison. It is
passed explicitly to whatever compares the two sides.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Any

from .segmenter import AnswerRecord

logger = logging.getLogger(__name__)

SLOTS = ("student", "teacher")


@dataclass
class AnswerPair:
    """A student answer and the teacher answer for the same question."""
    question_number: str
    student_answer: str
    teacher_answer: str

    @property
    def is_complete(self) -> bool:
        return bool(self.student_answer and self.teacher_answer)


class AnswerStore:
    """Latest-wins store with one slot per side."""

    def __init__(self):
        self._slots: Dict[str, List[AnswerRecord]] = {slot: [] for slot in SLOTS}

    def _check(self, slot: str) -> None:
        if slot not in self._slots:
            raise ValueError(f"Unknown slot: {slot!r} (expected one of {', '.join(SLOTS)})")

    def put(self, slot: str, records: List[AnswerRecord]) -> None:
        self._check(slot)
        self._slots[slot] = list(records)
        logger.info(f"Stored {len(records)} {slot} answer(s)")

    def get(self, slot: str) -> List[AnswerRecord]:
        self._check(slot)
        return list(self._slots[slot])

    def is_complete(self) -> bool:
        """True once both sides have at least one answer."""
        return all(self._slots[slot] for slot in SLOTS)

    def pairs(self) -> Iterator[AnswerPair]:
        """
        Match each student answer with the teacher's.

        The first teacher record with the same question number is used;
        a missing side yields an empty string.
        """
        teacher: Dict[str, str] = {}
        for record in self._slots["teacher"]:
            teacher.setdefault(record.question_number, record.answer or "")

        for record in self._slots["student"]:
            yield AnswerPair(
                question_number=record.question_number,
                student_answer=record.answer or "",
                teacher_answer=teacher.get(record.question_number, ""),
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            slot: [r.to_dict() for r in records]
            for slot, records in self._slots.items()
        }
