"""
Question/answer segmentation for answer reconstruction.

Turns an OCR document into numbered answer records:
- Lines are aligned with token positions (layout module)
- Each line is scored by the classifier
- New-question decisions close the open record and start another
- Records are sorted by numeric question number
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from ..config import SegmentationConfig
from .classifier import (
    SegmentState,
    classify_line,
    extract_question_number,
    strip_question_number,
)
from .layout import OCRDocument, estimate_margin, has_layout_info, normalize_lines

logger = logging.getLogger(__name__)

NO_TEXT_MESSAGE = "No text detected"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class AnswerRecord:
    """One detected question and the answer written for it."""
    question_number: str
    answer: str
    confidence: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "questionNumber": self.question_number,
            "answer": self.answer,
        }
        if self.confidence is not None:
            result["confidence"] = self.confidence
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnswerRecord':
        return cls(
            question_number=str(data.get("questionNumber", data.get("question_number", ""))),
            answer=data.get("answer", "") or "",
            confidence=data.get("confidence"),
        )


@dataclass
class SegmentationResult:
    """Result of segmenting one document."""
    success: bool
    questions_and_answers: List[AnswerRecord] = field(default_factory=list)
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "message": self.message}
        return {
            "success": True,
            "questionsAndAnswers": [qa.to_dict() for qa in self.questions_and_answers],
        }


# ============================================================================
# Segmenter
# ============================================================================

class QuestionSegmenter:
    """
    Segments OCR text into numbered answers.

    The segmenter holds configuration only; every call works on its own
    state, so one instance can be shared across documents.
    """

    def __init__(self, config: Optional[SegmentationConfig] = None):
        self.config = config or SegmentationConfig()

    def segment(self, document: OCRDocument) -> SegmentationResult:
        """
        Segment a document into answer records.

        Args:
            document: OCR text and tokens

        Returns:
            SegmentationResult; unsuccessful when the document has no text
        """
        if document.is_empty:
            logger.warning(NO_TEXT_MESSAGE)
            return SegmentationResult(success=False, message=NO_TEXT_MESSAGE)

        logger.debug(f"Raw extracted text:\n{document.full_text}")

        layout = has_layout_info(document.tokens)
        margin = None
        if layout:
            margin = estimate_margin(
                document.tokens,
                tolerance=self.config.margin_tolerance,
                bucket=self.config.margin_bucket
            )

        lines = normalize_lines(document.full_text, document.tokens)
        state = SegmentState()
        records: List[AnswerRecord] = []

        for line in lines:
            if line.is_blank:
                state.previous_blank = True
                continue

            decision = classify_line(
                line.text, line.left_x, state,
                margin=margin,
                has_layout=layout,
                config=self.config
            )
            logger.debug(
                f"Line {line.index}: score={decision.score} "
                f"signals={decision.signals.active()}"
            )

            if decision.is_new_question:
                if state.is_open and state.answer_lines:
                    records.append(AnswerRecord(
                        question_number=state.current_question,
                        answer=' '.join(state.answer_lines),
                        confidence=decision.score
                    ))

                number = extract_question_number(line.text, decision.match)
                if number is not None:
                    state.current_question = number

                remainder = strip_question_number(line.text)
                state.answer_lines = [remainder] if remainder else []

                indentation = line.left_x if (layout and line.left_x) else 0
                state.average_indentation = indentation
                state.indentation_count = 1

            elif state.is_open:
                state.answer_lines.append(line.text)

                if layout and line.left_x:
                    count = state.indentation_count
                    state.average_indentation = (
                        (state.average_indentation * count + line.left_x) / (count + 1)
                    )
                    state.indentation_count = count + 1

            state.previous_blank = False

        if state.is_open and state.answer_lines:
            records.append(AnswerRecord(
                question_number=state.current_question,
                answer=' '.join(state.answer_lines)
            ))

        # sorted() is stable: duplicate numbers keep emission order
        records = sorted(records, key=lambda r: int(r.question_number))

        for qa in records:
            preview = qa.answer[:50] + ('...' if len(qa.answer) > 50 else '')
            logger.info(f"Q{qa.question_number}: {preview}")

        return SegmentationResult(success=True, questions_and_answers=records)


def segment_document(
    document: OCRDocument,
    config: Optional[SegmentationConfig] = None
) -> SegmentationResult:
    """Segment a document with a fresh segmenter."""
    return QuestionSegmenter(config).segment(document)


def segment_annotations(
    annotations: Optional[List[Dict[str, Any]]],
    config: Optional[SegmentationConfig] = None
) -> SegmentationResult:
    """Segment a raw annotation array (first entry is the full text)."""
    return segment_document(OCRDocument.from_annotations(annotations), config)
