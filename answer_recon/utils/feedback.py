"""
Feedback review for answer reconstruction.

Drives a generative model through the feedback flow:
- Classify the subject of the answers
- Request structured feedback and extract it
- Re-request with a stricter prompt when the feedback is generic
- Fill in the subject area when the model left it generic
- Recommend learning resources for the topics to improve

The model is any callable taking a prompt and returning text.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Dict, Any

from ..config import DEFAULT_CONTEXT_TYPE, ERROR_FEEDBACK, ExtractionConfig
from .extraction import (
    FeedbackRecord,
    SimilarityResult,
    SubjectProfile,
    extract_feedback_data,
    extract_similarity,
    extract_subject_profile,
    has_all_list_fields,
    parse_embedded,
    parse_whole,
)
from .genericity import infer_subject_area, is_generic_feedback, is_generic_subject
from .resources import TopicResources, find_learning_resources
from .store import AnswerStore

logger = logging.getLogger(__name__)

Generator = Callable[[str], str]


# ============================================================================
# Prompts
# ============================================================================

SUBJECT_PROMPT = """\
Analyze the following student answer and teacher's reference answer to determine
the SPECIFIC academic subject, sub-topic, and educational level.

Student Answer:
"{student}"

Teacher's Reference Answer:
"{teacher}"

Format your response as a structured JSON object with these keys:
"mainSubject" (string)
"specificTopic" (string)
"educationalLevel" (string)
"""

FEEDBACK_PROMPT = """\
You are an expert educational assessment AI specializing in {subject} at the {level} level.
Compare the student's answer for Question #{number} with the teacher's reference answer.

Student Answer:
"{student}"

Teacher's Reference Answer:
"{teacher}"

Similarity Score: {score}%

Format your response as a structured JSON object with these keys:
"strengths" (array of strings)
"areasForImprovement" (array of strings)
"missingConcepts" (array of strings)
"topicsToImprove" (array of strings)
"subjectArea" (string)
"""

STRICT_FEEDBACK_PROMPT = """\
You are an expert educational assessment AI specializing in {subject} at the {level} level.
You are analyzing a student's answer for Question #{number} in the field of {subject}.

Student Answer:
"{student}"

Teacher's Reference Answer:
"{teacher}"

Similarity Score: {score}%

CRITICALLY IMPORTANT: You MUST provide SPECIFIC, DETAILED feedback using proper {subject}
terminology and concepts. DO NOT provide generic feedback that could apply to any answer.
1. Strengths: cite EXACT concepts the student stated correctly
2. Areas for Improvement: reference EXACTLY what the student wrote
3. Missing Concepts: cite EXACT terms from the teacher's answer the student left out
4. Topics to Study: 3-5 VERY SPECIFIC {subject} topics
5. Subject Area: confirm the subject and sub-topic (should be {subject} unless you strongly disagree)

Format your response as a structured JSON object with these keys:
"strengths" (array of strings)
"areasForImprovement" (array of strings)
"missingConcepts" (array of strings)
"topicsToImprove" (array of strings)
"subjectArea" (string)
"""

SIMILARITY_PROMPT = """\
You are evaluating a student's answer for Question {number}.

Teacher's Answer (Reference):
{teacher}

Student's Answer:
{student}

Please analyze the student's answer against the teacher's reference answer. Consider accuracy,
completeness, and understanding of the topic.

Provide a detailed evaluation with the following:
1. A similarity score from 0-100
2. Key strengths in the student's answer
3. Areas for improvement
4. Specific suggestions to enhance the answer

Format your response as follows:
SIMILARITY_SCORE: [score]
EVALUATION: [your detailed evaluation]
"""

CASE_STUDY_PROMPT = """\
You are evaluating a case study answer for Question {number}.

Teacher's Answer (Marking Scheme):
{teacher}

Student's Answer:
{student}

Please analyze the student's answer against the teacher's marking scheme. Don't simply compare
for similarity, but evaluate how well the student has addressed the key points in the case study.

Provide a detailed evaluation with the following:
1. A similarity score from 0-100 based on how well the student addressed the key points
2. Key strengths in the student's analysis
3. Areas where the student missed important points
4. Suggestions for improvement

Format your response as follows:
SIMILARITY_SCORE: [score]
EVALUATION: [your detailed evaluation]
"""

CHARACTER_PERSPECTIVE_PROMPT = """\
You are evaluating a character perspective/descriptive answer for Question {number}.

Teacher's Answer (Reference):
{teacher}

Student's Answer:
{student}

Please analyze the student's descriptive answer against the teacher's reference. Consider
creativity, understanding of the character/topic, language use, and how well they've addressed
the key elements.

Provide a detailed evaluation with the following:
1. A similarity score from 0-100 based on overall quality and alignment with key elements
2. Strengths in the student's writing
3. Areas for improvement
4. Specific suggestions to enhance the answer

Format your response as follows:
SIMILARITY_SCORE: [score]
EVALUATION: [your detailed evaluation]
"""

LETTER_WRITING_PROMPT = """\
You are an expert evaluator of letter writing assignments in educational settings.

Teacher's Reference Letter (Format & Content Guide):
{teacher}

Student's Letter:
{student}

EVALUATION INSTRUCTIONS:
Evaluate the student's letter against the teacher's reference letter using the following
comprehensive marking scheme (total 100 points):

1. INTRODUCTION (10 points):
   - Clear purpose statement and context setting
   - Appropriate opening that engages the reader
   - Sets the tone for the rest of the letter

2. CONTENT & ARGUMENTS (40 points):
   - Main purpose/subject of the letter clearly addressed
   - All key points from teacher's reference included
   - Supporting details and examples where appropriate
   - Persuasive or informative elements as required by the letter type
   - Logical development of ideas
   - Depth and quality of content

3. STRUCTURE & ORGANIZATION (20 points):
   - Proper letter format (sender's address, date, recipient's address)
   - Appropriate salutation and complimentary close
   - Clear paragraphing with one main idea per paragraph
   - Logical sequence and flow between paragraphs
   - Coherent overall structure
   - Signature and name

4. LANGUAGE & GRAMMAR (15 points):
   - Appropriate tone and register for letter type
   - Grammar and spelling accuracy
   - Vocabulary and expression
   - Sentence structure and variety
   - Conciseness and clarity

5. CONCLUSION (15 points):
   - Effective summary of main points
   - Clear call to action or next steps (if appropriate)
   - Proper closing statement
   - Leaves reader with clear understanding of writer's purpose
   - Appropriate final impression

Calculate a final similarity score from 0-100 based on the total points earned across all categories.

IMPORTANT: Even if the student's letter differs in specific wording but captures the essence and
purpose of the reference letter, it should receive a high score. Focus on whether the student's
letter would achieve the same communicative purpose as the reference letter.

Format your response as follows:
SIMILARITY_SCORE: [numerical score between 0-100]
EVALUATION:
[Provide a detailed breakdown of points earned in each category]
[Include specific strengths of the student's letter]
[Mention areas for improvement]
[Give constructive suggestions]
"""

# context type -> evaluation rubric; anything else gets SIMILARITY_PROMPT
CONTEXT_PROMPTS = {
    "case-study": CASE_STUDY_PROMPT,
    "character-perspective": CHARACTER_PERSPECTIVE_PROMPT,
    "letter-writing": LETTER_WRITING_PROMPT,
}


def similarity_prompt(
    context_type: Optional[str],
    question_number: str,
    student_answer: str,
    teacher_answer: str
) -> str:
    """Build the evaluation prompt for a context type."""
    template = CONTEXT_PROMPTS.get(context_type, SIMILARITY_PROMPT)
    return template.format(number=question_number, student=student_answer, teacher=teacher_answer)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class FeedbackReview:
    """Outcome of the feedback flow for one answer."""
    feedback: FeedbackRecord
    subject_profile: SubjectProfile = field(default_factory=SubjectProfile)
    retried: bool = False
    resources: List[TopicResources] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = self.feedback.to_dict()
        result["educationalLevel"] = self.subject_profile.educational_level
        result["retried"] = self.retried
        result["resources"] = [r.to_dict() for r in self.resources]
        return result


@dataclass
class EvaluationResult:
    """Similarity evaluation of one student/teacher pair."""
    question_number: str
    student_answer: str
    teacher_answer: str
    similarity: SimilarityResult = field(default_factory=SimilarityResult)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "questionNumber": self.question_number,
            "studentAnswer": self.student_answer,
            "teacherAnswer": self.teacher_answer,
            "similarityScore": self.similarity.score,
        }
        if self.similarity.feedback:
            result["feedback"] = self.similarity.feedback
        return result


# ============================================================================
# Reviewer
# ============================================================================

class FeedbackReviewer:
    """Runs the subject / feedback / retry flow against a model."""

    def __init__(
        self,
        generate: Generator,
        config: Optional[ExtractionConfig] = None
    ):
        self.generate = generate
        self.config = config or ExtractionConfig()

    def classify_subject(self, student_answer: str, teacher_answer: str) -> SubjectProfile:
        """Ask the model for the subject; defaults survive any failure."""
        prompt = SUBJECT_PROMPT.format(student=student_answer, teacher=teacher_answer)
        try:
            return extract_subject_profile(self.generate(prompt))
        except Exception as e:
            logger.error(f"Error in subject area analysis: {e}")
            return SubjectProfile()

    def review(
        self,
        question_number: str,
        student_answer: str,
        teacher_answer: str,
        similarity_score: float = 0.0
    ) -> FeedbackReview:
        """
        Produce feedback for one answer.

        Genericity is judged on the fields the model actually returned,
        before placeholders are filled in. A failing feedback request
        yields the fixed error feedback; a failing retry keeps the first
        result.
        """
        logger.info(f"Getting feedback for question {question_number}")
        profile = self.classify_subject(student_answer, teacher_answer)

        values = dict(
            subject=profile.subject_area,
            level=profile.educational_level,
            number=question_number,
            student=student_answer,
            teacher=teacher_answer,
            score=similarity_score,
        )

        try:
            text = self.generate(FEEDBACK_PROMPT.format(**values))
        except Exception as e:
            logger.error(f"Error getting feedback for question {question_number}: {e}")
            return self._with_resources(FeedbackReview(
                feedback=FeedbackRecord.from_mapping(ERROR_FEEDBACK, self.config)
            ))

        data = extract_feedback_data(text)

        retried = False
        if is_generic_feedback(data, self.config.generic_phrases, self.config.generic_ratio):
            logger.warning("Detected generic feedback, retrying with a stricter prompt")
            retried = True
            retry = self._retry(STRICT_FEEDBACK_PROMPT.format(**values))
            if retry is not None:
                data = retry

        feedback = FeedbackRecord.from_mapping(data, self.config)

        if is_generic_subject(feedback.subject_area):
            feedback.subject_area = profile.subject_area
            logger.debug(f"Using detected subject area: {profile.subject_area}")

        if is_generic_subject(feedback.subject_area):
            inferred = infer_subject_area(data, min_hits=self.config.subject_min_hits)
            if inferred:
                feedback.subject_area = inferred

        return self._with_resources(
            FeedbackReview(feedback=feedback, subject_profile=profile, retried=retried)
        )

    def _retry(self, prompt: str) -> Optional[Dict[str, Any]]:
        try:
            text = self.generate(prompt)
        except Exception as e:
            logger.error(f"Error in retry attempt: {e}")
            return None

        data = parse_whole(text) or parse_embedded(text)
        if not has_all_list_fields(data):
            logger.info("Retry response incomplete, keeping first feedback")
            return None
        return data

    def _with_resources(self, review: FeedbackReview) -> FeedbackReview:
        review.resources = find_learning_resources(
            review.feedback.topics_to_improve,
            max_topics=self.config.max_resource_topics,
            max_links=self.config.max_resource_links
        )
        return review


def evaluate_pairs(
    store: AnswerStore,
    generate: Generator,
    context_type: Optional[str] = DEFAULT_CONTEXT_TYPE
) -> List[EvaluationResult]:
    """
    Score every student answer against the teacher's.

    Args:
        store: Answers for both slots
        generate: Model callable
        context_type: Evaluation rubric (case-study, character-perspective,
            letter-writing); any other value uses the general rubric

    Pairs with a missing side are reported with a zero score and no
    model call.
    """
    results = []
    for pair in store.pairs():
        result = EvaluationResult(
            question_number=pair.question_number,
            student_answer=pair.student_answer,
            teacher_answer=pair.teacher_answer,
        )
        if not pair.is_complete:
            logger.info(f"Question {pair.question_number}: missing student or teacher answer")
        else:
            prompt = similarity_prompt(
                context_type, pair.question_number, pair.student_answer, pair.teacher_answer
            )
            result.similarity = extract_similarity(generate(prompt))
            logger.info(f"Question {pair.question_number}: similarity {result.similarity.score}")
        results.append(result)
    return results
