#!/usr/bin/env python
"""
Command-line interface for the Answer Reconstruction Pipeline.

Usage:
    answer-recon segment --input <ocr.json|image> [--output out.json]
    answer-recon extract --input <response.txt>
    answer-recon similarity --input <response.txt>
    answer-recon review --student <student.json> --teacher <teacher.json>

Examples:
    # Segment a saved Vision annotation array
    answer-recon segment --input annotations.json --output student.json

    # Segment a photographed answer sheet with Tesseract
    answer-recon segment --input sheet.jpg --output teacher.json

    # Compare with the letter-writing rubric
    answer-recon review --student student.json --teacher teacher.json --context letter-writing

    # Recover feedback fields from a raw model reply
    answer-recon extract --input reply.txt
"""

import sys
import argparse
import logging
from pathlib import Path

from answer_recon import __version__
from answer_recon.config import CONTEXT_TYPES, DEFAULT_CONTEXT_TYPE, get_config, setup_logging

logger = logging.getLogger("answer_recon")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="answer-recon",
        description="Answer Reconstruction Pipeline - Rebuild answers from OCR and extract feedback",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Segment OCR output into answers:
    answer-recon segment --input annotations.json --output student.json

  Compare student and teacher answers (needs MISTRAL_API_KEY):
    answer-recon review --student student.json --teacher teacher.json
        """
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    segment = commands.add_parser("segment", help="Split OCR output into numbered answers")
    segment.add_argument(
        "--input", "-i",
        required=True,
        help="OCR JSON (annotation array or {fullText, blocks}) or an image"
    )
    segment.add_argument("--output", "-o", help="Write the result JSON here")

    extract = commands.add_parser("extract", help="Recover feedback fields from a model reply")
    extract.add_argument("--input", "-i", required=True, help="Text file with the model reply")
    extract.add_argument("--output", "-o", help="Write the result JSON here")

    similarity = commands.add_parser("similarity", help="Pull a similarity score from a model reply")
    similarity.add_argument("--input", "-i", required=True, help="Text file with the model reply")

    review = commands.add_parser("review", help="Score and review student answers with the model")
    review.add_argument("--student", required=True, help="Student answers JSON")
    review.add_argument("--teacher", required=True, help="Teacher answers JSON")
    review.add_argument(
        "--context",
        choices=list(CONTEXT_TYPES),
        default=DEFAULT_CONTEXT_TYPE,
        help=f"Evaluation rubric (default: {DEFAULT_CONTEXT_TYPE})"
    )
    review.add_argument(
        "--no-feedback",
        action="store_true",
        help="Only compute similarity scores"
    )
    review.add_argument("--output", "-o", help="Write the result JSON here")

    return parser


def emit(data, output) -> None:
    """Print JSON or save it to a file."""
    from answer_recon.utils.io import save_json, to_json

    if output:
        path = save_json(data, output)
        logger.info(f"Saved JSON: {path}")
    else:
        print(to_json(data))


def run_segment(args) -> int:
    """Segment an OCR payload or image into answers."""
    from answer_recon.config import get_config
    from answer_recon.utils.io import is_image_file, load_image, load_json
    from answer_recon.utils.layout import OCRDocument
    from answer_recon.utils.segmenter import QuestionSegmenter

    config = get_config()
    input_path = Path(args.input)

    if is_image_file(input_path):
        from answer_recon.utils.ocr_text import TesseractEngine

        engine = TesseractEngine(
            language=config.ocr.tesseract_lang,
            config=config.ocr.tesseract_config
        )
        document = engine.read(load_image(input_path))
    else:
        document = OCRDocument.load(load_json(input_path))

    result = QuestionSegmenter(config.segmentation).segment(document)
    logger.info(f"Segmented {input_path.name}: {len(result.questions_and_answers)} answer(s)")

    emit(result.to_dict(), args.output)
    return 0 if result.success else 1


def run_extract(args) -> int:
    """Extract structured feedback from a saved model reply."""
    from answer_recon.config import get_config
    from answer_recon.utils.extraction import extract_feedback
    from answer_recon.utils.genericity import is_generic_feedback
    from answer_recon.utils.io import load_text

    config = get_config().extraction
    feedback = extract_feedback(load_text(args.input), config)
    generic = is_generic_feedback(feedback, config.generic_phrases, config.generic_ratio)

    emit({"feedback": feedback.to_dict(), "generic": generic}, args.output)
    return 0


def run_similarity(args) -> int:
    """Extract a similarity score from a saved model reply."""
    from answer_recon.utils.extraction import extract_similarity
    from answer_recon.utils.io import load_text

    emit(extract_similarity(load_text(args.input)).to_dict(), None)
    return 0


def run_review(args) -> int:
    """Score each student answer against the teacher's and review it."""
    from answer_recon.config import get_config
    from answer_recon.utils.feedback import FeedbackReviewer, evaluate_pairs
    from answer_recon.utils.io import load_answers
    from answer_recon.utils.llm import MistralClient
    from answer_recon.utils.segmenter import AnswerRecord
    from answer_recon.utils.store import AnswerStore

    config = get_config()

    store = AnswerStore()
    store.put("student", [AnswerRecord.from_dict(r) for r in load_answers(args.student)])
    store.put("teacher", [AnswerRecord.from_dict(r) for r in load_answers(args.teacher)])

    if not store.is_complete():
        logger.error("Both student and teacher answers must be provided before comparison")
        return 1

    client = MistralClient(config.llm)
    logger.info(f"Evaluating with the {args.context} rubric")
    evaluations = evaluate_pairs(store, client.generate, context_type=args.context)

    results = []
    reviewer = FeedbackReviewer(client.generate, config.extraction)
    for evaluation in evaluations:
        entry = evaluation.to_dict()
        if not args.no_feedback and evaluation.student_answer and evaluation.teacher_answer:
            review = reviewer.review(
                evaluation.question_number,
                evaluation.student_answer,
                evaluation.teacher_answer,
                evaluation.similarity.score
            )
            entry["review"] = review.to_dict()
        results.append(entry)

    emit({"success": True, "results": results}, args.output)
    return 0


COMMANDS = {
    "segment": run_segment,
    "extract": run_extract,
    "similarity": run_similarity,
    "review": run_review,
}


def main(argv=None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        setup_logging(logging.DEBUG)
    elif args.quiet:
        setup_logging(logging.ERROR)
    elif get_config().debug_mode:
        setup_logging(logging.DEBUG)
    else:
        setup_logging(logging.INFO)

    try:
        exit_code = COMMANDS[args.command](args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        if args.verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
