"""
Configuration and constants for the answer reconstruction pipeline.

This module provides:
- Segmentation weights and thresholds
- Extraction placeholders, the generic phrase bank and evaluation context types
- Generative model (Mistral) API configuration
- OCR engine settings
"""

import os
from dataclasses import dataclass, field
from typing import Optional, List, Dict
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger("answer_recon")


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logging the way the command line expects it."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


# ============================================================================
# Segmentation Configuration
# ============================================================================

@dataclass
class SignalWeights:
    """Contribution of each line signal to the new-question score."""
    numbered: int = 50
    follows_blank: int = 30
    at_margin: int = 20
    bare_number_capital: int = 40
    embedded_digit: int = -20
    continuation_indent: int = -30
    lowercase_continuation: int = -25


@dataclass
class SegmentationConfig:
    """Question/answer segmentation configuration."""
    weights: SignalWeights = field(default_factory=SignalWeights)
    new_question_threshold: int = 40
    # Left margin estimation
    margin_bucket: int = 10
    margin_tolerance: int = 15
    # Max distance (exclusive) from the running answer indentation
    indentation_tolerance: int = 15


# ============================================================================
# Extraction Configuration
# ============================================================================

DEFAULT_SUBJECT_AREA = "General academics"
DEFAULT_SPECIFIC_TOPIC = "General knowledge"
DEFAULT_EDUCATIONAL_LEVEL = "Unknown"

GENERIC_PHRASES = (
    "good attempt", "well done", "nice try", "good understanding",
    "review the", "study more", "practice more", "be more specific",
    "pay attention", "focus on", "general understanding", "basic concepts",
    "core concepts", "fundamental principles", "key points",
)

SUBJECT_INDICATORS = {
    "Mathematics": ["equation", "formula", "calculation", "theorem", "proof", "function", "variable"],
    "Physics": ["force", "energy", "motion", "particle", "quantum", "relativity", "momentum"],
    "Chemistry": ["reaction", "compound", "molecule", "element", "bond", "acid", "base"],
    "Biology": ["cell", "organism", "species", "evolution", "gene", "protein", "ecosystem"],
    "History": ["century", "period", "war", "civilization", "empire", "revolution", "dynasty"],
    "Literature": ["author", "novel", "poem", "character", "theme", "narrative", "literary"],
    "Computer Science": ["algorithm", "code", "programming", "data structure", "function", "variable", "class"],
}


# Returned when the feedback request itself fails
ERROR_FEEDBACK = {
    "strengths": ["Attempted to answer the question"],
    "areasForImprovement": ["Review the reference answer for guidance"],
    "missingConcepts": ["Could not analyze missing concepts due to an error"],
    "topicsToImprove": ["General subject knowledge", "Foundational concepts"],
    "subjectArea": DEFAULT_SUBJECT_AREA,
}

CONTEXT_TYPES = ("case-study", "character-perspective", "letter-writing", "general")
DEFAULT_CONTEXT_TYPE = "case-study"


@dataclass
class ExtractionConfig:
    """Structured response extraction configuration."""
    placeholders: Dict[str, str] = field(default_factory=lambda: {
        "strengths": "Good attempt at answering the question",
        "areas_for_improvement": "Work on being more specific in your answers",
        "missing_concepts": "Some key concepts from the reference answer are missing",
        "topics_to_improve": "Core subject fundamentals",
    })
    default_subject_area: str = DEFAULT_SUBJECT_AREA
    generic_phrases: List[str] = field(default_factory=lambda: list(GENERIC_PHRASES))
    # Feedback is generic when more than this share of entries is boilerplate
    generic_ratio: float = 0.5
    subject_min_hits: int = 3
    # Topics looked up for learning resources
    max_resource_topics: int = 3
    max_resource_links: int = 3


# ============================================================================
# Collaborator Configuration
# ============================================================================

@dataclass
class LLMConfig:
    """Generative model configuration (Mistral chat completions)."""
    api_url: str = "https://api.mistral.ai/v1/chat/completions"
    model: str = "mistral-large-latest"
    api_key: Optional[str] = None
    system_prompt: str = (
        "You are an expert educational evaluator specialized in "
        "analyzing and comparing answers."
    )
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout: float = 60.0


@dataclass
class OCRConfig:
    """OCR configuration."""
    tesseract_lang: str = "eng"
    tesseract_config: str = "--oem 3 --psm 4"


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)

    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    if os.environ.get("ANSWER_RECON_DEBUG", "").lower() == "true":
        config.debug_mode = True

    config.llm.api_key = os.environ.get("MISTRAL_API_KEY")

    model = os.environ.get("ANSWER_RECON_MODEL")
    if model:
        config.llm.model = model

    return config
