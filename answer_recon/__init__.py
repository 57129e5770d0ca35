"""
Answer Reconstruction Pipeline
==============================

Rebuilds numbered question/answer records from OCR output of answer
sheets, and recovers structured feedback from generative model replies.

Main components:
- Layout normalization and left margin estimation
- Line classification with additive confidence scoring
- Question/answer segmentation
- Resilient structured response extraction
- Generic feedback detection
"""

__version__ = "1.0.0"
__author__ = "Answer Reconstruction Team"
