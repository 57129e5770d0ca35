"""
Text OCR module for answer reconstruction.

Provides:
- Tesseract recognition of answer sheet images
- Line tokens with bounding boxes for layout analysis
- OCRDocument output consumed by the segmenter
"""

import logging
from typing import Dict, List, Any, Tuple

import numpy as np

from .layout import OCRDocument, Rect, Token

logger = logging.getLogger(__name__)


# ============================================================================
# Tesseract Engine
# ============================================================================

class TesseractEngine:
    """OCR using Tesseract."""

    def __init__(
        self,
        language: str = "eng",
        config: str = "--oem 3 --psm 4"
    ):
        try:
            import pytesseract
            self.pytesseract = pytesseract

            # Test that tesseract is installed
            pytesseract.get_tesseract_version()

        except Exception as e:
            raise ImportError(
                f"Tesseract not available: {e}\n"
                "Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            )

        self.language = language
        self.config = config

    def _preprocess_for_ocr(self, image: np.ndarray) -> np.ndarray:
        """Preprocess image for better OCR results."""
        import cv2

        if len(image.shape) == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            gray = image.copy()

        # Uneven lighting on photographed sheets
        gray = cv2.adaptiveThreshold(
            gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 31, 10
        )
        gray = cv2.medianBlur(gray, 3)

        return gray

    def read(self, image: np.ndarray) -> OCRDocument:
        """
        Recognize an answer sheet image.

        Returns:
            OCRDocument with one token per recognized line; an empty
            document if Tesseract fails
        """
        processed = self._preprocess_for_ocr(image)

        try:
            data = self.pytesseract.image_to_data(
                processed,
                lang=self.language,
                config=self.config,
                output_type=self.pytesseract.Output.DICT
            )
        except Exception as e:
            logger.error(f"Tesseract error: {e}")
            return OCRDocument(full_text="")

        return document_from_tesseract_data(data)


def document_from_tesseract_data(data: Dict[str, List[Any]]) -> OCRDocument:
    """
    Group Tesseract word boxes into line tokens.

    Words sharing (block, paragraph, line) form one token whose box spans
    them. Lines are joined with newlines and a blank line separates
    Tesseract blocks.
    """
    lines: Dict[Tuple[int, int, int], Dict[str, Any]] = {}

    for i in range(len(data['text'])):
        text = str(data['text'][i]).strip()
        if not text or float(data['conf'][i]) < 0:
            continue

        key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
        left, top = int(data['left'][i]), int(data['top'][i])
        right, bottom = left + int(data['width'][i]), top + int(data['height'][i])

        line = lines.get(key)
        if line is None:
            lines[key] = {"words": [text], "box": [left, top, right, bottom]}
        else:
            line["words"].append(text)
            box = line["box"]
            box[0], box[1] = min(box[0], left), min(box[1], top)
            box[2], box[3] = max(box[2], right), max(box[3], bottom)

    tokens = []
    parts = []
    previous_block = None
    for (block, _, _), line in lines.items():
        text = ' '.join(line["words"])
        x1, y1, x2, y2 = line["box"]
        tokens.append(Token(text=text, bounding_box=Rect.from_xywh(x1, y1, x2 - x1, y2 - y1)))

        if previous_block is not None and block != previous_block:
            parts.append("")
        parts.append(text)
        previous_block = block

    logger.debug(f"Tesseract produced {len(tokens)} line(s)")
    return OCRDocument(full_text='\n'.join(parts), tokens=tokens)
