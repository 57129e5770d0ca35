"""
Layout module for answer reconstruction.

Provides:
- OCR token and document data classes
- Line normalization (raw text lines aligned with token positions)
- Left margin estimation from token bounding boxes

Accepts:
- Google Vision style annotation arrays (first entry is the full text)
- Plain {"fullText", "blocks"} dictionaries
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Dict, Any, Sequence

import numpy as np

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class Rect:
    """Bounding polygon as four (x, y) corner points, top-left first."""
    vertices: Tuple[Tuple[int, int], ...]

    @property
    def left_x(self) -> int:
        return self.vertices[0][0]

    @classmethod
    def from_vertices(cls, vertices: Sequence[Dict[str, Any]]) -> 'Rect':
        # Vision omits zero-valued coordinates
        return cls(tuple(
            (int(v.get("x", 0) or 0), int(v.get("y", 0) or 0))
            for v in vertices
        ))

    @classmethod
    def from_xywh(cls, x: int, y: int, w: int, h: int) -> 'Rect':
        return cls(((x, y), (x + w, y), (x + w, y + h), (x, y + h)))

    def to_dict(self) -> Dict[str, Any]:
        return {"vertices": [{"x": x, "y": y} for x, y in self.vertices]}


@dataclass(frozen=True)
class Token:
    """A piece of recognized text with an optional bounding box."""
    text: str
    bounding_box: Optional[Rect] = None

    @property
    def left_x(self) -> Optional[int]:
        if self.bounding_box is None or not self.bounding_box.vertices:
            return None
        return self.bounding_box.left_x


@dataclass
class Line:
    """A single line of the full OCR text."""
    index: int
    text: str
    left_x: Optional[int] = None

    @property
    def is_blank(self) -> bool:
        return not self.text


@dataclass
class OCRDocument:
    """Full OCR text plus the individual tokens it was assembled from."""
    full_text: str
    tokens: List[Token] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.full_text and not self.tokens

    @classmethod
    def from_annotations(cls, annotations: Optional[Sequence[Dict[str, Any]]]) -> 'OCRDocument':
        """
        Build a document from a raw annotation array.

        The first annotation holds the entire text; the rest are tokens.
        """
        if not annotations:
            return cls(full_text="")

        full_text = annotations[0].get("description", "") or ""
        tokens = [_token_from_dict(a) for a in annotations[1:]]
        return cls(full_text=full_text, tokens=tokens)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OCRDocument':
        """Build a document from a {"fullText", "blocks"} dictionary."""
        full_text = data.get("fullText", data.get("full_text", "")) or ""
        tokens = [_token_from_dict(b) for b in data.get("blocks", []) or []]
        return cls(full_text=full_text, tokens=tokens)

    @classmethod
    def load(cls, data: Any) -> 'OCRDocument':
        """Accept either of the supported JSON shapes."""
        if isinstance(data, list):
            return cls.from_annotations(data)
        if isinstance(data, dict):
            if "textAnnotations" in data:
                return cls.from_annotations(data["textAnnotations"])
            return cls.from_dict(data)
        raise ValueError(f"Unsupported OCR payload type: {type(data).__name__}")

    def to_dict(self) -> Dict[str, Any]:
        blocks = []
        for token in self.tokens:
            block = {"text": token.text}
            if token.bounding_box is not None:
                block["boundingBox"] = token.bounding_box.to_dict()
            blocks.append(block)
        return {"fullText": self.full_text, "blocks": blocks}


def _token_from_dict(data: Dict[str, Any]) -> Token:
    text = data.get("description", data.get("text", "")) or ""
    poly = data.get("boundingPoly") or data.get("boundingBox") or data.get("bounding_box")

    rect = None
    if poly:
        vertices = poly.get("vertices") if isinstance(poly, dict) else poly
        if vertices:
            rect = Rect.from_vertices(vertices)

    return Token(text=text, bounding_box=rect)


# ============================================================================
# Layout Normalizer
# ============================================================================

def has_layout_info(tokens: Sequence[Token]) -> bool:
    """True if any token carries a bounding box."""
    return any(t.bounding_box is not None for t in tokens)


def normalize_lines(full_text: str, tokens: Sequence[Token]) -> List[Line]:
    """
    Split the full text into lines and resolve each line's left x.

    A line's position comes from the first token whose trimmed text is
    exactly the trimmed line. Lines without such a token keep ``None``.

    Args:
        full_text: Complete OCR text
        tokens: OCR tokens in reading order

    Returns:
        One Line per newline-separated chunk of the text
    """
    with_layout = has_layout_info(tokens)

    positions: Dict[str, Optional[int]] = {}
    if with_layout:
        for token in tokens:
            key = token.text.strip()
            if key not in positions:
                positions[key] = token.left_x

    lines = []
    for i, raw in enumerate(full_text.split("\n")):
        text = raw.strip()
        left_x = positions.get(text) if (with_layout and text) else None
        lines.append(Line(index=i, text=text, left_x=left_x))

    return lines


# ============================================================================
# Margin Estimator
# ============================================================================

def estimate_margin(
    tokens: Sequence[Token],
    tolerance: int = 15,
    bucket: int = 10
) -> Optional[int]:
    """
    Estimate the left margin threshold of a page.

    Every token's left x is rounded to the nearest multiple of ``bucket``;
    the most common bucket (smallest on ties) plus ``tolerance`` is the
    threshold. Question numbers sit on that column.

    Returns:
        The threshold, or None when no token has a bounding box
    """
    xs = np.array(
        [t.left_x for t in tokens if t.left_x is not None],
        dtype=float
    )
    if xs.size == 0:
        return None

    # Halves round up
    buckets = (np.floor(xs / bucket + 0.5) * bucket).astype(int)
    values, counts = np.unique(buckets, return_counts=True)
    margin = int(values[np.argmax(counts)])

    logger.debug(f"Detected common left margin around: {margin}px")
    return margin + tolerance
