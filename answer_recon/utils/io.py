"""
I/O utilities for the answer reconstruction pipeline.

Handles:
- Image loading for OCR
- OCR payload and answer file loading
- JSON serialization
"""

import json
import logging
from pathlib import Path
from typing import Union, Any, List
from dataclasses import asdict

import numpy as np

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.tiff', '.tif', '.bmp')


# ============================================================================
# Image Loading
# ============================================================================

def load_image(
    image_path: Union[str, Path],
    grayscale: bool = False
) -> np.ndarray:
    """
    Load an image from file.

    Args:
        image_path: Path to the image file
        grayscale: If True, load as grayscale

    Returns:
        Numpy array representing the image (BGR format if color)

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If image cannot be decoded
    """
    import cv2

    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    flag = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
    img = cv2.imread(str(image_path), flag)

    if img is None:
        raise ValueError(f"Could not decode image: {image_path}")

    logger.debug(f"Loaded image: {image_path}, shape: {img.shape}")
    return img


def is_image_file(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars, dataclasses and paths."""

    def default(self, obj):
        if hasattr(obj, 'to_dict'):
            return obj.to_dict()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def to_json(data: Any, indent: int = 2) -> str:
    return json.dumps(data, indent=indent, ensure_ascii=False, cls=EnhancedJSONEncoder)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(to_json(data, indent=indent))

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """
    Load data from a JSON file.

    Args:
        json_path: Path to the JSON file

    Returns:
        Parsed JSON data
    """
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_text(text_path: Union[str, Path]) -> str:
    text_path = Path(text_path)
    if not text_path.exists():
        raise FileNotFoundError(f"Text file not found: {text_path}")
    return text_path.read_text(encoding='utf-8')


def load_answers(json_path: Union[str, Path]) -> List[dict]:
    """
    Load answer records from a JSON file.

    Accepts a bare list of records or a segmentation result with a
    ``questionsAndAnswers`` key.
    """
    data = load_json(json_path)
    if isinstance(data, dict):
        data = data.get("questionsAndAnswers", [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of answers in {json_path}")
    return data
