"""
Utility functions for the morphology pipeline.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Union

import cv2
import numpy as np
import yaml


PathLike = Union[str, "os.PathLike[str]"]


# ============================================================================
# Settings
# ============================================================================

def load_settings(path: PathLike) -> Dict[str, Any]:
    """Load a YAML configuration file."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if not isinstance(data, dict):
        raise ValueError("Settings file must define a dictionary at the top level")

    return data


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        # an empty YAML section loads as None
        if value is None and isinstance(merged.get(key), dict):
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


# ============================================================================
# Image I/O
# ============================================================================

def _to_8bit(image: np.ndarray) -> np.ndarray:
    """Keep the high byte of 16-bit samples; 8-bit passes through."""
    if image.dtype == np.uint8:
        return image
    if image.dtype == np.uint16:
        return (image >> 8).astype(np.uint8)
    raise ValueError(f"Unsupported sample type: {image.dtype}")


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert a decoded image to a single 8-bit channel.

    Args:
        image: 8- or 16-bit grayscale, BGR or BGRA image as returned by OpenCV

    Returns:
        2D uint8 image
    """
    image = _to_8bit(image)

    if image.ndim == 2:
        return image

    channels = image.shape[2]
    if channels == 1:
        return image[:, :, 0]
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)

    raise ValueError(f"Unsupported channel count: {channels}")


def read_grayscale(path: PathLike) -> np.ndarray:
    """Decode an image file and return it as grayscale."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")

    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError(f"Could not decode image: {path}")

    return to_grayscale(image)


def write_image(path: PathLike, image: np.ndarray) -> Path:
    """Encode ``image`` to ``path``; the format follows the file extension."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)

    if not cv2.imwrite(str(out), image):
        raise RuntimeError(f"Could not save image: {out}")

    return out


def default_output_path(input_path: PathLike) -> Path:
    """``photo.png`` -> ``photo_processed.png`` in the same directory."""
    src = Path(input_path)
    return src.with_name(f"{src.stem}_processed{src.suffix}")
