"""
Global thresholding of grayscale images into black/white masks.
"""
from __future__ import annotations

from typing import Optional

import numpy as np


THRESHOLD_MODES = ("none", "mean", "median")

_MODE_ALIASES = {"average": "mean"}


def _check_image(image: np.ndarray, name: str) -> None:
    if image.ndim != 2:
        raise ValueError(f"{name} expects a grayscale image")
    if image.size == 0:
        raise ValueError("empty image")


def binary_threshold(image: np.ndarray, thresh: int, max_val: int = 255) -> np.ndarray:
    """
    Apply binary threshold to grayscale image.

    Args:
        image: Grayscale input image (2D)
        thresh: Cutoff value; pixels at or below it become 0
        max_val: Value for pixels above threshold

    Returns:
        Binary image (0 and max_val)

    Raises:
        ValueError: If image is not grayscale
    """
    if image.ndim != 2:
        raise ValueError("binary_threshold expects a grayscale image")

    return np.where(image <= thresh, 0, max_val).astype(np.uint8)


def mean_cutoff(image: np.ndarray) -> int:
    """Arithmetic mean of all samples, truncated toward zero."""
    _check_image(image, "mean_cutoff")
    return int(np.trunc(image.astype(np.float64).mean()))


def median_cutoff(image: np.ndarray) -> int:
    """Sample at index count // 2 of the sorted values (upper median)."""
    _check_image(image, "median_cutoff")
    values = np.sort(image, axis=None)
    return int(values[values.size // 2])


def mean_threshold(image: np.ndarray) -> np.ndarray:
    """
    Threshold at the mean intensity.

    Pixels less than or equal to the truncated mean become 0, the rest 255.
    """
    return binary_threshold(image, mean_cutoff(image))


def median_threshold(image: np.ndarray) -> np.ndarray:
    """
    Threshold at the median intensity.

    For an even pixel count the upper of the two middle values is used.
    """
    return binary_threshold(image, median_cutoff(image))


def compute_cutoff(image: np.ndarray, mode: str) -> int:
    """Return the integer cutoff used by ``mode`` ("mean" or "median")."""
    mode = _MODE_ALIASES.get(mode, mode)
    if mode == "mean":
        return mean_cutoff(image)
    if mode == "median":
        return median_cutoff(image)
    raise ValueError(f"Unknown threshold mode: {mode}")


def apply_threshold(image: np.ndarray, mode: Optional[str]) -> np.ndarray:
    """
    Threshold ``image`` with the given mode.

    Args:
        image: Grayscale input image
        mode: "mean", "median", or None / "none" to pass the image through

    Returns:
        Binary image, or an unchanged copy when no mode is selected
    """
    if mode is None or mode == "none":
        return image.copy()

    mode = _MODE_ALIASES.get(mode, mode)
    if mode == "mean":
        return mean_threshold(image)
    if mode == "median":
        return median_threshold(image)

    raise ValueError(f"Unknown threshold mode: {mode}")
