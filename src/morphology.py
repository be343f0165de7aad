"""
Morphological operations for grayscale and binary images.

Every operator is a fold over a 3x3 structuring element. Neighbors that
fall outside the image are left out of the fold instead of being padded,
so a corner pixel only sees the four samples that actually exist.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Literal, Tuple

import numpy as np


StructuringElementShape = Literal["rect", "cross"]
Combine = Callable[[Any, Any], Any]
Bounds = Tuple[int, int, int, int]

ELEMENT_SHAPE = (3, 3)


def get_structuring_element(shape: StructuringElementShape = "rect") -> np.ndarray:
    """
    Create a 3x3 structuring element.

    Args:
        shape: "rect" for the full 8-connected neighborhood plus center,
            "cross" for the center row and column only

    Returns:
        Boolean structuring element
    """
    if shape == "rect":
        return np.ones(ELEMENT_SHAPE, dtype=bool)

    elif shape == "cross":
        element = np.zeros(ELEMENT_SHAPE, dtype=bool)
        element[1, :] = True
        element[:, 1] = True
        return element

    else:
        raise ValueError(f"Unknown structuring element shape: {shape}")


def _as_structuring_element(element: np.ndarray | None) -> np.ndarray:
    if element is None:
        return get_structuring_element("rect")

    element = np.asarray(element)
    if element.shape != ELEMENT_SHAPE:
        raise ValueError(
            f"Structuring element must be 3x3, got shape {element.shape}"
        )
    return element.astype(bool)


def offset_bounds(offset: int, length: int) -> Tuple[int, int, int, int]:
    """
    Clamp one axis of a neighbor offset against the image bounds.

    The low and high sides are clamped independently. Destination index
    ``i`` in ``[dst_lo, dst_hi)`` reads source index ``i + offset`` in
    ``[src_lo, src_hi)``; the two ranges always have the same length.

    Returns:
        Tuple of (dst_lo, dst_hi, src_lo, src_hi)
    """
    dst_lo = max(0, -offset)
    dst_hi = max(dst_lo, length - max(0, offset))
    return dst_lo, dst_hi, dst_lo + offset, dst_hi + offset


def _enabled_offsets(element: np.ndarray, height: int, width: int) -> List[Tuple[int, int, Bounds, Bounds]]:
    """Enabled (dy, dx) offsets in row-major order with their clamped bounds."""
    radius_y, radius_x = ELEMENT_SHAPE[0] // 2, ELEMENT_SHAPE[1] // 2
    offsets = []

    for i in range(ELEMENT_SHAPE[0]):
        dy = i - radius_y
        rows = offset_bounds(dy, height)
        if rows[0] >= rows[1]:
            continue
        for j in range(ELEMENT_SHAPE[1]):
            if not element[i, j]:
                continue
            dx = j - radius_x
            cols = offset_bounds(dx, width)
            if cols[0] >= cols[1]:
                continue
            offsets.append((dy, dx, rows, cols))

    return offsets


def fold_over_structuring_element(
    image: np.ndarray,
    structuring_element: np.ndarray,
    initial_value: int,
    combine: Combine,
) -> np.ndarray:
    """
    Fold ``combine`` over the in-bounds, enabled neighbors of every pixel.

    The output at (x, y) is ``combine`` folded over ``initial_value`` and
    each ``image[y + dy, x + dx]`` whose element entry ``[dy + 1, dx + 1]``
    is set and whose coordinates lie inside the image. Offsets are visited
    in row-major order of the element.

    A numpy ufunc (``np.maximum``, ``np.minimum``, ...) is applied one
    offset at a time to whole image slices. Any other callable is treated
    as a scalar ``f(accumulator, sample)`` and folded pixel by pixel in
    raster order. Both paths give the same result for the same function.

    Args:
        image: Single-channel input image (2D)
        structuring_element: 3x3 boolean mask of participating offsets
        initial_value: Seed of the fold
        combine: ``f(accumulator, sample) -> accumulator``

    Returns:
        New image with the same shape and dtype as ``image``
    """
    image = np.asarray(image)
    if image.ndim != 2:
        raise ValueError("fold_over_structuring_element expects a grayscale image")

    element = _as_structuring_element(structuring_element)
    height, width = image.shape
    offsets = _enabled_offsets(element, height, width)

    if isinstance(combine, np.ufunc):
        acc = np.full(image.shape, initial_value, dtype=image.dtype)
        for _, _, (dst_y0, dst_y1, src_y0, src_y1), (dst_x0, dst_x1, src_x0, src_x1) in offsets:
            region = acc[dst_y0:dst_y1, dst_x0:dst_x1]
            samples = image[src_y0:src_y1, src_x0:src_x1]
            acc[dst_y0:dst_y1, dst_x0:dst_x1] = combine(region, samples)
        return acc

    output = np.empty(image.shape, dtype=image.dtype)
    for y in range(height):
        for x in range(width):
            value = initial_value
            for dy, dx, rows, cols in offsets:
                if rows[0] <= y < rows[1] and cols[0] <= x < cols[1]:
                    value = combine(value, image[y + dy, x + dx])
            output[y, x] = value

    return output


def _dilate_once(image: np.ndarray, element: np.ndarray) -> np.ndarray:
    return fold_over_structuring_element(image, element, 0, np.maximum)


def _erode_once(image: np.ndarray, element: np.ndarray) -> np.ndarray:
    return fold_over_structuring_element(image, element, 255, np.minimum)


def erode(
    image: np.ndarray,
    structuring_element: np.ndarray | None = None,
    iterations: int = 1,
) -> np.ndarray:
    """
    Erode an image - each pixel becomes the minimum of its neighborhood.

    Shrinks white regions of a binary image.

    Args:
        image: 8-bit single-channel image
        structuring_element: 3x3 boolean mask (defaults to the full 3x3)
        iterations: Number of times to apply erosion

    Returns:
        Eroded image
    """
    element = _as_structuring_element(structuring_element)

    result = image
    for _ in range(max(1, int(iterations))):
        result = _erode_once(result, element)

    return result


def dilate(
    image: np.ndarray,
    structuring_element: np.ndarray | None = None,
    iterations: int = 1,
) -> np.ndarray:
    """
    Dilate an image - each pixel becomes the maximum of its neighborhood.

    Grows white regions of a binary image.

    Args:
        image: 8-bit single-channel image
        structuring_element: 3x3 boolean mask (defaults to the full 3x3)
        iterations: Number of times to apply dilation

    Returns:
        Dilated image
    """
    element = _as_structuring_element(structuring_element)

    result = image
    for _ in range(max(1, int(iterations))):
        result = _dilate_once(result, element)

    return result


def opening(
    image: np.ndarray,
    structuring_element: np.ndarray | None = None,
    iterations: int = 1,
) -> np.ndarray:
    """
    Morphological opening = Erode → Dilate.

    Removes bright specks narrower than the structuring element.
    """
    element = _as_structuring_element(structuring_element)

    result = erode(image, element, iterations)
    result = dilate(result, element, iterations)

    return result


def closing(
    image: np.ndarray,
    structuring_element: np.ndarray | None = None,
    iterations: int = 1,
) -> np.ndarray:
    """
    Morphological closing = Dilate → Erode.

    Fills dark gaps narrower than the structuring element.
    """
    element = _as_structuring_element(structuring_element)

    result = dilate(image, element, iterations)
    result = erode(result, element, iterations)

    return result


def dilate_sub_erode(
    image: np.ndarray,
    structuring_element: np.ndarray | None = None,
) -> np.ndarray:
    """
    Morphological gradient = Dilate - Erode.

    Both passes run on the original image. The difference saturates at 0,
    which only matters for elements that leave out the center.
    """
    element = _as_structuring_element(structuring_element)

    dilated = _dilate_once(image, element)
    eroded = _erode_once(image, element)

    return (dilated.astype(np.int16) - eroded.astype(np.int16)).clip(0, 255).astype(np.uint8)


OPERATIONS: Dict[str, Callable[..., np.ndarray]] = {
    "dilate": dilate,
    "erode": erode,
    "open": opening,
    "close": closing,
    "dilate_sub_erode": dilate_sub_erode,
}


def apply_operation(
    image: np.ndarray,
    name: str,
    structuring_element: np.ndarray | None = None,
    iterations: int = 1,
) -> np.ndarray:
    """Run the operator registered under ``name``."""
    try:
        operation = OPERATIONS[name]
    except KeyError:
        raise ValueError(f"Unsupported morphological operator: {name}") from None

    if operation is dilate_sub_erode:
        return operation(image, structuring_element)
    return operation(image, structuring_element, iterations)
