"""
Image morphology pipeline.

Processing stages:
1. Grayscale - decoded input reduced to one 8-bit channel
2. Threshold - optional mean/median binarization
3. Morphology - dilate, erode, open, close or dilate_sub_erode
"""
from __future__ import annotations

import argparse
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from morphology import OPERATIONS, apply_operation, get_structuring_element
from threshold import apply_threshold
from utils import default_output_path, load_settings, merge_config, read_grayscale, write_image


DEFAULT_CONFIG: Dict[str, Any] = {
    "threshold": {"mode": "none"},
    "morphology": {"operation": "dilate", "shape": "rect", "iterations": 1},
    "output": None,
    "save_intermediate": None,
}


# ============================================================================
# Image Processor
# ============================================================================

class ImageProcessor:
    """Threshold + morphology stages for a single grayscale image."""

    def __init__(self, config: Dict[str, Any]) -> None:
        self.config = config

        thresh_cfg = config.get("threshold", {})
        mode = thresh_cfg.get("mode")
        self.threshold_mode: Optional[str] = None if mode in (None, "none") else str(mode)

        morph_cfg = config.get("morphology", {})
        self.operation = morph_cfg.get("operation", "dilate")
        if self.operation not in OPERATIONS:
            raise ValueError(f"Unsupported morphological operator: {self.operation}")
        self.iterations = max(1, int(morph_cfg.get("iterations", 1)))
        self.structuring_element = get_structuring_element(morph_cfg.get("shape", "rect"))

    def process(self, grayscale: np.ndarray) -> Dict[str, np.ndarray]:
        """Process an image and return all intermediate results."""
        if grayscale.ndim != 2:
            raise ValueError("ImageProcessor expects a grayscale image")
        if grayscale.size == 0:
            raise ValueError("empty image")

        results = {"grayscale": grayscale}

        thresholded = apply_threshold(grayscale, self.threshold_mode)
        results["thresholded"] = thresholded

        results["processed"] = apply_operation(
            thresholded,
            self.operation,
            self.structuring_element,
            self.iterations,
        )

        return results


# ============================================================================
# Main Pipeline
# ============================================================================

def run_pipeline(config: Dict[str, Any]) -> Path:
    """Read the input image, process it and write the result."""
    input_path = config.get("input")
    if not input_path:
        raise ValueError("No input image configured")

    processor = ImageProcessor(config)
    start_time = time.perf_counter()

    grayscale = read_grayscale(input_path)
    results = processor.process(grayscale)

    intermediate = config.get("save_intermediate")
    if intermediate:
        write_image(intermediate, results["thresholded"])
        print(f"[INFO] Saved intermediate: {intermediate}")

    output = config.get("output") or default_output_path(input_path)
    out_path = write_image(output, results["processed"])
    print(f"[INFO] {processor.operation}: {out_path}")

    elapsed_ms = int((time.perf_counter() - start_time) * 1000)
    print(f"Elapsed time: {elapsed_ms} ms")

    return out_path


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Threshold and morphology filters for a single image")
    parser.add_argument(
        "op",
        choices=sorted(OPERATIONS),
        help="which image processing operation to apply to the image",
    )
    parser.add_argument("file", help="path to file to process")
    parser.add_argument(
        "--threshold", "-t",
        choices=["mean", "median", "average"],
        default=None,
        help="thresholds the image before applying operations",
    )
    parser.add_argument(
        "--outfile", "-o",
        default=None,
        help="file to write the result to (defaults to <FILE>_processed.<ext>)",
    )
    parser.add_argument("--config", "-c", default="config/settings.yaml")
    parser.add_argument("--shape", choices=["rect", "cross"], default=None)
    parser.add_argument("--iterations", "-n", type=int, default=None)
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, settings: Dict[str, Any]) -> Dict[str, Any]:
    """Layer defaults, file settings and command-line values."""
    config = merge_config(DEFAULT_CONFIG, settings)

    overrides: Dict[str, Any] = {
        "input": args.file,
        "morphology": {"operation": args.op},
    }
    if args.threshold:
        overrides["threshold"] = {"mode": args.threshold}
    if args.outfile:
        overrides["output"] = args.outfile
    if args.shape:
        overrides["morphology"]["shape"] = args.shape
    if args.iterations is not None:
        overrides["morphology"]["iterations"] = args.iterations

    return merge_config(config, overrides)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
    except FileNotFoundError:
        print(f"[INFO] Config not found: {args.config}, using defaults")
        settings = {}

    run_pipeline(build_config(args, settings))


if __name__ == "__main__":
    main()
