"""
Pixel-level analysis of rasterized checkbox regions.

All functions take an RGBA pixel buffer of shape (height, width, 4) and dtype
uint8, as produced by PDFHandler.image_to_rgba_array.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# A pixel counts as filled when darker than this and more than 50% opaque
FILL_BRIGHTNESS_THRESHOLD = 200
FILL_ALPHA_THRESHOLD = 128

# Stroke darkness used by the diagonal detectors
STROKE_BRIGHTNESS_THRESHOLD = 100

# Darkness used by the center-dot detector
DOT_BRIGHTNESS_THRESHOLD = 128


@dataclass
class PixelStatistics:
    """Fill and brightness statistics of a pixel buffer."""
    total_pixels: int
    filled_pixels: int
    average_brightness: float

    @property
    def fill_ratio(self) -> float:
        if self.total_pixels == 0:
            return 0.0
        return self.filled_pixels / self.total_pixels


@dataclass
class PatternResult:
    """Outcome of one visual sub-detector."""
    name: str
    detected: bool
    confidence: float


def brightness(pixels: np.ndarray) -> np.ndarray:
    """Per-pixel brightness as the mean of the RGB channels."""
    return pixels[..., :3].astype(np.float64).mean(axis=2)


def analyze_pixels(pixels: np.ndarray) -> PixelStatistics:
    """
    Count filled pixels and compute the mean brightness.

    Args:
        pixels: RGBA buffer

    Returns:
        PixelStatistics for the whole buffer
    """
    height, width = pixels.shape[:2]
    total = height * width
    if total == 0:
        return PixelStatistics(total_pixels=0, filled_pixels=0, average_brightness=255.0)

    values = brightness(pixels)
    alpha = pixels[..., 3]
    filled = (values < FILL_BRIGHTNESS_THRESHOLD) & (alpha > FILL_ALPHA_THRESHOLD)

    return PixelStatistics(
        total_pixels=total,
        filled_pixels=int(filled.sum()),
        average_brightness=float(values.mean())
    )


def detect_checkmark_pattern(pixels: np.ndarray) -> PatternResult:
    """
    Diagonal stroke density.

    Counts dark pixels whose lower-right neighbour is also dark, relative to a
    tenth of the region's area.
    """
    height, width = pixels.shape[:2]
    if height < 2 or width < 2:
        return PatternResult('checkmark', False, 0.0)

    dark = brightness(pixels) < STROKE_BRIGHTNESS_THRESHOLD
    score = int((dark[:-1, :-1] & dark[1:, 1:]).sum())

    confidence = min(score / (width * height / 10), 1.0)
    return PatternResult('checkmark', confidence > 0.3, confidence)


def detect_x_pattern(pixels: np.ndarray) -> PatternResult:
    """Darkness along both main diagonals."""
    height, width = pixels.shape[:2]
    size = min(width, height)
    if size == 0:
        return PatternResult('x', False, 0.0)

    dark = brightness(pixels) < STROKE_BRIGHTNESS_THRESHOLD
    index = np.arange(size)
    main_diagonal = dark[index, index]
    anti_diagonal = dark[index, width - 1 - index]

    confidence = float(main_diagonal.sum() + anti_diagonal.sum()) / (size * 2)
    return PatternResult('x', confidence > 0.5, confidence)


def detect_filled_pattern(pixels: np.ndarray) -> PatternResult:
    """Overall fill density."""
    confidence = analyze_pixels(pixels).fill_ratio
    return PatternResult('filled', confidence > 0.4, confidence)


def detect_dot_pattern(pixels: np.ndarray) -> PatternResult:
    """Darkness concentrated in a square around the center."""
    height, width = pixels.shape[:2]
    if height == 0 or width == 0:
        return PatternResult('dot', False, 0.0)

    center_x = width // 2
    center_y = height // 2
    radius = int(min(width, height) / 4)

    values = brightness(pixels)
    window = values[
        max(0, center_y - radius):center_y + radius + 1,
        max(0, center_x - radius):center_x + radius + 1
    ]
    if window.size == 0:
        return PatternResult('dot', False, 0.0)

    confidence = float((window < DOT_BRIGHTNESS_THRESHOLD).mean())
    return PatternResult('dot', confidence > 0.6, confidence)


VISUAL_PATTERN_DETECTORS: Tuple[Callable[[np.ndarray], PatternResult], ...] = (
    detect_checkmark_pattern,
    detect_x_pattern,
    detect_filled_pattern,
    detect_dot_pattern,
)
