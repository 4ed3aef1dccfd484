"""
Checkbox State Detection
========================

Decides whether a checkbox is checked by running five independent detection
methods and taking an unweighted majority vote.

Detection methods:
------------------
1. Text content:  glyphs or keywords in text overlapping the box
2. Pixel raster:  fill ratio and brightness of the rasterized region
3. Path:          a V-shaped stroke or a filled rectangle inside the box
4. Field value:   the widget's stored value (on/off, yes/no, ...)
5. Visual:        checkmark, X, fill and center-dot sub-detectors on the raster

Each method returns True, False or abstains (None). Methods are plain
functions over one read-only DetectionInput, so they share no state and their
order does not affect the vote.

Combination:
------------
- More True votes than False votes: checked
- More False votes than True votes: unchecked
- Tie, including no votes at all: unchecked

Per-method confidences are reported for diagnostics only; they do not weight
the vote. Reporting a box as checked when it is not is the worse error for a
screen-reader user, hence the tie-break towards unchecked.

Failure handling:
-----------------
- Rasterization errors and timeouts leave the pixel buffer empty, so the
  raster and visual methods abstain
- A method that raises is logged and counted as an abstention
- detect_state always returns a bool
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from ...config import Config
from ...errors import DetectionMethodError, RasterizationError
from ...models import CheckboxDetectionSchema, MethodResultSchema
from ...utils.pdf_handler import PDFHandler
from ..document_renderer import DocumentRenderer
from .elements import Element, ElementType
from .geometry import BoundingBox, ShapeAnalyzer, ShapeDescriptor
from .raster_analysis import VISUAL_PATTERN_DETECTORS, analyze_pixels

logger = logging.getLogger(__name__)


# Text content signal
CHECKMARK_GLYPHS = ('\u2713', '\u2714', '\u221a', '\u00d7')
LETTER_MARKS = ('x',)
FILLED_GLYPHS = ('\u2588', '\u25a0', '\u25cf', '\u25c6')
CHECKED_KEYWORDS = ('yes', 'true', 'selected', 'on', '1')

# Field value signal
CHECKED_VALUES = ('on', 'yes', 'true', '1', 'checked', 'selected')
UNCHECKED_VALUES = ('off', 'no', 'false', '0', '', 'unchecked')

# Raster signal
RASTER_CHECKED_FILL_RATIO = 0.3
RASTER_CHECKED_MAX_BRIGHTNESS = 128
RASTER_UNCHECKED_FILL_RATIO = 0.1

# Path signal
FILLED_RECT_MIN_COVERAGE = 0.5

_TOKEN_PATTERN = re.compile(r'\w+')


@dataclass
class MethodResult:
    """Outcome of one detection method."""
    method: str
    state: Optional[bool] = None
    confidence: float = 0.0
    error: Optional[str] = None
    details: Dict[str, float] = field(default_factory=dict)

    @property
    def abstained(self) -> bool:
        return self.state is None

    def to_schema(self) -> MethodResultSchema:
        return MethodResultSchema(
            method=self.method,
            state=self.state,
            confidence=self.confidence,
            error=self.error
        )


@dataclass
class DetectionInput:
    """
    Everything the detection methods may look at for one checkbox.

    Sources that could not be read are left empty; the methods relying on them
    abstain.
    """
    element: Element
    overlapping_text: Optional[str] = None
    pixels: Optional[np.ndarray] = None
    shapes: List[ShapeDescriptor] = field(default_factory=list)
    raster_error: Optional[str] = None


@dataclass
class CheckboxDetection:
    """Combined decision and per-method diagnostics for one checkbox."""
    element_id: str
    is_checked: bool
    results: List[MethodResult] = field(default_factory=list)

    @property
    def checked_votes(self) -> int:
        return sum(1 for r in self.results if r.state is True)

    @property
    def unchecked_votes(self) -> int:
        return sum(1 for r in self.results if r.state is False)

    @property
    def confidence(self) -> float:
        """Highest confidence among methods that agree with the decision."""
        agreeing = [r.confidence for r in self.results if r.state is self.is_checked]
        return max(agreeing) if agreeing else 0.0

    def to_schema(self) -> CheckboxDetectionSchema:
        return CheckboxDetectionSchema(
            element_id=self.element_id,
            is_checked=self.is_checked,
            checked_votes=self.checked_votes,
            unchecked_votes=self.unchecked_votes,
            methods=[r.to_schema() for r in self.results]
        )


def detect_by_text_content(data: DetectionInput) -> MethodResult:
    """Checkmark glyphs (0.9) or checked keywords (0.6) in overlapping text."""
    result = MethodResult(method='text_content')
    text = data.overlapping_text
    if not text:
        return result

    tokens = set(_TOKEN_PATTERN.findall(text.lower()))

    has_glyph = (
        any(glyph in text for glyph in CHECKMARK_GLYPHS) or
        any(glyph in text for glyph in FILLED_GLYPHS) or
        any(mark in tokens for mark in LETTER_MARKS)
    )
    if has_glyph:
        result.state = True
        result.confidence = 0.9
        return result

    if any(keyword in tokens for keyword in CHECKED_KEYWORDS):
        result.state = True
        result.confidence = 0.6

    return result


def detect_by_pixel_analysis(data: DetectionInput) -> MethodResult:
    """Fill ratio and brightness of the rasterized region."""
    result = MethodResult(method='pixel_analysis', error=data.raster_error)
    if data.pixels is None:
        return result

    stats = analyze_pixels(data.pixels)
    result.details = {
        'fill_ratio': stats.fill_ratio,
        'average_brightness': stats.average_brightness
    }

    if stats.fill_ratio > RASTER_CHECKED_FILL_RATIO and stats.average_brightness < RASTER_CHECKED_MAX_BRIGHTNESS:
        result.state = True
        result.confidence = 0.8
    elif stats.fill_ratio < RASTER_UNCHECKED_FILL_RATIO:
        result.state = False
        result.confidence = 0.7

    return result


def is_checkmark_path(points: List[Tuple[float, float]]) -> bool:
    """
    True if the path starts with a down-right stroke followed by an up-right
    stroke. Points are in page space, so "down" means increasing y.
    """
    if len(points) < 3:
        return False

    (x0, y0), (x1, y1), (x2, y2) = points[:3]
    first_down_right = x1 > x0 and y1 > y0
    second_up_right = x2 > x1 and y2 < y1
    return first_down_right and second_up_right


def detect_by_path_analysis(data: DetectionInput) -> MethodResult:
    """V-shaped stroke (0.85) or a filled rectangle over half the box (0.75)."""
    result = MethodResult(method='path_analysis')

    if any(s.shape_type == ShapeAnalyzer.PATH and is_checkmark_path(s.points) for s in data.shapes):
        result.state = True
        result.confidence = 0.85
        return result

    element_area = data.element.bounds.area
    if element_area <= 0:
        return result

    for shape in data.shapes:
        if shape.shape_type != ShapeAnalyzer.RECTANGLE or not shape.filled:
            continue
        coverage = shape.bounds.intersection_area(data.element.bounds) / element_area
        if coverage > FILLED_RECT_MIN_COVERAGE:
            result.state = True
            result.confidence = 0.75
            result.details = {'coverage': coverage}
            break

    return result


def detect_by_form_field_state(data: DetectionInput) -> MethodResult:
    """Known checked/unchecked widget values (0.95 either way)."""
    result = MethodResult(method='form_field_state')
    value = data.element.value
    if value is None:
        return result

    normalized = str(value).strip().lower()
    if normalized in CHECKED_VALUES:
        result.state = True
        result.confidence = 0.95
    elif normalized in UNCHECKED_VALUES:
        result.state = False
        result.confidence = 0.95

    return result


def detect_by_visual_patterns(data: DetectionInput) -> MethodResult:
    """Checked if any visual sub-detector fires; confidence is the highest firing one."""
    result = MethodResult(method='visual_patterns', error=data.raster_error)
    if data.pixels is None:
        return result

    patterns = [detector(data.pixels) for detector in VISUAL_PATTERN_DETECTORS]
    result.details = {p.name: p.confidence for p in patterns}

    fired = [p for p in patterns if p.detected]
    if fired:
        result.state = True
        result.confidence = max(p.confidence for p in fired)

    return result


DETECTION_METHODS: Tuple[Tuple[str, Callable[[DetectionInput], MethodResult]], ...] = (
    ('text_content', detect_by_text_content),
    ('pixel_analysis', detect_by_pixel_analysis),
    ('path_analysis', detect_by_path_analysis),
    ('form_field_state', detect_by_form_field_state),
    ('visual_patterns', detect_by_visual_patterns),
)


def combine_detection_results(states: Iterable[Optional[bool]]) -> bool:
    """
    Unweighted majority vote over non-abstaining states; ties are unchecked.
    """
    checked = 0
    unchecked = 0
    for state in states:
        if state is True:
            checked += 1
        elif state is False:
            unchecked += 1

    if checked > unchecked:
        return True
    return False


@dataclass
class _PageContext:
    """Per-page data shared by all checkboxes on that page."""
    text_runs: List[Tuple[BoundingBox, str]] = field(default_factory=list)
    shapes: List[ShapeDescriptor] = field(default_factory=list)


class CheckboxStateDetector:
    """
    Multi-signal checkbox state detector.

    Example usage:

        detector = CheckboxStateDetector(renderer)
        detections = await detector.detect_checkbox_states(result.elements)
    """

    def __init__(
        self,
        renderer: Optional[DocumentRenderer] = None,
        raster_scale: Optional[float] = None,
        raster_timeout: Optional[float] = None,
        shape_analyzer: Optional[ShapeAnalyzer] = None
    ):
        """
        Initialize the detector.

        Args:
            renderer: Renderer of the loaded document. Without one only the
                field-value method can vote.
            raster_scale: Rasterization scale (defaults to Config.RASTER_SCALE)
            raster_timeout: Seconds to wait for a rasterization (defaults to Config.RASTER_TIMEOUT_SECONDS)
            shape_analyzer: Optional pre-configured ShapeAnalyzer
        """
        self.renderer = renderer
        self.raster_scale = raster_scale or Config.RASTER_SCALE
        self.raster_timeout = raster_timeout or Config.RASTER_TIMEOUT_SECONDS
        self.shape_analyzer = shape_analyzer or ShapeAnalyzer()

    async def detect_checkbox_states(self, elements: Iterable[Element]) -> List[CheckboxDetection]:
        """
        Detect and store the state of every checkbox element.

        Sets is_checked and confidence on each checkbox in place.

        Returns:
            One CheckboxDetection per checkbox, in input order
        """
        checkboxes = [e for e in elements if e.type == ElementType.CHECKBOX]
        logger.info(f"Detecting states for {len(checkboxes)} checkboxes")

        page_cache: Dict[int, _PageContext] = {}
        detections = []

        for element in checkboxes:
            detection = await self._detect(element, page_cache)
            element.is_checked = detection.is_checked
            element.confidence = detection.confidence
            detections.append(detection)

            logger.debug(
                f"Checkbox {element.id}: {'CHECKED' if detection.is_checked else 'UNCHECKED'} "
                f"(votes {detection.checked_votes}/{detection.unchecked_votes}, "
                f"confidence: {detection.confidence:.2f})"
            )

        checked = sum(1 for d in detections if d.is_checked)
        logger.info(f"Checkbox detection complete: {checked}/{len(detections)} checked")
        return detections

    async def detect_state(self, element: Element) -> bool:
        """
        Detect whether a single checkbox is checked.

        Returns:
            True if checked, False otherwise (never None)
        """
        detection = await self._detect(element, {})
        return detection.is_checked

    async def _detect(self, element: Element, page_cache: Dict[int, _PageContext]) -> CheckboxDetection:
        data = await self.gather_input(element, page_cache)
        return self.evaluate(data)

    def evaluate(self, data: DetectionInput) -> CheckboxDetection:
        """
        Run all detection methods against prepared input and combine them.
        """
        results = []
        for name, method in DETECTION_METHODS:
            try:
                results.append(method(data))
            except Exception as e:
                error = DetectionMethodError(name, data.element.id, e)
                logger.warning(f"{error}. Treating as abstention.")
                results.append(MethodResult(method=name, error=str(e)))

        is_checked = combine_detection_results(r.state for r in results)
        return CheckboxDetection(
            element_id=data.element.id,
            is_checked=is_checked,
            results=results
        )

    async def gather_input(
        self,
        element: Element,
        page_cache: Optional[Dict[int, _PageContext]] = None
    ) -> DetectionInput:
        """
        Collect overlapping text, shapes and the rasterized region for a checkbox.
        """
        data = DetectionInput(element=element)
        if self.renderer is None:
            return data

        if page_cache is None:
            page_cache = {}
        context = page_cache.get(element.page_number)
        if context is None:
            context = await self._load_page_context(element.page_number)
            page_cache[element.page_number] = context

        overlapping = [
            text for bounds, text in context.text_runs
            if bounds.intersection_area(element.bounds) > 0
        ]
        data.overlapping_text = ' '.join(overlapping) if overlapping else None

        data.shapes = [
            shape for shape in context.shapes
            if shape.bounds.overlaps(element.bounds)
        ]

        data.pixels, data.raster_error = await self._rasterize(element)
        return data

    async def _load_page_context(self, page_number: int) -> _PageContext:
        context = _PageContext()

        try:
            viewport = await self.renderer.get_viewport(page_number)
        except Exception as e:
            logger.warning(f"Failed to read viewport of page {page_number}: {e}")
            return context

        try:
            runs = await self.renderer.get_text_runs(page_number)
            context.text_runs = [
                (BoundingBox.from_native_rect(r.x, r.y, r.x + r.width, r.y + r.height, viewport), r.text)
                for r in runs if r.text
            ]
        except Exception as e:
            logger.warning(f"Failed to get text content of page {page_number}: {e}")

        try:
            instructions = await self.renderer.get_drawing_instructions(page_number)
            context.shapes = self.shape_analyzer.analyze(instructions, viewport)
        except Exception as e:
            logger.warning(f"Failed to analyze paths of page {page_number}: {e}")

        return context

    async def _rasterize(self, element: Element) -> Tuple[Optional[np.ndarray], Optional[str]]:
        """
        Render the checkbox region at raster_scale.

        Returns:
            Tuple of (RGBA buffer or None, error message or None)
        """
        try:
            image = await asyncio.wait_for(
                self.renderer.render(element.page_number, element.bounds, self.raster_scale),
                timeout=self.raster_timeout
            )
            if image is None:
                raise RasterizationError(f"Renderer returned no image for {element.id}")
            return PDFHandler.image_to_rgba_array(image), None
        except asyncio.TimeoutError:
            message = f"Rasterization of {element.id} timed out after {self.raster_timeout}s"
            logger.warning(message)
            return None, message
        except Exception as e:
            logger.warning(f"Failed to render {element.id} for pixel analysis: {e}")
            return None, str(e)
