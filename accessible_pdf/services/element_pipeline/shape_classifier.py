"""
Shape classification by size and aspect ratio.

Rules are evaluated in priority order and the first match wins:

1. Checkbox:   |w - h| < 5, 8 < w < 30, 8 < h < 30
2. Signature:  w > 100, 15 < h < 40, w / h > 3
3. Text field: 50 < w < 300, 15 < h < 50
4. Anything else is a generic graphic

All bounds are strict. A 30x30 square is not a checkbox, a 29x29 one is.
"""

import logging
from typing import Tuple

from .elements import ElementType
from .geometry import ShapeDescriptor

logger = logging.getLogger(__name__)


class ShapeClassifier:
    """Maps shape descriptors to a field-type guess."""

    # Checkbox: small, nearly square
    CHECKBOX_MAX_SIDE_DIFFERENCE = 5
    CHECKBOX_MIN_SIDE = 8
    CHECKBOX_MAX_SIDE = 30

    # Signature: wide and short
    SIGNATURE_MIN_WIDTH = 100
    SIGNATURE_MIN_HEIGHT = 15
    SIGNATURE_MAX_HEIGHT = 40
    SIGNATURE_MIN_ASPECT_RATIO = 3

    # Text field: medium-sized box
    TEXT_FIELD_MIN_WIDTH = 50
    TEXT_FIELD_MAX_WIDTH = 300
    TEXT_FIELD_MIN_HEIGHT = 15
    TEXT_FIELD_MAX_HEIGHT = 50

    def classify(self, shape: ShapeDescriptor) -> ElementType:
        """
        Classify a shape into an element type.

        Args:
            shape: Shape descriptor in page space

        Returns:
            ElementType.CHECKBOX, SIGNATURE, FORM_TEXT or GRAPHIC
        """
        width, height = self._dimensions(shape)

        if self.is_likely_checkbox(shape):
            element_type = ElementType.CHECKBOX
        elif self.is_likely_signature_area(shape):
            element_type = ElementType.SIGNATURE
        elif self.is_likely_text_field(shape):
            element_type = ElementType.FORM_TEXT
        else:
            element_type = ElementType.GRAPHIC

        logger.debug(f"Classified {shape.shape_type} {width:.1f}x{height:.1f} as {element_type.value}")
        return element_type

    def _dimensions(self, shape: ShapeDescriptor) -> Tuple[float, float]:
        return abs(shape.width), abs(shape.height)

    def is_likely_checkbox(self, shape: ShapeDescriptor) -> bool:
        width, height = self._dimensions(shape)
        is_square = abs(width - height) < self.CHECKBOX_MAX_SIDE_DIFFERENCE
        is_small = width < self.CHECKBOX_MAX_SIDE and height < self.CHECKBOX_MAX_SIDE
        is_large_enough = width > self.CHECKBOX_MIN_SIDE and height > self.CHECKBOX_MIN_SIDE
        return is_square and is_small and is_large_enough

    def is_likely_signature_area(self, shape: ShapeDescriptor) -> bool:
        width, height = self._dimensions(shape)
        if height == 0:
            return False
        is_wide = width > self.SIGNATURE_MIN_WIDTH
        is_short = self.SIGNATURE_MIN_HEIGHT < height < self.SIGNATURE_MAX_HEIGHT
        return is_wide and is_short and width / height > self.SIGNATURE_MIN_ASPECT_RATIO

    def is_likely_text_field(self, shape: ShapeDescriptor) -> bool:
        width, height = self._dimensions(shape)
        is_reasonable_size = self.TEXT_FIELD_MIN_WIDTH < width < self.TEXT_FIELD_MAX_WIDTH
        is_text_height = self.TEXT_FIELD_MIN_HEIGHT < height < self.TEXT_FIELD_MAX_HEIGHT
        return is_reasonable_size and is_text_height
