"""
Geometry and Shape Analysis
===========================

Turns a page's raw drawing instructions into shape descriptors with page-space
bounding boxes.

Coordinate systems:
-------------------
- Drawing instructions arrive in the renderer's native space: PDF user space,
  origin at the bottom-left, y growing upwards.
- Everything this module returns is in page space: origin at the top-left,
  y growing downwards. This matches how elements are ordered and displayed.

Tradeoffs:
----------
1. Paths are reduced to the bounding box of their first and last points:
   - Fast and good enough for straight strokes and underlines
   - Curved or closed paths (circles, polygons) get a box that can be too small
   - The full point list is still kept so the checkbox path signal can look
     at individual segments

2. Transforms are tracked as a full affine matrix:
   - Rotated rectangles become their axis-aligned bounding box
"""

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Tuple, Sequence

from ..document_renderer import DrawingInstruction, DrawingOp, Viewport

logger = logging.getLogger(__name__)

# Affine matrix (a, b, c, d, e, f), PDF convention
Matrix = Tuple[float, float, float, float, float, float]

IDENTITY: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


def multiply(m1: Matrix, m2: Matrix) -> Matrix:
    """Return m1 x m2 (apply m1 first, then m2)."""
    a1, b1, c1, d1, e1, f1 = m1
    a2, b2, c2, d2, e2, f2 = m2
    return (
        a1 * a2 + b1 * c2,
        a1 * b2 + b1 * d2,
        c1 * a2 + d1 * c2,
        c1 * b2 + d1 * d2,
        e1 * a2 + f1 * c2 + e2,
        e1 * b2 + f1 * d2 + f2,
    )


def apply(matrix: Matrix, x: float, y: float) -> Tuple[float, float]:
    """Transform a single point."""
    a, b, c, d, e, f = matrix
    return (a * x + c * y + e, b * x + d * y + f)


@dataclass
class BoundingBox:
    """
    Page-space bounding box.

    Origin is the top-left corner of the page; y grows downwards.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        """X coordinate of right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> float:
        """Y coordinate of bottom edge."""
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        """Width to height ratio (>1 means wider than tall)."""
        if self.height == 0:
            return float('inf')
        return self.width / self.height

    def to_dict(self) -> Dict[str, float]:
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height
        }

    @classmethod
    def from_points(cls, points: Sequence[Tuple[float, float]]) -> 'BoundingBox':
        """Smallest box containing all points."""
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return cls(x=min(xs), y=min(ys), width=max(xs) - min(xs), height=max(ys) - min(ys))

    @classmethod
    def from_native_rect(cls, x0: float, y0: float, x1: float, y1: float,
                         viewport: Viewport) -> 'BoundingBox':
        """
        Convert a native (bottom-left origin) rectangle to page space.

        Args:
            x0, y0, x1, y1: Rectangle corners in native coordinates (any order)
            viewport: Page viewport supplying the page height

        Returns:
            BoundingBox with top-left origin
        """
        left, right = min(x0, x1), max(x0, x1)
        low, high = min(y0, y1), max(y0, y1)
        return cls(
            x=left,
            y=viewport.height - high,
            width=right - left,
            height=high - low
        )

    def union(self, other: 'BoundingBox') -> 'BoundingBox':
        left = min(self.left, other.left)
        top = min(self.top, other.top)
        right = max(self.right, other.right)
        bottom = max(self.bottom, other.bottom)
        return BoundingBox(x=left, y=top, width=right - left, height=bottom - top)

    def intersection_area(self, other: 'BoundingBox') -> float:
        x_overlap = max(0.0, min(self.right, other.right) - max(self.left, other.left))
        y_overlap = max(0.0, min(self.bottom, other.bottom) - max(self.top, other.top))
        return x_overlap * y_overlap

    def overlaps(self, other: 'BoundingBox') -> bool:
        """True if the boxes touch or overlap (edges inclusive)."""
        return not (
            self.right < other.left or
            other.right < self.left or
            self.bottom < other.top or
            other.bottom < self.top
        )

    def contains_point(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


@dataclass
class ShapeDescriptor:
    """A shape decoded from the drawing-instruction stream."""
    shape_type: str  # "rectangle" | "path"
    x: float
    y: float
    width: float
    height: float

    # Transformed page-space points, in drawing order (paths only)
    points: List[Tuple[float, float]] = field(default_factory=list)
    filled: bool = False

    @property
    def bounds(self) -> BoundingBox:
        return BoundingBox(x=self.x, y=self.y, width=self.width, height=self.height)


class ShapeAnalyzer:
    """
    Decodes rectangle and path drawing instructions into shape descriptors.

    The analyzer keeps a running transform matrix: TRANSFORM instructions are
    concatenated onto it and SAVE/RESTORE push and pop it, the same way a PDF
    content stream's graphics state behaves.
    """

    RECTANGLE = "rectangle"
    PATH = "path"

    def analyze(
        self,
        instructions: Sequence[DrawingInstruction],
        viewport: Viewport,
        initial_transform: Matrix = IDENTITY
    ) -> List[ShapeDescriptor]:
        """
        Decode a page's drawing instructions.

        Args:
            instructions: Drawing instructions in stream order
            viewport: Page viewport (used for the bottom-left to top-left flip)
            initial_transform: Transform in effect before the first instruction

        Returns:
            List of ShapeDescriptor objects in page space
        """
        shapes: List[ShapeDescriptor] = []
        current = initial_transform
        stack: List[Matrix] = []

        for instruction in instructions:
            op = instruction.op

            if op == DrawingOp.TRANSFORM:
                if len(instruction.args) == 6:
                    current = multiply(tuple(instruction.args), current)
                else:
                    logger.debug(f"Ignoring malformed transform with {len(instruction.args)} args")

            elif op == DrawingOp.SAVE:
                stack.append(current)

            elif op == DrawingOp.RESTORE:
                if stack:
                    current = stack.pop()

            elif op == DrawingOp.RECTANGLE:
                shape = self._analyze_rectangle(instruction, current, viewport)
                if shape:
                    shapes.append(shape)

            elif op == DrawingOp.PATH:
                shape = self._analyze_path(instruction, current, viewport)
                if shape:
                    shapes.append(shape)

        return shapes

    def _to_page(self, matrix: Matrix, x: float, y: float, viewport: Viewport) -> Tuple[float, float]:
        tx, ty = apply(matrix, x, y)
        return (tx, viewport.height - ty)

    def _analyze_rectangle(
        self,
        instruction: DrawingInstruction,
        matrix: Matrix,
        viewport: Viewport
    ) -> Optional[ShapeDescriptor]:
        if len(instruction.args) < 4:
            return None

        x, y, width, height = instruction.args[:4]
        corners = [
            self._to_page(matrix, x, y, viewport),
            self._to_page(matrix, x + width, y, viewport),
            self._to_page(matrix, x, y + height, viewport),
            self._to_page(matrix, x + width, y + height, viewport),
        ]
        box = BoundingBox.from_points(corners)

        return ShapeDescriptor(
            shape_type=self.RECTANGLE,
            x=box.x,
            y=box.y,
            width=box.width,
            height=box.height,
            filled=instruction.filled
        )

    def _analyze_path(
        self,
        instruction: DrawingInstruction,
        matrix: Matrix,
        viewport: Viewport
    ) -> Optional[ShapeDescriptor]:
        """
        Approximate a path by the box spanned by its first and last points.
        """
        coords = instruction.args
        if len(coords) < 4:
            return None

        points = [
            self._to_page(matrix, coords[i], coords[i + 1], viewport)
            for i in range(0, len(coords) - 1, 2)
        ]
        box = BoundingBox.from_points([points[0], points[-1]])

        return ShapeDescriptor(
            shape_type=self.PATH,
            x=box.x,
            y=box.y,
            width=box.width,
            height=box.height,
            points=points,
            filled=instruction.filled
        )
