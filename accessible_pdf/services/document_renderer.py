"""
Document Renderer Interface
===========================

The element pipeline never parses PDF bytes itself. Everything it knows about a
document comes from a DocumentRenderer: page geometry, text runs, widget
annotations, the drawing-instruction stream and region rasterization.

All coordinates handed over by a renderer are in native PDF user space (origin
bottom-left). The pipeline converts them to top-left page space.

All data methods are coroutines so that a renderer backed by a worker, a
subprocess or a remote service can suspend while it works. Renderers that
cancel or give up on a rasterization should raise RasterizationError.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from PIL import Image

logger = logging.getLogger(__name__)


@dataclass
class Viewport:
    """Page geometry at scale 1.0."""
    width: float
    height: float


@dataclass
class TextRun:
    """
    A contiguous run of glyphs as emitted by the renderer.

    x, y is the lower-left corner of the run in native coordinates.
    """
    text: str
    x: float
    y: float
    width: float
    height: float
    font_name: str = ""
    font_size: float = 0.0


@dataclass
class WidgetAnnotation:
    """A form-field widget annotation."""
    field_name: str
    rect: Tuple[float, float, float, float]  # x0, y0, x1, y1 in native coordinates
    field_value: Optional[str] = None
    alternative_text: str = ""

    # Widget flags
    check_box: bool = False
    radio_button: bool = False
    combo: bool = False
    multi_line: bool = False
    signature: bool = False

    required: bool = False
    read_only: bool = False


class DrawingOp(str, Enum):
    """Drawing instruction operators understood by the shape analyzer."""
    RECTANGLE = "rectangle"   # args: x, y, width, height
    PATH = "path"             # args: x0, y0, x1, y1, ... (points in drawing order)
    TRANSFORM = "transform"   # args: a, b, c, d, e, f (concatenated onto the CTM)
    SAVE = "save"
    RESTORE = "restore"


@dataclass
class DrawingInstruction:
    """A single drawing instruction from a page's content stream."""
    op: DrawingOp
    args: Tuple[float, ...] = ()
    filled: bool = False


class DocumentRenderer:
    """
    Base class for document rendering collaborators.

    Subclasses implement every coroutine below. page_number is always 1-based.
    """

    @property
    def page_count(self) -> int:
        raise NotImplementedError

    async def get_viewport(self, page_number: int) -> Viewport:
        raise NotImplementedError

    async def get_text_runs(self, page_number: int) -> List[TextRun]:
        raise NotImplementedError

    async def get_annotations(self, page_number: int) -> List[WidgetAnnotation]:
        raise NotImplementedError

    async def get_drawing_instructions(self, page_number: int) -> List[DrawingInstruction]:
        raise NotImplementedError

    async def render(self, page_number: int, region, scale: float) -> Image.Image:
        """
        Rasterize a page-space region.

        Args:
            page_number: 1-based page number
            region: BoundingBox in top-left page coordinates
            scale: Pixels per page unit

        Returns:
            PIL Image of roughly region.width * scale by region.height * scale pixels
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the renderer."""
