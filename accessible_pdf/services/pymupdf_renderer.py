"""
PyMuPDF-backed document renderer.

Text spans, widgets and vector drawings come from PyMuPDF. Region
rasterization goes through PDFHandler (pdf2image/poppler); only the most
recently rendered page image is cached.

PyMuPDF reports coordinates with a top-left origin; they are flipped back to
native PDF space here so the pipeline sees the same convention from every
renderer.
"""

import asyncio
import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import fitz  # PyMuPDF
from PIL import Image

from ..config import Config
from ..errors import RasterizationError
from ..utils.pdf_handler import PDFHandler
from .document_renderer import (
    DocumentRenderer,
    DrawingInstruction,
    DrawingOp,
    TextRun,
    Viewport,
    WidgetAnnotation,
)

logger = logging.getLogger(__name__)

# Fill colors darker than this (mean of RGB in 0..1) count as filled
DARK_FILL_THRESHOLD = 0.5


class PyMuPDFRenderer(DocumentRenderer):
    """Renderer for a PDF held in memory."""

    def __init__(self, pdf_bytes: bytes, dpi_base: Optional[int] = None):
        """
        Open a PDF from bytes.

        Args:
            pdf_bytes: PDF file as bytes
            dpi_base: DPI corresponding to scale 1.0 (defaults to Config.PDF_RENDER_DPI_BASE)
        """
        self.pdf_bytes = pdf_bytes
        self.dpi_base = dpi_base or Config.PDF_RENDER_DPI_BASE
        self.document = fitz.open(stream=pdf_bytes, filetype="pdf")
        self._page_images: Dict[Tuple[int, float], Image.Image] = {}
        logger.info(f"Opened PDF with {self.document.page_count} pages")

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> 'PyMuPDFRenderer':
        return cls(PDFHandler.read_pdf(path))

    @property
    def page_count(self) -> int:
        return self.document.page_count

    def _page(self, page_number: int) -> fitz.Page:
        return self.document[page_number - 1]

    async def get_viewport(self, page_number: int) -> Viewport:
        rect = self._page(page_number).rect
        return Viewport(width=rect.width, height=rect.height)

    async def get_text_runs(self, page_number: int) -> List[TextRun]:
        page = self._page(page_number)
        page_height = page.rect.height
        runs = []

        text_dict = page.get_text("dict")
        for block in text_dict.get("blocks", []):
            if block.get("type") != 0:
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text:
                        continue
                    x0, y0, x1, y1 = span["bbox"]
                    runs.append(TextRun(
                        text=text,
                        x=x0,
                        y=page_height - y1,
                        width=x1 - x0,
                        height=y1 - y0,
                        font_name=span.get("font", ""),
                        font_size=span.get("size", 0.0)
                    ))

        return runs

    async def get_annotations(self, page_number: int) -> List[WidgetAnnotation]:
        page = self._page(page_number)
        page_height = page.rect.height
        annotations = []

        for widget in page.widgets() or []:
            field_type = widget.field_type
            flags = widget.field_flags or 0
            rect = widget.rect

            annotations.append(WidgetAnnotation(
                field_name=widget.field_name or "",
                rect=(rect.x0, page_height - rect.y1, rect.x1, page_height - rect.y0),
                field_value=None if widget.field_value is None else str(widget.field_value),
                alternative_text=widget.field_label or "",
                check_box=field_type == fitz.PDF_WIDGET_TYPE_CHECKBOX,
                radio_button=field_type == fitz.PDF_WIDGET_TYPE_RADIOBUTTON,
                combo=field_type in (fitz.PDF_WIDGET_TYPE_COMBOBOX, fitz.PDF_WIDGET_TYPE_LISTBOX),
                signature=field_type == fitz.PDF_WIDGET_TYPE_SIGNATURE,
                multi_line=bool(flags & fitz.PDF_TX_FIELD_IS_MULTILINE) and field_type == fitz.PDF_WIDGET_TYPE_TEXT,
                required=bool(flags & fitz.PDF_FIELD_IS_REQUIRED),
                read_only=bool(flags & fitz.PDF_FIELD_IS_READ_ONLY)
            ))

        return annotations

    async def get_drawing_instructions(self, page_number: int) -> List[DrawingInstruction]:
        """
        Translate PyMuPDF drawings into rectangle and path instructions.

        Drawings are already transformed by PyMuPDF, so no TRANSFORM
        instructions are emitted. Connected line and curve items become one
        path; curves contribute their end points only.
        """
        page = self._page(page_number)
        page_height = page.rect.height
        instructions: List[DrawingInstruction] = []

        for drawing in page.get_drawings():
            filled = self._is_dark_fill(drawing.get("fill"))
            path: List[Tuple[float, float]] = []

            for item in drawing.get("items", []):
                op = item[0]

                if op == "re":
                    self._flush_path(path, filled, page_height, instructions)
                    path = []
                    r = item[1]
                    instructions.append(DrawingInstruction(
                        op=DrawingOp.RECTANGLE,
                        args=(r.x0, page_height - r.y1, r.width, r.height),
                        filled=filled
                    ))
                elif op == "qu":
                    self._flush_path(path, filled, page_height, instructions)
                    path = []
                    r = item[1].rect
                    instructions.append(DrawingInstruction(
                        op=DrawingOp.RECTANGLE,
                        args=(r.x0, page_height - r.y1, r.width, r.height),
                        filled=filled
                    ))
                elif op in ("l", "c"):
                    start, end = item[1], item[-1]
                    if path and (abs(path[-1][0] - start.x) > 0.01 or abs(path[-1][1] - start.y) > 0.01):
                        self._flush_path(path, filled, page_height, instructions)
                        path = []
                    if not path:
                        path.append((start.x, start.y))
                    path.append((end.x, end.y))

            self._flush_path(path, filled, page_height, instructions)

        return instructions

    @staticmethod
    def _is_dark_fill(fill) -> bool:
        if not fill:
            return False
        return sum(fill[:3]) / 3 < DARK_FILL_THRESHOLD

    @staticmethod
    def _flush_path(
        path: List[Tuple[float, float]],
        filled: bool,
        page_height: float,
        instructions: List[DrawingInstruction]
    ) -> None:
        if len(path) < 2:
            return
        coords: List[float] = []
        for x, y in path:
            coords.extend((x, page_height - y))
        instructions.append(DrawingInstruction(op=DrawingOp.PATH, args=tuple(coords), filled=filled))

    async def render(self, page_number: int, region, scale: float) -> Image.Image:
        """
        Render a page-space region at the given scale.

        The page is rendered once per scale and cropped. Only the most recent
        page image is kept.
        """
        key = (page_number, scale)
        page_image = self._page_images.get(key)
        if page_image is None:
            page_image = await asyncio.to_thread(
                PDFHandler.page_to_image, self.pdf_bytes, page_number, self.dpi_base * scale
            )
            self._page_images.clear()
            self._page_images[key] = page_image

        box = (
            max(0, int(math.floor(region.x * scale))),
            max(0, int(math.floor(region.y * scale))),
            min(page_image.width, int(math.ceil(region.right * scale))),
            min(page_image.height, int(math.ceil(region.bottom * scale))),
        )
        if box[2] <= box[0] or box[3] <= box[1]:
            raise RasterizationError(f"Region {region.to_dict()} lies outside page {page_number}")

        return page_image.crop(box)

    def close(self) -> None:
        self._page_images.clear()
        self.document.close()
