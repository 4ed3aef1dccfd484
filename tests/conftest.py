import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

import pytest
from PIL import Image

from accessible_pdf.services.document_renderer import (
    DocumentRenderer,
    DrawingInstruction,
    TextRun,
    Viewport,
    WidgetAnnotation,
)

PAGE_WIDTH = 612.0
PAGE_HEIGHT = 792.0


@dataclass
class FakePage:
    text_runs: List[TextRun] = field(default_factory=list)
    annotations: List[WidgetAnnotation] = field(default_factory=list)
    instructions: List[DrawingInstruction] = field(default_factory=list)


class FakeRenderer(DocumentRenderer):
    """In-memory renderer serving hand-built page content."""

    def __init__(self, pages: Optional[List[FakePage]] = None):
        self.pages = pages if pages is not None else [FakePage()]
        self.viewport = Viewport(width=PAGE_WIDTH, height=PAGE_HEIGHT)

        self.failing_pages: Set[int] = set()
        self.failing_drawings: Set[int] = set()
        self.delay = 0.0

        # Rasterization behaviour
        self.fill_color: Tuple[int, int, int, int] = (255, 255, 255, 255)
        self.render_error: Optional[Exception] = None
        self.render_delay = 0.0
        self.render_calls = 0
        self.closed = False

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def _page(self, page_number: int) -> FakePage:
        return self.pages[page_number - 1]

    async def get_viewport(self, page_number: int) -> Viewport:
        if self.delay:
            await asyncio.sleep(self.delay)
        if page_number in self.failing_pages:
            raise RuntimeError(f"corrupt page {page_number}")
        return self.viewport

    async def get_text_runs(self, page_number: int) -> List[TextRun]:
        return list(self._page(page_number).text_runs)

    async def get_annotations(self, page_number: int) -> List[WidgetAnnotation]:
        return list(self._page(page_number).annotations)

    async def get_drawing_instructions(self, page_number: int) -> List[DrawingInstruction]:
        if page_number in self.failing_drawings:
            raise RuntimeError("operator list unavailable")
        return list(self._page(page_number).instructions)

    async def render(self, page_number: int, region, scale: float) -> Image.Image:
        self.render_calls += 1
        if self.render_delay:
            await asyncio.sleep(self.render_delay)
        if self.render_error is not None:
            raise self.render_error

        size = (max(1, int(region.width * scale)), max(1, int(region.height * scale)))
        return Image.new('RGBA', size, self.fill_color)

    def close(self) -> None:
        self.closed = True


def text_run(text: str, x: float, top: float, width: float, height: float = 10.0) -> TextRun:
    """Build a run from top-left page coordinates."""
    return TextRun(text=text, x=x, y=PAGE_HEIGHT - top - height, width=width, height=height)


def widget(name: str, x: float, top: float, width: float, height: float, **flags) -> WidgetAnnotation:
    """Build a widget from top-left page coordinates."""
    y1 = PAGE_HEIGHT - top
    return WidgetAnnotation(field_name=name, rect=(x, y1 - height, x + width, y1), **flags)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def make_renderer():
    def _make(*pages: FakePage) -> FakeRenderer:
        return FakeRenderer(list(pages) or None)
    return _make
