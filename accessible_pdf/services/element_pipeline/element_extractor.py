"""
Element Extraction Service
==========================

Extracts every readable or interactive element of a document and puts them in
screen-reader reading order.

Per page, three disjoint streams are collected and concatenated:
1. Text runs from the renderer, grouped into phrases
2. Form widgets from the renderer's annotation list
3. Graphic shapes decoded from the drawing-instruction stream and classified
   by size (checkbox, signature area, text field, generic graphic)

After all pages are collected the whole list is sorted once and reading_order
is assigned 1..N.

Tradeoffs:
----------
1. Text grouping only merges runs on the same visual line:
   - Renderers emit one run per contiguous glyph run, so a phrase can arrive
     as several fragments
   - Multi-line paragraphs stay as one element per line

2. Reading order uses a 5px line tolerance:
   - A line is anchored at its topmost element; elements whose tops lie
     within 5px of the anchor join it and are read left to right
   - Assumes left-to-right, top-to-bottom scripts only

3. Page failures are isolated:
   - A page that raises is recorded as a placeholder with zero elements
   - Shape analysis failures only drop that page's graphics
"""

import logging
from typing import List, Optional, Iterable, Tuple

from ...errors import NoDocumentError, PageExtractionError
from ..document_renderer import DocumentRenderer, TextRun, Viewport, WidgetAnnotation
from .elements import Element, ElementType, ExtractionResult, PageReport
from .geometry import BoundingBox, ShapeAnalyzer
from .shape_classifier import ShapeClassifier

logger = logging.getLogger(__name__)


class ElementExtractor:
    """
    Extracts and orders elements from the document behind a DocumentRenderer.

    Every call to extract_all_elements builds a fresh ExtractionResult; nothing
    is carried over from earlier passes.
    """

    # Elements whose tops differ by at most this many units share a line
    LINE_TOLERANCE = 5.0

    # Grouping: vertical centers within half the shorter run's height,
    # horizontal gap within 10% of the preceding run's width
    GROUP_VERTICAL_RATIO = 0.5
    GROUP_GAP_RATIO = 0.1

    # Text that marks a fill-in area
    EDITABLE_TEXT_INDICATORS = ['___', '...', 'Enter', 'Type', 'Fill']

    def __init__(
        self,
        renderer: Optional[DocumentRenderer] = None,
        shape_analyzer: Optional[ShapeAnalyzer] = None,
        shape_classifier: Optional[ShapeClassifier] = None
    ):
        """
        Initialize the extractor.

        Args:
            renderer: Renderer of the loaded document (None if nothing is loaded)
            shape_analyzer: Optional pre-configured ShapeAnalyzer
            shape_classifier: Optional pre-configured ShapeClassifier
        """
        self.renderer = renderer
        self.shape_analyzer = shape_analyzer or ShapeAnalyzer()
        self.shape_classifier = shape_classifier or ShapeClassifier()

    async def extract_all_elements(self, pages: Optional[Iterable[int]] = None) -> ExtractionResult:
        """
        Extract all elements of the loaded document in reading order.

        Args:
            pages: Optional 1-based page numbers to extract (default: all pages)

        Returns:
            ExtractionResult with elements sorted and numbered

        Raises:
            NoDocumentError: If no document is loaded
            ValueError: If a requested page does not exist
        """
        if self.renderer is None:
            raise NoDocumentError()

        page_numbers = self._resolve_pages(pages)
        logger.info(f"Extracting elements from {len(page_numbers)} pages...")

        result = ExtractionResult()

        # Pages run strictly in order, one at a time
        for page_number in page_numbers:
            try:
                page_elements, report = await self.extract_page_elements(page_number)
            except Exception as e:
                error = PageExtractionError(page_number, e)
                logger.warning(f"{error}. Recording placeholder and continuing.")
                page_elements = []
                report = PageReport(page_number=page_number, element_count=0, error=str(e) or type(e).__name__)

            result.elements.extend(page_elements)
            result.pages.append(report)

        self.sort_by_reading_order(result.elements)

        logger.info(
            f"Extracted {len(result.elements)} elements total "
            f"({len(result.failed_pages)} failed pages)"
        )
        return result

    def _resolve_pages(self, pages: Optional[Iterable[int]]) -> List[int]:
        page_count = self.renderer.page_count
        if pages is None:
            return list(range(1, page_count + 1))

        resolved = sorted(set(pages))
        for page_number in resolved:
            if page_number < 1 or page_number > page_count:
                raise ValueError(f"Page {page_number} out of range 1..{page_count}")
        return resolved

    async def extract_page_elements(self, page_number: int) -> Tuple[List[Element], PageReport]:
        """
        Extract the elements of a single page (unsorted).

        Args:
            page_number: 1-based page number

        Returns:
            Tuple of (elements, page report)
        """
        viewport = await self.renderer.get_viewport(page_number)
        report = PageReport(page_number=page_number)

        page_elements: List[Element] = []

        text_elements = await self._extract_text_elements(page_number, viewport)
        page_elements.extend(text_elements)

        form_elements = await self._extract_form_elements(page_number, viewport)
        page_elements.extend(form_elements)

        graphic_elements = await self._extract_graphic_elements(page_number, viewport, report)
        page_elements.extend(graphic_elements)

        report.element_count = len(page_elements)
        logger.info(
            f"Page {page_number}: {len(page_elements)} elements extracted "
            f"({len(text_elements)} text, {len(form_elements)} form, {len(graphic_elements)} graphic)"
        )
        return page_elements, report

    async def _extract_text_elements(self, page_number: int, viewport: Viewport) -> List[Element]:
        """Extract text runs and group fragments on the same line."""
        runs = await self.renderer.get_text_runs(page_number)

        text_elements = []
        for run in runs:
            if not run.text:
                continue
            text_elements.append(self._text_run_to_element(run, page_number, len(text_elements), viewport))

        grouped = self.group_nearby_text_elements(text_elements)

        # Whitespace runs only matter as bridges between fragments
        grouped = [e for e in grouped if e.text.strip()]

        logger.debug(f"Page {page_number}: {len(grouped)} text elements from {len(text_elements)} runs")
        return grouped

    def _text_run_to_element(self, run: TextRun, page_number: int, index: int, viewport: Viewport) -> Element:
        bounds = BoundingBox.from_native_rect(
            run.x, run.y, run.x + run.width, run.y + run.height, viewport
        )
        return Element(
            id=f"text_{page_number}_{index}",
            type=ElementType.TEXT,
            page_number=page_number,
            bounds=bounds,
            text=run.text,
            is_editable=self.is_text_editable(run.text),
            font_name=run.font_name,
            font_size=run.font_size or run.height
        )

    def is_text_editable(self, text: str) -> bool:
        """Text that looks like a fill-in placeholder is editable."""
        text = text.strip()
        return any(indicator in text for indicator in self.EDITABLE_TEXT_INDICATORS)

    async def _extract_form_elements(self, page_number: int, viewport: Viewport) -> List[Element]:
        """Map widget annotations to form elements."""
        annotations = await self.renderer.get_annotations(page_number)

        form_elements = []
        for annotation in annotations:
            x0, y0, x1, y1 = annotation.rect
            element = Element(
                id=f"form_{page_number}_{len(form_elements)}",
                type=self.get_form_field_type(annotation),
                page_number=page_number,
                bounds=BoundingBox.from_native_rect(x0, y0, x1, y1, viewport),
                text=annotation.field_name or annotation.alternative_text or '',
                is_editable=not annotation.read_only,
                field_name=annotation.field_name,
                value=annotation.field_value,
                is_required=annotation.required,
                is_read_only=annotation.read_only,
                is_multiline=annotation.multi_line
            )
            form_elements.append(element)

        return form_elements

    def get_form_field_type(self, annotation: WidgetAnnotation) -> ElementType:
        """Determine the element type from widget flags."""
        if annotation.check_box:
            return ElementType.CHECKBOX
        if annotation.radio_button:
            return ElementType.RADIO
        if annotation.combo:
            return ElementType.DROPDOWN
        if annotation.signature:
            return ElementType.SIGNATURE
        return ElementType.FORM_TEXT

    async def _extract_graphic_elements(
        self,
        page_number: int,
        viewport: Viewport,
        report: PageReport
    ) -> List[Element]:
        """Decode and classify the page's vector shapes."""
        try:
            instructions = await self.renderer.get_drawing_instructions(page_number)
            shapes = self.shape_analyzer.analyze(instructions, viewport)
        except Exception as e:
            logger.warning(f"Could not extract graphics from page {page_number}: {e}")
            report.warnings.append(f"Shape analysis skipped: {e}")
            return []

        graphic_elements = []
        for shape in shapes:
            element_type = self.shape_classifier.classify(shape)
            graphic_elements.append(Element(
                id=f"graphic_{page_number}_{len(graphic_elements)}",
                type=element_type,
                page_number=page_number,
                bounds=shape.bounds,
                text='',
                is_editable=element_type != ElementType.GRAPHIC,
                shape_type=shape.shape_type
            ))

        return graphic_elements

    def _are_adjacent(self, current: Element, candidate: Element) -> bool:
        """
        Check whether candidate continues current on the same line.

        (a) vertical centers differ by less than half the shorter height
        (b) gap from the end of current to the start of candidate is within
            10% of current's width
        """
        shorter_height = min(current.height, candidate.height)
        same_line = abs(candidate.bounds.center_y - current.bounds.center_y) < shorter_height * self.GROUP_VERTICAL_RATIO

        gap = candidate.bounds.left - current.bounds.right
        close_enough = abs(gap) <= current.width * self.GROUP_GAP_RATIO

        return same_line and close_enough

    def group_nearby_text_elements(self, text_elements: List[Element]) -> List[Element]:
        """
        Merge adjacent text fragments of one page.

        Merging is transitive: once a run is absorbed it becomes the tail of the
        group and the next fragment is compared against it.
        """
        grouped = []
        processed = set()

        for i, element in enumerate(text_elements):
            if i in processed:
                continue
            processed.add(i)

            group = [element]
            tail = element
            extended = True

            while extended:
                extended = False
                for j in range(i + 1, len(text_elements)):
                    if j in processed:
                        continue
                    candidate = text_elements[j]
                    if candidate.page_number == tail.page_number and self._are_adjacent(tail, candidate):
                        group.append(candidate)
                        processed.add(j)
                        tail = candidate
                        extended = True
                        break

            if len(group) > 1:
                grouped.append(self._create_grouped_text_element(group))
            else:
                grouped.append(element)

        return grouped

    def _create_grouped_text_element(self, group: List[Element]) -> Element:
        first = group[0]
        bounds = first.bounds
        for member in group[1:]:
            bounds = bounds.union(member.bounds)

        return Element(
            id=f"grouped_{first.id}",
            type=ElementType.TEXT,
            page_number=first.page_number,
            bounds=bounds,
            text=' '.join(member.text.strip() for member in group if member.text.strip()),
            is_editable=any(member.is_editable for member in group),
            grouped_from=list(group),
            font_name=first.font_name,
            font_size=first.font_size
        )

    def _split_into_lines(self, elements: List[Element]) -> List[List[Element]]:
        """
        Split (page, y, x)-sorted elements into visual lines.

        A line starts at its topmost element; every following element whose
        top lies within LINE_TOLERANCE of that anchor joins it.
        """
        lines: List[List[Element]] = []
        anchor: Optional[Element] = None

        for element in elements:
            if (
                anchor is None or
                element.page_number != anchor.page_number or
                element.y - anchor.y > self.LINE_TOLERANCE
            ):
                lines.append([])
                anchor = element
            lines[-1].append(element)

        return lines

    def sort_by_reading_order(self, elements: List[Element]) -> List[Element]:
        """
        Sort elements in place by page, line and x, and number them 1..N.

        The result does not depend on the order elements arrive in.
        """
        elements.sort(key=lambda e: (e.page_number, e.y, e.x, e.id))

        ordered: List[Element] = []
        for line in self._split_into_lines(elements):
            ordered.extend(sorted(line, key=lambda e: (e.x, e.y, e.id)))
        elements[:] = ordered

        for index, element in enumerate(elements):
            element.reading_order = index + 1

        return elements
