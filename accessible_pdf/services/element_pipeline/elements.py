"""
Element data model and the owned result of an extraction pass.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Optional, Iterator

from ...models import (
    BoundsSchema,
    ElementSchema,
    ElementStatistics,
    PageReportSchema,
    UnstructuredTextStats,
)
from .geometry import BoundingBox

logger = logging.getLogger(__name__)


class ElementType(str, Enum):
    """Semantic types of extracted elements."""
    TEXT = "text"
    FORM_TEXT = "form-text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    SIGNATURE = "signature"
    GRAPHIC = "graphic"


@dataclass
class Element:
    """
    A single interactive or readable element on a page.

    Bounds are in page space (top-left origin). reading_order stays None until
    the extractor has sorted the whole document.
    """
    id: str
    type: ElementType
    page_number: int
    bounds: BoundingBox
    text: str = ""

    reading_order: Optional[int] = None
    confidence: Optional[float] = None

    is_likely_unstructured: bool = False
    is_editable: bool = False
    is_checked: Optional[bool] = None

    grouped_from: List['Element'] = field(default_factory=list)

    # Widget metadata
    field_name: Optional[str] = None
    value: Optional[str] = None
    is_required: bool = False
    is_read_only: bool = False
    is_multiline: bool = False

    # Text metadata
    font_name: str = ""
    font_size: float = 0.0

    # Graphic metadata
    shape_type: Optional[str] = None

    @property
    def x(self) -> float:
        return self.bounds.x

    @property
    def y(self) -> float:
        return self.bounds.y

    @property
    def width(self) -> float:
        return self.bounds.width

    @property
    def height(self) -> float:
        return self.bounds.height

    @property
    def is_grouped(self) -> bool:
        return bool(self.grouped_from)

    def to_schema(self) -> ElementSchema:
        """Convert to the consumer-facing pydantic schema."""
        return ElementSchema(
            id=self.id,
            type=self.type.value,
            page_number=self.page_number,
            bounds=BoundsSchema(**self.bounds.to_dict()),
            text=self.text,
            reading_order=self.reading_order,
            confidence=self.confidence,
            is_likely_unstructured=self.is_likely_unstructured,
            is_editable=self.is_editable,
            is_checked=self.is_checked,
            field_name=self.field_name,
            value=self.value,
            is_required=self.is_required,
            is_read_only=self.is_read_only,
            grouped_from=[e.id for e in self.grouped_from],
            is_multiline=self.is_multiline,
            font_name=self.font_name,
            font_size=self.font_size,
            shape_type=self.shape_type
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return self.to_schema().model_dump()


@dataclass
class PageReport:
    """Outcome of extracting one page."""
    page_number: int
    element_count: int = 0
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_schema(self) -> PageReportSchema:
        return PageReportSchema(
            page_number=self.page_number,
            element_count=self.element_count,
            error=self.error,
            warnings=list(self.warnings)
        )


@dataclass
class ExtractionResult:
    """
    Ordered elements of one extraction pass plus per-page reports.

    Behaves like a read-only sequence of elements.
    """
    elements: List[Element] = field(default_factory=list)
    pages: List[PageReport] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[Element]:
        return iter(self.elements)

    def __getitem__(self, index):
        return self.elements[index]

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def get_elements_by_type(self, element_type) -> List[Element]:
        element_type = ElementType(element_type)
        return [e for e in self.elements if e.type == element_type]

    def get_elements_by_page(self, page_number: int) -> List[Element]:
        return [e for e in self.elements if e.page_number == page_number]

    @property
    def failed_pages(self) -> List[int]:
        return [p.page_number for p in self.pages if p.failed]

    def get_statistics(self) -> ElementStatistics:
        """
        Aggregate counts by type, by page and for unstructured text.
        """
        by_type: Dict[str, int] = {}
        by_page: Dict[int, int] = {}
        unstructured_by_page: Dict[int, int] = {}
        unstructured_total = 0

        for element in self.elements:
            by_type[element.type.value] = by_type.get(element.type.value, 0) + 1
            by_page[element.page_number] = by_page.get(element.page_number, 0) + 1

            if element.is_likely_unstructured:
                unstructured_total += 1
                unstructured_by_page[element.page_number] = unstructured_by_page.get(element.page_number, 0) + 1

        return ElementStatistics(
            total=len(self.elements),
            by_type=by_type,
            by_page=by_page,
            unstructured_text=UnstructuredTextStats(
                total=unstructured_total,
                by_page=unstructured_by_page
            )
        )
