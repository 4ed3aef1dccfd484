"""
Pydantic models for consumer-facing element schemas.
"""
from typing import Optional, List, Dict
from pydantic import BaseModel, Field


class BoundsSchema(BaseModel):
    """Page-space bounds, top-left origin."""
    x: float
    y: float
    width: float
    height: float


class ElementSchema(BaseModel):
    """A single extracted element as handed to overlay and announcer consumers."""
    id: str
    type: str = Field(..., description="text, form-text, checkbox, radio, dropdown, signature or graphic")
    page_number: int = Field(..., ge=1)
    bounds: BoundsSchema
    text: str = ""
    reading_order: Optional[int] = Field(None, ge=1, description="1-based position in the global reading order")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="Heuristic classification certainty")
    is_likely_unstructured: bool = False
    is_editable: bool = False
    is_checked: Optional[bool] = Field(None, description="Checkbox state (checkboxes only)")
    field_name: Optional[str] = None
    value: Optional[str] = None
    is_required: bool = False
    is_read_only: bool = False
    grouped_from: List[str] = Field(default_factory=list, description="Ids of merged text runs")
    is_multiline: bool = Field(False, description="Multi-line text field (form-text only)")
    font_name: str = ""
    font_size: float = 0.0
    shape_type: Optional[str] = Field(None, description="rectangle or path (shape-derived elements only)")


class UnstructuredTextStats(BaseModel):
    """Counts of elements flagged as free-form prose."""
    total: int = 0
    by_page: Dict[int, int] = Field(default_factory=dict)


class ElementStatistics(BaseModel):
    """Aggregate statistics for one extraction pass."""
    total: int
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_page: Dict[int, int] = Field(default_factory=dict)
    unstructured_text: UnstructuredTextStats = Field(default_factory=UnstructuredTextStats)


class PageReportSchema(BaseModel):
    """Per-page extraction outcome."""
    page_number: int
    element_count: int
    error: Optional[str] = Field(None, description="Set when the page was replaced by a placeholder")
    warnings: List[str] = Field(default_factory=list)


class MethodResultSchema(BaseModel):
    """Outcome of one checkbox detection method."""
    method: str
    state: Optional[bool] = Field(None, description="None means the method abstained")
    confidence: float = 0.0
    error: Optional[str] = None


class CheckboxDetectionSchema(BaseModel):
    """Diagnostic report for one checkbox."""
    element_id: str
    is_checked: bool
    checked_votes: int
    unchecked_votes: int
    methods: List[MethodResultSchema] = Field(default_factory=list)


class ExtractionSummary(BaseModel):
    """Full serializable output of an analysis pass."""
    elements: List[ElementSchema]
    pages: List[PageReportSchema]
    statistics: ElementStatistics
    checkbox_detections: List[CheckboxDetectionSchema] = Field(default_factory=list)
