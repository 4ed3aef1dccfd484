"""
Element Analysis Pipeline
=========================

The orchestrator consumers talk to. Owns one loaded document at a time and
coordinates the extraction pass and both annotation post-passes.

Pipeline Stages:
----------------
1. EXTRACTION: text runs, widgets and classified shapes, globally ordered
2. CHECKBOX STATES: five-method vote per checkbox
3. UNSTRUCTURED TEXT: prose-vs-form scoring per text element

Caching and invalidation:
-------------------------
- The last AnalysisResult is kept on the pipeline as `result`
- It is dropped by load(), clear(), and replaced by the next analyze()
- Elements are never merged across passes

Only one analyze() may run at a time; a second concurrent call raises
ExtractionInProgressError instead of interleaving with the first.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ...config import Config
from ...errors import ExtractionInProgressError, NoDocumentError, NotAnalyzedError
from ...models import ExtractionSummary
from ..document_renderer import DocumentRenderer
from .checkbox_state import CheckboxDetection, CheckboxStateDetector
from .element_extractor import ElementExtractor
from .elements import Element, ExtractionResult
from .unstructured_text import UnstructuredTextClassifier

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Extraction output plus post-pass diagnostics."""
    extraction: ExtractionResult
    checkbox_detections: List[CheckboxDetection] = field(default_factory=list)
    unstructured_count: int = 0
    processing_time_ms: int = 0

    @property
    def elements(self) -> List[Element]:
        return self.extraction.elements

    def to_summary(self) -> ExtractionSummary:
        return ExtractionSummary(
            elements=[e.to_schema() for e in self.extraction.elements],
            pages=[p.to_schema() for p in self.extraction.pages],
            statistics=self.extraction.get_statistics(),
            checkbox_detections=[d.to_schema() for d in self.checkbox_detections]
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return self.to_summary().model_dump(mode='json')


class ElementAnalysisPipeline:
    """
    Accessible element analysis for one document.

    Example usage:

        pipeline = ElementAnalysisPipeline()
        pipeline.load(PyMuPDFRenderer.from_path('form.pdf'))

        result = await pipeline.analyze()
        for element in result.elements:
            print(element.reading_order, element.type.value, element.text)
    """

    def __init__(
        self,
        renderer: Optional[DocumentRenderer] = None,
        detect_checkbox_states: Optional[bool] = None,
        classify_unstructured_text: Optional[bool] = None
    ):
        """
        Initialize the pipeline.

        Args:
            renderer: Optional renderer of the document to analyze
            detect_checkbox_states: Run the checkbox post-pass (defaults to Config.DETECT_CHECKBOX_STATES)
            classify_unstructured_text: Run the text post-pass (defaults to Config.CLASSIFY_UNSTRUCTURED_TEXT)
        """
        self.renderer: Optional[DocumentRenderer] = None
        self.result: Optional[AnalysisResult] = None
        self._extraction_in_progress = False

        self.detect_checkbox_states = (
            Config.DETECT_CHECKBOX_STATES if detect_checkbox_states is None else detect_checkbox_states
        )
        self.classify_unstructured_text = (
            Config.CLASSIFY_UNSTRUCTURED_TEXT if classify_unstructured_text is None else classify_unstructured_text
        )

        self.extractor = ElementExtractor()
        self.checkbox_detector = CheckboxStateDetector()
        self.text_classifier = UnstructuredTextClassifier()

        if renderer is not None:
            self.load(renderer)

        logger.info(
            f"Initialized ElementAnalysisPipeline - "
            f"checkbox detection: {self.detect_checkbox_states}, "
            f"unstructured text: {self.classify_unstructured_text}"
        )

    @property
    def is_extracting(self) -> bool:
        return self._extraction_in_progress

    def load(self, renderer: DocumentRenderer) -> None:
        """
        Load a new document and drop any cached result.

        The pipeline owns its renderer: a previously loaded renderer is closed.
        """
        if self._extraction_in_progress:
            raise ExtractionInProgressError("Cannot load a document while extraction is in progress")

        if self.renderer is not None and self.renderer is not renderer:
            self.renderer.close()

        self.renderer = renderer
        self.extractor.renderer = renderer
        self.checkbox_detector.renderer = renderer
        self.result = None
        logger.info(f"Loaded document with {renderer.page_count} pages")

    def clear(self) -> None:
        """Drop the cached result, keeping the document loaded."""
        self.result = None

    async def analyze(self, pages: Optional[Iterable[int]] = None) -> AnalysisResult:
        """
        Run extraction and the post-passes on the loaded document.

        Args:
            pages: Optional 1-based page numbers (default: all pages)

        Returns:
            AnalysisResult, also cached as self.result

        Raises:
            NoDocumentError: If no document is loaded
            ExtractionInProgressError: If another analyze() is still running
        """
        if self.renderer is None:
            raise NoDocumentError()
        if self._extraction_in_progress:
            raise ExtractionInProgressError("An extraction pass is already in progress")

        self._extraction_in_progress = True
        start_time = time.time()
        try:
            extraction = await self.extractor.extract_all_elements(pages)
            result = AnalysisResult(extraction=extraction)

            if self.detect_checkbox_states:
                result.checkbox_detections = await self.checkbox_detector.detect_checkbox_states(
                    extraction.elements
                )

            if self.classify_unstructured_text:
                result.unstructured_count = self.text_classifier.annotate(extraction.elements)

            result.processing_time_ms = int((time.time() - start_time) * 1000)
            self.result = result
        finally:
            self._extraction_in_progress = False

        logger.info(
            f"Analysis complete: {len(result.elements)} elements, "
            f"{len(result.checkbox_detections)} checkboxes, "
            f"{result.unstructured_count} unstructured text elements "
            f"in {result.processing_time_ms}ms"
        )
        return result

    def _require_result(self) -> AnalysisResult:
        if self.result is None:
            raise NotAnalyzedError()
        return self.result

    def get_all_elements(self) -> List[Element]:
        return list(self._require_result().elements)

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        return self._require_result().extraction.get_element_by_id(element_id)

    def get_elements_by_type(self, element_type) -> List[Element]:
        return self._require_result().extraction.get_elements_by_type(element_type)

    def get_elements_by_page(self, page_number: int) -> List[Element]:
        return self._require_result().extraction.get_elements_by_page(page_number)

    def get_statistics(self):
        return self._require_result().extraction.get_statistics()
