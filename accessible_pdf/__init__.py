"""
Accessible PDF element analysis.

Extracts text, form fields and graphics from rendered PDF pages, orders them
for assistive technology, detects checkbox states and flags free-form prose.
"""

from .config import Config
from .errors import (
    DetectionMethodError,
    ElementAnalysisError,
    ExtractionInProgressError,
    NoDocumentError,
    NotAnalyzedError,
    PageExtractionError,
    RasterizationError,
)
from .services.document_renderer import DocumentRenderer
from .services.element_pipeline import (
    AnalysisResult,
    Element,
    ElementAnalysisPipeline,
    ElementType,
    ExtractionResult,
)

__version__ = "0.1.0"

__all__ = [
    'Config',
    'DocumentRenderer',
    'ElementAnalysisPipeline',
    'AnalysisResult',
    'ExtractionResult',
    'Element',
    'ElementType',
    'ElementAnalysisError',
    'NoDocumentError',
    'NotAnalyzedError',
    'ExtractionInProgressError',
    'PageExtractionError',
    'DetectionMethodError',
    'RasterizationError',
]
