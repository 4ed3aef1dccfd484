"""
Exception hierarchy for element analysis.

Only NoDocumentError, ExtractionInProgressError and NotAnalyzedError reach
callers. The rest are raised inside the pipeline and recovered where they
occur: a failed page becomes a placeholder report, a failed detection method or
rasterization becomes an abstention.
"""
from typing import Optional


class ElementAnalysisError(Exception):
    """Base class for all element analysis errors."""


class NoDocumentError(ElementAnalysisError):
    """Raised when an extraction is requested with no document loaded."""

    def __init__(self, message: str = "No PDF document loaded"):
        super().__init__(message)


class ExtractionInProgressError(ElementAnalysisError):
    """Raised when a full extraction pass is started while another is running."""


class PageExtractionError(ElementAnalysisError):
    """A single page could not be extracted."""

    def __init__(self, page_number: int, cause: Optional[BaseException] = None):
        self.page_number = page_number
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to extract page {page_number}{detail}")


class DetectionMethodError(ElementAnalysisError):
    """A checkbox detection method failed and abstained."""

    def __init__(self, method: str, element_id: str, cause: Optional[BaseException] = None):
        self.method = method
        self.element_id = element_id
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Detection method '{method}' failed for {element_id}{detail}")


class RasterizationError(ElementAnalysisError):
    """A region could not be rendered into a pixel buffer."""


class NotAnalyzedError(ElementAnalysisError):
    """Raised when results are requested before analyze() has completed."""

    def __init__(self, message: str = "No analysis result available; call analyze() first"):
        super().__init__(message)
