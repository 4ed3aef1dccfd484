"""
Accessible Element Pipeline
===========================

Turns a rendered document's raw primitives into an ordered, classified list of
elements for assistive-technology users.

Pipeline Stages:
1. SHAPES: decode drawing instructions into page-space shapes
2. CLASSIFICATION: size/aspect rules map shapes to checkbox, signature, text field or graphic
3. EXTRACTION: text runs (grouped), widgets and shapes per page, one global reading order
4. CHECKBOX STATES: five independent signals, unweighted majority vote, ties unchecked
5. UNSTRUCTURED TEXT: additive prose-vs-form scoring

Design Principles:
- Geometry in page space, top-left origin
- Deterministic outputs (same input = same order)
- Graceful degradation: a failed page, method or rasterization never aborts a pass
"""

from .geometry import BoundingBox, ShapeAnalyzer, ShapeDescriptor
from .elements import Element, ElementType, ExtractionResult, PageReport
from .shape_classifier import ShapeClassifier
from .element_extractor import ElementExtractor
from .unstructured_text import TextAnalysis, UnstructuredTextClassifier
from .checkbox_state import (
    CheckboxDetection,
    CheckboxStateDetector,
    DetectionInput,
    MethodResult,
    combine_detection_results,
)
from .pipeline import AnalysisResult, ElementAnalysisPipeline

__all__ = [
    'ElementAnalysisPipeline',
    'AnalysisResult',
    'ElementExtractor',
    'ExtractionResult',
    'PageReport',
    'Element',
    'ElementType',
    'BoundingBox',
    'ShapeAnalyzer',
    'ShapeDescriptor',
    'ShapeClassifier',
    'UnstructuredTextClassifier',
    'TextAnalysis',
    'CheckboxStateDetector',
    'CheckboxDetection',
    'DetectionInput',
    'MethodResult',
    'combine_detection_results',
]
