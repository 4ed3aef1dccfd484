"""
Unstructured text classification.

Decides whether a text element is free-form prose (edited as a paragraph) or
part of a form (a label, a blank, a bracketed placeholder).

Scoring:
--------
Each signal adds to the score independently:

    length > 50 characters                       +0.4  (marks unstructured)
    sentence structure                           +0.3  (marks unstructured)
    contains a newline, period or comma          +0.2  (marks unstructured)
    more than 3 words and not a form-field text  +0.3  (marks unstructured)
    box wider than 200 and taller than 30        +0.2  (marks unstructured)
    not a form-field text                        +0.1

The raw sum can reach 1.5. TextAnalysis keeps it in raw_score; confidence is
clamped to [0, 1] unless Config.CLAMP_UNSTRUCTURED_CONFIDENCE is turned off.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Iterable, Optional

from ...config import Config
from .elements import Element, ElementType

logger = logging.getLogger(__name__)


@dataclass
class TextAnalysis:
    """Result of classifying one text element."""
    is_unstructured: bool = False
    confidence: float = 0.0
    reasons: List[str] = field(default_factory=list)
    raw_score: float = 0.0


class UnstructuredTextClassifier:
    """Heuristic prose-vs-form classifier for text elements."""

    LONG_TEXT_LENGTH = 50
    MULTI_WORD_COUNT = 3
    LARGE_AREA_WIDTH = 200
    LARGE_AREA_HEIGHT = 30
    MIN_TEXT_LENGTH = 3

    SENTENCE_PATTERNS = [
        re.compile(r'[.!?]\s+[A-Z]'),
        re.compile(r'\b(the|and|or|but|however|therefore|because|since|when|where|what|who|how)\b', re.IGNORECASE),
        re.compile(r'\b(is|are|was|were|has|have|had|will|would|could|should|can|may|might)\b', re.IGNORECASE),
    ]

    FORM_FIELD_PATTERNS = [
        re.compile(r'^[_\s]*$'),
        re.compile(r'^\[.*\]$', re.DOTALL),
        re.compile(r'^\s*(name|date|signature)\s*:', re.IGNORECASE),
        re.compile(r'_{3,}'),
    ]

    def __init__(self, clamp_confidence: Optional[bool] = None):
        """
        Initialize the classifier.

        Args:
            clamp_confidence: Clamp confidence to [0, 1] (defaults to Config.CLAMP_UNSTRUCTURED_CONFIDENCE)
        """
        if clamp_confidence is None:
            clamp_confidence = Config.CLAMP_UNSTRUCTURED_CONFIDENCE
        self.clamp_confidence = clamp_confidence

    def contains_sentences(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.SENTENCE_PATTERNS)

    def is_form_field_text(self, text: str) -> bool:
        if len(text) < self.MIN_TEXT_LENGTH:
            return True
        return any(pattern.search(text) for pattern in self.FORM_FIELD_PATTERNS)

    def classify(self, element: Element) -> TextAnalysis:
        """
        Score a text element.

        Args:
            element: Text element to classify

        Returns:
            TextAnalysis with the decision, confidence and the signals that fired
        """
        text = element.text or ''
        analysis = TextAnalysis()
        is_form_field = self.is_form_field_text(text)

        if len(text) > self.LONG_TEXT_LENGTH:
            analysis.is_unstructured = True
            analysis.raw_score += 0.4
            analysis.reasons.append('Long text content')

        if self.contains_sentences(text):
            analysis.is_unstructured = True
            analysis.raw_score += 0.3
            analysis.reasons.append('Contains sentence structure')

        if '\n' in text or '.' in text or ',' in text:
            analysis.is_unstructured = True
            analysis.raw_score += 0.2
            analysis.reasons.append('Contains paragraph indicators')

        if len(text.split()) > self.MULTI_WORD_COUNT and not is_form_field:
            analysis.is_unstructured = True
            analysis.raw_score += 0.3
            analysis.reasons.append('Multi-word non-form content')

        if element.width > self.LARGE_AREA_WIDTH and element.height > self.LARGE_AREA_HEIGHT:
            analysis.is_unstructured = True
            analysis.raw_score += 0.2
            analysis.reasons.append('Large text area')

        if not is_form_field:
            analysis.raw_score += 0.1
            analysis.reasons.append('Not a form field')

        analysis.raw_score = round(analysis.raw_score, 6)
        if self.clamp_confidence:
            analysis.confidence = min(max(analysis.raw_score, 0.0), 1.0)
        else:
            analysis.confidence = analysis.raw_score

        return analysis

    def annotate(self, elements: Iterable[Element]) -> int:
        """
        Classify every text element in place.

        Sets is_likely_unstructured and a clamped confidence on each text element.

        Returns:
            Number of elements flagged as unstructured
        """
        flagged = 0
        for element in elements:
            if element.type != ElementType.TEXT:
                continue

            analysis = self.classify(element)
            element.is_likely_unstructured = analysis.is_unstructured
            element.confidence = min(max(analysis.raw_score, 0.0), 1.0)

            if analysis.is_unstructured:
                flagged += 1
                logger.debug(
                    f"Text {element.id} is unstructured (score {analysis.raw_score:.2f}): "
                    f"{', '.join(analysis.reasons)}"
                )

        logger.info(f"Flagged {flagged} unstructured text elements")
        return flagged
