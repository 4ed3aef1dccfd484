import asyncio

import numpy as np
import pytest

from accessible_pdf.errors import RasterizationError
from accessible_pdf.services.element_pipeline import checkbox_state
from accessible_pdf.services.element_pipeline.checkbox_state import (
    CheckboxStateDetector,
    DetectionInput,
    MethodResult,
    combine_detection_results,
    detect_by_form_field_state,
    detect_by_path_analysis,
    detect_by_pixel_analysis,
    detect_by_text_content,
    detect_by_visual_patterns,
    is_checkmark_path,
)
from accessible_pdf.services.element_pipeline.elements import Element, ElementType
from accessible_pdf.services.element_pipeline.geometry import BoundingBox, ShapeDescriptor

from .conftest import FakePage, FakeRenderer, text_run

BLACK = (0, 0, 0, 255)


def checkbox(value=None, element_type=ElementType.CHECKBOX):
    return Element(
        id="form_1_0",
        type=element_type,
        page_number=1,
        bounds=BoundingBox(100, 100, 20, 20),
        value=value
    )


def pixels(value):
    buffer = np.full((40, 40, 4), value, dtype=np.uint8)
    buffer[..., 3] = 255
    return buffer


@pytest.mark.parametrize("states, expected", [
    ([True, True, False], True),
    ([True, False], False),
    ([None, None, None], False),
    ([], False),
    ([False, None], False),
    ([True, None, None], True),
])
def test_combine_detection_results(states, expected):
    assert combine_detection_results(states) is expected


@pytest.mark.parametrize("text, state, confidence", [
    ("✓", True, 0.9),
    ("[■]", True, 0.9),
    ("X", True, 0.9),
    ("Yes", True, 0.6),
    ("box", None, 0.0),
    ("Option", None, 0.0),
    (None, None, 0.0),
])
def test_text_content(text, state, confidence):
    result = detect_by_text_content(DetectionInput(element=checkbox(), overlapping_text=text))
    assert result.state is state
    assert result.confidence == confidence


@pytest.mark.parametrize("value, state", [
    ("Yes", True),
    ("On", True),
    (" checked ", True),
    ("Off", False),
    ("", False),
    ("maybe", None),
    (None, None),
])
def test_form_field_state(value, state):
    assert detect_by_form_field_state(DetectionInput(element=checkbox(value))).state is state


def test_checkmark_path_shape():
    assert is_checkmark_path([(0, 0), (5, 5), (15, -5)])
    assert not is_checkmark_path([(0, 0), (5, -5), (15, 5)])
    assert not is_checkmark_path([(0, 0), (5, 5)])


def test_path_analysis_v_stroke():
    stroke = ShapeDescriptor(
        shape_type="path", x=102, y=100, width=14, height=0,
        points=[(102, 110), (107, 116), (116, 100)]
    )
    result = detect_by_path_analysis(DetectionInput(element=checkbox(), shapes=[stroke]))
    assert result.state is True
    assert result.confidence == 0.85


def test_path_analysis_filled_rectangle():
    fill = ShapeDescriptor(shape_type="rectangle", x=102, y=102, width=16, height=16, filled=True)
    result = detect_by_path_analysis(DetectionInput(element=checkbox(), shapes=[fill]))
    assert result.state is True
    assert result.confidence == 0.75


def test_path_analysis_ignores_outline_and_small_fills():
    outline = ShapeDescriptor(shape_type="rectangle", x=100, y=100, width=20, height=20)
    small = ShapeDescriptor(shape_type="rectangle", x=100, y=100, width=5, height=5, filled=True)
    result = detect_by_path_analysis(DetectionInput(element=checkbox(), shapes=[outline, small]))
    assert result.abstained


def test_pixel_analysis():
    element = checkbox()
    assert detect_by_pixel_analysis(DetectionInput(element=element, pixels=pixels(0))).state is True
    assert detect_by_pixel_analysis(DetectionInput(element=element, pixels=pixels(255))).state is False
    assert detect_by_pixel_analysis(DetectionInput(element=element)).abstained


def test_visual_patterns_never_vote_unchecked():
    element = checkbox()
    assert detect_by_visual_patterns(DetectionInput(element=element, pixels=pixels(0))).state is True
    assert detect_by_visual_patterns(DetectionInput(element=element, pixels=pixels(255))).abstained


def test_tie_is_unchecked():
    detector = CheckboxStateDetector()
    detection = detector.evaluate(DetectionInput(element=checkbox("Yes"), pixels=pixels(255)))

    assert detection.checked_votes == 1
    assert detection.unchecked_votes == 1
    assert detection.is_checked is False
    assert detection.confidence == 0.7


def test_failing_method_abstains(monkeypatch):
    def broken(data):
        raise ZeroDivisionError("bad region")

    monkeypatch.setattr(checkbox_state, 'DETECTION_METHODS', (
        ('broken', broken),
        ('form_field_state', detect_by_form_field_state),
    ))
    detection = CheckboxStateDetector().evaluate(DetectionInput(element=checkbox("Yes")))

    assert detection.is_checked is True
    assert detection.results[0].abstained
    assert "bad region" in detection.results[0].error


def test_without_renderer_only_field_value_votes():
    detector = CheckboxStateDetector()
    assert asyncio.run(detector.detect_state(checkbox("On"))) is True
    assert asyncio.run(detector.detect_state(checkbox())) is False


def test_dark_raster_is_checked():
    renderer = FakeRenderer()
    renderer.fill_color = BLACK
    element = checkbox()

    detections = asyncio.run(CheckboxStateDetector(renderer).detect_checkbox_states([element]))

    assert element.is_checked is True
    assert element.confidence == 1.0
    assert detections[0].checked_votes == 2


def test_blank_raster_is_unchecked():
    element = checkbox()
    asyncio.run(CheckboxStateDetector(FakeRenderer()).detect_checkbox_states([element]))

    assert element.is_checked is False
    assert element.confidence == 0.7


def test_overlapping_text_votes():
    renderer = FakeRenderer([FakePage(text_runs=[text_run("✓", 102, 102, 10)])])
    detection = asyncio.run(CheckboxStateDetector(renderer)._detect(checkbox(), {}))

    text_result = detection.results[0]
    assert text_result.method == 'text_content'
    assert text_result.state is True


def test_rasterization_failure_is_abstention():
    renderer = FakeRenderer()
    renderer.render_error = RasterizationError("renderer cancelled")
    element = checkbox("Yes")

    detections = asyncio.run(CheckboxStateDetector(renderer).detect_checkbox_states([element]))

    assert element.is_checked is True
    by_method = {r.method: r for r in detections[0].results}
    assert by_method['pixel_analysis'].abstained
    assert by_method['visual_patterns'].abstained
    assert "renderer cancelled" in by_method['pixel_analysis'].error


def test_rasterization_timeout_is_abstention():
    renderer = FakeRenderer()
    renderer.render_delay = 1.0
    detector = CheckboxStateDetector(renderer, raster_timeout=0.01)

    detection = asyncio.run(detector._detect(checkbox("Off"), {}))

    assert detection.is_checked is False
    by_method = {r.method: r for r in detection.results}
    assert "timed out" in by_method['pixel_analysis'].error


def test_page_source_failures_do_not_stop_detection():
    renderer = FakeRenderer()
    renderer.failing_drawings = {1}
    renderer.fill_color = BLACK

    assert asyncio.run(CheckboxStateDetector(renderer).detect_state(checkbox())) is True


def test_only_checkboxes_are_annotated():
    renderer = FakeRenderer()
    radio = checkbox(element_type=ElementType.RADIO)
    box = checkbox()

    detections = asyncio.run(CheckboxStateDetector(renderer).detect_checkbox_states([radio, box]))

    assert len(detections) == 1
    assert radio.is_checked is None
    assert box.is_checked is False


def test_detection_schema():
    detection = CheckboxStateDetector().evaluate(DetectionInput(element=checkbox("Yes")))
    schema = detection.to_schema()

    assert schema.element_id == "form_1_0"
    assert schema.is_checked is True
    assert [m.method for m in schema.methods] == [name for name, _ in checkbox_state.DETECTION_METHODS]
    assert isinstance(detection.results[0], MethodResult)
