import asyncio

import pytest

from accessible_pdf.errors import NoDocumentError
from accessible_pdf.services.document_renderer import DrawingInstruction, DrawingOp
from accessible_pdf.services.element_pipeline.element_extractor import ElementExtractor
from accessible_pdf.services.element_pipeline.elements import ElementType
from accessible_pdf.services.element_pipeline.geometry import BoundingBox

from .conftest import PAGE_HEIGHT, FakePage, FakeRenderer, text_run, widget


def extract(renderer, pages=None):
    return asyncio.run(ElementExtractor(renderer).extract_all_elements(pages))


def test_no_document_raises():
    with pytest.raises(NoDocumentError):
        asyncio.run(ElementExtractor().extract_all_elements())


def test_text_run_coordinates_are_top_left():
    renderer = FakeRenderer([FakePage(text_runs=[text_run("Heading", 72, 50, 80, 14)])])
    element = extract(renderer)[0]

    assert element.id == "text_1_0"
    assert element.type == ElementType.TEXT
    assert element.bounds == BoundingBox(72, 50, 80, 14)


def test_adjacent_fragments_are_grouped():
    renderer = FakeRenderer([FakePage(text_runs=[
        text_run("Hello", 0, 0, 50),
        text_run("World", 52, 1, 40),
    ])])
    result = extract(renderer)

    assert len(result) == 1
    grouped = result[0]
    assert grouped.id == "grouped_text_1_0"
    assert grouped.text == "Hello World"
    assert grouped.x == 0
    assert grouped.width == 92
    assert grouped.to_schema().grouped_from == ["text_1_0", "text_1_1"]


def test_distant_fragments_are_not_grouped():
    renderer = FakeRenderer([FakePage(text_runs=[
        text_run("Hello", 0, 0, 50),
        text_run("World", 70, 0, 40),
    ])])
    result = extract(renderer)
    assert [e.text for e in result] == ["Hello", "World"]


def test_grouping_is_transitive():
    renderer = FakeRenderer([FakePage(text_runs=[
        text_run("one", 0, 0, 30),
        text_run("two", 31, 0, 30),
        text_run("three", 62, 0, 40),
    ])])
    result = extract(renderer)

    assert len(result) == 1
    assert result[0].text == "one two three"
    assert result[0].width == 102


def test_empty_and_whitespace_runs_are_dropped():
    renderer = FakeRenderer([FakePage(text_runs=[
        text_run("", 0, 0, 10),
        text_run("   ", 200, 300, 20),
        text_run("Keep", 0, 100, 40),
    ])])
    assert [e.text for e in extract(renderer)] == ["Keep"]


def test_placeholder_text_is_editable():
    renderer = FakeRenderer([FakePage(text_runs=[
        text_run("Name: ________", 0, 0, 120),
        text_run("Instructions", 0, 100, 80),
    ])])
    placeholder, label = extract(renderer)
    assert placeholder.is_editable
    assert not label.is_editable


def test_widgets_map_to_form_types():
    renderer = FakeRenderer([FakePage(annotations=[
        widget("agree", 10, 100, 12, 12, check_box=True, field_value="Yes"),
        widget("color", 100, 100, 12, 12, radio_button=True),
        widget("state", 200, 100, 80, 20, combo=True),
        widget("sig", 300, 100, 200, 30, signature=True),
        widget("", 10, 200, 150, 20, alternative_text="Full name", required=True),
        widget("locked", 200, 200, 150, 20, read_only=True),
        widget("notes", 10, 300, 300, 80, multi_line=True),
    ])])
    result = extract(renderer)
    by_id = {e.id: e for e in result}

    assert by_id["form_1_0"].type == ElementType.CHECKBOX
    assert by_id["form_1_0"].value == "Yes"
    assert by_id["form_1_1"].type == ElementType.RADIO
    assert by_id["form_1_2"].type == ElementType.DROPDOWN
    assert by_id["form_1_3"].type == ElementType.SIGNATURE
    assert by_id["form_1_4"].type == ElementType.FORM_TEXT
    assert by_id["form_1_4"].text == "Full name"
    assert by_id["form_1_4"].is_required
    assert by_id["form_1_5"].is_read_only
    assert not by_id["form_1_5"].is_editable
    assert by_id["form_1_6"].type == ElementType.FORM_TEXT
    assert by_id["form_1_6"].is_multiline
    assert by_id["form_1_6"].to_dict()["is_multiline"] is True
    assert by_id["form_1_4"].to_dict()["is_multiline"] is False
    assert by_id["form_1_0"].bounds == BoundingBox(10, 100, 12, 12)


def test_shapes_become_classified_graphics():
    renderer = FakeRenderer([FakePage(instructions=[
        DrawingInstruction(DrawingOp.RECTANGLE, (100, PAGE_HEIGHT - 220, 20, 20)),
        DrawingInstruction(DrawingOp.RECTANGLE, (50, PAGE_HEIGHT - 400, 400, 2)),
    ])])
    checkbox, rule = extract(renderer)

    assert checkbox.id == "graphic_1_0"
    assert checkbox.type == ElementType.CHECKBOX
    assert checkbox.is_editable
    assert checkbox.shape_type == "rectangle"
    assert rule.type == ElementType.GRAPHIC
    assert not rule.is_editable
    assert checkbox.to_dict()["shape_type"] == "rectangle"


def test_reading_order_uses_line_tolerance():
    renderer = FakeRenderer([
        FakePage(text_runs=[
            text_run("Right", 300, 100, 40),
            text_run("Below", 10, 200, 40),
            text_run("Left", 10, 103, 30),
        ]),
        FakePage(text_runs=[text_run("Next page", 10, 0, 60)]),
    ])
    result = extract(renderer)

    assert [e.text for e in result] == ["Left", "Right", "Below", "Next page"]
    assert [e.reading_order for e in result] == [1, 2, 3, 4]


def test_reading_order_is_dense_across_element_kinds():
    renderer = FakeRenderer([FakePage(
        text_runs=[text_run("Agree", 40, 100, 40)],
        annotations=[widget("agree", 10, 100, 12, 12, check_box=True)],
        instructions=[DrawingInstruction(DrawingOp.RECTANGLE, (10, PAGE_HEIGHT - 400, 200, 40))],
    )])
    result = extract(renderer)

    assert [e.id for e in result] == ["form_1_0", "text_1_0", "graphic_1_0"]
    assert sorted(e.reading_order for e in result) == [1, 2, 3]


def test_failed_page_becomes_placeholder():
    renderer = FakeRenderer([
        FakePage(text_runs=[text_run("lost", 0, 0, 30)]),
        FakePage(text_runs=[text_run("kept", 0, 0, 30)]),
    ])
    renderer.failing_pages = {1}
    result = extract(renderer)

    assert [e.text for e in result] == ["kept"]
    assert result[0].reading_order == 1
    assert result.failed_pages == [1]
    assert "corrupt page 1" in result.pages[0].error
    assert not result.pages[1].failed


def test_graphics_failure_keeps_rest_of_page():
    renderer = FakeRenderer([FakePage(
        text_runs=[text_run("Still here", 0, 0, 60)],
        instructions=[DrawingInstruction(DrawingOp.RECTANGLE, (0, 0, 20, 20))],
    )])
    renderer.failing_drawings = {1}
    result = extract(renderer)

    assert [e.text for e in result] == ["Still here"]
    assert not result.pages[0].failed
    assert result.pages[0].warnings


def test_page_subset():
    renderer = FakeRenderer([
        FakePage(text_runs=[text_run("first", 0, 0, 30)]),
        FakePage(text_runs=[text_run("second", 0, 0, 30)]),
    ])
    result = extract(renderer, pages=[2, 2])

    assert [e.text for e in result] == ["second"]
    assert [p.page_number for p in result.pages] == [2]

    with pytest.raises(ValueError):
        extract(renderer, pages=[3])


def test_extraction_is_idempotent():
    renderer = FakeRenderer([FakePage(
        text_runs=[text_run("Hello", 0, 0, 50), text_run("World", 52, 1, 40), text_run("Other", 0, 50, 40)],
        annotations=[widget("agree", 10, 100, 12, 12, check_box=True)],
        instructions=[DrawingInstruction(DrawingOp.RECTANGLE, (100, 100, 20, 20))],
    )])

    def snapshot(result):
        return [(e.id, e.type, e.bounds, e.reading_order) for e in result]

    assert snapshot(extract(renderer)) == snapshot(extract(renderer))


def test_statistics():
    renderer = FakeRenderer([
        FakePage(
            text_runs=[text_run("Title", 0, 0, 40)],
            annotations=[widget("agree", 10, 100, 12, 12, check_box=True)],
        ),
        FakePage(text_runs=[text_run("More", 0, 0, 40)]),
    ])
    stats = extract(renderer).get_statistics()

    assert stats.total == 3
    assert stats.by_type == {"text": 2, "checkbox": 1}
    assert stats.by_page == {1: 2, 2: 1}
    assert stats.unstructured_text.total == 0


def test_result_lookups():
    renderer = FakeRenderer([FakePage(
        text_runs=[text_run("Title", 0, 0, 40)],
        annotations=[widget("agree", 10, 100, 12, 12, check_box=True)],
    )])
    result = extract(renderer)

    assert result.get_element_by_id("form_1_0").field_name == "agree"
    assert result.get_element_by_id("missing") is None
    assert len(result.get_elements_by_type("checkbox")) == 1
    assert len(result.get_elements_by_type(ElementType.TEXT)) == 1
    assert len(result.get_elements_by_page(1)) == 2


@pytest.mark.parametrize("stream", [
    ["A", "B", "C"],
    ["C", "B", "A"],
    ["B", "A", "C"],
    ["A", "C", "B"],
])
def test_reading_order_ignores_stream_order(stream):
    # tops drift 4 units per fragment: A and B share a line, C starts the next
    runs = {
        "A": text_run("A", 100, 0, 20),
        "B": text_run("B", 50, 4, 20),
        "C": text_run("C", 0, 8, 20),
    }
    renderer = FakeRenderer([FakePage(text_runs=[runs[name] for name in stream])])

    assert [e.text for e in extract(renderer)] == ["B", "A", "C"]


def test_bridging_whitespace_is_not_repeated():
    renderer = FakeRenderer([FakePage(text_runs=[
        text_run("Hello", 0, 0, 50),
        text_run(" ", 50, 0, 3),
        text_run("World", 53, 0, 40),
    ])])
    result = extract(renderer)

    assert len(result) == 1
    assert result[0].text == "Hello World"
    assert result[0].to_schema().grouped_from == ["text_1_0", "text_1_1", "text_1_2"]
