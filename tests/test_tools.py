import json
import threading

import pytest

pytest.importorskip("pptx")

from pptx_deck.tools import PresentationTools, ToolResult
from tests.converter_stubs import FakeConverter


def _ok(result: ToolResult) -> str:
    assert not result.is_error, result.text
    return result.text


def test_create_presentation_reports_state_path(tools, store):
    text = _ok(tools.create_presentation("deck", title="Demo"))
    assert text == f"Created presentation state: {store.path_for('deck')}"
    assert store.load("deck").metadata.title == "Demo"


def test_create_twice_fails_unless_forced(tools, store):
    _ok(tools.create_presentation("deck"))
    _ok(tools.add_slide("deck"))

    result = tools.create_presentation("deck")
    assert result.is_error
    assert result.text.startswith("Failed to create presentation: ")
    assert len(store.load("deck").slides) == 1

    _ok(tools.create_presentation("deck", force=True))
    assert store.load("deck").slides == []


def test_invalid_name_is_an_error_result(tools):
    result = tools.create_presentation("")
    assert result.is_error
    assert result.text.startswith("Failed to create presentation: Invalid input")


def test_list_presentations(tools):
    assert json.loads(_ok(tools.list_presentations())) == []
    _ok(tools.create_presentation("b"))
    _ok(tools.create_presentation("a"))
    assert json.loads(_ok(tools.list_presentations())) == ["a", "b"]


def test_add_slide_then_get_slide_round_trips(tools):
    _ok(tools.create_presentation("deck"))
    texts = [
        {"text": "Hello", "options": {"x": 1, "y": 1, "fontSize": 32, "bold": True}},
        [{"text": "a"}, {"text": "b", "options": {"hyperlink": {"url": "https://example.com"}}}],
    ]

    text = _ok(
        tools.add_slide(
            "deck",
            background={"color": "FFFFFF"},
            color="000000",
            slide_number={"x": 9, "y": 5},
            texts=texts,
        )
    )
    assert text == "Added slide 0 to presentation: deck (1 slides)"

    slide = json.loads(_ok(tools.get_slide("deck", 0)))
    assert slide == {
        "background": {"color": "FFFFFF"},
        "color": "000000",
        "slideNumber": {"x": 9.0, "y": 5.0},
        "texts": texts,
    }


def test_add_slide_reports_every_validation_problem(tools, store):
    _ok(tools.create_presentation("deck"))
    result = tools.add_slide(
        "deck",
        background={"transparency": 120},
        texts=[{"text": "x", "options": {"fontSize": 2, "color": "blue"}}],
    )
    assert result.is_error
    assert result.text.startswith("Failed to add slide: Invalid input")
    for field in ("transparency", "fontSize", "color"):
        assert field in result.text
    assert store.load("deck").slides == []


def test_add_slide_to_missing_presentation(tools):
    result = tools.add_slide("ghost", texts=[{"text": "x"}])
    assert result.is_error
    assert "ghost" in result.text


def test_get_slides_keeps_insertion_order(tools):
    _ok(tools.create_presentation("deck"))
    for word in ("one", "two", "three"):
        _ok(tools.add_slide("deck", texts=[{"text": word}]))

    slides = json.loads(_ok(tools.get_slides("deck")))
    assert [slide["texts"][0]["text"] for slide in slides] == ["one", "two", "three"]


def test_replace_and_remove_slide(tools):
    _ok(tools.create_presentation("deck"))
    for word in ("a", "b", "c"):
        _ok(tools.add_slide("deck", texts=[{"text": word}]))

    _ok(tools.replace_slide("deck", 1, texts=[{"text": "B"}]))
    text = _ok(tools.remove_slide("deck", 0))
    assert text == "Removed slide 0 from presentation: deck (2 slides left)"

    slides = json.loads(_ok(tools.get_slides("deck")))
    assert [slide["texts"][0]["text"] for slide in slides] == ["B", "c"]


@pytest.mark.parametrize(
    "call",
    [
        lambda tools: tools.get_slide("deck", 2),
        lambda tools: tools.remove_slide("deck", -1),
        lambda tools: tools.replace_slide("deck", 5, texts=[{"text": "x"}]),
    ],
)
def test_out_of_range_index_leaves_state_untouched(tools, store, call):
    _ok(tools.create_presentation("deck"))
    _ok(tools.add_slide("deck", texts=[{"text": "a"}]))
    _ok(tools.add_slide("deck", texts=[{"text": "b"}]))
    before = store.path_for("deck").read_bytes()

    result = call(tools)

    assert result.is_error
    assert "out of range" in result.text
    assert store.path_for("deck").read_bytes() == before


def test_concurrent_add_slide_calls_are_all_kept(tools, store):
    _ok(tools.create_presentation("deck"))
    results = []

    def worker(worker_id):
        for step in range(5):
            results.append(tools.add_slide("deck", texts=[{"text": f"{worker_id}-{step}"}]))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert not any(result.is_error for result in results)
    assert len(store.load("deck").slides) == 20


def test_export_tools_report_paths(tools, out_dir):
    _ok(tools.create_presentation("deck"))
    _ok(tools.add_slide("deck", texts=[{"text": "a"}]))
    _ok(tools.add_slide("deck", texts=[{"text": "b"}]))

    assert _ok(tools.export_presentation_as_pptx("deck", str(out_dir))) == (
        f"Exported presentation: {out_dir / 'deck.pptx'}"
    )
    assert _ok(tools.export_slide_as_png("deck", 1, str(out_dir))) == (
        f"Exported slide image: {out_dir / 'deck-1.png'}"
    )
    lines = _ok(tools.export_slides_as_png("deck", str(out_dir))).splitlines()
    assert lines == [
        "Exported 2 slide image(s):",
        str(out_dir / "deck-0.png"),
        str(out_dir / "deck-1.png"),
    ]


def test_export_with_relative_out_dir_is_an_error(tools):
    _ok(tools.create_presentation("deck"))
    result = tools.export_presentation_as_pptx("deck", "exports")
    assert result.is_error
    assert result.text.startswith("Failed to export presentation: ")


def test_conversion_failure_becomes_error_result(store, out_dir):
    from pptx_deck.export_pipeline import ExportPipeline

    tools = PresentationTools(store, ExportPipeline(store, converter=FakeConverter(fail_stage="raster")))
    _ok(tools.create_presentation("deck"))
    _ok(tools.add_slide("deck"))

    result = tools.export_slides_as_png("deck", str(out_dir))
    assert result.is_error
    assert result.text.startswith("Failed to export slide images: pdftoppm exited with status 99")


def test_unexpected_errors_are_reported_not_raised(tools, monkeypatch):
    def explode(name):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(tools.store, "load", explode)
    result = tools.get_slides("deck")
    assert result == ToolResult("Failed to get slides: disk on fire", is_error=True)
