from datetime import datetime, timedelta, timezone

import pytest

from pptx_deck.exceptions import SlideIndexError
from pptx_deck.slide_editing import (
    append_slide,
    check_slide_index,
    get_slide_at,
    remove_slide_at,
    replace_slide_at,
    touch,
)
from pptx_deck.slide_models import new_document, validate_slide

CREATED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _slide(text: str):
    return validate_slide({"texts": [{"text": text}]})


def _texts(document):
    return [slide.texts[0].text for slide in document.slides]


def _deck(*texts: str):
    document = new_document("deck", now=CREATED)
    for text in texts:
        document = append_slide(document, _slide(text))
    return document


def test_append_preserves_call_order():
    document = _deck("one", "two", "three")
    assert _texts(document) == ["one", "two", "three"]


def test_append_returns_new_value_and_leaves_input_untouched():
    original = _deck("one")
    updated = append_slide(original, _slide("two"))
    assert _texts(original) == ["one"]
    assert _texts(updated) == ["one", "two"]
    assert original.metadata.updated_at < updated.metadata.updated_at


def test_replace_slide_at_swaps_only_that_slide():
    document = replace_slide_at(_deck("a", "b", "c"), 1, _slide("B"))
    assert _texts(document) == ["a", "B", "c"]


def test_remove_slide_at_shifts_later_slides_down():
    original = _deck("a", "b", "c", "d")
    document = remove_slide_at(original, 1)
    assert _texts(document) == ["a", "c", "d"]
    assert _texts(original) == ["a", "b", "c", "d"]


@pytest.mark.parametrize("index", [-1, 3, 10, True])
def test_out_of_range_indices_raise(index):
    document = _deck("a", "b", "c")
    with pytest.raises(SlideIndexError):
        replace_slide_at(document, index, _slide("x"))
    with pytest.raises(SlideIndexError):
        remove_slide_at(document, index)
    with pytest.raises(SlideIndexError):
        get_slide_at(document, index)


def test_index_error_on_empty_document_mentions_no_slides():
    with pytest.raises(SlideIndexError) as excinfo:
        check_slide_index(_deck(), 0)
    assert "no slides" in str(excinfo.value)
    assert excinfo.value.length == 0


def test_touch_is_strictly_increasing_even_with_a_stalled_clock():
    document = _deck()
    first = touch(document, now=CREATED)
    second = touch(first, now=CREATED)
    assert CREATED < first.metadata.updated_at < second.metadata.updated_at


def test_touch_uses_the_clock_when_it_moved_forward():
    later = CREATED + timedelta(hours=1)
    assert touch(_deck(), now=later).metadata.updated_at == later


def test_created_at_never_changes():
    document = _deck("a", "b")
    document = remove_slide_at(replace_slide_at(document, 0, _slide("z")), 1)
    assert document.metadata.created_at == CREATED
    assert document.metadata.updated_at > CREATED
