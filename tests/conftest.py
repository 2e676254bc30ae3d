from __future__ import annotations

import pytest

from pptx_deck.export_pipeline import ExportPipeline
from pptx_deck.pptx_renderer import SlideDeckRenderer
from pptx_deck.slide_document import PresentationStore
from pptx_deck.tools import PresentationTools
from tests.converter_stubs import FakeConverter


@pytest.fixture
def store(tmp_path) -> PresentationStore:
    return PresentationStore(tmp_path / "storage" / ".state")


@pytest.fixture
def fake_converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def pipeline(store, fake_converter) -> ExportPipeline:
    return ExportPipeline(store, SlideDeckRenderer(), fake_converter)


@pytest.fixture
def tools(store, pipeline) -> PresentationTools:
    return PresentationTools(store, pipeline)


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "out"
