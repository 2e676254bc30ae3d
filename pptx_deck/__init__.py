"""Persistent slide decks built one operation at a time, exported to PPTX and PNG."""

from .config import DeckSettings
from .converters import Converter, SubprocessConverter, discover_outputs
from .exceptions import (
    AlreadyExistsError,
    ConfigurationError,
    ConversionFailedError,
    ConversionTimeoutError,
    CorruptDocumentError,
    DeckError,
    NotFoundError,
    SlideIndexError,
    StorageError,
    ValidationError,
)
from .export_pipeline import ExportPipeline
from .pptx_renderer import SlideDeckRenderer
from .slide_document import PresentationStore
from .slide_editing import (
    append_slide,
    check_slide_index,
    get_slide_at,
    remove_slide_at,
    replace_slide_at,
    touch,
)
from .slide_models import (
    PresentationDocument,
    PresentationMetadata,
    Slide,
    TextRun,
    validate_document,
    validate_slide,
)
from .tools import PresentationTools, ToolResult

__all__ = [
    "DeckSettings",
    "Converter",
    "SubprocessConverter",
    "discover_outputs",
    "DeckError",
    "ValidationError",
    "AlreadyExistsError",
    "NotFoundError",
    "CorruptDocumentError",
    "SlideIndexError",
    "ConversionFailedError",
    "ConversionTimeoutError",
    "StorageError",
    "ConfigurationError",
    "ExportPipeline",
    "SlideDeckRenderer",
    "PresentationStore",
    "append_slide",
    "replace_slide_at",
    "remove_slide_at",
    "get_slide_at",
    "check_slide_index",
    "touch",
    "PresentationDocument",
    "PresentationMetadata",
    "Slide",
    "TextRun",
    "validate_document",
    "validate_slide",
    "PresentationTools",
    "ToolResult",
]
