"""Named presentation operations returning a uniform success/error result."""

from __future__ import annotations

import functools
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .config import DeckSettings
from .converters import SubprocessConverter
from .exceptions import DeckError
from .export_pipeline import ExportPipeline
from .slide_document import PresentationStore
from .slide_editing import append_slide, get_slide_at, remove_slide_at, replace_slide_at
from .slide_models import Slide, slide_to_dict, validate_slide

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    text: str
    is_error: bool = False

    @classmethod
    def failure(cls, stage: str, cause: str) -> "ToolResult":
        return cls(text=f"Failed to {stage}: {cause}", is_error=True)


def tool_operation(stage: str) -> Callable[[Callable[..., str]], Callable[..., ToolResult]]:
    """Turn a function returning a message into one returning a :class:`ToolResult`.

    Known errors keep their message; anything else is logged with its
    traceback and reported by message only, so one failing call never takes
    the server down.
    """

    def decorator(func: Callable[..., str]) -> Callable[..., ToolResult]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> ToolResult:
            try:
                text = func(*args, **kwargs)
            except DeckError as exc:
                if not exc.stage:
                    exc.stage = stage
                LOGGER.warning("%s failed (%s): %s", func.__name__, exc.error_type, exc)
                return ToolResult.failure(stage, str(exc))
            except Exception as exc:
                LOGGER.exception("Unexpected error in %s", func.__name__)
                return ToolResult.failure(stage, str(exc) or exc.__class__.__name__)
            return ToolResult(text=text)

        return wrapper

    return decorator


def _build_slide(
    background: Any = None,
    color: Optional[str] = None,
    slide_number: Any = None,
    texts: Optional[List[Any]] = None,
) -> Slide:
    payload: Dict[str, Any] = {
        "background": background,
        "color": color,
        "slideNumber": slide_number,
        "texts": texts,
    }
    return validate_slide({key: value for key, value in payload.items() if value is not None})


class PresentationTools:
    """Operations exposed to agents, one method per tool."""

    def __init__(self, store: PresentationStore, pipeline: ExportPipeline) -> None:
        self.store = store
        self.pipeline = pipeline

    @classmethod
    def from_settings(cls, settings: DeckSettings) -> "PresentationTools":
        store = PresentationStore(settings.state_dir)
        converter = SubprocessConverter(
            settings.soffice_path,
            settings.pdftoppm_path,
            timeout=settings.conversion_timeout,
            dpi=settings.raster_dpi,
        )
        return cls(store, ExportPipeline(store, converter=converter))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @tool_operation("create presentation")
    def create_presentation(
        self,
        name: str,
        title: Optional[str] = None,
        subject: Optional[str] = None,
        force: bool = False,
    ) -> str:
        self.store.create(name, title=title, subject=subject, force=force)
        return f"Created presentation state: {self.store.path_for(name)}"

    @tool_operation("list presentations")
    def list_presentations(self) -> str:
        return json.dumps(self.store.list_names(), ensure_ascii=False)

    # ------------------------------------------------------------------
    # Slides
    # ------------------------------------------------------------------
    @tool_operation("add slide")
    def add_slide(
        self,
        name: str,
        background: Any = None,
        color: Optional[str] = None,
        slide_number: Any = None,
        texts: Optional[List[Any]] = None,
    ) -> str:
        slide = _build_slide(background, color, slide_number, texts)
        with self.store.locked(name):
            document = append_slide(self.store.load(name), slide)
            self.store.save(document)
        count = len(document.slides)
        LOGGER.info("Added slide %d to '%s'", count - 1, name)
        return f"Added slide {count - 1} to presentation: {name} ({count} slides)"

    @tool_operation("replace slide")
    def replace_slide(
        self,
        name: str,
        slide_index: int,
        background: Any = None,
        color: Optional[str] = None,
        slide_number: Any = None,
        texts: Optional[List[Any]] = None,
    ) -> str:
        slide = _build_slide(background, color, slide_number, texts)
        with self.store.locked(name):
            document = replace_slide_at(self.store.load(name), slide_index, slide)
            self.store.save(document)
        LOGGER.info("Replaced slide %d of '%s'", slide_index, name)
        return f"Replaced slide {slide_index} of presentation: {name}"

    @tool_operation("remove slide")
    def remove_slide(self, name: str, slide_index: int) -> str:
        with self.store.locked(name):
            document = remove_slide_at(self.store.load(name), slide_index)
            self.store.save(document)
        LOGGER.info("Removed slide %d of '%s'", slide_index, name)
        return (
            f"Removed slide {slide_index} from presentation: {name} "
            f"({len(document.slides)} slides left)"
        )

    @tool_operation("get slide")
    def get_slide(self, name: str, slide_index: int) -> str:
        slide = get_slide_at(self.store.load(name), slide_index)
        return json.dumps(slide_to_dict(slide), ensure_ascii=False, indent=2)

    @tool_operation("get slides")
    def get_slides(self, name: str) -> str:
        document = self.store.load(name)
        return json.dumps(
            [slide_to_dict(slide) for slide in document.slides],
            ensure_ascii=False,
            indent=2,
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    @tool_operation("export presentation")
    def export_presentation_as_pptx(self, name: str, out_dir: str) -> str:
        path = self.pipeline.export_pptx(name, out_dir)
        return f"Exported presentation: {path}"

    @tool_operation("export slide image")
    def export_slide_as_png(self, name: str, slide_index: int, out_dir: str) -> str:
        path = self.pipeline.export_slide_png(name, slide_index, out_dir)
        return f"Exported slide image: {path}"

    @tool_operation("export slide images")
    def export_slides_as_png(self, name: str, out_dir: str) -> str:
        paths = self.pipeline.export_slides_png(name, out_dir)
        lines = [f"Exported {len(paths)} slide image(s):"]
        lines.extend(str(Path(path)) for path in paths)
        return "\n".join(lines)
