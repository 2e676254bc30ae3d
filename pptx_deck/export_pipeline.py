"""Export presentations to PPTX files and PNG slide images."""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional, Union

from .converters import Converter, SubprocessConverter
from .exceptions import ConversionFailedError, StorageError, ValidationError
from .pptx_renderer import SlideDeckRenderer
from .slide_document import PresentationStore
from .slide_editing import check_slide_index

LOGGER = logging.getLogger(__name__)


def pptx_path(out_dir: Path, name: str) -> Path:
    return out_dir / f"{name}.pptx"


def slide_image_path(out_dir: Path, name: str, index: int) -> Path:
    """Final location of the image of slide ``index`` (zero-based)."""

    return out_dir / f"{name}-{index}.png"


class ExportPipeline:
    """Drive load → assemble → serialize → PDF → PNG for one request.

    Intermediate files carry a per-invocation token so concurrent exports of
    the same presentation never share them; only the final artifacts use the
    deterministic names from :func:`pptx_path` and :func:`slide_image_path`.
    """

    def __init__(
        self,
        store: PresentationStore,
        renderer: Optional[SlideDeckRenderer] = None,
        converter: Optional[Converter] = None,
    ) -> None:
        self.store = store
        self.renderer = renderer or SlideDeckRenderer()
        self.converter = converter or SubprocessConverter()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def export_pptx(self, name: str, out_dir: Union[str, Path]) -> Path:
        out = _check_out_dir(out_dir)
        document = self.store.load(name)
        _ensure_dir(out)
        target = pptx_path(out, name)
        try:
            self.renderer.write_document(document, target)
        except OSError as exc:
            raise StorageError(
                f"Could not write {target.name}: {exc.strerror or exc}", original_error=exc
            ) from exc
        LOGGER.info("Exported presentation '%s' to %s", name, target)
        return target

    def export_slide_png(
        self, name: str, slide_index: int, out_dir: Union[str, Path]
    ) -> Path:
        out = _check_out_dir(out_dir)
        document = self.store.load(name)
        check_slide_index(document, slide_index)
        _ensure_dir(out)

        work_stem = _work_stem(name)
        intermediates = [out / f"{work_stem}.pptx", out / f"{work_stem}.pdf"]
        try:
            pdf = self._document_to_pdf(document, out, work_stem)
            intermediates.append(pdf)
            images = self.converter.rasterize(pdf, out, work_stem, page_index=slide_index)
            intermediates.extend(images)
            if len(images) != 1:
                raise ConversionFailedError(
                    f"expected one image for slide {slide_index}, got {len(images)}"
                )
            target = slide_image_path(out, name, slide_index)
            _move(images[0], target)
        finally:
            _cleanup(intermediates)
        LOGGER.info("Exported slide %d of '%s' to %s", slide_index, name, target)
        return target

    def export_slides_png(self, name: str, out_dir: Union[str, Path]) -> List[Path]:
        out = _check_out_dir(out_dir)
        document = self.store.load(name)
        if not document.slides:
            LOGGER.info("Presentation '%s' has no slides; nothing to export", name)
            return []
        _ensure_dir(out)

        work_stem = _work_stem(name)
        intermediates = [out / f"{work_stem}.pptx", out / f"{work_stem}.pdf"]
        targets: List[Path] = []
        try:
            pdf = self._document_to_pdf(document, out, work_stem)
            intermediates.append(pdf)
            images = self.converter.rasterize(pdf, out, work_stem)
            intermediates.extend(images)
            if len(images) != len(document.slides):
                raise ConversionFailedError(
                    f"expected {len(document.slides)} page image(s), got {len(images)}"
                )
            for index, image in enumerate(images):
                target = slide_image_path(out, name, index)
                _move(image, target)
                targets.append(target)
        finally:
            _cleanup(intermediates)
        LOGGER.info("Exported %d slide image(s) of '%s' to %s", len(targets), name, out)
        return targets

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _document_to_pdf(self, document, out: Path, work_stem: str) -> Path:
        source = out / f"{work_stem}.pptx"
        try:
            self.renderer.write_document(document, source)
        except OSError as exc:
            raise StorageError(
                f"Could not write the intermediate document: {exc.strerror or exc}",
                original_error=exc,
            ) from exc
        return self.converter.to_pdf(source, out)


# ----------------------------------------------------------------------
# Helper functions
# ----------------------------------------------------------------------

def _check_out_dir(out_dir: Union[str, Path]) -> Path:
    if not str(out_dir).strip():
        raise ValidationError(["outDir: must not be empty"])
    path = Path(out_dir)
    if not path.is_absolute():
        raise ValidationError([f"outDir: must be an absolute path, got '{out_dir}'"])
    return path


def _ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError(
            f"Could not create the output directory: {exc.strerror or exc}",
            original_error=exc,
        ) from exc


def _work_stem(name: str) -> str:
    return f"{name}.{uuid.uuid4().hex[:8]}"


def _move(source: Path, target: Path) -> None:
    try:
        os.replace(source, target)
    except OSError as exc:
        raise StorageError(
            f"Could not move {source.name} into place: {exc.strerror or exc}",
            original_error=exc,
        ) from exc


def _cleanup(paths: List[Path]) -> None:
    for path in paths:
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            LOGGER.warning("Could not remove intermediate file %s: %s", path, exc)
