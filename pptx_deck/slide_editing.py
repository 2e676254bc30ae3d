"""Pure slide operations over an in-memory :class:`PresentationDocument`.

Every function returns a new document value and leaves its argument untouched,
so a caller never observes a half-applied change. Persisting the result is
the caller's job (see :class:`~pptx_deck.slide_document.PresentationStore`).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from .exceptions import SlideIndexError
from .slide_models import PresentationDocument, Slide, utc_now


def check_slide_index(document: PresentationDocument, index: int) -> int:
    """Return ``index`` if it addresses an existing slide."""

    length = len(document.slides)
    if isinstance(index, bool) or not isinstance(index, int):
        raise SlideIndexError(index, length)
    if index < 0 or index >= length:
        raise SlideIndexError(index, length)
    return index


def touch(
    document: PresentationDocument, *, now: Optional[datetime] = None
) -> PresentationDocument:
    """Return a copy of ``document`` with a refreshed ``updatedAt``.

    The new timestamp is always strictly later than the previous one, even
    when the clock has not advanced between two mutations.
    """

    previous = document.metadata.updated_at
    timestamp = now or utc_now()
    if timestamp <= previous:
        timestamp = previous + timedelta(microseconds=1)
    metadata = document.metadata.model_copy(update={"updated_at": timestamp})
    return document.model_copy(update={"metadata": metadata})


def _with_slides(
    document: PresentationDocument, slides: List[Slide], now: Optional[datetime]
) -> PresentationDocument:
    return touch(document.model_copy(update={"slides": slides}), now=now)


def append_slide(
    document: PresentationDocument, slide: Slide, *, now: Optional[datetime] = None
) -> PresentationDocument:
    """Insert ``slide`` at the end; its index is the prior slide count."""

    return _with_slides(document, [*document.slides, slide], now)


def replace_slide_at(
    document: PresentationDocument,
    index: int,
    slide: Slide,
    *,
    now: Optional[datetime] = None,
) -> PresentationDocument:
    check_slide_index(document, index)
    slides = list(document.slides)
    slides[index] = slide
    return _with_slides(document, slides, now)


def remove_slide_at(
    document: PresentationDocument, index: int, *, now: Optional[datetime] = None
) -> PresentationDocument:
    """Drop the slide at ``index``; later slides shift down by one."""

    check_slide_index(document, index)
    slides = [s for position, s in enumerate(document.slides) if position != index]
    return _with_slides(document, slides, now)


def get_slide_at(document: PresentationDocument, index: int) -> Slide:
    check_slide_index(document, index)
    return document.slides[index]
