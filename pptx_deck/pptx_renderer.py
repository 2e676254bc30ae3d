"""Utilities to render :class:`PresentationDocument` objects into PPTX files."""

from __future__ import annotations

import io
import logging
import os
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.dml import MSO_THEME_COLOR
from pptx.enum.text import MSO_ANCHOR, MSO_UNDERLINE, PP_ALIGN
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.oxml.ns import qn
from pptx.oxml.xmlchemy import OxmlElement
from pptx.text.text import Font
from pptx.util import Inches, Pt

from .slide_models import (
    THEME_COLORS,
    Align,
    BulletOptions,
    BulletType,
    NumberType,
    PresentationDocument,
    Slide,
    SlideNumber,
    TextRun,
    TextRunOptions,
    UnderlineStyle,
    VerticalAlign,
    iter_blocks,
)

LOGGER = logging.getLogger(__name__)

# 16:9 layout, in inches
SLIDE_WIDTH = 10.0
SLIDE_HEIGHT = 5.625
MARGIN = 0.5
DEFAULT_BLOCK_HEIGHT = 0.75
SLIDE_NUMBER_SIZE = (0.8, 0.4)
DEFAULT_BULLET_INDENT = 27  # points
DEFAULT_BULLET_CHAR = "•"

_THEME_COLOR_MAP = {
    "tx1": MSO_THEME_COLOR.TEXT_1,
    "tx2": MSO_THEME_COLOR.TEXT_2,
    "bg1": MSO_THEME_COLOR.BACKGROUND_1,
    "bg2": MSO_THEME_COLOR.BACKGROUND_2,
    "accent1": MSO_THEME_COLOR.ACCENT_1,
    "accent2": MSO_THEME_COLOR.ACCENT_2,
    "accent3": MSO_THEME_COLOR.ACCENT_3,
    "accent4": MSO_THEME_COLOR.ACCENT_4,
    "accent5": MSO_THEME_COLOR.ACCENT_5,
    "accent6": MSO_THEME_COLOR.ACCENT_6,
}

_ALIGN_MAP = {
    Align.LEFT: PP_ALIGN.LEFT,
    Align.CENTER: PP_ALIGN.CENTER,
    Align.RIGHT: PP_ALIGN.RIGHT,
}

_VALIGN_MAP = {
    VerticalAlign.TOP: MSO_ANCHOR.TOP,
    VerticalAlign.MIDDLE: MSO_ANCHOR.MIDDLE,
    VerticalAlign.BOTTOM: MSO_ANCHOR.BOTTOM,
}

_UNDERLINE_MAP = {
    UnderlineStyle.NONE: MSO_UNDERLINE.NONE,
    UnderlineStyle.SINGLE: MSO_UNDERLINE.SINGLE_LINE,
    UnderlineStyle.DOUBLE: MSO_UNDERLINE.DOUBLE_LINE,
    UnderlineStyle.HEAVY: MSO_UNDERLINE.HEAVY_LINE,
    UnderlineStyle.DOTTED: MSO_UNDERLINE.DOTTED_LINE,
    UnderlineStyle.DOTTED_HEAVY: MSO_UNDERLINE.DOTTED_HEAVY_LINE,
    UnderlineStyle.DASH: MSO_UNDERLINE.DASH_LINE,
    UnderlineStyle.DASH_HEAVY: MSO_UNDERLINE.DASH_HEAVY_LINE,
    UnderlineStyle.DASH_LONG: MSO_UNDERLINE.DASH_LONG_LINE,
    UnderlineStyle.DASH_LONG_HEAVY: MSO_UNDERLINE.DASH_LONG_HEAVY_LINE,
    UnderlineStyle.DOT_DASH: MSO_UNDERLINE.DOT_DASH_LINE,
    UnderlineStyle.DOT_DASH_HEAVY: MSO_UNDERLINE.DOT_DASH_HEAVY_LINE,
    UnderlineStyle.DOT_DOT_DASH: MSO_UNDERLINE.DOT_DOT_DASH_LINE,
    UnderlineStyle.DOT_DOT_DASH_HEAVY: MSO_UNDERLINE.DOT_DOT_DASH_HEAVY_LINE,
    UnderlineStyle.WAVY: MSO_UNDERLINE.WAVY_LINE,
    UnderlineStyle.WAVY_HEAVY: MSO_UNDERLINE.WAVY_HEAVY_LINE,
    UnderlineStyle.WAVY_DOUBLE: MSO_UNDERLINE.WAVY_DOUBLE_LINE,
    UnderlineStyle.WORDS: MSO_UNDERLINE.WORDS,
}

_NUMBER_TYPES = {item.value for item in NumberType}


@dataclass
class _PendingSlideLink:
    """Internal jump whose target slide may not exist yet."""

    source_slide: object
    rPr: object
    target_index: int
    tooltip: Optional[str] = None


class SlideDeckRenderer:
    """Render presentation documents into PPTX binaries."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def build_presentation(self, document: PresentationDocument) -> Presentation:
        """Return a python-pptx presentation equivalent to ``document``."""

        presentation = Presentation()
        presentation.slide_width = Inches(SLIDE_WIDTH)
        presentation.slide_height = Inches(SLIDE_HEIGHT)

        metadata = document.metadata
        if metadata.title:
            presentation.core_properties.title = metadata.title
        if metadata.subject:
            presentation.core_properties.subject = metadata.subject

        layout = presentation.slide_layouts.get_by_name("Blank")
        if layout is None:
            layout = presentation.slide_layouts[len(presentation.slide_layouts) - 1]

        pending_links: List[_PendingSlideLink] = []
        for position, slide_model in enumerate(document.slides):
            pptx_slide = presentation.slides.add_slide(layout)
            self._write_slide(pptx_slide, slide_model, position, pending_links)

        self._resolve_slide_links(presentation, pending_links)
        return presentation

    def render_document(self, document: PresentationDocument) -> io.BytesIO:
        """Return a PPTX stream that represents ``document``."""

        buffer = io.BytesIO()
        self.build_presentation(document).save(buffer)
        buffer.seek(0)
        return buffer

    def write_document(
        self, document: PresentationDocument, path: Union[str, Path]
    ) -> Path:
        """Serialize ``document`` to ``path``, replacing any previous file."""

        path = Path(path)
        presentation = self.build_presentation(document)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.stem}.", suffix=".pptx"
        )
        os.close(fd)
        try:
            presentation.save(tmp_name)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        LOGGER.debug("Wrote %d slide(s) to %s", len(document.slides), path)
        return path

    # ------------------------------------------------------------------
    # Slide helpers
    # ------------------------------------------------------------------
    def _write_slide(
        self,
        pptx_slide,
        slide: Slide,
        position: int,
        pending_links: List[_PendingSlideLink],
    ) -> None:
        if slide.background is not None:
            _apply_background(pptx_slide, slide.background.color, slide.background.transparency)

        flow_top = MARGIN
        for runs in iter_blocks(slide):
            flow_top = self._add_text_block(
                pptx_slide, runs, flow_top, slide.color, pending_links
            )

        if slide.slide_number is not None:
            _add_slide_number(pptx_slide, slide.slide_number, position, slide.color)

    def _add_text_block(
        self,
        pptx_slide,
        runs: List[TextRun],
        flow_top: float,
        slide_color: Optional[str],
        pending_links: List[_PendingSlideLink],
    ) -> float:
        """Add one text box for ``runs`` and return the next free flow offset."""

        layout = runs[0].options or TextRunOptions()
        left = layout.x if layout.x is not None else MARGIN
        top = layout.y if layout.y is not None else flow_top
        width = layout.w if layout.w is not None else max(SLIDE_WIDTH - left - MARGIN, 1.0)
        height = layout.h if layout.h is not None else DEFAULT_BLOCK_HEIGHT

        box = pptx_slide.shapes.add_textbox(
            Inches(left), Inches(top), Inches(width), Inches(height)
        )
        frame = box.text_frame
        frame.word_wrap = True
        if layout.valign is not None:
            frame.vertical_anchor = _VALIGN_MAP[layout.valign]
        if layout.fill is not None:
            box.fill.solid()
            _apply_color(box.fill.fore_color, layout.fill.color or "FFFFFF")
            if layout.fill.transparency is not None:
                _set_transparency(box._element.spPr, layout.fill.transparency)

        paragraph = frame.paragraphs[0]
        if layout.align is not None:
            paragraph.alignment = _ALIGN_MAP[layout.align]
        if layout.bullet is not None:
            _apply_bullet(paragraph, layout.bullet)

        for run_model in runs:
            run = paragraph.add_run()
            run.text = run_model.text
            options = run_model.options or TextRunOptions()
            _apply_run_style(run, options, slide_color)
            link = options.hyperlink
            if link is None:
                continue
            if link.url is not None:
                run.hyperlink.address = link.url
                if link.tooltip:
                    run.hyperlink._hlinkClick.set("tooltip", link.tooltip)
            else:
                pending_links.append(
                    _PendingSlideLink(
                        source_slide=pptx_slide,
                        rPr=run._r.get_or_add_rPr(),
                        target_index=link.slide,
                        tooltip=link.tooltip,
                    )
                )

        if layout.y is None:
            return top + height
        return flow_top

    def _resolve_slide_links(
        self, presentation: Presentation, pending_links: List[_PendingSlideLink]
    ) -> None:
        slides = list(presentation.slides)
        for link in pending_links:
            if link.target_index >= len(slides):
                LOGGER.warning(
                    "Skipping hyperlink to slide %d; deck has %d slide(s)",
                    link.target_index,
                    len(slides),
                )
                continue
            target = slides[link.target_index]
            rId = link.source_slide.part.relate_to(target.part, RT.SLIDE)
            hlink = link.rPr.get_or_add_hlinkClick()
            hlink.set(qn("r:id"), rId)
            hlink.set("action", "ppaction://hlinksldjump")
            if link.tooltip:
                hlink.set("tooltip", link.tooltip)


# ----------------------------------------------------------------------
# Helper functions
# ----------------------------------------------------------------------

def _apply_color(color_format, value: str) -> None:
    if value in THEME_COLORS:
        color_format.theme_color = _THEME_COLOR_MAP[value]
    else:
        color_format.rgb = RGBColor.from_string(value.lstrip("#").upper())


def _color_element(value: str):
    if value in THEME_COLORS:
        element = OxmlElement("a:schemeClr")
        element.set("val", value)
    else:
        element = OxmlElement("a:srgbClr")
        element.set("val", value.lstrip("#").upper())
    return element


def _set_transparency(fill_parent, transparency: float) -> None:
    """Add an alpha channel to the solid fill directly under ``fill_parent``."""

    solid_fill = fill_parent.find(qn("a:solidFill"))
    if solid_fill is None or len(solid_fill) == 0:
        return
    color = solid_fill[0]
    for existing in color.findall(qn("a:alpha")):
        color.remove(existing)
    alpha = OxmlElement("a:alpha")
    alpha.set("val", str(int(round((100 - transparency) * 1000))))
    color.append(alpha)


def _apply_background(pptx_slide, color: Optional[str], transparency: Optional[float]) -> None:
    if color is None and transparency is None:
        return
    fill = pptx_slide.background.fill
    fill.solid()
    _apply_color(fill.fore_color, color or "FFFFFF")
    if transparency is not None:
        _set_transparency(pptx_slide._element.cSld.bg.find(qn("p:bgPr")), transparency)


def _apply_font(font: Font, options, default_color: Optional[str]) -> None:
    if options.font_face:
        font.name = options.font_face
    if options.font_size is not None:
        font.size = Pt(options.font_size)
    color = options.color or default_color
    if color:
        _apply_color(font.color, color)


def _apply_run_style(run, options: TextRunOptions, slide_color: Optional[str]) -> None:
    font = run.font
    _apply_font(font, options, slide_color)
    if options.bold is not None:
        font.bold = options.bold
    if options.italic is not None:
        font.italic = options.italic

    underline = options.underline
    if underline is None:
        return
    font.underline = _UNDERLINE_MAP[underline.style or UnderlineStyle.SINGLE]
    if underline.color:
        rPr = run._r.get_or_add_rPr()
        for existing in rPr.findall(qn("a:uFill")):
            rPr.remove(existing)
        u_fill = OxmlElement("a:uFill")
        solid_fill = OxmlElement("a:solidFill")
        solid_fill.append(_color_element(underline.color))
        u_fill.append(solid_fill)
        rPr.insert_element_before(
            u_fill,
            "a:latin", "a:ea", "a:cs", "a:sym",
            "a:hlinkClick", "a:hlinkMouseOver", "a:rtl", "a:extLst",
        )


def _apply_bullet(paragraph, bullet: Union[bool, BulletOptions]) -> None:
    pPr = paragraph._p.get_or_add_pPr()
    if bullet is False:
        pPr.insert_element_before(OxmlElement("a:buNone"), "a:tabLst", "a:defRPr", "a:extLst")
        return

    options = bullet if isinstance(bullet, BulletOptions) else BulletOptions()
    indent = Pt(options.indent if options.indent is not None else DEFAULT_BULLET_INDENT)
    pPr.set("marL", str(int(indent)))
    pPr.set("indent", str(-int(indent)))

    numbered = options.type == BulletType.NUMBER or options.number_type is not None
    if numbered:
        element = OxmlElement("a:buAutoNum")
        element.set("type", _number_scheme(options))
        if options.number_start_at is not None:
            element.set("startAt", str(options.number_start_at))
    else:
        element = OxmlElement("a:buChar")
        char = chr(int(options.character_code, 16)) if options.character_code else DEFAULT_BULLET_CHAR
        element.set("char", char)
    pPr.insert_element_before(element, "a:tabLst", "a:defRPr", "a:extLst")


def _number_scheme(options: BulletOptions) -> str:
    if options.number_type is not None:
        return options.number_type.value
    if options.style in _NUMBER_TYPES:
        return options.style
    return NumberType.ARABIC_PERIOD.value


def _add_slide_number(
    pptx_slide, slide_number: SlideNumber, position: int, slide_color: Optional[str]
) -> None:
    width, height = SLIDE_NUMBER_SIZE
    box = pptx_slide.shapes.add_textbox(
        Inches(slide_number.x), Inches(slide_number.y), Inches(width), Inches(height)
    )
    box.name = "Slide Number"
    paragraph = box.text_frame.paragraphs[0]

    field = OxmlElement("a:fld")
    field.set("id", "{%s}" % str(uuid.uuid4()).upper())
    field.set("type", "slidenum")
    rPr = OxmlElement("a:rPr")
    rPr.set("lang", "en-US")
    field.append(rPr)
    text = OxmlElement("a:t")
    text.text = str(position + 1)
    field.append(text)
    paragraph._p.insert_element_before(field, "a:endParaRPr")

    _apply_font(Font(rPr), slide_number, slide_color)

