"""Data models describing presentation documents, slides and text runs."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Union

from pathvalidate import ValidationError as PathValidationError
from pathvalidate import validate_filename
from pydantic import (
    AfterValidator,
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .exceptions import ValidationError

_HEX_COLOR = re.compile(r"^#?[0-9A-Fa-f]{6}$")
_HEX_CODE_POINT = re.compile(r"^[0-9A-Fa-f]{1,6}$")

# Theme color names accepted in place of a hex value.
THEME_COLORS = frozenset(
    {"tx1", "tx2", "bg1", "bg2"} | {f"accent{i}" for i in range(1, 7)}
)


def _check_color(value: str) -> str:
    if _HEX_COLOR.match(value) or value in THEME_COLORS:
        return value
    raise ValueError(
        "color must be a 6 digit hex value such as 'FF0000' or a theme color "
        "(tx1, tx2, bg1, bg2, accent1..accent6)"
    )


Color = Annotated[str, AfterValidator(_check_color)]
FontSize = Annotated[float, Field(ge=8, le=256)]
Transparency = Annotated[float, Field(ge=0, le=100)]


def validate_presentation_name(name: str) -> str:
    """Return ``name`` if it can be used as a storage file stem."""

    if not isinstance(name, str) or not name.strip():
        raise ValidationError(["name: must be a non-empty string"])
    if name.startswith("."):
        raise ValidationError(["name: must not start with '.'"])
    try:
        validate_filename(name, platform="universal")
    except PathValidationError as exc:
        raise ValidationError([f"name: {exc}"]) from exc
    return name


def _name_validator(value: str) -> str:
    try:
        return validate_presentation_name(value)
    except ValidationError as exc:
        raise ValueError("; ".join(exc.errors)) from exc


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# ----------------------------------------------------------------------
# Enumerations
# ----------------------------------------------------------------------
class UnderlineStyle(str, Enum):
    NONE = "none"
    SINGLE = "sng"
    DOUBLE = "dbl"
    HEAVY = "heavy"
    DOTTED = "dotted"
    DOTTED_HEAVY = "dottedHeavy"
    DASH = "dash"
    DASH_HEAVY = "dashHeavy"
    DASH_LONG = "dashLong"
    DASH_LONG_HEAVY = "dashLongHeavy"
    DOT_DASH = "dotDash"
    DOT_DASH_HEAVY = "dotDashHeavy"
    DOT_DOT_DASH = "dotDotDash"
    DOT_DOT_DASH_HEAVY = "dotDotDashHeavy"
    WAVY = "wavy"
    WAVY_HEAVY = "wavyHeavy"
    WAVY_DOUBLE = "wavyDbl"
    WORDS = "words"


class NumberType(str, Enum):
    ALPHA_LC_PAREN_BOTH = "alphaLcParenBoth"
    ALPHA_LC_PAREN_R = "alphaLcParenR"
    ALPHA_LC_PERIOD = "alphaLcPeriod"
    ALPHA_UC_PAREN_BOTH = "alphaUcParenBoth"
    ALPHA_UC_PAREN_R = "alphaUcParenR"
    ALPHA_UC_PERIOD = "alphaUcPeriod"
    ARABIC_PAREN_BOTH = "arabicParenBoth"
    ARABIC_PAREN_R = "arabicParenR"
    ARABIC_PERIOD = "arabicPeriod"
    ARABIC_PLAIN = "arabicPlain"
    ROMAN_LC_PAREN_BOTH = "romanLcParenBoth"
    ROMAN_LC_PAREN_R = "romanLcParenR"
    ROMAN_LC_PERIOD = "romanLcPeriod"
    ROMAN_UC_PAREN_BOTH = "romanUcParenBoth"
    ROMAN_UC_PAREN_R = "romanUcParenR"
    ROMAN_UC_PERIOD = "romanUcPeriod"


class BulletType(str, Enum):
    NUMBER = "number"
    BULLET = "bullet"


class Align(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VerticalAlign(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


# ----------------------------------------------------------------------
# Slide content
# ----------------------------------------------------------------------
class Background(_Model):
    """Solid background fill of a slide."""

    color: Optional[Color] = None
    transparency: Optional[Transparency] = None


class SlideNumber(_Model):
    """Position and styling of the on-slide page number."""

    x: float
    y: float
    color: Optional[Color] = None
    font_face: Optional[str] = None
    font_size: Optional[FontSize] = None


class Underline(_Model):
    style: Optional[UnderlineStyle] = None
    color: Optional[Color] = None


class BulletOptions(_Model):
    """List formatting of a paragraph.

    ``style`` is a free-form auto-number scheme used when ``numberType`` is
    not given.
    """

    type: Optional[BulletType] = None
    character_code: Optional[str] = None
    indent: Optional[float] = Field(default=None, gt=0)
    number_type: Optional[NumberType] = None
    number_start_at: Optional[int] = Field(default=None, ge=1, le=32767)
    style: Optional[str] = None

    @field_validator("character_code")
    @classmethod
    def _check_character_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not _HEX_CODE_POINT.match(value) or int(value, 16) > 0x10FFFF:
            raise ValueError("characterCode must be a hex code point such as '25BA'")
        return value


class Fill(_Model):
    color: Optional[Color] = None
    transparency: Optional[Transparency] = None


class Hyperlink(_Model):
    """External ``url`` or internal jump to the slide at index ``slide``."""

    url: Optional[str] = None
    slide: Optional[int] = Field(default=None, ge=0)
    tooltip: Optional[str] = None

    @model_validator(mode="after")
    def _check_target(self) -> "Hyperlink":
        if (self.url is None) == (self.slide is None):
            raise ValueError("hyperlink needs exactly one of 'url' or 'slide'")
        return self


class TextRunOptions(_Model):
    # position and size, in inches
    x: Optional[float] = None
    y: Optional[float] = None
    w: Optional[float] = Field(default=None, gt=0)
    h: Optional[float] = Field(default=None, gt=0)
    # typography
    color: Optional[Color] = None
    font_face: Optional[str] = None
    font_size: Optional[FontSize] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[Underline] = None
    # paragraph
    align: Optional[Align] = None
    valign: Optional[VerticalAlign] = None
    bullet: Optional[Union[bool, BulletOptions]] = None
    fill: Optional[Fill] = None
    hyperlink: Optional[Hyperlink] = None


class TextRun(_Model):
    text: str
    options: Optional[TextRunOptions] = None


TextBlock = Union[TextRun, Annotated[List[TextRun], Field(min_length=1)]]


class Slide(_Model):
    """A single slide within a presentation document."""

    background: Optional[Background] = None
    color: Optional[Color] = None
    slide_number: Optional[SlideNumber] = None
    texts: Optional[List[TextBlock]] = None


# ----------------------------------------------------------------------
# Presentation document
# ----------------------------------------------------------------------
class PresentationMetadata(_Model):
    name: Annotated[str, AfterValidator(_name_validator)]
    title: Optional[str] = None
    subject: Optional[str] = None
    created_at: AwareDatetime
    updated_at: AwareDatetime

    @model_validator(mode="after")
    def _check_timestamps(self) -> "PresentationMetadata":
        if self.updated_at < self.created_at:
            raise ValueError("updatedAt must not be earlier than createdAt")
        return self


class PresentationDocument(_Model):
    """Complete persisted state of one named slide deck."""

    metadata: PresentationMetadata
    slides: List[Slide] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name


# ----------------------------------------------------------------------
# Validation and serialization helpers
# ----------------------------------------------------------------------
def format_errors(exc: PydanticValidationError) -> List[str]:
    """Flatten a pydantic error into ``"<location>: <message>"`` strings."""

    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def validate_slide(data: Any) -> Slide:
    """Return a validated :class:`Slide` or raise :class:`ValidationError`."""

    if isinstance(data, Slide):
        return data
    try:
        return Slide.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(format_errors(exc)) from exc


def validate_document(data: Any) -> PresentationDocument:
    if isinstance(data, PresentationDocument):
        return data
    try:
        return PresentationDocument.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(format_errors(exc)) from exc


def new_document(
    name: str,
    *,
    title: Optional[str] = None,
    subject: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PresentationDocument:
    """Build an empty document whose timestamps are both ``now``."""

    timestamp = now or utc_now()
    return validate_document(
        {
            "metadata": {
                "name": name,
                "title": title,
                "subject": subject,
                "createdAt": timestamp,
                "updatedAt": timestamp,
            },
            "slides": [],
        }
    )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def slide_to_dict(slide: Slide) -> Dict[str, Any]:
    return slide.model_dump(mode="json", by_alias=True, exclude_none=True)


def document_to_dict(document: PresentationDocument) -> Dict[str, Any]:
    return document.model_dump(mode="json", by_alias=True, exclude_none=True)


def iter_blocks(slide: Slide) -> List[List[TextRun]]:
    """Return every text block of ``slide`` as a list of runs."""

    blocks: List[List[TextRun]] = []
    for block in slide.texts or []:
        blocks.append([block] if isinstance(block, TextRun) else list(block))
    return blocks

