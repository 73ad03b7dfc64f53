"""Pydantic schemas and helpers for validating design edits and payloads."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from models.design import TextStyleDescriptor, flatten_storefront_style
from models.errors import DecalError, InvalidStyleValueError, TextTooLongError
from models.taxonomy import (
    DEFAULT_FONT,
    DEFAULT_OUTLINE_COLOR,
    DEFAULT_SHADOW_COLOR,
    DEFAULT_TEXT_COLOR,
    MAX_FONT_SIZE,
    MAX_OUTLINE_WIDTH,
    MAX_SHADOW_BLUR,
    MIN_FONT_SIZE,
    parse_color,
)

DEFAULT_MAX_TEXT_LENGTH = 50


def _check_color(value: Any) -> str:
    color = parse_color(value)
    if color is None:
        raise ValueError("expected a #rrggbb, #rgb or rgb(r, g, b) color")
    return color


HexColor = Annotated[str, BeforeValidator(_check_color)]


class OutlineInput(BaseModel):
    """Outline settings for text decals."""

    model_config = ConfigDict(populate_by_name=True)

    color: HexColor = DEFAULT_OUTLINE_COLOR
    width_px: float = Field(2, ge=0, le=MAX_OUTLINE_WIDTH, alias="widthPx")


class ShadowInput(BaseModel):
    """Drop shadow settings for text decals."""

    model_config = ConfigDict(populate_by_name=True)

    color: HexColor = DEFAULT_SHADOW_COLOR
    blur_px: float = Field(4, ge=0, le=MAX_SHADOW_BLUR, alias="blurPx")


class TextStyleInput(BaseModel):
    """Input contract for a text decal edit."""

    content: str = ""
    font: str = DEFAULT_FONT
    size: int = Field(100, ge=MIN_FONT_SIZE, le=MAX_FONT_SIZE)
    color: HexColor = DEFAULT_TEXT_COLOR
    alignment: Literal["left", "center", "right"] = "center"
    bold: bool = False
    italic: bool = False
    outline: Optional[OutlineInput] = None
    shadow: Optional[ShadowInput] = None

    @field_validator("alignment", mode="before")
    @classmethod
    def _lower_alignment(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class TransformInput(BaseModel):
    """Loose transform payload; range handling is left to ``coerce_transform``."""

    position: Dict[str, Any] = Field(default_factory=lambda: {"x": 50, "y": 50})
    rotationDegrees: Any = 0
    scale: Any = 1


class ErrorPayload(BaseModel):
    """Wrapper returned to callers when an edit is rejected."""

    status: Literal["rejected"] = "rejected"
    error: str
    message: str
    details: List[Dict[str, Any]] = []


def validate_text_style(
    raw: TextStyleDescriptor | Mapping[str, Any], max_length: int = DEFAULT_MAX_TEXT_LENGTH
) -> TextStyleDescriptor:
    """Validate a text style before it is rasterized.

    Accepts a :class:`TextStyleDescriptor`, the flat descriptor mapping or the
    storefront mapping with a nested ``style`` block.

    Raises:
        TextTooLongError: if the content is longer than ``max_length``.
        InvalidStyleValueError: for out-of-range sizes, widths, blurs, colors
            or alignments.
    """

    if isinstance(raw, TextStyleDescriptor):
        data: Dict[str, Any] = raw.to_dict()
    else:
        data = flatten_storefront_style(dict(raw))

    content = str(data.get("content") or "")
    data["content"] = content
    if len(content) > max_length:
        raise TextTooLongError(len(content), max_length)

    try:
        validated = TextStyleInput.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "text"
        raise InvalidStyleValueError(field, first.get("msg", "invalid value")) from exc

    return TextStyleDescriptor.from_dict(validated.model_dump(by_alias=True))


def error_payload(exc: DecalError | ValidationError) -> Dict[str, Any]:
    """Translate a rejected edit into a consistent response payload."""

    if isinstance(exc, ValidationError):
        return ErrorPayload(
            error="ValidationError",
            message="Request payload failed validation",
            details=exc.errors(include_url=False, include_context=False, include_input=False),
        ).model_dump()
    return ErrorPayload(error=type(exc).__name__, message=str(exc)).model_dump()


__all__ = [
    "DEFAULT_MAX_TEXT_LENGTH",
    "OutlineInput",
    "ShadowInput",
    "TextStyleInput",
    "TransformInput",
    "ErrorPayload",
    "validate_text_style",
    "error_payload",
]
