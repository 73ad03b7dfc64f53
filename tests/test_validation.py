"""Text style validation and error payload tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

sys.path.append(str(Path(__file__).resolve().parents[1]))

from logic.validation import TextStyleInput, error_payload, validate_text_style
from models.design import OutlineStyle, TextStyleDescriptor
from models.errors import InvalidStyleValueError, TextTooLongError


def test_valid_style_is_normalised() -> None:
    style = validate_text_style(
        {"content": "Crew", "font": "Verdana", "size": 72, "color": "#F00", "alignment": "RIGHT"}
    )

    assert style == TextStyleDescriptor(content="Crew", font="Verdana", size=72, color="#ff0000", alignment="right")


def test_storefront_style_shape_is_accepted() -> None:
    style = validate_text_style(
        {
            "content": "Crew",
            "size": 40,
            "style": {"bold": True, "outline": True, "outlineColor": "#ffffff", "outlineWidth": 4, "shadow": False},
        }
    )

    assert style.bold is True
    assert style.outline == OutlineStyle("#ffffff", 4)
    assert style.shadow is None


def test_text_too_long_is_rejected() -> None:
    with pytest.raises(TextTooLongError) as excinfo:
        validate_text_style({"content": "x" * 51})
    assert excinfo.value.length == 51
    assert excinfo.value.max_length == 50

    assert validate_text_style({"content": "x" * 50}).content == "x" * 50
    with pytest.raises(TextTooLongError):
        validate_text_style({"content": "abcdef"}, max_length=5)


@pytest.mark.parametrize(
    "payload,field",
    [
        ({"size": 10}, "size"),
        ({"size": 301}, "size"),
        ({"color": "blurple"}, "color"),
        ({"alignment": "justify"}, "alignment"),
        ({"outline": {"color": "#000000", "widthPx": 25}}, "outline"),
        ({"shadow": {"color": "#000000", "blurPx": 51}}, "shadow"),
    ],
)
def test_out_of_range_values_name_the_field(payload: dict, field: str) -> None:
    with pytest.raises(InvalidStyleValueError) as excinfo:
        validate_text_style({"content": "ok", **payload})
    assert excinfo.value.field.startswith(field)


def test_descriptor_input_is_revalidated() -> None:
    with pytest.raises(InvalidStyleValueError):
        validate_text_style(TextStyleDescriptor(content="tiny", size=5))


def test_error_payload_shapes() -> None:
    payload = error_payload(TextTooLongError(60, 50))
    assert payload["status"] == "rejected"
    assert payload["error"] == "TextTooLongError"
    assert "60" in payload["message"]

    with pytest.raises(ValidationError) as excinfo:
        TextStyleInput.model_validate({"size": "big"})
    payload = error_payload(excinfo.value)
    assert payload["error"] == "ValidationError"
    assert payload["details"][0]["loc"] == ("size",)
