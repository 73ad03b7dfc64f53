"""Canvas rasterizer tests: determinism, placement and styling."""

from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest
from PIL import Image

sys.path.append(str(Path(__file__).resolve().parents[1]))

from logic.rasterizer import (
    CanvasRasterizer,
    available_fonts,
    decode_data_uri,
    font_face,
    generate_text_texture,
    suggest_font_size,
)
from models.design import DecalTransform, OutlineStyle, Position, ShadowStyle, TextStyleDescriptor
from models.errors import UnsupportedFontError


@pytest.fixture(scope="module")
def rasterizer() -> CanvasRasterizer:
    return CanvasRasterizer()


def _alpha_bbox(image: Image.Image):
    return image.getchannel("A").getbbox()


def _centre(bbox) -> tuple[float, float]:
    left, top, right, bottom = bbox
    return (left + right) / 2, (top + bottom) / 2


def test_hello_scenario_is_centered(rasterizer: CanvasRasterizer) -> None:
    """HELLO at 50/50 renders on a transparent 1024 canvas around the midpoint."""

    style = TextStyleDescriptor(content="HELLO", font="Arial", size=100, alignment="center")
    png = rasterizer.rasterize(style, DecalTransform(Position(50, 50), 0, 1))

    image = Image.open(io.BytesIO(png))
    assert image.format == "PNG"
    assert image.size == (1024, 1024)
    assert image.mode == "RGBA"
    assert image.getpixel((0, 0))[3] == 0

    bbox = _alpha_bbox(image)
    assert bbox is not None
    cx, cy = _centre(bbox)
    assert abs(cx - 512) <= 24
    assert abs(cy - 512) <= 24


def test_rasterize_is_deterministic(rasterizer: CanvasRasterizer) -> None:
    style = TextStyleDescriptor(
        content="Repeatable",
        size=64,
        color="#1e90ff",
        outline=OutlineStyle("#ffffff", 3),
        shadow=ShadowStyle("#000000", 6),
        bold=True,
        italic=True,
    )
    transform = DecalTransform(Position(40, 60), 33, 1)

    assert rasterizer.rasterize(style, transform) == rasterizer.rasterize(style, transform)
    assert rasterizer.rasterize_data_uri(style, transform) == generate_text_texture(style, transform)


@pytest.mark.parametrize("content", ["", "   ", "\n"])
def test_blank_content_is_fully_transparent(rasterizer: CanvasRasterizer, content: str) -> None:
    image = rasterizer.render_image(TextStyleDescriptor(content=content))
    assert image.size == (1024, 1024)
    assert _alpha_bbox(image) is None


def test_position_moves_the_anchor(rasterizer: CanvasRasterizer) -> None:
    """The anchor sits at x/100 * D and y/100 * D."""

    style = TextStyleDescriptor(content="A", size=60)
    image = rasterizer.render_image(style, DecalTransform(Position(25, 75)))
    cx, cy = _centre(_alpha_bbox(image))
    assert abs(cx - 256) <= 24
    assert abs(cy - 768) <= 24


def test_out_of_range_position_is_clamped(rasterizer: CanvasRasterizer) -> None:
    style = TextStyleDescriptor(content="EDGE", size=40)
    clamped = rasterizer.rasterize(style, DecalTransform(Position(100, 100)))
    overflow = rasterizer.rasterize(style, DecalTransform(Position(180, 250)))
    assert clamped == overflow


def test_rotation_is_clockwise_quarter_turn(rasterizer: CanvasRasterizer) -> None:
    """A 90 degree turn stands wide text on its end."""

    style = TextStyleDescriptor(content="WIDE TEXT", size=80)
    flat = _alpha_bbox(rasterizer.render_image(style))
    turned = _alpha_bbox(rasterizer.render_image(style, DecalTransform(rotation_degrees=90)))

    assert (flat[2] - flat[0]) > (flat[3] - flat[1])
    assert (turned[3] - turned[1]) > (turned[2] - turned[0])


def test_alignment_changes_which_edge_touches_the_anchor(rasterizer: CanvasRasterizer) -> None:
    left = _alpha_bbox(rasterizer.render_image(TextStyleDescriptor(content="ALIGN", size=60, alignment="left")))
    right = _alpha_bbox(rasterizer.render_image(TextStyleDescriptor(content="ALIGN", size=60, alignment="right")))

    assert left[0] >= 500
    assert right[2] <= 524


def test_outline_is_drawn_under_the_fill(rasterizer: CanvasRasterizer) -> None:
    """Both the fill colour and the outline colour survive compositing."""

    style = TextStyleDescriptor(content="O", size=200, color="#ff0000", outline=OutlineStyle("#00ff00", 8))
    image = rasterizer.render_image(style)
    colors = {rgba for _, rgba in image.getcolors(maxcolors=1024 * 1024)}

    assert (255, 0, 0, 255) in colors
    assert (0, 255, 0, 255) in colors


def test_shadow_is_offset_down_and_right(rasterizer: CanvasRasterizer) -> None:
    plain = TextStyleDescriptor(content="SHADOW", size=80)
    shadowed = TextStyleDescriptor(content="SHADOW", size=80, shadow=ShadowStyle("#000000", 0))

    plain_bbox = _alpha_bbox(rasterizer.render_image(plain))
    shadow_bbox = _alpha_bbox(rasterizer.render_image(shadowed))

    assert shadow_bbox[2] >= plain_bbox[2] + 2
    assert shadow_bbox[3] >= plain_bbox[3] + 2
    assert shadow_bbox[0] == plain_bbox[0]


def test_shadow_offset_does_not_turn_with_rotation(rasterizer: CanvasRasterizer) -> None:
    """At a quarter turn the shadow still falls down and to the right on the canvas."""

    turned = DecalTransform(rotation_degrees=90)
    plain = _alpha_bbox(rasterizer.render_image(TextStyleDescriptor(content="SHADOW", size=80), turned))
    shadowed = _alpha_bbox(
        rasterizer.render_image(
            TextStyleDescriptor(content="SHADOW", size=80, shadow=ShadowStyle("#000000", 0)), turned
        )
    )

    assert shadowed[2] >= plain[2] + 2
    assert shadowed[3] >= plain[3] + 2
    assert shadowed[0] == plain[0]
    assert shadowed[1] == plain[1]


def test_outline_width_is_centred_on_the_glyph_edge(rasterizer: CanvasRasterizer) -> None:
    """Only half of the outline width shows outside the glyph."""

    plain = _alpha_bbox(rasterizer.render_image(TextStyleDescriptor(content="I", size=80)))
    outlined = _alpha_bbox(
        rasterizer.render_image(TextStyleDescriptor(content="I", size=80, outline=OutlineStyle("#000000", 10)))
    )

    assert 4 <= plain[0] - outlined[0] <= 6
    assert 4 <= outlined[2] - plain[2] <= 6


def test_unsupported_font_falls_back_unless_strict(rasterizer: CanvasRasterizer) -> None:
    """Unknown families render with the default font; strict mode raises."""

    fallback = rasterizer.rasterize(TextStyleDescriptor(content="Font", font="Papyrus Deluxe"))
    default = rasterizer.rasterize(TextStyleDescriptor(content="Font", font="Arial"))
    assert fallback == default

    with pytest.raises(UnsupportedFontError):
        rasterizer.rasterize(TextStyleDescriptor(content="Font", font="Papyrus Deluxe"), strict=True)


def test_font_face_lookup_is_case_insensitive() -> None:
    assert font_face("times new roman").family == "Times New Roman"
    with pytest.raises(UnsupportedFontError):
        font_face("Nope")
    assert {"value": "Impact", "label": "Impact"} in available_fonts()


def test_custom_canvas_size_and_data_uri() -> None:
    small = CanvasRasterizer(canvas_size=256)
    uri = small.rasterize_data_uri(TextStyleDescriptor(content="hi", size=40))

    assert uri.startswith("data:image/png;base64,")
    image = Image.open(io.BytesIO(decode_data_uri(uri)))
    assert image.size == (256, 256)

    with pytest.raises(ValueError):
        CanvasRasterizer(canvas_size=0)


def test_suggest_font_size_shrinks_long_text() -> None:
    assert suggest_font_size("", 80) == 80
    assert suggest_font_size("HELLO", 80) == 100
    assert suggest_font_size("x" * 40, 80) == 50
    assert suggest_font_size("x" * 1000, 80) == 40
