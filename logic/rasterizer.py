"""Deterministic text-to-texture rasterizer.

Text decals are rendered onto a transparent square canvas and encoded as PNG.
The same style and transform always produce the same bytes for a given Pillow
and font installation, so text rasters never need to be stored.
"""

from __future__ import annotations

import base64
import io
import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from models.design import DecalTransform, TextStyleDescriptor
from models.errors import UnsupportedFontError
from models.taxonomy import DEFAULT_FONT, FONT_REGISTRY, FontFace, canonical_font_family, color_to_rgba

logger = logging.getLogger(__name__)

DEFAULT_CANVAS_SIZE = 1024
SHADOW_OFFSET = (2, 2)
ITALIC_SHEAR = 0.2
PNG_DATA_URI_PREFIX = "data:image/png;base64,"

# Horizontal alignment -> Pillow anchor; the vertical anchor is always middle.
_ANCHORS: Dict[str, str] = {"left": "lm", "center": "mm", "right": "rm"}

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass(frozen=True)
class ResolvedFont:
    """A loaded font plus the styling Pillow has to fake for it."""

    family: str
    font: FontType
    synthetic_bold: bool = False
    synthetic_italic: bool = False


def font_face(family: str) -> FontFace:
    """Return the registry entry for ``family`` (case-insensitive).

    Raises:
        UnsupportedFontError: if the family is not registered.
    """

    name = canonical_font_family(family)
    if name is None:
        raise UnsupportedFontError(family)
    return FONT_REGISTRY[name]


def available_fonts() -> List[Dict[str, str]]:
    """List the supported families as ``{"value", "label"}`` options."""

    return [{"value": name, "label": name} for name in FONT_REGISTRY]


def suggest_font_size(text: str, current_size: int) -> int:
    """Suggest a font size that shrinks as text gets longer."""

    if not text:
        return current_size
    base_size, min_size, max_size = 100, 40, 200
    length_factor = max(1.0, len(text) / 10)
    suggested = math.floor(base_size / math.sqrt(length_factor))
    return min(max_size, max(min_size, suggested))


@lru_cache(maxsize=512)
def _find_font_file(filename: str, font_dirs: Tuple[str, ...]) -> Optional[str]:
    for directory in font_dirs:
        candidate = Path(directory) / filename
        if candidate.is_file():
            return str(candidate)
    return None


def _open_first(filenames: Sequence[str], size: int, font_dirs: Tuple[str, ...]) -> Optional[FontType]:
    for filename in filenames:
        # Bare file names fall through to Pillow's own system font search.
        path = _find_font_file(filename, font_dirs) or filename
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return None


def load_font(face: FontFace, bold: bool, italic: bool, size: int, font_dirs: Iterable[str] = ()) -> ResolvedFont:
    """Load the best available file for a face, synthesizing missing styles."""

    dirs = tuple(font_dirs)
    attempts: List[Tuple[Sequence[str], bool, bool]] = [(face.candidates(bold, italic), False, False)]
    if bold and italic:
        attempts.append((face.bold, False, True))
        attempts.append((face.italic, True, False))
    if bold or italic:
        attempts.append((face.regular, bold, italic))

    for filenames, fake_bold, fake_italic in attempts:
        font = _open_first(filenames, size, dirs)
        if font is not None:
            return ResolvedFont(face.family, font, fake_bold, fake_italic)

    logger.debug("No font file installed for %s, using bundled font", face.family)
    return ResolvedFont(face.family, ImageFont.load_default(size=size), bold, italic)


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=False, compress_level=6)
    return buffer.getvalue()


def to_data_uri(png_bytes: bytes) -> str:
    return PNG_DATA_URI_PREFIX + base64.b64encode(png_bytes).decode("ascii")


def decode_data_uri(uri: str) -> bytes:
    """Return the PNG bytes embedded in a data URI produced by this module."""

    if not uri.startswith(PNG_DATA_URI_PREFIX):
        raise ValueError("Not a PNG data URI")
    return base64.b64decode(uri[len(PNG_DATA_URI_PREFIX):])


def _paint(layer: Image.Image, mask: Image.Image, color: str) -> Image.Image:
    """Composite a solid ``color`` through ``mask`` onto ``layer``."""

    paint = Image.new("RGBA", layer.size, color_to_rgba(color, alpha=0))
    paint.putalpha(mask)
    return Image.alpha_composite(layer, paint)


def _composite_at(canvas: Image.Image, layer: Image.Image, offset: Tuple[int, int]) -> Image.Image:
    """Alpha-composite ``layer`` over ``canvas`` with its top-left at ``offset``; overhang is clipped."""

    placed = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    placed.paste(layer, offset)
    return Image.alpha_composite(canvas, placed)


class CanvasRasterizer:
    """Renders :class:`TextStyleDescriptor` objects into square PNG textures."""

    def __init__(self, canvas_size: int = DEFAULT_CANVAS_SIZE, font_dirs: Iterable[str] = ()) -> None:
        if canvas_size <= 0:
            raise ValueError("canvas_size must be positive")
        self.canvas_size = int(canvas_size)
        self.font_dirs = tuple(font_dirs)

    def resolve_font(self, style: TextStyleDescriptor, strict: bool = False) -> ResolvedFont:
        """Resolve the style's font, substituting the default family if unsupported."""

        try:
            face = font_face(style.font)
        except UnsupportedFontError:
            if strict:
                raise
            logger.warning(
                "Unsupported font, substituting default",
                extra={"font": style.font, "fallback": DEFAULT_FONT},
            )
            face = FONT_REGISTRY[DEFAULT_FONT]
        return load_font(face, style.bold, style.italic, max(1, int(style.size)), self.font_dirs)

    def render_image(
        self, style: TextStyleDescriptor, transform: Optional[DecalTransform] = None, strict: bool = False
    ) -> Image.Image:
        size = self.canvas_size
        canvas = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        content = " ".join(style.content.splitlines())
        if not content.strip():
            return canvas

        placement = (transform or DecalTransform()).clamped()
        anchor_x = placement.position.x / 100 * size
        anchor_y = placement.position.y / 100 * size

        resolved = self.resolve_font(style, strict=strict)
        text_layer, shadow_layer = self._text_layers(
            content, style, resolved, max_reach=math.ceil(size * math.sqrt(2))
        )
        origin = text_layer.width // 2
        left = round(anchor_x - origin)
        top = round(anchor_y - origin)

        if shadow_layer is not None:
            # The shadow offset is in canvas space and does not turn with the text.
            shadow_layer = self._orient(shadow_layer, placement.rotation_degrees, resolved.synthetic_italic)
            canvas = _composite_at(canvas, shadow_layer, (left + SHADOW_OFFSET[0], top + SHADOW_OFFSET[1]))
        text_layer = self._orient(text_layer, placement.rotation_degrees, resolved.synthetic_italic)
        return _composite_at(canvas, text_layer, (left, top))

    @staticmethod
    def _orient(layer: Image.Image, rotation_degrees: float, italic: bool) -> Image.Image:
        """Shear (synthetic italic) and rotate a square layer about its centre."""

        origin = layer.width // 2
        if italic:
            layer = layer.transform(
                layer.size,
                Image.Transform.AFFINE,
                (1, ITALIC_SHEAR, -ITALIC_SHEAR * origin, 0, 1, 0),
                resample=Image.Resampling.BICUBIC,
            )
        if rotation_degrees:
            # Pillow rotates counter-clockwise; screen rotation is clockwise.
            layer = layer.rotate(-rotation_degrees, resample=Image.Resampling.BICUBIC, center=(origin, origin))
        return layer

    def _text_layers(
        self, content: str, style: TextStyleDescriptor, resolved: ResolvedFont, max_reach: int
    ) -> Tuple[Image.Image, Optional[Image.Image]]:
        """Draw the outlined fill and, if styled, the blurred shadow on square layers.

        Both layers share a size and are centred on the text anchor.
        """

        font = resolved.font
        anchor = _ANCHORS.get(style.alignment, "mm")
        bold_width = max(1, round(style.size / 50)) if resolved.synthetic_bold else 0
        outline_width = 0
        if style.outline is not None and style.outline.width_px > 0:
            # A canvas stroke is centred on the glyph edge, so half of it shows outside.
            outline_width = max(1, round(style.outline.width_px / 2))
        stroke_width = bold_width + outline_width
        blur = style.shadow.blur_px if style.shadow is not None else 0

        measure = ImageDraw.Draw(Image.new("L", (1, 1)))
        left, top, right, bottom = measure.textbbox(
            (0, 0), content, font=font, anchor=anchor, stroke_width=stroke_width
        )
        reach = math.hypot(max(abs(left), abs(right)), max(abs(top), abs(bottom)))
        if resolved.synthetic_italic:
            reach *= 1 + ITALIC_SHEAR
        # Nothing farther than a canvas diagonal from the anchor can land on the canvas.
        reach = min(reach, max_reach)
        half = int(math.ceil(reach)) + int(math.ceil(blur * 2)) + 2
        layer_size = (half * 2, half * 2)
        origin = (half, half)

        def mask_for(width: int) -> Image.Image:
            mask = Image.new("L", layer_size, 0)
            ImageDraw.Draw(mask).text(
                origin, content, font=font, anchor=anchor, fill=255, stroke_width=width, stroke_fill=255
            )
            return mask

        blank = Image.new("RGBA", layer_size, (0, 0, 0, 0))

        shadow = None
        if style.shadow is not None:
            shadow_mask = mask_for(stroke_width)
            if blur > 0:
                shadow_mask = shadow_mask.filter(ImageFilter.GaussianBlur(radius=blur / 2))
            shadow = _paint(blank, shadow_mask, style.shadow.color)

        layer = blank
        if outline_width:
            # Stroke first so the fill sits on top and the outline reads as a border.
            layer = _paint(layer, mask_for(stroke_width), style.outline.color)

        return _paint(layer, mask_for(bold_width), style.color), shadow

    def rasterize(
        self, style: TextStyleDescriptor, transform: Optional[DecalTransform] = None, strict: bool = False
    ) -> bytes:
        """Render ``style`` at ``transform`` and return PNG bytes."""

        return encode_png(self.render_image(style, transform, strict=strict))

    def rasterize_data_uri(
        self, style: TextStyleDescriptor, transform: Optional[DecalTransform] = None, strict: bool = False
    ) -> str:
        return to_data_uri(self.rasterize(style, transform, strict=strict))


def generate_text_texture(
    style: TextStyleDescriptor,
    transform: Optional[DecalTransform] = None,
    canvas_size: int = DEFAULT_CANVAS_SIZE,
) -> str:
    """Functional shortcut returning a PNG data URI for one text decal."""

    return CanvasRasterizer(canvas_size=canvas_size).rasterize_data_uri(style, transform)


__all__ = [
    "DEFAULT_CANVAS_SIZE",
    "CanvasRasterizer",
    "ResolvedFont",
    "available_fonts",
    "decode_data_uri",
    "encode_png",
    "font_face",
    "generate_text_texture",
    "load_font",
    "suggest_font_size",
    "to_data_uri",
]
