"""Canonical vocabulary for designs, decal slots and text styling.

This module centralises the labels shared by the descriptor model, the
rasterizer, the anchor table and the storage codec: slot names, garment type
ids, source kinds and the font registry. Helper functions keep
normalisation consistent across those layers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

SLOT_FRONT = "front"
SLOT_BACK = "back"
SLOT_FULL_SURFACE = "fullSurface"

SLOTS: List[str] = [SLOT_FRONT, SLOT_BACK, SLOT_FULL_SURFACE]
SIDE_SLOTS: List[str] = [SLOT_FRONT, SLOT_BACK]
REQUIRED_ANCHOR_SLOTS: List[str] = [SLOT_FRONT, SLOT_FULL_SURFACE]

_SLOT_ALIASES: Dict[str, str] = {
    "front": SLOT_FRONT,
    "back": SLOT_BACK,
    "fullsurface": SLOT_FULL_SURFACE,
    "full_surface": SLOT_FULL_SURFACE,
    "full": SLOT_FULL_SURFACE,
}

GARMENT_TSHIRT = "tshirt"
GARMENT_FEMALE_TSHIRT = "female_tshirt"

SOURCE_IMAGE = "image"
SOURCE_GENERATED_TEXT = "generatedText"
SOURCE_KINDS: List[str] = [SOURCE_IMAGE, SOURCE_GENERATED_TEXT]

DEFAULT_BASE_COLOR = "#353934"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_OUTLINE_COLOR = "#ffffff"
DEFAULT_SHADOW_COLOR = "#000000"

MIN_FONT_SIZE = 20
MAX_FONT_SIZE = 300
MAX_OUTLINE_WIDTH = 20
MAX_SHADOW_BLUR = 50


@dataclass(frozen=True)
class FontFace:
    """A supported font family and the font files that may provide it.

    File names are searched in configured font directories first and then in
    the system font locations Pillow knows about. Later entries in each list
    are metric-compatible substitutes.
    """

    family: str
    regular: Tuple[str, ...]
    bold: Tuple[str, ...] = ()
    italic: Tuple[str, ...] = ()
    bold_italic: Tuple[str, ...] = ()

    def candidates(self, bold: bool, italic: bool) -> Tuple[str, ...]:
        if bold and italic:
            return self.bold_italic
        if bold:
            return self.bold
        if italic:
            return self.italic
        return self.regular


FONT_REGISTRY: Dict[str, FontFace] = {
    face.family: face
    for face in (
        FontFace(
            "Arial",
            ("arial.ttf", "Arial.ttf", "LiberationSans-Regular.ttf"),
            ("arialbd.ttf", "Arial Bold.ttf", "LiberationSans-Bold.ttf"),
            ("ariali.ttf", "Arial Italic.ttf", "LiberationSans-Italic.ttf"),
            ("arialbi.ttf", "Arial Bold Italic.ttf", "LiberationSans-BoldItalic.ttf"),
        ),
        FontFace(
            "Helvetica",
            ("Helvetica.ttf", "LiberationSans-Regular.ttf"),
            ("Helvetica-Bold.ttf", "LiberationSans-Bold.ttf"),
            ("Helvetica-Oblique.ttf", "LiberationSans-Italic.ttf"),
            ("Helvetica-BoldOblique.ttf", "LiberationSans-BoldItalic.ttf"),
        ),
        FontFace(
            "Times New Roman",
            ("times.ttf", "Times New Roman.ttf", "LiberationSerif-Regular.ttf"),
            ("timesbd.ttf", "Times New Roman Bold.ttf", "LiberationSerif-Bold.ttf"),
            ("timesi.ttf", "Times New Roman Italic.ttf", "LiberationSerif-Italic.ttf"),
            ("timesbi.ttf", "Times New Roman Bold Italic.ttf", "LiberationSerif-BoldItalic.ttf"),
        ),
        FontFace(
            "Georgia",
            ("georgia.ttf", "Georgia.ttf", "DejaVuSerif.ttf"),
            ("georgiab.ttf", "Georgia Bold.ttf", "DejaVuSerif-Bold.ttf"),
            ("georgiai.ttf", "Georgia Italic.ttf", "DejaVuSerif-Italic.ttf"),
            ("georgiaz.ttf", "Georgia Bold Italic.ttf", "DejaVuSerif-BoldItalic.ttf"),
        ),
        FontFace(
            "Verdana",
            ("verdana.ttf", "Verdana.ttf", "DejaVuSans.ttf"),
            ("verdanab.ttf", "Verdana Bold.ttf", "DejaVuSans-Bold.ttf"),
            ("verdanai.ttf", "Verdana Italic.ttf", "DejaVuSans-Oblique.ttf"),
            ("verdanaz.ttf", "Verdana Bold Italic.ttf", "DejaVuSans-BoldOblique.ttf"),
        ),
        FontFace(
            "Courier New",
            ("cour.ttf", "Courier New.ttf", "LiberationMono-Regular.ttf"),
            ("courbd.ttf", "Courier New Bold.ttf", "LiberationMono-Bold.ttf"),
            ("couri.ttf", "Courier New Italic.ttf", "LiberationMono-Italic.ttf"),
            ("courbi.ttf", "Courier New Bold Italic.ttf", "LiberationMono-BoldItalic.ttf"),
        ),
        FontFace("Impact", ("impact.ttf", "Impact.ttf")),
        FontFace("Comic Sans MS", ("comic.ttf", "Comic Sans MS.ttf"), ("comicbd.ttf", "Comic Sans MS Bold.ttf")),
        FontFace(
            "Trebuchet MS",
            ("trebuc.ttf", "Trebuchet MS.ttf"),
            ("trebucbd.ttf", "Trebuchet MS Bold.ttf"),
            ("trebucit.ttf", "Trebuchet MS Italic.ttf"),
            ("trebucbi.ttf", "Trebuchet MS Bold Italic.ttf"),
        ),
        FontFace("Arial Black", ("ariblk.ttf", "Arial Black.ttf")),
        FontFace("Palatino", ("pala.ttf", "Palatino.ttf"), ("palab.ttf",), ("palai.ttf",), ("palabi.ttf",)),
        FontFace("Garamond", ("GARA.TTF", "Garamond.ttf"), ("GARABD.TTF",), ("GARAIT.TTF",)),
    )
}

DEFAULT_FONT = next(iter(FONT_REGISTRY))

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")
_RGB_COLOR = re.compile(r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+\s*)?\)$")


def normalize_slot_name(value: str) -> Optional[str]:
    """Map a raw slot label onto a canonical slot name, or ``None``."""

    key = str(value).strip().lower().replace(" ", "_").replace("-", "_")
    return _SLOT_ALIASES.get(key)


def normalize_garment_type(value: Optional[str]) -> str:
    """Lower-case and trim a garment id; empty input maps to the default tee."""

    key = (value or "").strip().lower().replace(" ", "_").replace("-", "_")
    return key or GARMENT_TSHIRT


def parse_color(value: object) -> Optional[str]:
    """Return ``#rrggbb`` for hex or ``rgb()`` input, ``None`` when unparseable."""

    if not isinstance(value, str):
        return None
    raw = value.strip()
    match = _HEX_COLOR.match(raw)
    if match:
        digits = match.group(1).lower()
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return f"#{digits}"
    match = _RGB_COLOR.match(raw.lower())
    if match:
        channels = [int(part) for part in match.groups()]
        if all(0 <= channel <= 255 for channel in channels):
            return "#" + "".join(f"{channel:02x}" for channel in channels)
    return None


def normalize_color(value: object, default: str) -> str:
    """Like :func:`parse_color` but falls back to ``default``."""

    return parse_color(value) or default


def color_to_rgba(value: str, alpha: int = 255) -> Tuple[int, int, int, int]:
    """Convert a normalised ``#rrggbb`` string into an RGBA tuple."""

    digits = normalize_color(value, DEFAULT_TEXT_COLOR)[1:]
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16), alpha)


def canonical_font_family(family: Optional[str]) -> Optional[str]:
    """Return the registry spelling of ``family`` (case-insensitive), or ``None``."""

    if family in FONT_REGISTRY:
        return family
    wanted = (family or "").strip().lower()
    for name in FONT_REGISTRY:
        if name.lower() == wanted:
            return name
    return None


def is_supported_font(family: Optional[str]) -> bool:
    return canonical_font_family(family) is not None


__all__ = [
    "SLOT_FRONT",
    "SLOT_BACK",
    "SLOT_FULL_SURFACE",
    "SLOTS",
    "SIDE_SLOTS",
    "REQUIRED_ANCHOR_SLOTS",
    "GARMENT_TSHIRT",
    "GARMENT_FEMALE_TSHIRT",
    "SOURCE_IMAGE",
    "SOURCE_GENERATED_TEXT",
    "SOURCE_KINDS",
    "DEFAULT_BASE_COLOR",
    "DEFAULT_TEXT_COLOR",
    "DEFAULT_OUTLINE_COLOR",
    "DEFAULT_SHADOW_COLOR",
    "MIN_FONT_SIZE",
    "MAX_FONT_SIZE",
    "MAX_OUTLINE_WIDTH",
    "MAX_SHADOW_BLUR",
    "FontFace",
    "FONT_REGISTRY",
    "DEFAULT_FONT",
    "normalize_slot_name",
    "normalize_garment_type",
    "parse_color",
    "normalize_color",
    "color_to_rgba",
    "canonical_font_family",
    "is_supported_font",
]
