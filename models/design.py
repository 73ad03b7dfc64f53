"""Design descriptor data model and helpers.

A :class:`DesignDescriptor` is the complete declarative state of one design.
Text decals are described by a :class:`TextStyleDescriptor` plus a
:class:`DecalTransform`; their rasters are derived data that can always be
regenerated, so the descriptor and not the bitmap is what gets persisted.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from models.errors import InvalidTransformError
from models.taxonomy import (
    DEFAULT_BASE_COLOR,
    DEFAULT_FONT,
    DEFAULT_OUTLINE_COLOR,
    DEFAULT_SHADOW_COLOR,
    DEFAULT_TEXT_COLOR,
    SIDE_SLOTS,
    SLOT_FRONT,
    SLOTS,
    SOURCE_GENERATED_TEXT,
    SOURCE_IMAGE,
    SOURCE_KINDS,
    normalize_color,
    normalize_garment_type,
    normalize_slot_name,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

POSITION_RANGE = (0.0, 100.0)
ROTATION_RANGE = (-360.0, 360.0)
SCALE_RANGE = (0.01, 3.0)

DEFAULT_POSITION = 50.0
DEFAULT_ROTATION = 0.0
DEFAULT_SCALE = 1.0
DEFAULT_TEXT_SIZE = 100


def _as_float(value: Any) -> Optional[float]:
    """Return a finite float or ``None`` for missing, non-numeric or NaN input."""

    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_bool(value: Any) -> bool:
    """Interpret flags that may arrive as strings (``"false"``, ``"0"``) from JSON or storage."""

    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _clamp(value: float, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def _ensure_mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


@dataclass(frozen=True)
class Position:
    """Decal anchor as a percentage of canvas width and height."""

    x: float = DEFAULT_POSITION
    y: float = DEFAULT_POSITION


@dataclass(frozen=True)
class DecalTransform:
    """Resolution independent placement of a decal on its canvas."""

    position: Position = field(default_factory=Position)
    rotation_degrees: float = DEFAULT_ROTATION
    scale: float = DEFAULT_SCALE

    def clamped(self) -> "DecalTransform":
        """Return a copy with every field pulled into its valid range."""

        x = _as_float(self.position.x)
        y = _as_float(self.position.y)
        rotation = _as_float(self.rotation_degrees)
        scale = _as_float(self.scale)
        return DecalTransform(
            position=Position(
                x=_clamp(DEFAULT_POSITION if x is None else x, POSITION_RANGE),
                y=_clamp(DEFAULT_POSITION if y is None else y, POSITION_RANGE),
            ),
            rotation_degrees=_clamp(DEFAULT_ROTATION if rotation is None else rotation, ROTATION_RANGE),
            scale=_clamp(DEFAULT_SCALE if scale is None else scale, SCALE_RANGE),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": {"x": self.position.x, "y": self.position.y},
            "rotationDegrees": self.rotation_degrees,
            "scale": self.scale,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "DecalTransform":
        """Build a clamped transform from loose input; never raises."""

        return coerce_transform(raw)


def _raw_transform_fields(raw: Any) -> Dict[str, Any]:
    """Flatten the accepted transform spellings into x/y/rotation/scale."""

    data = _ensure_mapping(raw)
    position = _ensure_mapping(data.get("position"))
    rotation = data.get("rotationDegrees", data.get("rotation_degrees", data.get("rotation")))
    return {
        "position.x": position.get("x", DEFAULT_POSITION),
        "position.y": position.get("y", DEFAULT_POSITION),
        "rotation": DEFAULT_ROTATION if rotation is None else rotation,
        "scale": data.get("scale", DEFAULT_SCALE),
    }


def validate_transform(raw: Any) -> DecalTransform:
    """Strictly validate a transform mapping.

    Raises:
        InvalidTransformError: if any field is non-numeric, NaN or out of range.
    """

    if isinstance(raw, DecalTransform):
        raw = raw.to_dict()
    bounds = {
        "position.x": POSITION_RANGE,
        "position.y": POSITION_RANGE,
        "rotation": ROTATION_RANGE,
        "scale": SCALE_RANGE,
    }
    values: Dict[str, float] = {}
    for key, value in _raw_transform_fields(raw).items():
        number = _as_float(value)
        low, high = bounds[key]
        if number is None or not low <= number <= high:
            raise InvalidTransformError(key, value)
        values[key] = number
    return DecalTransform(
        position=Position(values["position.x"], values["position.y"]),
        rotation_degrees=values["rotation"],
        scale=values["scale"],
    )


def coerce_transform(raw: Any) -> DecalTransform:
    """Validate a transform, clamping malformed values instead of failing."""

    if isinstance(raw, DecalTransform):
        raw = raw.to_dict()
    try:
        return validate_transform(raw)
    except InvalidTransformError as exc:
        fields = _raw_transform_fields(raw)
        transform = DecalTransform(
            position=Position(fields["position.x"], fields["position.y"]),
            rotation_degrees=fields["rotation"],
            scale=fields["scale"],
        ).clamped()
        logger.warning(
            "Clamped invalid decal transform",
            extra={"field": exc.field, "clamped": transform.to_dict()},
        )
        return transform


def flatten_storefront_style(data: Dict[str, Any]) -> Dict[str, Any]:
    """Lift the storefront's nested ``style`` block onto the flat style keys."""

    style = data.get("style")
    if not isinstance(style, Mapping):
        return data
    flat = {key: value for key, value in data.items() if key != "style"}
    flat.setdefault("bold", style.get("bold", False))
    flat.setdefault("italic", style.get("italic", False))
    if "outline" not in flat:
        flat["outline"] = (
            {"color": style.get("outlineColor"), "widthPx": style.get("outlineWidth")}
            if parse_bool(style.get("outline"))
            else None
        )
    if "shadow" not in flat:
        flat["shadow"] = (
            {"color": style.get("shadowColor"), "blurPx": style.get("shadowBlur")}
            if parse_bool(style.get("shadow"))
            else None
        )
    return flat


@dataclass(frozen=True)
class OutlineStyle:
    color: str = DEFAULT_OUTLINE_COLOR
    width_px: float = 2


@dataclass(frozen=True)
class ShadowStyle:
    color: str = DEFAULT_SHADOW_COLOR
    blur_px: float = 4


@dataclass(frozen=True)
class TextStyleDescriptor:
    """Everything needed to regenerate a text decal's raster."""

    content: str = ""
    font: str = DEFAULT_FONT
    size: int = DEFAULT_TEXT_SIZE
    color: str = DEFAULT_TEXT_COLOR
    alignment: str = "center"
    outline: Optional[OutlineStyle] = None
    shadow: Optional[ShadowStyle] = None
    bold: bool = False
    italic: bool = False

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "font": self.font,
            "size": self.size,
            "color": self.color,
            "alignment": self.alignment,
            "bold": self.bold,
            "italic": self.italic,
            "outline": (
                {"color": self.outline.color, "widthPx": self.outline.width_px} if self.outline else None
            ),
            "shadow": (
                {"color": self.shadow.color, "blurPx": self.shadow.blur_px} if self.shadow else None
            ),
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "TextStyleDescriptor":
        """Build a style from loose input; range checks live in ``logic.validation``."""

        data = flatten_storefront_style(_ensure_mapping(raw))
        outline_raw = data.get("outline")
        shadow_raw = data.get("shadow")
        if outline_raw is True:
            outline_raw = {}
        if shadow_raw is True:
            shadow_raw = {}
        outline = None
        if isinstance(outline_raw, Mapping):
            width = _as_float(outline_raw.get("widthPx", outline_raw.get("width_px")))
            outline = OutlineStyle(
                color=normalize_color(outline_raw.get("color"), DEFAULT_OUTLINE_COLOR),
                width_px=2 if width is None else width,
            )
        shadow = None
        if isinstance(shadow_raw, Mapping):
            blur = _as_float(shadow_raw.get("blurPx", shadow_raw.get("blur_px")))
            shadow = ShadowStyle(
                color=normalize_color(shadow_raw.get("color"), DEFAULT_SHADOW_COLOR),
                blur_px=4 if blur is None else blur,
            )
        size = _as_float(data.get("size"))
        return cls(
            content=str(data.get("content") or ""),
            font=str(data.get("font") or DEFAULT_FONT),
            size=int(round(size)) if size is not None else DEFAULT_TEXT_SIZE,
            color=normalize_color(data.get("color"), DEFAULT_TEXT_COLOR),
            alignment=str(data.get("alignment") or "center").strip().lower(),
            outline=outline,
            shadow=shadow,
            bold=parse_bool(data.get("bold")),
            italic=parse_bool(data.get("italic")),
        )


@dataclass(frozen=True)
class DecalLayer:
    """One renderable layer within a slot."""

    source_kind: str = SOURCE_IMAGE
    raster: Optional[str] = None
    transform: DecalTransform = field(default_factory=DecalTransform)
    text: Optional[TextStyleDescriptor] = None

    def __post_init__(self) -> None:
        if self.source_kind not in SOURCE_KINDS:
            raise ValueError(f"Unsupported source kind '{self.source_kind}'. Allowed: {SOURCE_KINDS}")
        if self.source_kind == SOURCE_GENERATED_TEXT and self.text is None:
            object.__setattr__(self, "text", TextStyleDescriptor())
        raster = self.raster.strip() if isinstance(self.raster, str) else None
        object.__setattr__(self, "raster", raster or None)

    @property
    def is_text(self) -> bool:
        return self.source_kind == SOURCE_GENERATED_TEXT

    @property
    def has_raster(self) -> bool:
        return bool(self.raster)

    def with_raster(self, raster: Optional[str]) -> "DecalLayer":
        return replace(self, raster=raster)

    def to_dict(self, include_raster: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "sourceKind": self.source_kind,
            "transform": self.transform.to_dict(),
        }
        if include_raster:
            payload["raster"] = self.raster
        if self.text is not None:
            payload["text"] = self.text.to_dict()
        return payload

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["DecalLayer"]:
        """Parse a layer mapping. ``None`` and unusable input yield ``None``."""

        data = _ensure_mapping(raw)
        if not data:
            return None
        kind = data.get("sourceKind", data.get("source_kind"))
        text_raw = data.get("text")
        if kind not in SOURCE_KINDS:
            kind = SOURCE_GENERATED_TEXT if isinstance(text_raw, Mapping) else SOURCE_IMAGE
        transform_raw = data.get("transform")
        if transform_raw is None and isinstance(text_raw, Mapping):
            # Storefront text blobs carry placement inline with the style.
            transform_raw = {"position": text_raw.get("position"), "rotation": text_raw.get("rotation")}
        return cls(
            source_kind=kind,
            raster=data.get("raster") if isinstance(data.get("raster"), str) else None,
            transform=coerce_transform(transform_raw),
            text=TextStyleDescriptor.from_dict(text_raw) if kind == SOURCE_GENERATED_TEXT else None,
        )


def _normalise_layers(
    layers: Optional[Mapping[str, Optional[DecalLayer]]], allowed: Iterable[str], text_only: bool = False
) -> Dict[str, DecalLayer]:
    allowed_slots = list(allowed)
    normalised: Dict[str, DecalLayer] = {}
    for raw_slot, layer in (layers or {}).items():
        slot = normalize_slot_name(raw_slot)
        if slot is None or slot not in allowed_slots:
            logger.warning("Dropping layer for unknown slot", extra={"slot": str(raw_slot)})
            continue
        if layer is None:
            continue
        if text_only and not layer.is_text:
            logger.warning("Dropping non-text layer from text slot", extra={"slot": slot})
            continue
        # An image layer without a reference is an empty slot.
        if not layer.is_text and not layer.has_raster:
            continue
        normalised[slot] = layer
    return normalised


def _normalise_logo_slots(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if values is None:
        return (SLOT_FRONT,)
    slots: List[str] = []
    for value in values:
        slot = normalize_slot_name(value)
        if slot in SIDE_SLOTS and slot not in slots:
            slots.append(slot)
    return tuple(slots)


@dataclass(frozen=True)
class DesignDescriptor:
    """Complete declarative state of one design."""

    garment_type: str = "tshirt"
    base_color: str = DEFAULT_BASE_COLOR
    decal_slots: Mapping[str, Optional[DecalLayer]] = field(default_factory=dict)
    text_slots: Mapping[str, Optional[DecalLayer]] = field(default_factory=dict)
    logo_slots: Tuple[str, ...] = (SLOT_FRONT,)
    is_logo_texture: bool = False
    is_full_texture: bool = False
    schema_version: int = SCHEMA_VERSION

    def __post_init__(self) -> None:
        object.__setattr__(self, "garment_type", normalize_garment_type(self.garment_type))
        object.__setattr__(self, "base_color", normalize_color(self.base_color, DEFAULT_BASE_COLOR))
        object.__setattr__(self, "decal_slots", _normalise_layers(self.decal_slots, SLOTS))
        object.__setattr__(self, "text_slots", _normalise_layers(self.text_slots, SIDE_SLOTS, text_only=True))
        object.__setattr__(self, "logo_slots", _normalise_logo_slots(self.logo_slots))
        object.__setattr__(self, "is_logo_texture", parse_bool(self.is_logo_texture))
        object.__setattr__(self, "is_full_texture", parse_bool(self.is_full_texture))

    def layer(self, slot: str) -> Optional[DecalLayer]:
        return self.decal_slots.get(normalize_slot_name(slot) or slot)

    def text_layer(self, slot: str) -> Optional[DecalLayer]:
        return self.text_slots.get(normalize_slot_name(slot) or slot)

    def with_slot(self, slot: str, layer: Optional[DecalLayer]) -> "DesignDescriptor":
        slots = dict(self.decal_slots)
        slots[slot] = layer
        return replace(self, decal_slots=slots)

    def with_text(self, slot: str, layer: Optional[DecalLayer]) -> "DesignDescriptor":
        slots = dict(self.text_slots)
        slots[slot] = layer
        return replace(self, text_slots=slots)

    def replace(self, **changes: Any) -> "DesignDescriptor":
        return replace(self, **changes)

    def iter_text_layers(self) -> Iterable[Tuple[str, str, DecalLayer]]:
        """Yield ``(group, slot, layer)`` for every text layer in the design."""

        for slot, layer in self.decal_slots.items():
            if layer.is_text:
                yield "decalSlots", slot, layer
        for slot, layer in self.text_slots.items():
            yield "textSlots", slot, layer

    def to_dict(self, include_text_rasters: bool = False) -> Dict[str, Any]:
        """Serialise to the JSON descriptor shape.

        Text rasters are omitted unless requested; they are regenerated on load.
        """

        def dump(layer: DecalLayer) -> Dict[str, Any]:
            return layer.to_dict(include_raster=include_text_rasters or not layer.is_text)

        return {
            "schemaVersion": self.schema_version,
            "garmentType": self.garment_type,
            "baseColor": self.base_color,
            "decalSlots": {slot: dump(layer) for slot, layer in self.decal_slots.items()},
            "textSlots": {slot: dump(layer) for slot, layer in self.text_slots.items()},
            "logoSlots": list(self.logo_slots),
            "isLogoTexture": self.is_logo_texture,
            "isFullTexture": self.is_full_texture,
        }

    def to_json(self, include_text_rasters: bool = False) -> str:
        return json.dumps(self.to_dict(include_text_rasters=include_text_rasters), sort_keys=True)

    @classmethod
    def from_dict(cls, raw: Any) -> "DesignDescriptor":
        """Build a descriptor from the JSON shape, tolerating missing fields."""

        data = _ensure_mapping(raw)
        version = data.get("schemaVersion", SCHEMA_VERSION)
        if version != SCHEMA_VERSION:
            logger.warning("Loading descriptor with unexpected schema version", extra={"version": version})
        decal_slots = {
            slot: DecalLayer.from_dict(layer) for slot, layer in _ensure_mapping(data.get("decalSlots")).items()
        }
        text_slots = {
            slot: DecalLayer.from_dict(layer) for slot, layer in _ensure_mapping(data.get("textSlots")).items()
        }
        logo_slots = data.get("logoSlots")
        if isinstance(logo_slots, str):
            logo_slots = [logo_slots]
        elif not isinstance(logo_slots, (list, tuple)):
            logo_slots = None
        return cls(
            garment_type=str(data.get("garmentType") or ""),
            base_color=data.get("baseColor") or DEFAULT_BASE_COLOR,
            decal_slots=decal_slots,
            text_slots=text_slots,
            logo_slots=logo_slots,
            is_logo_texture=parse_bool(data.get("isLogoTexture")),
            is_full_texture=parse_bool(data.get("isFullTexture")),
        )

    @classmethod
    def from_json(cls, payload: str) -> "DesignDescriptor":
        return cls.from_dict(json.loads(payload))


__all__ = [
    "SCHEMA_VERSION",
    "Position",
    "DecalTransform",
    "OutlineStyle",
    "ShadowStyle",
    "TextStyleDescriptor",
    "DecalLayer",
    "DesignDescriptor",
    "validate_transform",
    "coerce_transform",
    "flatten_storefront_style",
    "parse_bool",
]
