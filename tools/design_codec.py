"""Map design descriptors to and from flat storage records.

Records mirror the storefront's ``designs`` table. Raster references are
plain columns, and structured sub-fields (slot membership, transforms, text
styles) are JSON-encoded strings. Decoding never raises: malformed JSON
falls back to defaults and is reported as a data-integrity warning.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from logic.composition import resolve_layer_flags
from models.design import (
    DecalLayer,
    DesignDescriptor,
    TextStyleDescriptor,
    coerce_transform,
    parse_bool,
)
from models.taxonomy import (
    SIDE_SLOTS,
    SLOT_BACK,
    SLOT_FRONT,
    SLOT_FULL_SURFACE,
    SOURCE_GENERATED_TEXT,
    SOURCE_IMAGE,
    normalize_slot_name,
)
from studio_app.logging_config import log_event

logger = logging.getLogger(__name__)

RECORD_COLUMNS: List[str] = [
    "shirt_type",
    "color",
    "logo_decal",
    "is_logo_texture",
    "logo_position",
    "logo_data",
    "back_logo_decal",
    "has_back_logo",
    "back_logo_position",
    "front_text_decal",
    "front_text_data",
    "has_front_text",
    "back_text_decal",
    "back_text_data",
    "has_back_text",
    "full_decal",
    "full_data",
    "is_full_texture",
]

_LEGACY_LOGO_POSITIONS: Dict[str, List[str]] = {
    "front": [SLOT_FRONT],
    "back": [SLOT_BACK],
    "both": [SLOT_FRONT, SLOT_BACK],
}

_LOGO_COLUMNS = {
    SLOT_FRONT: ("logo_decal", "logo_data"),
    SLOT_BACK: ("back_logo_decal", "back_logo_position"),
}

_SIDE_COLUMNS = {
    SLOT_FRONT: ("front_text_decal", "front_text_data"),
    SLOT_BACK: ("back_text_decal", "back_text_data"),
}


@dataclass(frozen=True)
class ParseResult:
    """Outcome of decoding one JSON column."""

    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DecodedDesign:
    descriptor: DesignDescriptor
    warnings: List[str] = field(default_factory=list)


def parse_json_field(raw: Any, default: Any = None) -> ParseResult:
    """Decode a JSON column without raising.

    ``None`` and empty strings yield ``default``. Values that are already
    decoded (drivers that return JSON columns as objects) pass through.
    """

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return ParseResult(default)
    if not isinstance(raw, (str, bytes, bytearray)):
        return ParseResult(raw)
    try:
        return ParseResult(json.loads(raw))
    except (TypeError, ValueError) as exc:
        return ParseResult(default, error=str(exc))


def _raster(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def text_to_storefront(layer: DecalLayer) -> Dict[str, Any]:
    """Encode a text layer in the storefront's text JSON shape."""

    style = layer.text or TextStyleDescriptor()
    transform = layer.transform
    return {
        "content": style.content,
        "color": style.color,
        "size": style.size,
        "font": style.font,
        "position": {"x": transform.position.x, "y": transform.position.y},
        "rotation": transform.rotation_degrees,
        "scale": transform.scale,
        "alignment": style.alignment,
        "style": {
            "bold": style.bold,
            "italic": style.italic,
            "outline": style.outline is not None,
            "outlineColor": style.outline.color if style.outline else None,
            "outlineWidth": style.outline.width_px if style.outline else None,
            "shadow": style.shadow is not None,
            "shadowColor": style.shadow.color if style.shadow else None,
            "shadowBlur": style.shadow.blur_px if style.shadow else None,
        },
    }


def text_from_storefront(data: Mapping[str, Any], raster: Optional[str] = None) -> DecalLayer:
    transform = coerce_transform(
        {"position": data.get("position"), "rotation": data.get("rotation"), "scale": data.get("scale", 1)}
    )
    return DecalLayer(
        source_kind=SOURCE_GENERATED_TEXT,
        raster=raster,
        transform=transform,
        text=TextStyleDescriptor.from_dict(data),
    )


def _side_layers(descriptor: DesignDescriptor, slot: str) -> Tuple[Optional[DecalLayer], Optional[DecalLayer]]:
    """Split a side into the layers for its logo columns and its text columns.

    A lone text decal goes to the text columns. When the side also has a
    dedicated text layer, the decal text stays in the logo columns.
    """

    decal = descriptor.layer(slot)
    text = descriptor.text_layer(slot)
    if decal is not None and decal.is_text and text is None:
        return None, decal
    return decal, text


def _logo_data(layer: DecalLayer) -> str:
    if layer.is_text:
        return json.dumps(layer.to_dict(include_raster=False))
    return json.dumps(layer.transform.to_dict())


def _has_text(*layers: Optional[DecalLayer]) -> bool:
    return any(layer is not None and layer.is_text and not layer.text.is_blank for layer in layers)


def to_storage_record(descriptor: DesignDescriptor, include_text_rasters: bool = False) -> Dict[str, Any]:
    """Flatten a descriptor into storage columns.

    Text rasters are left out unless ``include_text_rasters`` is set; they are
    regenerated from the text JSON when a design is loaded.
    """

    def raster_of(layer: Optional[DecalLayer]) -> Optional[str]:
        if layer is None or (layer.is_text and not include_text_rasters):
            return None
        return layer.raster

    flags = resolve_layer_flags(descriptor)
    full = descriptor.layer(SLOT_FULL_SURFACE)

    record: Dict[str, Any] = {
        "shirt_type": descriptor.garment_type,
        "color": descriptor.base_color,
        "is_logo_texture": descriptor.is_logo_texture,
        "logo_position": json.dumps(list(descriptor.logo_slots)),
        "has_back_logo": flags.has_back_logo,
        "full_decal": raster_of(full),
        "full_data": json.dumps(full.to_dict(include_raster=False)) if full is not None else None,
        "is_full_texture": descriptor.is_full_texture,
    }

    for slot in SIDE_SLOTS:
        logo_decal_column, logo_data_column = _LOGO_COLUMNS[slot]
        text_decal_column, text_data_column = _SIDE_COLUMNS[slot]
        decal, text = _side_layers(descriptor, slot)
        record[logo_decal_column] = raster_of(decal)
        record[logo_data_column] = _logo_data(decal) if decal is not None else None
        record[text_decal_column] = raster_of(text)
        record[text_data_column] = json.dumps(text_to_storefront(text)) if text is not None else None
        record[f"has_{slot}_text"] = _has_text(decal, text)
    return record


class _Decoder:
    """Accumulates data-integrity warnings while decoding one record."""

    def __init__(self, record: Mapping[str, Any]) -> None:
        self.record = record
        self.warnings: List[str] = []

    def json(self, column: str, default: Any = None) -> Any:
        result = parse_json_field(self.record.get(column), default)
        if not result.ok:
            message = f"Could not parse {column}: {result.error}"
            self.warnings.append(message)
            log_event(logger, logging.WARNING, "design_field_corrupt", column=column, error=result.error)
        return result.value

    def logo(self, decal_column: str, data_column: str) -> Optional[DecalLayer]:
        """Decode a side's logo columns, which hold an image or a second text decal."""

        raster = _raster(self.record.get(decal_column))
        data = self.json(data_column, {})
        if not isinstance(data, Mapping):
            self.warnings.append(f"Ignoring non-object {data_column}")
            data = {}
        if data.get("sourceKind") == SOURCE_GENERATED_TEXT:
            layer = DecalLayer.from_dict(data)
            return layer.with_raster(raster)
        if raster is None:
            return None
        if isinstance(data.get("transform"), Mapping):
            data = data["transform"]
        return DecalLayer(SOURCE_IMAGE, raster, coerce_transform(data))

    def logo_slots(self) -> List[str]:
        raw = self.record.get("logo_position")
        if isinstance(raw, str) and raw.strip().lower() in _LEGACY_LOGO_POSITIONS:
            return list(_LEGACY_LOGO_POSITIONS[raw.strip().lower()])
        value = self.json("logo_position", [SLOT_FRONT])
        if isinstance(value, str):
            return list(_LEGACY_LOGO_POSITIONS.get(value.strip().lower(), [SLOT_FRONT]))
        if not isinstance(value, list):
            self.warnings.append("Ignoring non-list logo_position")
            return [SLOT_FRONT]
        slots: List[str] = []
        for entry in value:
            if str(entry).strip().lower() == "both":
                slots.extend([SLOT_FRONT, SLOT_BACK])
                continue
            slot = normalize_slot_name(entry)
            if slot is None:
                self.warnings.append(f"Ignoring unknown logo position {entry!r}")
                continue
            slots.append(slot)
        return slots

    def text(self, decal_column: str, data_column: str, legacy_column: Optional[str] = None) -> Optional[DecalLayer]:
        data = self.json(data_column)
        if data is None and legacy_column is not None:
            data = self.json(legacy_column)
        if data is None:
            return None
        if not isinstance(data, Mapping):
            self.warnings.append(f"Ignoring non-object {data_column}")
            return None
        return text_from_storefront(data, raster=_raster(self.record.get(decal_column)))

    def full(self) -> Optional[DecalLayer]:
        raster = _raster(self.record.get("full_decal"))
        data = self.json("full_data")
        if isinstance(data, Mapping):
            layer = DecalLayer.from_dict(data)
            if layer is not None:
                return layer.with_raster(raster)
        elif data is not None:
            self.warnings.append("Ignoring non-object full_data")
        if raster is None:
            return None
        return DecalLayer(source_kind=SOURCE_IMAGE, raster=raster)


def from_storage_record(record: Mapping[str, Any]) -> DecodedDesign:
    """Rebuild a descriptor from storage columns, degrading to defaults."""

    decoder = _Decoder(record)

    logo_slots = decoder.logo_slots()
    back_raster = _raster(record.get("back_logo_decal"))
    # Older rows only set a boolean to mirror the front logo on the back.
    if parse_bool(record.get("has_back_logo")) and back_raster is None and SLOT_BACK not in logo_slots:
        logo_slots.append(SLOT_BACK)

    decal_slots: Dict[str, Optional[DecalLayer]] = {
        slot: decoder.logo(*_LOGO_COLUMNS[slot]) for slot in SIDE_SLOTS
    }
    full = decoder.full()
    if full is not None:
        decal_slots[SLOT_FULL_SURFACE] = full

    text_slots: Dict[str, Optional[DecalLayer]] = {
        SLOT_FRONT: decoder.text("front_text_decal", "front_text_data", legacy_column="text_data"),
        SLOT_BACK: decoder.text("back_text_decal", "back_text_data"),
    }

    descriptor = DesignDescriptor(
        garment_type=str(record.get("shirt_type") or ""),
        base_color=record.get("color"),
        decal_slots=decal_slots,
        text_slots=text_slots,
        logo_slots=tuple(logo_slots),
        is_logo_texture=parse_bool(record.get("is_logo_texture")),
        is_full_texture=parse_bool(record.get("is_full_texture")),
    )
    return DecodedDesign(descriptor=descriptor, warnings=decoder.warnings)


__all__ = [
    "RECORD_COLUMNS",
    "ParseResult",
    "DecodedDesign",
    "parse_json_field",
    "text_to_storefront",
    "text_from_storefront",
    "to_storage_record",
    "from_storage_record",
]
