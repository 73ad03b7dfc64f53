"""Decal composition policy: which layers are visible and where they render.

Everything here is a pure function of a :class:`DesignDescriptor` (and, for
render plans, the read-only anchor table). Calling any of these twice on the
same descriptor yields the same result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from models.design import DecalLayer, DecalTransform, DesignDescriptor
from models.garment_anchors import GarmentAnchor, GarmentAnchorTable, SlotTransform
from models.taxonomy import SIDE_SLOTS, SLOT_BACK, SLOT_FRONT, SLOT_FULL_SURFACE

logger = logging.getLogger(__name__)

ROLE_FULL_TEXTURE = "fullTexture"
ROLE_LOGO = "logo"
ROLE_TEXT = "text"


@dataclass(frozen=True)
class VisibleLayer:
    """One layer the renderer should draw, in compositing order."""

    slot: str
    role: str
    raster: str
    transform: DecalTransform
    inherited: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot": self.slot,
            "role": self.role,
            "raster": self.raster,
            "transform": self.transform.to_dict(),
            "inherited": self.inherited,
        }


@dataclass(frozen=True)
class LayerFlags:
    """Presence flags derived from the visible layer set."""

    has_full_texture: bool = False
    has_front_logo: bool = False
    has_back_logo: bool = False
    has_front_text: bool = False
    has_back_text: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "hasFullTexture": self.has_full_texture,
            "hasFrontLogo": self.has_front_logo,
            "hasBackLogo": self.has_back_logo,
            "hasFrontText": self.has_front_text,
            "hasBackText": self.has_back_text,
        }


def _image_layer(descriptor: DesignDescriptor, slot: str) -> Optional[DecalLayer]:
    layer = descriptor.layer(slot)
    if layer is None or layer.is_text or not layer.has_raster:
        return None
    return layer


def _text_visible(layer: Optional[DecalLayer]) -> bool:
    return (
        layer is not None
        and layer.is_text
        and layer.text is not None
        and not layer.text.is_blank
        and layer.has_raster
    )


def _full_texture(descriptor: DesignDescriptor) -> Optional[VisibleLayer]:
    layer = descriptor.layer(SLOT_FULL_SURFACE)
    if not descriptor.is_full_texture or layer is None or not layer.has_raster:
        return None
    if layer.is_text and not _text_visible(layer):
        return None
    return VisibleLayer(SLOT_FULL_SURFACE, ROLE_FULL_TEXTURE, layer.raster, layer.transform)


def _front_logo(descriptor: DesignDescriptor) -> Optional[VisibleLayer]:
    layer = _image_layer(descriptor, SLOT_FRONT)
    if layer is None or not descriptor.is_logo_texture:
        return None
    return VisibleLayer(SLOT_FRONT, ROLE_LOGO, layer.raster, layer.transform)


def _back_logo(descriptor: DesignDescriptor) -> Optional[VisibleLayer]:
    dedicated = _image_layer(descriptor, SLOT_BACK)
    if dedicated is not None:
        return VisibleLayer(SLOT_BACK, ROLE_LOGO, dedicated.raster, dedicated.transform)
    front = _image_layer(descriptor, SLOT_FRONT)
    if front is not None and SLOT_BACK in descriptor.logo_slots:
        return VisibleLayer(SLOT_BACK, ROLE_LOGO, front.raster, front.transform, inherited=True)
    return None


def _text_layers(descriptor: DesignDescriptor, slot: str) -> List[VisibleLayer]:
    layers: List[VisibleLayer] = []
    for layer in (descriptor.layer(slot), descriptor.text_layer(slot)):
        if _text_visible(layer):
            layers.append(VisibleLayer(slot, ROLE_TEXT, layer.raster, layer.transform))
    return layers


def resolve_visible_layers(descriptor: DesignDescriptor) -> List[VisibleLayer]:
    """Return the visible layers in compositing order.

    The full-surface texture comes first as the base. Front and back logos
    follow, then front and back text. A back logo without its own raster
    reuses the front logo when the front logo's slot membership includes the
    back. A dedicated back raster always wins. Text never inherits between
    sides.
    """

    layers: List[VisibleLayer] = []
    for candidate in (_full_texture(descriptor), _front_logo(descriptor), _back_logo(descriptor)):
        if candidate is not None:
            layers.append(candidate)
    for slot in SIDE_SLOTS:
        layers.extend(_text_layers(descriptor, slot))
    return layers


def flags_for(layers: List[VisibleLayer]) -> LayerFlags:
    present = {(layer.slot, layer.role) for layer in layers}
    return LayerFlags(
        has_full_texture=(SLOT_FULL_SURFACE, ROLE_FULL_TEXTURE) in present,
        has_front_logo=(SLOT_FRONT, ROLE_LOGO) in present,
        has_back_logo=(SLOT_BACK, ROLE_LOGO) in present,
        has_front_text=(SLOT_FRONT, ROLE_TEXT) in present,
        has_back_text=(SLOT_BACK, ROLE_TEXT) in present,
    )


def resolve_layer_flags(descriptor: DesignDescriptor) -> LayerFlags:
    return flags_for(resolve_visible_layers(descriptor))


def materialize_text_rasters(descriptor: DesignDescriptor, rasterizer: Any) -> DesignDescriptor:
    """Return a copy whose text layers carry freshly generated rasters.

    ``rasterizer`` only needs a ``rasterize_data_uri(style, transform)`` method.
    Blank text gets no raster so it never shows up as a visible layer.
    """

    decal_slots = dict(descriptor.decal_slots)
    text_slots = dict(descriptor.text_slots)
    for group, slot, layer in descriptor.iter_text_layers():
        raster = None
        if layer.text is not None and not layer.text.is_blank:
            raster = rasterizer.rasterize_data_uri(layer.text, layer.transform)
        target = decal_slots if group == "decalSlots" else text_slots
        target[slot] = layer.with_raster(raster)
    return replace(descriptor, decal_slots=decal_slots, text_slots=text_slots)


@dataclass(frozen=True)
class RenderInstruction:
    """A (texture, placement, target) tuple for the external 3D renderer."""

    slot: str
    role: str
    texture: str
    slot_transform: SlotTransform
    mesh_node_id: str
    material_id: str
    inherited: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot": self.slot,
            "role": self.role,
            "texture": self.texture,
            "transform": self.slot_transform.to_dict(),
            "meshNodeId": self.mesh_node_id,
            "materialId": self.material_id,
            "inherited": self.inherited,
        }


@dataclass(frozen=True)
class RenderPlan:
    """Everything the renderer needs to draw one design."""

    garment: GarmentAnchor
    base_color: str
    instructions: List[RenderInstruction] = field(default_factory=list)
    skipped_slots: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "garment": self.garment.to_dict(),
            "baseColor": {"color": self.base_color, "materialId": self.garment.material_id},
            "instructions": [instruction.to_dict() for instruction in self.instructions],
            "skippedSlots": list(self.skipped_slots),
        }


def build_render_plan(
    descriptor: DesignDescriptor,
    anchor_table: GarmentAnchorTable,
    layers: Optional[List[VisibleLayer]] = None,
) -> RenderPlan:
    """Pair each visible layer with its garment anchor.

    Layers in slots the garment does not support are skipped without error.
    """

    garment = anchor_table.lookup(descriptor.garment_type)
    visible = resolve_visible_layers(descriptor) if layers is None else layers
    instructions: List[RenderInstruction] = []
    skipped: List[str] = []
    for layer in visible:
        slot_transform = garment.slot_transform(layer.slot)
        if slot_transform is None:
            logger.debug(
                "Skipping layer for unsupported slot",
                extra={"garment_type": garment.garment_type, "slot": layer.slot, "role": layer.role},
            )
            skipped.append(layer.slot)
            continue
        instructions.append(
            RenderInstruction(
                slot=layer.slot,
                role=layer.role,
                texture=layer.raster,
                slot_transform=slot_transform,
                mesh_node_id=garment.mesh_node_id,
                material_id=garment.material_id,
                inherited=layer.inherited,
            )
        )
    return RenderPlan(
        garment=garment, base_color=descriptor.base_color, instructions=instructions, skipped_slots=skipped
    )


__all__ = [
    "ROLE_FULL_TEXTURE",
    "ROLE_LOGO",
    "ROLE_TEXT",
    "VisibleLayer",
    "LayerFlags",
    "RenderInstruction",
    "RenderPlan",
    "resolve_visible_layers",
    "resolve_layer_flags",
    "flags_for",
    "materialize_text_rasters",
    "build_render_plan",
]
