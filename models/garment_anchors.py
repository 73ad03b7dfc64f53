"""Per-garment anchor table: where each decal slot sits on the 3D mesh.

Adding a garment is a data change. Pass a new entry to
:meth:`GarmentAnchorTable.from_mapping` or ship it in a JSON file loaded with
:meth:`GarmentAnchorTable.from_json_file`.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from models.errors import MissingAnchorError
from models.taxonomy import (
    GARMENT_FEMALE_TSHIRT,
    GARMENT_TSHIRT,
    REQUIRED_ANCHOR_SLOTS,
    SLOT_BACK,
    SLOT_FRONT,
    SLOT_FULL_SURFACE,
    normalize_garment_type,
    normalize_slot_name,
)

logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]


def _vector(value: Any, default: Vector3 = (0.0, 0.0, 0.0)) -> Vector3:
    if value is None:
        return default
    parts = [float(part) for part in value]
    if len(parts) != 3:
        raise ValueError(f"Expected three components, got {value!r}")
    return (parts[0], parts[1], parts[2])


@dataclass(frozen=True)
class SlotTransform:
    """Model-space placement of one decal slot."""

    position: Vector3 = (0.0, 0.0, 0.0)
    rotation: Vector3 = (0.0, 0.0, 0.0)
    scale: float = 1.0
    override_rotation: Optional[Vector3] = None

    @property
    def effective_rotation(self) -> Vector3:
        """The rotation the renderer should use for the decal."""

        return self.override_rotation if self.override_rotation is not None else self.rotation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": list(self.position),
            "rotation": list(self.effective_rotation),
            "scale": self.scale,
        }

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "SlotTransform":
        override = raw.get("override_rotation", raw.get("overrideRotation"))
        return cls(
            position=_vector(raw.get("position")),
            rotation=_vector(raw.get("rotation")),
            scale=float(raw.get("scale", 1.0)),
            override_rotation=_vector(override) if override is not None else None,
        )


@dataclass(frozen=True)
class GarmentAnchor:
    """Static mesh and decal placement configuration for one garment variant."""

    garment_type: str
    model_path: str
    mesh_node_id: str
    material_id: str
    slot_transforms: Mapping[str, SlotTransform] = field(default_factory=dict)
    group_rotation: Vector3 = (0.0, 0.0, 0.0)
    group_scale: float = 1.0

    def __post_init__(self) -> None:
        missing = [slot for slot in REQUIRED_ANCHOR_SLOTS if slot not in self.slot_transforms]
        if missing:
            raise ValueError(f"Garment '{self.garment_type}' is missing required slot anchors: {missing}")

    def supports(self, slot: str) -> bool:
        return slot in self.slot_transforms

    def slot_transform(self, slot: str) -> Optional[SlotTransform]:
        return self.slot_transforms.get(slot)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "garmentType": self.garment_type,
            "modelPath": self.model_path,
            "meshNodeId": self.mesh_node_id,
            "materialId": self.material_id,
            "groupRotation": list(self.group_rotation),
            "groupScale": self.group_scale,
            "slotTransforms": {slot: transform.to_dict() for slot, transform in self.slot_transforms.items()},
        }

    @classmethod
    def from_mapping(cls, garment_type: str, raw: Mapping[str, Any]) -> "GarmentAnchor":
        slots: Dict[str, SlotTransform] = {}
        for raw_slot, transform in (raw.get("slots") or {}).items():
            slot = normalize_slot_name(raw_slot)
            if slot is None:
                raise ValueError(f"Unknown slot '{raw_slot}' for garment '{garment_type}'")
            slots[slot] = SlotTransform.from_mapping(transform)
        return cls(
            garment_type=normalize_garment_type(garment_type),
            model_path=str(raw.get("model_path", "")),
            mesh_node_id=str(raw["mesh_node_id"]),
            material_id=str(raw["material_id"]),
            slot_transforms=slots,
            group_rotation=_vector(raw.get("group_rotation")),
            group_scale=float(raw.get("group_scale", 1.0)),
        )


DEFAULT_GARMENT_ANCHORS: Dict[str, Dict[str, Any]] = {
    GARMENT_TSHIRT: {
        "model_path": "/models/shirt_baked.glb",
        "mesh_node_id": "T_Shirt_male",
        "material_id": "lambert1",
        "slots": {
            SLOT_FRONT: {"position": (0.0, 0.04, 0.15), "scale": 0.25},
            SLOT_BACK: {"position": (0.0, 0.04, -0.15), "rotation": (0.0, math.pi, 0.0), "scale": 0.25},
            SLOT_FULL_SURFACE: {"position": (0.0, 0.0, 0.0), "scale": 1.0},
        },
    },
    GARMENT_FEMALE_TSHIRT: {
        "model_path": "/models/female_tshirt.glb",
        "mesh_node_id": "Object_2",
        "material_id": "material_0",
        # The source mesh is authored lying down.
        "group_rotation": (-math.pi / 2, 0.0, -1.5),
        "group_scale": 0.7,
        "slots": {
            SLOT_FRONT: {
                "position": (0.15, 0.0, 0.1),
                "scale": 0.35,
                "override_rotation": (1.6, math.pi / 2, 0.0),
            },
            SLOT_FULL_SURFACE: {"position": (0.0, 0.0, 0.0), "scale": 1.0},
        },
    },
}


class GarmentAnchorTable:
    """Read-only lookup of :class:`GarmentAnchor` entries by garment type."""

    def __init__(self, anchors: Iterable[GarmentAnchor], default_garment: str = GARMENT_TSHIRT) -> None:
        self._anchors: Dict[str, GarmentAnchor] = {anchor.garment_type: anchor for anchor in anchors}
        self.default_garment = normalize_garment_type(default_garment)
        if self.default_garment not in self._anchors:
            raise ValueError(
                f"Default garment '{self.default_garment}' is not in the anchor table: {sorted(self._anchors)}"
            )

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Mapping[str, Any]], default_garment: str = GARMENT_TSHIRT
    ) -> "GarmentAnchorTable":
        anchors = [GarmentAnchor.from_mapping(garment_type, raw) for garment_type, raw in mapping.items()]
        return cls(anchors, default_garment=default_garment)

    @classmethod
    def from_json_file(cls, path: str | Path, default_garment: str = GARMENT_TSHIRT) -> "GarmentAnchorTable":
        """Load a table whose JSON layout mirrors ``DEFAULT_GARMENT_ANCHORS``."""

        mapping = json.loads(Path(path).read_text())
        return cls.from_mapping(mapping, default_garment=default_garment)

    @classmethod
    def default(cls) -> "GarmentAnchorTable":
        return cls.from_mapping(DEFAULT_GARMENT_ANCHORS)

    def garment_types(self) -> List[str]:
        return sorted(self._anchors)

    def __contains__(self, garment_type: object) -> bool:
        return isinstance(garment_type, str) and normalize_garment_type(garment_type) in self._anchors

    def get(self, garment_type: str) -> GarmentAnchor:
        """Strict lookup.

        Raises:
            MissingAnchorError: if the garment type has no entry.
        """

        key = normalize_garment_type(garment_type)
        try:
            return self._anchors[key]
        except KeyError:
            raise MissingAnchorError(garment_type) from None

    def lookup(self, garment_type: Optional[str]) -> GarmentAnchor:
        """Resilient lookup that falls back to the default garment."""

        try:
            return self.get(garment_type or "")
        except MissingAnchorError as exc:
            logger.warning(
                "Unknown garment type, using default anchors",
                extra={"garment_type": exc.garment_type, "fallback": self.default_garment},
            )
            return self._anchors[self.default_garment]

    def slot_transform(self, garment_type: Optional[str], slot: str) -> Optional[SlotTransform]:
        """Return the slot placement, or ``None`` if the garment lacks that slot."""

        return self.lookup(garment_type).slot_transform(normalize_slot_name(slot) or slot)


__all__ = [
    "SlotTransform",
    "GarmentAnchor",
    "GarmentAnchorTable",
    "DEFAULT_GARMENT_ANCHORS",
]
