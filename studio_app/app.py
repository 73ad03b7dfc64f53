"""Decal Studio app bootstrap."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Hashable, List, Mapping, Optional

from logic.composition import (
    build_render_plan,
    flags_for,
    materialize_text_rasters,
    resolve_visible_layers,
)
from logic.rasterizer import CanvasRasterizer, available_fonts, suggest_font_size
from logic.revisions import RasterRevisionTracker
from logic.validation import validate_text_style
from models.design import DecalTransform, DesignDescriptor, TextStyleDescriptor, coerce_transform
from models.garment_anchors import DEFAULT_GARMENT_ANCHORS, GarmentAnchorTable
from studio_app.config import StudioConfig
from studio_app.logging_config import configure_logging, get_logger, log_event, operation_context
from tools.design_codec import DecodedDesign
from tools.design_store import DesignStore, SQLiteDesignStore
from tools.observability import instrument_operation

LOGGER = get_logger(__name__)


class DecalStudioApp:
    """Wires together the rasterizer, anchor table, composition policy and store."""

    def __init__(
        self,
        config: StudioConfig | None = None,
        anchor_table: GarmentAnchorTable | None = None,
        store: DesignStore | None = None,
    ) -> None:
        self.config = config or StudioConfig.from_env()
        configure_logging()

        self.anchor_table = anchor_table or self._build_anchor_table()
        self.rasterizer = CanvasRasterizer(canvas_size=self.config.canvas_size, font_dirs=self.config.font_dirs)
        self.store = store or SQLiteDesignStore(self.config.design_db_path or "data/designs.db")
        self.revisions = RasterRevisionTracker()

    def _build_anchor_table(self) -> GarmentAnchorTable:
        if self.config.anchor_table_path:
            return GarmentAnchorTable.from_json_file(
                self.config.anchor_table_path, default_garment=self.config.default_garment
            )
        return GarmentAnchorTable.from_mapping(DEFAULT_GARMENT_ANCHORS, default_garment=self.config.default_garment)

    def garments(self) -> List[Dict[str, Any]]:
        return [self.anchor_table.get(garment_type).to_dict() for garment_type in self.anchor_table.garment_types()]

    @staticmethod
    def fonts() -> List[Dict[str, str]]:
        return available_fonts()

    @staticmethod
    def suggest_size(text: str, current_size: int) -> int:
        return suggest_font_size(text, current_size)

    def validate_descriptor(self, descriptor: DesignDescriptor) -> DesignDescriptor:
        """Validate every text style in ``descriptor`` and return the normalised copy.

        Raises:
            TextTooLongError: if any text content exceeds the configured maximum.
            InvalidStyleValueError: if any style value is out of range.
        """

        updated = descriptor
        for group, slot, layer in descriptor.iter_text_layers():
            style = validate_text_style(layer.text or TextStyleDescriptor(), max_length=self.config.max_text_length)
            fixed = replace(layer, text=style)
            if group == "decalSlots":
                updated = updated.with_slot(slot, fixed)
            else:
                updated = updated.with_text(slot, fixed)
        return updated

    @instrument_operation("render_text")
    def render_text(
        self,
        style: TextStyleDescriptor | Mapping[str, Any],
        transform: DecalTransform | Mapping[str, Any] | None = None,
        strict: bool = False,
    ) -> str:
        """Validate a text style and return its texture as a PNG data URI."""

        validated = validate_text_style(style, max_length=self.config.max_text_length)
        return self.rasterizer.rasterize_data_uri(validated, coerce_transform(transform), strict=strict)

    def submit_text_edit(
        self,
        key: Hashable,
        style: TextStyleDescriptor | Mapping[str, Any],
        transform: DecalTransform | Mapping[str, Any] | None = None,
    ) -> Optional[str]:
        """Render one edit of a live text decal, returning ``None`` if a newer edit already landed."""

        revision = self.revisions.next_revision(key)
        raster = self.render_text(style, transform)
        if not self.revisions.offer(key, revision, raster):
            return None
        return raster

    def close_text_edit(self, key: Hashable) -> None:
        """Release the live raster kept for ``key`` once its editor is closed."""

        if self.revisions.forget(key):
            LOGGER.debug("Released live text raster", extra={"key": str(key)})

    def prepare(self, descriptor: DesignDescriptor) -> DesignDescriptor:
        """Return ``descriptor`` with every text raster regenerated."""

        return materialize_text_rasters(descriptor, self.rasterizer)

    @instrument_operation("resolve_design")
    def resolve(self, descriptor: DesignDescriptor) -> Dict[str, Any]:
        """Rasterize text, resolve visible layers and build the render plan."""

        prepared = self.prepare(descriptor)
        layers = resolve_visible_layers(prepared)
        plan = build_render_plan(prepared, self.anchor_table, layers=layers)
        return {
            "descriptor": prepared.to_dict(),
            "layers": [layer.to_dict() for layer in layers],
            "flags": flags_for(layers).to_dict(),
            "renderPlan": plan.to_dict(),
        }

    def save_design(self, user_id: str, name: str, descriptor: DesignDescriptor) -> str:
        with operation_context("app:save_design") as correlation_id:
            validated = self.validate_descriptor(descriptor)
            design_id = self.store.save_design(user_id, name, validated)
            log_event(
                LOGGER,
                logging.INFO,
                "design_saved",
                user_id=user_id,
                design_id=design_id,
                garment_type=validated.garment_type,
                correlation_id=correlation_id,
            )
            return design_id

    def load_design(self, user_id: str, design_id: str) -> Optional[DecodedDesign]:
        """Load a design and regenerate its text rasters from the stored styles."""

        with operation_context("app:load_design") as correlation_id:
            decoded = self.store.load_design(user_id, design_id)
            if decoded is None:
                log_event(
                    LOGGER,
                    logging.INFO,
                    "design_not_found",
                    user_id=user_id,
                    design_id=design_id,
                    correlation_id=correlation_id,
                )
                return None
            if decoded.warnings:
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "design_loaded_with_warnings",
                    design_id=design_id,
                    warnings=decoded.warnings,
                    correlation_id=correlation_id,
                )
            return DecodedDesign(descriptor=self.prepare(decoded.descriptor), warnings=decoded.warnings)


__all__ = ["DecalStudioApp"]
