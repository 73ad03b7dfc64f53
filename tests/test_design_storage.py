"""Storage codec and SQLite design store tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from logic.composition import materialize_text_rasters, resolve_layer_flags, resolve_visible_layers
from logic.rasterizer import CanvasRasterizer
from models.design import (
    DecalLayer,
    DecalTransform,
    DesignDescriptor,
    OutlineStyle,
    Position,
    ShadowStyle,
    TextStyleDescriptor,
)
from tools.design_codec import from_storage_record, parse_json_field, to_storage_record
from tools.design_store import SQLiteDesignStore

FRONT_LOGO = "https://cdn.example.com/logo.png"
FULL = "https://cdn.example.com/pattern.png"


@pytest.fixture(scope="module")
def rasterizer() -> CanvasRasterizer:
    return CanvasRasterizer(canvas_size=128)


@pytest.fixture()
def descriptor() -> DesignDescriptor:
    return DesignDescriptor(
        garment_type="tshirt",
        base_color="#224466",
        decal_slots={
            "front": DecalLayer(raster=FRONT_LOGO, transform=DecalTransform(Position(30, 40), 10, 1.5)),
            "fullSurface": DecalLayer(raster=FULL),
            "back": DecalLayer(
                source_kind="generatedText",
                transform=DecalTransform(Position(50, 20), -15, 1),
                text=TextStyleDescriptor(
                    content="NUMBER 10",
                    font="Impact",
                    size=60,
                    color="#ffcc00",
                    outline=OutlineStyle("#000000", 2),
                    shadow=ShadowStyle("#333333", 4),
                    bold=True,
                ),
            ),
        },
        text_slots={
            "front": DecalLayer(
                source_kind="generatedText",
                transform=DecalTransform(Position(50, 70)),
                text=TextStyleDescriptor(content="Hello", alignment="left", italic=True),
            )
        },
        logo_slots=("front", "back"),
        is_logo_texture=True,
        is_full_texture=True,
    )


def test_record_columns_and_flags(descriptor: DesignDescriptor) -> None:
    record = to_storage_record(descriptor)

    assert record["shirt_type"] == "tshirt"
    assert record["color"] == "#224466"
    assert record["logo_decal"] == FRONT_LOGO
    assert json.loads(record["logo_position"]) == ["front", "back"]
    assert json.loads(record["logo_data"])["position"] == {"x": 30, "y": 40}
    assert record["back_logo_decal"] is None
    assert record["has_back_logo"] is True
    assert record["full_decal"] == FULL
    assert record["has_front_text"] is True
    assert record["has_back_text"] is True
    assert record["front_text_decal"] is None

    back_text = json.loads(record["back_text_data"])
    assert back_text["content"] == "NUMBER 10"
    assert back_text["rotation"] == -15
    assert back_text["style"]["outline"] is True
    assert back_text["style"]["shadowColor"] == "#333333"


def test_round_trip_preserves_visible_layers(descriptor: DesignDescriptor, rasterizer: CanvasRasterizer) -> None:
    """Resolving after a storage round trip matches resolving before it."""

    before = resolve_visible_layers(materialize_text_rasters(descriptor, rasterizer))
    decoded = from_storage_record(to_storage_record(descriptor))
    after = resolve_visible_layers(materialize_text_rasters(decoded.descriptor, rasterizer))

    assert decoded.warnings == []
    assert after == before


def test_round_trip_keeps_both_texts_on_one_side(rasterizer: CanvasRasterizer) -> None:
    """A text decal and a dedicated text layer on the same side are both stored."""

    descriptor = DesignDescriptor(
        decal_slots={
            "front": DecalLayer(
                source_kind="generatedText",
                transform=DecalTransform(Position(50, 30)),
                text=TextStyleDescriptor(content="TOP", size=40),
            )
        },
        text_slots={
            "front": DecalLayer(
                source_kind="generatedText",
                transform=DecalTransform(Position(50, 80)),
                text=TextStyleDescriptor(content="BOTTOM", size=40),
            )
        },
    )

    record = to_storage_record(descriptor)
    assert json.loads(record["logo_data"])["text"]["content"] == "TOP"
    assert json.loads(record["front_text_data"])["content"] == "BOTTOM"
    assert record["logo_decal"] is None

    before = resolve_visible_layers(materialize_text_rasters(descriptor, rasterizer))
    decoded = from_storage_record(record)
    after = resolve_visible_layers(materialize_text_rasters(decoded.descriptor, rasterizer))

    assert len(before) == 2
    assert decoded.warnings == []
    assert after == before


def test_string_flags_are_parsed() -> None:
    decoded = from_storage_record(
        {
            "logo_decal": FRONT_LOGO,
            "is_logo_texture": "false",
            "front_text_data": json.dumps({"content": "Hi", "style": {"bold": "false", "italic": "true"}}),
        }
    )

    assert decoded.descriptor.is_logo_texture is False
    style = decoded.descriptor.text_layer("front").text
    assert style.bold is False
    assert style.italic is True

    parsed = DesignDescriptor.from_dict({"isFullTexture": "0", "isLogoTexture": "yes"})
    assert parsed.is_full_texture is False
    assert parsed.is_logo_texture is True


def test_corrupt_json_degrades_with_warnings() -> None:
    """Malformed sub-fields fall back to defaults instead of raising."""

    decoded = from_storage_record(
        {
            "shirt_type": "tshirt",
            "color": "#112233",
            "logo_decal": FRONT_LOGO,
            "is_logo_texture": 1,
            "logo_position": "[front",
            "logo_data": "{not json",
            "front_text_data": "{{",
        }
    )

    assert len(decoded.warnings) == 3
    front = decoded.descriptor.layer("front")
    assert front.raster == FRONT_LOGO
    assert front.transform == DecalTransform()
    assert decoded.descriptor.logo_slots == ("front",)
    assert decoded.descriptor.text_layer("front") is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("both", ("front", "back")),
        ("back", ("back",)),
        ('"both"', ("front", "back")),
        ('["front"]', ("front",)),
        (None, ("front",)),
    ],
)
def test_legacy_logo_position_shapes(raw, expected) -> None:
    decoded = from_storage_record({"logo_decal": FRONT_LOGO, "logo_position": raw})
    assert decoded.descriptor.logo_slots == expected


def test_legacy_back_logo_boolean_implies_membership() -> None:
    decoded = from_storage_record(
        {"logo_decal": FRONT_LOGO, "is_logo_texture": 1, "logo_position": '["front"]', "has_back_logo": 1}
    )
    assert decoded.descriptor.logo_slots == ("front", "back")
    assert resolve_layer_flags(decoded.descriptor).has_back_logo is True


def test_legacy_text_data_becomes_front_text() -> None:
    decoded = from_storage_record(
        {
            "text_data": json.dumps(
                {
                    "content": "Old school",
                    "color": "#ff0000",
                    "size": 48,
                    "font": "Georgia",
                    "position": {"x": 50, "y": 35},
                    "rotation": 0,
                    "alignment": "center",
                    "style": {"bold": False, "italic": False, "outline": False, "shadow": False},
                }
            )
        }
    )

    layer = decoded.descriptor.text_layer("front")
    assert layer.text.content == "Old school"
    assert layer.text.font == "Georgia"
    assert layer.transform.position == Position(50, 35)


def test_parse_json_field_results() -> None:
    assert parse_json_field(None, []).value == []
    assert parse_json_field("  ", {}).value == {}
    assert parse_json_field({"a": 1}).value == {"a": 1}
    assert parse_json_field('{"a": 1}').value == {"a": 1}

    broken = parse_json_field("{oops", default={})
    assert not broken.ok
    assert broken.value == {}
    assert broken.error


@pytest.fixture()
def store(tmp_path: Path) -> SQLiteDesignStore:
    return SQLiteDesignStore(tmp_path / "designs.db")


def test_store_round_trip(store: SQLiteDesignStore, descriptor: DesignDescriptor) -> None:
    design_id = store.save_design("user-1", "Team shirt", descriptor)
    loaded = store.load_design("user-1", design_id)

    assert loaded is not None
    assert loaded.warnings == []
    assert loaded.descriptor == from_storage_record(to_storage_record(descriptor)).descriptor
    assert loaded.descriptor.text_layer("back").text == descriptor.layer("back").text


def test_store_scopes_designs_by_user(store: SQLiteDesignStore, descriptor: DesignDescriptor) -> None:
    mine = store.save_design("user-1", "Mine", descriptor)
    store.save_design("user-2", "Theirs", descriptor.replace(garment_type="female_tshirt"))

    assert store.load_design("user-2", mine) is None
    assert [row["design_id"] for row in store.list_designs("user-1")] == [mine]
    assert [row["name"] for row in store.list_designs("user-2", garment_type="female_tshirt")] == ["Theirs"]
    assert store.list_designs("user-2", garment_type="tshirt") == []


def test_update_and_delete_design(store: SQLiteDesignStore, descriptor: DesignDescriptor) -> None:
    design_id = store.save_design("user-1", "Draft", descriptor)

    assert store.update_design("user-1", design_id, descriptor.replace(base_color="#ffffff")) is True
    assert store.load_design("user-1", design_id).descriptor.base_color == "#ffffff"
    assert store.list_designs("user-1")[0]["name"] == "Draft"
    assert store.update_design("user-1", "missing", descriptor) is False

    assert store.delete_design("user-1", design_id) is True
    assert store.load_design("user-1", design_id) is None
    assert store.delete_design("user-1", design_id) is False


def test_store_loads_legacy_records(store: SQLiteDesignStore) -> None:
    design_id = store.save_record(
        "user-1",
        "Legacy",
        {"shirt_type": "tshirt", "logo_decal": FRONT_LOGO, "logo_position": "both", "is_logo_texture": 1},
    )
    loaded = store.load_design("user-1", design_id)
    assert resolve_layer_flags(loaded.descriptor).has_back_logo is True
