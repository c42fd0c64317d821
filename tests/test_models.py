"""Tests for the diagram data model and payload parsing."""

from __future__ import annotations

import pytest

from diagram_core import (
    BoundingBox,
    CoordinatePlaneData,
    DiagramParseError,
    DiagramType,
    Force,
    ForceType,
    FreeBodyDiagramData,
    GenericDiagramData,
    PhysicsObject,
    Point,
    Size,
    StructuredDiagram,
    parse_diagram,
)
from diagram_core.models import (
    FORCE_TYPE_COLORS,
    ForceAngleConventions,
    is_biology_diagram_type,
    is_math_diagram_type,
    is_physics_diagram_type,
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseDiagram:

    def test_payload_model_selected_by_type(self, fbd: StructuredDiagram):
        assert fbd.type == DiagramType.FREE_BODY_DIAGRAM
        assert isinstance(fbd.data, FreeBodyDiagramData)
        assert fbd.data.forces[0].type == ForceType.WEIGHT
        assert fbd.data.object.position == Point(x=200, y=200)

    def test_camel_case_fields_accepted(self):
        diagram = parse_diagram({
            "type": "coordinate_plane",
            "data": {"xMin": -5, "xMax": 5, "yMin": -3, "yMax": 3, "showGrid": True},
            "steps": [],
        })
        assert isinstance(diagram.data, CoordinatePlaneData)
        assert diagram.data.x_min == -5
        assert diagram.data.show_grid is True

    def test_snake_case_fields_accepted(self):
        diagram = parse_diagram({
            "type": "coordinate_plane",
            "data": {"x_min": -5, "x_max": 5, "y_min": -3, "y_max": 3},
            "schema_version": 1,
        })
        assert diagram.data.y_max == 3

    def test_type_without_dedicated_payload_uses_generic(self):
        diagram = parse_diagram({"type": "cell", "data": {"title": "Animal cell", "organelles": ["nucleus"]}})
        assert isinstance(diagram.data, GenericDiagramData)
        assert diagram.data.title == "Animal cell"

    def test_missing_fields_are_left_for_the_validator(self):
        diagram = parse_diagram({"type": "free_body_diagram", "data": {}})
        assert diagram.data.object is None
        assert diagram.data.forces is None
        assert diagram.steps is None

    def test_unknown_type_raises(self):
        with pytest.raises(DiagramParseError) as exc_info:
            parse_diagram({"type": "not_a_diagram", "data": {}})
        assert exc_info.value.details

    def test_malformed_payload_raises(self):
        payload = {"type": "free_body_diagram", "data": {"forces": [{"name": "Push"}]}}
        with pytest.raises(DiagramParseError):
            parse_diagram(payload)

    def test_parsed_diagram_passes_through(self, fbd: StructuredDiagram):
        assert parse_diagram(fbd) is fbd

    def test_from_json_dict(self, fbd_payload: dict):
        diagram = StructuredDiagram.from_json_dict(fbd_payload)
        assert diagram.steps[0].title == "Show both forces"
        assert diagram.steps[0].visible_elements == ["object", "weight", "normal"]

    def test_to_json_dict_is_camel_case(self, fbd: StructuredDiagram):
        out = fbd.to_json_dict()
        assert out["schemaVersion"] == 1
        assert out["type"] == "free_body_diagram"
        assert out["steps"][0]["stepNumber"] == 1
        assert out["steps"][0]["visibleElements"] == ["object", "weight", "normal"]
        assert "magnitude" in out["data"]["forces"][0]

    def test_json_round_trip_preserves_payload(self, fbd: StructuredDiagram):
        again = parse_diagram(fbd.to_json_dict())
        assert again.model_dump() == fbd.model_dump()


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

class TestModelValues:

    def test_force_key_fallbacks(self):
        assert Force(id="f1", name="Push", type="applied").key == "f1"
        assert Force(name="Push", type="applied").key == "Push"
        assert Force(type="applied").key == "applied"

    def test_force_label_text(self):
        assert Force(name="Weight", type="weight", symbol="W").label_text == "W"
        assert Force(name="Weight", type="weight").label_text == "Weight"

    def test_force_origin_point_or_keyword(self):
        assert Force(type="tension", origin={"x": 1, "y": 2}).origin == Point(x=1, y=2)
        assert Force(type="tension", origin="attachment").origin == "attachment"

    def test_object_extent(self):
        assert PhysicsObject(position=Point(x=0, y=0)).extent == 40
        block = PhysicsObject(position=Point(x=0, y=0), size=Size(width=60, height=30))
        assert block.extent == 60

    def test_bounding_box_edges(self):
        box = BoundingBox(x=10, y=20, width=30, height=40)
        assert box.right == 40
        assert box.bottom == 60
        assert box.area == 1200
        moved = box.translated(5, -5)
        assert (moved.x, moved.y) == (15, 15)
        assert (box.x, box.y) == (10, 20)

    def test_point_is_immutable(self):
        point = Point(x=1, y=2)
        with pytest.raises(Exception):
            point.x = 5

    def test_diagram_families(self):
        assert is_physics_diagram_type(DiagramType.INCLINED_PLANE)
        assert is_math_diagram_type(DiagramType.NUMBER_LINE)
        assert is_biology_diagram_type(DiagramType.DNA)
        assert not is_physics_diagram_type(DiagramType.ATOM)
        assert not is_physics_diagram_type(None)

    def test_every_force_type_has_a_color(self):
        assert set(FORCE_TYPE_COLORS) == set(ForceType)

    def test_angle_conventions(self):
        assert ForceAngleConventions.WEIGHT == -90
        assert ForceAngleConventions.normal_inclined(30) == 60
        assert ForceAngleConventions.friction_up_slope(30) == 150
        assert ForceAngleConventions.friction_down_slope(30) == -30
