"""Tests for diagram summaries and step cross-checks."""

from __future__ import annotations

import pytest

from diagram_core import Force, parse_diagram, summarize_diagram
from diagram_core.analysis import (
    diagram_family,
    find_unknown_step_references,
    net_force,
    step_element_ids,
)


class TestNetForce:

    def test_balanced_forces(self, fbd):
        result = net_force(fbd.data.forces)
        assert result.magnitude == 0
        assert result.angle == 0

    def test_resultant_direction(self):
        forces = [
            Force(type="applied", magnitude=30, angle=0),
            Force(type="applied", magnitude=40, angle=90),
        ]
        result = net_force(forces)
        assert result.magnitude == pytest.approx(50)
        assert result.angle == pytest.approx(53.1301, abs=1e-3)

    def test_incomplete_forces_ignored(self):
        forces = [Force(type="applied", magnitude=10, angle=180), Force(type="drag", magnitude=5)]
        result = net_force(forces)
        assert result.magnitude == pytest.approx(10)
        assert result.angle == pytest.approx(180)


class TestStepReferences:

    def test_step_element_ids_in_first_seen_order(self, fbd_payload):
        fbd_payload["steps"].append({"stepNumber": 2, "visibleElements": ["normal", "friction"]})
        diagram = parse_diagram(fbd_payload)
        assert step_element_ids(diagram) == ["object", "weight", "normal", "friction"]

    def test_known_references(self, fbd):
        assert find_unknown_step_references(fbd) == []

    def test_unknown_reference_reported(self, fbd_payload):
        fbd_payload["steps"][0]["highlightElements"] = ["tension"]
        assert find_unknown_step_references(parse_diagram(fbd_payload)) == ["tension"]

    def test_layout_ids_and_annotations_are_known(self, fbd_payload):
        fbd_payload["steps"][0]["visibleElements"] = ["force-weight", "label-normal", "note"]
        fbd_payload["steps"][0]["annotations"] = [
            {"id": "note", "position": {"x": 0, "y": 0}, "content": "W = mg"},
        ]
        assert find_unknown_step_references(parse_diagram(fbd_payload)) == []

    def test_coordinate_plane_ids(self):
        diagram = parse_diagram({
            "type": "coordinate_plane",
            "data": {
                "xMin": -5, "xMax": 5, "yMin": -5, "yMax": 5,
                "points": [{"id": "p1", "x": 1, "y": 1}],
                "curves": [{"id": "parabola", "expression": "x^2"}],
            },
            "steps": [{"visibleElements": ["p1", "parabola", "p2"]}],
        })
        assert find_unknown_step_references(diagram) == ["p2"]

    def test_unnamed_payloads_not_checked(self):
        diagram = parse_diagram({"type": "cell", "data": {}, "steps": [{"visibleElements": ["nucleus"]}]})
        assert find_unknown_step_references(diagram) == []


class TestSummary:

    def test_summarize_free_body(self, fbd):
        summary = summarize_diagram(fbd)
        assert summary.type == "free_body_diagram"
        assert summary.family == "physics"
        assert summary.forces_by_type == {"weight": 1, "normal": 1}
        assert summary.net_force.magnitude == 0
        assert summary.step_count == 1
        assert summary.unknown_references == []

    def test_to_dict(self, fbd):
        out = summarize_diagram(fbd).to_dict()
        assert out["net_force"] == {"magnitude": 0.0, "angle": 0.0}
        assert out["forces_by_type"] == {"weight": 1, "normal": 1}

    def test_summarize_without_forces(self):
        diagram = parse_diagram({"type": "atom", "data": {}})
        summary = summarize_diagram(diagram)
        assert summary.family == "chemistry"
        assert summary.net_force is None
        assert summary.step_count == 0
        assert summary.to_dict()["net_force"] is None

    def test_family(self):
        assert diagram_family(parse_diagram({"type": "number_line", "data": {}})) == "math"
        assert diagram_family(parse_diagram({"type": "dna", "data": {}})) == "biology"
