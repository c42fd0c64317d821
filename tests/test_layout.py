"""Tests for the layout engine: geometry, collisions, origins, labels and relaxation."""

from __future__ import annotations

import math

import pytest

from diagram_core import (
    BoundingBox,
    CanvasSize,
    ElementType,
    Force,
    LayoutElement,
    LayoutError,
    PhysicsLayoutOptions,
    PhysicsObject,
    Point,
    calculate_physics_layout,
    layout_diagram,
    parse_diagram,
    validate_and_correct,
)
from diagram_core.layout import (
    FORCE_ORIGIN_RULES,
    boxes_overlap,
    calculate_force_origin,
    calculate_force_origins,
    check_collision,
    create_bounding_box,
    create_force_bounds,
    create_label_bounds,
    detect_collisions,
    expand_box,
    find_axes_position,
    find_label_position,
    get_overlap_area,
    get_overlap_box,
    position_force_label,
    resolve_collisions,
)
from diagram_core.models import ForceType


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _element(
    element_id: str,
    x: float,
    y: float,
    width: float = 20,
    height: float = 20,
    priority: int = 50,
    attached_to: str | None = None,
) -> LayoutElement:
    center = Point(x=x, y=y)
    return LayoutElement(
        id=element_id,
        type=ElementType.ANNOTATION,
        position=center,
        bounds=create_bounding_box(center, width, height),
        priority=priority,
        attached_to=attached_to,
    )


def _block(x: float = 100, y: float = 100, size: float = 40) -> PhysicsObject:
    return PhysicsObject(position=Point(x=x, y=y), size=size)


def _approx_point(point: Point, x: float, y: float) -> None:
    assert point.x == pytest.approx(x, abs=1e-9)
    assert point.y == pytest.approx(y, abs=1e-9)


# ---------------------------------------------------------------------------
# Bounding boxes
# ---------------------------------------------------------------------------

class TestBoundingBoxes:

    def test_box_centered_on_point(self):
        box = create_bounding_box(Point(x=50, y=50), 20, 10)
        assert (box.x, box.y, box.width, box.height) == (40, 45, 20, 10)

    def test_label_bounds_estimated_from_text(self):
        box = create_label_bounds(Point(x=0, y=0), "Fn", font_size=10)
        assert box.width == pytest.approx(2 * 6 + 16)
        assert box.height == pytest.approx(20)

    def test_force_bounds_follow_screen_coordinates(self):
        # pointing up on screen means decreasing y
        box = create_force_bounds(Point(x=100, y=100), 90, 50)
        assert box.x == pytest.approx(97)
        assert box.y == pytest.approx(47)
        assert box.width == pytest.approx(6)
        assert box.height == pytest.approx(56)

    def test_overlap_primitives(self):
        a = BoundingBox(x=0, y=0, width=10, height=10)
        b = BoundingBox(x=5, y=5, width=10, height=10)
        c = BoundingBox(x=20, y=20, width=5, height=5)
        assert boxes_overlap(a, b)
        assert not boxes_overlap(a, c)
        assert get_overlap_area(a, b) == 25
        assert get_overlap_area(a, c) == 0
        assert get_overlap_box(a, b) == BoundingBox(x=5, y=5, width=5, height=5)
        assert get_overlap_box(a, c) is None

    def test_touching_boxes_overlap(self):
        a = BoundingBox(x=0, y=0, width=10, height=10)
        b = BoundingBox(x=10, y=0, width=10, height=10)
        assert boxes_overlap(a, b)
        assert get_overlap_area(a, b) == 0

    def test_expand_box(self):
        box = expand_box(BoundingBox(x=10, y=10, width=10, height=10), 4)
        assert box == BoundingBox(x=6, y=6, width=18, height=18)


# ---------------------------------------------------------------------------
# Collision detection
# ---------------------------------------------------------------------------

class TestCollisionDetection:

    def test_overlapping_elements_collide(self):
        collisions = detect_collisions([_element("a", 0, 0), _element("b", 10, 0)])
        assert len(collisions) == 1
        assert (collisions[0].element1, collisions[0].element2) == ("a", "b")

    def test_near_elements_collide_within_spacing(self):
        # 5 units apart, closer than the 8 unit minimum spacing
        collisions = detect_collisions([_element("a", 0, 0), _element("b", 25, 0)])
        assert len(collisions) == 1

    def test_distant_elements_do_not_collide(self):
        assert detect_collisions([_element("a", 0, 0), _element("b", 100, 0)]) == []

    def test_symmetric_in_input_order(self):
        a = _element("a", 0, 0, width=30, height=30)
        b = _element("b", 12, 6, width=10, height=40)
        forward = detect_collisions([a, b])
        backward = detect_collisions([b, a])
        assert len(forward) == len(backward) == 1
        assert {forward[0].element1, forward[0].element2} == {backward[0].element1, backward[0].element2}
        assert forward[0].severity == pytest.approx(backward[0].severity)
        assert forward[0].overlap == backward[0].overlap

    def test_severity_capped_at_one(self):
        collisions = detect_collisions([_element("a", 0, 0), _element("b", 0, 0)])
        assert collisions[0].severity == 1.0

    def test_attached_elements_skipped(self):
        parent = _element("force-w", 0, 0)
        label = _element("label-w", 5, 0, attached_to="force-w")
        assert detect_collisions([parent, label]) == []
        assert detect_collisions([label, parent]) == []

    def test_check_collision_with_exclusions(self):
        existing = [_element("a", 0, 0), _element("b", 100, 100)]
        bounds = BoundingBox(x=0, y=0, width=10, height=10)
        assert check_collision(Point(x=5, y=5), bounds, existing)
        assert not check_collision(Point(x=5, y=5), bounds, existing, exclude_ids=["a"])
        assert not check_collision(Point(x=50, y=50), bounds, existing)


# ---------------------------------------------------------------------------
# Force origins
# ---------------------------------------------------------------------------

class TestForceOrigins:

    def test_every_force_type_has_a_rule(self):
        assert set(FORCE_ORIGIN_RULES) == set(ForceType)

    def test_weight_from_center(self):
        origin = calculate_force_origin(Force(type="weight", angle=-90), _block())
        _approx_point(origin, 100, 100)

    def test_normal_from_contact_point(self):
        origin = calculate_force_origin(Force(type="normal", angle=90), _block())
        _approx_point(origin, 100, 120)

    def test_normal_on_slope(self):
        origin = calculate_force_origin(Force(type="normal", angle=60), _block(), surface_angle=30)
        _approx_point(origin, 100 - 20 * 0.5, 100 + 20 * math.cos(math.radians(30)))

    @pytest.mark.parametrize("angle,x", [(180, 90), (0, 110)])
    def test_friction_from_contact_face(self, angle: float, x: float):
        origin = calculate_force_origin(Force(type="friction", angle=angle), _block())
        _approx_point(origin, x, 120)

    def test_tension_uses_explicit_origin(self):
        force = Force(type="tension", angle=90, origin={"x": 5, "y": 6})
        _approx_point(calculate_force_origin(force, _block()), 5, 6)

    def test_tension_without_origin_uses_edge(self):
        force = Force(type="tension", angle=90, origin="attachment")
        _approx_point(calculate_force_origin(force, _block()), 100, 80)

    def test_applied_from_edge(self):
        _approx_point(calculate_force_origin(Force(type="applied", angle=0), _block()), 120, 100)

    def test_shared_rule_spread_on_circle(self):
        forces = [
            Force(id="w", type="weight", angle=-90),
            Force(id="d", type="drag", angle=180),
            Force(id="n", type="normal", angle=90),
        ]
        origins = calculate_force_origins(forces, _block())
        _approx_point(origins["w"], 105, 100)
        _approx_point(origins["d"], 95, 100)
        _approx_point(origins["n"], 100, 120)

    def test_origins_keyed_by_name_without_id(self):
        origins = calculate_force_origins([Force(name="Gravity", type="weight", angle=-90)], _block())
        assert list(origins) == ["Gravity"]


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

class TestLabelPlacement:

    def test_preferred_direction_used_when_free(self):
        position = find_label_position(Point(x=0, y=0), "F", [], preferred_direction=0)
        _approx_point(position, 18, 0)

    def test_first_compass_direction_without_preference(self):
        position = find_label_position(Point(x=0, y=0), "F", [])
        _approx_point(position, 0, -18)

    def test_skips_blocked_candidates(self):
        # blocks everything above the anchor
        blocker = _element("blocker", 0, -52, width=200, height=60)
        position = find_label_position(Point(x=0, y=0), "F", [blocker])
        _approx_point(position, 18, 0)

    def test_terminates_in_densely_packed_scene(self):
        packed = [
            _element(f"e{row}-{col}", -100 + col * 40, -100 + row * 40, width=40, height=40)
            for row in range(6)
            for col in range(6)
        ]
        assert len(packed) >= 20
        position = find_label_position(Point(x=0, y=0), "Label", packed)
        offset = 36 * math.cos(math.radians(45))
        _approx_point(position, offset, -offset)

    def test_fallback_uses_preferred_direction(self):
        blocker = _element("blocker", 0, 0, width=400, height=400)
        position = find_label_position(Point(x=0, y=0), "F", [blocker], preferred_direction=180)
        _approx_point(position, -36, 0)

    def test_force_label_past_arrow_tip(self):
        force = Force(type="applied", angle=0, symbol="F")
        position = position_force_label(force, Point(x=0, y=0), 50, [])
        _approx_point(position, 68, 0)


# ---------------------------------------------------------------------------
# Collision resolution
# ---------------------------------------------------------------------------

class TestResolveCollisions:

    def test_already_clear_scene(self):
        elements = [_element("a", 0, 0), _element("b", 100, 0)]
        result = resolve_collisions(elements)
        assert result.success
        assert result.iterations == 0
        assert result.adjustments["a"].dx == 0

    def test_small_scene_converges(self):
        elements = [
            _element("object", 100, 100, width=40, height=40, priority=100),
            _element("label", 110, 100, priority=30),
            _element("far-1", 300, 300),
            _element("far-2", 300, 100),
            _element("far-3", 100, 300),
        ]
        result = resolve_collisions(elements)
        assert result.success
        assert result.collisions == []
        assert result.iterations == 2
        # the object outranks the label and stays put
        _approx_point(result.elements["object"], 100, 100)
        _approx_point(result.elements["label"], 143, 100)
        assert result.adjustments["label"].dx == pytest.approx(33)
        assert detect_collisions(elements) == []

    def test_elements_moved_in_place(self):
        label = _element("label", 110, 100, priority=30)
        resolve_collisions([_element("object", 100, 100, width=40, height=40, priority=100), label])
        assert label.position.x == pytest.approx(143)
        assert label.bounds.x == pytest.approx(133)

    def test_equal_priority_moves_later_element(self):
        first = _element("first", 0, 0)
        second = _element("second", 0, 10)
        result = resolve_collisions([first, second])
        assert result.success
        _approx_point(result.elements["first"], 0, 0)
        assert result.elements["second"].y > 10

    def test_coincident_elements_separate(self):
        elements = [_element("a", 50, 50), _element("b", 50, 50)]
        result = resolve_collisions(elements)
        assert result.success
        assert result.elements["b"].x == pytest.approx(50)
        assert result.elements["b"].y > 50

    def test_overcrowded_scene_reports_bounded_failure(self):
        # 30 tall strips stacked inside a 50x50 box: pushes are vertical and
        # far too small to separate them within the iteration cap
        elements = [
            _element(f"strip-{i}", 25, i * 50 / 29, width=2, height=100000)
            for i in range(30)
        ]
        result = resolve_collisions(elements)
        assert not result.success
        assert result.collisions
        assert result.iterations == 50

    def test_iteration_cap_is_configurable(self):
        elements = [_element(f"e{i}", 0, 0, width=2, height=1000) for i in range(5)]
        result = resolve_collisions(elements, max_iterations=3)
        assert result.iterations == 3
        assert not result.success


# ---------------------------------------------------------------------------
# Physics layout
# ---------------------------------------------------------------------------

class TestPhysicsLayout:

    def test_resting_block(self, fbd):
        layout = calculate_physics_layout(fbd.data.object, fbd.data.forces, CanvasSize(400, 400))
        assert layout.success
        assert layout.collisions == []
        _approx_point(layout.object_position, 200, 200)
        _approx_point(layout.force_origins["weight"], 200, 200)
        _approx_point(layout.force_origins["normal"], 200, 220)
        _approx_point(layout.label_positions["weight"], 227, 248)
        _approx_point(layout.label_positions["normal"], 200, 118)
        assert layout.axis_position is None

    def test_labels_can_be_disabled(self, fbd):
        layout = calculate_physics_layout(
            fbd.data.object, fbd.data.forces, options=PhysicsLayoutOptions(show_labels=False),
        )
        assert layout.label_positions == {}
        assert set(layout.force_origins) == {"weight", "normal"}

    def test_axes_placed_in_free_corner(self, fbd):
        layout = calculate_physics_layout(
            fbd.data.object, fbd.data.forces, CanvasSize(400, 400), PhysicsLayoutOptions(show_axes=True),
        )
        _approx_point(layout.axis_position, 350, 50)

    def test_layout_diagram_uses_plane_angle(self, inclined):
        layout = layout_diagram(inclined)
        _approx_point(layout.force_origins["normal"], 190, 200 + 20 * math.cos(math.radians(30)))

    def test_same_type_forces_keep_separate_arrows(self):
        diagram = parse_diagram({
            "type": "free_body_diagram",
            "data": {
                "object": {"position": {"x": 200, "y": 200}, "size": 40},
                "forces": [
                    {"type": "applied", "magnitude": 10, "angle": 0},
                    {"type": "applied", "magnitude": 10, "angle": 180},
                ],
            },
            "steps": [],
        })
        _, corrected = validate_and_correct(diagram)
        layout = layout_diagram(corrected, CanvasSize(400, 400))
        assert set(layout.force_origins) == {"applied", "applied-2"}
        assert set(layout.label_positions) == {"applied", "applied-2"}

    def test_layout_diagram_rejects_non_physics(self):
        diagram = parse_diagram({"type": "number_line", "data": {"min": 0, "max": 1}, "steps": []})
        with pytest.raises(LayoutError):
            layout_diagram(diagram)

    def test_layout_diagram_requires_object(self):
        diagram = parse_diagram({"type": "free_body_diagram", "data": {"forces": []}, "steps": []})
        with pytest.raises(LayoutError):
            layout_diagram(diagram)


class TestAxesPosition:

    def test_top_right_first(self):
        _approx_point(find_axes_position(CanvasSize(400, 300), []), 350, 50)

    def test_next_free_corner(self):
        blocker = _element("blocker", 350, 50, width=80, height=80)
        _approx_point(find_axes_position(CanvasSize(400, 300), [blocker]), 50, 50)

    def test_falls_back_to_top_right(self):
        blocker = _element("blocker", 200, 150, width=400, height=300)
        _approx_point(find_axes_position(CanvasSize(400, 300), [blocker]), 350, 50)
