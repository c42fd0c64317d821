"""
Layout engine for physics diagrams.

Positions every drawable element so that nothing overlaps:
- Bounding box constructors and rectangle primitives
- Collision detection with a minimum-spacing margin
- Physics-aware force origins (weight from the center, normal from the contact point, ...)
- Greedy label placement with a guaranteed fallback
- Iterative collision relaxation, capped at MAX_LAYOUT_ITERATIONS

Coordinates are screen coordinates: y grows downward, angles are in degrees
with 0 = right and 90 = up. resolve_collisions() moves elements in place.
"""

import logging
import math
from collections import defaultdict
from typing import Literal, Optional, Sequence

from pydantic import BaseModel

from .config import (
    AXIS_BOX_PADDING,
    AXIS_MARGIN,
    DEFAULT_AXIS_LENGTH,
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    DEFAULT_FONT_SIZE,
    DEFAULT_FORCE_LENGTH,
    DEFAULT_FORCE_SCALE,
    DEFAULT_STROKE_WIDTH,
    ELEMENT_PRIORITY,
    FORCE_SPREAD_RADIUS,
    LABEL_CHAR_WIDTH_RATIO,
    LABEL_OFFSET,
    LABEL_PADDING_X,
    LABEL_PADDING_Y,
    MAX_LAYOUT_ITERATIONS,
    MIN_SPACING,
)
from .errors import LayoutError
from .models import (
    Adjustment,
    BoundingBox,
    CanvasSize,
    Collision,
    DiagramType,
    ElementType,
    Force,
    ForceType,
    FreeBodyDiagramData,
    InclinedPlaneData,
    LayoutElement,
    LayoutResult,
    PhysicsLayout,
    PhysicsObject,
    Point,
    StructuredDiagram,
)

logger = logging.getLogger(__name__)

OriginRule = Literal["center", "surface_contact", "surface_front", "attachment", "edge"]

# Where each force type's arrow starts, derived from what the force physically is
FORCE_ORIGIN_RULES: dict[ForceType, OriginRule] = {
    ForceType.WEIGHT: "center",
    ForceType.NORMAL: "surface_contact",
    ForceType.FRICTION: "surface_front",
    ForceType.TENSION: "attachment",
    ForceType.APPLIED: "edge",
    ForceType.SPRING: "attachment",
    ForceType.DRAG: "center",
    ForceType.LIFT: "center",
    ForceType.THRUST: "edge",
    ForceType.BUOYANCY: "center",
    ForceType.ELECTRIC: "center",
    ForceType.MAGNETIC: "center",
    ForceType.CENTRIPETAL: "center",
    ForceType.NET: "center",
    ForceType.COMPONENT: "center",
    ForceType.CUSTOM: "center",
    ForceType.DRIVE: "edge",
    ForceType.RESISTANCE: "center",
    ForceType.REACTION: "surface_contact",
}

# Label candidates in priority order: N, NE, E, SE, S, SW, W, NW
LABEL_POSITION_OFFSETS: list[tuple[int, int]] = [
    (0, -1),
    (1, -1),
    (1, 0),
    (1, 1),
    (0, 1),
    (-1, 1),
    (-1, 0),
    (-1, -1),
]


class PhysicsLayoutOptions(BaseModel):
    """Caller-tunable settings for calculate_physics_layout()."""
    surface_angle: float = 0.0
    show_labels: bool = True
    force_scale: float = DEFAULT_FORCE_SCALE
    show_axes: bool = False
    axis_length: float = DEFAULT_AXIS_LENGTH
    font_size: float = DEFAULT_FONT_SIZE


# --- Bounding boxes ---

def create_bounding_box(center: Point, width: float, height: float) -> BoundingBox:
    """Create a box of the given size centered on a point."""
    return BoundingBox(x=center.x - width / 2, y=center.y - height / 2, width=width, height=height)


def create_label_bounds(position: Point, text: str, font_size: float = DEFAULT_FONT_SIZE) -> BoundingBox:
    """
    Estimate the box a text label occupies.

    Width comes from character count, not real font metrics, so callers must
    tolerate a slightly loose fit.
    """
    char_width = font_size * LABEL_CHAR_WIDTH_RATIO
    width = len(text) * char_width + LABEL_PADDING_X
    height = font_size + LABEL_PADDING_Y
    return create_bounding_box(position, width, height)


def create_force_bounds(
    origin: Point,
    angle: float,
    length: float,
    stroke_width: float = DEFAULT_STROKE_WIDTH
) -> BoundingBox:
    """Box covering a force arrow from origin, padded by the stroke width."""
    end = _arrow_end(origin, angle, length)

    min_x = min(origin.x, end.x) - stroke_width
    max_x = max(origin.x, end.x) + stroke_width
    min_y = min(origin.y, end.y) - stroke_width
    max_y = max(origin.y, end.y) + stroke_width

    return BoundingBox(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


def boxes_overlap(a: BoundingBox, b: BoundingBox) -> bool:
    """True if the boxes overlap or touch."""
    return not (
        a.right < b.x or
        b.right < a.x or
        a.bottom < b.y or
        b.bottom < a.y
    )


def get_overlap_area(a: BoundingBox, b: BoundingBox) -> float:
    if not boxes_overlap(a, b):
        return 0.0

    overlap_x = min(a.right, b.right) - max(a.x, b.x)
    overlap_y = min(a.bottom, b.bottom) - max(a.y, b.y)
    return max(0.0, overlap_x) * max(0.0, overlap_y)


def get_overlap_box(a: BoundingBox, b: BoundingBox) -> Optional[BoundingBox]:
    if not boxes_overlap(a, b):
        return None

    x = max(a.x, b.x)
    y = max(a.y, b.y)
    return BoundingBox(x=x, y=y, width=min(a.right, b.right) - x, height=min(a.bottom, b.bottom) - y)


def expand_box(box: BoundingBox, padding: float) -> BoundingBox:
    return BoundingBox(
        x=box.x - padding,
        y=box.y - padding,
        width=box.width + padding * 2,
        height=box.height + padding * 2,
    )


# --- Collision detection ---

def _attached(a: LayoutElement, b: LayoutElement) -> bool:
    return a.attached_to == b.id or b.attached_to == a.id


def detect_collisions(elements: Sequence[LayoutElement]) -> list[Collision]:
    """
    Find every pair of elements that overlap or sit closer than MIN_SPACING.

    Each box is expanded by half the spacing before comparison. Severity is the
    expanded overlap area divided by the larger element's own area, capped at 1.
    Pairs where one element is attached to the other (a force and its object,
    a label and its force) are expected to touch and are skipped.

    Args:
        elements: Elements to check, compared pairwise in input order

    Returns:
        List of collisions, element1 always earlier in the input than element2
    """
    collisions: list[Collision] = []
    half_spacing = MIN_SPACING / 2

    for i, a in enumerate(elements):
        a_expanded = expand_box(a.bounds, half_spacing)
        for b in elements[i + 1:]:
            if _attached(a, b):
                continue

            b_expanded = expand_box(b.bounds, half_spacing)
            overlap = get_overlap_box(a_expanded, b_expanded)
            if overlap is None:
                continue

            max_area = max(a.bounds.area, b.bounds.area)
            overlap_area = get_overlap_area(a_expanded, b_expanded)
            severity = min(1.0, overlap_area / max_area) if max_area > 0 else 1.0

            collisions.append(Collision(
                element1=a.id,
                element2=b.id,
                overlap=overlap,
                severity=severity,
            ))

    return collisions


def check_collision(
    position: Point,
    bounds: BoundingBox,
    existing: Sequence[LayoutElement],
    exclude_ids: Sequence[str] = ()
) -> bool:
    """
    Check whether a box of `bounds` size centered at `position` would collide.

    Only the width and height of `bounds` are used.
    """
    test_box = create_bounding_box(position, bounds.width, bounds.height)
    expanded = expand_box(test_box, MIN_SPACING / 2)

    for element in existing:
        if element.id in exclude_ids:
            continue
        if boxes_overlap(expanded, expand_box(element.bounds, MIN_SPACING / 2)):
            return True

    return False


# --- Force origins ---

def _arrow_end(origin: Point, angle: float, length: float) -> Point:
    rad = math.radians(angle)
    return Point(x=origin.x + length * math.cos(rad), y=origin.y - length * math.sin(rad))


def _edge_point(center: Point, half_size: float, angle: float) -> Point:
    """Point on the object's edge in the given direction."""
    return _arrow_end(center, angle, half_size)


def _force_angle(force: Force) -> float:
    return force.angle if force.angle is not None else 0.0


def calculate_force_origin(force: Force, obj: PhysicsObject, surface_angle: float = 0.0) -> Point:
    """
    Where a force's arrow starts, based on the force type.

    Rules:
    - center: the object's center
    - surface_contact: the object's boundary toward the surface it rests on
    - surface_front: the contact point, shifted along the surface against the
      friction direction
    - attachment: an explicit origin point if the force has one, else edge
    - edge: the object's edge in the force's own direction

    Args:
        force: The force to place
        obj: The object the force acts on
        surface_angle: Slope of the supporting surface in degrees

    Returns:
        The origin point
    """
    rule = FORCE_ORIGIN_RULES.get(force.type, "center")
    center = obj.position
    half_size = obj.extent / 2
    angle = _force_angle(force)

    if rule == "surface_contact":
        surface_rad = math.radians(surface_angle)
        return Point(
            x=center.x - half_size * math.sin(surface_rad),
            y=center.y + half_size * math.cos(surface_rad),
        )

    if rule == "surface_front":
        surface_rad = math.radians(surface_angle)
        # Friction pointing left starts from the left half of the contact face
        direction = -1 if angle > 90 or angle < -90 else 1
        shift = direction * half_size * 0.5
        return Point(
            x=center.x - half_size * math.sin(surface_rad) + shift * math.cos(surface_rad),
            y=center.y + half_size * math.cos(surface_rad) + shift * math.sin(surface_rad),
        )

    if rule == "attachment":
        if isinstance(force.origin, Point):
            return force.origin
        return _edge_point(center, half_size, angle)

    if rule == "edge":
        return _edge_point(center, half_size, angle)

    return Point(x=center.x, y=center.y)


def calculate_force_origins(
    forces: Sequence[Force],
    obj: PhysicsObject,
    surface_angle: float = 0.0
) -> dict[str, Point]:
    """
    Compute origins for all forces, keyed by Force.key.

    Forces sharing an origin rule are spread evenly on a small circle around
    the shared point so their arrows stay distinguishable.
    """
    origins: dict[str, Point] = {}

    forces_by_rule: dict[str, list[Force]] = defaultdict(list)
    for force in forces:
        forces_by_rule[FORCE_ORIGIN_RULES.get(force.type, "center")].append(force)

    for rule_forces in forces_by_rule.values():
        if len(rule_forces) == 1:
            force = rule_forces[0]
            origins[force.key] = calculate_force_origin(force, obj, surface_angle)
            continue

        base = calculate_force_origin(rule_forces[0], obj, surface_angle)
        for index, force in enumerate(rule_forces):
            spread = index / len(rule_forces) * 2 * math.pi
            origins[force.key] = Point(
                x=base.x + FORCE_SPREAD_RADIUS * math.cos(spread),
                y=base.y + FORCE_SPREAD_RADIUS * math.sin(spread),
            )

    return origins


# --- Labels ---

def find_label_position(
    anchor: Point,
    text: str,
    existing: Sequence[LayoutElement],
    preferred_direction: Optional[float] = None,
    font_size: float = DEFAULT_FONT_SIZE
) -> Point:
    """
    Find a collision-free spot for a label near an anchor point.

    Tries, in order:
    1. The preferred direction at LABEL_OFFSET
    2. The eight compass directions at LABEL_OFFSET
    3. The eight compass directions at 1.5x LABEL_OFFSET
    4. Fallback: preferred direction (or 45°) at 2x LABEL_OFFSET, unchecked

    Greedy, not optimal; always returns a point.
    """
    label_bounds = create_label_bounds(Point(x=0, y=0), text, font_size)

    if preferred_direction is not None:
        candidate = _arrow_end(anchor, preferred_direction, LABEL_OFFSET)
        if not check_collision(candidate, label_bounds, existing):
            return candidate

    for scale in (1.0, 1.5):
        offset = LABEL_OFFSET * scale
        for dx, dy in LABEL_POSITION_OFFSETS:
            candidate = Point(x=anchor.x + dx * offset, y=anchor.y + dy * offset)
            if not check_collision(candidate, label_bounds, existing):
                return candidate

    fallback_angle = preferred_direction if preferred_direction is not None else 45.0
    return _arrow_end(anchor, fallback_angle, LABEL_OFFSET * 2)


def position_force_label(
    force: Force,
    origin: Point,
    length: float,
    existing: Sequence[LayoutElement],
    font_size: float = DEFAULT_FONT_SIZE
) -> Point:
    """Place a force's label past its arrow tip, preferring the arrow's direction."""
    angle = _force_angle(force)
    tip = _arrow_end(origin, angle, length)
    return find_label_position(tip, force.label_text, existing, angle, font_size)


# --- Relaxation ---

def resolve_collisions(
    elements: list[LayoutElement],
    max_iterations: int = MAX_LAYOUT_ITERATIONS
) -> LayoutResult:
    """
    Push lower-priority elements away until nothing collides.

    Each pass handles every current collision: the lower-priority element of
    the pair (the later one on a tie) moves away from the other along the line
    between their positions, by MIN_SPACING plus half the overlap width.
    Elements at the same position are pushed straight down the screen.

    Elements are modified in place. Gives up after max_iterations passes and
    reports what is left; never raises.

    Args:
        elements: Elements to arrange
        max_iterations: Pass limit

    Returns:
        LayoutResult with final positions, total displacement per element,
        and any remaining collisions
    """
    by_id = {el.id: el for el in elements}
    positions = {el.id: el.position for el in elements}
    adjustments = {el.id: Adjustment() for el in elements}

    iterations = 0
    collisions = detect_collisions(elements)

    while collisions and iterations < max_iterations:
        for collision in collisions:
            el1 = by_id[collision.element1]
            el2 = by_id[collision.element2]
            to_move, fixed = (el1, el2) if el1.priority < el2.priority else (el2, el1)

            move_pos = positions[to_move.id]
            fixed_pos = positions[fixed.id]
            dx = move_pos.x - fixed_pos.x
            dy = move_pos.y - fixed_pos.y
            dist = math.hypot(dx, dy)
            if dist == 0:
                ux, uy = 0.0, 1.0
            else:
                ux, uy = dx / dist, dy / dist

            push = MIN_SPACING + collision.overlap.width / 2
            push_x = ux * push
            push_y = uy * push

            adjustment = adjustments[to_move.id]
            adjustment.dx += push_x
            adjustment.dy += push_y

            new_pos = Point(x=move_pos.x + push_x, y=move_pos.y + push_y)
            positions[to_move.id] = new_pos
            to_move.position = new_pos
            to_move.bounds = to_move.bounds.translated(push_x, push_y)

        collisions = detect_collisions(elements)
        iterations += 1

    logger.debug(
        "Collision resolution: %d elements, %d iterations, %d remaining",
        len(elements), iterations, len(collisions),
    )
    if collisions:
        logger.warning(
            "Layout did not converge after %d iterations (%d collisions left)",
            iterations, len(collisions),
        )

    return LayoutResult(
        elements=positions,
        adjustments=adjustments,
        collisions=collisions,
        success=not collisions,
        iterations=iterations,
    )


# --- Physics diagrams ---

def _force_length(force: Force, force_scale: float) -> float:
    return (force.magnitude or DEFAULT_FORCE_LENGTH) * force_scale


def calculate_physics_layout(
    obj: PhysicsObject,
    forces: Sequence[Force],
    canvas_size: Optional[CanvasSize] = None,
    options: Optional[PhysicsLayoutOptions] = None
) -> PhysicsLayout:
    """
    Compute a complete layout for an object and the forces acting on it.

    Steps:
    1. Force origins from the force types
    2. Layout elements for the object and each force arrow
    3. Label positions, each checked against everything placed so far
    4. One collision resolution pass
    5. Optional coordinate axes in a free canvas corner

    Force origins are reported as computed in step 1; label positions are
    read back after resolution.

    Args:
        obj: The object forces act on
        forces: Forces to draw
        canvas_size: Drawing area (default 400x400)
        options: Tunables, see PhysicsLayoutOptions

    Returns:
        PhysicsLayout with origins, label positions and remaining collisions
    """
    canvas_size = canvas_size or CanvasSize(DEFAULT_CANVAS_WIDTH, DEFAULT_CANVAS_HEIGHT)
    options = options or PhysicsLayoutOptions()

    force_origins = calculate_force_origins(forces, obj, options.surface_angle)

    extent = obj.extent
    elements: list[LayoutElement] = [
        LayoutElement(
            id=obj.id,
            type=ElementType.OBJECT,
            position=obj.position,
            bounds=create_bounding_box(obj.position, extent, extent),
            priority=ELEMENT_PRIORITY["object"],
        )
    ]

    for force in forces:
        origin = force_origins[force.key]
        elements.append(LayoutElement(
            id=f"force-{force.key}",
            type=ElementType.FORCE,
            position=origin,
            bounds=create_force_bounds(origin, _force_angle(force), _force_length(force, options.force_scale)),
            priority=ELEMENT_PRIORITY["force"],
            anchor=origin,
            attached_to=obj.id,
        ))

    label_elements: dict[str, LayoutElement] = {}
    if options.show_labels:
        for force in forces:
            origin = force_origins[force.key]
            length = _force_length(force, options.force_scale)
            position = position_force_label(force, origin, length, elements, options.font_size)

            label = LayoutElement(
                id=f"label-{force.key}",
                type=ElementType.LABEL,
                position=position,
                bounds=create_label_bounds(position, force.label_text, options.font_size),
                priority=ELEMENT_PRIORITY["label"],
                anchor=origin,
                attached_to=f"force-{force.key}",
            )
            elements.append(label)
            label_elements[force.key] = label

    result = resolve_collisions(elements)

    label_positions = {key: label.position for key, label in label_elements.items()}

    axis_position = None
    if options.show_axes:
        axis_position = find_axes_position(canvas_size, elements, options.axis_length)

    return PhysicsLayout(
        object_position=obj.position,
        force_origins=force_origins,
        label_positions=label_positions,
        axis_position=axis_position,
        collisions=result.collisions,
        success=result.success,
    )


def find_axes_position(
    canvas_size: CanvasSize,
    existing: Sequence[LayoutElement],
    axis_length: float = DEFAULT_AXIS_LENGTH
) -> Point:
    """
    Pick a canvas corner for the coordinate axes.

    Corners are tried top-right, top-left, bottom-right, bottom-left; the
    first free one wins, top-right if none are free.
    """
    box_size = axis_length + AXIS_BOX_PADDING
    near = AXIS_MARGIN + box_size / 2
    far_x = canvas_size.width - AXIS_MARGIN - box_size / 2
    far_y = canvas_size.height - AXIS_MARGIN - box_size / 2

    corners = [
        Point(x=far_x, y=near),
        Point(x=near, y=near),
        Point(x=far_x, y=far_y),
        Point(x=near, y=far_y),
    ]
    axis_bounds = BoundingBox(x=0, y=0, width=box_size, height=box_size)

    for corner in corners:
        if not check_collision(corner, axis_bounds, existing):
            return corner

    return corners[0]


def _free_body_scene(data: FreeBodyDiagramData) -> tuple[Optional[PhysicsObject], list[Force], float]:
    surface_angle = 0.0
    if data.surface and data.surface.type == "inclined":
        surface_angle = data.surface.angle or 0.0
    return data.object, data.forces or [], surface_angle


def _inclined_plane_scene(data: InclinedPlaneData) -> tuple[Optional[PhysicsObject], list[Force], float]:
    return data.object, data.forces or [], data.angle or 0.0


_PHYSICS_SCENES = {
    DiagramType.FREE_BODY_DIAGRAM: (FreeBodyDiagramData, _free_body_scene),
    DiagramType.INCLINED_PLANE: (InclinedPlaneData, _inclined_plane_scene),
}


def layout_diagram(
    diagram: StructuredDiagram,
    canvas_size: Optional[CanvasSize] = None,
    options: Optional[PhysicsLayoutOptions] = None
) -> PhysicsLayout:
    """
    Lay out a free-body or inclined-plane diagram.

    The surface angle comes from the diagram and overrides options.surface_angle.

    Raises:
        LayoutError: The diagram type has no object and forces to lay out,
            or the object is missing
    """
    entry = _PHYSICS_SCENES.get(diagram.type)
    if entry is None:
        type_name = diagram.type.value if diagram.type else None
        raise LayoutError(f"Cannot lay out diagram of type {type_name!r}")

    payload_model, scene = entry
    if not isinstance(diagram.data, payload_model):
        raise LayoutError(f"Data does not match diagram type '{diagram.type.value}'")

    obj, forces, surface_angle = scene(diagram.data)
    if obj is None:
        raise LayoutError("Diagram has no object to lay out")

    options = (options or PhysicsLayoutOptions()).model_copy(update={"surface_angle": surface_angle})
    logger.debug("Laying out %s with %d forces", diagram.type.value, len(forces))
    return calculate_physics_layout(obj, forces, canvas_size, options)
