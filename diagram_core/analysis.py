"""
Diagram analysis - Summaries and cross-checks over a structured diagram.

Used by hosts to describe a diagram without rendering it, and to catch steps
that refer to elements the payload never defines.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .models import (
    CoordinatePlaneData,
    Force,
    FreeBodyDiagramData,
    InclinedPlaneData,
    MoleculeDiagramData,
    StructuredDiagram,
    Vector2D,
    is_biology_diagram_type,
    is_chemistry_diagram_type,
    is_math_diagram_type,
    is_physics_diagram_type,
)


@dataclass
class DiagramSummary:
    """Structural summary of one diagram."""
    type: Optional[str]
    family: Optional[str]
    forces_by_type: dict[str, int] = field(default_factory=dict)
    net_force: Optional[Vector2D] = None
    step_count: int = 0
    unknown_references: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type,
            "family": self.family,
            "forces_by_type": self.forces_by_type,
            "net_force": (
                {"magnitude": self.net_force.magnitude, "angle": self.net_force.angle}
                if self.net_force else None
            ),
            "step_count": self.step_count,
            "unknown_references": self.unknown_references,
        }


def diagram_family(diagram: StructuredDiagram) -> Optional[str]:
    """Subject area of a diagram: physics, math, chemistry or biology."""
    if is_physics_diagram_type(diagram.type):
        return "physics"
    if is_math_diagram_type(diagram.type):
        return "math"
    if is_chemistry_diagram_type(diagram.type):
        return "chemistry"
    if is_biology_diagram_type(diagram.type):
        return "biology"
    return None


def net_force(forces: Sequence[Force]) -> Vector2D:
    """
    Vector sum of all forces that have both a magnitude and an angle.

    Returns:
        Resultant with angle in degrees (-180, 180]; zero vector if balanced
    """
    fx = 0.0
    fy = 0.0
    for force in forces:
        if force.magnitude is None or force.angle is None:
            continue
        rad = math.radians(force.angle)
        fx += force.magnitude * math.cos(rad)
        fy += force.magnitude * math.sin(rad)

    magnitude = math.hypot(fx, fy)
    if math.isclose(magnitude, 0.0, abs_tol=1e-9):
        return Vector2D(magnitude=0.0, angle=0.0)
    return Vector2D(magnitude=magnitude, angle=math.degrees(math.atan2(fy, fx)))


def _forces_of(diagram: StructuredDiagram) -> list[Force]:
    if isinstance(diagram.data, (FreeBodyDiagramData, InclinedPlaneData)):
        return diagram.data.forces or []
    return []


def step_element_ids(diagram: StructuredDiagram) -> list[str]:
    """Every element id referenced by any step, in first-seen order."""
    seen: dict[str, None] = {}
    for step in diagram.steps or []:
        for ids in (
            step.visible_elements,
            step.hidden_elements,
            step.new_elements,
            step.highlight_elements,
            step.dim_elements,
        ):
            for element_id in ids or []:
                seen.setdefault(element_id, None)
    return list(seen)


def known_element_ids(diagram: StructuredDiagram) -> set[str]:
    """Ids a step may legitimately refer to."""
    known = {"object"}
    data = diagram.data

    for force in _forces_of(diagram):
        known.update({force.key, f"force-{force.key}", f"label-{force.key}"})

    if isinstance(data, (FreeBodyDiagramData, InclinedPlaneData)) and data.object:
        known.add(data.object.id)
    if isinstance(data, CoordinatePlaneData):
        for items in (data.points, data.lines, data.curves, data.regions):
            known.update(item.id for item in items)
    if isinstance(data, MoleculeDiagramData):
        known.update(atom.id for atom in data.atoms)

    for step in diagram.steps or []:
        known.update(annotation.id for annotation in step.annotations or [])

    return known


def find_unknown_step_references(diagram: StructuredDiagram) -> list[str]:
    """
    Find step element ids that match nothing in the payload.

    Only diagram types whose payload names its elements are checked; for
    the rest every reference is accepted.
    """
    if not isinstance(diagram.data, (
        FreeBodyDiagramData, InclinedPlaneData, CoordinatePlaneData, MoleculeDiagramData
    )):
        return []

    known = known_element_ids(diagram)
    return [element_id for element_id in step_element_ids(diagram) if element_id not in known]


def summarize_diagram(diagram: StructuredDiagram) -> DiagramSummary:
    """
    Generate a structural summary of a diagram.

    Args:
        diagram: The diagram to summarize

    Returns:
        DiagramSummary with force counts, net force and step cross-checks
    """
    forces = _forces_of(diagram)
    counts = Counter(force.type.value for force in forces)

    return DiagramSummary(
        type=diagram.type.value if diagram.type else None,
        family=diagram_family(diagram),
        forces_by_type=dict(counts),
        net_force=net_force(forces) if forces else None,
        step_count=len(diagram.steps or []),
        unknown_references=find_unknown_step_references(diagram),
    )
