"""
Diagram validation - Check structured diagrams for schema and physics issues.

Two independent passes:
- Schema: required fields and value ranges per diagram type
- Physics: force-direction conventions and equilibrium sanity checks

Problems are collected into a ValidationResult, never raised. Physics checks
assume a schema-valid diagram, so validate_diagram() stops after a failing
schema pass. auto_correct_diagram() applies deterministic fixes to a copy.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, NamedTuple, Optional

from .config import (
    DECOMPOSITION_TOLERANCE,
    FRICTION_TOLERANCE,
    NORMAL_HORIZONTAL_TOLERANCE,
    NORMAL_INCLINED_TOLERANCE,
    PHYSICS_ERROR_PENALTY,
    PHYSICS_WARNING_PENALTY,
    SCHEMA_ERROR_PENALTY,
    SCHEMA_WARNING_PENALTY,
    WEIGHT_ANGLE_TOLERANCE,
)
from .models import (
    AtomDiagramData,
    BaseDiagramData,
    CoordinatePlaneData,
    DiagramData,
    DiagramType,
    Force,
    ForceAngleConventions,
    ForceType,
    FreeBodyDiagramData,
    InclinedPlaneData,
    LongDivisionData,
    MoleculeDiagramData,
    NumberLineData,
    Point,
    ProjectileMotionData,
    StructuredDiagram,
    is_physics_diagram_type,
)
from .physics import weight_components

logger = logging.getLogger(__name__)


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Diagram cannot be trusted as sound
    WARNING = "warning"  # Usable but suspicious


@dataclass
class ValidationIssue:
    """A single validation issue found in a diagram."""
    field: str
    message: str
    severity: IssueSeverity

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "field": self.field,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass
class ValidationResult:
    """Outcome of a validation pass."""
    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    confidence: float = 1.0  # advisory, 0-1
    corrected_data: Optional[DiagramData] = None

    def to_dict(self) -> dict:
        result = {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "confidence": self.confidence,
        }
        if self.corrected_data is not None:
            result["correctedData"] = self.corrected_data.to_json_dict()
        return result


class CorrectionOutcome(NamedTuple):
    result: ValidationResult
    corrected_diagram: StructuredDiagram


class _IssueCollector:
    """Accumulates errors and warnings for one validation pass."""

    def __init__(self):
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, field_name: str, message: str) -> None:
        self.errors.append(ValidationIssue(field_name, message, IssueSeverity.ERROR))

    def warning(self, field_name: str, message: str) -> None:
        self.warnings.append(ValidationIssue(field_name, message, IssueSeverity.WARNING))


# --- Schema validation ---

def _check_free_body_schema(data: FreeBodyDiagramData, issues: _IssueCollector) -> None:
    if data.object is None:
        issues.error("data.object", "FBD requires an object")

    if data.forces is None:
        issues.error("data.forces", "FBD requires forces array")
    elif not data.forces:
        issues.warning("data.forces", "FBD has no forces")
    else:
        _check_force_fields(data.forces, issues)


def _check_inclined_plane_schema(data: InclinedPlaneData, issues: _IssueCollector) -> None:
    if data.angle is None:
        issues.error("data.angle", "Inclined plane requires angle")
    elif data.angle < 0 or data.angle > 90:
        issues.warning("data.angle", f"Angle {data.angle:g}° is outside typical range (0-90°)")

    if data.object is None:
        issues.error("data.object", "Inclined plane requires an object")

    if not data.forces:
        issues.warning("data.forces", "Inclined plane has no forces")
    else:
        _check_force_fields(data.forces, issues)


def _check_force_fields(forces: list[Force], issues: _IssueCollector) -> None:
    first_index: dict[str, int] = {}
    for i, force in enumerate(forces):
        if force.magnitude is None:
            issues.error(f"data.forces[{i}].magnitude", f'Force "{force.name}" has no magnitude')
        if force.angle is None:
            issues.error(f"data.forces[{i}].angle", f'Force "{force.name}" has no angle')

        # Layout maps are keyed by Force.key; a repeat would hide an arrow
        if force.key in first_index:
            issues.warning(
                f"data.forces[{i}].id",
                f'Force key "{force.key}" is already used by forces[{first_index[force.key]}]',
            )
        else:
            first_index[force.key] = i


def _check_projectile_schema(data: ProjectileMotionData, issues: _IssueCollector) -> None:
    if data.initial is None:
        issues.error("data.initial", "Projectile requires initial conditions")
        return
    if data.initial.position is None:
        issues.error("data.initial.position", "Projectile requires initial position")
    if data.initial.velocity is None:
        issues.error("data.initial.velocity", "Projectile requires initial velocity")


def _check_coordinate_plane_schema(data: CoordinatePlaneData, issues: _IssueCollector) -> None:
    if data.x_min is None or data.x_max is None:
        issues.error("data.x_min/x_max", "Coordinate plane requires x bounds")
    elif data.x_min >= data.x_max:
        issues.error("data.x_min/x_max", "x_min must be less than x_max")

    if data.y_min is None or data.y_max is None:
        issues.error("data.y_min/y_max", "Coordinate plane requires y bounds")
    elif data.y_min >= data.y_max:
        issues.error("data.y_min/y_max", "y_min must be less than y_max")


def _check_number_line_schema(data: NumberLineData, issues: _IssueCollector) -> None:
    if data.min is None or data.max is None:
        issues.error("data.min/max", "Number line requires min and max")
    elif data.min >= data.max:
        issues.error("data.min/max", "min must be less than max")


def _check_long_division_schema(data: LongDivisionData, issues: _IssueCollector) -> None:
    if data.dividend is None:
        issues.error("data.dividend", "Long division requires a dividend")
    if data.divisor is None:
        issues.error("data.divisor", "Long division requires a divisor")
    elif data.divisor == 0:
        issues.error("data.divisor", "Divisor must not be zero")


def _check_atom_schema(data: AtomDiagramData, issues: _IssueCollector) -> None:
    element = data.element
    if element is None:
        issues.error("data.element", "Atom diagram requires an element")
        return

    if element.protons != element.atomic_number:
        issues.warning(
            "data.element.protons",
            f"{element.name} has atomic number {element.atomic_number} but {element.protons} protons",
        )
    for i, shell in enumerate(element.shells):
        if shell.electrons > shell.max_electrons:
            issues.warning(
                f"data.element.shells[{i}].electrons",
                f"Shell n={shell.n} holds {shell.electrons} electrons (max {shell.max_electrons})",
            )


def _check_molecule_schema(data: MoleculeDiagramData, issues: _IssueCollector) -> None:
    if not data.atoms:
        issues.error("data.atoms", "Molecule requires atoms")
        return

    atom_ids = {atom.id for atom in data.atoms}
    for i, bond in enumerate(data.bonds):
        for end in (bond.atom1, bond.atom2):
            if end not in atom_ids:
                issues.error(f"data.bonds[{i}]", f"Bond references unknown atom: {end}")


# Tag -> (payload model, checker). Types not listed get no type-specific checks.
_SCHEMA_CHECKS: dict[DiagramType, tuple[type[BaseDiagramData], Callable]] = {
    DiagramType.FREE_BODY_DIAGRAM: (FreeBodyDiagramData, _check_free_body_schema),
    DiagramType.INCLINED_PLANE: (InclinedPlaneData, _check_inclined_plane_schema),
    DiagramType.PROJECTILE_MOTION: (ProjectileMotionData, _check_projectile_schema),
    DiagramType.COORDINATE_PLANE: (CoordinatePlaneData, _check_coordinate_plane_schema),
    DiagramType.NUMBER_LINE: (NumberLineData, _check_number_line_schema),
    DiagramType.LONG_DIVISION: (LongDivisionData, _check_long_division_schema),
    DiagramType.ATOM: (AtomDiagramData, _check_atom_schema),
    DiagramType.MOLECULE: (MoleculeDiagramData, _check_molecule_schema),
}


def validate_schema(diagram: StructuredDiagram) -> ValidationResult:
    """
    Validate that required fields exist and have sensible values.

    Checks for:
    - Missing type or data - ERROR (short-circuits, confidence 0)
    - Missing steps - WARNING
    - Type-specific required fields - ERROR
    - Suspicious but legal values - WARNING
    - Two forces sharing a layout key - WARNING

    Args:
        diagram: The diagram to validate

    Returns:
        ValidationResult for the schema pass
    """
    issues = _IssueCollector()

    if diagram.type is None:
        issues.error("type", "Diagram type is required")
    if diagram.data is None:
        issues.error("data", "Diagram data is required")
    if diagram.steps is None:
        issues.warning("steps", "Steps array is missing or invalid")

    if issues.errors:
        return ValidationResult(valid=False, errors=issues.errors, warnings=issues.warnings, confidence=0)

    check = _SCHEMA_CHECKS.get(diagram.type)
    if check is not None:
        payload_model, checker = check
        if isinstance(diagram.data, payload_model):
            checker(diagram.data, issues)
        else:
            issues.error("data", f"Data does not match diagram type '{diagram.type.value}'")

    confidence = _confidence(issues, SCHEMA_ERROR_PENALTY, SCHEMA_WARNING_PENALTY)
    logger.debug(
        "Schema check for %s: %d errors, %d warnings",
        diagram.type.value, len(issues.errors), len(issues.warnings),
    )

    return ValidationResult(
        valid=not issues.errors,
        errors=issues.errors,
        warnings=issues.warnings,
        confidence=confidence,
    )


# --- Physics validation ---

def _first_of_type(forces: list[Force], force_type: ForceType) -> Optional[Force]:
    for force in forces:
        if force.type == force_type and force.angle is not None:
            return force
    return None


def _angle_difference(a: float, b: float) -> float:
    """Smallest absolute difference between two directions, in degrees."""
    return abs(normalize_angle(a - b))


def _check_force_conventions(
    forces: list[Force],
    surface_kind: Optional[str],
    plane_angle: float,
    issues: _IssueCollector,
) -> None:
    """Direction and sign checks shared by free-body and inclined-plane diagrams."""
    for i, force in enumerate(forces):
        if force.magnitude is not None and force.magnitude < 0:
            issues.error(f"forces[{i}].magnitude", f'Force "{force.name}" has negative magnitude {force.magnitude:g}')

    weight = _first_of_type(forces, ForceType.WEIGHT)
    if weight and _angle_difference(weight.angle, ForceAngleConventions.WEIGHT) > WEIGHT_ANGLE_TOLERANCE:
        issues.error(
            "forces.weight.angle",
            f"Weight force angle should be -90° (down), got {weight.angle:g}°",
        )

    normal = _first_of_type(forces, ForceType.NORMAL)
    if normal and surface_kind == "horizontal":
        if _angle_difference(normal.angle, ForceAngleConventions.NORMAL_HORIZONTAL) > NORMAL_HORIZONTAL_TOLERANCE:
            issues.error(
                "forces.normal.angle",
                f"Normal force on horizontal surface should be 90° (up), got {normal.angle:g}°",
            )
    elif normal and surface_kind == "inclined":
        expected = ForceAngleConventions.normal_inclined(plane_angle)
        if _angle_difference(normal.angle, expected) > NORMAL_INCLINED_TOLERANCE:
            issues.warning(
                "forces.normal.angle",
                f"Normal force should be ~{expected:g}° (perpendicular to {plane_angle:g}° slope), "
                f"got {normal.angle:g}°",
            )

    friction = _first_of_type(forces, ForceType.FRICTION)
    if friction and surface_kind in ("horizontal", "inclined"):
        if surface_kind == "horizontal":
            allowed = (0.0, 180.0)
        else:
            allowed = (
                ForceAngleConventions.friction_up_slope(plane_angle),
                ForceAngleConventions.friction_down_slope(plane_angle),
            )
        if all(_angle_difference(friction.angle, a) > FRICTION_TOLERANCE for a in allowed):
            issues.warning(
                "forces.friction.angle",
                f"Friction should be parallel to the surface (~{allowed[0]:g}° or ~{allowed[1]:g}°), "
                f"got {friction.angle:g}°",
            )


def _check_free_body_physics(data: FreeBodyDiagramData, issues: _IssueCollector) -> None:
    if not data.forces:
        return

    surface = data.surface
    surface_kind = surface.type if surface else None
    plane_angle = (surface.angle or 0.0) if surface else 0.0
    _check_force_conventions(data.forces, surface_kind, plane_angle, issues)


def _check_inclined_plane_physics(data: InclinedPlaneData, issues: _IssueCollector) -> None:
    if not data.forces:
        return

    plane_angle = data.angle or 0.0
    _check_force_conventions(data.forces, "inclined", plane_angle, issues)

    weight = _first_of_type(data.forces, ForceType.WEIGHT)
    normal = _first_of_type(data.forces, ForceType.NORMAL)
    if not (data.show_decomposition and weight and normal):
        return
    if weight.magnitude is None or normal.magnitude is None:
        return

    # Only the perpendicular balance is checked; friction vs W-parallel is not
    _, expected_perp = weight_components(weight.magnitude, plane_angle)
    if expected_perp > 0:
        relative_error = abs(normal.magnitude - expected_perp) / expected_perp
    else:
        relative_error = 0.0 if math.isclose(normal.magnitude, 0.0, abs_tol=1e-9) else math.inf

    if relative_error > DECOMPOSITION_TOLERANCE:
        issues.warning(
            "forces.normal.magnitude",
            f"Normal force ({normal.magnitude:.1f}N) should equal W⊥ ({expected_perp:.1f}N) for equilibrium",
        )


def _check_projectile_physics(data: ProjectileMotionData, issues: _IssueCollector) -> None:
    velocity = data.initial.velocity if data.initial else None
    if velocity is None:
        return

    if velocity.angle < -90 or velocity.angle > 90:
        issues.warning(
            "initial.velocity.angle",
            f"Launch angle {velocity.angle:g}° is outside typical range (-90° to 90°)",
        )
    if velocity.magnitude < 0:
        issues.error("initial.velocity.magnitude", "Initial velocity magnitude must be positive")


_PHYSICS_CHECKS: dict[DiagramType, tuple[type[BaseDiagramData], Callable]] = {
    DiagramType.FREE_BODY_DIAGRAM: (FreeBodyDiagramData, _check_free_body_physics),
    DiagramType.INCLINED_PLANE: (InclinedPlaneData, _check_inclined_plane_physics),
    DiagramType.PROJECTILE_MOTION: (ProjectileMotionData, _check_projectile_physics),
}


def validate_physics(diagram: StructuredDiagram) -> ValidationResult:
    """
    Validate physics consistency of a diagram.

    Checks for:
    - Weight not pointing straight down - ERROR
    - Normal force not perpendicular to a horizontal surface - ERROR
    - Normal force not perpendicular to an incline - WARNING
    - Friction not parallel to the surface - WARNING
    - Normal force not balancing W*cos(angle) when decomposition is shown - WARNING
    - Negative force magnitudes - ERROR

    Non-physics diagrams pass with confidence 1.0.

    Args:
        diagram: A schema-valid diagram

    Returns:
        ValidationResult for the physics pass
    """
    if not is_physics_diagram_type(diagram.type):
        return ValidationResult(valid=True, confidence=1.0)

    issues = _IssueCollector()
    check = _PHYSICS_CHECKS.get(diagram.type)
    if check is not None:
        payload_model, checker = check
        if isinstance(diagram.data, payload_model):
            checker(diagram.data, issues)

    logger.debug(
        "Physics check for %s: %d errors, %d warnings",
        diagram.type.value, len(issues.errors), len(issues.warnings),
    )

    return ValidationResult(
        valid=not issues.errors,
        errors=issues.errors,
        warnings=issues.warnings,
        confidence=_confidence(issues, PHYSICS_ERROR_PENALTY, PHYSICS_WARNING_PENALTY),
    )


# --- Auto-correction ---

def _correct_force(force: Force, normal_angle: Optional[float], fixes: list[str]) -> None:
    if force.magnitude is not None and force.magnitude < 0:
        force.magnitude = abs(force.magnitude)
        if force.angle is not None:
            force.angle = (force.angle + 180) % 360
        fixes.append(f"{force.key}: flipped negative magnitude")

    if force.type == ForceType.WEIGHT and force.angle != ForceAngleConventions.WEIGHT:
        force.angle = ForceAngleConventions.WEIGHT
        fixes.append(f"{force.key}: weight angle set to -90°")

    if force.type == ForceType.NORMAL and normal_angle is not None and force.angle != normal_angle:
        force.angle = normal_angle
        fixes.append(f"{force.key}: normal angle set to {normal_angle:g}°")


def _assign_force_ids(forces: list[Force], fixes: list[str]) -> None:
    """Give id-less forces their name or type as id, suffixed -2, -3... when taken."""
    taken = {force.id for force in forces if force.id}
    for force in forces:
        if force.id:
            continue
        base = force.name or force.type.value
        candidate = base
        suffix = 2
        while candidate in taken:
            candidate = f"{base}-{suffix}"
            suffix += 1
        force.id = candidate
        taken.add(candidate)
        fixes.append(f"{force.id}: default id assigned")


def _correct_free_body(data: FreeBodyDiagramData, fixes: list[str]) -> None:
    if not data.forces:
        return

    normal_angle = None
    if data.surface and data.surface.type == "horizontal":
        normal_angle = ForceAngleConventions.NORMAL_HORIZONTAL
    elif data.surface and data.surface.type == "inclined":
        normal_angle = ForceAngleConventions.normal_inclined(data.surface.angle or 0.0)

    for force in data.forces:
        _correct_force(force, normal_angle, fixes)
    _assign_force_ids(data.forces, fixes)


def _correct_inclined_plane(data: InclinedPlaneData, fixes: list[str]) -> None:
    if data.angle is not None and (data.angle < 0 or data.angle > 90):
        original = data.angle
        data.angle = min(abs(data.angle), 90.0)
        fixes.append(f"plane angle {original:g}° clamped to {data.angle:g}°")

    if not data.forces:
        return

    normal_angle = ForceAngleConventions.normal_inclined(data.angle or 0.0)
    for force in data.forces:
        _correct_force(force, normal_angle, fixes)
    _assign_force_ids(data.forces, fixes)


def _correct_projectile(data: ProjectileMotionData, fixes: list[str]) -> None:
    velocity = data.initial.velocity if data.initial else None
    if velocity is not None and velocity.magnitude < 0:
        velocity.magnitude = abs(velocity.magnitude)
        velocity.angle = (velocity.angle + 180) % 360
        fixes.append("initial velocity: flipped negative magnitude")


_CORRECTIONS: dict[DiagramType, tuple[type[BaseDiagramData], Callable]] = {
    DiagramType.FREE_BODY_DIAGRAM: (FreeBodyDiagramData, _correct_free_body),
    DiagramType.INCLINED_PLANE: (InclinedPlaneData, _correct_inclined_plane),
    DiagramType.PROJECTILE_MOTION: (ProjectileMotionData, _correct_projectile),
}


def auto_correct_diagram(diagram: StructuredDiagram) -> StructuredDiagram:
    """
    Return a deep copy of the diagram with common mistakes fixed.

    Fixes applied:
    - Negative magnitudes made positive, direction rotated 180°
    - Weight forced to -90°
    - Normal forced to the convention for its surface
    - Missing force ids defaulted to name or type, suffixed -2, -3... if taken
    - Inclined-plane angle brought into 0-90°

    Never fails and never touches the input. Applying it twice gives the same
    result as applying it once.

    Args:
        diagram: The diagram to correct

    Returns:
        A corrected copy
    """
    corrected = diagram.model_copy(deep=True)
    fixes: list[str] = []

    entry = _CORRECTIONS.get(corrected.type)
    if entry is not None:
        payload_model, corrector = entry
        if isinstance(corrected.data, payload_model):
            corrector(corrected.data, fixes)

    for fix in fixes:
        logger.debug("Auto-correct: %s", fix)
    if fixes:
        logger.info("Auto-corrected %s diagram (%d fixes)", corrected.type.value, len(fixes))

    return corrected


# --- Combined validation ---

def validate_diagram(diagram: StructuredDiagram) -> ValidationResult:
    """
    Run schema then physics validation and combine the results.

    A failing schema pass is returned as-is; physics checks are skipped.
    """
    schema_result = validate_schema(diagram)
    if not schema_result.valid:
        return schema_result

    physics_result = validate_physics(diagram)
    errors = schema_result.errors + physics_result.errors
    warnings = schema_result.warnings + physics_result.warnings

    return ValidationResult(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        confidence=schema_result.confidence * physics_result.confidence,
    )


def validate_and_correct(diagram: StructuredDiagram) -> CorrectionOutcome:
    """
    Validate a diagram and, if anything is flagged, auto-correct and re-validate.

    Returns:
        (result, corrected_diagram); the input itself when nothing was flagged
    """
    result = validate_diagram(diagram)

    if not result.valid or result.warnings:
        corrected = auto_correct_diagram(diagram)
        result = validate_diagram(corrected)
        result.corrected_data = corrected.data
        return CorrectionOutcome(result, corrected)

    return CorrectionOutcome(result, diagram)


def validation_summary(result: ValidationResult) -> dict:
    """
    Create a summary of a validation result.

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(result.errors) + len(result.warnings),
        "errors": len(result.errors),
        "warnings": len(result.warnings),
        "confidence": round(result.confidence, 3),
        "valid": result.valid,
    }


# --- Helpers ---

def _confidence(issues: _IssueCollector, error_penalty: float, warning_penalty: float) -> float:
    return max(0.0, 1 - len(issues.errors) * error_penalty - len(issues.warnings) * warning_penalty)


def normalize_angle(angle: float) -> float:
    """Normalize an angle in degrees to the range (-180, 180]."""
    normalized = math.fmod(angle, 360)
    if normalized > 180:
        normalized -= 360
    elif normalized <= -180:
        normalized += 360
    return normalized


def points_equal(p1: Point, p2: Point, tolerance: float = 0.01) -> bool:
    """Check if two points are approximately equal."""
    return abs(p1.x - p2.x) < tolerance and abs(p1.y - p2.y) < tolerance
