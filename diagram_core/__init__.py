"""
Diagram Core - Validation, layout and step synchronization for educational diagrams.

Pure, in-process building blocks: a host parses a StructuredDiagram, validates
and auto-corrects it, lays out its elements and drives its reveal steps.
The physics calculators give the numbers behind the physics diagrams.
"""

from .errors import DiagramCoreError, DiagramParseError, LayoutError

from .models import (
    # Enums and conventions
    DiagramType,
    ForceType,
    ForceAngleConventions,
    ElementType,
    # Geometry
    Point,
    Vector2D,
    Size,
    BoundingBox,
    # Physics vocabulary
    Force,
    PhysicsObject,
    Surface,
    # Payloads
    FreeBodyDiagramData,
    InclinedPlaneData,
    ProjectileMotionData,
    CoordinatePlaneData,
    NumberLineData,
    LongDivisionData,
    AtomDiagramData,
    MoleculeDiagramData,
    GenericDiagramData,
    # Envelope
    DiagramStep,
    StructuredDiagram,
    parse_diagram,
    # Layout records
    LayoutElement,
    Collision,
    LayoutResult,
    CanvasSize,
    PhysicsLayout,
)

from .validation import (
    validate_schema,
    validate_physics,
    validate_diagram,
    auto_correct_diagram,
    validate_and_correct,
    ValidationIssue,
    ValidationResult,
    IssueSeverity,
)
from .layout import (
    calculate_physics_layout,
    layout_diagram,
    resolve_collisions,
    detect_collisions,
    find_label_position,
    PhysicsLayoutOptions,
)
from .analysis import summarize_diagram, net_force
from .physics import (
    calculate_inclined_plane,
    calculate_free_body,
    calculate_projectile,
    calculate_circular_motion,
    calculate_collision,
    calculate_diagram_physics,
)
from .steps import (
    StepSyncManager,
    StepSyncOptions,
    StepSyncCallbacks,
    StepConfig,
    StepState,
    AsyncioScheduler,
    ManualScheduler,
    create_steps_from_diagram_config,
    steps_from_diagram,
)
from .logging_config import setup_logging

__all__ = [
    # Errors
    "DiagramCoreError",
    "DiagramParseError",
    "LayoutError",
    # Enums
    "DiagramType",
    "ForceType",
    "ForceAngleConventions",
    "ElementType",
    # Models
    "Point",
    "Vector2D",
    "Size",
    "BoundingBox",
    "Force",
    "PhysicsObject",
    "Surface",
    "FreeBodyDiagramData",
    "InclinedPlaneData",
    "ProjectileMotionData",
    "CoordinatePlaneData",
    "NumberLineData",
    "LongDivisionData",
    "AtomDiagramData",
    "MoleculeDiagramData",
    "GenericDiagramData",
    "DiagramStep",
    "StructuredDiagram",
    "parse_diagram",
    "LayoutElement",
    "Collision",
    "LayoutResult",
    "CanvasSize",
    "PhysicsLayout",
    # Validation
    "validate_schema",
    "validate_physics",
    "validate_diagram",
    "auto_correct_diagram",
    "validate_and_correct",
    "ValidationIssue",
    "ValidationResult",
    "IssueSeverity",
    # Layout
    "calculate_physics_layout",
    "layout_diagram",
    "resolve_collisions",
    "detect_collisions",
    "find_label_position",
    "PhysicsLayoutOptions",
    # Analysis
    "summarize_diagram",
    "net_force",
    # Physics
    "calculate_inclined_plane",
    "calculate_free_body",
    "calculate_projectile",
    "calculate_circular_motion",
    "calculate_collision",
    "calculate_diagram_physics",
    # Steps
    "StepSyncManager",
    "StepSyncOptions",
    "StepSyncCallbacks",
    "StepConfig",
    "StepState",
    "AsyncioScheduler",
    "ManualScheduler",
    "create_steps_from_diagram_config",
    "steps_from_diagram",
    # Logging
    "setup_logging",
]
