"""
Core data models for structured educational diagrams.

These models define the canonical schema shared by the validator, the layout
engine and the step manager:
- Geometry values (Point, Vector2D, BoundingBox)
- Physics vocabulary (ForceType, Force, PhysicsObject, Surface)
- One payload model per diagram type, selected by the diagram's `type` tag
- Step descriptors and the StructuredDiagram envelope
- Transient layout records (LayoutElement, Collision, LayoutResult)

Field Naming Convention:
- Python attributes are snake_case
- The upstream producer speaks camelCase JSON (xMin, schemaVersion, ...);
  both spellings are accepted on input and to_json_dict() emits camelCase
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .config import SCHEMA_VERSION
from .errors import DiagramParseError


class WireModel(BaseModel):
    """Base for models that travel to/from the diagram producer as JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_json_dict(self) -> dict:
        """Convert to a camelCase JSON-serializable dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Geometry ---

class Point(BaseModel):
    """A point in diagram-local coordinates (y grows downward on screen)."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Vector2D(BaseModel):
    """Magnitude and direction; angle in degrees, 0 = right, 90 = up."""
    magnitude: float
    angle: float


class BoundingBox(BaseModel):
    """Axis-aligned box, (x, y) is the top-left corner."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def translated(self, dx: float, dy: float) -> "BoundingBox":
        """Return a copy moved by (dx, dy)."""
        return BoundingBox(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)


class Size(BaseModel):
    width: float
    height: float


# --- Diagram types ---

class DiagramType(str, Enum):
    """Every diagram kind the producer may emit."""
    # Physics
    FREE_BODY_DIAGRAM = "free_body_diagram"
    INCLINED_PLANE = "inclined_plane"
    PROJECTILE_MOTION = "projectile_motion"
    PULLEY_SYSTEM = "pulley_system"
    CIRCULAR_MOTION = "circular_motion"
    COLLISION = "collision"
    SPRING_SYSTEM = "spring_system"
    PENDULUM = "pendulum"
    WAVE = "wave"
    ELECTRIC_FIELD = "electric_field"
    CIRCUIT = "circuit"
    # Math
    COORDINATE_PLANE = "coordinate_plane"
    NUMBER_LINE = "number_line"
    TRIANGLE = "triangle"
    CIRCLE = "circle"
    LONG_DIVISION = "long_division"
    EQUATION_STEPS = "equation_steps"
    FRACTION_OPERATION = "fraction_operation"
    POLYNOMIAL = "polynomial"
    INEQUALITY = "inequality"
    VENN_DIAGRAM = "venn_diagram"
    TREE_DIAGRAM = "tree_diagram"
    # Chemistry
    ATOM = "atom"
    MOLECULE = "molecule"
    REACTION = "reaction"
    ORBITAL = "orbital"
    PERIODIC_ELEMENT = "periodic_element"
    # Biology
    CELL = "cell"
    DNA = "dna"
    PROTEIN = "protein"
    ORGAN_SYSTEM = "organ_system"
    FOOD_WEB = "food_web"


PHYSICS_DIAGRAM_TYPES = frozenset({
    DiagramType.FREE_BODY_DIAGRAM, DiagramType.INCLINED_PLANE, DiagramType.PROJECTILE_MOTION,
    DiagramType.PULLEY_SYSTEM, DiagramType.CIRCULAR_MOTION, DiagramType.COLLISION,
    DiagramType.SPRING_SYSTEM, DiagramType.PENDULUM, DiagramType.WAVE,
    DiagramType.ELECTRIC_FIELD, DiagramType.CIRCUIT,
})

MATH_DIAGRAM_TYPES = frozenset({
    DiagramType.COORDINATE_PLANE, DiagramType.NUMBER_LINE, DiagramType.TRIANGLE,
    DiagramType.CIRCLE, DiagramType.LONG_DIVISION, DiagramType.EQUATION_STEPS,
    DiagramType.FRACTION_OPERATION, DiagramType.POLYNOMIAL, DiagramType.INEQUALITY,
    DiagramType.VENN_DIAGRAM, DiagramType.TREE_DIAGRAM,
})

CHEMISTRY_DIAGRAM_TYPES = frozenset({
    DiagramType.ATOM, DiagramType.MOLECULE, DiagramType.REACTION,
    DiagramType.ORBITAL, DiagramType.PERIODIC_ELEMENT,
})

BIOLOGY_DIAGRAM_TYPES = frozenset({
    DiagramType.CELL, DiagramType.DNA, DiagramType.PROTEIN,
    DiagramType.ORGAN_SYSTEM, DiagramType.FOOD_WEB,
})


def is_physics_diagram_type(diagram_type: Optional[str]) -> bool:
    return diagram_type in PHYSICS_DIAGRAM_TYPES


def is_math_diagram_type(diagram_type: Optional[str]) -> bool:
    return diagram_type in MATH_DIAGRAM_TYPES


def is_chemistry_diagram_type(diagram_type: Optional[str]) -> bool:
    return diagram_type in CHEMISTRY_DIAGRAM_TYPES


def is_biology_diagram_type(diagram_type: Optional[str]) -> bool:
    return diagram_type in BIOLOGY_DIAGRAM_TYPES


# --- Physics vocabulary ---

class ForceType(str, Enum):
    """Physical nature of a force; drives validation and origin placement."""
    WEIGHT = "weight"
    NORMAL = "normal"
    FRICTION = "friction"
    TENSION = "tension"
    APPLIED = "applied"
    SPRING = "spring"
    DRAG = "drag"
    LIFT = "lift"
    THRUST = "thrust"
    BUOYANCY = "buoyancy"
    ELECTRIC = "electric"
    MAGNETIC = "magnetic"
    CENTRIPETAL = "centripetal"
    NET = "net"
    COMPONENT = "component"
    CUSTOM = "custom"
    DRIVE = "drive"
    RESISTANCE = "resistance"
    REACTION = "reaction"


# Default arrow colors per force type (consumed by renderers)
FORCE_TYPE_COLORS: dict[ForceType, str] = {
    ForceType.WEIGHT: "#16a34a",
    ForceType.NORMAL: "#2563eb",
    ForceType.FRICTION: "#dc2626",
    ForceType.TENSION: "#7c3aed",
    ForceType.APPLIED: "#ea580c",
    ForceType.SPRING: "#0891b2",
    ForceType.DRAG: "#64748b",
    ForceType.LIFT: "#0ea5e9",
    ForceType.THRUST: "#f59e0b",
    ForceType.BUOYANCY: "#06b6d4",
    ForceType.ELECTRIC: "#eab308",
    ForceType.MAGNETIC: "#a855f7",
    ForceType.CENTRIPETAL: "#ec4899",
    ForceType.NET: "#1f2937",
    ForceType.COMPONENT: "#9ca3af",
    ForceType.CUSTOM: "#6366f1",
    ForceType.DRIVE: "#22c55e",
    ForceType.RESISTANCE: "#ef4444",
    ForceType.REACTION: "#3b82f6",
}


class ForceAngleConventions:
    """Canonical force directions in degrees (0 = right, 90 = up)."""
    WEIGHT = -90.0
    NORMAL_HORIZONTAL = 90.0

    @staticmethod
    def normal_inclined(plane_angle: float) -> float:
        return 90.0 - plane_angle

    @staticmethod
    def friction_up_slope(plane_angle: float) -> float:
        return 180.0 - plane_angle

    @staticmethod
    def friction_down_slope(plane_angle: float) -> float:
        return -plane_angle


class Force(WireModel):
    """
    A force vector acting on the diagram's object.

    magnitude and angle are optional here so that the validator, not the
    parser, reports a force that is missing them.
    """
    id: Optional[str] = None
    name: str = ""
    type: ForceType
    magnitude: Optional[float] = None
    angle: Optional[float] = None  # degrees
    symbol: Optional[str] = None   # e.g. "W", "N", "f"
    subscript: Optional[str] = None
    color: Optional[str] = None
    components: Optional[bool] = None
    # Explicit tail point, or a placement keyword
    origin: Optional[Union[Point, Literal["center", "surface", "attachment"]]] = None

    @property
    def key(self) -> str:
        """Identifier used for layout maps: id, else name, else type."""
        return self.id or self.name or self.type.value

    @property
    def label_text(self) -> str:
        return self.symbol or self.name or self.type.value


class PhysicsObject(WireModel):
    """The body that forces act on (block, ball, ...)."""
    id: str = "object"
    type: Literal["block", "ball", "point", "custom"] = "block"
    label: Optional[str] = None
    mass: Optional[float] = None
    position: Point
    size: Union[float, Size] = 40
    color: Optional[str] = None
    rotation: Optional[float] = None  # degrees

    @property
    def extent(self) -> float:
        """Largest dimension of the object."""
        if isinstance(self.size, Size):
            return max(self.size.width, self.size.height)
        return float(self.size)


class Surface(WireModel):
    type: Literal["horizontal", "inclined", "vertical", "none"] = "horizontal"
    angle: Optional[float] = None
    friction: Optional[float] = None


# --- Diagram payloads (one per diagram type) ---

class BaseDiagramData(WireModel):
    """Fields every payload may carry."""
    title: Optional[str] = None
    given_info: Optional[dict[str, str]] = None
    unknowns: Optional[list[str]] = None


class GenericDiagramData(BaseDiagramData):
    """Payload for diagram types without a dedicated shape."""


class FreeBodyDiagramData(BaseDiagramData):
    object: Optional[PhysicsObject] = None
    forces: Optional[list[Force]] = None
    surface: Optional[Surface] = None
    coordinate_system: Optional[Literal["standard", "inclined", "none"]] = None
    show_net_force: Optional[bool] = None
    show_components: Optional[bool] = None


class InclinedPlaneData(BaseDiagramData):
    angle: Optional[float] = None
    object: Optional[PhysicsObject] = None
    forces: Optional[list[Force]] = None
    friction_coefficient: Optional[float] = None
    show_decomposition: bool = False
    show_angle_label: Optional[bool] = None
    coordinate_system: Optional[Literal["standard", "inclined", "none"]] = None
    surface: Optional[dict[str, Any]] = None


class InitialConditions(WireModel):
    position: Optional[Point] = None
    velocity: Optional[Vector2D] = None


class ProjectileMotionData(BaseDiagramData):
    initial: Optional[InitialConditions] = None
    gravity: Optional[float] = None
    show_trajectory: Optional[bool] = None
    show_velocity_components: Optional[bool] = None
    time_markers: Optional[list[float]] = None
    ground_level: Optional[float] = None


class PlotPoint(WireModel):
    id: str
    x: float
    y: float
    label: Optional[str] = None
    color: Optional[str] = None
    style: Optional[Literal["filled", "open"]] = None


class PlotLine(WireModel):
    id: str
    points: tuple[Point, Point]
    color: Optional[str] = None
    dashed: Optional[bool] = None
    label: Optional[str] = None


class PlotCurve(WireModel):
    id: str
    expression: str  # e.g. "x^2 - 4"
    color: Optional[str] = None
    domain: Optional[tuple[float, float]] = None


class PlotRegion(WireModel):
    id: str
    inequality: str  # e.g. "y > x + 1"
    color: Optional[str] = None
    opacity: Optional[float] = None


class CoordinatePlaneData(BaseDiagramData):
    x_min: Optional[float] = None
    x_max: Optional[float] = None
    y_min: Optional[float] = None
    y_max: Optional[float] = None
    show_grid: Optional[bool] = None
    show_axes: Optional[bool] = None
    axis_labels: Optional[dict[str, str]] = None
    points: list[PlotPoint] = Field(default_factory=list)
    lines: list[PlotLine] = Field(default_factory=list)
    curves: list[PlotCurve] = Field(default_factory=list)
    regions: list[PlotRegion] = Field(default_factory=list)


class NumberLinePoint(WireModel):
    value: float
    label: Optional[str] = None
    style: Optional[Literal["filled", "open"]] = None
    color: Optional[str] = None


class NumberLineInterval(WireModel):
    start: Optional[float] = None  # None = negative infinity
    end: Optional[float] = None    # None = positive infinity
    start_inclusive: Optional[bool] = None
    end_inclusive: Optional[bool] = None
    color: Optional[str] = None


class NumberLineData(BaseDiagramData):
    min: Optional[float] = None
    max: Optional[float] = None
    points: list[NumberLinePoint] = Field(default_factory=list)
    intervals: list[NumberLineInterval] = Field(default_factory=list)


class LongDivisionData(BaseDiagramData):
    dividend: Optional[int] = None
    divisor: Optional[int] = None
    show_steps: Optional[bool] = None


class ElectronShell(WireModel):
    n: int
    electrons: int
    max_electrons: int


class AtomElement(WireModel):
    symbol: str
    name: str
    atomic_number: int
    protons: int
    neutrons: int
    shells: list[ElectronShell] = Field(default_factory=list)


class AtomDiagramData(BaseDiagramData):
    element: Optional[AtomElement] = None
    show_proton_count: Optional[bool] = None
    show_electron_count: Optional[bool] = None
    highlight_valence: Optional[bool] = None


class MoleculeAtom(WireModel):
    id: str
    symbol: str
    position: Point


class MoleculeBond(WireModel):
    atom1: str
    atom2: str
    type: Literal["single", "double", "triple"] = "single"


class MoleculeDiagramData(BaseDiagramData):
    name: Optional[str] = None
    formula: Optional[str] = None
    geometry: Optional[Literal[
        "linear", "bent", "trigonal_planar", "tetrahedral", "trigonal_pyramidal"
    ]] = None
    atoms: list[MoleculeAtom] = Field(default_factory=list)
    bonds: list[MoleculeBond] = Field(default_factory=list)


DiagramData = Union[
    FreeBodyDiagramData,
    InclinedPlaneData,
    ProjectileMotionData,
    CoordinatePlaneData,
    NumberLineData,
    LongDivisionData,
    AtomDiagramData,
    MoleculeDiagramData,
    GenericDiagramData,
]

# Tag -> payload model. Types not listed here carry GenericDiagramData.
DIAGRAM_DATA_MODELS: dict[DiagramType, type[BaseDiagramData]] = {
    DiagramType.FREE_BODY_DIAGRAM: FreeBodyDiagramData,
    DiagramType.INCLINED_PLANE: InclinedPlaneData,
    DiagramType.PROJECTILE_MOTION: ProjectileMotionData,
    DiagramType.COORDINATE_PLANE: CoordinatePlaneData,
    DiagramType.NUMBER_LINE: NumberLineData,
    DiagramType.LONG_DIVISION: LongDivisionData,
    DiagramType.ATOM: AtomDiagramData,
    DiagramType.MOLECULE: MoleculeDiagramData,
}


# --- Steps ---

AnimationType = Literal["fade", "draw", "grow", "slide", "decompose", "highlight", "none"]


class DiagramAnnotation(WireModel):
    id: str
    type: Literal["label", "calculation", "arrow", "bracket", "dimension"] = "label"
    position: Point
    content: str
    color: Optional[str] = None
    font_size: Optional[float] = None


class StepAnimation(WireModel):
    type: AnimationType = "fade"
    duration: Optional[float] = None  # ms
    delay: Optional[float] = None     # ms
    easing: Optional[str] = None


class DiagramStep(WireModel):
    """Visual state of the diagram for one reveal step."""
    step_number: int = 0
    title: Optional[str] = None
    visible_elements: list[str] = Field(default_factory=list)
    hidden_elements: Optional[list[str]] = None
    new_elements: Optional[list[str]] = None
    highlight_elements: Optional[list[str]] = None
    dim_elements: Optional[list[str]] = None
    annotations: Optional[list[DiagramAnnotation]] = None
    animation: Optional[StepAnimation] = None


class StructuredDiagram(WireModel):
    """
    A complete diagram: type tag, matching payload and ordered steps.

    `data` is parsed through DIAGRAM_DATA_MODELS using the `type` tag, so the
    payload instance always matches the declared diagram type. Every field is
    optional at the model level; the validator reports what is missing.
    """
    type: Optional[DiagramType] = None
    data: Optional[DiagramData] = None
    steps: Optional[list[DiagramStep]] = None
    source: Literal["ai", "programmatic", "hybrid"] = "programmatic"
    confidence: float = 1.0
    schema_version: int = SCHEMA_VERSION

    @model_validator(mode='before')
    @classmethod
    def select_payload_model(cls, data: Any) -> Any:
        """Parse a raw `data` dict into the payload model for `type`."""
        if not isinstance(data, dict):
            return data
        payload = data.get("data")
        if not isinstance(payload, dict):
            return data
        payload_model = DIAGRAM_DATA_MODELS.get(data.get("type"), GenericDiagramData)
        try:
            parsed = payload_model.model_validate(payload)
        except ValidationError as exc:
            raise ValueError(f"invalid {payload_model.__name__}: {exc}") from exc
        return {**data, "data": parsed}

    @classmethod
    def from_json_dict(cls, data: dict) -> "StructuredDiagram":
        """Create a diagram from producer JSON (camelCase or snake_case)."""
        return cls.model_validate(data)


# --- Layout (transient, never persisted) ---

class ElementType(str, Enum):
    OBJECT = "object"
    AXIS = "axis"
    FORCE = "force"
    LABEL = "label"
    ANNOTATION = "annotation"


@dataclass
class LayoutElement:
    """A drawable element being positioned by the layout engine."""
    id: str
    type: ElementType
    position: Point
    bounds: BoundingBox
    priority: int  # higher = more important, less likely to move
    anchor: Optional[Point] = None
    # Element this one hangs off; overlap with it is expected, not a collision
    attached_to: Optional[str] = None


@dataclass
class Collision:
    """Two elements whose padded boxes overlap."""
    element1: str
    element2: str
    overlap: BoundingBox
    severity: float  # 0-1

    def involves(self, element_id: str) -> bool:
        return element_id in (self.element1, self.element2)


@dataclass
class Adjustment:
    dx: float = 0.0
    dy: float = 0.0


@dataclass
class LayoutResult:
    """Outcome of collision resolution."""
    elements: dict[str, Point] = field(default_factory=dict)
    adjustments: dict[str, Adjustment] = field(default_factory=dict)
    collisions: list[Collision] = field(default_factory=list)  # unresolved
    success: bool = True
    iterations: int = 0


@dataclass
class CanvasSize:
    width: float
    height: float


@dataclass
class PhysicsLayout:
    """
    Final positions for a physics diagram.

    force_origins are the convention points from calculate_force_origin,
    taken before collision relaxation; arrows drawn from them may overlap
    each other even when success is True. label_positions are post-relaxation.
    success only reports whether relaxation converged.
    """
    object_position: Point
    force_origins: dict[str, Point]
    label_positions: dict[str, Point]
    axis_position: Optional[Point] = None
    collisions: list[Collision] = field(default_factory=list)
    success: bool = True


def parse_diagram(payload: Any) -> StructuredDiagram:
    """
    Load producer JSON (camelCase or snake_case) into a StructuredDiagram.

    Raises:
        DiagramParseError: The payload cannot be represented by the model at
            all (wrong shapes, unknown diagram type, ...)
    """
    if isinstance(payload, StructuredDiagram):
        return payload
    try:
        return StructuredDiagram.model_validate(payload)
    except ValidationError as exc:
        raise DiagramParseError(
            f"Invalid diagram payload ({exc.error_count()} errors)",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc
