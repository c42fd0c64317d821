"""
Physics calculators - Numbers behind the physics diagrams.

Each calculator takes plain SI quantities (kg, m/s, degrees, m) and returns
a result dataclass. Angles follow the force convention: counterclockwise
from +x, in degrees.

calculate_diagram_physics() reads the inputs off a structured diagram
(object mass or weight force, friction coefficient, launch velocity).
"""

import math
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from .config import GRAVITY
from .models import (
    Force,
    ForceType,
    FreeBodyDiagramData,
    InclinedPlaneData,
    PhysicsObject,
    ProjectileMotionData,
    StructuredDiagram,
)


def _require_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value:g}")


def weight_components(weight: float, angle: float) -> tuple[float, float]:
    """Split a weight on a slope of `angle` degrees into (W∥, W⊥)."""
    theta = math.radians(angle)
    return weight * math.sin(theta), weight * math.cos(theta)


# --- Inclined plane ---

@dataclass
class InclinedPlaneResult:
    weight: float
    weight_parallel: float
    weight_perpendicular: float
    normal_force: float
    friction_force: float
    max_static_friction: float
    net_force: float
    acceleration: float  # down the slope
    is_sliding: bool

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_inclined_plane(
    mass: float,
    angle: float,
    friction: float = 0.0,
    gravity: float = GRAVITY
) -> InclinedPlaneResult:
    """
    Forces on a block resting or sliding on an incline.

    The block slides when W∥ exceeds the maximum static friction μ·N; kinetic
    friction then uses the same coefficient. A block that holds has friction
    equal to W∥ and no acceleration.

    Args:
        mass: Block mass in kg
        angle: Slope angle in degrees
        friction: Friction coefficient μ
        gravity: Gravitational acceleration in m/s²

    Raises:
        ValueError: mass or gravity is not positive
    """
    _require_positive("mass", mass)
    _require_positive("gravity", gravity)

    weight = mass * gravity
    weight_parallel, weight_perpendicular = weight_components(weight, angle)
    normal_force = weight_perpendicular
    max_static_friction = friction * normal_force
    is_sliding = weight_parallel > max_static_friction
    friction_force = max_static_friction if is_sliding else weight_parallel
    net_force = weight_parallel - friction_force if is_sliding else 0.0

    return InclinedPlaneResult(
        weight=weight,
        weight_parallel=weight_parallel,
        weight_perpendicular=weight_perpendicular,
        normal_force=normal_force,
        friction_force=friction_force,
        max_static_friction=max_static_friction,
        net_force=net_force,
        acceleration=net_force / mass,
        is_sliding=is_sliding,
    )


# --- Free body on a horizontal surface ---

@dataclass
class FreeBodyResult:
    weight: float
    normal_force: float
    applied_force_x: float
    applied_force_y: float
    friction_force: float  # magnitude
    net_force_x: float
    net_force_y: float
    net_force_magnitude: float
    acceleration_x: float
    acceleration_y: float

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_free_body(
    mass: float,
    applied_force: float = 0.0,
    applied_angle: float = 0.0,
    friction: float = 0.0,
    gravity: float = GRAVITY
) -> FreeBodyResult:
    """
    Net force on a block pushed or pulled along a horizontal floor.

    The normal force balances the weight less the applied force's vertical
    part (never below zero). Friction opposes the applied force's horizontal
    part and never exceeds it.

    Raises:
        ValueError: mass or gravity is not positive
    """
    _require_positive("mass", mass)
    _require_positive("gravity", gravity)

    theta = math.radians(applied_angle)
    weight = mass * gravity
    applied_x = applied_force * math.cos(theta)
    applied_y = applied_force * math.sin(theta)

    normal_force = max(0.0, weight - applied_y)
    friction_x = min(friction * normal_force, abs(applied_x))
    if applied_x > 0:
        friction_x = -friction_x

    net_x = applied_x + friction_x
    net_y = normal_force + applied_y - weight

    return FreeBodyResult(
        weight=weight,
        normal_force=normal_force,
        applied_force_x=applied_x,
        applied_force_y=applied_y,
        friction_force=abs(friction_x),
        net_force_x=net_x,
        net_force_y=net_y,
        net_force_magnitude=math.hypot(net_x, net_y),
        acceleration_x=net_x / mass,
        acceleration_y=net_y / mass,
    )


# --- Projectile ---

@dataclass
class ProjectileResult:
    v0x: float
    v0y: float
    time_of_flight: float
    max_height: float  # above the ground, launch height included
    range: float
    peak_time: float

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_projectile(
    initial_velocity: float,
    launch_angle: float,
    initial_height: float = 0.0,
    gravity: float = GRAVITY
) -> ProjectileResult:
    """
    Flight of a projectile launched from `initial_height` above flat ground.

    Raises:
        ValueError: gravity is not positive, or the launch point lies so far
            below the ground that the projectile never reaches it
    """
    _require_positive("gravity", gravity)

    theta = math.radians(launch_angle)
    v0x = initial_velocity * math.cos(theta)
    v0y = initial_velocity * math.sin(theta)

    discriminant = v0y ** 2 + 2 * gravity * initial_height
    if discriminant < 0:
        raise ValueError("Projectile never reaches ground level")
    time_of_flight = (v0y + math.sqrt(discriminant)) / gravity

    return ProjectileResult(
        v0x=v0x,
        v0y=v0y,
        time_of_flight=time_of_flight,
        max_height=initial_height + v0y ** 2 / (2 * gravity),
        range=v0x * time_of_flight,
        peak_time=v0y / gravity,
    )


# --- Circular motion ---

@dataclass
class CircularMotionResult:
    centripetal_acceleration: float
    centripetal_force: float
    period: float
    frequency: float
    angular_velocity: float

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_circular_motion(mass: float, velocity: float, radius: float) -> CircularMotionResult:
    """
    Uniform circular motion. A body at rest has an infinite period.

    Raises:
        ValueError: mass or radius is not positive
    """
    _require_positive("mass", mass)
    _require_positive("radius", radius)

    acceleration = velocity ** 2 / radius
    angular_velocity = velocity / radius
    period = 2 * math.pi / abs(angular_velocity) if angular_velocity else math.inf

    return CircularMotionResult(
        centripetal_acceleration=acceleration,
        centripetal_force=mass * acceleration,
        period=period,
        frequency=1 / period,
        angular_velocity=angular_velocity,
    )


# --- One-dimensional collision ---

@dataclass
class CollisionResult:
    v1_final: float
    v2_final: float
    momentum_initial: float
    momentum_final: float
    kinetic_energy_initial: float
    kinetic_energy_final: float
    energy_loss: float

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_collision(
    mass1: float,
    mass2: float,
    velocity1: float,
    velocity2: float,
    elasticity: float = 1.0
) -> CollisionResult:
    """
    Head-on collision of two bodies.

    Args:
        elasticity: Coefficient of restitution, 0 (perfectly inelastic) to 1
            (perfectly elastic)

    Raises:
        ValueError: A mass is not positive
    """
    _require_positive("mass1", mass1)
    _require_positive("mass2", mass2)

    total = mass1 + mass2
    v1 = ((mass1 - elasticity * mass2) * velocity1 + (1 + elasticity) * mass2 * velocity2) / total
    v2 = ((mass2 - elasticity * mass1) * velocity2 + (1 + elasticity) * mass1 * velocity1) / total

    ke_initial = 0.5 * mass1 * velocity1 ** 2 + 0.5 * mass2 * velocity2 ** 2
    ke_final = 0.5 * mass1 * v1 ** 2 + 0.5 * mass2 * v2 ** 2

    return CollisionResult(
        v1_final=v1,
        v2_final=v2,
        momentum_initial=mass1 * velocity1 + mass2 * velocity2,
        momentum_final=mass1 * v1 + mass2 * v2,
        kinetic_energy_initial=ke_initial,
        kinetic_energy_final=ke_final,
        energy_loss=ke_initial - ke_final,
    )


PHYSICS_CALCULATORS: dict[str, Callable] = {
    "inclined_plane": calculate_inclined_plane,
    "free_body": calculate_free_body,
    "projectile": calculate_projectile,
    "circular_motion": calculate_circular_motion,
    "collision": calculate_collision,
}


# --- From diagrams ---

def _first_of_type(forces: Optional[list[Force]], force_type: ForceType) -> Optional[Force]:
    for force in forces or []:
        if force.type == force_type:
            return force
    return None


def _object_mass(obj: Optional[PhysicsObject], forces: Optional[list[Force]], gravity: float) -> Optional[float]:
    """Mass from the object, else from the drawn weight W = m·g."""
    if obj is not None and obj.mass:
        return obj.mass
    weight = _first_of_type(forces, ForceType.WEIGHT)
    if weight is not None and weight.magnitude:
        return abs(weight.magnitude) / gravity
    return None


def _inclined_plane_physics(data: InclinedPlaneData) -> Optional[InclinedPlaneResult]:
    mass = _object_mass(data.object, data.forces, GRAVITY)
    if data.angle is None or mass is None:
        return None
    return calculate_inclined_plane(mass, data.angle, data.friction_coefficient or 0.0)


def _free_body_physics(data: FreeBodyDiagramData) -> Optional[FreeBodyResult]:
    mass = _object_mass(data.object, data.forces, GRAVITY)
    if mass is None:
        return None
    applied = _first_of_type(data.forces, ForceType.APPLIED)
    if applied is None or applied.magnitude is None or applied.angle is None:
        return calculate_free_body(mass)
    return calculate_free_body(mass, applied.magnitude, applied.angle)


def _projectile_physics(data: ProjectileMotionData) -> Optional[ProjectileResult]:
    velocity = data.initial.velocity if data.initial else None
    if velocity is None:
        return None
    return calculate_projectile(velocity.magnitude, velocity.angle, gravity=data.gravity or GRAVITY)


_DIAGRAM_CALCULATORS: dict[type, Callable] = {
    InclinedPlaneData: _inclined_plane_physics,
    FreeBodyDiagramData: _free_body_physics,
    ProjectileMotionData: _projectile_physics,
}


def calculate_diagram_physics(diagram: StructuredDiagram):
    """
    Run the calculator matching a physics diagram's payload.

    Returns:
        InclinedPlaneResult, FreeBodyResult or ProjectileResult; None for
        other payloads or when the diagram lacks the inputs (mass, angle,
        launch velocity)
    """
    calculator = _DIAGRAM_CALCULATORS.get(type(diagram.data))
    if calculator is None:
        return None
    return calculator(diagram.data)
