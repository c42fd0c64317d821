"""Global configuration: layout spacing, priorities, timing and tolerances."""

# --- Layout ---

# Minimum gap between two elements before they count as colliding
MIN_SPACING = 8

# Distance from an anchor point to a label's center
LABEL_OFFSET = 18

# Collision relaxation gives up after this many passes
MAX_LAYOUT_ITERATIONS = 50

# Radius used to fan out forces that share an origin point
FORCE_SPREAD_RADIUS = 5

# Arrow length (before scaling) for forces without a magnitude
DEFAULT_FORCE_LENGTH = 30
DEFAULT_FORCE_SCALE = 1.5
DEFAULT_STROKE_WIDTH = 3

DEFAULT_FONT_SIZE = 14
LABEL_CHAR_WIDTH_RATIO = 0.6
LABEL_PADDING_X = 16
LABEL_PADDING_Y = 10

DEFAULT_AXIS_LENGTH = 40
AXIS_MARGIN = 15
AXIS_BOX_PADDING = 30

DEFAULT_CANVAS_WIDTH = 400
DEFAULT_CANVAS_HEIGHT = 400

# Higher priority = less likely to be moved during collision resolution
ELEMENT_PRIORITY: dict[str, int] = {
    "object": 100,
    "axis": 90,
    "force": 70,
    "label": 30,
    "annotation": 20,
}

# --- Validation ---

# Degrees
WEIGHT_ANGLE_TOLERANCE = 1.0
NORMAL_HORIZONTAL_TOLERANCE = 1.0
NORMAL_INCLINED_TOLERANCE = 5.0
FRICTION_TOLERANCE = 5.0

# Relative error allowed between N and W*cos(angle)
DECOMPOSITION_TOLERANCE = 0.05

SCHEMA_ERROR_PENALTY = 0.2
SCHEMA_WARNING_PENALTY = 0.05
PHYSICS_ERROR_PENALTY = 0.15
PHYSICS_WARNING_PENALTY = 0.05

# --- Step synchronization (milliseconds) ---

DEFAULT_ANIMATION_DURATION = 400
DEFAULT_AUTO_ADVANCE_DELAY = 2000

SCHEMA_VERSION = 1

# --- Physics calculators ---

GRAVITY = 9.8  # m/s^2
