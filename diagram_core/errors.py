"""
Exceptions raised by diagram_core.

Validation problems are never raised; they are reported through
ValidationResult. These exceptions cover inputs that cannot be processed at all.
"""


class DiagramCoreError(Exception):
    """Base class for all diagram_core errors."""


class DiagramParseError(DiagramCoreError):
    """A payload could not be loaded into a StructuredDiagram."""

    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(message)
        self.details = details or []


class LayoutError(DiagramCoreError):
    """A diagram has nothing the layout engine can position."""
