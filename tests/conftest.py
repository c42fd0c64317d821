"""Shared fixtures for diagram_core tests."""

from __future__ import annotations

import pytest

from diagram_core import ManualScheduler, StepConfig, StructuredDiagram, parse_diagram


@pytest.fixture
def fbd_payload() -> dict:
    """Producer JSON for a block resting on a horizontal surface."""
    return {
        "type": "free_body_diagram",
        "data": {
            "title": "Block at rest",
            "object": {
                "id": "object",
                "type": "block",
                "position": {"x": 200, "y": 200},
                "size": 40,
                "mass": 5,
            },
            "forces": [
                {"id": "weight", "name": "Weight", "type": "weight", "magnitude": 50, "angle": -90, "symbol": "W"},
                {"id": "normal", "name": "Normal", "type": "normal", "magnitude": 50, "angle": 90, "symbol": "N"},
            ],
            "surface": {"type": "horizontal"},
        },
        "steps": [
            {
                "stepNumber": 1,
                "title": "Show both forces",
                "visibleElements": ["object", "weight", "normal"],
                "highlightElements": ["weight", "normal"],
            },
        ],
    }


@pytest.fixture
def fbd(fbd_payload: dict) -> StructuredDiagram:
    return parse_diagram(fbd_payload)


@pytest.fixture
def inclined_payload() -> dict:
    """Block on a 30° incline with weight, normal and friction."""
    return {
        "type": "inclined_plane",
        "data": {
            "angle": 30,
            "object": {"position": {"x": 200, "y": 200}, "size": 40},
            "forces": [
                {"id": "weight", "name": "Weight", "type": "weight", "magnitude": 100, "angle": -90},
                {"id": "normal", "name": "Normal", "type": "normal", "magnitude": 86.6, "angle": 60},
                {"id": "friction", "name": "Friction", "type": "friction", "magnitude": 20, "angle": 150},
            ],
            "showDecomposition": True,
        },
        "steps": [],
    }


@pytest.fixture
def inclined(inclined_payload: dict) -> StructuredDiagram:
    return parse_diagram(inclined_payload)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def five_steps() -> list[StepConfig]:
    return [StepConfig(id=f"step-{i}", label=f"Step {i + 1}") for i in range(5)]
