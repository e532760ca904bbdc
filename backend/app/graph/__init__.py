"""Graph model, visual scales and force-directed layout."""

from .model import NEGATIVE, POSITIVE, GraphModel, GraphValidationError, Link, Node
from .scales import LinearScale, OrdinalScale, PowerScale, ScaleEngine
from .simulation import ForceSimulation

__all__ = [
    "ForceSimulation",
    "GraphModel",
    "GraphValidationError",
    "LinearScale",
    "Link",
    "NEGATIVE",
    "Node",
    "OrdinalScale",
    "POSITIVE",
    "PowerScale",
    "ScaleEngine",
]
