from .base import (
    DiagramGateway,
    DiagramNotFoundError,
    GatewayUnavailableError,
    PersistenceError,
)
from .factory import make_diagram_gateway
from .memory import MemoryDiagramGateway

__all__ = [
    "DiagramGateway",
    "DiagramNotFoundError",
    "GatewayUnavailableError",
    "PersistenceError",
    "MemoryDiagramGateway",
    "make_diagram_gateway",
]
