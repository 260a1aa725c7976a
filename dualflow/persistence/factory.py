from __future__ import annotations

import importlib
from typing import Dict, Optional, Type

from ..config import DualFlowConfig
from .base import DiagramGateway

_BACKEND_PATHS: Dict[str, str] = {
    "memory": "dualflow.persistence.memory:MemoryDiagramGateway",
    "mongo": "dualflow.persistence.mongo:MongoDiagramGateway",
    "mongodb": "dualflow.persistence.mongo:MongoDiagramGateway",
    "http": "dualflow.persistence.http:HttpDiagramGateway",
}

_BACKEND_CACHE: Dict[str, Type[DiagramGateway]] = {}


def make_diagram_gateway(config: Optional[DualFlowConfig] = None, *, backend: Optional[str] = None) -> DiagramGateway:
    """Return a new gateway for the configured (or overridden) backend."""
    config = config or DualFlowConfig.from_env()
    choice = _resolve_backend_choice(backend or config.backend)
    gateway_cls = _load_backend_class(choice)
    if gateway_cls.backend_name == "memory":
        return gateway_cls()
    return gateway_cls(config=config)


def _resolve_backend_choice(candidate: str) -> str:
    candidate = (candidate or "").strip().lower()
    if candidate in {"inmemory", "mock", "test"}:
        candidate = "memory"
    if candidate not in _BACKEND_PATHS:
        raise ValueError(f"Unsupported diagram backend: {candidate}")
    return candidate


def _load_backend_class(name: str) -> Type[DiagramGateway]:
    if name in _BACKEND_CACHE:
        return _BACKEND_CACHE[name]
    target = _BACKEND_PATHS[name]
    module_name, class_name = target.split(":", 1)
    module = importlib.import_module(module_name)
    backend_cls = getattr(module, class_name)
    if not issubclass(backend_cls, DiagramGateway):
        raise TypeError(f"Backend {class_name} does not implement DiagramGateway")
    _BACKEND_CACHE[name] = backend_cls
    return backend_cls


__all__ = ["make_diagram_gateway"]
