"""Compatibility bridge exposing the FastAPI app instance for tests and tooling."""
from dualflow.app import app, FlowApp

__all__ = ["app", "FlowApp"]
