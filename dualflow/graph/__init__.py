# dualflow/graph/__init__.py
"""
Dual graph data model: process flow (left), task flow (right) and the
relation index linking them
"""

from .changes import (
    EdgeAdd, EdgeRemove, EdgeSelect,
    NodeAdd, NodeDimensions, NodePosition, NodeRemove, NodeSelect,
)
from .errors import CrossSideConnectionError, GraphStoreError
from .highlight import apply_highlight, project
from .models import Dimensions, Edge, Node, Position, Side, edge_id_for
from .relations import RelationIndex
from .store import GraphStore, sample_store

__all__ = [
    'GraphStore', 'sample_store', 'RelationIndex', 'Side', 'Node', 'Edge', 'Position', 'Dimensions',
    'edge_id_for', 'project', 'apply_highlight', 'GraphStoreError', 'CrossSideConnectionError',
    'NodeAdd', 'NodeRemove', 'NodePosition', 'NodeDimensions', 'NodeSelect',
    'EdgeAdd', 'EdgeRemove', 'EdgeSelect',
]
