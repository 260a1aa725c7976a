# dualflow/diagram/__init__.py
"""
Diagram snapshots: wire models and the store <-> document serializer
"""

from .models import (
    DeleteDiagramResponse, DiagramData, DiagramRecord, DiagramSummary,
    SaveDiagramRequest, SaveDiagramResponse,
)
from .serializer import (
    ImportResult, LoadResult, LoadWarning, MalformedDocumentError, MalformedImportError,
    deserialize, export_document, import_document, serialize, to_snapshot,
)

__all__ = [
    'DiagramData', 'DiagramRecord', 'DiagramSummary', 'SaveDiagramRequest', 'SaveDiagramResponse',
    'DeleteDiagramResponse', 'serialize', 'deserialize', 'to_snapshot', 'export_document',
    'import_document', 'LoadResult', 'ImportResult', 'LoadWarning', 'MalformedDocumentError',
    'MalformedImportError',
]
