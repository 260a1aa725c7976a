"""
Diagram Persistence Data Models

Request/response documents exchanged with the diagram store. Field names are
snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model serialized with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self, **kwargs: Any) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, **kwargs)


class DiagramData(WireModel):
    """Both graphs and the relation index, without name or identity."""
    model_config = ConfigDict(extra="allow")

    left_nodes: List[Dict[str, Any]] = Field(default_factory=list)
    right_nodes: List[Dict[str, Any]] = Field(default_factory=list)
    left_edges: List[Dict[str, Any]] = Field(default_factory=list)
    right_edges: List[Dict[str, Any]] = Field(default_factory=list)
    node_relations: Dict[str, List[str]] = Field(default_factory=dict)


class DiagramRecord(WireModel):
    """A stored diagram as returned by read."""
    id: str
    name: str
    data: Dict[str, Any]
    created_at: datetime
    updated_at: datetime


class DiagramSummary(WireModel):
    """List entry; the data payload is omitted."""
    id: str
    name: str
    updated_at: datetime


class SaveDiagramRequest(WireModel):
    """Create (no id) or wholesale update (with id)."""
    id: Optional[str] = None
    name: str = Field(min_length=1)
    data: DiagramData


class SaveDiagramResponse(WireModel):
    id: str


class DeleteDiagramResponse(WireModel):
    success: bool = True
