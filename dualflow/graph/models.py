# dualflow/graph/models.py
"""
Node and edge types for the process (left) and task (right) flows
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

EDGE_STYLE = "smoothstep"


class Side(str, Enum):
    """The two independently addressable graphs"""
    LEFT = "left"
    RIGHT = "right"

    @property
    def prefix(self) -> str:
        return "l" if self is Side.LEFT else "r"

    @property
    def other(self) -> "Side":
        return Side.RIGHT if self is Side.LEFT else Side.LEFT

    @property
    def default_label(self) -> str:
        return "Process" if self is Side.LEFT else "Task"

    @classmethod
    def parse(cls, value) -> "Side":
        """Accept a Side, its value, or the legacy `is_left` boolean"""
        if isinstance(value, Side):
            return value
        if isinstance(value, bool):
            return cls.LEFT if value else cls.RIGHT
        return cls(str(value).lower())


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Dimensions:
    width: float
    height: float


@dataclass
class Node:
    """A node on one side; `selected` and `highlighted` are session-only flags"""
    id: str
    position: Position = field(default_factory=Position)
    label: str = ""
    image: Optional[str] = None
    size_hint: Optional[Dimensions] = None
    selected: bool = field(default=False, compare=False)
    highlighted: bool = field(default=False, compare=False)

    @property
    def has_inline_image(self) -> bool:
        return bool(self.image) and self.image.startswith("data:")


def edge_id_for(source_id: str, target_id: str) -> str:
    """Deterministic edge id for an ordered node pair"""
    return f"e{source_id}-{target_id}"


@dataclass
class Edge:
    """Directed edge between two nodes of the same side"""
    source: str
    target: str
    id: str = ""
    style: str = EDGE_STYLE
    animated: bool = True
    selected: bool = field(default=False, compare=False)

    def __post_init__(self):
        if not self.id:
            self.id = edge_id_for(self.source, self.target)

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id
