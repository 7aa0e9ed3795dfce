"""
Core data models for use-case diagrams.

These models define the canonical schema for a diagram document:
- Elements (actors, use cases, system boundaries, lifelines, messages)
- Connections between elements (using sourceId/targetId)
- Metadata for title, diagram type, version and modification time

Field Naming Convention:
- JSON serialization uses camelCase (`sourceId`, `diagramType`, `lastModified`)
- Python attributes are snake_case and accepted on input as well
- For backward compatibility, documents saved by the old web editor
  (`type`, `source`/`target`) are accepted on input and converted
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field, model_validator
import uuid


class ElementKind(str, Enum):
    """Kinds of nodes that can be placed on the canvas."""
    ACTOR = "actor"
    USE_CASE = "usecase"
    SYSTEM = "system"
    LIFELINE = "lifeline"
    MESSAGE = "message"


class ConnectionKind(str, Enum):
    """Kinds of edges between elements."""
    ASSOCIATION = "association"
    INCLUDE = "include"
    EXTEND = "extend"
    GENERALIZATION = "generalization"
    MESSAGE = "message"


class DiagramType(str, Enum):
    """The kind of diagram a document holds."""
    USE_CASE = "usecase"
    SEQUENCE_SSD = "ssd"
    DESCRIPTION = "description"


DEFAULT_NAMES: dict[ElementKind, str] = {
    ElementKind.ACTOR: "Actor",
    ElementKind.USE_CASE: "Use Case",
    ElementKind.SYSTEM: "System",
    ElementKind.LIFELINE: "Lifeline",
    ElementKind.MESSAGE: "Message",
}

# (width, height) per kind
DEFAULT_SIZES: dict[ElementKind, tuple[float, float]] = {
    ElementKind.ACTOR: (60, 80),
    ElementKind.USE_CASE: (120, 60),
    ElementKind.SYSTEM: (100, 60),
    ElementKind.LIFELINE: (80, 200),
    ElementKind.MESSAGE: (100, 20),
}


def default_name(kind: ElementKind) -> str:
    """Get the name a freshly placed element of this kind receives."""
    return DEFAULT_NAMES[ElementKind(kind)]


def default_size(kind: ElementKind) -> tuple[float, float]:
    """Get the (width, height) a freshly placed element of this kind receives."""
    return DEFAULT_SIZES[ElementKind(kind)]


def generate_element_id(kind: ElementKind) -> str:
    """Generate a unique element ID."""
    return f"{ElementKind(kind).value}_{uuid.uuid4().hex[:12]}"


def generate_connection_id(kind: ConnectionKind) -> str:
    """Generate a unique connection ID."""
    return f"{ConnectionKind(kind).value}_{uuid.uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _rename_legacy(data: Any, renames: dict[str, str]) -> Any:
    """Copy `data` with legacy keys renamed, leaving the caller's dict alone."""
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for old, new in renames.items():
        if old in data and new not in data:
            data[new] = data.pop(old)
    return data


class Element(BaseModel):
    """A node in the diagram."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    kind: ElementKind
    name: str = ""
    description: Optional[str] = None
    x: float = 0
    y: float = 0
    # None when a loaded document never recorded a size
    width: Optional[float] = None
    height: Optional[float] = None

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert the legacy 'type' field to 'kind'."""
        return _rename_legacy(data, {"type": "kind"})

    def size(self) -> tuple[float, float]:
        """Get (width, height), falling back to the kind defaults when unset."""
        default_w, default_h = default_size(self.kind)
        return (self.width or default_w, self.height or default_h)

    def center(self) -> tuple[float, float]:
        """Get the center point of the element."""
        width, height = self.size()
        return (self.x + width / 2, self.y + height / 2)

    def bounds(self) -> tuple[float, float, float, float]:
        """Get the bounding box (x, y, right, bottom)."""
        width, height = self.size()
        return (self.x, self.y, self.x + width, self.y + height)

    def contains(self, x: float, y: float) -> bool:
        left, top, right, bottom = self.bounds()
        return left <= x <= right and top <= y <= bottom


class Connection(BaseModel):
    """
    An edge connecting two elements.

    Uses `sourceId` and `targetId` on the wire. Accepts the legacy
    `source`/`target` keys on input. Endpoints are not required to exist.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    kind: ConnectionKind
    source_id: str = Field(alias="sourceId")
    target_id: str = Field(alias="targetId")
    label: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'type'/'source'/'target' fields."""
        return _rename_legacy(data, {
            "type": "kind",
            "source": "sourceId",
            "target": "targetId",
        })

    def touches(self, element_id: str) -> bool:
        """True if the element is either endpoint of this connection."""
        return self.source_id == element_id or self.target_id == element_id


class DiagramMetadata(BaseModel):
    """Metadata about the diagram."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = "Untitled Diagram"
    diagram_type: DiagramType = Field(default=DiagramType.USE_CASE, alias="diagramType")
    version: int = 1
    last_modified: datetime = Field(default_factory=utcnow, alias="lastModified")

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert the legacy 'type' field to 'diagramType'."""
        return _rename_legacy(data, {"type": "diagramType"})


class DiagramDocument(BaseModel):
    """
    The complete diagram structure.
    This is what gets saved to/loaded from JSON and stored in history.
    """
    model_config = ConfigDict(populate_by_name=True)

    elements: list[Element] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)
    metadata: DiagramMetadata = Field(default_factory=DiagramMetadata)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with wire field names."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_json_dict(cls, data: dict) -> "DiagramDocument":
        """Create a document from a JSON dict (handles legacy formats)."""
        return cls.model_validate(data)

    def get_element(self, element_id: str) -> Optional[Element]:
        """Get an element by ID (O(n) - use DiagramManager for indexed access)."""
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        """Get a connection by ID (O(n) - use DiagramManager for indexed access)."""
        for connection in self.connections:
            if connection.id == connection_id:
                return connection
        return None
