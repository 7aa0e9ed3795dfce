"""
ucdiagram - Use case diagram document model and consistency checker.

This package provides the editable diagram document with undo/redo history,
the rule-based consistency checker that scores a diagram, and the thin
canvas adapter that turns tool/pointer events into document changes.
"""

from .models import (
    # Enums
    ElementKind,
    ConnectionKind,
    DiagramType,
    # Core models
    Element,
    Connection,
    DiagramMetadata,
    DiagramDocument,
    default_name,
    default_size,
)

from .diagram_manager import DiagramManager, NotFoundError
from .consistency import (
    check_diagram,
    ConsistencyIssue,
    ConsistencyReport,
    IssueKind,
    IssueSeverity,
    DEFAULT_RULES,
)
from .interaction import CanvasController, LiveChecker, Tool
from .persistence import (
    Autosaver,
    InMemoryDiagramStore,
    JsonFileDiagramStore,
    load_document,
    save_document,
)
from .config import Settings, load_settings

__all__ = [
    # Enums
    "ElementKind",
    "ConnectionKind",
    "DiagramType",
    # Models
    "Element",
    "Connection",
    "DiagramMetadata",
    "DiagramDocument",
    "default_name",
    "default_size",
    # Document model
    "DiagramManager",
    "NotFoundError",
    # Consistency
    "check_diagram",
    "ConsistencyIssue",
    "ConsistencyReport",
    "IssueKind",
    "IssueSeverity",
    "DEFAULT_RULES",
    # Interaction
    "CanvasController",
    "LiveChecker",
    "Tool",
    # Persistence
    "Autosaver",
    "InMemoryDiagramStore",
    "JsonFileDiagramStore",
    "load_document",
    "save_document",
    # Config
    "Settings",
    "load_settings",
]
