"""
Canvas interaction - Turn tool and pointer events into document changes.

The controller owns no diagram data. Every click or drag becomes exactly one
DiagramManager call, so renderers only need to listen to the manager.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from .consistency import ConsistencyReport, check_diagram
from .diagram_manager import DiagramManager
from .models import ConnectionKind, DiagramDocument, ElementKind, default_size

logger = logging.getLogger(__name__)


class Tool(str, Enum):
    """Tools offered by the palette."""
    SELECT = "select"
    ACTOR = "actor"
    USE_CASE = "usecase"
    SYSTEM = "system"
    LIFELINE = "lifeline"
    MESSAGE = "message"
    ASSOCIATION = "association"
    INCLUDE = "include"
    EXTEND = "extend"
    GENERALIZATION = "generalization"


ELEMENT_TOOLS: dict[Tool, ElementKind] = {
    Tool.ACTOR: ElementKind.ACTOR,
    Tool.USE_CASE: ElementKind.USE_CASE,
    Tool.SYSTEM: ElementKind.SYSTEM,
    Tool.LIFELINE: ElementKind.LIFELINE,
    Tool.MESSAGE: ElementKind.MESSAGE,
}

CONNECTION_TOOLS: dict[Tool, ConnectionKind] = {
    Tool.ASSOCIATION: ConnectionKind.ASSOCIATION,
    Tool.INCLUDE: ConnectionKind.INCLUDE,
    Tool.EXTEND: ConnectionKind.EXTEND,
    Tool.GENERALIZATION: ConnectionKind.GENERALIZATION,
}


def placement_for(kind: ElementKind, x: float, y: float) -> tuple[float, float]:
    """Top-left corner that puts the element's center on (x, y)."""
    width, height = default_size(kind)
    return (x - width / 2, y - height / 2)


class CanvasController:
    """
    Maps palette tool + pointer position to DiagramManager calls.

    - Element tools: a click places a new element centered on the pointer
    - Select tool: a click selects what is under the pointer; pressing on
      the selected element and moving drags it
    - Connection tools: press on the source element, then on the target
    """

    def __init__(self, manager: DiagramManager, tool: Tool = Tool.SELECT):
        self._manager = manager
        self._tool = Tool(tool)
        self._drag_offset: Optional[tuple[float, float]] = None
        self._pending_source: Optional[str] = None

    @property
    def tool(self) -> Tool:
        return self._tool

    @property
    def is_dragging(self) -> bool:
        return self._drag_offset is not None

    @property
    def pending_source(self) -> Optional[str]:
        """Source element chosen by a connection tool, waiting for a target."""
        return self._pending_source

    def set_tool(self, tool: Tool):
        """Switch tools, dropping any drag or half-made connection."""
        self._tool = Tool(tool)
        self._drag_offset = None
        self._pending_source = None

    def click(self, x: float, y: float) -> Optional[str]:
        """Handle a click; returns the id of a newly placed element, if any."""
        if self._tool in ELEMENT_TOOLS:
            kind = ELEMENT_TOOLS[self._tool]
            left, top = placement_for(kind, x, y)
            return self._manager.add_element(kind, left, top)

        if self._tool == Tool.SELECT:
            hit = self._manager.element_at(x, y)
            self._manager.select(hit.id if hit else None)
        return None

    def pointer_down(self, x: float, y: float) -> Optional[str]:
        """Start a drag or pick a connection endpoint.

        Returns the id of a connection created by this press, if any.
        """
        if self._tool == Tool.SELECT:
            selected_id = self._manager.get_selection()
            hit = self._manager.element_at(x, y)
            if selected_id is not None and hit is not None and hit.id == selected_id:
                self._drag_offset = (x - hit.x, y - hit.y)
            return None

        if self._tool in CONNECTION_TOOLS:
            return self._pick_endpoint(x, y)

        return None

    def _pick_endpoint(self, x: float, y: float) -> Optional[str]:
        hit = self._manager.element_at(x, y)
        if hit is None:
            self._pending_source = None
            return None

        if self._pending_source is None:
            self._pending_source = hit.id
            return None

        source_id, self._pending_source = self._pending_source, None
        return self._manager.add_connection(CONNECTION_TOOLS[self._tool], source_id, hit.id)

    def pointer_move(self, x: float, y: float):
        """Move the dragged element so it keeps its offset from the pointer."""
        if self._drag_offset is None:
            return
        selected_id = self._manager.get_selection()
        if selected_id is None:
            self._drag_offset = None
            return
        offset_x, offset_y = self._drag_offset
        self._manager.move_element(selected_id, x - offset_x, y - offset_y)

    def pointer_up(self):
        self._drag_offset = None

    def delete_selection(self) -> Optional[str]:
        """Remove the selected element, if there is one."""
        selected_id = self._manager.get_selection()
        if selected_id is None:
            return None
        self._drag_offset = None
        return self._manager.remove_element(selected_id)


ReportCallback = Callable[[ConsistencyReport], None]


class LiveChecker:
    """Re-runs the consistency check after every data change."""

    def __init__(self, manager: DiagramManager):
        self._report: Optional[ConsistencyReport] = None
        self._callbacks: list[ReportCallback] = []
        manager.on_data_changed(self._on_data_changed)
        self._on_data_changed(manager.get_snapshot())

    @property
    def report(self) -> Optional[ConsistencyReport]:
        """Latest report."""
        return self._report

    def on_report(self, callback: ReportCallback):
        self._callbacks.append(callback)

    def _on_data_changed(self, snapshot: DiagramDocument):
        self._report = check_diagram(snapshot)
        logger.debug("live check: score %d, %d issues",
                     self._report.score, len(self._report.issues))
        for callback in self._callbacks:
            callback(self._report)
