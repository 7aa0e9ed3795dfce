"""
Diagram Manager - Core logic for the editable document and its history.

This module implements:
- Single document state management (one editing session per manager)
- O(1) element/connection lookups via index dictionaries
- Linear undo/redo history using snapshots
- Selection state kept outside of history
- Change callbacks for renderers, autosave and live checking
"""

import logging
from typing import Optional, Callable

from .config import load_settings
from .models import (
    DiagramDocument, DiagramType, Element, Connection, ElementKind, ConnectionKind,
    default_name, default_size, generate_element_id, generate_connection_id, utcnow,
)

logger = logging.getLogger(__name__)

DataChangedCallback = Callable[[DiagramDocument], None]
SelectionChangedCallback = Callable[[Optional[Element]], None]


class NotFoundError(LookupError):
    """An operation referenced an element or connection id that does not exist."""

    def __init__(self, what: str, item_id: Optional[str]):
        super().__init__(f"{what} not found: {item_id}")
        self.what = what
        self.item_id = item_id


class DiagramManager:
    """
    Manages a single diagram document's state, history and selection.

    Features:
    - O(1) element/connection lookups via index dictionaries
    - Snapshot-based undo/redo history
    - Data-changed and selection-changed callbacks, called in
      registration order

    The history system works via snapshots:
    - Each mutation stores a full JSON snapshot of the pre-mutation state
    - Undo restores the previous snapshot
    - Redo re-applies a snapshot from the future stack

    Structural problems (empty names, dangling connection endpoints, no
    elements at all) are accepted here and reported by the consistency
    checker instead.
    """

    def __init__(self, document: Optional[DiagramDocument] = None,
                 max_history: Optional[int] = None):
        if max_history is None:
            max_history = load_settings().max_history
        self._document = document.model_copy(deep=True) if document else DiagramDocument()
        self._history: list[dict] = []  # Past states (snapshots)
        self._future: list[dict] = []   # Future states (for redo)
        self._max_history = max_history
        self._selected_id: Optional[str] = None
        self._on_data_changed_callbacks: list[DataChangedCallback] = []
        self._on_selection_changed_callbacks: list[SelectionChangedCallback] = []

        # O(1) lookup indexes
        self._element_index: dict[str, Element] = {}               # element_id -> Element
        self._connection_index: dict[str, Connection] = {}         # connection_id -> Connection
        self._connections_by_element: dict[str, set[str]] = {}     # element_id -> connection_ids
        self._rebuild_indexes()

    # --- Index Management ---

    def _rebuild_indexes(self):
        """Rebuild all indexes from the current document."""
        self._element_index.clear()
        self._connection_index.clear()
        self._connections_by_element.clear()

        # First occurrence wins when a loaded document repeats an id
        for element in self._document.elements:
            self._element_index.setdefault(element.id, element)
        for connection in self._document.connections:
            self._index_connection(connection)

    def _index_connection(self, connection: Connection):
        """Add a connection to the indexes."""
        self._connection_index.setdefault(connection.id, connection)
        for endpoint in (connection.source_id, connection.target_id):
            self._connections_by_element.setdefault(endpoint, set()).add(connection.id)

    def _unindex_connection(self, connection: Connection):
        """Remove a connection from the indexes."""
        self._connection_index.pop(connection.id, None)
        for endpoint in (connection.source_id, connection.target_id):
            if endpoint in self._connections_by_element:
                self._connections_by_element[endpoint].discard(connection.id)

    def _require_element(self, element_id: str) -> Element:
        element = self._element_index.get(element_id)
        if element is None:
            raise NotFoundError("Element", element_id)
        return element

    def _require_connection(self, connection_id: str) -> Connection:
        connection = self._connection_index.get(connection_id)
        if connection is None:
            raise NotFoundError("Connection", connection_id)
        return connection

    # --- Properties ---

    @property
    def version(self) -> int:
        return self._document.metadata.version

    @property
    def can_undo(self) -> bool:
        """Check if undo is available."""
        return len(self._history) > 0

    @property
    def can_redo(self) -> bool:
        """Check if redo is available."""
        return len(self._future) > 0

    # --- Change Callbacks ---

    def on_data_changed(self, callback: DataChangedCallback):
        """Register a callback receiving a snapshot after every data change."""
        self._on_data_changed_callbacks.append(callback)

    def on_selection_changed(self, callback: SelectionChangedCallback):
        """Register a callback receiving the selected element (or None)."""
        self._on_selection_changed_callbacks.append(callback)

    def _notify_data_changed(self):
        """Notify all registered callbacks of a data change."""
        for callback in self._on_data_changed_callbacks:
            try:
                callback(self.get_snapshot())
            except Exception:
                # An observer failing must not undo a completed mutation
                logger.exception("data-changed callback %r failed", callback)

    def _notify_selection_changed(self):
        selected = self.get_element(self._selected_id) if self._selected_id else None
        for callback in self._on_selection_changed_callbacks:
            try:
                callback(selected.model_copy(deep=True) if selected else None)
            except Exception:
                logger.exception("selection-changed callback %r failed", callback)

    # --- History Management ---

    def _save_to_history(self):
        """Save current state to history before a mutation."""
        # Clear future (new action invalidates redo stack)
        self._future.clear()

        self._history.append(self._document.to_json_dict())

        # Trim history if too long
        if len(self._history) > self._max_history:
            self._history.pop(0)

    def _touch(self):
        """Bump version and modification time together."""
        metadata = self._document.metadata
        metadata.version += 1
        metadata.last_modified = utcnow()

    def _commit(self):
        """Finish a mutation: bump version, then notify observers."""
        self._touch()
        self._notify_data_changed()

    def _restore_from_snapshot(self, snapshot: dict):
        """Replace the live document with a snapshot dict."""
        self._document = DiagramDocument.from_json_dict(snapshot)
        self._rebuild_indexes()
        self._notify_data_changed()
        if self._selected_id is not None and self._selected_id not in self._element_index:
            self._selected_id = None
            self._notify_selection_changed()

    # --- Undo/Redo ---

    def undo(self) -> bool:
        """Undo the last action. Returns False when there is nothing to undo."""
        if not self.can_undo:
            return False

        self._future.append(self._document.to_json_dict())
        self._restore_from_snapshot(self._history.pop())
        logger.debug("undo -> version %d", self.version)
        return True

    def redo(self) -> bool:
        """Redo the last undone action. Returns False when there is nothing to redo."""
        if not self.can_redo:
            return False

        self._history.append(self._document.to_json_dict())
        self._restore_from_snapshot(self._future.pop())
        logger.debug("redo -> version %d", self.version)
        return True

    # --- Document Operations ---

    def get_snapshot(self) -> DiagramDocument:
        """Get an independent copy of the current document."""
        return self._document.model_copy(deep=True)

    def replace_document(self, document: DiagramDocument):
        """Load a whole document (e.g. opening a saved diagram).

        History and selection are cleared; the document's version is kept.
        """
        self._document = document.model_copy(deep=True)
        self._history.clear()
        self._future.clear()
        self._rebuild_indexes()
        had_selection = self._selected_id is not None
        self._selected_id = None
        self._notify_data_changed()
        if had_selection:
            self._notify_selection_changed()

    def update_diagram_info(self, title: Optional[str] = None,
                            diagram_type: Optional[DiagramType] = None):
        """Update diagram metadata (title, diagram type)."""
        self._save_to_history()

        if title is not None:
            self._document.metadata.title = title
        if diagram_type is not None:
            self._document.metadata.diagram_type = DiagramType(diagram_type)

        self._commit()

    # --- Element Operations (with O(1) lookups) ---

    def add_element(self, kind: ElementKind, x: float, y: float,
                    name: Optional[str] = None) -> str:
        """Add a new element with its kind's default name and size."""
        kind = ElementKind(kind)
        self._save_to_history()

        element_id = generate_element_id(kind)
        while element_id in self._element_index:
            element_id = generate_element_id(kind)

        width, height = default_size(kind)
        element = Element(
            id=element_id,
            kind=kind,
            name=default_name(kind) if name is None else name,
            x=max(0, x),
            y=max(0, y),
            width=width,
            height=height,
        )
        self._document.elements.append(element)
        self._element_index[element.id] = element
        self._commit()
        return element.id

    def remove_element(self, element_id: str) -> str:
        """Delete an element and all connections touching it."""
        self._require_element(element_id)

        self._save_to_history()

        self._document.elements = [e for e in self._document.elements if e.id != element_id]
        self._element_index.pop(element_id, None)

        # Remove all connections with this element as an endpoint
        self._document.connections = [
            c for c in self._document.connections if not c.touches(element_id)
        ]
        for connection_id in self._connections_by_element.pop(element_id, set()):
            connection = self._connection_index.get(connection_id)
            if connection:
                self._unindex_connection(connection)

        self._commit()

        if self._selected_id == element_id:
            self._selected_id = None
            self._notify_selection_changed()
        return element_id

    def move_element(self, element_id: str, x: float, y: float) -> str:
        """Set an element's position, clamped to the positive quadrant."""
        element = self._require_element(element_id)

        self._save_to_history()
        element.x = max(0, x)
        element.y = max(0, y)
        self._commit()
        return element_id

    def rename_element(self, element_id: str, name: str) -> str:
        """Rename an element. Empty names are allowed here."""
        element = self._require_element(element_id)

        self._save_to_history()
        element.name = name
        self._commit()
        return element_id

    def update_element(self, element_id: str, description: Optional[str] = None,
                       width: Optional[float] = None,
                       height: Optional[float] = None) -> str:
        """Update an element's properties (partial update)."""
        element = self._require_element(element_id)

        self._save_to_history()
        if description is not None:
            element.description = description
        if width is not None:
            element.width = width
        if height is not None:
            element.height = height
        self._commit()
        return element_id

    def get_element(self, element_id: str) -> Optional[Element]:
        """Get a copy of an element by ID (O(1) lookup)."""
        element = self._element_index.get(element_id)
        return element.model_copy(deep=True) if element else None

    def get_elements_by_kind(self, kind: ElementKind) -> list[Element]:
        """Get copies of all elements of one kind, in z-order."""
        kind = ElementKind(kind)
        return [e.model_copy(deep=True) for e in self._document.elements if e.kind == kind]

    def element_at(self, x: float, y: float) -> Optional[Element]:
        """Get the topmost element whose bounds contain the point."""
        for element in reversed(self._document.elements):
            if element.contains(x, y):
                return element.model_copy(deep=True)
        return None

    # --- Connection Operations (with O(1) lookups) ---

    def add_connection(self, kind: ConnectionKind, source_id: str, target_id: str,
                       label: Optional[str] = None) -> str:
        """
        Add a new connection between two elements.

        Endpoints are not checked: the editor may create a connection before
        both ends exist. Dangling endpoints are reported by the checker.
        """
        kind = ConnectionKind(kind)
        self._save_to_history()

        connection_id = generate_connection_id(kind)
        while connection_id in self._connection_index:
            connection_id = generate_connection_id(kind)

        connection = Connection(
            id=connection_id,
            kind=kind,
            source_id=source_id,
            target_id=target_id,
            label=label,
        )
        self._document.connections.append(connection)
        self._index_connection(connection)
        self._commit()
        return connection.id

    def update_connection(self, connection_id: str, kind: Optional[ConnectionKind] = None,
                          label: Optional[str] = None) -> str:
        """Update an existing connection's kind or label."""
        connection = self._require_connection(connection_id)

        self._save_to_history()
        if kind is not None:
            connection.kind = ConnectionKind(kind)
        if label is not None:
            connection.label = label
        self._commit()
        return connection_id

    def remove_connection(self, connection_id: str) -> str:
        """Delete a connection."""
        connection = self._require_connection(connection_id)

        self._save_to_history()
        self._document.connections = [
            c for c in self._document.connections if c.id != connection_id
        ]
        self._unindex_connection(connection)
        self._commit()
        return connection_id

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        """Get a copy of a connection by ID (O(1) lookup)."""
        connection = self._connection_index.get(connection_id)
        return connection.model_copy(deep=True) if connection else None

    def get_connections_for_element(self, element_id: str) -> list[Connection]:
        """Get copies of all connections touching an element (O(1) index lookup)."""
        if element_id not in self._connections_by_element:
            return []
        return [
            self._connection_index[cid].model_copy(deep=True)
            for cid in sorted(self._connections_by_element[element_id])
            if cid in self._connection_index
        ]

    # --- Selection ---

    def select(self, element_id: Optional[str]):
        """Select an element (or clear the selection with None).

        Selection is not part of the document: it never touches history,
        never bumps the version and only fires selection-changed.
        """
        if element_id is not None:
            self._require_element(element_id)
        self._selected_id = element_id
        self._notify_selection_changed()

    def get_selection(self) -> Optional[str]:
        """Get the selected element ID."""
        return self._selected_id

    def get_state(self) -> dict:
        """Get the full current state for callers that want one payload."""
        return {
            "document": self._document.to_json_dict(),
            "selection": self._selected_id,
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
        }
