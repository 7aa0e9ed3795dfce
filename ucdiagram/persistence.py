"""
Persistence collaborators - JSON files, diagram stores and autosave.

The document model never waits on these. Autosave runs as a data-changed
callback and keeps any storage failure to itself, so the in-memory document
is never rolled back or corrupted by a failed save.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .config import load_settings
from .diagram_manager import DiagramManager
from .models import DiagramDocument

logger = logging.getLogger(__name__)


def save_document(document: DiagramDocument, file_path: str | Path) -> Path:
    """Write a document as JSON, creating parent directories."""
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(document.to_json_dict(), f, indent=2)
    return path


def load_document(file_path: str | Path) -> DiagramDocument:
    """Read a document from a JSON file."""
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Diagram file not found: {path}")

    with open(path, 'r') as f:
        data = json.load(f)

    return DiagramDocument.from_json_dict(data)


class DiagramStore(ABC):
    """Keyed storage of serialized diagram content."""

    @abstractmethod
    def save(self, diagram_id: str, content: dict):
        ...

    @abstractmethod
    def load(self, diagram_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def list_ids(self) -> list[str]:
        ...


class InMemoryDiagramStore(DiagramStore):
    """Dictionary-backed store for tests and single-process use."""

    def __init__(self):
        self._content: dict[str, str] = {}

    def save(self, diagram_id: str, content: dict):
        # Stored as text so later edits to `content` can't leak in
        self._content[diagram_id] = json.dumps(content)

    def load(self, diagram_id: str) -> Optional[dict]:
        raw = self._content.get(diagram_id)
        return json.loads(raw) if raw is not None else None

    def list_ids(self) -> list[str]:
        return sorted(self._content)


class JsonFileDiagramStore(DiagramStore):
    """One `<diagram_id>.json` file per diagram under a directory.

    Without an explicit directory, UCDIAGRAM_DIAGRAMS_DIR (default ~/diagrams)
    is used.
    """

    def __init__(self, directory: Optional[str | Path] = None):
        if directory is None:
            directory = load_settings().diagrams_dir
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, diagram_id: str) -> Path:
        if not diagram_id or "/" in diagram_id or "\\" in diagram_id or diagram_id.startswith("."):
            raise ValueError(f"Invalid diagram id: {diagram_id!r}")
        return self._directory / f"{diagram_id}.json"

    def save(self, diagram_id: str, content: dict):
        path = self._path(diagram_id)
        self._directory.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(content, f, indent=2)

    def load(self, diagram_id: str) -> Optional[dict]:
        path = self._path(diagram_id)
        if not path.exists():
            return None
        with open(path, 'r') as f:
            return json.load(f)

    def list_ids(self) -> list[str]:
        if not self._directory.exists():
            return []
        return sorted(p.stem for p in self._directory.glob("*.json"))


class Autosaver:
    """
    Persists a manager's document to a store on every data change.

    Save failures are logged and counted; they never propagate into the
    document model.
    """

    def __init__(self, store: DiagramStore, diagram_id: str):
        self._store = store
        self._diagram_id = diagram_id
        self.saves = 0
        self.failures = 0
        self.last_error: Optional[Exception] = None

    def attach(self, manager: DiagramManager) -> "Autosaver":
        manager.on_data_changed(self.save)
        return self

    def save(self, snapshot: DiagramDocument):
        try:
            self._store.save(self._diagram_id, snapshot.to_json_dict())
        except Exception as e:
            self.failures += 1
            self.last_error = e
            logger.warning("autosave of %s failed: %s", self._diagram_id, e)
            return
        self.saves += 1
        logger.debug("autosaved %s at version %d", self._diagram_id, snapshot.metadata.version)
