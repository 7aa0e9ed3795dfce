import pytest

from ucdiagram.diagram_manager import DiagramManager
from ucdiagram.models import Connection, ConnectionKind, DiagramDocument, Element, ElementKind


def make_element(element_id, kind, name, x=0, y=0, width=None, height=None):
    return Element(id=element_id, kind=kind, name=name, x=x, y=y, width=width, height=height)


def make_connection(connection_id, source_id, target_id, kind=ConnectionKind.ASSOCIATION):
    return Connection(id=connection_id, kind=kind, source_id=source_id, target_id=target_id)


def make_document(elements=(), connections=()):
    return DiagramDocument(elements=list(elements), connections=list(connections))


class Recorder:
    """Collects every payload passed to a callback."""

    def __init__(self):
        self.calls = []

    def __call__(self, payload):
        self.calls.append(payload)


@pytest.fixture
def manager():
    return DiagramManager(max_history=100)


@pytest.fixture
def data_events(manager):
    recorder = Recorder()
    manager.on_data_changed(recorder)
    return recorder


@pytest.fixture
def selection_events(manager):
    recorder = Recorder()
    manager.on_selection_changed(recorder)
    return recorder


@pytest.fixture
def valid_document():
    """One named actor associated with one verb-named use case, well apart."""
    return make_document(
        elements=[
            make_element("a1", ElementKind.ACTOR, "Customer", x=0, y=0, width=60, height=80),
            make_element("u1", ElementKind.USE_CASE, "Register", x=300, y=0, width=120, height=60),
        ],
        connections=[make_connection("c1", "a1", "u1")],
    )
