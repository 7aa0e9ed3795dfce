"""Tests for CanvasController and LiveChecker."""

import pytest

from ucdiagram.consistency import IssueKind
from ucdiagram.interaction import CanvasController, LiveChecker, Tool, placement_for
from ucdiagram.models import ConnectionKind, ElementKind


@pytest.fixture
def canvas(manager):
    return CanvasController(manager)


def _place(canvas, tool, x, y):
    canvas.set_tool(tool)
    return canvas.click(x, y)


# ── Tests: Placing elements ───────────────────────────────────────────────


@pytest.mark.parametrize("tool, expected", [
    (Tool.ACTOR, (70, 60)),
    (Tool.USE_CASE, (40, 70)),
    (Tool.SYSTEM, (50, 70)),
    (Tool.LIFELINE, (60, 0)),
    (Tool.MESSAGE, (50, 90)),
])
def test_click_centers_new_element_on_pointer(manager, canvas, tool, expected):
    element_id = _place(canvas, tool, 100, 100)

    element = manager.get_element(element_id)
    assert (element.x, element.y) == expected
    assert element.center() == (100, 100)


def test_actor_offset_matches_half_size():
    assert placement_for(ElementKind.ACTOR, 100, 100) == (70, 60)


def test_select_click_selects_topmost_or_clears(manager, canvas):
    bottom = _place(canvas, Tool.USE_CASE, 100, 100)
    top = _place(canvas, Tool.ACTOR, 100, 100)
    canvas.set_tool(Tool.SELECT)

    assert canvas.click(100, 100) is None
    assert manager.get_selection() == top

    canvas.click(45, 75)
    assert manager.get_selection() == bottom

    canvas.click(900, 900)
    assert manager.get_selection() is None


# ── Tests: Dragging ───────────────────────────────────────────────────────


def test_drag_moves_selected_element_keeping_offset(manager, canvas):
    actor = _place(canvas, Tool.ACTOR, 100, 100)  # top-left (70, 60)
    canvas.set_tool(Tool.SELECT)
    canvas.click(100, 100)
    version = manager.version

    canvas.pointer_down(80, 70)
    assert canvas.is_dragging
    canvas.pointer_move(180, 120)
    canvas.pointer_move(200, 150)
    canvas.pointer_up()
    canvas.pointer_move(400, 400)

    element = manager.get_element(actor)
    assert (element.x, element.y) == (190, 140)
    assert not canvas.is_dragging
    assert manager.version == version + 2
    assert len(manager.get_snapshot().elements) == 1


def test_drag_requires_pressing_the_selected_element(manager, canvas):
    actor = _place(canvas, Tool.ACTOR, 100, 100)
    canvas.set_tool(Tool.SELECT)

    canvas.pointer_down(100, 100)
    canvas.pointer_move(300, 300)

    assert not canvas.is_dragging
    assert (manager.get_element(actor).x, manager.get_element(actor).y) == (70, 60)


def test_drag_only_with_select_tool(manager, canvas):
    actor = _place(canvas, Tool.ACTOR, 100, 100)
    manager.select(actor)

    canvas.pointer_down(100, 100)
    canvas.pointer_move(300, 300)

    assert not canvas.is_dragging
    assert len(manager.get_snapshot().elements) == 1
    assert manager.get_element(actor).x == 70


def test_drag_clamps_at_canvas_origin(manager, canvas):
    actor = _place(canvas, Tool.ACTOR, 100, 100)
    canvas.set_tool(Tool.SELECT)
    canvas.click(100, 100)

    canvas.pointer_down(100, 100)
    canvas.pointer_move(0, 0)

    assert (manager.get_element(actor).x, manager.get_element(actor).y) == (0, 0)


# ── Tests: Connecting ─────────────────────────────────────────────────────


def test_connection_tool_links_two_elements(manager, canvas):
    actor = _place(canvas, Tool.ACTOR, 100, 100)
    use_case = _place(canvas, Tool.USE_CASE, 400, 100)
    canvas.set_tool(Tool.ASSOCIATION)

    assert canvas.pointer_down(100, 100) is None
    assert canvas.pending_source == actor
    connection_id = canvas.pointer_down(400, 100)

    connection = manager.get_connection(connection_id)
    assert connection.kind == ConnectionKind.ASSOCIATION
    assert (connection.source_id, connection.target_id) == (actor, use_case)
    assert canvas.pending_source is None


def test_pressing_empty_canvas_cancels_connection(manager, canvas):
    _place(canvas, Tool.USE_CASE, 100, 100)
    _place(canvas, Tool.USE_CASE, 400, 100)
    canvas.set_tool(Tool.INCLUDE)

    canvas.pointer_down(100, 100)
    canvas.pointer_down(900, 900)
    assert canvas.pending_source is None

    canvas.pointer_down(400, 100)
    canvas.set_tool(Tool.EXTEND)
    assert canvas.pending_source is None
    assert manager.get_snapshot().connections == []


# ── Tests: Deleting ───────────────────────────────────────────────────────


def test_delete_selection(manager, canvas):
    actor = _place(canvas, Tool.ACTOR, 100, 100)
    use_case = _place(canvas, Tool.USE_CASE, 400, 100)
    manager.add_connection(ConnectionKind.ASSOCIATION, actor, use_case)
    canvas.set_tool(Tool.SELECT)

    assert canvas.delete_selection() is None

    canvas.click(100, 100)
    assert canvas.delete_selection() == actor
    snapshot = manager.get_snapshot()
    assert [e.id for e in snapshot.elements] == [use_case]
    assert snapshot.connections == []


# ── Tests: Live checking ──────────────────────────────────────────────────


def test_live_checker_follows_data_changes(manager, canvas):
    checker = LiveChecker(manager)
    scores = []
    checker.on_report(lambda report: scores.append(report.score))

    assert checker.report.score == 60

    actor = _place(canvas, Tool.ACTOR, 100, 100)
    use_case = _place(canvas, Tool.USE_CASE, 400, 100)
    manager.rename_element(actor, "Customer")
    manager.rename_element(use_case, "Register")
    manager.add_connection(ConnectionKind.ASSOCIATION, actor, use_case)

    assert checker.report.score == 100
    assert len(scores) == 5

    manager.undo()
    kinds = [i.kind for i in checker.report.issues]
    assert IssueKind.ORPHANED_ELEMENT in kinds
