#!/usr/bin/env python3
"""ucdiagram CLI - edit diagram JSON files and run the consistency check."""

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from .config import load_settings
from .consistency import check_diagram
from .diagram_manager import DiagramManager, NotFoundError
from .models import ConnectionKind, DiagramDocument, DiagramMetadata, DiagramType, ElementKind
from .persistence import load_document, save_document

logger = logging.getLogger(__name__)


def _json_out(data, code=0):
    print(json.dumps(data))
    sys.exit(code)


def _error_out(message):
    _json_out({"status": "error", "error": message}, code=2)


def _open(args) -> DiagramManager:
    document = load_document(args.file_path)
    manager = DiagramManager(document, max_history=args.settings.max_history)
    logger.info("opened %s (version %d)", args.file_path, manager.version)
    return manager


def _save(manager, args):
    save_document(manager.get_snapshot(), args.file_path)


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_new(args):
    document = DiagramDocument(metadata=DiagramMetadata(
        title=args.title, diagram_type=DiagramType(args.diagram_type)))
    path = save_document(document, args.file_path)
    _json_out({"status": "created", "file_path": str(path), "diagram": document.to_json_dict()})


def cmd_add_element(args):
    manager = _open(args)
    element_id = manager.add_element(ElementKind(args.kind), args.x, args.y, name=args.name)
    _save(manager, args)
    _json_out({"status": "ok", "id": element_id, "version": manager.version})


def cmd_remove_element(args):
    manager = _open(args)
    manager.remove_element(args.element_id)
    _save(manager, args)
    _json_out({"status": "ok", "id": args.element_id, "version": manager.version})


def cmd_add_connection(args):
    manager = _open(args)
    connection_id = manager.add_connection(
        ConnectionKind(args.kind), args.source, args.target, label=args.label)
    _save(manager, args)
    _json_out({"status": "ok", "id": connection_id, "version": manager.version})


def cmd_check(args):
    document = load_document(args.file_path)
    report = check_diagram(document)
    threshold = args.min_score if args.min_score is not None else args.settings.pass_score
    passed = report.passes(threshold)
    result = report.to_dict()
    result["threshold"] = threshold
    result["passed"] = passed
    _json_out(result, code=0 if passed else 1)


# ── Main ─────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ucdiagram", description="Use case diagram tool CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("new")
    p.add_argument("--file-path", required=True)
    p.add_argument("--title", default="Untitled Diagram")
    p.add_argument("--diagram-type", default=DiagramType.USE_CASE.value,
                   choices=[t.value for t in DiagramType])

    p = sub.add_parser("add-element")
    p.add_argument("--file-path", required=True)
    p.add_argument("--kind", required=True, choices=[k.value for k in ElementKind])
    p.add_argument("--x", type=float, default=100)
    p.add_argument("--y", type=float, default=100)
    p.add_argument("--name", default=None)

    p = sub.add_parser("remove-element")
    p.add_argument("--file-path", required=True)
    p.add_argument("--element-id", required=True)

    p = sub.add_parser("add-connection")
    p.add_argument("--file-path", required=True)
    p.add_argument("--kind", default=ConnectionKind.ASSOCIATION.value,
                   choices=[k.value for k in ConnectionKind])
    p.add_argument("--source", required=True)
    p.add_argument("--target", required=True)
    p.add_argument("--label", default=None)

    p = sub.add_parser("check")
    p.add_argument("--file-path", required=True)
    p.add_argument("--min-score", type=int, default=None)

    return parser


def main(argv=None):
    try:
        settings = load_settings()
    except ValidationError as e:
        _error_out(f"Invalid settings: {e}")

    logging.basicConfig(level=settings.log_level, stream=sys.stderr,
                        format="%(levelname)s %(name)s: %(message)s")

    args = build_parser().parse_args(argv)
    args.settings = settings

    cmd_map = {
        "new": cmd_new,
        "add-element": cmd_add_element,
        "remove-element": cmd_remove_element,
        "add-connection": cmd_add_connection,
        "check": cmd_check,
    }
    try:
        cmd_map[args.command](args)
    except FileNotFoundError as e:
        _error_out(str(e))
    except NotFoundError as e:
        _error_out(str(e))
    except (json.JSONDecodeError, ValidationError) as e:
        _error_out(f"Invalid diagram file: {e}")


if __name__ == "__main__":
    main()
