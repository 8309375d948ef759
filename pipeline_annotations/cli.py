"""
Pipeline Annotations CLI - Thin entrypoint for inspecting annotation documents.

Commands:
- validate: Check a document and report discarded records
- show: Print the recovered annotations as JSON
- node: Print the annotations covering one node

Design Principles:
==================
- CLI is a dispatcher only
- Read-only: documents are never rewritten
- Errors go to stderr, exit non-zero on failure

Exit Codes:
===========
- 0: Success
- 1: Document loaded but some records were discarded
- 4: File not found or document malformed
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

from .errors import MalformedPersistedDataError
from .persistence import AnnotationDocument, RecoveryReport


def _load_document(path_arg: str) -> RecoveryReport:
    """
    Load a document, returning the recovered state and entry counts.

    Raises:
        SystemExit(4): File not found or document malformed
    """
    path = Path(path_arg).resolve()
    if not path.exists():
        print(f"ERROR: Annotation document not found: {path}", file=sys.stderr)
        sys.exit(4)

    try:
        return AnnotationDocument(path).read_report()
    except MalformedPersistedDataError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(4)


def _annotation_rows(annotations) -> List[dict]:
    rows = [a.model_dump(mode="json", by_alias=True) for a in annotations]
    rows.sort(key=lambda row: (row["createdAt"], row["id"]))
    return rows


def cmd_validate(args: argparse.Namespace) -> NoReturn:
    """
    Validate an annotation document.

    Exit codes:
        0: Every record is valid
        1: Some records were discarded
        4: File not found or malformed document
    """
    report = _load_document(args.document)

    if not report.discarded:
        print(f"✓ Annotation document is valid: {args.document}")
        print(f"  Annotations: {len(report.state.annotations)}")
        sys.exit(0)

    print(
        f"✗ {report.discarded} of {report.total} annotation records are invalid and would be discarded",
        file=sys.stderr,
    )
    sys.exit(1)


def cmd_show(args: argparse.Namespace) -> NoReturn:
    """Print recovered annotations and preferences as JSON."""
    state = _load_document(args.document).state
    output = {
        "annotations": _annotation_rows(state.annotations.values()),
        "preferences": state.preferences.model_dump(mode="json", by_alias=True),
    }
    print(json.dumps(output, indent=2))
    sys.exit(0)


def cmd_node(args: argparse.Namespace) -> NoReturn:
    """Print the annotations whose node set contains the given node."""
    state = _load_document(args.document).state
    matching = [a for a in state.annotations.values() if args.node_id in a.node_ids]
    print(json.dumps(_annotation_rows(matching), indent=2))
    sys.exit(0)


def main(argv: Optional[List[str]] = None) -> NoReturn:
    """
    Main CLI entrypoint.

    Parses arguments and dispatches to subcommands.
    """
    parser = argparse.ArgumentParser(
        prog="pipeline-annotations",
        description="Inspect pipeline annotation documents",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to execute")

    parser_validate = subparsers.add_parser(
        "validate",
        help="Check a document and report records that would be discarded",
    )
    parser_validate.add_argument("document", help="Path to annotation JSON document")
    parser_validate.set_defaults(func=cmd_validate)

    parser_show = subparsers.add_parser(
        "show",
        help="Print recovered annotations as JSON",
    )
    parser_show.add_argument("document", help="Path to annotation JSON document")
    parser_show.set_defaults(func=cmd_show)

    parser_node = subparsers.add_parser(
        "node",
        help="Print annotations covering one node",
    )
    parser_node.add_argument("document", help="Path to annotation JSON document")
    parser_node.add_argument("node_id", help="Diagram node identifier")
    parser_node.set_defaults(func=cmd_node)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    args.func(args)


if __name__ == "__main__":
    main()
