"""Command line tool printing the result shape of a selection."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from typed_selections.config import DEFAULT_MAX_DEPTH, SelectionLimits
from typed_selections.errors import SelectionError
from typed_selections.schema import Schema
from typed_selections.shapes import render_shape

logger = logging.getLogger(__name__)


def _load_selection(schema: Schema, text: str, as_json: bool) -> Any:
    if as_json:
        return json.loads(text)
    return schema.parse_selection(text)


def run(args: argparse.Namespace) -> int:
    """Resolve and print the shape for parsed command line arguments."""
    if not args.schema.exists():
        print(f"Error: Schema file not found: {args.schema}", file=sys.stderr)
        return 1

    try:
        limits = SelectionLimits(max_depth=args.max_depth)
        schema = Schema.load(args.schema, limits)
        selection = _load_selection(schema, args.selection, args.json)
        page = json.loads(args.page) if args.page is not None else None

        if page is not None or args.offset or args.keyset or args.get:
            action = schema.read_action(
                "cli",
                args.entity,
                get=args.get,
                offset=args.offset,
                keyset=args.keyset,
            )
            shape = schema.result_shape(action, selection, page)
        else:
            shape = schema.describe_projection(args.entity, selection)
    except SelectionError as e:
        if args.json:
            print(json.dumps(e.to_dict()), file=sys.stderr)
        else:
            print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyError as e:
        print(f"Error: {e.args[0]}", file=sys.stderr)
        return 1
    except (SyntaxError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.debug("Resolved shape for %s", args.entity)
    print(render_shape(shape))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        description="Print the result type of a selection against an entity schema"
    )
    arg_parser.add_argument(
        "schema",
        type=Path,
        help="Path to a schema definition file",
    )
    arg_parser.add_argument(
        "entity",
        help="Name of the entity to select from",
    )
    arg_parser.add_argument(
        "selection",
        help="Selection text, e.g. 'id, author { name }'",
    )
    arg_parser.add_argument(
        "--json",
        action="store_true",
        help="Read the selection as JSON and report errors as JSON",
    )
    arg_parser.add_argument(
        "--page",
        type=str,
        default=None,
        help="Page parameter as a JSON object",
    )
    arg_parser.add_argument(
        "--offset",
        action="store_true",
        help="The read action supports offset pagination",
    )
    arg_parser.add_argument(
        "--keyset",
        action="store_true",
        help="The read action supports keyset pagination",
    )
    arg_parser.add_argument(
        "--get",
        action="store_true",
        help="The read action returns a single record",
    )
    arg_parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum selection nesting depth (default {DEFAULT_MAX_DEPTH})",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug output",
    )

    args = arg_parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    return run(args)


if __name__ == "__main__":
    sys.exit(main())
