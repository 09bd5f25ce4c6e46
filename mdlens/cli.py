"""Command line entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import load_settings, with_overrides
from .document import DocumentRenderer, build_document
from .extract import extract_selection
from .model import LineRange

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdlens",
        description="View a markdown file rendered or as highlighted source, and copy selections back as markdown.",
    )
    parser.add_argument("path", help="Markdown file to open.")
    parser.add_argument(
        "--export",
        metavar="OUT.html",
        default=None,
        help="Write a standalone HTML page with both views instead of opening a window.",
    )
    parser.add_argument(
        "--lines",
        action="append",
        default=[],
        metavar="N-M",
        help="Line range of a block touched by the selection (repeatable). Prints the extracted markdown.",
    )
    parser.add_argument(
        "--selection",
        default="",
        help="Rendered text that was selected; used with --lines.",
    )
    parser.add_argument("--view", choices=("rendered", "literal"), default=None, help="Initial view.")
    parser.add_argument("--toc", action="store_true", help="Show the table of contents sidebar.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr.")
    return parser


def _read_source(path: Path) -> str | None:
    if not path.exists():
        print(f"Path does not exist: {path}", file=sys.stderr)
        return None
    if not path.is_file():
        print(f"Path is not a file: {path}", file=sys.stderr)
        return None
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        print(f"Could not read {path}: {exc}", file=sys.stderr)
        return None


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    settings = load_settings()
    settings = with_overrides(
        settings,
        view_mode=args.view,
        toc_visible="true" if args.toc else None,
        log_level="DEBUG" if args.verbose else None,
    )
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    path = Path(args.path).expanduser()
    ranges: list[LineRange] = []
    for raw in args.lines:
        try:
            ranges.append(LineRange.parse(raw))
        except ValueError as exc:
            print(f"Bad --lines value: {exc}", file=sys.stderr)
            return 2

    if ranges or args.export:
        source = _read_source(path)
        if source is None:
            return 2
        if ranges:
            extracted = extract_selection(args.selection, ranges, source)
            if extracted is None:
                print("No source lines matched the given ranges", file=sys.stderr)
                return 1
            sys.stdout.write(extracted + "\n")
            return 0
        result = DocumentRenderer(settings).render(source, base_dir=path.resolve().parent)
        output_path = Path(args.export).expanduser()
        try:
            output_path.write_text(build_document(result, path.name, settings), encoding="utf-8")
        except OSError as exc:
            print(f"Could not write {output_path}: {exc}", file=sys.stderr)
            return 2
        logger.info("Exported %s to %s", path, output_path)
        return 0

    if _read_source(path) is None:
        return 2

    # Qt is only needed for the interactive window.
    from .viewer import run_viewer

    return run_viewer(path, settings)


if __name__ == "__main__":
    raise SystemExit(main())
