from __future__ import annotations

import argparse
import logging
import shutil
import sys
from dataclasses import replace
from pathlib import Path

from extract import ExtractEngineName

from .artifacts import pretty_description, serialize_json, write_text_artifact
from .config import ViewerConfig, load_config_file
from .debug_print import format_page_debug
from .session import LoadOutcome, ViewerSession, diagnostic_lines

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_EXTRACT = 2
EXIT_PARSE = 3

MODES = ("view", "grid", "text", "xml", "debug", "json")


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad usage; this CLI reserves 2 for extraction failures."""

    def error(self, message: str):  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_arg_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog="pdf-text-grid",
        description=(
            "Render a PDF's text layer on a terminal character grid, keeping its "
            "spatial layout and multi-column reading order."
        ),
    )
    p.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=None,
        help="PDF file, or an ALTO .xml description. Omit to show the bundled sample.",
    )
    p.add_argument(
        "--mode",
        choices=MODES,
        default=None,
        help="Output mode (default: view on a terminal, grid otherwise).",
    )
    p.add_argument("--page", type=int, default=None, help="1-indexed page to print (default: all).")
    p.add_argument("--cols", type=int, default=None, help="Grid width (default: terminal width).")
    p.add_argument("--rows", type=int, default=None, help="Grid height (default: whole page).")
    p.add_argument("--config", type=Path, default=None, help="JSON config file with per-stage sections.")

    # Per-flag overrides on top of --config.
    p.add_argument("--engine", choices=[e.value for e in ExtractEngineName], default=None)
    p.add_argument("--timeout-s", type=float, default=None, help="Extraction timeout in seconds.")
    p.add_argument("--first-page", type=int, default=None, help="First page to extract (1-indexed).")
    p.add_argument("--last-page", type=int, default=None, help="Last page to extract (1-indexed).")
    p.add_argument(
        "--no-reading-order",
        action="store_false",
        dest="reading_order",
        default=None,
        help="Do not pass -readingOrder to pdfalto.",
    )
    p.add_argument("--cell-aspect", type=float, default=None, help="Terminal cell height/width ratio.")
    p.add_argument(
        "--no-columns",
        action="store_false",
        dest="detect_columns",
        default=None,
        help="Disable column detection.",
    )

    p.add_argument("--save-text", type=Path, default=None, help="Write the readable text to this file.")
    p.add_argument("--save-xml", type=Path, default=None, help="Write the indented description to this file.")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    p.add_argument("--log-file", type=Path, default=None)
    return p


def configure_logging(*, level: str, log_file: Path | None, interactive: bool) -> None:
    """
    Route logs to a file, stderr, or nowhere.

    The interactive viewer owns the terminal, so without --log-file it logs
    nowhere.
    """

    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    elif interactive:
        handler = logging.NullHandler()
    else:
        handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )


def build_config(args: argparse.Namespace) -> ViewerConfig:
    cfg = load_config_file(args.config) if args.config is not None else ViewerConfig()

    extract_overrides = {
        "engine": None if args.engine is None else ExtractEngineName(args.engine),
        "timeout_s": args.timeout_s,
        "first_page": args.first_page,
        "last_page": args.last_page,
        "reading_order": args.reading_order,
    }
    extract = replace(cfg.extract, **{k: v for k, v in extract_overrides.items() if v is not None})
    mapping = cfg.mapping if args.cell_aspect is None else replace(cfg.mapping, cell_aspect=args.cell_aspect)
    layout = cfg.layout if args.detect_columns is None else replace(cfg.layout, detect_columns=args.detect_columns)

    cfg = replace(cfg, extract=extract, mapping=mapping, layout=layout)
    cfg.validate()
    return cfg


def exit_code_for(outcome: LoadOutcome | None) -> int:
    if outcome is None or outcome.ok:
        return EXIT_OK
    return EXIT_EXTRACT if outcome.stage == "extract" else EXIT_PARSE


def _selected_pages(session: ViewerSession, page: int | None) -> list[int]:
    if page is None:
        return list(range(session.page_count))
    return [page - 1]


def _print_grid_pages(session: ViewerSession, pages: list[int], *, cols: int, rows: int | None) -> None:
    for n, index in enumerate(pages):
        if len(pages) > 1:
            if n:
                print()
            print(f"=== page {index + 1}/{session.page_count} ===")
        grid = session.page_grid(index, cols, rows)
        for w in [*session.page_warnings(index), *grid.warnings]:
            logger.warning("page %d: %s: %s", index + 1, w.code, w.message)
        for line in grid.to_lines():
            print(line)


def _document_text(session: ViewerSession, pages: list[int]) -> str:
    return "\n".join(session.page_text(i) for i in pages)


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    mode = args.mode or ("view" if sys.stdout.isatty() else "grid")
    configure_logging(level=args.log_level, log_file=args.log_file, interactive=(mode == "view"))

    for name in ("cols", "rows", "page"):
        value = getattr(args, name)
        if value is not None and value <= 0:
            parser.error(f"--{name} must be positive")

    try:
        config = build_config(args)
    except (TypeError, ValueError) as e:
        print(f"pdf-text-grid: error: {e}", file=sys.stderr)
        return EXIT_USAGE

    if args.path is not None and not args.path.is_file():
        print(f"pdf-text-grid: error: input file not found: {args.path}", file=sys.stderr)
        return EXIT_USAGE

    session = ViewerSession(args.path, config)
    outcome = session.load()

    if mode == "view":
        from .display import run_viewer

        run_viewer(session)
        return exit_code_for(session.outcome)

    if not outcome.ok:
        for line in diagnostic_lines(outcome.errors):
            print(line, file=sys.stderr)
        return exit_code_for(outcome)

    if args.page is not None and args.page > session.page_count:
        print(f"pdf-text-grid: error: --page {args.page} out of range (1..{session.page_count})", file=sys.stderr)
        return EXIT_USAGE
    pages = _selected_pages(session, args.page)

    if args.save_xml is not None and session.description is not None:
        write_text_artifact(text=pretty_description(session.description), out_file=args.save_xml)
    if args.save_text is not None:
        write_text_artifact(text=_document_text(session, pages), out_file=args.save_text)

    if mode == "grid":
        cols = args.cols or shutil.get_terminal_size((100, 24)).columns
        _print_grid_pages(session, pages, cols=cols, rows=args.rows)
    elif mode == "text":
        sys.stdout.write(_document_text(session, pages))
    elif mode == "xml":
        sys.stdout.write(pretty_description(session.description or b""))
    elif mode == "debug":
        for index in pages:
            for line in format_page_debug(index, session.resolve(index)):
                print(line)
    elif mode == "json":
        resolved = session.resolve_all()
        payload = {
            "ok": resolved.ok,
            "document": None if resolved.document is None else resolved.document.to_dict(),
            "errors": [e.to_dict() for e in resolved.errors],
            "warnings": [w.to_dict() for w in [*outcome.warnings, *resolved.warnings]],
        }
        sys.stdout.write(serialize_json(payload))
        if not resolved.ok:
            return EXIT_PARSE

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
