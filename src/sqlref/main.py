"""CLI entrypoint for browsing and checking the SQL reference."""

from __future__ import annotations

import argparse
import json
import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from .extractor import SQL_LANGUAGES, MalformedDocument, SnippetExtractor, render_skeleton
from .lint import has_errors, lint_text
from .models import CommandEntry
from .service import EntryMatch, ReferenceService, entry_to_dict, import_entries

PrintFn = Callable[[str], None]

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_LINT_ERRORS = 1
EXIT_FAILED = 2

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def _service() -> ReferenceService:
    """Create service over the bundled documents."""
    return ReferenceService()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sqlref", description="SQL command reference and snippet tooling")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="diagnostic logging level (default: WARNING)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    list_parser = commands.add_parser("list", help="list documents, or the entries of one document")
    list_parser.add_argument("document", nargs="?")

    show_parser = commands.add_parser("show", help="show entries by command name")
    show_parser.add_argument("name", nargs="+")

    search_parser = commands.add_parser("search", help="search names, examples and explanations")
    search_parser.add_argument("term")

    extract_parser = commands.add_parser("extract", help="extract SQL entries from a markdown file")
    extract_parser.add_argument("path", type=Path)
    extract_parser.add_argument("--format", choices=["text", "json"], default="text")
    _add_language_option(extract_parser)

    lint_parser = commands.add_parser("lint", help="check markdown files for documentation problems")
    lint_parser.add_argument("paths", nargs="+", type=Path)
    _add_language_option(lint_parser)

    skeleton_parser = commands.add_parser("skeleton", help="print the heading/snippet/explanation skeleton")
    skeleton_parser.add_argument("path", type=Path)
    _add_language_option(skeleton_parser)

    export_parser = commands.add_parser("export", help="export a bundled document to JSON")
    export_parser.add_argument("document")
    export_parser.add_argument("output", type=Path)

    render_parser = commands.add_parser("render", help="render a JSON export back to markdown")
    render_parser.add_argument("path", type=Path)
    return parser


def _add_language_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--language",
        dest="languages",
        action="append",
        metavar="LANG",
        help="fence language to treat as SQL (repeatable, default: sql)",
    )


def run(argv: Sequence[str] | None = None, print_fn: PrintFn = print) -> int:
    """Run the CLI application."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)
    languages = tuple(getattr(args, "languages", None) or SQL_LANGUAGES)

    try:
        if args.command == "list":
            return _list_flow(_service(), args.document, print_fn)
        if args.command == "show":
            return _show_flow(_service(), " ".join(args.name), print_fn)
        if args.command == "search":
            return _search_flow(_service(), args.term, print_fn)
        if args.command == "extract":
            return _extract_flow(args.path, args.format, languages, print_fn)
        if args.command == "lint":
            return _lint_flow(args.paths, languages, print_fn)
        if args.command == "skeleton":
            text = args.path.read_text(encoding="utf-8-sig")
            print_fn(render_skeleton(SnippetExtractor(text, languages=languages, source=str(args.path))).rstrip("\n"))
            return EXIT_OK
        if args.command == "export":
            summary = _service().export_entries(args.document, args.output)
            print_fn(f"Exported {summary.entry_count} entries from {summary.document_id} to {summary.path}")
            return EXIT_OK
        if args.command == "render":
            print_fn(render_skeleton(import_entries(args.path).entries).rstrip("\n"))
            return EXIT_OK
    except MalformedDocument as exc:
        print_fn(f"Malformed document: {exc}")
        return EXIT_FAILED
    except KeyError as exc:
        print_fn(f"Unknown document: {exc.args[0]}")
        return EXIT_FAILED
    except (OSError, ValueError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print_fn(f"Error: {exc}")
        return EXIT_FAILED
    raise AssertionError(f"Unhandled command: {args.command}")


def _list_flow(service: ReferenceService, document_id: str | None, print_fn: PrintFn) -> int:
    """List documents, or the sections and entries of one document."""
    if document_id is None:
        for summary in service.summaries():
            print_fn(
                f"{summary.document_id}: {summary.title} "
                f"({summary.section_count} sections, {summary.entry_count} entries)"
            )
        return EXIT_OK

    document = service.get_document(document_id)
    print_fn(f"=== {document.title} ===")
    for section in document.sections:
        category = f"{section.parent.title} / " if section.parent is not None else ""
        print_fn(f"{category}{section.title}")
        for entry in document.entries_in(section):
            print_fn(f"  - {entry.name} (line {entry.line})")
    return EXIT_OK


def _show_flow(service: ReferenceService, name: str, print_fn: PrintFn) -> int:
    matches = service.find_entries(name)
    if not matches:
        print_fn(f"No entry named '{name}'.")
        return EXIT_NOT_FOUND
    for match in matches:
        _print_entry(match, print_fn)
    return EXIT_OK


def _search_flow(service: ReferenceService, term: str, print_fn: PrintFn) -> int:
    matches = service.search(term)
    if not matches:
        print_fn(f"No entries mention '{term}'.")
        return EXIT_NOT_FOUND
    print_fn(f"{len(matches)} match(es):")
    for match in matches:
        category = match.entry.category or "-"
        print_fn(f"{match.document_id}:{match.entry.line}: {match.entry.name} [{category}]")
    return EXIT_OK


def _extract_flow(path: Path, output_format: str, languages: tuple[str, ...], print_fn: PrintFn) -> int:
    """Run the extractor over one arbitrary markdown file."""
    text = path.read_text(encoding="utf-8-sig")
    extractor = SnippetExtractor(text, languages=languages, source=path.name)
    if output_format == "json":
        print_fn(json.dumps([entry_to_dict(entry) for entry in extractor], indent=2))
        return EXIT_OK

    count = 0
    for entry in extractor:
        count += 1
        _print_entry(EntryMatch(document_id=path.stem, entry=entry), print_fn)
    print_fn(f"{count} entries")
    return EXIT_OK


def _lint_flow(paths: list[Path], languages: tuple[str, ...], print_fn: PrintFn) -> int:
    """Lint every file; exit non-zero when any error-level issue is found."""
    failed = False
    for path in paths:
        issues = lint_text(path.read_text(encoding="utf-8-sig"), source=str(path), languages=languages)
        for issue in issues:
            print_fn(issue.format(str(path)))
        if has_errors(issues):
            failed = True
    if not failed:
        print_fn(f"{len(paths)} file(s) checked, no errors.")
        return EXIT_OK
    return EXIT_LINT_ERRORS


def _print_entry(match: EntryMatch, print_fn: PrintFn) -> None:
    entry: CommandEntry = match.entry
    heading = f"{entry.category} / {entry.name}" if entry.category else entry.name
    print_fn(f"\n## {heading}  ({match.document_id}, line {entry.line})")
    print_fn(entry.code)
    if entry.explanation:
        print_fn("")
        print_fn(entry.explanation)


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
