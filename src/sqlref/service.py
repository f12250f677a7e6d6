"""Lookup, search and JSON transfer over the loaded reference documents."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import cast

from . import __version__
from .content_loader import load_documents
from .extractor import entry_name
from .models import CommandEntry, Document, Section

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = 1


@dataclass(frozen=True)
class DocumentSummary:
    """Document counts for the listing view."""

    document_id: str
    title: str
    section_count: int
    entry_count: int


@dataclass(frozen=True)
class EntryMatch:
    """One entry found by lookup or search, with its owning document."""

    document_id: str
    entry: CommandEntry


@dataclass(frozen=True)
class ExportSummary:
    """Summary emitted by document export operations."""

    document_id: str
    path: Path
    entry_count: int


class ReferenceService:
    """Coordinates queries over the reference documents."""

    def __init__(self, documents: dict[str, Document] | None = None) -> None:
        """Initialize service with given documents, or the bundled ones."""
        self.documents = documents if documents is not None else load_documents()

    def list_documents(self) -> list[Document]:
        return [self.documents[doc_id] for doc_id in sorted(self.documents)]

    def get_document(self, document_id: str) -> Document:
        """Return one document by id."""
        document = self.documents.get(document_id)
        if document is None:
            raise KeyError(document_id)
        return document

    def summaries(self) -> list[DocumentSummary]:
        return [
            DocumentSummary(
                document_id=document.id,
                title=document.title,
                section_count=len(document.sections),
                entry_count=len(document.entries),
            )
            for document in self.list_documents()
        ]

    def find_entries(self, name: str) -> list[EntryMatch]:
        """Return entries whose name matches ``name`` case-insensitively."""
        wanted = " ".join(name.split()).casefold()
        if not wanted:
            return []
        return [
            EntryMatch(document_id=document.id, entry=entry)
            for document in self.list_documents()
            for entry in document.entries
            if entry.name.casefold() == wanted
        ]

    def search(self, term: str) -> list[EntryMatch]:
        """Return entries mentioning ``term`` in name, code or explanation."""
        needle = term.strip().casefold()
        if not needle:
            return []
        matches: list[EntryMatch] = []
        for document in self.list_documents():
            for entry in document.entries:
                haystacks = (entry.name, entry.code, entry.explanation)
                if any(needle in text.casefold() for text in haystacks):
                    matches.append(EntryMatch(document_id=document.id, entry=entry))
        return matches

    def export_entries(self, document_id: str, export_path: Path | str) -> ExportSummary:
        """Export one document's entries to a JSON file."""
        document = self.get_document(document_id)
        payload = {
            "format_version": EXPORT_FORMAT_VERSION,
            "exported_at": datetime.now(UTC).isoformat(),
            "source": {
                "app_version": __version__,
            },
            "document": {
                "id": document.id,
                "title": document.title,
            },
            "entries": [entry_to_dict(entry) for entry in document.entries],
        }

        path = Path(export_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info("Exported %d entries of %s to %s", len(document.entries), document.id, path)
        return ExportSummary(document_id=document.id, path=path, entry_count=len(document.entries))


def entry_to_dict(entry: CommandEntry) -> dict[str, object]:
    """Serialize an entry with its full heading chain."""
    return {
        "name": entry.name,
        "category": entry.category,
        "language": entry.language,
        "line": entry.line,
        "headings": [
            {"title": section.title, "level": section.level, "line": section.line}
            for section in [*entry.section.ancestors(), entry.section]
        ],
        "code": entry.code,
        "explanation": entry.explanation,
    }


def import_entries(import_path: Path | str) -> Document:
    """Read a document export JSON file back into a document."""
    path = Path(import_path)
    raw_obj: object = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw_obj, dict):
        raise ValueError("Import file root must be a JSON object.")
    raw = cast(dict[str, object], raw_obj)

    format_version = _coerce_int(raw.get("format_version", 0))
    if format_version is None or format_version < 1:
        raise ValueError("Import file has invalid format_version.")
    if format_version > EXPORT_FORMAT_VERSION:
        raise ValueError(
            f"Import file format version {format_version} is newer than supported {EXPORT_FORMAT_VERSION}."
        )

    doc_id = path.stem
    title = doc_id
    document_obj = raw.get("document")
    if isinstance(document_obj, dict):
        document_section = cast(dict[str, object], document_obj)
        if isinstance(document_section.get("id"), str):
            doc_id = cast(str, document_section["id"])
        if isinstance(document_section.get("title"), str):
            title = cast(str, document_section["title"])

    entries_obj = raw.get("entries")
    if not isinstance(entries_obj, list):
        raise ValueError("Import file has no entries list.")

    sections: dict[tuple[str, int, int], Section] = {}
    entries = [
        _entry_from_dict(item, index, sections) for index, item in enumerate(cast(list[object], entries_obj), start=1)
    ]
    return Document(id=doc_id, title=title, entries=tuple(entries))


def _entry_from_dict(
    raw_obj: object, index: int, sections: dict[tuple[str, int, int], Section]
) -> CommandEntry:
    """Rebuild one entry, sharing section objects between entries of one heading."""
    if not isinstance(raw_obj, dict):
        raise ValueError(f"Entry {index} must be a JSON object.")
    raw = cast(dict[str, object], raw_obj)
    code = raw.get("code")
    headings = raw.get("headings")
    if not isinstance(code, str) or not isinstance(headings, list):
        raise ValueError(f"Entry {index} is missing code or headings.")

    section = _section_from_headings(cast(list[object], headings), index, sections)
    name = raw.get("name")
    explanation = raw.get("explanation", "")
    language = raw.get("language", "sql")
    return CommandEntry(
        name=name if isinstance(name, str) else entry_name(section.title),
        section=section,
        code=code,
        explanation=explanation if isinstance(explanation, str) else "",
        language=language if isinstance(language, str) else "sql",
        line=_coerce_int(raw.get("line"), default=0) or 0,
    )


def _section_from_headings(
    headings: list[object], index: int, sections: dict[tuple[str, int, int], Section]
) -> Section:
    """Rebuild the heading chain of one entry and return its innermost section."""
    parent: Section | None = None
    for heading_obj in headings:
        if not isinstance(heading_obj, dict):
            raise ValueError(f"Entry {index} has an invalid heading.")
        heading = cast(dict[str, object], heading_obj)
        title = heading.get("title")
        level = _coerce_int(heading.get("level"))
        line = _coerce_int(heading.get("line"), default=0)
        if not isinstance(title, str) or level is None or not 1 <= level <= 6 or line is None:
            raise ValueError(f"Entry {index} has an invalid heading.")
        key = (title, level, line)
        section = sections.get(key)
        if section is None:
            section = Section(title=title, level=level, line=line, parent=parent)
            sections[key] = section
        parent = section

    if parent is None:
        raise ValueError(f"Entry {index} is missing code or headings.")
    return parent


def _coerce_int(value: object, default: int | None = None) -> int | None:
    """Best-effort conversion of JSON values to int."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default
