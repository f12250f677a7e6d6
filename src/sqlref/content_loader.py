"""Load the bundled SQL reference documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from importlib import resources
from pathlib import Path

from .extractor import SQL_LANGUAGES, parse_document
from .models import Document

logger = logging.getLogger(__name__)

CONTENT_PACKAGE = "sqlref.content.documents"


def _document_from_text(doc_id: str, text: str, source: str, languages: Iterable[str]) -> Document:
    """Build a document and reject ones without any entries."""
    document = parse_document(text, doc_id, languages=languages, source=source)
    if not document.entries:
        raise ValueError(f"Document '{doc_id}' has no SQL entries.")
    logger.debug("Loaded %s: %d sections, %d entries", doc_id, len(document.sections), len(document.entries))
    return document


def load_document(path: Path | str, *, languages: Iterable[str] = SQL_LANGUAGES) -> Document:
    """Load one markdown file as a document keyed by its file stem."""
    file_path = Path(path)
    text = file_path.read_text(encoding="utf-8-sig")
    return _document_from_text(file_path.stem, text, file_path.name, languages)


def load_documents() -> dict[str, Document]:
    """Load bundled documents."""
    documents: dict[str, Document] = {}
    entries = sorted(resources.files(CONTENT_PACKAGE).iterdir(), key=lambda item: item.name)
    for entry in entries:
        if not entry.name.endswith(".md"):
            continue
        doc_id = entry.name[: -len(".md")]
        document = _document_from_text(doc_id, entry.read_text(encoding="utf-8-sig"), entry.name, SQL_LANGUAGES)
        if document.id in documents:
            raise ValueError(f"Duplicate document id: {document.id}")
        documents[document.id] = document
    return documents


def load_documents_from_dir(path: Path, *, languages: Iterable[str] = SQL_LANGUAGES) -> dict[str, Document]:
    """Load documents from directory for tests/tools."""
    documents: dict[str, Document] = {}
    for file_path in sorted(path.glob("*.md")):
        document = load_document(file_path, languages=languages)
        if document.id in documents:
            raise ValueError(f"Duplicate document id: {document.id}")
        documents[document.id] = document
    return documents
