from importlib import resources

from sqlref.content_loader import CONTENT_PACKAGE, load_documents
from sqlref.lint import lint_document

REQUIRED_ENTRIES: dict[str, set[str]] = {
    "sql_commands": {
        "CREATE TABLE",
        "ALTER TABLE",
        "DROP TABLE",
        "INSERT",
        "UPDATE",
        "DELETE",
        "SELECT",
        "WHERE",
        "GROUP BY",
        "HAVING",
        "INNER JOIN",
        "LEFT JOIN",
        "UNION",
        "CREATE INDEX",
        "CREATE VIEW",
        "GRANT",
        "REVOKE",
        "COMMIT",
        "ROLLBACK",
    },
    "advanced_sql": {
        "EXISTS",
        "WITH",
        "Recursive CTE",
        "ROW_NUMBER",
        "CASE",
        "UPSERT",
        "MERGE",
        "Isolation Levels",
        "Trigger",
        "EXPLAIN",
        "Composite Index",
        "Materialized View",
    },
}


def _sql_fence_count(document_id: str) -> int:
    text = resources.files(CONTENT_PACKAGE).joinpath(f"{document_id}.md").read_text(encoding="utf-8")
    return sum(1 for line in text.splitlines() if line.strip() == "```sql")


def test_bundled_documents_cover_required_entries() -> None:
    documents = load_documents()
    for document_id, required in REQUIRED_ENTRIES.items():
        names = {entry.name for entry in documents[document_id].entries}
        missing = required - names
        assert not missing, f"{document_id} is missing {sorted(missing)}"


def test_bundled_documents_extract_every_sql_block() -> None:
    documents = load_documents()
    for document_id, document in documents.items():
        assert len(document.entries) == _sql_fence_count(document_id)


def test_bundled_documents_are_lint_clean() -> None:
    for document in load_documents().values():
        assert lint_document(document) == [], document.id


def test_every_bundled_entry_has_a_category() -> None:
    for document in load_documents().values():
        for entry in document.entries:
            assert entry.category, f"{document.id}:{entry.line} {entry.name}"
            assert entry.section.level == 3
