"""Documentation checks over extracted command entries."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from .extractor import SQL_LANGUAGES, MalformedDocument, extract_entries
from .models import CommandEntry, Document, Section

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"

_DOLLAR_QUOTE_RE = re.compile(r"\$(?:[A-Za-z_][A-Za-z_0-9]*)?\$")


@dataclass(frozen=True)
class LintIssue:
    """One finding reported by the linter."""

    code: str
    severity: str
    line: int
    message: str
    entry: str | None = None

    def format(self, source: str) -> str:
        return f"{source}:{self.line}: {self.severity} [{self.code}] {self.message}"


def lint_text(text: str, *, source: str = "<string>", languages: Iterable[str] = SQL_LANGUAGES) -> list[LintIssue]:
    """Lint raw markdown, reporting structural failures as issues."""
    entries: list[CommandEntry] = []
    issues: list[LintIssue] = []
    try:
        for entry in extract_entries(text, languages=languages, source=source):
            entries.append(entry)
    except MalformedDocument as exc:
        issues.append(LintIssue(code="malformed", severity=ERROR, line=exc.line, message=exc.reason))
    issues.extend(lint_entries(entries))
    issues.sort(key=lambda issue: issue.line)
    _log_summary(source, issues)
    return issues


def lint_document(document: Document) -> list[LintIssue]:
    """Lint an already loaded document."""
    issues = lint_entries(document.entries)
    _log_summary(document.id, issues)
    return issues


def lint_entries(entries: Iterable[CommandEntry]) -> list[LintIssue]:
    """Apply entry-level checks in document order."""
    issues: list[LintIssue] = []
    first_section: dict[str, Section] = {}
    for entry in entries:
        if not entry.code.strip():
            issues.append(_issue("empty-snippet", ERROR, entry, "SQL block is empty."))
        elif not ends_with_terminator(entry.code):
            issues.append(
                _issue("incomplete-statement", ERROR, entry, "SQL block does not end with a complete statement.")
            )
        if not entry.explanation:
            issues.append(_issue("missing-explanation", WARNING, entry, "No explanation follows the SQL block."))

        key = entry.name.casefold()
        previous = first_section.setdefault(key, entry.section)
        if previous != entry.section:
            issues.append(
                _issue(
                    "duplicate-entry",
                    WARNING,
                    entry,
                    f"'{entry.name}' is also documented at line {previous.line}.",
                )
            )
    issues.sort(key=lambda issue: issue.line)
    return issues


def has_errors(issues: Iterable[LintIssue]) -> bool:
    return any(issue.severity == ERROR for issue in issues)


def _issue(code: str, severity: str, entry: CommandEntry, message: str) -> LintIssue:
    return LintIssue(code=code, severity=severity, line=entry.line, message=message, entry=entry.name)


def _log_summary(source: str, issues: list[LintIssue]) -> None:
    errors = sum(1 for issue in issues if issue.severity == ERROR)
    if issues:
        logger.warning("%s: %d issue(s), %d error(s)", source, len(issues), errors)
    else:
        logger.debug("%s: no issues", source)


def ends_with_terminator(code: str) -> bool:
    """True when the last token outside strings, quoted identifiers and comments is ``;``.

    Recognizes single and double quotes, backticks, ``--`` and ``/* */`` comments and
    PostgreSQL dollar quoting. Anything left open at the end of the block is incomplete.
    """
    last = ""
    index = 0
    while index < len(code):
        char = code[index]
        if char in "'\"`":
            end = code.find(char, index + 1)
            if end == -1:
                return False
            last = char
            index = end + 1
        elif code.startswith("--", index):
            end = code.find("\n", index)
            if end == -1:
                break
            index = end + 1
        elif code.startswith("/*", index):
            end = code.find("*/", index + 2)
            if end == -1:
                return False
            index = end + 2
        elif char == "$" and (tag := _DOLLAR_QUOTE_RE.match(code, index)) is not None:
            end = code.find(tag.group(0), tag.end())
            if end == -1:
                return False
            last = "$"
            index = end + len(tag.group(0))
        else:
            if not char.isspace():
                last = char
            index += 1
    return last == ";"
