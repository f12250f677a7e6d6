"""Scan reference markdown into ordered SQL command entries."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from .models import CommandEntry, Document, Section

logger = logging.getLogger(__name__)

SQL_LANGUAGES = ("sql",)

_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
_FENCE_OPEN_RE = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_FENCE_CLOSE_RE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})[ \t]*$")
_THEMATIC_BREAK_RE = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")
_ENUMERATION_RE = re.compile(r"^\d+(?:\.\d+)*[.)]?\s+")
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
_CLOSING_SEQUENCE_RE = re.compile(r"^#+$")


class MalformedDocument(ValueError):
    """Document structure cannot be turned into command entries."""

    def __init__(self, reason: str, *, line: int, source: str = "<string>") -> None:
        super().__init__(f"{source}:{line}: {reason}")
        self.reason = reason
        self.line = line
        self.source = source


@dataclass(frozen=True)
class _Fence:
    char: str
    length: int
    indent: int
    language: str
    line: int

    def closes(self, line: str) -> bool:
        match = _FENCE_CLOSE_RE.match(line)
        if match is None:
            return False
        run = match.group("fence")
        return run[0] == self.char and len(run) >= self.length


@dataclass
class _PendingEntry:
    section: Section
    code: str
    language: str
    line: int


class SnippetExtractor:
    """Lazy, restartable sequence of the SQL entries in one markdown text.

    Every call to ``iter()`` runs a fresh linear scan over the text, so the same
    extractor can be consumed any number of times with identical results.
    Fences tagged with a language outside ``languages`` are skipped but still
    shield their contents from heading detection.
    """

    def __init__(self, text: str, *, languages: Iterable[str] = SQL_LANGUAGES, source: str = "<string>") -> None:
        self.text = text
        self.languages = frozenset(language.strip().lower() for language in languages if language.strip())
        self.source = source

    def __iter__(self) -> Iterator[CommandEntry]:
        return _scan(self.text, self.languages, self.source)


def extract_entries(
    text: str, *, languages: Iterable[str] = SQL_LANGUAGES, source: str = "<string>"
) -> Iterator[CommandEntry]:
    """Return an iterator over the command entries of ``text`` in document order."""
    return iter(SnippetExtractor(text, languages=languages, source=source))


def parse_document(
    text: str, doc_id: str = "document", *, languages: Iterable[str] = SQL_LANGUAGES, source: str | None = None
) -> Document:
    """Materialize all entries of ``text`` into a document."""
    entries = tuple(extract_entries(text, languages=languages, source=source or doc_id))
    return Document(id=doc_id, title=_document_title(entries) or doc_id, entries=entries)


def render_skeleton(entries: Iterable[CommandEntry]) -> str:
    """Serialize entries back to markdown holding only headings, SQL blocks and explanations."""
    blocks: list[str] = []
    printed: list[Section] = []
    for entry in entries:
        for section in [*entry.section.ancestors(), entry.section]:
            if section in printed:
                continue
            blocks.append(f"{'#' * section.level} {section.title}")
            printed.append(section)
        fence = _fence_for(entry.code)
        blocks.append(f"{fence}{entry.language}\n{entry.code}\n{fence}")
        if entry.explanation:
            blocks.append(entry.explanation)
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


def document_skeleton(text: str, *, languages: Iterable[str] = SQL_LANGUAGES) -> str:
    """Return the structural skeleton of a markdown text."""
    return render_skeleton(SnippetExtractor(text, languages=languages))


def entry_name(title: str) -> str:
    """Normalize a heading title into a command name."""
    name = _ENUMERATION_RE.sub("", title.strip())
    name = name.replace("`", "").replace("**", "").replace("__", "")
    name = " ".join(name.split())
    return name.rstrip(":").rstrip()


def split_lines(text: str) -> list[str]:
    """Split on CR, LF and CRLF only; form feeds and other separators stay in the line."""
    lines = _LINE_BREAK_RE.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


def _heading_title(heading: re.Match[str]) -> str:
    title = (heading.group(2) or "").strip()
    if _CLOSING_SEQUENCE_RE.match(title):
        return ""
    return title


def _scan(text: str, languages: frozenset[str], source: str) -> Iterator[CommandEntry]:
    """Two-state scan: outside a fence, or inside one."""
    stack: list[Section] = []
    fence: _Fence | None = None
    body: list[str] = []
    pending: _PendingEntry | None = None
    prose: list[str] = []
    count = 0

    for number, line in enumerate(split_lines(text), start=1):
        if fence is not None:
            if fence.closes(line):
                if fence.language in languages:
                    pending = _PendingEntry(
                        section=stack[-1], code="\n".join(body), language=fence.language, line=fence.line
                    )
                    prose = []
                fence = None
            elif fence.language in languages:
                body.append(_strip_indent(line, fence.indent))
            continue

        opened = _open_fence(line, number)
        if opened is not None:
            if pending is not None:
                count += 1
                yield _finish(pending, prose)
                pending = None
            if opened.language in languages and not stack:
                raise MalformedDocument("SQL code block has no preceding heading", line=number, source=source)
            fence = opened
            body = []
            continue

        heading = _HEADING_RE.match(line)
        if heading is not None:
            if pending is not None:
                count += 1
                yield _finish(pending, prose)
                pending = None
            level = len(heading.group(1))
            while stack and stack[-1].level >= level:
                stack.pop()
            parent = stack[-1] if stack else None
            stack.append(Section(title=_heading_title(heading), level=level, line=number, parent=parent))
            continue

        if pending is not None:
            prose.append(line)

    if pending is not None:
        count += 1
        yield _finish(pending, prose)
    if fence is not None:
        raise MalformedDocument("code fence is never closed", line=fence.line, source=source)
    logger.debug("Extracted %d entries from %s", count, source)


def _open_fence(line: str, number: int) -> _Fence | None:
    match = _FENCE_OPEN_RE.match(line)
    if match is None:
        return None
    run = match.group("fence")
    info = match.group("info").strip()
    if run[0] == "`" and "`" in info:
        return None
    language = info.split()[0].lower() if info else ""
    return _Fence(char=run[0], length=len(run), indent=len(match.group("indent")), language=language, line=number)


def _strip_indent(line: str, indent: int) -> str:
    """Remove up to ``indent`` leading spaces, as the opening fence was indented."""
    removable = len(line) - len(line.lstrip(" "))
    return line[min(indent, removable) :]


def _finish(pending: _PendingEntry, prose: list[str]) -> CommandEntry:
    kept = [line for line in prose if not _THEMATIC_BREAK_RE.match(line)]
    return CommandEntry(
        name=entry_name(pending.section.title),
        section=pending.section,
        code=pending.code,
        explanation="\n".join(kept).strip(),
        language=pending.language,
        line=pending.line,
    )


def _fence_for(code: str) -> str:
    """Pick a backtick fence longer than any backtick run opening a line of ``code``."""
    longest = 0
    for line in split_lines(code):
        stripped = line.lstrip(" ")
        run = len(stripped) - len(stripped.lstrip("`"))
        longest = max(longest, run)
    return "`" * max(3, longest + 1)


def _document_title(entries: tuple[CommandEntry, ...]) -> str | None:
    for entry in entries:
        chain = entry.section.ancestors() or [entry.section]
        if chain[0].level == 1:
            return chain[0].title
    return None
