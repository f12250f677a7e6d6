"""Document-structure models for the SQL reference."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Section:
    """One markdown heading grouping related command entries."""

    title: str
    level: int
    line: int
    parent: Section | None = None

    def ancestors(self) -> list[Section]:
        """Return enclosing sections, outermost first."""
        chain: list[Section] = []
        current = self.parent
        while current is not None:
            chain.append(current)
            current = current.parent
        chain.reverse()
        return chain


@dataclass(frozen=True)
class CommandEntry:
    """A named SQL topic with its example block and explanation."""

    name: str
    section: Section
    code: str
    explanation: str
    language: str = "sql"
    line: int = 0

    @property
    def category(self) -> str | None:
        if self.section.parent is None:
            return None
        return self.section.parent.title


@dataclass(frozen=True)
class Document:
    """Ordered entries of one reference document."""

    id: str
    title: str
    entries: tuple[CommandEntry, ...]

    @property
    def sections(self) -> list[Section]:
        """Sections owning at least one entry, in first-appearance order."""
        seen: list[Section] = []
        for entry in self.entries:
            if entry.section not in seen:
                seen.append(entry.section)
        return seen

    def entries_in(self, section: Section) -> list[CommandEntry]:
        return [entry for entry in self.entries if entry.section == section]
