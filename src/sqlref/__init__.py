"""SQL reference documents and snippet tooling."""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]

_VERSION_RE = re.compile(r'^version\s*=\s*"([^"]+)"\s*$')


def _version_from_pyproject(start: Path | None = None) -> str | None:
    """Read [project].version from the nearest pyproject.toml that declares one, if running from source."""
    for base in (start or Path(__file__)).resolve().parents:
        pyproject = base / "pyproject.toml"
        if not pyproject.is_file():
            continue
        section = None
        for raw_line in pyproject.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("[") and line.endswith("]"):
                section = line
            elif section == "[project]" and (match := _VERSION_RE.match(line)):
                return match.group(1)
    return None


def _installed_version() -> str:
    try:
        return version("sqlref")
    except PackageNotFoundError:
        return "0+unknown"


__version__ = _version_from_pyproject() or _installed_version()
