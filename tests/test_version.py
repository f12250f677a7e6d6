import tomllib
from pathlib import Path

import sqlref


def test_package_version_matches_pyproject() -> None:
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    with pyproject.open("rb") as handle:
        project = tomllib.load(handle)["project"]
    assert sqlref.__version__ == project["version"]


def test_version_lookup_skips_pyproject_without_project_version(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "outer"\nversion = "9.8.7"\n', encoding="utf-8")
    nested = tmp_path / "vendor" / "pkg"
    nested.mkdir(parents=True)
    (nested / "pyproject.toml").write_text('[tool.black]\nversion = "1.0"\n', encoding="utf-8")
    module = nested / "sqlref" / "__init__.py"

    assert sqlref._version_from_pyproject(module) == "9.8.7"


def test_version_lookup_without_any_pyproject_returns_none(tmp_path: Path) -> None:
    assert sqlref._version_from_pyproject(tmp_path / "a" / "b" / "__init__.py") is None
